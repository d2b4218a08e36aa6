# tilt_core.py
# Tilt engine for the 2048 sliding-tile game: grid storage, perspective
# rotation, the per-line compaction/merge pass and terminal-state detection.

import logging
from enum import Enum
from typing import Iterator, List, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_SIZE = 4
MAX_PIECE = 2048


class GameProgressState(Enum):
    """Represents the current progress state of the game."""
    IN_PROGRESS = 1
    GAME_OVER = 2  # Lost
    GAME_WON = 3


class Side(Enum):
    """The four sides of the board, numbered in clockwise quarter turns from NORTH."""
    NORTH = 0
    EAST = 1
    SOUTH = 2
    WEST = 3

    @property
    def quarter_turns(self) -> int:
        return self.value


# --- Errors ---

class BoardError(ValueError):
    """Base class for rejected board operations."""


class OccupiedCellError(BoardError):
    """Raised when a tile is placed on a cell that already holds one."""


class InvalidCoordinateError(BoardError):
    """Raised when a column or row lies outside the board."""


class InvalidTileValueError(BoardError):
    """Raised when a tile value is not a power of two of at least 2."""


def is_tile_value(value: int) -> bool:
    """True iff VALUE is a legal tile value (a power of two >= 2)."""
    return isinstance(value, int) and value >= 2 and value & (value - 1) == 0


# --- Tiles ---

class Tile:
    """A numbered tile at board position (col, row).

    (0, 0) is the south-west corner; rows grow northward and columns grow
    eastward. `merged` is true once the tile has absorbed another tile during
    the current tilt.
    """

    def __init__(self, value: int, col: int, row: int) -> None:
        if not is_tile_value(value):
            raise InvalidTileValueError(f"Tile value must be a power of two >= 2, got {value!r}.")
        self.value = value
        self.col = col
        self.row = row
        self.merged = False

    def absorb(self, other: "Tile") -> int:
        """Doubles this tile's value by merging OTHER into it. Returns the payoff."""
        self.value += other.value
        self.merged = True
        return self.value

    def __repr__(self) -> str:
        return f"Tile({self.value}, col={self.col}, row={self.row})"


# --- Perspective ---

class Perspective:
    """Maps board coordinates to travel coordinates for the active side.

    In travel space the tilt always moves tiles toward row size - 1, whatever
    side was requested. NORTH is the identity mapping.
    """

    def __init__(self, size: int) -> None:
        self._size = size
        self.side = Side.NORTH

    def activate(self, side: Side) -> None:
        self.side = side

    def deactivate(self) -> None:
        self.side = Side.NORTH

    def _turn(self, col: int, row: int) -> Tuple[int, int]:
        # One clockwise quarter turn about the grid center.
        return row, self._size - 1 - col

    def to_board(self, col: int, row: int) -> Tuple[int, int]:
        """Converts travel coordinates to board coordinates."""
        for _ in range(self.side.quarter_turns):
            col, row = self._turn(col, row)
        return col, row

    def to_travel(self, col: int, row: int) -> Tuple[int, int]:
        """Converts board coordinates to travel coordinates."""
        for _ in range((4 - self.side.quarter_turns) % 4):
            col, row = self._turn(col, row)
        return col, row


# --- Grid ---

class Grid:
    """An N x N board of optional tiles.

    `tile`, `put` and `move` go through the installed perspective; the
    `board_*` accessors and `remove` always use board coordinates.
    """

    def __init__(self, size: int = DEFAULT_SIZE) -> None:
        if not isinstance(size, int) or size <= 0:
            raise ValueError("Board size must be a positive integer.")
        self._size = size
        self._cells: List[List[Optional[Tile]]] = [[None] * size for _ in range(size)]
        self.perspective = Perspective(size)

    @property
    def size(self) -> int:
        return self._size

    def _check(self, col: int, row: int) -> None:
        if not (0 <= col < self._size and 0 <= row < self._size):
            raise InvalidCoordinateError(
                f"Position ({col}, {row}) is outside a {self._size}x{self._size} board."
            )

    def board_tile(self, col: int, row: int) -> Optional[Tile]:
        """Returns the tile at board position (col, row), ignoring the perspective."""
        self._check(col, row)
        return self._cells[col][row]

    def tile(self, col: int, row: int) -> Optional[Tile]:
        """Returns the tile at (col, row) as seen from the active perspective."""
        self._check(col, row)
        board_col, board_row = self.perspective.to_board(col, row)
        return self._cells[board_col][board_row]

    def put(self, tile: Tile, col: int, row: int) -> None:
        """Places TILE at (col, row) of the active perspective.

        Raises:
            InvalidCoordinateError: If the position is off the board.
            OccupiedCellError: If another tile is already there.
        """
        self._check(col, row)
        board_col, board_row = self.perspective.to_board(col, row)
        if self._cells[board_col][board_row] is not None:
            logger.debug("Rejected tile %r: cell (%d, %d) is occupied", tile, board_col, board_row)
            raise OccupiedCellError(f"Cell ({board_col}, {board_row}) is already occupied.")
        self._cells[board_col][board_row] = tile
        tile.col, tile.row = board_col, board_row

    def remove(self, tile: Tile) -> None:
        """Takes TILE off the board."""
        if self._cells[tile.col][tile.row] is tile:
            self._cells[tile.col][tile.row] = None

    def move(self, col: int, row: int, tile: Tile) -> None:
        """Moves TILE to (col, row) of the active perspective without merging.

        Raises:
            InvalidCoordinateError: If the position is off the board.
            OccupiedCellError: If another tile is already there; TILE stays put.
        """
        occupant = self.tile(col, row)
        if occupant is not None and occupant is not tile:
            raise OccupiedCellError(f"Cell ({col}, {row}) is already occupied.")
        self.remove(tile)
        self.put(tile, col, row)

    def clear(self) -> None:
        self._cells = [[None] * self._size for _ in range(self._size)]

    def tiles(self) -> Iterator[Tile]:
        """Yields every tile on the board, in board order."""
        for column in self._cells:
            for tile in column:
                if tile is not None:
                    yield tile

    def empty_cells(self) -> List[Tuple[int, int]]:
        """
        Get board coordinates of the empty cells.
        Returns:
            List[Tuple[int, int]]: List of (col, row) tuples for empty cells.
        """
        return [(col, row)
                for col in range(self._size)
                for row in range(self._size)
                if self._cells[col][row] is None]

    def values(self) -> List[List[int]]:
        """The board as printed: rows north to south, 0 for an empty cell."""
        n = self._size
        return [[self._cells[col][row].value if self._cells[col][row] is not None else 0
                 for col in range(n)]
                for row in reversed(range(n))]


def get_board_size(board: List[List[int]]) -> int:
    """
    Gets the size (N) of an N x N raw board.
    Args:
        board (List[List[int]]): The raw board.
    Returns:
        int: The dimension of the board.
    Raises:
        ValueError: If the board is not square or empty.
    """
    if not board or not all(len(row) == len(board) for row in board):
        raise ValueError("Board must be a non-empty square matrix.")
    return len(board)


def grid_from_values(raw_values: List[List[int]]) -> Grid:
    """
    Builds a grid from a raw matrix of tile values.
    Args:
        raw_values (List[List[int]]): Rows as printed, north edge first; 0 is an empty cell.
    Returns:
        Grid: A new grid holding the tiles.
    Raises:
        ValueError: If the matrix is not square or holds an illegal value.
    """
    n = get_board_size(raw_values)
    grid = Grid(n)
    for printed_row, values in enumerate(raw_values):
        row = n - 1 - printed_row
        for col, value in enumerate(values):
            if value != 0:
                grid.put(Tile(value, col, row), col, row)
    return grid


# --- Line Compaction and Merging ---

class LineResult(NamedTuple):
    tiles: List[Optional[Tile]]
    score: int
    merges: int
    changed: bool


def compact_line(line: List[Optional[Tile]]) -> LineResult:
    """
    Slides and merges a single line toward its first slot.

    The first slot is the far end of the line (the edge the tiles travel
    toward). Tiles merge greedily from the far end: a tile joins the last
    placed tile if their values match and that tile has not merged yet, so of
    three equal tiles only the leading two merge.
    Args:
        line (List[Optional[Tile]]): The line's slots, far end first.
    Returns:
        LineResult: The new slots (same length and order), the score gained,
                    the number of merges and whether the line changed.
    """
    before = [tile.value if tile is not None else 0 for tile in line]
    placed: List[Tile] = []
    score = 0
    for tile in line:
        if tile is None:
            continue
        if placed and not placed[-1].merged and placed[-1].value == tile.value:
            score += placed[-1].absorb(tile)
        else:
            placed.append(tile)

    slots: List[Optional[Tile]] = placed + [None] * (len(line) - len(placed))
    after = [tile.value if tile is not None else 0 for tile in slots]
    merges = len(line) - before.count(0) - len(placed)
    return LineResult(slots, score, merges, after != before)


# --- Terminal State Detection ---

def has_winning_tile(grid: Grid, win_tile: int = MAX_PIECE) -> bool:
    """True iff some tile on GRID has the value WIN_TILE."""
    return any(tile.value == win_tile for tile in grid.tiles())


def has_any_move(grid: Grid) -> bool:
    """
    Checks whether any tilt could change the board.

    There is a move if a cell is empty or two orthogonally adjacent tiles have
    the same value. Reads board coordinates only, so the active perspective
    plays no part.
    Args:
        grid (Grid): The board to check.
    Returns:
        bool: True if at least one move exists, False otherwise.
    """
    n = grid.size
    for col in range(n):
        for row in range(n):
            tile = grid.board_tile(col, row)
            if tile is None:
                return True
            # East and north neighbours cover every adjacent pair once.
            if col + 1 < n:
                east = grid.board_tile(col + 1, row)
                if east is not None and east.value == tile.value:
                    return True
            if row + 1 < n:
                north = grid.board_tile(col, row + 1)
                if north is not None and north.value == tile.value:
                    return True
    return False


def is_game_over(grid: Grid, win_tile: int = MAX_PIECE) -> bool:
    return has_winning_tile(grid, win_tile) or not has_any_move(grid)


def determine_game_status(grid: Grid, win_tile: int = MAX_PIECE) -> GameProgressState:
    """
    Determines the current progress state of the game based on the board.
    Args:
        grid (Grid): The current game board.
        win_tile (int): The tile value that signifies a win. Default is 2048.
    Returns:
        GameProgressState: The current state (IN_PROGRESS, GAME_WON, GAME_OVER).
    """
    if has_winning_tile(grid, win_tile):
        return GameProgressState.GAME_WON
    if not has_any_move(grid):
        return GameProgressState.GAME_OVER
    return GameProgressState.IN_PROGRESS


# --- Tilt ---

class TiltResult(NamedTuple):
    changed: bool
    score: int
    merges: int


def tilt_grid(grid: Grid, side: Side) -> TiltResult:
    """
    Tilts every tile on the grid toward SIDE, in place.
    Args:
        grid (Grid): The board to tilt.
        side (Side): The side the tiles travel toward.
    Returns:
        TiltResult: Whether the board changed, the score gained and the
                    number of merges.
    Raises:
        ValueError: If an invalid side is specified.
    """
    if not isinstance(side, Side):
        raise ValueError("Invalid side specified for tilt.")
    if not has_any_move(grid):
        return TiltResult(False, 0, 0)

    for tile in grid.tiles():
        tile.merged = False

    n = grid.size
    changed = False
    score = 0
    merges = 0
    grid.perspective.activate(side)
    try:
        for col in range(n):
            line = [grid.tile(col, row) for row in reversed(range(n))]
            result = compact_line(line)
            if not result.changed:
                continue
            for tile in line:
                if tile is not None and tile not in result.tiles:
                    grid.remove(tile)
            # Survivors only move toward the far end or stay, so far-first moves never collide.
            for offset, tile in enumerate(result.tiles):
                if tile is not None:
                    grid.move(col, n - 1 - offset, tile)
            changed = True
            score += result.score
            merges += result.merges
    finally:
        grid.perspective.deactivate()

    logger.debug("Tilted %s: changed=%s score=+%d merges=%d", side.name, changed, score, merges)
    return TiltResult(changed, score, merges)
