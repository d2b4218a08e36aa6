# tilt_model.py
# The game session: a grid plus score bookkeeping, terminal-state tracking
# and change notification for whatever view is attached.

import logging
import random
from typing import Callable, List, Optional

from pydantic import BaseModel, Field

from tilt_core import (
    DEFAULT_SIZE,
    MAX_PIECE,
    GameProgressState,
    Grid,
    Side,
    Tile,
    determine_game_status,
    get_board_size,
    grid_from_values,
    is_game_over,
    tilt_grid,
)

logger = logging.getLogger(__name__)

# --- Pydantic Models for settings and snapshots ---

class GameSettings(BaseModel):
    """Settings for creating a new game."""
    size: int = Field(
        default=DEFAULT_SIZE,
        gt=1,  # Board size must be at least 2x2
        description="Size of the N x N game board (e.g., 4 for a 4x4 board)."
    )
    win_tile: int = Field(
        default=MAX_PIECE,
        gt=0,
        description="The tile value that ends the game (e.g., 2048)."
    )
    score: int = Field(default=0, ge=0, description="Starting score.")
    best_score: int = Field(default=0, ge=0, description="Starting best score.")


class GameSnapshot(BaseModel):
    """Represents the complete visible state of a game instance."""
    board: List[List[int]] = Field(..., description="The board as printed, north row first, 0 for empty.")
    score: int = Field(..., ge=0, description="Current score of the game.")
    best_score: int = Field(..., ge=0, description="Highest score recorded at the end of a game.")
    game_over: bool = Field(..., description="True if the game has ended.")
    progress: GameProgressState = Field(
        ...,
        description="Current progress state of the game (IN_PROGRESS, GAME_WON, GAME_OVER)."
    )
    win_tile: int = Field(..., gt=0, description="The tile value that ends this game instance.")
    board_size: int = Field(..., gt=0, description="The dimension N of the N x N board.")


Listener = Callable[[], None]


class Model:
    """The state of a game of 2048.

    Column COL, row ROW (row 0, column 0 being the south-west corner) is
    `tile(col, row)`, like (x, y) coordinates.
    """

    def __init__(self, size: int = DEFAULT_SIZE, score: int = 0, best_score: int = 0,
                 game_over: bool = False, win_tile: int = MAX_PIECE) -> None:
        """
        A new game on an empty SIZE x SIZE board.
        Raises:
            ValueError: If a setting is out of range (a pydantic ValidationError).
        """
        settings = GameSettings(size=size, win_tile=win_tile, score=score, best_score=best_score)
        self._grid = Grid(settings.size)
        self._score = settings.score
        self._best_score = settings.best_score
        self._game_over = game_over
        self._win_tile = settings.win_tile
        self._listeners: List[Listener] = []

    @classmethod
    def from_settings(cls, settings: GameSettings) -> "Model":
        return cls(settings.size, settings.score, settings.best_score, win_tile=settings.win_tile)

    @classmethod
    def from_values(cls, raw_values: List[List[int]], score: int = 0, best_score: int = 0,
                    game_over: bool = False, win_tile: int = MAX_PIECE) -> "Model":
        """
        A game whose tiles are given by RAW_VALUES, used for testing.
        Args:
            raw_values (List[List[int]]): Rows as printed, north row first; 0 is empty.
            score (int): Starting score.
            best_score (int): Starting best score.
            game_over (bool): Starting game-over flag, re-derived on the next query.
            win_tile (int): The tile value that ends the game.
        Returns:
            Model: The new game.
        Raises:
            ValueError: If the matrix is not square, holds an illegal value,
                        or a setting is out of range.
        """
        model = cls(get_board_size(raw_values), score, best_score, game_over, win_tile)
        model._grid = grid_from_values(raw_values)
        return model

    # --- Queries ---

    def tile(self, col: int, row: int) -> Optional[Tile]:
        """The tile at (col, row), or None. Raises InvalidCoordinateError off the board."""
        return self._grid.board_tile(col, row)

    @property
    def size(self) -> int:
        return self._grid.size

    @property
    def score(self) -> int:
        return self._score

    @property
    def best_score(self) -> int:
        """The best score so far, updated when a game ends."""
        return self._best_score

    @property
    def win_tile(self) -> int:
        return self._win_tile

    def is_game_over(self) -> bool:
        """True iff the board has the winning tile or no move is left."""
        self._check_game_over()
        return self._game_over

    def values(self) -> List[List[int]]:
        return self._grid.values()

    def snapshot(self) -> GameSnapshot:
        game_over = self.is_game_over()
        return GameSnapshot(
            board=self.values(),
            score=self._score,
            best_score=self._best_score,
            game_over=game_over,
            progress=determine_game_status(self._grid, self._win_tile),
            win_tile=self._win_tile,
            board_size=self.size,
        )

    # --- Listeners ---

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # --- Mutators ---

    def clear(self) -> None:
        """Clear the board to empty and reset the score."""
        self._score = 0
        self._game_over = False
        self._grid.clear()
        self._notify()

    def add_tile(self, value: int, col: int, row: int) -> Tile:
        """
        Adds a tile of VALUE at (col, row).
        Raises:
            InvalidTileValueError: If VALUE is not a power of two >= 2.
            InvalidCoordinateError: If the position is off the board.
            OccupiedCellError: If a tile is already there.
        """
        tile = Tile(value, col, row)
        self._grid.put(tile, col, row)
        self._check_game_over()
        self._notify()
        return tile

    def add_random_tile(self, rng: Optional[random.Random] = None) -> Optional[Tile]:
        """
        Adds a new tile (90% chance of 2, 10% chance of 4) to a random empty cell.
        Args:
            rng (Optional[random.Random]): Source of randomness; the module-level one if None.
        Returns:
            Optional[Tile]: The new tile, or None if the board is full.
        """
        rng = rng or random
        empty_cells = self._grid.empty_cells()
        if not empty_cells:
            return None
        col, row = rng.choice(empty_cells)
        return self.add_tile(4 if rng.random() < 0.1 else 2, col, row)

    def tilt(self, side: Side) -> bool:
        """
        Tilts the board toward SIDE. Return true iff this changes the board.

        1. Two adjacent tiles with the same value in the direction of motion
           merge into one tile of twice the value, which is added to the score.
        2. A tile that is the result of a merge does not merge again on that
           tilt.
        3. Of three adjacent equal tiles in the direction of motion, the
           leading two merge and the trailing one does not.
        """
        result = tilt_grid(self._grid, side)
        self._score += result.score
        self._check_game_over()
        if result.changed:
            self._notify()
        return result.changed

    def _check_game_over(self) -> None:
        over = is_game_over(self._grid, self._win_tile)
        if over and not self._game_over:
            logger.info("Game over with score %d", self._score)
        self._game_over = over
        if over:
            self._best_score = max(self._score, self._best_score)

    # --- Debug rendering ---

    def __str__(self) -> str:
        board = self.values()
        # Cells are at least 4 wide and grow together to fit the largest tile.
        width = max([4] + [len(str(value)) for row in board for value in row])
        lines = ["", "["]
        for row in board:
            lines.append("".join("|" + (" " * width if value == 0 else f"{value:{width}d}")
                                 for value in row) + "|")
        over = "over" if self.is_game_over() else "not over"
        lines.append(f"] {self._score} (max: {self._best_score}) (game is {over}) ")
        return "\n".join(lines) + "\n"

    def __repr__(self) -> str:
        return f"Model(size={self.size}, score={self._score}, best_score={self._best_score})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Model):
            return NotImplemented
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))
