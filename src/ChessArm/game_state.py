"""
Persisted game: the logical board and the pieces sent to the graveyard.

The state file is the only thing that survives between two commands. It is
plain JSON: {"fen": "...", "graveyard": [codes...]}.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import chess

from . import config
from .errors import StateError

logger = logging.getLogger(__name__)

# graveyard piece codes: 1..6 white, 7..12 black
PIECE_TYPES_BY_CODE = [chess.KING, chess.QUEEN, chess.ROOK, chess.BISHOP, chess.KNIGHT, chess.PAWN]


def piece_to_code(piece: chess.Piece) -> int:
    code = PIECE_TYPES_BY_CODE.index(piece.piece_type) + 1
    if piece.color == chess.BLACK:
        code += 6
    return code


def code_to_piece(code: int) -> chess.Piece:
    if not 1 <= code <= 12:
        raise ValueError(f"invalid piece code {code}")
    color = chess.WHITE if code <= 6 else chess.BLACK
    return chess.Piece(PIECE_TYPES_BY_CODE[(code - 1) % 6], color)


@dataclass
class GameState:
    """The logical board plus the ordered graveyard (None = slot emptied)."""
    board: chess.Board = field(default_factory=chess.Board)
    graveyard: List[Optional[int]] = field(default_factory=list)

    def to_dict(self):
        return {"fen": self.board.fen(), "graveyard": list(self.graveyard)}

    @classmethod
    def from_dict(cls, data):
        try:
            board = chess.Board(data["fen"])
            graveyard = [None if c is None else int(c) for c in data.get("graveyard") or []]
        except (KeyError, TypeError, ValueError) as e:
            raise StateError(f"invalid game state: {e}") from e
        return cls(board, graveyard)


def default_state_path():
    """$CHESS_ARM_DATA/state.json, or ./state.json when the variable is unset."""
    return Path(os.environ.get(config.STATE_DIR_ENV, ".")) / config.STATE_FILE_NAME


class GameStateStore:
    """Reads and writes one GameState file."""

    def __init__(self, path=None):
        self.path = Path(path) if path is not None else default_state_path()

    def load(self) -> GameState:
        """A missing file is a new game."""
        logger.info("[STATE] state file: %s", self.path)
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return GameState()
        except (OSError, json.JSONDecodeError) as e:
            raise StateError(f"can't read {self.path}: {e}") from e
        return GameState.from_dict(data)

    def save(self, state: GameState):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2)
        logger.debug("[STATE] saved %s", state.board.fen())

    def wipe(self):
        """Forget the current game. Wiping twice is fine."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        logger.info("[STATE] %s removed", self.path)
