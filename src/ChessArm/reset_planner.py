"""
Put the pieces back in the starting position, one pick-and-place at a time.
"""

import logging

import chess

from .game_state import piece_to_code

logger = logging.getLogger(__name__)


def graveyard_slot(index):
    return f"X{index}"


class ResetPlanner:
    """
    Plans the moves that restore the starting position.

    The planner works on its own copy of the board and of the graveyard and
    updates them as it hands out moves, so next_move() can be called until
    it returns None.

    Args:
        board: chess.Board as it stands on the table.
        graveyard: list of piece codes (None for slots already emptied).
    """

    def __init__(self, board: chess.Board, graveyard):
        self.pieces = dict(board.piece_map())
        self.graveyard = list(graveyard)
        self.target = chess.Board().piece_map()

    def _is_home(self, square):
        piece = self.pieces.get(square)
        return piece is not None and self.target.get(square) == piece

    def _fill_empty_square(self):
        for square, wanted in sorted(self.target.items()):
            if square in self.pieces:
                continue

            for source, piece in sorted(self.pieces.items()):
                if piece == wanted and not self._is_home(source):
                    self.pieces[square] = self.pieces.pop(source)
                    return chess.square_name(source), chess.square_name(square)

            wanted_code = piece_to_code(wanted)
            for index, code in enumerate(self.graveyard):
                if code == wanted_code:
                    self.graveyard[index] = None
                    self.pieces[square] = wanted
                    return graveyard_slot(index), chess.square_name(square)
        return None

    def _clear_wrong_square(self):
        for square, piece in sorted(self.pieces.items()):
            if self._is_home(square):
                continue
            slot = graveyard_slot(len(self.graveyard))
            self.graveyard.append(piece_to_code(self.pieces.pop(square)))
            return chess.square_name(square), slot
        return None

    def next_move(self):
        """
        Returns:
            (from, to) where each end is a square name or "X<n>", or None
            when nothing more can be done.
        """
        step = self._fill_empty_square() or self._clear_wrong_square()
        if step is not None:
            logger.info("[RESET] %s -> %s", *step)
        return step

    def is_done(self):
        return self.pieces == self.target

    def missing_pieces(self):
        """Home squares still not holding their starting piece."""
        missing = []
        for square, wanted in sorted(self.target.items()):
            if not self._is_home(square):
                missing.append((chess.square_name(square), wanted.symbol()))
        return missing
