"""
Vision occupancy -> python-chess move.

The camera only tells empty / white / black per square, so the move played
on the physical board is found by comparing those colors with the ones the
logical position expects.
"""

import logging

import chess

from . import config
from .errors import BoardConsistencyError, UnsupportedMoveError

logger = logging.getLogger(__name__)

# squares touched by each castle -> the king move that explains them
CASTLE_FOOTPRINTS = {
    frozenset(["e1", "f1", "g1", "h1"]): "e1g1",
    frozenset(["e1", "a1", "c1", "d1"]): "e1c1",
    frozenset(["e8", "f8", "g8", "h8"]): "e8g8",
    frozenset(["e8", "a8", "c8", "d8"]): "e8c8",
}

# king move -> rook move the arm has to play as well
CASTLE_ROOK_MOVES = {
    "e1g1": ("h1", "f1"),
    "e1c1": ("a1", "d1"),
    "e8g8": ("h8", "f8"),
    "e8c8": ("a8", "d8"),
}


def piece_color_code(piece):
    """chess.Piece or None -> occupancy code."""
    if piece is None:
        return config.COLOR_EMPTY
    if piece.color == chess.WHITE:
        return config.COLOR_WHITE
    return config.COLOR_BLACK


def find_board_differences(board: chess.Board, occupancy):
    """
    Args:
        board: logical position.
        occupancy: {square name: color code} seen by the camera.

    Returns:
        list of square names whose observed color differs, in a1..h8 order.
    """
    differences = []
    for square in chess.SQUARES:
        name = chess.square_name(square)
        expected = piece_color_code(board.piece_at(square))
        observed = occupancy.get(name, config.COLOR_EMPTY)
        if expected != observed:
            differences.append(name)
    return differences


def _lookup_legal_move(board, from_square, to_square):
    """Plain move first, then promotions."""
    move = chess.Move(from_square, to_square)
    if move in board.legal_moves:
        return move
    for promotion in [chess.QUEEN, chess.ROOK, chess.BISHOP, chess.KNIGHT]:
        move_promo = chess.Move(from_square, to_square, promotion)
        if move_promo in board.legal_moves:
            return move_promo
    return None


def _find_en_passant(board, occupancy, differences):
    """Legal en passant capture that explains the three differing squares."""
    mover = piece_color_code(chess.Piece(chess.PAWN, board.turn))
    for move in board.legal_moves:
        if not board.is_en_passant(move):
            continue
        captured = move.to_square - 8 if board.turn == chess.WHITE else move.to_square + 8
        touched = {chess.square_name(sq) for sq in (move.from_square, move.to_square, captured)}
        if touched != set(differences):
            continue
        seen = [occupancy.get(chess.square_name(sq), config.COLOR_EMPTY)
                for sq in (move.from_square, move.to_square, captured)]
        if seen == [config.COLOR_EMPTY, mover, config.COLOR_EMPTY]:
            return move
    return None


def infer_move(board: chess.Board, occupancy):
    """
    Find the move that turns the logical position into what the camera sees.

    Returns:
        chess.Move, or None when the board matches the position.

    Raises:
        BoardConsistencyError when no single move (or castle) explains the
        differences; UnsupportedMoveError for en passant.
    """
    differences = find_board_differences(board, occupancy)
    if not differences:
        return None

    logger.info("[DIFF] differences: %s", differences)

    if len(differences) == 2:
        a, b = differences
        if occupancy.get(a, config.COLOR_EMPTY) == config.COLOR_EMPTY:
            from_name, to_name = a, b
        else:
            from_name, to_name = b, a

        move = _lookup_legal_move(board, chess.parse_square(from_name), chess.parse_square(to_name))
        if move is None:
            raise BoardConsistencyError(
                f"no legal move from {from_name} to {to_name}", differences
            )
        if board.is_en_passant(move):
            raise UnsupportedMoveError(f"en passant ({move.uci()}) is not supported")
        logger.info("[DIFF] move detected: %s", move.uci())
        return move

    if len(differences) == 4:
        uci = CASTLE_FOOTPRINTS.get(frozenset(differences))
        if uci is not None:
            move = chess.Move.from_uci(uci)
            if move not in board.legal_moves:
                raise BoardConsistencyError(f"castle {uci} is not legal here", differences)
            logger.info("[DIFF] castle detected: %s", uci)
            return move

    if len(differences) == 3:
        move = _find_en_passant(board, occupancy, differences)
        if move is not None:
            raise UnsupportedMoveError(f"en passant ({move.uci()}) is not supported")

    raise BoardConsistencyError(
        f"can't explain {len(differences)} differing squares", differences
    )
