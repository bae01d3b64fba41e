import unittest
import chess

from ChessArm import config
from ChessArm.errors import BoardConsistencyError, UnsupportedMoveError
from ChessArm.board_differ import (
    find_board_differences,
    infer_move,
    piece_color_code,
    CASTLE_ROOK_MOVES,
)


def occupancy_of(board):
    """What the camera would see for a logical board."""
    return {chess.square_name(sq): piece_color_code(board.piece_at(sq)) for sq in chess.SQUARES}


class TestBoardDiffer(unittest.TestCase):
    def test_no_difference(self):
        board = chess.Board()
        self.assertEqual(find_board_differences(board, occupancy_of(board)), [])
        self.assertIsNone(infer_move(board, occupancy_of(board)))

    def test_simple_move(self):
        board = chess.Board("4k3/8/8/8/8/8/8/4R2K w - - 0 1")
        seen = occupancy_of(board)
        seen['e1'] = config.COLOR_EMPTY
        seen['e4'] = config.COLOR_WHITE
        self.assertEqual(infer_move(board, seen), chess.Move.from_uci("e1e4"))

    def test_opening_move_for_black(self):
        board = chess.Board()
        board.push_uci("e2e4")
        seen = occupancy_of(board)
        seen['c7'] = config.COLOR_EMPTY
        seen['c5'] = config.COLOR_BLACK
        self.assertEqual(infer_move(board, seen), chess.Move.from_uci("c7c5"))

    def test_capture(self):
        board = chess.Board()
        for uci in ["e2e4", "d7d5"]:
            board.push_uci(uci)
        seen = occupancy_of(board)
        seen['e4'] = config.COLOR_EMPTY
        seen['d5'] = config.COLOR_WHITE
        self.assertEqual(find_board_differences(board, seen), ['e4', 'd5'])
        self.assertEqual(infer_move(board, seen), chess.Move.from_uci("e4d5"))

    def test_promotion_defaults_to_queen(self):
        board = chess.Board("k7/4P3/8/8/8/8/8/7K w - - 0 1")
        seen = occupancy_of(board)
        seen['e7'] = config.COLOR_EMPTY
        seen['e8'] = config.COLOR_WHITE
        self.assertEqual(infer_move(board, seen), chess.Move.from_uci("e7e8q"))

    def test_illegal_move(self):
        board = chess.Board()
        seen = occupancy_of(board)
        seen['e2'] = config.COLOR_EMPTY
        seen['e5'] = config.COLOR_WHITE
        with self.assertRaises(BoardConsistencyError) as ctx:
            infer_move(board, seen)
        self.assertEqual(ctx.exception.squares, ['e2', 'e5'])

    def test_bad_number_of_differences(self):
        board = chess.Board()
        seen = occupancy_of(board)
        seen['e2'] = config.COLOR_EMPTY
        with self.assertRaises(BoardConsistencyError) as ctx:
            infer_move(board, seen)
        self.assertEqual(ctx.exception.squares, ['e2'])

        seen['e4'] = config.COLOR_WHITE
        seen['d4'] = config.COLOR_WHITE
        with self.assertRaises(BoardConsistencyError) as ctx:
            infer_move(board, seen)
        self.assertEqual(len(ctx.exception.squares), 3)

    def test_en_passant_is_rejected(self):
        board = chess.Board("4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 1")
        seen = occupancy_of(board)
        # black pawn on d5 not removed yet
        seen['e5'] = config.COLOR_EMPTY
        seen['d6'] = config.COLOR_WHITE
        with self.assertRaises(UnsupportedMoveError):
            infer_move(board, seen)

    def test_en_passant_played_on_the_board(self):
        board = chess.Board("4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 1")
        after = board.copy()
        after.push_uci("e5d6")
        seen = occupancy_of(after)
        self.assertEqual(find_board_differences(board, seen), ['d5', 'e5', 'd6'])
        with self.assertRaises(UnsupportedMoveError):
            infer_move(board, seen)

    def test_en_passant_for_black(self):
        board = chess.Board("4k3/8/8/8/3Pp3/8/8/4K3 b - d3 0 1")
        after = board.copy()
        after.push_uci("e4d3")
        with self.assertRaises(UnsupportedMoveError):
            infer_move(board, occupancy_of(after))

    def test_three_unrelated_differences(self):
        board = chess.Board("4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 1")
        seen = occupancy_of(board)
        seen['e5'] = config.COLOR_EMPTY
        seen['d5'] = config.COLOR_EMPTY
        # pawn shows up on the wrong square
        seen['f6'] = config.COLOR_WHITE
        with self.assertRaises(BoardConsistencyError):
            infer_move(board, seen)


class TestCastleDetection(unittest.TestCase):
    def castled(self, fen, king_move):
        board = chess.Board(fen)
        after = board.copy()
        after.push_uci(king_move)
        return board, occupancy_of(after)

    def test_white_king_side(self):
        board, seen = self.castled("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1", "e1g1")
        self.assertEqual(sorted(find_board_differences(board, seen)), ['e1', 'f1', 'g1', 'h1'])
        self.assertEqual(infer_move(board, seen), chess.Move.from_uci("e1g1"))

    def test_white_queen_side(self):
        board, seen = self.castled("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1", "e1c1")
        self.assertEqual(infer_move(board, seen), chess.Move.from_uci("e1c1"))

    def test_black_castles(self):
        fen = "r3k2r/8/8/8/8/8/8/R3K2R b KQkq - 0 1"
        board, seen = self.castled(fen, "e8g8")
        self.assertEqual(infer_move(board, seen), chess.Move.from_uci("e8g8"))
        board, seen = self.castled(fen, "e8c8")
        self.assertEqual(infer_move(board, seen), chess.Move.from_uci("e8c8"))

    def test_castle_without_rights(self):
        board = chess.Board("r3k2r/8/8/8/8/8/8/R3K2R w - - 0 1")
        seen = occupancy_of(board)
        seen['e1'] = config.COLOR_EMPTY
        seen['h1'] = config.COLOR_EMPTY
        seen['g1'] = config.COLOR_WHITE
        seen['f1'] = config.COLOR_WHITE
        with self.assertRaises(BoardConsistencyError):
            infer_move(board, seen)

    def test_four_unrelated_differences(self):
        board = chess.Board()
        seen = occupancy_of(board)
        for sq in ['a2', 'b2']:
            seen[sq] = config.COLOR_EMPTY
        for sq in ['a4', 'b4']:
            seen[sq] = config.COLOR_WHITE
        with self.assertRaises(BoardConsistencyError):
            infer_move(board, seen)

    def test_rook_moves(self):
        self.assertEqual(CASTLE_ROOK_MOVES["e1g1"], ("h1", "f1"))
        self.assertEqual(CASTLE_ROOK_MOVES["e1c1"], ("a1", "d1"))
        self.assertEqual(CASTLE_ROOK_MOVES["e8g8"], ("h8", "f8"))
        self.assertEqual(CASTLE_ROOK_MOVES["e8c8"], ("a8", "d8"))


if __name__ == '__main__':
    unittest.main()
