"""
One game session: the camera, the arm, the engine and the saved game, and
the commands that use them.

Commands run one at a time. Whatever happens, the arm is sent back to its
start pose when a command ends.
"""

import logging
import threading

import chess
import numpy as np

from . import config
from .board_differ import CASTLE_ROOK_MOVES, infer_move
from .commands import (CenterCommand, MoveCommand, PlayCommand, ResetCommand,
                       SkillCommand, WipeCommand, decode_command)
from .errors import CommandError, OperationCancelled, UnsupportedMoveError
from .move_executor import MoveExecutor, center_for
from .reset_planner import ResetPlanner

logger = logging.getLogger(__name__)


class ChessSession:
    """
    Args:
        piece_finder: PieceFinder (capture_all() -> BoardCapture).
        actuator: arm + gripper driver used by the MoveExecutor.
        frame_transform: camera -> world transform, also gives the gripper pose.
        store: GameStateStore.
        engine_player: EnginePlayer.
        executor: MoveExecutor, built from actuator and frame_transform if None.
        debug_path: where each capture writes its debug image, or None.
    """

    def __init__(self, piece_finder, actuator, frame_transform, store, engine_player,
                 executor=None, debug_path=None):
        self.piece_finder = piece_finder
        self.actuator = actuator
        self.frame_transform = frame_transform
        self.store = store
        self.engine_player = engine_player
        self.executor = executor or MoveExecutor(actuator, frame_transform)
        self.debug_path = debug_path
        self._lock = threading.Lock()
        self._cancel_event = None

    # ─── entry points ───

    def execute_payload(self, payload, cancel_event=None):
        return self.execute(decode_command(payload), cancel_event)

    def execute(self, command, cancel_event=None):
        """
        Run one command. A second caller waits for the first to finish.

        Returns:
            dict with the command result (may be empty).
        """
        with self._lock:
            self._cancel_event = cancel_event
            try:
                return self._dispatch(command)
            finally:
                self._cancel_event = None
                self._go_home_best_effort()

    def _dispatch(self, command):
        if isinstance(command, MoveCommand):
            return self.move(command.from_square, command.to_square, command.count)
        if isinstance(command, PlayCommand):
            return self.play(command.count)
        if isinstance(command, ResetCommand):
            return self.reset_board()
        if isinstance(command, WipeCommand):
            return self.wipe()
        if isinstance(command, CenterCommand):
            return self.center_camera()
        if isinstance(command, SkillCommand):
            return self.set_skill(command.value)
        raise CommandError(f"bad command {command!r}")

    # ─── helpers ───

    def _check_cancel(self):
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise OperationCancelled("command cancelled")

    def _go_home_best_effort(self):
        try:
            self.executor.go_home()
        except Exception as e:
            logger.warning("[SESSION] can't go home: %s", e)

    def _go_home(self):
        self._check_cancel()
        self.executor.go_home()

    def _capture(self):
        self._check_cancel()
        return self.piece_finder.capture_all(self.debug_path)

    def _move_piece(self, capture, from_pos, to_pos, state=None):
        self.executor.move_piece(capture, from_pos, to_pos, state, self._cancel_event)

    # ─── commands ───

    def move(self, from_square, to_square, count=1):
        """Move a piece count times, going back and forth. The game is not touched."""
        logger.info("[SESSION] move %s to %s (x%d)", from_square, to_square, count)
        for x in range(count):
            self._go_home()
            from_pos, to_pos = from_square, to_square
            if x % 2 == 1:
                from_pos, to_pos = to_pos, from_pos
            capture = self._capture()
            self._move_piece(capture, from_pos, to_pos)
        return {}

    def check_position_for_moves(self):
        """
        Apply the opponent's move seen on the board to the saved game.

        Returns:
            the move found, or None when the board matches the game.
        """
        state = self.store.load()
        capture = self._capture()
        move = infer_move(state.board, capture.occupancy())
        if move is None:
            return None
        state.board.push(move)
        self.store.save(state)
        return move

    def make_a_move(self):
        """Pick an engine move, play it with the arm and save the game."""
        self._go_home()

        state = self.store.load()
        move = self.engine_player.pick_move(state.board)
        if state.board.is_en_passant(move):
            raise UnsupportedMoveError(f"can't handle en passant ({move.uci()})")

        capture = self._capture()

        if state.board.is_castling(move):
            rook_from, rook_to = CASTLE_ROOK_MOVES[move.uci()]
            self._move_piece(capture, rook_from, rook_to)

        self._move_piece(capture, chess.square_name(move.from_square),
                         chess.square_name(move.to_square), state)

        state.board.push(move)
        self.store.save(state)
        logger.info("[SESSION] played %s", move.uci())
        return move

    def play(self, count=1):
        self.check_position_for_moves()
        move = None
        for _ in range(count):
            move = self.make_a_move()
        return {"move": move.uci()}

    def reset_board(self):
        """Put every piece back on its starting square, then forget the game."""
        state = self.store.load()
        planner = ResetPlanner(state.board, state.graveyard)
        while True:
            step = planner.next_move()
            if step is None:
                break
            self._go_home()
            capture = self._capture()
            self._move_piece(capture, *step)

        if not planner.is_done():
            logger.warning("[RESET] squares not restored: %s", planner.missing_pieces())
        self.store.wipe()
        return {}

    def wipe(self):
        self.store.wipe()
        return {}

    def center_camera(self):
        """
        Average the centers of the middle squares of ranks 1 and 8 and report
        how far the gripper is from that point.
        """
        self._go_home()
        capture = self._capture()

        total = np.zeros(3)
        for pos in config.CENTER_PROBE_SQUARES:
            total += center_for(capture, pos)
        board_center = total / len(config.CENTER_PROBE_SQUARES)

        gripper = self.frame_transform.gripper_position()
        offset = board_center[:2] - gripper[:2]
        logger.info("[CENTER] board center %s, gripper offset (%.1f, %.1f)",
                    board_center, offset[0], offset[1])
        return {"center": board_center.tolist(), "offset": offset.tolist()}

    def set_skill(self, value):
        if value > 0:
            self.engine_player.set_skill(value)
        return {"skill": self.engine_player.skill}
