"""
Pick-and-place of one piece.

A move is played as a sequence of gripper waypoints: travel above the piece
at the safe height, descend, grab (going a little lower after each miss),
lift, travel above the destination, descend, release, lift. A piece already
standing on the destination square is sent to the graveyard first.

Positions are either square names ("e4") or graveyard addresses: "-" is the
next free graveyard slot (or a fixed holding position when no game is
tracked) and "X<n>" is graveyard slot n.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum

import chess
import numpy as np

from . import config
from .errors import (BoardConsistencyError, CommandError, GrabError,
                     OperationCancelled, VisionError)
from .game_state import piece_to_code

logger = logging.getLogger(__name__)


class ExecutorState(Enum):
    IDLE = "IDLE"
    TRAVEL_ABOVE_FROM = "TRAVEL_ABOVE_FROM"
    DESCEND_FROM = "DESCEND_FROM"
    GRAB_ATTEMPT = "GRAB_ATTEMPT"
    LIFT_FROM = "LIFT_FROM"
    TRAVEL_ABOVE_TO = "TRAVEL_ABOVE_TO"
    DESCEND_TO = "DESCEND_TO"
    RELEASE = "RELEASE"
    LIFT_TO = "LIFT_TO"


@dataclass(frozen=True)
class Orientation:
    """Orientation vector of the tool (degrees for theta)."""
    ox: float
    oy: float
    oz: float
    theta: float


@dataclass(frozen=True)
class Waypoint:
    x: float
    y: float
    z: float
    orientation: Orientation


# ─────────────────────────────────────────────────────────────────────────────
# POSITIONS
# ─────────────────────────────────────────────────────────────────────────────

def orientation_for(x, y, theta,
                    tilt_x_limit=config.TILT_X_LIMIT, tilt_y_limit=config.TILT_Y_LIMIT):
    """
    Tool pointing down, tilted a little for targets far from the base so the
    wrist stays away from its joint limits.
    """
    ox = 0.0
    oy = 0.0
    if x > tilt_x_limit:
        ox = (x - tilt_x_limit) / 1000.0
    if y < tilt_y_limit:
        oy = (y - tilt_y_limit) / abs(tilt_y_limit)
        ox += 0.2
    return Orientation(ox, oy, -1.0, theta)


def is_graveyard_position(pos):
    return pos == "-" or pos.startswith("X")


def graveyard_index(pos):
    """ "X<n>" -> n """
    try:
        index = int(pos[1:])
    except ValueError:
        raise CommandError(f"bad graveyard slot ({pos})") from None
    if index < 0:
        raise CommandError(f"bad graveyard slot ({pos})")
    return index


def graveyard_position(capture, index,
                       spacing=config.GRAVEYARD_SPACING, z=config.GRAVEYARD_Z):
    """
    World position of graveyard slot index.

    Slots are packed in columns of 8 beside the a-file: slot k sits next to
    rank 8 - k % 8, 1 + k // 8 columns away from the board.
    """
    rank = config.GRID_SIZE - (index % config.GRID_SIZE)
    extent = 1 + (index // config.GRID_SIZE)
    name = f"a{rank}"
    anchor = capture.find_object(name)
    if anchor is None:
        raise VisionError(f"no object for {name}")
    cx, cy, _ = anchor.cloud.center()
    return np.array([cx, cy - extent * spacing, z])


def center_for(capture, pos, state=None):
    """
    World point to grab from / release at for a position.

    An empty square gives its centroid. An occupied one gives the middle of
    centroid and highest point, at the height of the highest point.
    """
    if pos == "-":
        if state is None:
            return np.array(config.HOLDING_POSITION, dtype=np.float64)
        return graveyard_position(capture, len(state.graveyard))

    if pos.startswith("X"):
        return graveyard_position(capture, graveyard_index(pos))

    obj = capture.find_object(pos)
    if obj is None:
        raise VisionError(f"can't find object for: {pos}")

    center = obj.cloud.center()
    if obj.label.endswith("-0"):
        return center

    high = obj.cloud.highest()
    return np.array([
        (center[0] + high[0]) / 2.0,
        (center[1] + high[1]) / 2.0,
        high[2],
    ])


# ─────────────────────────────────────────────────────────────────────────────
# EXECUTOR
# ─────────────────────────────────────────────────────────────────────────────

class MoveExecutor:
    """
    Drives the actuator through pick-and-place sequences.

    The actuator must provide move_to(waypoint), prepare_gripper() (open
    wide, also used to release), grab() -> bool, grip_confidence() -> float
    and go_home(). The frame transform gives the gripper theta used for every
    waypoint once the arm is home.
    """

    def __init__(
        self,
        actuator,
        frame_transform,
        safe_z=config.SAFE_Z,
        grab_step=config.GRAB_STEP,
        grab_floor_z=config.GRAB_FLOOR_Z,
        grip_confidence_min=config.GRIP_CONFIDENCE_MIN,
        grab_settle_s=config.GRAB_SETTLE_S,
        grab_retry_s=config.GRAB_RETRY_S,
        sleep=time.sleep
    ):
        self.actuator = actuator
        self.frame_transform = frame_transform
        self.safe_z = safe_z
        self.grab_step = grab_step
        self.grab_floor_z = grab_floor_z
        self.grip_confidence_min = grip_confidence_min
        self.grab_settle_s = grab_settle_s
        self.grab_retry_s = grab_retry_s
        self.sleep = sleep

        self.state = ExecutorState.IDLE
        self.start_theta = 0.0
        self.cancel_event = None

    # ─── helpers ───

    def _enter(self, state):
        if self.cancel_event is not None and self.cancel_event.is_set():
            self.state = ExecutorState.IDLE
            raise OperationCancelled(f"cancelled before {state.value}")
        logger.debug("[EXECUTOR] %s -> %s", self.state.value, state.value)
        self.state = state

    def _move_gripper(self, x, y, z):
        waypoint = Waypoint(x, y, z, orientation_for(x, y, self.start_theta))
        self.actuator.move_to(waypoint)

    def go_home(self):
        """Back to the start pose with the gripper open, remember its theta."""
        self.actuator.go_home()
        self.start_theta = self.frame_transform.gripper_theta()
        self.state = ExecutorState.IDLE

    def grab(self):
        """
        Close the gripper and check it holds something.

        The gripper may report a grab while its sensor says it closed on
        nothing; that counts as a miss.
        """
        got = self.actuator.grab()
        self.sleep(self.grab_settle_s)
        confidence = self.actuator.grip_confidence()
        logger.debug("[GRAB] grab=%s confidence=%.1f", got, confidence)
        if got and confidence < self.grip_confidence_min:
            logger.warning("[GRAB] gripper reports a grab but confidence is only %.1f", confidence)
            return False
        return got

    # ─── pick and place ───

    def _pick(self, capture, pos, state):
        center = center_for(capture, pos, state)
        use_z = center[2]

        self._enter(ExecutorState.TRAVEL_ABOVE_FROM)
        self.actuator.prepare_gripper()
        self._move_gripper(center[0], center[1], self.safe_z)

        while True:
            self._enter(ExecutorState.DESCEND_FROM)
            self._move_gripper(center[0], center[1], use_z)

            self._enter(ExecutorState.GRAB_ATTEMPT)
            if self.grab():
                break

            use_z -= self.grab_step
            if use_z < self.grab_floor_z:
                self.state = ExecutorState.IDLE
                raise GrabError(
                    f"couldn't grab {pos}, and scared to go lower than {self.grab_floor_z}",
                    square=pos, last_z=use_z + self.grab_step
                )

            logger.warning("[GRAB] didn't grab %s, trying again at z=%.1f", pos, use_z)
            self.actuator.prepare_gripper()
            self.sleep(self.grab_retry_s)

        self._enter(ExecutorState.LIFT_FROM)
        self._move_gripper(center[0], center[1], self.safe_z)
        return use_z

    def _place(self, capture, pos, state, use_z):
        center = center_for(capture, pos, state)

        self._enter(ExecutorState.TRAVEL_ABOVE_TO)
        self._move_gripper(center[0], center[1], self.safe_z)

        self._enter(ExecutorState.DESCEND_TO)
        self._move_gripper(center[0], center[1], use_z)

        self._enter(ExecutorState.RELEASE)
        self.actuator.prepare_gripper()

        self._enter(ExecutorState.LIFT_TO)
        self._move_gripper(center[0], center[1], self.safe_z)
        self.state = ExecutorState.IDLE

    def _pick_and_place(self, capture, from_pos, to_pos, state):
        logger.info("[EXECUTOR] moving piece %s -> %s", from_pos, to_pos)
        use_z = self._pick(capture, from_pos, state)
        # the piece is released at the height it was grabbed
        self._place(capture, to_pos, state, use_z)

    def move_piece(self, capture, from_pos, to_pos, state=None, cancel_event=None):
        """
        Move the piece at from_pos to to_pos.

        When to_pos is a square holding a piece, that piece goes to the next
        graveyard slot first. With a tracked game state its code is appended
        to the graveyard (the board itself is left to the caller).

        Args:
            capture: BoardCapture of the current board.
            from_pos, to_pos: square names, "-" or "X<n>".
            state: GameState to keep the graveyard in, or None.
            cancel_event: threading.Event checked between steps.

        Raises:
            VisionError, GrabError, OperationCancelled, ActuationError.
        """
        self.cancel_event = cancel_event
        pending = [(from_pos, to_pos)]
        captured_piece = None

        if not is_graveyard_position(to_pos):
            target = capture.find_object(to_pos)
            if target is None:
                raise VisionError(f"can't find object for: {to_pos}")
            if not target.is_empty:
                logger.info("[EXECUTOR] %s already has a piece (%s), will move it", to_pos, target.label)
                if state is not None:
                    captured_piece = state.board.piece_at(chess.parse_square(to_pos))
                    if captured_piece is None:
                        raise BoardConsistencyError(
                            f"{to_pos} is occupied on the board but empty in the game", [to_pos]
                        )
                pending.insert(0, (to_pos, "-"))

        for leg_from, leg_to in pending:
            self._pick_and_place(capture, leg_from, leg_to, state)
            if leg_to == "-" and state is not None and captured_piece is not None:
                state.graveyard.append(piece_to_code(captured_piece))
