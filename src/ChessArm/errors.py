"""
Exceptions raised by the chess arm.

Every failure that stops a command derives from ChessArmError so the session
can report it to the caller, and the families below let the caller decide
what to do next (re-capture, fix the board by hand, check the arm...).
"""


class ChessArmError(RuntimeError):
    """Base class for every error raised by the ChessArm package."""


# ─────────────────────────────────────────────────────────────────────────────
# Vision / geometry
# ─────────────────────────────────────────────────────────────────────────────

class VisionError(ChessArmError):
    """No usable camera frame, corners or intrinsics for this capture."""


class GeometryError(ChessArmError):
    """The board corners describe a degenerate projective configuration."""


class SingularHomographyError(GeometryError):
    """The 4-point correspondence system has a zero pivot."""


class DegenerateProjectionError(GeometryError):
    """A point mapped to a zero homogeneous weight."""


# ─────────────────────────────────────────────────────────────────────────────
# Logic
# ─────────────────────────────────────────────────────────────────────────────

class BoardConsistencyError(ChessArmError):
    """The physical board disagrees with the logical position."""

    def __init__(self, message, squares=None):
        super().__init__(message)
        self.squares = list(squares or [])


class UnsupportedMoveError(ChessArmError):
    """A legal move the arm does not know how to play (en passant)."""


class GameOverError(ChessArmError):
    """The game is over, there is no move left to play."""


class StateError(ChessArmError):
    """The persisted game state can't be read."""


class CommandError(ChessArmError):
    """A command payload that matches no known command."""


# ─────────────────────────────────────────────────────────────────────────────
# Hardware
# ─────────────────────────────────────────────────────────────────────────────

class ActuationError(ChessArmError):
    """A motion or gripper command failed."""


class GrabError(ActuationError):
    """The gripper never held the piece before reaching the height floor."""

    def __init__(self, message, square=None, last_z=None):
        super().__init__(message)
        self.square = square
        self.last_z = last_z


class OperationCancelled(ChessArmError):
    """The caller asked to stop; raised at the next step boundary."""
