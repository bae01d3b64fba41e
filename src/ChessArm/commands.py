"""
Commands accepted by a ChessSession.

Payloads come in as plain dicts (JSON from whoever drives the arm) and are
decoded once, here, into one of the command classes below.
"""

from dataclasses import dataclass

from .errors import CommandError


@dataclass(frozen=True)
class MoveCommand:
    """Move a piece between two positions, count times back and forth."""
    from_square: str
    to_square: str
    count: int = 1


@dataclass(frozen=True)
class PlayCommand:
    """Catch up with the opponent's move, then play count engine moves."""
    count: int = 1


@dataclass(frozen=True)
class ResetCommand:
    pass


@dataclass(frozen=True)
class WipeCommand:
    pass


@dataclass(frozen=True)
class CenterCommand:
    pass


@dataclass(frozen=True)
class SkillCommand:
    value: float


def _as_int(value, name):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise CommandError(f"{name} must be an integer, got {value!r}") from None


def decode_command(payload):
    """
    Args:
        payload: dict such as {"move": {"from": "e2", "to": "e4", "n": 1}},
            {"go": 1}, {"reset": true}, {"wipe": true}, {"center": true} or
            {"skill": 30}.

    Returns:
        the matching command object.

    Raises:
        CommandError for anything else.
    """
    if not isinstance(payload, dict):
        raise CommandError(f"command must be an object, got {type(payload).__name__}")

    if "move" in payload:
        move = payload["move"]
        if not isinstance(move, dict) or not move.get("from") or not move.get("to"):
            raise CommandError(f"move needs 'from' and 'to': {move!r}")
        count = _as_int(move.get("n") or 1, "n")
        return MoveCommand(str(move["from"]), str(move["to"]), max(count, 1))

    if "go" in payload:
        count = _as_int(payload["go"], "go")
        if count > 0:
            return PlayCommand(count)

    if payload.get("reset"):
        return ResetCommand()

    if payload.get("wipe"):
        return WipeCommand()

    if payload.get("center"):
        return CenterCommand()

    if "skill" in payload:
        try:
            value = float(payload["skill"])
        except (TypeError, ValueError):
            raise CommandError(f"skill must be a number, got {payload['skill']!r}") from None
        return SkillCommand(value)

    raise CommandError(f"unknown command {payload!r}")
