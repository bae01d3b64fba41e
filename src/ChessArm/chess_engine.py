import logging

import chess
import chess.engine

from . import config
from .errors import GameOverError

logger = logging.getLogger(__name__)


def time_multiplier(skill):
    """Skill 50 is the nominal budget, lower skills think less, higher more."""
    if skill < 50:
        return skill / 50.0
    if skill > 50:
        return (skill - 50) * 2.0
    return 1.0


class EnginePlayer:
    """
    Picks the arm's moves with a UCI engine (Stockfish).

    Without an engine the first legal move is played, which is enough to
    exercise the arm.
    """

    def __init__(self, engine: chess.engine.SimpleEngine = None,
                 engine_millis=config.ENGINE_MILLIS, skill=config.DEFAULT_SKILL):
        self.engine = engine
        self.engine_millis = engine_millis
        self.skill = skill

    @classmethod
    def open(cls, path=config.ENGINE_PATH, **kwargs):
        engine = chess.engine.SimpleEngine.popen_uci(path)
        logger.info("[ENGINE] %s started", path)
        return cls(engine, **kwargs)

    def close(self):
        if self.engine is not None:
            self.engine.quit()
            self.engine = None

    def set_skill(self, skill):
        self.skill = skill

    def time_limit(self):
        multiplier = time_multiplier(self.skill)
        logger.info("[ENGINE] skill %s -> time multiplier %.2f", self.skill, multiplier)
        return self.engine_millis * multiplier / 1000.0

    def pick_move(self, board: chess.Board) -> chess.Move:
        if not board.legal_moves:
            raise GameOverError(f"no legal move in {board.fen()}, result {board.result()}")

        if self.engine is None:
            return next(iter(board.legal_moves))

        result = self.engine.play(board, chess.engine.Limit(time=self.time_limit()))
        if result.move is None:
            raise GameOverError(f"engine returned no move for {board.fen()}")
        return result.move
