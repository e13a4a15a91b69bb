from __future__ import annotations

from dataclasses import dataclass

from taixiu.core.history import utcnow
from taixiu.core.labels import opposite
from taixiu.engine.state import ReversalState, StreakState
from taixiu.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Reversal:
    prediction: str
    reversed: bool
    original_prediction: str | None = None

    @property
    def label(self) -> str | None:
        if not self.reversed:
            return None
        return f'Auto-Reversal ({self.original_prediction} → {self.prediction})'


class ReversalMachine:
    """Normal <-> Reversed, driven by the losing streak.

    Never looks at votes or weights; it only decides whether the emitted class
    is inverted.
    """

    def __init__(self, state: ReversalState, streak: StreakState, threshold: int = 3):
        self.state = state
        self.streak = streak
        self.threshold = threshold

    def maybe_activate(self) -> bool:
        if self.state.active or self.streak.current > -self.threshold:
            return False
        self.state.active = True
        self.state.activated_at = utcnow()
        self.state.reversal_count += 1
        logger.warning("reversal_activated", streak=self.streak.current, count=self.state.reversal_count)
        return True

    def on_result(self, correct: bool):
        """Feed one verified outcome; a win while reversed ends the reversal."""
        if correct:
            if self.state.active:
                self.state.active = False
                self.state.last_result = 'success'
                logger.info("reversal_deactivated", reversal_count=self.state.reversal_count)
            self.state.consecutive_losses = 0
        else:
            self.state.consecutive_losses += 1
        self.maybe_activate()

    def apply(self, prediction: str) -> Reversal:
        self.maybe_activate()
        if not self.state.active:
            return Reversal(prediction, False)
        flipped = opposite(prediction)
        logger.info("reversal_applied", original=prediction, reversed=flipped)
        return Reversal(flipped, True, prediction)
