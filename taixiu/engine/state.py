from __future__ import annotations

from datetime import datetime
from typing import Iterator

from pydantic import BaseModel, Field

from taixiu.analytics.markov import TransitionModel
from taixiu.config import Tuning
from taixiu.core.history import utcnow

# Starting multiplier for each pattern id; unknown ids start at 1.0.
DEFAULT_PATTERN_WEIGHTS: dict[str, float] = {
    'cau_bet': 1.3,
    'cau_dao_11': 1.2,
    'cau_22': 1.15,
    'cau_33': 1.2,
    'cau_44': 1.2,
    'cau_55': 1.25,
    'cau_121': 1.1,
    'cau_123': 1.1,
    'cau_321': 1.1,
    'cau_212': 1.1,
    'cau_1221': 1.15,
    'cau_2112': 1.15,
    'cau_nhay_coc': 1.0,
    'cau_nhip_nghieng': 1.15,
    'cau_3van1': 1.2,
    'cau_be_cau': 1.25,
    'cau_chu_ky': 1.1,
    'cau_gap': 1.1,
    'cau_ziczac': 1.2,
    'cau_doi': 1.15,
    'cau_rong': 1.3,
    'cau_tu_nhien': 0.8,
    'smart_bet': 1.2,
    'distribution': 0.9,
    'dice_pattern': 1.0,
    'sum_trend': 1.05,
    'edge_cases': 1.1,
    'momentum': 1.15,
    'short_momentum': 1.0,
    'dice_trend_line': 1.2,
    'break_pattern': 1.3,
    'day_gay': 1.25,
    'fibonacci': 1.0,
    'golden_ratio': 1.0,
    'resistance_support': 1.15,
    'wave': 1.1,
    'markov_chain': 1.35,
    'moving_avg_drift': 1.2,
    'sum_pressure': 1.25,
    'volatility': 1.15,
    'sun_hot_cold': 1.3,
    'sun_streak_break': 1.35,
    'sun_balance': 1.2,
    'sun_momentum_shift': 1.25,
}


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


class PatternLearningState(BaseModel):
    total: int = 0
    correct: int = 0
    accuracy: float = 0.5
    recent: list[int] = Field(default_factory=list)
    weight: float = 1.0
    last_adjustment: datetime | None = None

    @property
    def samples(self) -> int:
        return len(self.recent)

    @property
    def rolling_accuracy(self) -> float:
        if not self.recent:
            return 0.5
        return sum(self.recent) / len(self.recent)

    def record(self, correct: bool, tuning: Tuning) -> float:
        """Count one verified outcome and re-derive the weight. Returns the new weight."""
        self.total += 1
        if correct:
            self.correct += 1
        self.recent.append(1 if correct else 0)
        if len(self.recent) > tuning.rolling_window:
            del self.recent[:-tuning.rolling_window]
        self.accuracy = self.correct / self.total

        w = self.weight
        if self.samples >= tuning.min_samples:
            acc = self.rolling_accuracy
            if acc > tuning.grow_above:
                w = w * tuning.weight_growth
            elif acc < tuning.shrink_below:
                w = w * tuning.weight_decay
        self.weight = clamp(w, tuning.weight_min, tuning.weight_max)
        self.last_adjustment = utcnow()
        return self.weight


class StreakState(BaseModel):
    wins: int = 0
    losses: int = 0
    current: int = 0
    best: int = 0
    worst: int = 0

    def record(self, correct: bool):
        if correct:
            self.wins += 1
            self.current = self.current + 1 if self.current >= 0 else 1
            self.best = max(self.best, self.current)
        else:
            self.losses += 1
            self.current = self.current - 1 if self.current <= 0 else -1
            self.worst = min(self.worst, self.current)


class ReversalState(BaseModel):
    active: bool = False
    activated_at: datetime | None = None
    consecutive_losses: int = 0
    reversal_count: int = 0
    last_result: str | None = None


class LedgerEntry(BaseModel):
    round_id: int
    prediction: str
    confidence: int
    patterns: list[str] = Field(default_factory=list)
    pattern_ids: list[str] = Field(default_factory=list)
    ts: datetime = Field(default_factory=utcnow)
    reversed: bool = False
    original_prediction: str | None = None
    verified: bool = False
    actual: str | None = None
    correct: bool | None = None
    resolved_ts: datetime | None = None

    def resolve(self, actual: str) -> bool:
        """unverified -> verified, once. Returns False when already verified."""
        if self.verified:
            return False
        self.verified = True
        self.actual = actual
        self.correct = self.prediction == actual
        self.resolved_ts = utcnow()
        return True


class PredictionLedger:
    """Newest-first list of issued predictions, capped at `size`."""

    def __init__(self, size: int = 500, entries: list[LedgerEntry] | None = None):
        self.size = size
        self.entries: list[LedgerEntry] = list(entries or [])[:size]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[LedgerEntry]:
        return iter(self.entries)

    def append(self, entry: LedgerEntry):
        self.entries.insert(0, entry)
        if len(self.entries) > self.size:
            del self.entries[self.size:]

    def get(self, round_id: int) -> LedgerEntry | None:
        for e in self.entries:
            if e.round_id == round_id:
                return e
        return None

    def pending(self) -> list[LedgerEntry]:
        return [e for e in self.entries if not e.verified]


class LearningStore:
    """Every piece of state the learning loop owns, keyed where it needs to be."""

    def __init__(self, tuning: Tuning | None = None):
        self.tuning = tuning or Tuning()
        self.patterns: dict[str, PatternLearningState] = {}
        self.streak = StreakState()
        self.reversal = ReversalState()
        self.recent_accuracy: list[int] = []
        self.transitions = TransitionModel(decay=self.tuning.markov_decay, margin=self.tuning.markov_margin)
        self.total_predictions = 0
        self.correct_predictions = 0
        self.last_round_id: int | None = None
        self.last_update: datetime | None = None

    def pattern(self, pattern_id: str) -> PatternLearningState:
        st = self.patterns.get(pattern_id)
        if st is None:
            w = DEFAULT_PATTERN_WEIGHTS.get(pattern_id, 1.0)
            st = PatternLearningState(weight=clamp(w, self.tuning.weight_min, self.tuning.weight_max))
            self.patterns[pattern_id] = st
        return st

    def peek(self, pattern_id: str) -> PatternLearningState:
        """Like `pattern` but never inserts; detectors read through this."""
        st = self.patterns.get(pattern_id)
        if st is not None:
            return st
        w = DEFAULT_PATTERN_WEIGHTS.get(pattern_id, 1.0)
        return PatternLearningState(weight=clamp(w, self.tuning.weight_min, self.tuning.weight_max))

    def weight(self, pattern_id: str) -> float:
        return self.peek(pattern_id).weight

    def push_accuracy(self, correct: bool):
        self.recent_accuracy.append(1 if correct else 0)
        if len(self.recent_accuracy) > self.tuning.accuracy_window:
            del self.recent_accuracy[:-self.tuning.accuracy_window]

    def trailing_accuracy(self) -> float | None:
        if not self.recent_accuracy:
            return None
        return sum(self.recent_accuracy) / len(self.recent_accuracy)


class EngineSnapshot(BaseModel):
    patterns: dict[str, PatternLearningState] = Field(default_factory=dict)
    streak: StreakState = Field(default_factory=StreakState)
    reversal: ReversalState = Field(default_factory=ReversalState)
    recent_accuracy: list[int] = Field(default_factory=list)
    transitions: dict[str, float] = Field(default_factory=dict)
    total_predictions: int = 0
    correct_predictions: int = 0
    last_round_id: int | None = None
    last_update: datetime | None = None
    ledger: list[LedgerEntry] = Field(default_factory=list)
