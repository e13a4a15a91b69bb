from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterator

from taixiu.analytics.stats import round_half_up
from taixiu.core.history import History
from taixiu.engine.state import LearningStore, PatternLearningState


@dataclass(frozen=True)
class Signal:
    """What a detector returns when it fires; confidence is pre-weight."""
    prediction: str
    confidence: float
    label: str
    detail: dict = field(default_factory=dict)


@dataclass(frozen=True)
class PatternVote:
    pattern_id: str
    prediction: str
    confidence: int
    raw_confidence: float
    priority: int
    label: str
    family: str = ''
    detail: dict = field(default_factory=dict)


DetectFn = Callable[[History, PatternLearningState], 'Signal | None']


@dataclass(frozen=True)
class Detector:
    pattern_id: str
    family: str
    priority: int
    min_rounds: int
    fn: DetectFn

    def __call__(self, h: History, stats: PatternLearningState) -> Signal | None:
        if len(h) < self.min_rounds:
            return None
        return self.fn(h, stats)

    def vote(self, sig: Signal, weight: float) -> PatternVote:
        return PatternVote(
            pattern_id=self.pattern_id,
            prediction=sig.prediction,
            confidence=round_half_up(sig.confidence * weight),
            raw_confidence=sig.confidence,
            priority=self.priority,
            label=sig.label,
            family=self.family,
            detail=sig.detail,
        )


class DetectorBank:
    """Ordered registry of detectors plus the one fallback that always fires."""

    def __init__(self):
        self._detectors: list[Detector] = []
        self.fallback: Detector | None = None

    def register(self, pattern_id: str, family: str, priority: int, min_rounds: int = 1,
                 fallback: bool = False):
        def deco(fn: DetectFn) -> DetectFn:
            det = Detector(pattern_id, family, priority, min_rounds, fn)
            if fallback:
                self.fallback = det
            else:
                self._detectors.append(det)
            return fn
        return deco

    def __iter__(self) -> Iterator[Detector]:
        return iter(self._detectors)

    def __len__(self) -> int:
        return len(self._detectors)

    def ids(self) -> list[str]:
        return [d.pattern_id for d in self._detectors]

    def evaluate(self, h: History, store: LearningStore) -> list[PatternVote]:
        votes = []
        for det in self._detectors:
            stats = store.peek(det.pattern_id)
            sig = det(h, stats)
            if sig is not None:
                votes.append(det.vote(sig, stats.weight))
        if not votes and self.fallback is not None:
            stats = store.peek(self.fallback.pattern_id)
            sig = self.fallback.fn(h, stats)
            votes.append(self.fallback.vote(sig, stats.weight))
        return votes


BANK = DetectorBank()
register = BANK.register
