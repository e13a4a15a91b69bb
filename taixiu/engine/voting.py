from __future__ import annotations

import random
from dataclasses import dataclass, field

from taixiu.analytics.stats import round_half_up
from taixiu.config import Tuning
from taixiu.core.labels import TAI, XIU, opposite
from taixiu.detectors.base import PatternVote
from taixiu.engine.state import LearningStore, clamp

TOP_N = 3
BASE_CONFIDENCE = 50


@dataclass
class Decision:
    prediction: str
    confidence: int
    raw_prediction: str
    scores: dict[str, float]
    counts: dict[str, int]
    votes: list[PatternVote] = field(default_factory=list)
    adjustment: str | None = None
    adaptive_boost: int = 0

    @property
    def labels(self) -> list[str]:
        return [v.label for v in self.votes]

    @property
    def pattern_ids(self) -> list[str]:
        return [v.pattern_id for v in self.votes]

    @property
    def top(self) -> PatternVote | None:
        return self.votes[0] if self.votes else None


def rank(votes: list[PatternVote]) -> list[PatternVote]:
    return sorted(votes, key=lambda v: (-v.priority, -v.confidence))


def smart_adjustment(prediction: str, ranked: list[PatternVote], store: LearningStore) -> tuple[str, str | None]:
    """Second opinion from the streak and the top votes' own track records.

    Returns (prediction, reason) where reason is None when nothing changed.
    """
    t = store.tuning
    if t.deep_loss_streak > 0 and store.streak.current <= -t.deep_loss_streak:
        return opposite(prediction), f'deep_loss_streak({store.streak.current})'

    score = {TAI: 0.0, XIU: 0.0}
    for v in ranked[:TOP_N]:
        st = store.peek(v.pattern_id)
        if st.samples >= t.min_samples:
            score[v.prediction] += st.rolling_accuracy * st.weight
    if abs(score[TAI] - score[XIU]) > t.smart_margin:
        best = TAI if score[TAI] > score[XIU] else XIU
        if best != prediction:
            return best, f'track_record({score[TAI]:.2f}/{score[XIU]:.2f})'
    return prediction, None


def adaptive_boost(store: LearningStore) -> int:
    acc = store.recent_accuracy
    if len(acc) < 10:
        return 0
    a = sum(acc) / len(acc)
    if a > 0.65:
        return 5
    if a > 0.55:
        return 2
    if a < 0.4:
        return -5
    if a < 0.45:
        return -2
    return 0


def aggregate(votes: list[PatternVote], store: LearningStore, rng: random.Random | None = None) -> Decision:
    """Merge the bank's votes into one class and a confidence in [floor, ceiling].

    `votes` must be non-empty; the bank's fallback guarantees that.
    """
    t: Tuning = store.tuning
    ranked = rank(votes)
    scores = {TAI: 0.0, XIU: 0.0}
    counts = {TAI: 0, XIU: 0}
    for v in ranked:
        scores[v.prediction] += v.confidence * v.priority
        counts[v.prediction] += 1
    raw = TAI if scores[TAI] >= scores[XIU] else XIU

    pred, reason = smart_adjustment(raw, ranked, store)

    conf = float(BASE_CONFIDENCE)
    for v in ranked[:TOP_N]:
        if v.prediction == pred:
            conf += v.confidence
    conf += round_half_up(counts[pred] / len(ranked) * 10)
    boost = adaptive_boost(store)
    conf += boost
    if t.jitter > 0:
        conf += (rng or random).uniform(-t.jitter, t.jitter)
    final = int(clamp(round_half_up(conf), t.confidence_floor, t.confidence_ceiling))

    return Decision(
        prediction=pred,
        confidence=final,
        raw_prediction=raw,
        scores=scores,
        counts=counts,
        votes=ranked,
        adjustment=reason,
        adaptive_boost=boost,
    )
