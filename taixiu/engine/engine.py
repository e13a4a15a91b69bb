from __future__ import annotations

import asyncio
import random
from datetime import datetime
from typing import Any, Awaitable, Callable, Sequence

from pydantic import BaseModel, Field

from taixiu.config import Tuning
from taixiu.core.errors import SourceError
from taixiu.core.history import History, RoundRecord, dedupe_newest_first, utcnow
from taixiu.detectors.bank import BANK
from taixiu.detectors.base import DetectorBank, PatternVote
from taixiu.engine.learning import blend_transitions, verify
from taixiu.engine.reversal import ReversalMachine
from taixiu.engine.state import EngineSnapshot, LearningStore, LedgerEntry, PredictionLedger
from taixiu.engine.voting import aggregate, rank
from taixiu.utils.logger import get_logger

logger = get_logger(__name__)

Fetch = Callable[[], Awaitable[Sequence[RoundRecord]]]
Persist = Callable[[EngineSnapshot], Any]


class PredictionResult(BaseModel):
    round_id: int
    prediction: str
    confidence: int
    patterns: list[str] = Field(default_factory=list)
    reversed: bool = False
    original_prediction: str | None = None
    based_on: int | None = None
    ts: datetime = Field(default_factory=utcnow)
    analysis: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_entry(cls, entry: LedgerEntry) -> 'PredictionResult':
        return cls(
            round_id=entry.round_id,
            prediction=entry.prediction,
            confidence=entry.confidence,
            patterns=list(entry.patterns),
            reversed=entry.reversed,
            original_prediction=entry.original_prediction,
            based_on=entry.round_id - 1,
            ts=entry.ts,
        )


class PredictionEngine:
    """Two-phase cycle over a newest-first round list: resolve, then predict.

    `process` is synchronous and owns every state mutation. `run_cycle` wraps
    it for the async poller: one cycle at a time, callers that arrive while a
    cycle is in flight get the last prediction instead of queueing.
    """

    def __init__(self, tuning: Tuning | None = None, window: int = 50, rng: random.Random | None = None,
                 bank: DetectorBank = BANK, persist: Persist | None = None):
        self.tuning = tuning or Tuning()
        self.window = window
        self.rng = rng or random.Random()
        self.bank = bank
        self.persist = persist
        self.store = LearningStore(self.tuning)
        self.ledger = PredictionLedger(self.tuning.ledger_size)
        self.reversal = ReversalMachine(self.store.reversal, self.store.streak, self.tuning.reversal_threshold)
        self._latest: PredictionResult | None = None
        self._lock = asyncio.Lock()
        self._saves: set[asyncio.Task] = set()

    @property
    def latest(self) -> PredictionResult | None:
        return self._latest

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def history(self, rounds: Sequence[RoundRecord]) -> History:
        return History(rounds, window=self.window, transitions=self.store.transitions)

    def votes(self, rounds: Sequence[RoundRecord]) -> list[PatternVote]:
        """What the bank would say right now; read-only."""
        rounds = dedupe_newest_first(rounds)
        if not rounds:
            return []
        return rank(self.bank.evaluate(self.history(rounds), self.store))

    def process(self, rounds: Sequence[RoundRecord]) -> PredictionResult | None:
        rounds = dedupe_newest_first(rounds)
        if not rounds:
            return None
        latest = rounds[0]
        next_id = latest.sid + 1

        existing = self.ledger.get(next_id)
        if existing is not None:
            if self._latest is not None and self._latest.round_id == next_id:
                return self._latest
            return PredictionResult.from_entry(existing)

        # phase 1: resolve
        verify(self.store, self.ledger, self.reversal, rounds)
        blend_transitions(self.store, rounds[:self.window])

        # phase 2: predict
        h = self.history(rounds)
        decision = aggregate(self.bank.evaluate(h, self.store), self.store, self.rng)
        rev = self.reversal.apply(decision.prediction)
        patterns = decision.labels
        if rev.reversed:
            patterns = [rev.label] + patterns

        entry = LedgerEntry(
            round_id=next_id,
            prediction=rev.prediction,
            confidence=decision.confidence,
            patterns=patterns,
            pattern_ids=decision.pattern_ids,
            reversed=rev.reversed,
            original_prediction=rev.original_prediction,
        )
        self.ledger.append(entry)
        self.store.last_update = utcnow()

        top = decision.top
        result = PredictionResult.from_entry(entry)
        result.analysis = {
            'total_patterns': len(decision.votes),
            'tai_votes': decision.counts['TAI'],
            'xiu_votes': decision.counts['XIU'],
            'tai_score': decision.scores['TAI'],
            'xiu_score': decision.scores['XIU'],
            'top_pattern': top.label if top else None,
            'raw_prediction': decision.raw_prediction,
            'adjustment': decision.adjustment,
            'adaptive_boost': decision.adaptive_boost,
            'reversal': self.store.reversal.model_dump(mode='json'),
            'learning': self.learning_stats(),
        }
        self._latest = result
        logger.info("prediction_issued", round_id=next_id, prediction=rev.prediction,
                    confidence=decision.confidence, votes=len(decision.votes), reversed=rev.reversed)
        return result

    async def run_cycle(self, fetch: Fetch) -> PredictionResult | None:
        if self._lock.locked():
            logger.debug("cycle_in_flight")
            return self._latest
        async with self._lock:
            try:
                rounds = await fetch()
            except SourceError as e:
                logger.error("cycle_aborted", error=str(e))
                return None
            result = self.process(rounds)
        if result is not None and self.persist is not None:
            self.schedule_save()
        return result

    def schedule_save(self):
        snap = self.snapshot()
        task = asyncio.get_running_loop().create_task(self._save(snap))
        self._saves.add(task)
        task.add_done_callback(self._saves.discard)

    async def _save(self, snap: EngineSnapshot):
        try:
            await asyncio.to_thread(self.persist, snap)
        except Exception as e:  # the next cycle saves again
            logger.error("snapshot_save_failed", error=str(e))

    async def drain(self):
        """Wait for pending background saves."""
        if self._saves:
            await asyncio.gather(*list(self._saves), return_exceptions=True)

    def learning_stats(self) -> dict[str, Any]:
        s = self.store
        return {
            'total_predictions': s.total_predictions,
            'correct_predictions': s.correct_predictions,
            'accuracy': s.correct_predictions / s.total_predictions if s.total_predictions else None,
            'trailing_accuracy': s.trailing_accuracy(),
            'current_streak': s.streak.current,
            'best_streak': s.streak.best,
            'worst_streak': s.streak.worst,
            'wins': s.streak.wins,
            'losses': s.streak.losses,
        }

    def pattern_table(self) -> dict[str, dict[str, Any]]:
        out = {}
        for pid in self.bank.ids() + ([self.bank.fallback.pattern_id] if self.bank.fallback else []):
            st = self.store.peek(pid)
            out[pid] = {
                'weight': round(st.weight, 4),
                'total': st.total,
                'correct': st.correct,
                'accuracy': round(st.accuracy, 4),
                'rolling_accuracy': round(st.rolling_accuracy, 4),
                'samples': st.samples,
            }
        return out

    def snapshot(self) -> EngineSnapshot:
        s = self.store
        return EngineSnapshot(
            patterns={k: v.model_copy(deep=True) for k, v in s.patterns.items()},
            streak=s.streak.model_copy(),
            reversal=s.reversal.model_copy(),
            recent_accuracy=list(s.recent_accuracy),
            transitions=s.transitions.to_dict(),
            total_predictions=s.total_predictions,
            correct_predictions=s.correct_predictions,
            last_round_id=s.last_round_id,
            last_update=s.last_update,
            ledger=[e.model_copy() for e in self.ledger],
        )

    def restore(self, snap: EngineSnapshot):
        s = LearningStore(self.tuning)
        for pid, st in snap.patterns.items():
            st = st.model_copy(deep=True)
            st.weight = min(max(st.weight, self.tuning.weight_min), self.tuning.weight_max)
            s.patterns[pid] = st
        s.streak = snap.streak.model_copy()
        s.reversal = snap.reversal.model_copy()
        s.recent_accuracy = list(snap.recent_accuracy)[-self.tuning.accuracy_window:]
        s.transitions.load(snap.transitions)
        s.total_predictions = snap.total_predictions
        s.correct_predictions = snap.correct_predictions
        s.last_round_id = snap.last_round_id
        s.last_update = snap.last_update
        self.store = s
        self.ledger = PredictionLedger(self.tuning.ledger_size, [e.model_copy() for e in snap.ledger])
        self.reversal = ReversalMachine(s.reversal, s.streak, self.tuning.reversal_threshold)
        self._latest = PredictionResult.from_entry(self.ledger.entries[0]) if len(self.ledger) else None
        logger.info("engine_restored", patterns=len(s.patterns), ledger=len(self.ledger),
                    streak=s.streak.current, reversal_active=s.reversal.active)
