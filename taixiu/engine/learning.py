from __future__ import annotations

from typing import Sequence

from taixiu.core.history import RoundRecord, utcnow
from taixiu.engine.reversal import ReversalMachine
from taixiu.engine.state import LearningStore, LedgerEntry, PredictionLedger
from taixiu.utils.logger import get_logger

logger = get_logger(__name__)


def record_outcome(store: LearningStore, reversal: ReversalMachine, entry: LedgerEntry):
    """Fold one verified ledger entry into totals, streak, reversal and pattern weights."""
    correct = bool(entry.correct)
    store.total_predictions += 1
    if correct:
        store.correct_predictions += 1
    store.streak.record(correct)
    reversal.on_result(correct)
    store.push_accuracy(correct)
    for pid in dict.fromkeys(entry.pattern_ids):
        before = store.pattern(pid).weight
        after = store.pattern(pid).record(correct, store.tuning)
        if after != before:
            logger.debug("pattern_weight_adjusted", pattern=pid, weight=round(after, 4), previous=round(before, 4))


def verify(store: LearningStore, ledger: PredictionLedger, reversal: ReversalMachine,
           rounds: Sequence[RoundRecord]) -> list[LedgerEntry]:
    """Resolve every pending ledger entry whose round is present in `rounds`.

    Oldest entries are resolved first so the streak advances in round order.
    Returns the entries resolved by this call.
    """
    by_sid = {r.sid: r for r in rounds}
    resolved = []
    for entry in sorted(ledger.pending(), key=lambda e: e.round_id):
        rec = by_sid.get(entry.round_id)
        if rec is None:
            continue
        if not entry.resolve(rec.label):
            continue
        record_outcome(store, reversal, entry)
        resolved.append(entry)
        logger.info("prediction_verified", round_id=entry.round_id, prediction=entry.prediction,
                    actual=entry.actual, correct=entry.correct, streak=store.streak.current)
    if resolved:
        store.last_update = utcnow()
    return resolved


def blend_transitions(store: LearningStore, rounds: Sequence[RoundRecord]) -> bool:
    """Blend the window's transition counts once per new newest round id."""
    if not rounds:
        return False
    newest = rounds[0].sid
    if store.last_round_id == newest:
        return False
    store.transitions.blend([r.label for r in rounds])
    store.last_round_id = newest
    return True
