import random

from taixiu.config import Tuning
from taixiu.core.history import RoundRecord
from taixiu.core.labels import TAI, XIU
from taixiu.engine.learning import blend_transitions, verify
from taixiu.engine.reversal import ReversalMachine
from taixiu.engine.state import LearningStore, LedgerEntry, PatternLearningState, PredictionLedger, StreakState


def machine(store):
    return ReversalMachine(store.reversal, store.streak, store.tuning.reversal_threshold)


def test_weight_needs_five_samples(tuning):
    st = PatternLearningState(weight=1.0)
    for _ in range(4):
        st.record(True, tuning)
    assert st.weight == 1.0
    st.record(True, tuning)
    assert abs(st.weight - 1.05) < 1e-9
    assert st.accuracy == 1.0 and st.total == 5


def test_weight_bounds_hold(tuning):
    rng = random.Random(11)
    st = PatternLearningState(weight=1.3)
    for _ in range(2000):
        st.record(rng.random() < 0.5, tuning)
        assert 0.3 <= st.weight <= 2.0
    up = PatternLearningState(weight=1.9)
    for _ in range(100):
        up.record(True, tuning)
    assert up.weight == 2.0
    down = PatternLearningState(weight=0.5)
    for _ in range(100):
        down.record(False, tuning)
    assert down.weight == 0.3
    assert down.samples == tuning.rolling_window


def test_default_weights_are_clamped():
    s = LearningStore(Tuning(weight_max=1.2))
    assert s.pattern('markov_chain').weight == 1.2
    assert s.pattern('unknown_pattern').weight == 1.0
    assert 'never_seen' not in s.patterns and s.peek('never_seen').weight == 1.0


def test_streak_sign_flip_resets_to_one():
    s = StreakState()
    for ok in (True, True, True):
        s.record(ok)
    assert s.current == 3
    s.record(False)
    assert s.current == -1
    s.record(False)
    s.record(True)
    assert s.current == 1
    assert s.best == 3 and s.worst == -2 and s.wins == 4 and s.losses == 2


def test_ledger_cap_and_lookup():
    ledger = PredictionLedger(size=3)
    for rid in range(1, 6):
        ledger.append(LedgerEntry(round_id=rid, prediction=TAI, confidence=60))
    assert [e.round_id for e in ledger] == [5, 4, 3]
    assert ledger.get(1) is None and ledger.get(4).round_id == 4


def test_verify_is_idempotent(store):
    ledger = PredictionLedger()
    ledger.append(LedgerEntry(round_id=2, prediction=TAI, confidence=60, pattern_ids=['cau_bet', 'cau_bet']))
    rounds = [RoundRecord.from_dice(2, 6, 5, 4), RoundRecord.from_dice(1, 1, 1, 1)]
    rev = machine(store)

    first = verify(store, ledger, rev, rounds)
    assert [e.round_id for e in first] == [2]
    assert ledger.get(2).correct is True and ledger.get(2).actual == TAI
    assert store.total_predictions == 1 and store.streak.current == 1
    assert store.pattern('cau_bet').total == 1  # duplicate ids count once

    assert verify(store, ledger, rev, rounds) == []
    assert not ledger.get(2).resolve(XIU)
    assert store.total_predictions == 1 and store.correct_predictions == 1
    assert store.streak.wins == 1 and store.recent_accuracy == [1]


def test_verify_without_match_is_noop(store):
    ledger = PredictionLedger()
    ledger.append(LedgerEntry(round_id=9, prediction=TAI, confidence=60))
    assert verify(store, ledger, machine(store), [RoundRecord.from_dice(5, 1, 2, 3)]) == []
    assert store.total_predictions == 0 and not ledger.get(9).verified


def test_reversal_cycle(store):
    rev = machine(store)
    for _ in range(2):
        store.streak.record(False)
        rev.on_result(False)
    assert not store.reversal.active
    assert rev.apply(TAI).prediction == TAI

    store.streak.record(False)
    rev.on_result(False)
    assert store.reversal.active and store.reversal.reversal_count == 1
    out = rev.apply(TAI)
    assert out.reversed and out.prediction == XIU and out.original_prediction == TAI
    assert out.label == 'Auto-Reversal (TAI → XIU)'

    store.streak.record(True)
    rev.on_result(True)
    assert not store.reversal.active
    assert store.reversal.last_result == 'success' and store.reversal.consecutive_losses == 0
    assert rev.apply(XIU).prediction == XIU


def test_transitions_blend_once_per_round_id(store):
    rounds = [RoundRecord.from_dice(2, 6, 6, 6), RoundRecord.from_dice(1, 6, 6, 6)]
    assert blend_transitions(store, rounds)
    assert not blend_transitions(store, rounds)
    assert store.transitions.batches == 1 and store.last_round_id == 2
