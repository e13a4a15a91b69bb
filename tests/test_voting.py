import random

from taixiu.config import Tuning
from taixiu.core.labels import TAI, XIU
from taixiu.detectors.base import PatternVote
from taixiu.engine.state import LearningStore
from taixiu.engine.voting import adaptive_boost, aggregate


def vote(pid, pred, conf, prio):
    return PatternVote(pattern_id=pid, prediction=pred, confidence=conf, raw_confidence=conf, priority=prio,
                       label=pid)


def test_tie_goes_to_tai(store):
    d = aggregate([vote('a', TAI, 10, 5), vote('b', XIU, 10, 5)], store)
    assert d.prediction == TAI and d.raw_prediction == TAI
    # 50 + 10 (agreeing top vote) + round(10 * 1/2)
    assert d.confidence == 65


def test_votes_sorted_by_priority_then_confidence(store):
    d = aggregate([vote('a', XIU, 5, 3), vote('b', TAI, 9, 8), vote('c', TAI, 12, 8)], store)
    assert [v.pattern_id for v in d.votes] == ['c', 'b', 'a']
    assert d.scores == {TAI: 9 * 8 + 12 * 8, XIU: 15}
    assert d.counts == {TAI: 2, XIU: 1}


def test_confidence_is_clamped(store):
    d = aggregate([vote('a', TAI, 40, 9), vote('b', TAI, 40, 9)], store)
    assert d.confidence == 85
    store.recent_accuracy = [0] * 20
    low = aggregate([vote('a', TAI, 0, 9), vote('b', XIU, 0, 9), vote('c', XIU, 0, 9)], store)
    assert low.confidence == 50


def test_track_record_override(store):
    good = store.pattern('good')
    good.recent = [1] * 10
    good.weight = 1.5
    d = aggregate([vote('loud', TAI, 15, 9), vote('good', XIU, 5, 8)], store)
    assert d.raw_prediction == TAI
    assert d.prediction == XIU
    assert d.adjustment.startswith('track_record')


def test_deep_loss_streak_flips(store):
    store.streak.current = -5
    d = aggregate([vote('a', TAI, 10, 5)], store)
    assert d.raw_prediction == TAI and d.prediction == XIU

    off = LearningStore(Tuning(jitter=0, deep_loss_streak=0))
    off.streak.current = -9
    assert aggregate([vote('a', TAI, 10, 5)], off).prediction == TAI


def test_adaptive_boost(store):
    assert adaptive_boost(store) == 0
    store.recent_accuracy = [1] * 9
    assert adaptive_boost(store) == 0
    store.recent_accuracy = [1] * 7 + [0] * 3
    assert adaptive_boost(store) == 5
    store.recent_accuracy = [1] * 6 + [0] * 4
    assert adaptive_boost(store) == 2
    store.recent_accuracy = [1] * 3 + [0] * 7
    assert adaptive_boost(store) == -5


def test_decision_is_reproducible_under_jitter():
    store = LearningStore(Tuning(jitter=2.0))
    votes = [vote('a', TAI, 10, 5), vote('b', XIU, 8, 7), vote('c', TAI, 3, 2)]
    decisions = [aggregate(votes, store, random.Random(seed)) for seed in range(20)]
    assert len({d.prediction for d in decisions}) == 1
    assert all(50 <= d.confidence <= 85 for d in decisions)
    base = aggregate(votes, LearningStore(Tuning(jitter=0)))
    assert all(abs(d.confidence - base.confidence) <= 2 for d in decisions)
