import random

from taixiu.analytics.markov import TransitionModel
from taixiu.core.history import History, RoundRecord
from taixiu.core.labels import LABELS, TAI, XIU
from taixiu.detectors.bank import BANK
from taixiu.engine.state import DEFAULT_PATTERN_WEIGHTS


def votes(h, store):
    return {v.pattern_id: v for v in BANK.evaluate(h, store)}


def test_bank_covers_weight_table():
    ids = set(BANK.ids()) | {BANK.fallback.pattern_id}
    assert ids == set(DEFAULT_PATTERN_WEIGHTS)
    assert len(BANK) == len(ids) - 1


def test_long_streak_breaks_at_six(hist, store):
    v = votes(hist('TTTTTT'), store)
    bet = v['cau_bet']
    assert bet.prediction == XIU
    assert bet.raw_confidence == 12
    assert bet.confidence == 16  # 12 * 1.3
    assert v['cau_rong'].prediction == XIU


def test_short_streak_follows(hist, store):
    bet = votes(hist('TTTTT'), store)['cau_bet']
    assert bet.prediction == TAI and bet.raw_confidence == 15


def test_streak_decision_inverts_on_bad_track_record(hist, store):
    store.pattern('cau_bet').recent = [0] * 5
    bet = votes(hist('TTTTTT'), store)['cau_bet']
    assert bet.prediction == TAI


def test_alternation_breaks(hist, store):
    v = votes(hist('TXTX'), store)
    assert v['cau_dao_11'].prediction == XIU
    assert v['cau_dao_11'].raw_confidence == 12


def test_fallback_is_sole_vote_on_short_history(hist, store):
    out = BANK.evaluate(hist('TX'), store)
    assert [v.pattern_id for v in out] == ['cau_tu_nhien']
    assert out[0].priority == 1 and out[0].raw_confidence == 5
    # tie goes to XIU: TAI needs a strict majority
    assert out[0].prediction == XIU
    out = BANK.evaluate(hist('TTX'), store)
    assert [v.pattern_id for v in out] == ['cau_tu_nhien']
    assert out[0].prediction == TAI


def test_block_rhythm(hist, store):
    assert votes(hist('TTXXTT'), store)['cau_22'].prediction == XIU
    assert votes(hist('TXXTTX'), store)['cau_22'].prediction == TAI


def test_cycle_predicts_next_phase(hist, store):
    v = votes(hist('TXX' * 4), store)
    assert v['cau_chu_ky'].prediction == XIU
    assert v['cau_chu_ky'].detail['period'] == 3


def test_motif(hist, store):
    v = votes(hist('TXXT'), store)
    assert v['cau_121'].prediction == TAI
    assert v['cau_121'].raw_confidence == 10


def test_fibonacci_positions(hist, store):
    assert votes(hist('T' * 13), store)['fibonacci'].prediction == TAI


def test_markov_from_window(hist, store):
    assert votes(hist('TX' * 10), store)['markov_chain'].prediction == XIU
    v = votes(hist('T' * 20), store)['markov_chain']
    assert v.prediction == TAI and v.raw_confidence == 15


def test_markov_respects_margin(hist, store):
    h = hist('TX' * 10)
    strict = TransitionModel(margin=0.6)
    strict.blend(h.labels)
    h = History(h.records, window=20, transitions=strict)
    assert 'markov_chain' not in votes(h, store)


def test_dice_lines(store):
    recs = [RoundRecord.from_dice(3, 2, 2, 5), RoundRecord.from_dice(2, 2, 2, 3), RoundRecord.from_dice(1, 1, 1, 1)]
    v = votes(History(recs), store)
    assert v['day_gay'].prediction == XIU and v['day_gay'].raw_confidence == 14
    assert v['dice_trend_line'].prediction == TAI


def test_sum_pressure(store):
    recs = [RoundRecord.from_dice(100 - i, 5, 5, 5) for i in range(15)]
    v = votes(History(recs), store)
    assert v['sum_pressure'].prediction == XIU and v['sum_pressure'].raw_confidence == 15


def test_random_histories_produce_wellformed_votes(store):
    rng = random.Random(3)
    for n in range(1, 51):
        recs = [RoundRecord.from_dice(1000 - i, rng.randint(1, 6), rng.randint(1, 6), rng.randint(1, 6))
                for i in range(n)]
        out = BANK.evaluate(History(recs), store)
        assert out
        for v in out:
            assert v.prediction in LABELS
            assert isinstance(v.confidence, int) and v.confidence >= 0
            assert 1 <= v.priority <= 14
