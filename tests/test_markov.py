from taixiu.analytics.markov import TransitionModel, count_transitions
from taixiu.analytics.stats import binom_two_sided, ema, round_half_up


def test_count_transitions_newest_first():
    # oldest -> newest: X, T, T
    C = count_transitions(['TAI', 'TAI', 'XIU'])
    assert C['XIU']['TAI'] == 1 and C['TAI']['TAI'] == 1
    assert C['TAI']['XIU'] == 0


def test_markov_probs():
    mk = TransitionModel(decay=0.0)
    mk.blend(['TAI', 'TAI', 'TAI', 'XIU', 'XIU', 'XIU', 'TAI', 'TAI', 'TAI', 'XIU'])
    pT, pX = mk.probs('TAI')
    assert 0.0 <= pT <= 1.0 and 0.0 <= pX <= 1.0 and abs((pT + pX) - 1.0) < 1e-9


def test_blend_is_exponential():
    mk = TransitionModel(decay=0.9)
    mk.blend(['TAI', 'TAI', 'TAI'])
    assert abs(mk.C['TAI']['TAI'] - 0.2) < 1e-9
    mk.blend(['TAI', 'TAI', 'TAI'])
    assert abs(mk.C['TAI']['TAI'] - (0.2 * 0.9 + 0.2)) < 1e-9
    assert mk.batches == 2
    assert mk.stay_probability('TAI') == 1.0
    assert mk.stay_probability('XIU') is None


def test_dict_round_trip():
    mk = TransitionModel()
    mk.blend(['TAI', 'XIU', 'TAI', 'XIU'])
    other = TransitionModel()
    other.load(mk.to_dict())
    assert other.C == mk.C and other.batches == 1


def test_stats_helpers():
    assert binom_two_sided(5, 10) == 1.0
    assert binom_two_sided(10, 10) < 0.01
    assert round_half_up(2.5) == 3 and round_half_up(-0.5) == 0
    assert ema([10, 10, 10], 5) == 10.0
    assert ema([0, 12], 5) > 0
