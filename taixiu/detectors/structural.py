"""Structural family: fixed position sets and the transition table."""
from taixiu.analytics.markov import TransitionModel, count_transitions
from taixiu.core.labels import TAI, XIU, opposite
from taixiu.detectors.base import Signal, register

FIB_POSITIONS = (1, 2, 3, 5, 8, 13)
GOLDEN_POSITIONS = (1, 2, 3, 5, 8, 13, 21)


def at_positions(labels, positions) -> tuple[int, int]:
    picked = [labels[p - 1] for p in positions if p <= len(labels)]
    t = sum(1 for x in picked if x == TAI)
    return t, len(picked) - t


@register('fibonacci', family='structural', priority=8, min_rounds=13)
def fibonacci(h, stats):
    t, x = at_positions(h.labels, FIB_POSITIONS)
    if t < 5 and x < 5:
        return None
    dominant = TAI if t > x else XIU
    return Signal(dominant, 11, f'Fibonacci ({t}T-{x}X tại vị trí Fib)', {'tai': t, 'xiu': x})


@register('golden_ratio', family='structural', priority=9, min_rounds=21)
def golden_ratio(h, stats):
    t, x = at_positions(h.labels, GOLDEN_POSITIONS)
    hi, lo = max(t, x), min(t, x)
    dominant = TAI if t > x else XIU
    ratio = hi / lo if lo else None
    if ratio is not None and 1.6 <= ratio <= 1.7:
        return Signal(dominant, 12, f'Tỷ Lệ Vàng ({t}T:{x}X = {ratio:.2f} → {dominant})',
                      {'tai': t, 'xiu': x, 'ratio': round(ratio, 3)})
    if hi >= 5:
        pred = opposite(dominant)
        return Signal(pred, 11, f'Fibonacci Cực ({hi}/{t + x} → Bẻ {pred})', {'tai': t, 'xiu': x})
    return None


def _window_model(labels, margin: float) -> TransitionModel:
    m = TransitionModel(decay=0.0, margin=margin)
    m.C = count_transitions(labels)
    return m


@register('markov_chain', family='structural', priority=12, min_rounds=20)
def markov_chain(h, stats):
    last = h.labels[0]
    model = h.transitions
    if model is None or model.stay_probability(last) is None:
        # no smoothed mass yet: read the window directly
        model = _window_model(h.labels, model.margin if model is not None else 0.1)
    p = model.stay_probability(last)
    if p is None or abs(p - 0.5) <= model.margin:
        return None
    pred = last if p > 0.5 else opposite(last)
    p_pred = p if pred == last else 1 - p
    return Signal(pred, min(15, abs(p - 0.5) * 30 + 8), f'Markov Chain ({last} → {pred}: {p_pred * 100:.0f}%)',
                  {'p_stay': round(p, 4), 'batches': model.batches})
