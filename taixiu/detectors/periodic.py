"""Periodicity family: cycles, skip-step sampling and run-length waves."""
from taixiu.analytics.patterns import runs
from taixiu.core.labels import opposite
from taixiu.detectors.base import Signal, register


@register('cau_chu_ky', family='periodic', priority=7, min_rounds=12)
def cycle(h, stats):
    labels = h.labels
    for L in range(2, 7):
        pattern = labels[:L]
        if len(set(pattern)) == 1:
            continue  # plain streaks belong to the run family
        if all(labels[i] == pattern[i % L] for i in range(L, min(L * 3, len(labels)))):
            # labels[i] == pattern[i % L]; the next round sits at i = -1
            return Signal(pattern[L - 1], 9, f'Cầu Chu Kỳ {L}', {'period': L, 'pattern': list(pattern)})
    return None


def phase_samples(labels, step: int, limit: int = 12) -> list[str]:
    """Rounds in the same phase as the upcoming one (positions step-1, 2*step-1, ...)."""
    return [labels[i] for i in range(step - 1, min(len(labels), limit), step)]


@register('cau_nhay_coc', family='periodic', priority=6, min_rounds=6)
def skip_step(h, stats):
    skip = phase_samples(h.labels, 2)
    if len(skip) < 3:
        return None
    if skip[0] == skip[1] == skip[2]:
        return Signal(skip[0], 8, 'Cầu Nhảy Cóc', {'samples': skip[:3]})
    if all(skip[i] != skip[i-1] for i in range(1, len(skip))):
        return Signal(opposite(skip[0]), 7, 'Cầu Nhảy Cóc Đảo', {'samples': skip[:3]})
    return None


@register('cau_gap', family='periodic', priority=7, min_rounds=9)
def gap(h, stats):
    for step in (3, 4):
        samples = phase_samples(h.labels, step)
        if len(samples) >= 3 and len(set(samples)) == 1:
            return Signal(samples[0], 9, f'Cầu Gấp {step} (mỗi {step} phiên)', {'step': step})
    return None


@register('wave', family='periodic', priority=8, min_rounds=12)
def waves(h, stats):
    segs = runs(h.labels[:12])
    lens = [s[3] for s in segs]
    head = segs[0][2]
    if len(lens) >= 4:
        w = lens[:4]
        if all(w[i] >= w[i-1] for i in range(1, 4)) and w[0] < w[3]:
            return Signal(opposite(head), 12, f'Sóng Mở Rộng ({"-".join(map(str, w))})',
                          {'waves': w, 'shape': 'expanding'})
        if all(w[i] <= w[i-1] for i in range(1, 4)) and w[0] > w[3]:
            return Signal(head, 11, f'Sóng Thu Hẹp ({"-".join(map(str, w))})',
                          {'waves': w, 'shape': 'contracting'})
    if len(lens) >= 3:
        avg = sum(lens[:3]) / 3
        if lens[0] > avg * 1.5:
            return Signal(opposite(head), 11, f'Đỉnh Sóng ({lens[0]} > {avg:.1f})',
                          {'current': lens[0], 'avg': round(avg, 2)})
    return None
