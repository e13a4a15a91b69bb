"""Run-length family: what to do with the streak the newest rounds sit in."""
from taixiu.analytics.patterns import leading_run
from taixiu.core.labels import TAI, XIU, opposite
from taixiu.detectors.base import Signal, register

BREAK_AT = 6
SELF_CHECK_SAMPLES = 5
SELF_CHECK_FLOOR = 0.4


@register('cau_bet', family='run', priority=10, min_rounds=3)
def long_streak(h, stats):
    label, n = leading_run(h.labels)
    if n < 3:
        return None
    should_break = n >= BREAK_AT
    # own track record says the break call has been wrong lately: flip it
    if stats.samples >= SELF_CHECK_SAMPLES and stats.rolling_accuracy < SELF_CHECK_FLOOR:
        should_break = not should_break
    if should_break:
        return Signal(opposite(label), min(12, n * 2), f'Cầu Bệt {n} phiên (bẻ)', {'length': n})
    return Signal(label, min(15, n * 3), f'Cầu Bệt {n} phiên', {'length': n})


@register('cau_be_cau', family='run', priority=8, min_rounds=5)
def streak_breaker(h, stats):
    label, n = leading_run(h.labels)
    if n < 4:
        return None
    return Signal(opposite(label), min(14, n * 2 + 4), f'Cầu Bẻ Cầu ({n} phiên {label})', {'length': n})


@register('cau_rong', family='run', priority=10, min_rounds=6)
def dragon(h, stats):
    label, n = leading_run(h.labels)
    if n < 6:
        return None
    return Signal(opposite(label), min(16, n + 8), f'Cầu Rồng {n} phiên', {'length': n})


@register('break_pattern', family='run', priority=12, min_rounds=5)
def break_after_streak(h, stats):
    label, n = leading_run(h.labels)
    if n < 5:
        return None
    cur, prev = h.records[0].total, h.records[1].total
    jump = abs(cur - prev)
    if jump >= 5:
        return Signal(opposite(label), 15, f'Cầu Liên Tục {n} (biến động {jump})',
                      {'length': n, 'jump': jump})
    if n >= 7:
        return Signal(opposite(label), 16, f'Cầu Liên Tục {n} (streak dài)', {'length': n})
    return None


@register('sun_streak_break', family='run', priority=14, min_rounds=5)
def streak_with_sum_check(h, stats):
    label, n = leading_run(h.labels)
    if n < 4:
        return None
    avg = float(h.totals[:n].mean())
    # the run's sums already lean the other way
    contradicted = (label == TAI and avg <= 9) or (label == XIU and avg >= 12)
    if n >= 5 or contradicted:
        return Signal(opposite(label), min(16, n * 2 + 4), f'Streak {n} {label} (bẻ)',
                      {'length': n, 'avg_sum': round(avg, 2)})
    return Signal(label, min(14, n * 2), f'Streak {n} {label} (theo)',
                  {'length': n, 'avg_sum': round(avg, 2)})
