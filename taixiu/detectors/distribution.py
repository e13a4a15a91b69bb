"""Distributional family: class imbalance over windows and the shape of the dice sums."""
import numpy as np

from taixiu.analytics.stats import EXPECTED_MEAN, abs_changes
from taixiu.core.labels import TAI, XIU, opposite
from taixiu.detectors.base import Signal, register


@register('distribution', family='distribution', priority=5, min_rounds=10)
def imbalance(h, stats):
    n = len(h)
    t = h.count(TAI)
    pt = t / n * 100
    if abs(t - (n - t)) / n <= 0.2:
        return None
    minority = TAI if pt < 50 else XIU
    return Signal(minority, 6, f'Phân bố lệch (T:{pt:.0f}% - X:{100 - pt:.0f}%)',
                  {'tai': t, 'xiu': n - t, 'window': n})


@register('cau_nhip_nghieng', family='distribution', priority=7, min_rounds=5)
def lean(h, stats):
    t5 = h.count(TAI, 5)
    if t5 >= 4:
        return Signal(TAI, 9, f'Cầu Nhịp Nghiêng 5 ({t5} Tài)', {'window': 5})
    if t5 <= 1:
        return Signal(XIU, 9, f'Cầu Nhịp Nghiêng 5 ({5 - t5} Xỉu)', {'window': 5})
    if len(h) >= 7:
        t7 = h.count(TAI, 7)
        if t7 >= 5:
            return Signal(TAI, 10, f'Cầu Nhịp Nghiêng 7 ({t7} Tài)', {'window': 7})
        if t7 <= 2:
            return Signal(XIU, 10, f'Cầu Nhịp Nghiêng 7 ({7 - t7} Xỉu)', {'window': 7})
    return None


@register('smart_bet', family='distribution', priority=9, min_rounds=10)
def trend_flip(h, stats):
    last5 = h.count(TAI, 5)
    prev5 = sum(1 for x in h.labels[5:10] if x == TAI)
    if (last5 >= 4 and prev5 <= 1) or (last5 <= 1 and prev5 >= 4):
        dominant = TAI if last5 >= 4 else XIU
        return Signal(opposite(dominant), 13, f'Đảo Xu Hướng ({last5}T/5 vs {prev5}T/5)',
                      {'last5': last5, 'prev5': prev5})
    t10 = h.count(TAI, 10)
    if t10 >= 8 or t10 <= 2:
        dominant = TAI if t10 >= 8 else XIU
        return Signal(opposite(dominant), 12, f'Xu Hướng Cực ({t10}T-{10 - t10}X / 10)', {'tai10': t10})
    return None


@register('sun_hot_cold', family='distribution', priority=13, min_rounds=10)
def hot_cold(h, stats):
    t10 = h.count(TAI, 10)
    x10 = 10 - t10
    for side, cnt in ((TAI, t10), (XIU, x10)):
        if cnt >= 7:
            # 8+ of 10 is overheated and expected to cool off
            pred = opposite(side) if cnt >= 8 else side
            conf = (14 if cnt >= 8 else 12) * cnt / 10
            return Signal(pred, conf, f'Nóng {side} ({cnt}/10)', {'count10': cnt})
    n20 = min(20, len(h))
    ratio = h.count(TAI, 20) / n20
    if ratio >= 0.7 or ratio <= 0.3:
        dominant = TAI if ratio >= 0.5 else XIU
        return Signal(dominant, 10, f'Xu Hướng {n20} Phiên ({dominant})', {'ratio20': round(ratio, 3)})
    return None


@register('sun_balance', family='distribution', priority=12, min_rounds=15)
def balance(h, stats):
    t = h.count(TAI, 15)
    x = 15 - t
    diff = abs(t - x)
    if diff >= 7:
        minority = TAI if t < x else XIU
        return Signal(minority, min(13, diff + 5), f'Cân Bằng (T:{t} - X:{x})', {'tai': t, 'xiu': x})
    if diff <= 1:
        pred = XIU if h.count(TAI, 3) >= 2 else TAI
        return Signal(pred, 8, 'Cân Bằng Hoàn Hảo', {'tai': t, 'xiu': x})
    return None


@register('sun_momentum_shift', family='distribution', priority=13, min_rounds=12)
def momentum_shift(h, stats):
    recent = h.count(TAI, 6)
    prev = sum(1 for x in h.labels[6:12] if x == TAI)
    shift = recent - prev
    if abs(shift) < 4:
        return None
    side = TAI if shift > 0 else XIU
    return Signal(side, min(14, abs(shift) * 2 + 4), f'Đổi Chiều → {side}', {'shift': shift})


@register('edge_cases', family='distribution', priority=5, min_rounds=10)
def extremes(h, stats):
    totals = h.totals[:10]
    high = int((totals >= 14).sum())
    low = int((totals <= 7).sum())
    if high >= 4:
        return Signal(XIU, 7, f'Cực Điểm Cao ({high} phiên >= 14)', {'high': high})
    if low >= 4:
        return Signal(TAI, 7, f'Cực Điểm Thấp ({low} phiên <= 7)', {'low': low})
    return None


@register('dice_pattern', family='distribution', priority=4, min_rounds=10)
def mean_sum(h, stats):
    avg = float(h.totals[:15].mean())
    if avg > EXPECTED_MEAN + 1:
        return Signal(XIU, 5, f'Tổng TB cao ({avg:.1f})', {'avg_sum': round(avg, 2)})
    if avg < EXPECTED_MEAN - 1:
        return Signal(TAI, 5, f'Tổng TB thấp ({avg:.1f})', {'avg_sum': round(avg, 2)})
    return None


@register('sum_pressure', family='distribution', priority=11, min_rounds=15)
def sum_pressure(h, stats):
    sums = h.totals[:15]
    avg = float(sums.mean())
    dev = avg - EXPECTED_MEAN
    std = float(np.std(sums))
    if abs(dev) > 1.5:
        pred = XIU if dev > 0 else TAI
        return Signal(pred, min(15, abs(dev) * 5 + 7), f'Áp Lực Tổng {"CAO" if dev > 0 else "THẤP"} (TB {avg:.1f})',
                      {'avg_sum': round(avg, 2), 'deviation': round(dev, 2)})
    high = int((sums >= 14).sum())
    low = int((sums <= 7).sum())
    if high >= 4:
        return Signal(XIU, 13, f'Áp Lực Cực Cao ({high}/15 phiên >= 14)', {'high': high})
    if low >= 4:
        return Signal(TAI, 13, f'Áp Lực Cực Thấp ({low}/15 phiên <= 7)', {'low': low})
    normal = int(((sums >= 9) & (sums <= 12)).sum())
    if std < 2 and normal >= 10:
        last = int(sums[0])
        pred = XIU if last > EXPECTED_MEAN else TAI
        return Signal(pred, 10, f'Vùng Ổn Định (std {std:.1f}, cuối {last})', {'std': round(std, 2)})
    return None


@register('volatility', family='distribution', priority=10, min_rounds=10)
def volatility(h, stats):
    changes = abs_changes(h.totals[:10])
    avg = float(changes.mean())
    peak = int(changes.max())
    recent = int(changes[0])
    if avg > 4 and peak >= 7:
        return Signal(opposite(h.labels[0]), 12, f'Biến Động Cao (TB {avg:.1f}, max {peak})',
                      {'avg_change': round(avg, 2), 'max_change': peak})
    if avg < 2 and recent >= 5:
        return Signal(h.labels[0], 11, f'Đột Biến ({recent} vs TB {avg:.1f})',
                      {'avg_change': round(avg, 2), 'recent_change': recent})
    return None
