"""Trend / momentum family: numeric drift of the dice sums and of the single dice."""
from taixiu.analytics.stats import ema
from taixiu.core.labels import TAI, XIU, opposite
from taixiu.detectors.base import Signal, register


@register('sum_trend', family='trend', priority=3, min_rounds=10)
def sum_trend(h, stats):
    sums = h.totals[:20]
    step = sums[:-1] - sums[1:]  # newer minus older
    up = int((step > 0).sum())
    down = int((step < 0).sum())
    strength = abs(up - down) / len(step)
    if strength <= 0.4:
        return None
    rising = up > down
    return Signal(TAI if rising else XIU, 4, f'Xu hướng tổng {"tăng" if rising else "giảm"}',
                  {'up': up, 'down': down, 'strength': round(strength, 3)})


@register('moving_avg_drift', family='trend', priority=11, min_rounds=20)
def moving_average_drift(h, stats):
    sums = h.totals[:20]
    ma5, ma10, ma20 = float(sums[:5].mean()), float(sums[:10].mean()), float(sums.mean())
    short, long_, total = ma5 - ma10, ma10 - ma20, ma5 - ma20
    detail = {'ma5': round(ma5, 2), 'ma10': round(ma10, 2), 'ma20': round(ma20, 2)}
    if abs(short) > 1.5 and abs(long_) > 1 and short * long_ > 0:
        pred = TAI if short > 0 else XIU
        return Signal(pred, 14, f'MA Drift Mạnh (MA5 {ma5:.1f} / MA10 {ma10:.1f})', detail)
    if abs(total) > 2:
        pred = XIU if total > 0 else TAI
        return Signal(pred, 12, f'MA Đảo Chiều (drift {total:.1f})', detail)
    ema5 = ema(sums[:5][::-1], 5)
    if abs(ema5 - ma10) > 1.5:
        pred = TAI if ema5 > ma10 else XIU
        return Signal(pred, 11, f'EMA Crossover (EMA5 {ema5:.1f} / MA10 {ma10:.1f})',
                      detail | {'ema5': round(ema5, 2)})
    return None


@register('momentum', family='trend', priority=9, min_rounds=10)
def momentum(h, stats):
    sums = h.totals
    last5, prev5 = float(sums[:5].mean()), float(sums[5:10].mean())
    change = last5 - prev5
    if abs(change) < 2:
        return None
    pred = XIU if change > 0 else TAI
    return Signal(pred, 12, f'Momentum {"Tăng" if change > 0 else "Giảm"} ({last5:.1f} vs {prev5:.1f})',
                  {'change': round(change, 2)})


@register('short_momentum', family='trend', priority=4, min_rounds=10)
def short_vs_long(h, stats):
    r3 = h.count(TAI, 3) / 3
    r10 = h.count(TAI, 10) / 10
    if abs(r3 - r10) <= 0.3:
        return None
    dominant3 = TAI if r3 > 0.5 else XIU
    return Signal(opposite(dominant3), 5, 'Biến động ngắn hạn', {'ratio3': round(r3, 3), 'ratio10': round(r10, 3)})


@register('resistance_support', family='trend', priority=10, min_rounds=20)
def resistance_support(h, stats):
    sums = h.totals[:20]
    top, bottom, cur = int(sums.max()), int(sums.min()), int(sums[0])
    to_top, to_bottom = top - cur, cur - bottom
    if to_top <= 2 and to_top < to_bottom:
        return Signal(XIU, 10, f'Gần Kháng Cự ({cur} → {top})', {'resistance': top})
    if to_bottom <= 2 and to_bottom < to_top:
        return Signal(TAI, 10, f'Gần Hỗ Trợ ({cur} → {bottom})', {'support': bottom})
    return None


def dice_moves(h) -> tuple[list[str], tuple[int, int, int]]:
    cur, prev = h.records[0].dice, h.records[1].dice
    moves = []
    for c, p in zip(cur, prev):
        moves.append('up' if c > p else 'down' if c < p else 'same')
    return moves, cur


@register('dice_trend_line', family='trend', priority=11, min_rounds=3)
def dice_trend_line(h, stats):
    moves, dice = dice_moves(h)
    up, down, same = moves.count('up'), moves.count('down'), moves.count('same')
    prev_label = h.labels[1]
    detail = {'dice': list(dice), 'moves': moves}
    if dice[0] == dice[1] == dice[2]:
        return Signal(XIU if dice[0] >= 4 else TAI, 13, f'Biểu Đồ Đường (bộ ba {dice[0]})', detail)
    if len(set(dice)) == 2:
        return Signal(opposite(prev_label), 11, 'Biểu Đồ Đường (2 xúc xắc giống)', detail)
    if max(dice) == 6 and min(dice) == 1:
        return Signal(opposite(prev_label), 12, 'Biểu Đồ Đường (biên độ 6-1)', detail)
    if up == 1 and down == 2:
        return Signal(TAI, 12, 'Biểu Đồ Đường (1 lên 2 xuống)', detail)
    if up == 2 and down == 1:
        return Signal(XIU, 12, 'Biểu Đồ Đường (2 lên 1 xuống)', detail)
    if up == 3 or down == 3:
        return Signal(prev_label, 10, f'Biểu Đồ Đường (3 dây cùng {"lên" if up == 3 else "xuống"})', detail)
    if (same == 1 and (up == 2 or down == 2)) or (same == 2 and (up == 1 or down == 1)):
        return Signal(opposite(prev_label), 10, 'Biểu Đồ Đường (2 dây cùng hướng)', detail)
    return None


@register('day_gay', family='trend', priority=13, min_rounds=3)
def broken_line(h, stats):
    moves, dice = dice_moves(h)
    up, down, same = moves.count('up'), moves.count('down'), moves.count('same')
    detail = {'dice': list(dice), 'moves': moves}
    if same == 2:
        flat = [d for d, m in zip(dice, moves) if m == 'same']
        if flat[0] == flat[1]:
            if up == 1:
                return Signal(XIU, 14, f'Dây Gãy (2 dây thẳng {flat[0]}-{flat[1]} + 1 lên)', detail)
            if down == 1:
                return Signal(TAI, 14, f'Dây Gãy (2 dây thẳng {flat[0]}-{flat[1]} + 1 xuống)', detail)
    if up == 2 and down == 1:
        return Signal(XIU, 13, 'Dây Gãy (2 lên 1 xuống)', detail)
    if down == 2 and up == 1:
        return Signal(TAI, 13, 'Dây Gãy (2 xuống 1 lên)', detail)
    return None

