"""Every detector family, registered on import, plus the always-on fallback."""
from taixiu.core.labels import TAI, XIU
from taixiu.detectors import alternation, distribution, periodic, runs, structural, trend  # noqa: F401
from taixiu.detectors.base import BANK, Signal, register


@register('cau_tu_nhien', family='fallback', priority=1, fallback=True)
def natural(h, stats):
    t = h.count(TAI, 10)
    x = min(10, len(h)) - t
    return Signal(TAI if t > x else XIU, 5, f'Cầu Tự Nhiên ({t}T-{x}X)', {'tai': t, 'xiu': x})


__all__ = ['BANK']
