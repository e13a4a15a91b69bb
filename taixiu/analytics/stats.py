from math import comb

import numpy as np

EXPECTED_MEAN = 10.5  # mean of a 3-dice sum


def binom_cdf(k: int, n: int, p: float) -> float:
    # inclusive CDF: P(X <= k)
    if n <= 0:
        return 1.0
    s = 0.0
    for i in range(0, k+1):
        s += comb(n, i) * (p**i) * ((1-p)**(n-i))
    return min(max(s, 0.0), 1.0)


def binom_two_sided(k: int, n: int, p: float = 0.5) -> float:
    if n == 0:
        return 1.0
    pv = 2 * min(binom_cdf(k, n, p), 1 - binom_cdf(k-1, n, p))
    return max(min(pv, 1.0), 0.0)


def ema(values, span: int) -> float:
    """EMA seeded with the first value, oldest first."""
    alpha = 2 / (span + 1)
    acc = float(values[0])
    for v in values[1:]:
        acc = alpha * float(v) + (1 - alpha) * acc
    return acc


def abs_changes(totals: np.ndarray) -> np.ndarray:
    return np.abs(np.diff(totals))


def round_half_up(x: float) -> int:
    return int(np.floor(x + 0.5))
