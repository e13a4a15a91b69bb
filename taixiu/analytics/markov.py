import math
from dataclasses import dataclass
from typing import Sequence

from taixiu.analytics.stats import binom_two_sided
from taixiu.core.labels import TAI, XIU


@dataclass
class MarkovStats:
    transition: list[list[float]]
    counts: list[list[float]]
    last_label: str | None
    p_value_row: dict[str, float]
    entropy: float


def _empty() -> dict[str, dict[str, float]]:
    return {TAI: {TAI: 0.0, XIU: 0.0}, XIU: {TAI: 0.0, XIU: 0.0}}


def count_transitions(labels: Sequence[str]) -> dict[str, dict[str, float]]:
    """Raw from->to counts over a newest-first label window."""
    C = _empty()
    for i in range(len(labels) - 1):
        C[labels[i+1]][labels[i]] += 1
    return C


class TransitionModel:
    """2x2 TAI/XIU transition table, exponentially smoothed across batches.

    Each `blend` keeps `decay` of the prior counts and adds (1 - decay) of the
    counts seen in the new window.
    """

    def __init__(self, decay: float = 0.9, margin: float = 0.1):
        self.decay = decay
        self.margin = margin  # |p_stay - 0.5| needed before the table is acted on
        self.C = _empty()
        self.batches = 0

    def reset(self):
        self.C = _empty()
        self.batches = 0

    def blend(self, labels: Sequence[str]):
        fresh = count_transitions(labels)
        for i in (TAI, XIU):
            for j in (TAI, XIU):
                self.C[i][j] = self.C[i][j] * self.decay + fresh[i][j] * (1 - self.decay)
        self.batches += 1

    def row_total(self, label: str) -> float:
        return self.C[label][TAI] + self.C[label][XIU]

    def stay_probability(self, last: str) -> float | None:
        """P(next == last | last); None when the row has no mass yet."""
        n = self.row_total(last)
        if n <= 0:
            return None
        return self.C[last][last] / n

    def probs(self, last: str | None) -> tuple[float, float]:
        if last in (TAI, XIU):
            p_stay = self.stay_probability(last)
            if p_stay is None:
                return 0.5, 0.5
            pT = p_stay if last == TAI else 1 - p_stay
            return pT, 1 - pT
        t = self.row_total(TAI) + self.row_total(XIU)
        if t == 0:
            return 0.5, 0.5
        mT = self.C[TAI][TAI] + self.C[XIU][TAI]
        pT = mT / t
        return pT, 1 - pT

    def stats(self, last: str | None, window: Sequence[str] = ()) -> MarkovStats:
        pTT, pTX = self.probs(TAI)
        pXT, pXX = self.probs(XIU)
        # entropy on marginal within window
        H = 0.0
        n = len(window)
        nT = sum(1 for v in window if v == TAI)
        for c in (nT, n - nT):
            if c == 0:
                continue
            p = c / n
            H -= p * math.log(p, 2)
        # p-values per row vs 0.5, on rounded smoothed counts
        pvals = {}
        for i in (TAI, XIU):
            t_cnt, x_cnt = round(self.C[i][TAI]), round(self.C[i][XIU])
            pvals[i] = binom_two_sided(max(t_cnt, x_cnt), t_cnt + x_cnt)
        return MarkovStats(
            transition=[[pTT, pTX], [pXT, pXX]],
            counts=[[self.C[TAI][TAI], self.C[TAI][XIU]], [self.C[XIU][TAI], self.C[XIU][XIU]]],
            last_label=last,
            p_value_row=pvals,
            entropy=H,
        )

    def to_dict(self) -> dict:
        return {f'{i}->{j}': self.C[i][j] for i in (TAI, XIU) for j in (TAI, XIU)} | {'batches': self.batches}

    def load(self, data: dict | None):
        self.reset()
        if not data:
            return
        for i in (TAI, XIU):
            for j in (TAI, XIU):
                self.C[i][j] = float(data.get(f'{i}->{j}', 0.0))
        self.batches = int(data.get('batches', 0))
