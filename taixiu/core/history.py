from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Sequence, TYPE_CHECKING

import numpy as np

from taixiu.core.errors import InvalidRoundError
from taixiu.core.labels import classify, is_valid_dice

if TYPE_CHECKING:
    from taixiu.analytics.markov import TransitionModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RoundRecord:
    sid: int
    d1: int
    d2: int
    d3: int
    total: int
    label: str  # 'TAI' | 'XIU'
    ts: datetime = field(default_factory=utcnow, compare=False)

    @classmethod
    def from_dice(cls, sid: int, d1: int, d2: int, d3: int, ts: datetime | None = None) -> 'RoundRecord':
        for d in (d1, d2, d3):
            if not is_valid_dice(d):
                raise InvalidRoundError(f"round {sid}: dice must be 1..6, got {(d1, d2, d3)}")
        total = d1 + d2 + d3
        return cls(sid=int(sid), d1=d1, d2=d2, d3=d3, total=total, label=classify(total), ts=ts or utcnow())

    @property
    def dice(self) -> tuple[int, int, int]:
        return (self.d1, self.d2, self.d3)


def dedupe_newest_first(records: Iterable[RoundRecord]) -> list[RoundRecord]:
    """Sort by sid descending and keep the first record seen for each sid."""
    seen: set[int] = set()
    out: list[RoundRecord] = []
    for r in sorted(records, key=lambda r: r.sid, reverse=True):
        if r.sid in seen:
            continue
        seen.add(r.sid)
        out.append(r)
    return out


class History:
    """Read-only window over the most recent rounds, newest first.

    `labels` is what most detectors look at; `records` and `totals` are there
    for the dice-level ones. `transitions` carries the smoothed Markov table
    the engine maintains, when there is one.
    """

    def __init__(self, records: Sequence[RoundRecord], window: int = 50,
                 transitions: 'TransitionModel | None' = None):
        self.records: tuple[RoundRecord, ...] = tuple(records[:window])
        self.labels: tuple[str, ...] = tuple(r.label for r in self.records)
        self.transitions = transitions

    @classmethod
    def from_labels(cls, labels: Iterable[str], start_sid: int = 1000) -> 'History':
        """Build a history from classes only (newest first); dice are synthesized."""
        recs = []
        labels = list(labels)
        for i, lab in enumerate(labels):
            dice = (5, 4, 3) if lab == 'TAI' else (1, 2, 4)
            recs.append(RoundRecord.from_dice(start_sid - i, *dice))
        return cls(recs, window=max(len(recs), 1))

    def __len__(self) -> int:
        return len(self.records)

    def __bool__(self) -> bool:
        return bool(self.records)

    @property
    def totals(self) -> np.ndarray:
        return np.array([r.total for r in self.records], dtype=float)

    def count(self, label: str, n: int | None = None) -> int:
        seq = self.labels if n is None else self.labels[:n]
        return sum(1 for x in seq if x == label)
