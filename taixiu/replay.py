"""Offline walk-forward run of the engine over a recorded round list."""
from __future__ import annotations

import json
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from taixiu.config import Tuning
from taixiu.core.history import RoundRecord, dedupe_newest_first
from taixiu.engine.engine import PredictionEngine
from taixiu.source import parse_payload

CSV_HEADER = "index,sid,true,guess,confidence,reversed,correct,cum_acc"


@dataclass
class ReplayRow:
    index: int
    sid: int
    true: str
    guess: str
    confidence: int
    reversed: bool
    correct: bool
    cum_acc: float

    def csv(self) -> str:
        return (f"{self.index},{self.sid},{self.true},{self.guess},{self.confidence},"
                f"{int(self.reversed)},{int(self.correct)},{self.cum_acc:.6f}")


def load_rounds(path: str | Path) -> list[RoundRecord]:
    """Read a JSON file in either feed payload shape, or a bare list of rounds."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(payload, list):
        payload = {"data": payload}
    return parse_payload(payload)


def replay(rounds: Sequence[RoundRecord], tuning: Tuning | None = None, window: int = 50,
           seed: int | None = 0) -> tuple[list[ReplayRow], PredictionEngine]:
    """Feed rounds oldest to newest; each prediction is scored against the round that follows."""
    tuning = tuning or Tuning()
    engine = PredictionEngine(tuning, window=window, rng=random.Random(seed))
    ordered = dedupe_newest_first(rounds)[::-1]
    rows: list[ReplayRow] = []
    wins = 0
    for i in range(len(ordered) - 1):
        seen = ordered[max(0, i + 1 - window):i + 1][::-1]
        pred = engine.process(seen)
        nxt = ordered[i + 1]
        if pred is None or pred.round_id != nxt.sid:
            continue
        correct = pred.prediction == nxt.label
        wins += int(correct)
        n = len(rows) + 1
        rows.append(ReplayRow(n, nxt.sid, nxt.label, pred.prediction, pred.confidence, pred.reversed,
                              correct, wins / n))
    # resolve the last issued prediction too
    if ordered:
        engine.process(ordered[-window:][::-1])
    return rows, engine
