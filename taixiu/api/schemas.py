from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class IngestIn(BaseModel):
    d1: int
    d2: int
    d3: int
    sid: Optional[int] = None


class PredictOut(BaseModel):
    round_id: int
    prediction: str
    confidence: int
    patterns: list[str]
    reversed: bool
    original_prediction: str | None
    based_on: int | None
    ts: datetime
    analysis: dict[str, Any] = {}


class StoredRound(BaseModel):
    sid: int
    d1: int
    d2: int
    d3: int
    total: int
    label: str


class RoundsOut(BaseModel):
    total: int
    data: list[StoredRound]


class IngestOut(BaseModel):
    stored_round: StoredRound
    prediction: PredictOut | None


class MarkovOut(BaseModel):
    transition: list[list[float]]
    counts: list[list[float]]
    last_label: str | None
    p_value_row: dict[str, float]
    entropy: float
    batches: int


class PatternOut(BaseModel):
    pattern_id: str
    family: str
    prediction: str
    confidence: int
    priority: int
    label: str


class PatternsOut(BaseModel):
    votes: list[PatternOut]
    runs: list[tuple[int, int, str, int]]
    alternations: list[tuple[int, int]]


class PatternStatsOut(BaseModel):
    weight: float
    total: int
    correct: int
    accuracy: float
    rolling_accuracy: float
    samples: int


class StatsOut(BaseModel):
    learning: dict[str, Any]
    reversal: dict[str, Any]
    patterns: dict[str, PatternStatsOut]
    last_round_id: int | None
    last_update: str | None


class PredictionItem(BaseModel):
    round_id: int
    prediction: str
    confidence: int
    patterns: list[str]
    reversed: bool
    original_prediction: str | None
    ts: str
    verified: bool
    actual: str | None
    correct: bool | None
    resolved_ts: str | None


class HistoryOut(BaseModel):
    items: list[PredictionItem]


class SummaryOut(BaseModel):
    wins: int
    losses: int
    total: int
    pending: int
    winrate: float
    stored: dict[str, Any] = {}
