from datetime import datetime

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field

from taixiu.core.history import utcnow


class Round(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    sid: int = Field(index=True, unique=True)
    ts: datetime = Field(default_factory=utcnow, index=True)
    d1: int
    d2: int
    d3: int
    total: int = 0
    label: str = Field(index=True)  # 'TAI' | 'XIU'
    is_triple: bool = False
    source: str = "feed"


class Prediction(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    round_id: int = Field(index=True, unique=True)
    prediction: str
    confidence: int
    patterns: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    pattern_ids: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    reversed: bool = False
    original_prediction: str | None = None
    ts: datetime = Field(default_factory=utcnow, index=True)
    # Resolution fields (link to actual outcome)
    verified: bool = False
    actual_label: str | None = None  # 'TAI' | 'XIU'
    correct: bool | None = None
    resolved_ts: datetime | None = None


class EngineState(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    ts: datetime = Field(default_factory=utcnow)
    data: dict = Field(default_factory=dict, sa_column=Column(JSON))
