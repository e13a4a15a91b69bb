from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from taixiu.core.errors import PersistenceError
from taixiu.core.history import RoundRecord
from taixiu.db.models import EngineState, Prediction, Round
from taixiu.engine.state import EngineSnapshot, LedgerEntry

STATE_ROW_ID = 1


def insert_rounds(session: Session, records: Iterable[RoundRecord], source: str = "feed") -> int:
    """Store rounds not seen before; returns how many were new."""
    records = list(records)
    if not records:
        return 0
    sids = [r.sid for r in records]
    known = set(session.exec(select(Round.sid).where(Round.sid.in_(sids))).all())
    added = 0
    for r in records:
        if r.sid in known:
            continue
        known.add(r.sid)
        session.add(Round(sid=r.sid, ts=r.ts, d1=r.d1, d2=r.d2, d3=r.d3, total=r.total, label=r.label,
                          is_triple=(r.d1 == r.d2 == r.d3), source=source))
        added += 1
    session.commit()
    return added


def latest_rounds(session: Session, limit: int = 50) -> list[RoundRecord]:
    rows = session.exec(select(Round).order_by(Round.sid.desc()).limit(limit)).all()
    return [RoundRecord(sid=row.sid, d1=row.d1, d2=row.d2, d3=row.d3, total=row.total, label=row.label, ts=row.ts)
            for row in rows]


def count_rounds(session: Session) -> int:
    return session.exec(select(func.count()).select_from(Round)).one()


def next_sid(session: Session) -> int:
    top = session.exec(select(func.max(Round.sid))).one()
    return (top or 0) + 1


def _upsert_prediction(session: Session, e: LedgerEntry):
    row = session.exec(select(Prediction).where(Prediction.round_id == e.round_id)).first()
    if row is None:
        row = Prediction(round_id=e.round_id, prediction=e.prediction, confidence=e.confidence)
    row.prediction = e.prediction
    row.confidence = e.confidence
    row.patterns = list(e.patterns)
    row.pattern_ids = list(e.pattern_ids)
    row.reversed = e.reversed
    row.original_prediction = e.original_prediction
    row.ts = e.ts
    row.verified = e.verified
    row.actual_label = e.actual
    row.correct = e.correct
    row.resolved_ts = e.resolved_ts
    session.add(row)


def save_snapshot(session: Session, snap: EngineSnapshot):
    try:
        state = session.get(EngineState, STATE_ROW_ID) or EngineState(id=STATE_ROW_ID)
        state.data = snap.model_dump(mode="json", exclude={"ledger"})
        state.ts = snap.last_update or state.ts
        session.add(state)
        for e in snap.ledger:
            _upsert_prediction(session, e)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError(f"snapshot save failed: {e}") from e


def load_snapshot(session: Session, ledger_size: int = 500) -> Optional[EngineSnapshot]:
    state = session.get(EngineState, STATE_ROW_ID)
    if state is None:
        return None
    rows = session.exec(select(Prediction).order_by(Prediction.round_id.desc()).limit(ledger_size)).all()
    ledger = [
        LedgerEntry(
            round_id=p.round_id, prediction=p.prediction, confidence=p.confidence,
            patterns=list(p.patterns or []), pattern_ids=list(p.pattern_ids or []), ts=p.ts,
            reversed=p.reversed, original_prediction=p.original_prediction, verified=p.verified,
            actual=p.actual_label, correct=p.correct, resolved_ts=p.resolved_ts,
        )
        for p in rows
    ]
    return EngineSnapshot.model_validate({**state.data, "ledger": ledger})


def summary(session: Session) -> dict:
    rows = session.exec(select(Prediction.correct, Prediction.verified)).all()
    wins = sum(1 for c, _ in rows if c is True)
    losses = sum(1 for c, _ in rows if c is False)
    pending = sum(1 for _, v in rows if not v)
    total = wins + losses
    winrate = (wins / total) if total else 0.0
    return {'wins': wins, 'losses': losses, 'total': total, 'pending': pending, 'winrate': winrate}
