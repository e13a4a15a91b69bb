from sqlmodel import Session

from taixiu.config import Tuning
from taixiu.core.history import RoundRecord
from taixiu.db import crud
from taixiu.db.base import init_db, make_engine
from taixiu.engine.engine import PredictionEngine
from taixiu.engine.state import EngineSnapshot


def db_at(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path}/nested/tai_xiu.db")
    init_db(eng)
    return eng


def test_sqlite_dir_is_created(tmp_path):
    db_at(tmp_path)
    assert (tmp_path / "nested").is_dir()


def test_rounds_insert_and_read(tmp_path):
    eng = db_at(tmp_path)
    rows = [RoundRecord.from_dice(s, 3, 4, 5) for s in (3, 2, 1)]
    with Session(eng) as session:
        assert crud.insert_rounds(session, rows) == 3
        assert crud.insert_rounds(session, rows[:1] + [RoundRecord.from_dice(4, 1, 1, 2)]) == 1
        latest = crud.latest_rounds(session, limit=2)
        assert [r.sid for r in latest] == [4, 3]
        assert latest[0].label == 'XIU' and latest[0].total == 4
        assert crud.next_sid(session) == 5
        assert crud.count_rounds(session) == 4


def test_next_sid_on_empty_db(tmp_path):
    with Session(db_at(tmp_path)) as session:
        assert crud.next_sid(session) == 1
        assert crud.load_snapshot(session) is None


def test_snapshot_round_trip(tmp_path):
    db = db_at(tmp_path)
    engine = PredictionEngine(Tuning(jitter=0))
    for n in range(1, 15):
        engine.process([RoundRecord.from_dice(s, 1 + s % 6, 2, 3) for s in range(n, 0, -1)])
    snap = engine.snapshot()

    with Session(db) as session:
        crud.save_snapshot(session, snap)
        # saving again updates rows in place
        crud.save_snapshot(session, snap)
    with Session(db) as session:
        loaded = crud.load_snapshot(session)
        summary = crud.summary(session)

    assert isinstance(loaded, EngineSnapshot)
    assert loaded.streak == snap.streak
    assert set(loaded.patterns) == set(snap.patterns)
    assert loaded.transitions == snap.transitions
    assert [e.round_id for e in loaded.ledger] == [e.round_id for e in snap.ledger]
    assert loaded.ledger[1].verified and loaded.ledger[1].correct is not None
    assert summary['total'] == 13 and summary['pending'] == 1
    assert summary['wins'] + summary['losses'] == 13
