from __future__ import annotations

import asyncio
import random
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from taixiu.analytics.patterns import alternations, runs
from taixiu.config import Settings, settings as default_settings
from taixiu.core.errors import InvalidRoundError, PersistenceError
from taixiu.core.history import RoundRecord
from taixiu.db import crud
from taixiu.db.base import init_db, make_engine, session_scope
from taixiu.engine.engine import PredictionEngine, PredictionResult
from taixiu.engine.state import EngineSnapshot
from taixiu.source import RoundSource
from taixiu.utils.logger import get_logger

logger = get_logger(__name__)


class PredictionService:
    """Source + engine + database, plus the background poll loop."""

    def __init__(self, cfg: Settings | None = None, source: RoundSource | None = None,
                 db_engine=None, rng: random.Random | None = None):
        self.cfg = cfg or default_settings
        self.source = source or RoundSource(self.cfg.source_url, self.cfg.source_timeout)
        self.db = db_engine if db_engine is not None else make_engine(self.cfg.db_dsn)
        self.engine = PredictionEngine(self.cfg.tuning, window=self.cfg.window, rng=rng, persist=self.save)
        self._poller: asyncio.Task | None = None
        self._rounds: list[RoundRecord] = []

    # lifecycle

    async def start(self):
        init_db(self.db)
        snap = await asyncio.to_thread(self.load)
        if snap is not None:
            self.engine.restore(snap)
        if self.cfg.poll_enabled:
            self._poller = asyncio.create_task(self._poll_loop())
        logger.info("service_started", poll=self.cfg.poll_enabled, interval=self.cfg.poll_interval)

    async def stop(self):
        if self._poller is not None:
            self._poller.cancel()
            try:
                await self._poller
            except asyncio.CancelledError:
                pass
            self._poller = None
        await self.engine.drain()
        try:
            await asyncio.to_thread(self.save, self.engine.snapshot())
        except PersistenceError as e:
            logger.error("final_save_failed", error=str(e))
        logger.info("service_stopped")

    async def _poll_loop(self):
        while True:
            try:
                await self.predict()
            except Exception:
                logger.exception("cycle_failed")
            await asyncio.sleep(self.cfg.poll_interval)

    # persistence

    def save(self, snap: EngineSnapshot):
        with session_scope(self.db) as session:
            crud.save_snapshot(session, snap)

    def load(self) -> EngineSnapshot | None:
        with session_scope(self.db) as session:
            return crud.load_snapshot(session, self.cfg.tuning.ledger_size)

    def _store_rounds(self, rounds: list[RoundRecord], source: str) -> int:
        try:
            with session_scope(self.db) as session:
                return crud.insert_rounds(session, rounds, source=source)
        except SQLAlchemyError as e:
            logger.error("rounds_store_failed", error=str(e), rounds=len(rounds))
            return 0

    # operations

    async def _fetch(self) -> list[RoundRecord]:
        rounds = await self.source.fetch()
        self._rounds = rounds
        await asyncio.to_thread(self._store_rounds, rounds, "feed")
        return rounds

    async def predict(self) -> PredictionResult | None:
        return await self.engine.run_cycle(self._fetch)

    async def ingest(self, d1: int, d2: int, d3: int,
                     sid: int | None = None) -> tuple[RoundRecord, PredictionResult | None]:
        """Record one manually entered round and run a cycle over the stored rounds."""
        def _write() -> RoundRecord:
            with session_scope(self.db) as session:
                rec = RoundRecord.from_dice(sid if sid is not None else crud.next_sid(session), d1, d2, d3)
                if not crud.insert_rounds(session, [rec], source="manual"):
                    raise InvalidRoundError(f"round {rec.sid} is already stored")
                return rec

        rec = await asyncio.to_thread(_write)
        logger.info("round_ingested", sid=rec.sid, total=rec.total, label=rec.label)

        async def _from_db() -> list[RoundRecord]:
            def _read():
                with session_scope(self.db) as session:
                    return crud.latest_rounds(session, limit=self.cfg.window)
            self._rounds = await asyncio.to_thread(_read)
            return self._rounds

        return rec, await self.engine.run_cycle(_from_db)

    async def recent_rounds(self) -> list[RoundRecord]:
        if self._rounds:
            return self._rounds

        def _read():
            with session_scope(self.db) as session:
                return crud.latest_rounds(session, limit=self.cfg.window)
        return await asyncio.to_thread(_read)

    def rounds(self, limit: int | None = None) -> dict[str, Any]:
        """Stored rounds, newest first, with the stored total."""
        with session_scope(self.db) as session:
            return {
                'total': crud.count_rounds(session),
                'data': crud.latest_rounds(session, limit=limit or self.cfg.history_limit),
            }

    async def patterns(self, min_run: int = 3) -> dict[str, Any]:
        rounds = await self.recent_rounds()
        labels = [r.label for r in rounds]
        votes = self.engine.votes(rounds)
        return {
            'votes': [
                {'pattern_id': v.pattern_id, 'family': v.family, 'prediction': v.prediction,
                 'confidence': v.confidence, 'priority': v.priority, 'label': v.label}
                for v in votes
            ],
            'runs': runs(labels, k=min_run),
            'alternations': alternations(labels, L=4),
        }

    async def markov(self) -> dict[str, Any]:
        rounds = await self.recent_rounds()
        labels = [r.label for r in rounds]
        st = self.engine.store.transitions.stats(labels[0] if labels else None, labels)
        return {
            'transition': st.transition,
            'counts': st.counts,
            'last_label': st.last_label,
            'p_value_row': st.p_value_row,
            'entropy': st.entropy,
            'batches': self.engine.store.transitions.batches,
        }

    def stats(self) -> dict[str, Any]:
        s = self.engine.store
        return {
            'learning': self.engine.learning_stats(),
            'reversal': s.reversal.model_dump(mode='json'),
            'patterns': self.engine.pattern_table(),
            'last_round_id': s.last_round_id,
            'last_update': s.last_update.isoformat() if s.last_update else None,
        }

    def history(self, limit: int | None = None) -> list[dict[str, Any]]:
        limit = limit or self.cfg.history_limit
        return [
            {
                'round_id': e.round_id,
                'prediction': e.prediction,
                'confidence': e.confidence,
                'patterns': e.patterns,
                'reversed': e.reversed,
                'original_prediction': e.original_prediction,
                'ts': e.ts.isoformat(),
                'verified': e.verified,
                'actual': e.actual,
                'correct': e.correct,
                'resolved_ts': e.resolved_ts.isoformat() if e.resolved_ts else None,
            }
            for e in self.engine.ledger.entries[:limit]
        ]

    def summary(self) -> dict[str, Any]:
        with session_scope(self.db) as session:
            stored = crud.summary(session)
        ledger = [e for e in self.engine.ledger if e.verified]
        wins = sum(1 for e in ledger if e.correct)
        losses = len(ledger) - wins
        total = wins + losses
        return {
            'wins': wins,
            'losses': losses,
            'total': total,
            'pending': len(self.engine.ledger.pending()),
            'winrate': (wins / total) if total else 0.0,
            'stored': stored,
        }

