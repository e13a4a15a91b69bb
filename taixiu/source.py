"""Upstream round feed: fetch the latest rounds and normalize them newest first."""
from __future__ import annotations

from typing import Any

import httpx

from taixiu.config import settings
from taixiu.core.errors import InvalidRoundError, SourceError
from taixiu.core.history import RoundRecord, dedupe_newest_first
from taixiu.core.labels import normalize_label
from taixiu.utils.logger import get_logger

logger = get_logger(__name__)

RESULT_KEYS = ('Ket_qua', 'ket_qua')
SID_KEYS = ('Phien', 'phien', 'sid', 'id')
DICE_KEYS = (
    ('Xuc_xac_1', 'xuc_xac_1', 'd1'),
    ('Xuc_xac_2', 'xuc_xac_2', 'd2'),
    ('Xuc_xac_3', 'xuc_xac_3', 'd3'),
)


def _pick(item: dict, keys) -> Any:
    for k in keys:
        if item.get(k) is not None:
            return item[k]
    raise SourceError(f"missing field {keys[0]} in {item!r}")


def _as_int(v: Any, what: str) -> int:
    if isinstance(v, bool):
        raise SourceError(f"{what}: not an integer: {v!r}")
    if isinstance(v, float) and not v.is_integer():  # also rejects inf and nan
        raise SourceError(f"{what}: not an integer: {v!r}")
    try:
        return int(v)
    except (TypeError, ValueError, OverflowError):
        raise SourceError(f"{what}: not an integer: {v!r}") from None


def parse_round(item: dict) -> RoundRecord:
    if not isinstance(item, dict):
        raise SourceError(f"round entry is not an object: {item!r}")
    sid = _as_int(_pick(item, SID_KEYS), 'round id')
    dice = [_as_int(_pick(item, keys), keys[0]) for keys in DICE_KEYS]
    try:
        rec = RoundRecord.from_dice(sid, *dice)
    except InvalidRoundError as e:
        raise SourceError(str(e)) from e
    reported = next((item[k] for k in RESULT_KEYS if item.get(k) is not None), None)
    if reported is not None and normalize_label(reported) != rec.label:
        # dice win over the feed's own result string
        logger.warning("result_mismatch", sid=sid, reported=reported, dice=rec.dice, label=rec.label)
    return rec


def parse_payload(payload: Any) -> list[RoundRecord]:
    """Normalize either upstream payload shape to newest-first records.

    * ``{"phien_hien_tai": .., "xuc_xac_1": .., "lich_su_phien": [{"phien": ..}, ..]}``
    * ``{"data": [{"Phien": .., "Xuc_xac_1": ..}, ..]}``
    """
    if not isinstance(payload, dict):
        raise SourceError(f"unexpected payload type {type(payload).__name__}")
    if 'lich_su_phien' in payload:
        items = []
        if payload.get('phien_hien_tai') is not None:
            items.append({'phien': payload['phien_hien_tai'], **{k: payload.get(k) for k in
                                                                 ('ket_qua', 'xuc_xac_1', 'xuc_xac_2', 'xuc_xac_3')}})
        hist = payload['lich_su_phien']
        if not isinstance(hist, list):
            raise SourceError("lich_su_phien is not a list")
        items.extend(hist)
    elif 'data' in payload:
        items = payload['data']
        if not isinstance(items, list):
            raise SourceError("data is not a list")
    else:
        raise SourceError(f"unrecognized payload keys: {sorted(payload)[:8]}")
    return dedupe_newest_first(parse_round(it) for it in items)


class RoundSource:
    def __init__(self, url: str | None = None, timeout: float | None = None,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.url = url or settings.source_url
        self.timeout = timeout if timeout is not None else settings.source_timeout
        self.transport = transport

    async def fetch(self) -> list[RoundRecord]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(self.url)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPStatusError as e:
            raise SourceError(f"upstream returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise SourceError(f"upstream unreachable: {e}") from e
        except ValueError as e:
            raise SourceError(f"upstream sent invalid JSON: {e}") from e
        records = parse_payload(payload)
        logger.debug("source_fetched", url=self.url, rounds=len(records),
                     latest=records[0].sid if records else None)
        return records
