import httpx
import pytest
from structlog.testing import capture_logs

from taixiu.core.errors import SourceError
from taixiu.core.labels import TAI, XIU
from taixiu.source import RoundSource, parse_payload

SUN_PAYLOAD = {
    "phien_hien_tai": 2003,
    "ket_qua": "Tài",
    "xuc_xac_1": 6, "xuc_xac_2": 5, "xuc_xac_3": 4, "tong": 15,
    "lich_su_phien": [
        {"phien": 2002, "ket_qua": "Xỉu", "xuc_xac_1": 1, "xuc_xac_2": 2, "xuc_xac_3": 3, "tong": 6},
        {"phien": 2001, "ket_qua": "Tài", "xuc_xac_1": 4, "xuc_xac_2": 4, "xuc_xac_3": 4, "tong": 12},
    ],
}

DATA_PAYLOAD = {
    "data": [
        {"Phien": 51, "Xuc_xac_1": 2, "Xuc_xac_2": 2, "Xuc_xac_3": 2, "Tong": 6, "Ket_qua": "Xỉu"},
        {"Phien": 52, "Xuc_xac_1": 6, "Xuc_xac_2": 6, "Xuc_xac_3": 1, "Tong": 13, "Ket_qua": "Tài"},
        {"sid": 50, "d1": 3, "d2": 3, "d3": 5},
    ]
}


def source_for(handler):
    return RoundSource("https://feed.test/sunlon", timeout=1, transport=httpx.MockTransport(handler))


def test_parse_sun_payload():
    rows = parse_payload(SUN_PAYLOAD)
    assert [r.sid for r in rows] == [2003, 2002, 2001]
    assert [r.label for r in rows] == [TAI, XIU, TAI]
    assert rows[0].dice == (6, 5, 4)


def test_parse_data_payload_sorts_newest_first():
    rows = parse_payload(DATA_PAYLOAD)
    assert [r.sid for r in rows] == [52, 51, 50]
    assert rows[0].label == TAI and rows[1].label == XIU and rows[2].total == 11


@pytest.mark.parametrize("payload", [
    [],
    {"unexpected": 1},
    {"data": [{"Phien": 1, "Xuc_xac_1": 7, "Xuc_xac_2": 1, "Xuc_xac_3": 1}]},
    {"data": [{"Phien": 1, "Xuc_xac_1": 3, "Xuc_xac_2": 1}]},
    {"data": [{"Phien": "abc", "Xuc_xac_1": 3, "Xuc_xac_2": 1, "Xuc_xac_3": 1}]},
    {"lich_su_phien": "nope"},
    {"data": [{"Phien": float("inf"), "Xuc_xac_1": 3, "Xuc_xac_2": 1, "Xuc_xac_3": 1}]},
    {"data": [{"Phien": 1, "Xuc_xac_1": float("nan"), "Xuc_xac_2": 1, "Xuc_xac_3": 1}]},
    {"data": [{"Phien": 1, "Xuc_xac_1": 3.7, "Xuc_xac_2": 1, "Xuc_xac_3": 1}]},
])
def test_malformed_payloads(payload):
    with pytest.raises(SourceError):
        parse_payload(payload)


def test_integral_floats_are_accepted():
    rows = parse_payload({"data": [{"Phien": 7.0, "Xuc_xac_1": 6.0, "Xuc_xac_2": 5, "Xuc_xac_3": 4}]})
    assert rows[0].sid == 7 and rows[0].dice == (6, 5, 4)


def test_reported_result_is_checked_against_dice():
    payload = {"data": [{"Phien": 9, "Xuc_xac_1": 1, "Xuc_xac_2": 1, "Xuc_xac_3": 1, "Ket_qua": "Tài"}]}
    with capture_logs() as logs:
        rows = parse_payload(payload)
    assert rows[0].label == XIU
    assert [e["event"] for e in logs] == ["result_mismatch"]
    with capture_logs() as logs:
        parse_payload(SUN_PAYLOAD)
    assert logs == []


@pytest.mark.asyncio
async def test_fetch_ok():
    src = source_for(lambda request: httpx.Response(200, json=SUN_PAYLOAD))
    rows = await src.fetch()
    assert rows[0].sid == 2003 and len(rows) == 3


@pytest.mark.asyncio
async def test_fetch_http_error():
    src = source_for(lambda request: httpx.Response(502, text="bad gateway"))
    with pytest.raises(SourceError, match="502"):
        await src.fetch()


@pytest.mark.asyncio
async def test_fetch_invalid_json():
    src = source_for(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(SourceError):
        await src.fetch()


@pytest.mark.asyncio
async def test_fetch_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SourceError):
        await source_for(handler).fetch()
