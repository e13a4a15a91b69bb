import pytest

from taixiu.core.errors import InvalidRoundError
from taixiu.core.history import RoundRecord, dedupe_newest_first
from taixiu.core.labels import TAI, XIU, classify, is_valid_dice, normalize_label, opposite


def test_label_mapping():
    assert classify(10) == XIU
    assert classify(11) == TAI
    r = RoundRecord.from_dice(1, 6, 4, 1)
    assert r.total == 11 and r.label == TAI
    r = RoundRecord.from_dice(2, 1, 1, 1)
    assert r.total == 3 and r.label == XIU
    r = RoundRecord.from_dice(3, 6, 6, 6)
    assert r.total == 18 and r.label == TAI


def test_invalid_dice():
    with pytest.raises(InvalidRoundError):
        RoundRecord.from_dice(1, 0, 3, 4)
    with pytest.raises(ValueError):
        RoundRecord.from_dice(1, 7, 3, 4)
    assert not is_valid_dice(True)
    assert is_valid_dice(6)


def test_normalize_and_opposite():
    assert normalize_label('Tài') == TAI
    assert normalize_label('xỉu') == XIU
    assert normalize_label('?') is None
    assert opposite(TAI) == XIU and opposite(XIU) == TAI


def test_dedupe_keeps_newest_first():
    rows = [RoundRecord.from_dice(s, 1, 2, 3) for s in (5, 7, 6, 7)]
    assert [r.sid for r in dedupe_newest_first(rows)] == [7, 6, 5]
