TAI = 'TAI'  # high, sum 11..18
XIU = 'XIU'  # low, sum 3..10
LABELS = (TAI, XIU)


def classify(total: int) -> str:
    return TAI if total > 10 else XIU


def opposite(label: str) -> str:
    return XIU if label == TAI else TAI


def normalize_label(value: str | None) -> str | None:
    """Map the upstream spellings ('Tài', 'tai', 'T', 'High', ...) to TAI/XIU."""
    if value is None:
        return None
    v = str(value).strip().lower()
    if v in ('tài', 'tai', 't', 'high', 'h'):
        return TAI
    if v in ('xỉu', 'xiu', 'x', 'low', 'l'):
        return XIU
    return None


def is_valid_dice(d: int) -> bool:
    return isinstance(d, int) and not isinstance(d, bool) and 1 <= d <= 6
