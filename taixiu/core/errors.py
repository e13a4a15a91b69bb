class TaiXiuError(Exception):
    pass


class SourceError(TaiXiuError):
    """Upstream feed unreachable, non-2xx or missing fields."""


class InvalidRoundError(TaiXiuError, ValueError):
    pass


class PersistenceError(TaiXiuError):
    pass
