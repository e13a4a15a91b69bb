import random

import pytest

from taixiu.config import Tuning
from taixiu.core.history import History, RoundRecord
from taixiu.engine.engine import PredictionEngine
from taixiu.engine.state import LearningStore


@pytest.fixture
def tuning():
    return Tuning(jitter=0)


@pytest.fixture
def store(tuning):
    return LearningStore(tuning)


@pytest.fixture
def engine(tuning):
    return PredictionEngine(tuning, rng=random.Random(7))


@pytest.fixture
def hist():
    """History from newest-first labels, e.g. hist('TTXX') or hist(['TAI', 'XIU'])."""
    def make(labels):
        labels = [{'T': 'TAI', 'X': 'XIU'}.get(x, x) for x in labels]
        return History.from_labels(labels)
    return make


@pytest.fixture
def make_rounds():
    """Newest-first RoundRecords from (sid, d1, d2, d3) tuples."""
    def make(*rows):
        return [RoundRecord.from_dice(*row) for row in rows]
    return make
