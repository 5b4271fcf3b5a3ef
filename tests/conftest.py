import pytest

from fakes import NOW, FakeTicker, RecordingSleep
from prep_tutor.models import SessionConfig, Subject
from prep_tutor.session import PracticeSession


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tutor.db")
    return db_path


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def make_session(clock):
    def factory(config=None, **kwargs):
        config = config or SessionConfig(subject=Subject.MATH, time_limit_seconds=0)
        kwargs.setdefault("ticker_factory", FakeTicker)
        kwargs.setdefault("sleep", RecordingSleep())
        kwargs.setdefault("clock", clock)
        return PracticeSession(config, **kwargs)
    return factory
