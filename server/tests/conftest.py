# pyright: reportUnusedFunction=false
import os
import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# The suite always runs against a private in-memory database.
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ.pop("OWNER_OPEN_ID", None)
for _name in ("ENV", "API_KEY_SECRET", "API_KEY_MASTER_KEY", "IMAGES_LIST_DEFAULT_LIMIT"):
    os.environ.pop(_name, None)


def _ensure_test_schema() -> None:
    from rpstudio.core.config import get_settings
    from rpstudio.db.base import Base
    from rpstudio.db.session import acquire, reset_store

    get_settings.cache_clear()
    reset_store()

    handle = acquire()
    assert handle is not None, "test database must be reachable"
    Base.metadata.create_all(bind=handle.engine)


_ensure_test_schema()


@pytest.fixture(autouse=True)
def _isolate_db() -> None:
    from rpstudio.db.base import Base
    from rpstudio.db.session import acquire

    handle = acquire()
    if handle is None:
        return

    tables = list(Base.metadata.sorted_tables)
    with handle.engine.begin() as conn:
        for t in reversed(tables):
            _ = conn.execute(t.delete())


@pytest.fixture
def unavailable_store(monkeypatch: pytest.MonkeyPatch):
    """Make every operation see the store as unavailable for the duration of a test."""
    from rpstudio.db import session

    monkeypatch.setattr(session, "acquire", lambda: None)
    yield


@pytest.fixture
def owner_settings(monkeypatch: pytest.MonkeyPatch):
    from rpstudio.core.config import get_settings

    monkeypatch.setenv("OWNER_OPEN_ID", "owner-open-id")
    get_settings.cache_clear()
    yield "owner-open-id"
    get_settings.cache_clear()
