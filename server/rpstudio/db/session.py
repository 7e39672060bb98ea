from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from rpstudio.core.config import get_settings
from rpstudio.core.errors import StoreUnavailable


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreHandle:
    engine: Engine
    sessions: sessionmaker[Session]


_handle: StoreHandle | None = None
_handle_lock = threading.Lock()


def _build_engine(url: str) -> Engine:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:"):
        # One shared connection, otherwise every checkout would see a fresh empty database.
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, pool_pre_ping=True)


def _connect(url: str) -> StoreHandle | None:
    try:
        engine = _build_engine(url)
        with engine.connect() as conn:
            _ = conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, ImportError, ValueError) as exc:
        logger.warning("Failed to connect to database: %s: %s", type(exc).__name__, exc)
        return None

    sessions = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return StoreHandle(engine=engine, sessions=sessions)


def acquire() -> StoreHandle | None:
    """Return the process-wide store handle, connecting on first use.

    ``None`` means the store is unavailable: either no ``DATABASE_URL`` is
    configured, or the connection attempt failed. A failed attempt is not
    cached, so the next call tries again.
    """
    global _handle

    handle = _handle
    if handle is not None:
        return handle

    url = get_settings().database_url
    if not url:
        return None

    with _handle_lock:
        if _handle is None:
            _handle = _connect(url)
        return _handle


def open_session(operation: str | None = None) -> Session:
    handle = acquire()
    if handle is None:
        raise StoreUnavailable(operation)
    return handle.sessions()


def reset_store() -> None:
    """Drop the cached handle so the next ``acquire()`` reconnects with current settings."""
    global _handle

    with _handle_lock:
        handle = _handle
        _handle = None
    if handle is not None:
        handle.engine.dispose()
