import logging
import threading
from typing import Any, Dict

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url

from txn_harness.config import get_db_settings
from txn_harness.errors import DatabaseNotConfiguredError

logger = logging.getLogger(__name__)

# --- Lazy, per-target engine registry ---

_engines: Dict[str, Engine] = {}
_lock = threading.Lock()


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """
    Make pysqlite honour SQLAlchemy transaction boundaries and foreign keys.

    SQLAlchemy documented recipe: driver-level transaction handling is off
    and BEGIN is emitted when the Connection begins.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(connection):
        connection.exec_driver_sql("BEGIN")


def create_harness_engine(url: str, **engine_kwargs: Any) -> Engine:
    """
    Create an engine suitable for rollback-isolated tests.

    Args:
        url: SQLAlchemy database URL.
        **engine_kwargs: Passed through to ``create_engine``.

    Returns:
        A new Engine. SQLite engines get foreign keys and working savepoints.
    """
    backend = make_url(url).get_backend_name()
    if backend == "sqlite":
        connect_args = dict(engine_kwargs.pop("connect_args", {}) or {})
        connect_args.setdefault("check_same_thread", False)
        engine = create_engine(url, connect_args=connect_args, **engine_kwargs)
        _enable_sqlite_savepoints(engine)
    else:
        engine_kwargs.setdefault("pool_pre_ping", True)
        engine = create_engine(url, **engine_kwargs)

    logger.debug("Created %s engine for %r", backend, engine.url)
    return engine


def get_engine(target: str = "integration") -> Engine:
    """
    Return the cached engine for a database target, creating it on first use.

    Raises:
        DatabaseNotConfiguredError: If the target has no URL.
    """
    with _lock:
        engine = _engines.get(target)
        if engine is None:
            settings = get_db_settings().target(target)
            if not settings.is_configured:
                raise DatabaseNotConfiguredError(target, settings.env_var)
            engine = create_harness_engine(settings.url, **settings.engine_kwargs())
            _engines[target] = engine
        return engine


def dispose_engines() -> None:
    """Dispose every cached engine and forget it."""
    with _lock:
        for target, engine in _engines.items():
            logger.debug("Disposing engine for target '%s'", target)
            engine.dispose()
        _engines.clear()
