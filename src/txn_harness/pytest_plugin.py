"""
pytest plugin: per-test database isolation and suite conventions.

Loaded through the ``pytest11`` entry point. Database fixtures run inside the
isolation strategy chosen by TXN_HARNESS_ISOLATION:

- transaction (default): each test gets one connection per target, each
  inside a transaction that is rolled back at teardown.
- cleanup: rows are deleted from the registered tables after the test, for
  systems under test that write through their own connections.
"""

import importlib.util
import logging
import os
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence, Tuple, Union

import pytest
from sqlalchemy import MetaData
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.orm import Session

from txn_harness.config import (
    DBSettings,
    HarnessSettings,
    clear_settings_cache,
    get_db_settings,
    get_harness_settings,
)
from txn_harness.container import get_container
from txn_harness.db import SQLRecorder
from txn_harness.errors import ConfigurationError
from txn_harness.isolation import TableCleaner, session_for
from txn_harness.isolation.cleanup import TableLike
from txn_harness.suites import ADAPTER_ENV

logger = logging.getLogger(__name__)

DEFAULT_TARGETS: Tuple[str, ...] = ("integration",)

# SQLAlchemy backend names that differ from the adapter names used here
_BACKEND_ADAPTERS = {"postgresql": "postgres"}


def _load_adapter_extra(path: Path) -> None:
    """Import a user-supplied Python file before any test is collected."""
    if not path.is_file():
        raise ConfigurationError(f"TXN_HARNESS_ADAPTER_EXTRA file not found: {path}")
    spec = importlib.util.spec_from_file_location("txn_harness_adapter_extra", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    logger.info("Loaded adapter extra file %s", path)


def current_adapter() -> Optional[str]:
    """
    Name of the adapter the session runs against.

    Taken from TXN_HARNESS_ADAPTER when the suite runner set it, otherwise
    derived from the integration URL.
    """
    adapter = os.getenv(ADAPTER_ENV)
    if adapter:
        return adapter
    url = get_db_settings().target("integration").url
    if not url:
        return None
    backend = make_url(url).get_backend_name()
    return _BACKEND_ADAPTERS.get(backend, backend)


def _marker_targets(item: pytest.Item) -> Tuple[str, ...]:
    marker = item.get_closest_marker("isolate_db")
    if marker is not None and marker.args:
        return tuple(marker.args)
    return DEFAULT_TARGETS


def _skip_unconfigured(targets: Sequence[str]) -> None:
    settings = get_db_settings()
    for target in targets:
        resolved = settings.target(target)
        if not resolved.is_configured:
            pytest.skip(f"database target '{target}' not configured ({resolved.env_var} is unset)")


# =============================================================================
# Hooks
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "isolate_db(*targets): isolate the test's database writes on the given "
        "targets (default: integration) even if it requests no database fixture.",
    )
    config.addinivalue_line(
        "markers",
        "requires_db(target): skip the test unless the database target is configured.",
    )
    config.addinivalue_line(
        "markers",
        "pending(reason, adapters=None): expected failure on the given adapters "
        "(all when omitted); ignored when TXN_HARNESS_NO_PENDING is set.",
    )

    clear_settings_cache()
    settings = get_harness_settings()
    logging.getLogger("txn_harness").setLevel(settings.log_level)
    if settings.adapter_extra is not None:
        _load_adapter_extra(settings.adapter_extra)


def pytest_unconfigure(config: pytest.Config) -> None:
    get_container().reset()
    clear_settings_cache()


def pytest_collection_modifyitems(config: pytest.Config, items: List[pytest.Item]) -> None:
    settings = get_harness_settings()
    db_settings = get_db_settings()
    adapter = current_adapter()

    for item in items:
        for marker in item.iter_markers("requires_db"):
            target = marker.args[0] if marker.args else "integration"
            resolved = db_settings.target(target)
            if not resolved.is_configured:
                item.add_marker(
                    pytest.mark.skip(
                        reason=f"database target '{target}' not configured ({resolved.env_var} is unset)"
                    )
                )

        pending = item.get_closest_marker("pending")
        if pending is None or settings.no_pending:
            continue
        adapters = pending.kwargs.get("adapters")
        if isinstance(adapters, str):
            adapters = (adapters,)
        if adapters is not None and adapter not in adapters:
            continue
        reason = pending.args[0] if pending.args else pending.kwargs.get("reason", "")
        item.add_marker(pytest.mark.xfail(reason=f"pending: {reason}", strict=False))


def pytest_terminal_summary(terminalreporter, exitstatus, config: pytest.Config) -> None:
    if not get_harness_settings().warn_skipped:
        return
    skipped = terminalreporter.stats.get("skipped", [])
    if not skipped:
        return
    logger.warning("%d test(s) were skipped", len(skipped))
    terminalreporter.write_sep("=", f"txn-harness: {len(skipped)} skipped test(s)", yellow=True)
    for report in skipped:
        reason = ""
        if isinstance(report.longrepr, tuple) and len(report.longrepr) == 3:
            reason = report.longrepr[2]
        terminalreporter.write_line(f"SKIPPED {report.nodeid}: {reason}")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def harness_settings() -> HarnessSettings:
    """Harness flags for this session."""
    return get_harness_settings()


@pytest.fixture(scope="session")
def db_settings() -> DBSettings:
    """Database targets for this session."""
    return get_db_settings()


@pytest.fixture(autouse=True)
def _txn_harness_isolate_marker(request: pytest.FixtureRequest, harness_settings: HarnessSettings):
    """Apply isolation to marked tests, or to every test when TXN_HARNESS_ISOLATE_ALL is set."""
    marker = request.node.get_closest_marker("isolate_db")
    if marker is not None or harness_settings.isolate_all:
        request.getfixturevalue("db_isolation")


@pytest.fixture
def db_isolation(request: pytest.FixtureRequest) -> Iterator[Optional[List[Connection]]]:
    """
    Surround the test with the configured isolation strategy.

    Yields the connections opened for the test (transaction mode) or None
    (cleanup mode). Test failures propagate unchanged after the rollback or
    cleanup.
    """
    targets = _marker_targets(request.node)
    _skip_unconfigured(targets)
    strategy = get_container().get_isolation_strategy(targets)
    with strategy.isolate() as connections:
        yield connections


@pytest.fixture(scope="session")
def db_engine(db_settings: DBSettings) -> Engine:
    """Engine for the integration target."""
    _skip_unconfigured(DEFAULT_TARGETS)
    return get_container().get_engine("integration")


@pytest.fixture
def db_connections(db_isolation, request: pytest.FixtureRequest) -> Iterator[List[Connection]]:
    """
    One connection per target named by the ``isolate_db`` marker.

    In transaction mode all of them are rolled back after the test. In
    cleanup mode these are plain connections and writes must be committed.
    """
    if db_isolation is not None:
        yield db_isolation
        return
    engines = [get_container().get_engine(t) for t in _marker_targets(request.node)]
    connections = [engine.connect() for engine in engines]
    try:
        yield connections
    finally:
        for conn in connections:
            conn.close()


@pytest.fixture
def db_connection(db_connections: List[Connection]) -> Connection:
    """Connection to the first isolated target."""
    return db_connections[0]


@pytest.fixture
def db_session(db_connection: Connection, harness_settings: HarnessSettings) -> Iterator[Session]:
    """
    ORM session on ``db_connection``.

    With TXN_HARNESS_SAVEPOINT_SESSIONS the session commits and rolls back
    through savepoints; otherwise commit() never reaches the test transaction.
    """
    session = session_for(db_connection, savepoint=harness_settings.savepoint_sessions)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def table_cleaner(db_engine: Engine) -> Iterator[Callable[..., TableCleaner]]:
    """
    Factory for cleaners that empty tables at teardown.

    Usage:
        def test_server_writes(table_cleaner):
            table_cleaner(["albums", "artists"])
            ...
    """
    cleaners: List[TableCleaner] = []

    def _make(
        tables: Union[MetaData, Sequence[TableLike]], engine: Optional[Engine] = None
    ) -> TableCleaner:
        target_engine = engine or db_engine
        if isinstance(tables, MetaData):
            cleaner = TableCleaner.from_metadata(target_engine, tables)
        else:
            cleaner = TableCleaner(target_engine, tables)
        cleaners.append(cleaner)
        return cleaner

    yield _make

    for cleaner in cleaners:
        cleaner.clean()


@pytest.fixture
def sql_recorder() -> SQLRecorder:
    """Mocked connection recording the SQL it is asked to execute."""
    return get_container().get_sql_recorder()
