"""unittest integration for suites that are not written as pytest functions."""

import unittest
from typing import List, Optional, Sequence

from sqlalchemy.engine import Connection
from sqlalchemy.orm import Session

from txn_harness.config import get_harness_settings
from txn_harness.container import get_container
from txn_harness.isolation import session_for


class TransactionalTestCase(unittest.TestCase):
    """
    TestCase whose database writes are undone after every test method.

    Subclasses pick the databases with ``db_targets``. ``setUp`` opens the
    isolation scope and registers its exit as a cleanup, so it runs after
    ``tearDown`` whether the test passed, failed or errored.
    """

    db_targets: Sequence[str] = ("integration",)

    db_connections: Optional[List[Connection]] = None
    db_connection: Optional[Connection] = None

    def setUp(self):
        super().setUp()
        container = get_container()
        for target in self.db_targets:
            if not container.is_configured(target):
                self.skipTest(f"database target '{target}' not configured")
        strategy = get_container().get_isolation_strategy(tuple(self.db_targets))
        self.db_connections = self.enterContext(strategy.isolate())
        if self.db_connections:
            self.db_connection = self.db_connections[0]

    def make_session(self) -> Session:
        """ORM session on the first connection, closed at cleanup."""
        if self.db_connection is None:
            raise RuntimeError("No isolated connection; cleanup isolation has none to share.")
        session = session_for(
            self.db_connection, savepoint=get_harness_settings().savepoint_sessions
        )
        self.addCleanup(session.close)
        return session
