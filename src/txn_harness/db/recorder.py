"""Mocked connection that records compiled SQL instead of executing it."""

import logging
from typing import Any, List, Optional, Tuple

from sqlalchemy import create_mock_engine
from sqlalchemy.engine.mock import MockConnection

logger = logging.getLogger(__name__)


class SQLRecorder:
    """
    Stand-in for a database connection used by model and plugin tests.

    Statements handed to the mock engine are compiled for the dialect of
    ``dialect_url`` and kept in order, so tests can assert on generated SQL
    without a live database.
    """

    def __init__(self, dialect_url: str = "sqlite://"):
        self.dialect_url = dialect_url
        self.statements: List[str] = []
        self.parameters: List[Optional[Any]] = []
        self._engine: MockConnection = create_mock_engine(dialect_url, self._record)

    def _record(self, statement: Any, parameters: Optional[Any] = None, *args, **kwargs):
        if isinstance(statement, str):
            sql = statement
        else:
            sql = str(statement.compile(dialect=self._engine.dialect))
        sql = sql.strip()
        logger.debug("Recorded SQL: %s", sql)
        self.statements.append(sql)
        self.parameters.append(parameters)

    @property
    def dialect(self):
        return self._engine.dialect

    def connect(self) -> MockConnection:
        """Return the mock engine; it accepts ``execute`` like a connection."""
        return self._engine

    def execute(self, statement: Any, parameters: Optional[Any] = None) -> None:
        self._engine.execute(statement, parameters)

    def clear(self) -> None:
        self.statements.clear()
        self.parameters.clear()

    @property
    def sql(self) -> str:
        return ";\n".join(self.statements)

    @property
    def recorded(self) -> List[Tuple[str, Optional[Any]]]:
        return list(zip(self.statements, self.parameters))

    def __len__(self) -> int:
        return len(self.statements)
