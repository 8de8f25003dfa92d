"""Dependency container wiring settings, engines and isolation strategies."""

from typing import Dict, List, Optional, Sequence, Union

from sqlalchemy import MetaData
from sqlalchemy.engine import Engine

from txn_harness.config import get_db_settings, get_harness_settings
from txn_harness.db import SQLRecorder, dispose_engines, get_engine
from txn_harness.errors import ConfigurationError
from txn_harness.isolation import CleanupIsolation, TableCleaner, TransactionIsolation
from txn_harness.isolation.cleanup import TableLike
from txn_harness.protocols import IsolationStrategyProtocol


class DependencyContainer:
    """Container for managing harness dependencies with lazy instantiation."""

    def __init__(self):
        """Initialize the container with empty caches."""
        self._cleanup_plans: Dict[str, Union[MetaData, List[TableLike]]] = {}

    def get_engine(self, target: str = "integration") -> Engine:
        """Return the shared engine for a database target."""
        return get_engine(target)

    def is_configured(self, target: str) -> bool:
        return get_db_settings().target(target).is_configured

    def register_cleanup(
        self, target: str, tables: Union[MetaData, Sequence[TableLike]]
    ) -> None:
        """
        Register the tables emptied after each test in cleanup isolation mode.

        Args:
            target: Database target the tables live in.
            tables: A MetaData (ordered from its foreign keys) or an explicit
                child-before-parent sequence of tables or table names.
        """
        if isinstance(tables, MetaData):
            self._cleanup_plans[target] = tables
        else:
            self._cleanup_plans[target] = list(tables)

    def get_table_cleaner(self, target: str = "integration") -> TableCleaner:
        """Build the cleaner for the tables registered under ``target``."""
        plan = self._cleanup_plans.get(target)
        if plan is None:
            raise ConfigurationError(
                f"No cleanup tables registered for target '{target}'; call "
                "register_cleanup() from conftest.py when TXN_HARNESS_ISOLATION=cleanup."
            )
        engine = self.get_engine(target)
        if isinstance(plan, MetaData):
            return TableCleaner.from_metadata(engine, plan)
        return TableCleaner(engine, plan)

    def get_isolation_strategy(
        self, targets: Sequence[str] = ("integration",)
    ) -> IsolationStrategyProtocol:
        """
        Get the isolation strategy selected by TXN_HARNESS_ISOLATION.

        Args:
            targets: Database targets the test touches.

        Returns:
            TransactionIsolation over the targets' engines, or CleanupIsolation
            over their registered cleaners.
        """
        mode = get_harness_settings().isolation
        if mode == "cleanup":
            return CleanupIsolation([self.get_table_cleaner(t) for t in targets])
        return TransactionIsolation([self.get_engine(t) for t in targets])

    def get_sql_recorder(self, dialect_url: str = "sqlite://") -> SQLRecorder:
        """Return a fresh mocked connection for the given dialect."""
        return SQLRecorder(dialect_url)

    def reset(self) -> None:
        """Dispose engines and forget registered cleanup plans."""
        dispose_engines()
        self._cleanup_plans.clear()


# Global container instance
_container: Optional[DependencyContainer] = None


def get_container() -> DependencyContainer:
    """Get the global dependency container instance."""
    global _container
    if _container is None:
        _container = DependencyContainer()
    return _container
