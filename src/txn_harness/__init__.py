"""txn-harness - self-cleaning database tests for SQLAlchemy applications."""

from .container import get_container
from .isolation import (
    CleanupIsolation,
    TableCleaner,
    TransactionalWrapper,
    TransactionIsolation,
    check_cleanup_order,
    cleanup_order,
    rollback_session,
    rollback_transaction,
    rollback_transactions,
)


__all__ = [
    "CleanupIsolation",
    "TableCleaner",
    "TransactionalWrapper",
    "TransactionIsolation",
    "check_cleanup_order",
    "cleanup_order",
    "get_container",
    "rollback_session",
    "rollback_transaction",
    "rollback_transactions",
]
