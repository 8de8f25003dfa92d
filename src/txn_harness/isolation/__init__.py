"""Test isolation: rolled-back transactions and ordered table cleanup."""

from .cleanup import TableCleaner, check_cleanup_order, cleanup_order
from .strategies import CleanupIsolation, TransactionIsolation
from .transaction import (
    TransactionalWrapper,
    rollback_session,
    rollback_transaction,
    rollback_transactions,
    session_for,
)

__all__ = [
    "CleanupIsolation",
    "TableCleaner",
    "TransactionalWrapper",
    "TransactionIsolation",
    "check_cleanup_order",
    "cleanup_order",
    "rollback_session",
    "rollback_transaction",
    "rollback_transactions",
    "session_for",
]
