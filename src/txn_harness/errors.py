"""Exception types raised by txn-harness itself.

Errors coming from SQLAlchemy, the database driver or a test body are never
wrapped in these; they propagate unchanged.
"""

from typing import Iterable


class HarnessError(Exception):
    """Base class for errors raised by the harness."""


class ConfigurationError(HarnessError):
    """Raised when harness settings or the config file are invalid."""


class DatabaseNotConfiguredError(HarnessError, ValueError):
    """Raised when a database target has no connection URL."""

    def __init__(self, target: str, env_var: str):
        self.target = target
        self.env_var = env_var
        super().__init__(
            f"Database target '{target}' is not configured. Set {env_var} "
            "or add it to the TXN_HARNESS_CONFIG_FILE."
        )


class CyclicForeignKeyError(HarnessError, ValueError):
    """Raised when foreign keys between tables form a cycle.

    Generic row cleanup cannot order such tables; a schema-specific cleanup
    callable is needed instead.
    """

    def __init__(self, tables: Iterable[str]):
        self.tables = sorted(tables)
        super().__init__(
            "Cannot derive a cleanup order: foreign keys form a cycle involving "
            f"tables {', '.join(self.tables)}"
        )


class CleanupOrderError(HarnessError, ValueError):
    """Raised when a cleanup order deletes a parent table before its child."""

    def __init__(self, parent: str, child: str):
        self.parent = parent
        self.child = child
        super().__init__(
            f"Table '{parent}' is cleaned before '{child}', which references it"
        )


class TransactionCommitRefusedError(HarnessError):
    """Raised when code inside a rolled-back test scope commits the test transaction.

    The commit is refused before it reaches the database. Code under test that
    needs commit semantics should use a savepoint (``begin_nested()``) or a
    session created with ``savepoint=True``.
    """

    def __init__(self, url):
        self.url = url
        super().__init__(
            f"Commit of the test transaction on {url!r} refused; nothing done inside "
            "a rolled-back test scope may be committed"
        )
