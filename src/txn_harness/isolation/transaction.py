"""Per-test transactions that are always rolled back.

Every scope here follows the same contract: a transaction begins before the
test body runs, the body runs inside it, and the transaction is rolled back
on every exit path. Nothing is ever committed, and an exception raised by
the body propagates after the rollback has happened.
"""

from __future__ import annotations

import functools
import logging
from contextlib import ExitStack, contextmanager
from typing import Any, Callable, Iterator, List, Sequence, TypeVar

from sqlalchemy import event
from sqlalchemy.engine import Connection, Engine, RootTransaction
from sqlalchemy.orm import Session

from txn_harness.errors import TransactionCommitRefusedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def rollback_transaction(connection: Connection) -> Iterator[Connection]:
    """
    Run the enclosed block inside a transaction that is always rolled back.

    Args:
        connection: An open connection with no transaction in progress.

    Yields:
        The same connection, now inside the test transaction.

    Raises:
        sqlalchemy.exc.InvalidRequestError: If the connection already has a
            transaction. Errors from ``begin()`` are not retried.
        TransactionCommitRefusedError: If the block commits the transaction.
            The commit is stopped before it reaches the database.

    If the block raises, its exception is the one that propagates; a rollback
    error at that point is logged instead.
    """
    transaction = connection.begin()
    refused: List[Connection] = []

    def _refuse_commit(conn: Connection) -> None:
        refused.append(conn)
        raise TransactionCommitRefusedError(conn.engine.url)

    event.listen(connection, "commit", _refuse_commit)
    logger.debug("Began test transaction on %r", connection.engine.url)
    try:
        yield connection
    except BaseException:
        try:
            _end_test_transaction(transaction, bool(refused))
        except Exception:
            logger.warning("Rolling back the test transaction failed after a failing test", exc_info=True)
        raise
    else:
        _end_test_transaction(transaction, bool(refused))
        if refused:
            # The block swallowed the refusal.
            raise TransactionCommitRefusedError(connection.engine.url)
    finally:
        event.remove(connection, "commit", _refuse_commit)


def _end_test_transaction(transaction: RootTransaction, commit_refused: bool) -> None:
    # A refused commit leaves the transaction inactive but still open on the
    # database. A rollback the block did itself leaves nothing to do.
    if transaction.is_active or commit_refused:
        transaction.rollback()
        logger.debug("Rolled back test transaction on %r", transaction.connection.engine.url)


@contextmanager
def rollback_transactions(connections: Sequence[Connection]) -> Iterator[List[Connection]]:
    """
    Multi-database form of :func:`rollback_transaction`.

    Transactions are opened in the order given and rolled back in reverse.
    If opening one fails, those already opened are rolled back before the
    error propagates. If a rollback fails the others still run.
    """
    with ExitStack() as stack:
        yield [stack.enter_context(rollback_transaction(conn)) for conn in connections]


def session_for(connection: Connection, savepoint: bool = False) -> Session:
    """
    Bind a new ORM session to a connection that may already be in a transaction.

    Args:
        connection: The connection the session should use.
        savepoint: When True, ``session.commit()`` and ``session.rollback()``
            act on a SAVEPOINT so code under test can use both freely. When
            False, ``commit()`` only flushes and the outer transaction stays
            open until the final rollback.
    """
    join_mode = "create_savepoint" if savepoint else "rollback_only"
    return Session(
        bind=connection,
        join_transaction_mode=join_mode,
        autoflush=False,
        expire_on_commit=False,
    )


@contextmanager
def rollback_session(connection: Connection, savepoint: bool = False) -> Iterator[Session]:
    """Yield an ORM session that lives inside a rolled-back test transaction."""
    with rollback_transaction(connection):
        session = session_for(connection, savepoint)
        try:
            yield session
        finally:
            session.close()


class TransactionalWrapper:
    """
    Wraps test bodies so each call runs inside rolled-back transactions.

    Example:
        wrapper = TransactionalWrapper(conn)

        @wrapper
        def test_insert():
            conn.execute(artists.insert().values(name="Nina"))
    """

    def __init__(self, *connections: Connection):
        if not connections:
            raise ValueError("TransactionalWrapper needs at least one connection")
        self.connections = connections

    def scope(self):
        """Context manager covering every wrapped connection."""
        return rollback_transactions(self.connections)

    def run(self, body: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``body`` once inside the scope and return its result."""
        with self.scope():
            return body(*args, **kwargs)

    def __call__(self, body: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(body)
        def wrapped(*args: Any, **kwargs: Any) -> T:
            return self.run(body, *args, **kwargs)

        return wrapped

    @classmethod
    def for_engines(cls, stack: ExitStack, engines: Sequence[Engine]) -> "TransactionalWrapper":
        """Open one connection per engine, closed when ``stack`` unwinds."""
        connections = [stack.enter_context(engine.connect()) for engine in engines]
        return cls(*connections)
