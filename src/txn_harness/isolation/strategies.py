"""The two isolation strategies the plugin can apply around a test."""

from __future__ import annotations

import logging
from contextlib import ExitStack, contextmanager
from typing import Iterator, List, Optional, Sequence

from sqlalchemy.engine import Connection, Engine

from .cleanup import TableCleaner
from .transaction import TransactionalWrapper

logger = logging.getLogger(__name__)


class TransactionIsolation:
    """Opens a connection per engine and rolls every one of them back."""

    def __init__(self, engines: Sequence[Engine]):
        if not engines:
            raise ValueError("TransactionIsolation needs at least one engine")
        self.engines = list(engines)

    @contextmanager
    def isolate(self) -> Iterator[List[Connection]]:
        with ExitStack() as stack:
            wrapper = TransactionalWrapper.for_engines(stack, self.engines)
            with wrapper.scope() as connections:
                yield connections


class CleanupIsolation:
    """
    Empties tables after the test, for code that writes from another process.

    Cleanup runs whether the test passed or failed. When both the test and
    the cleanup fail, the test's error is the one reported and the cleanup
    error is logged.
    """

    def __init__(self, cleaners: Sequence[TableCleaner]):
        self.cleaners = list(cleaners)

    def clean_all(self) -> None:
        for cleaner in self.cleaners:
            cleaner.clean()

    @contextmanager
    def isolate(self) -> Iterator[Optional[List[Connection]]]:
        try:
            yield None
        except BaseException:
            try:
                self.clean_all()
            except Exception:
                logger.warning("Table cleanup failed after a failing test", exc_info=True)
            raise
        else:
            self.clean_all()
