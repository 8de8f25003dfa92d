"""Protocol definition for per-test isolation strategies."""

from contextlib import AbstractContextManager
from typing import Any, Protocol


class IsolationStrategyProtocol(Protocol):
    """Protocol for the ways a test's database writes are undone."""

    def isolate(self) -> AbstractContextManager[Any]:
        """
        Return a context manager that surrounds exactly one test body.

        Whatever the body writes must be gone once the context exits, on
        success and on failure. An exception raised by the body must leave
        the context unchanged.

        Returns:
            Context manager yielding whatever handle the test should use
            (connections for transactional isolation, None for cleanup).
        """
        ...
