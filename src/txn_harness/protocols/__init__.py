"""Protocol definitions for core interfaces maintained in this package."""

from .isolation_protocol import IsolationStrategyProtocol

__all__ = [
    "IsolationStrategyProtocol",
]
