"""Row cleanup for tests whose database work happens in another process.

When the system under test holds its own connections, a per-test
transaction cannot cover its writes. Tables are emptied after each test
instead, children before the parents they reference.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence, Set, Union

from sqlalchemy import MetaData, Table, delete, table
from sqlalchemy.engine import Engine
from sqlalchemy.schema import sort_tables
from sqlalchemy.sql.expression import TableClause

from txn_harness.errors import CleanupOrderError, CyclicForeignKeyError

logger = logging.getLogger(__name__)

TableLike = Union[Table, TableClause, str]


def _tables_of(source: Union[MetaData, Iterable[Table]]) -> List[Table]:
    if isinstance(source, MetaData):
        return list(source.tables.values())
    return list(source)


def _parents_by_table(tables: Sequence[Table]) -> Dict[str, Set[str]]:
    """Map each table name to the names of tables it references.

    Self references and references to tables outside ``tables`` are dropped.
    """
    names = {t.name for t in tables}
    parents: Dict[str, Set[str]] = {}
    for tbl in tables:
        parents[tbl.name] = {
            fk.column.table.name
            for fk in tbl.foreign_keys
            if fk.column.table.name != tbl.name and fk.column.table.name in names
        }
    return parents


def _find_cycle_tables(parents: Dict[str, Set[str]]) -> Set[str]:
    remaining = {name: set(deps) for name, deps in parents.items()}
    while True:
        roots = [name for name, deps in remaining.items() if not deps]
        if not roots:
            return set(remaining)
        for name in roots:
            del remaining[name]
        for deps in remaining.values():
            deps.difference_update(roots)


def cleanup_order(source: Union[MetaData, Iterable[Table]]) -> List[Table]:
    """
    Order tables so that every child comes before the parents it references.

    Args:
        source: A MetaData or an iterable of Table objects.

    Returns:
        Tables in a safe deletion order.

    Raises:
        CyclicForeignKeyError: If foreign keys form a cycle. Such schemas need
            a custom cleanup callable.
    """
    tables = _tables_of(source)
    cycle = _find_cycle_tables(_parents_by_table(tables))
    if cycle:
        raise CyclicForeignKeyError(cycle)
    return list(reversed(sort_tables(tables)))


def check_cleanup_order(order: Sequence[TableLike], metadata: MetaData) -> None:
    """
    Verify a hand-written cleanup order against the foreign keys in ``metadata``.

    Raises:
        CleanupOrderError: On the first parent listed before one of its children.
    """
    positions = {_table_name(item): index for index, item in enumerate(order)}
    parents = _parents_by_table(list(metadata.tables.values()))
    for child, child_parents in parents.items():
        if child not in positions:
            continue
        for parent in sorted(child_parents):
            if parent in positions and positions[parent] < positions[child]:
                raise CleanupOrderError(parent, child)


def _table_name(item: TableLike) -> str:
    if isinstance(item, str):
        return item.rsplit(".", 1)[-1]
    return item.name


def _as_table(item: TableLike) -> Union[Table, TableClause]:
    if isinstance(item, str):
        schema, _, name = item.rpartition(".")
        return table(name, schema=schema or None)
    return item


class TableCleaner:
    """
    Deletes every row of a fixed, ordered list of tables.

    The order is used as given. A parent listed before its child makes the
    database raise its foreign-key error, which propagates to the caller.
    """

    def __init__(self, engine: Engine, tables: Sequence[TableLike]):
        self.engine = engine
        self.tables = [_as_table(item) for item in tables]

    @classmethod
    def from_metadata(
        cls,
        engine: Engine,
        metadata: MetaData,
        exclude: Iterable[str] = (),
    ) -> "TableCleaner":
        """Build a cleaner for every table in ``metadata`` except ``exclude``."""
        skipped = set(exclude)
        ordered = [t for t in cleanup_order(metadata) if t.name not in skipped]
        return cls(engine, ordered)

    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    def clean(self) -> None:
        """Delete all rows, table by table, in one committed transaction."""
        logger.info("Cleaning tables: %s", ", ".join(self.table_names))
        with self.engine.begin() as conn:
            for tbl in self.tables:
                conn.execute(delete(tbl))

    def __repr__(self):
        return f"<TableCleaner(tables={self.table_names!r})>"
