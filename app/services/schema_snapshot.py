# app/services/schema_snapshot.py
#
# Schema Snapshot
# Produces a comparable description of a store's tables: columns (in order,
# with type, not-null flag, default and primary-key position) and unique keys.
# Two stores with equal snapshots have the same logical schema, no matter
# whether their tables were created in one go or rebuilt step by step.

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from sqlalchemy import inspect
from sqlalchemy.engine import Connection


@dataclass(frozen=True)
class ColumnShape:
    name: str
    type: str
    not_null: bool
    default: Optional[str]
    pk: int


@dataclass(frozen=True)
class TableShape:
    name: str
    columns: Tuple[ColumnShape, ...]
    unique_keys: Tuple[Tuple[str, ...], ...]

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.columns)


def _normalize_default(value: Optional[str]) -> Optional[str]:
    # "DEFAULT (0)" and "DEFAULT 0" are the same default
    if value is None:
        return None
    value = value.strip()
    while value.startswith("(") and value.endswith(")"):
        value = value[1:-1].strip()
    return value


def _quote(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def describe_table(conn: Connection, table_name: str) -> TableShape:
    columns = []
    for _cid, name, col_type, notnull, default, pk in conn.exec_driver_sql(
        f"PRAGMA table_info({_quote(table_name)})"
    ):
        columns.append(
            ColumnShape(
                name=name,
                type=(col_type or "").upper(),
                # primary key columns are implicitly NOT NULL for our purposes
                not_null=bool(notnull) or pk > 0,
                default=_normalize_default(default),
                pk=pk,
            )
        )

    unique_keys = []
    index_rows = conn.exec_driver_sql(f"PRAGMA index_list({_quote(table_name)})").all()
    for row in index_rows:
        index_name, unique, origin = row[1], row[2], row[3]
        if not unique or origin not in ("u", "pk"):
            continue
        info = conn.exec_driver_sql(f"PRAGMA index_info({_quote(index_name)})").all()
        unique_keys.append(tuple(r[2] for r in sorted(info)))

    return TableShape(
        name=table_name,
        columns=tuple(columns),
        unique_keys=tuple(sorted(unique_keys)),
    )


def snapshot(conn: Connection) -> Dict[str, TableShape]:
    """Shape of every user table in the store, keyed by table name."""
    names = inspect(conn).get_table_names()
    return {name: describe_table(conn, name) for name in sorted(names)}


def diff_snapshots(left: Dict[str, TableShape], right: Dict[str, TableShape]) -> Dict[str, str]:
    """
    Human-readable differences between two snapshots, keyed by table name.
    Empty when the schemas match.
    """
    problems = {}
    for name in sorted(set(left) | set(right)):
        if name not in left:
            problems[name] = "missing on the left"
        elif name not in right:
            problems[name] = "missing on the right"
        elif left[name] != right[name]:
            problems[name] = f"{left[name]!r} != {right[name]!r}"
    return problems
