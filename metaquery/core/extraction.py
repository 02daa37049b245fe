from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional

from .naming import strip_prefix, to_camel

__all__ = [
    'FlatRow',
    'RowGroup',
    'as_mapping',
    'row_value',
    'extract_nested',
    'group_rows',
]

FlatRow = Mapping[str, Any]


def as_mapping(row: Any) -> Mapping[str, Any]:
    """Return a column-name mapping view of ``row``.

    Accepts plain mappings and SQLAlchemy ``Row`` / ``RowMapping`` objects.
    """
    if isinstance(row, Mapping):
        return row
    mapping = getattr(row, '_mapping', None)
    if isinstance(mapping, Mapping):
        return mapping
    raise TypeError(f"Expected a mapping of column name to value, got {type(row).__name__}")


def row_value(row: Any, key: Optional[str]) -> Any:
    """Direct key lookup; a missing key reads as None."""
    if not key:
        return None
    return as_mapping(row).get(key)


def extract_nested(row: Any, prefix: str) -> Optional[Dict[str, Any]]:
    """Collect ``PREFIX_<suffix>`` columns of ``row`` into ``{camel(suffix): value}``.

    Returns None when no column carries the prefix, which is how an outer-join
    row without a related record differs from a related record whose fields
    are all null.
    """
    child: Dict[str, Any] = {}
    matched = False
    for column, value in as_mapping(row).items():
        suffix = strip_prefix(column, prefix)
        if suffix is None:
            continue
        matched = True
        child[to_camel(suffix)] = value
    return child if matched else None


@dataclass
class RowGroup:
    key: Any
    rows: List[Any] = field(default_factory=list)

    @property
    def first(self) -> Any:
        return self.rows[0]


def _group_token(value: Any) -> Hashable:
    try:
        hash(value)
        return (0, value)
    except TypeError:
        return (1, repr(value))


def group_rows(rows: Iterable[Any], primary_key_field: Optional[str]) -> List[RowGroup]:
    """Stable grouping of rows by the primary key value (first-occurrence order)."""
    groups: Dict[Hashable, RowGroup] = {}
    for row in rows:
        key = row_value(row, primary_key_field)
        token = _group_token(key)
        group = groups.get(token)
        if group is None:
            group = groups[token] = RowGroup(key)
        group.rows.append(row)
    return list(groups.values())
