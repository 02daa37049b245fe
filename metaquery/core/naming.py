from __future__ import annotations

from typing import Optional

__all__ = [
    'to_camel',
    'pluralize',
    'strip_prefix',
    'ends_with_ci',
]


def to_camel(name: str) -> str:
    """Convert UPPER_SNAKE (or any snake_case) to lowerCamelCase.

    Every segment is lower-cased before the first letter of each segment after
    the first is upper-cased, so ``CLIENTS_FIRST_NAME`` becomes ``clientsFirstName``
    and a single segment like ``DATE`` becomes ``date``. Empty segments produced
    by repeated or leading underscores are dropped.
    """
    if not name:
        return name
    parts = [p for p in str(name).split('_') if p]
    if not parts:
        return str(name).lower()
    return parts[0].lower() + ''.join(p[0].upper() + p[1:].lower() for p in parts[1:])


def pluralize(name: str) -> str:
    """Append ``s`` unless the name already ends in ``s`` (case-insensitive)."""
    if not name:
        return name
    if name[-1] in ('s', 'S'):
        return name
    return name + 's'


def ends_with_ci(value: str, suffix: str) -> bool:
    """Case-insensitive ``str.endswith``."""
    return str(value).lower().endswith(suffix.lower())


def strip_prefix(column: str, prefix: str) -> Optional[str]:
    """Return the part of ``column`` after ``prefix + '_'`` or None.

    Matching is case-insensitive and anchored on the underscore boundary:
    ``ITEM`` matches ``ITEM_NAME`` and ``item_detail_id`` but not ``ITEMS_NAME``.
    """
    if not prefix:
        return None
    head = prefix + '_'
    col = str(column)
    if len(col) <= len(head):
        return None
    if col[:len(head)].lower() != head.lower():
        return None
    return col[len(head):]
