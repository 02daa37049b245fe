"""Errors raised by the query collaborators around the assembler."""
from __future__ import annotations

from typing import Optional


class MetaQueryError(Exception):
    """Base class for MetaQuery errors."""
    pass


class InvalidQueryError(MetaQueryError, ValueError):
    """Raised when a query asks for a table outside the whitelist or an invalid depth."""
    pass


class EntityNotFoundError(MetaQueryError, LookupError):
    """A catalogued table or column does not exist in the database."""

    def __init__(self, message: str, *, table: Optional[str] = None, column: Optional[str] = None):
        super().__init__(message)
        self.table = table
        self.column = column


class QueryExecutionError(MetaQueryError, RuntimeError):
    """The database rejected a generated query for a reason other than a missing table or column."""
    pass
