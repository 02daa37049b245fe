"""Builds the flat join query for a catalogued table.

The primary table's fields are projected under their own names; every joined
table's fields are labelled ``TARGET_FIELD`` so the assembler can pick them
back up by prefix. The primary key is always projected, so flat rows carry it
even when it is not one of the available fields; assembled documents only
carry available fields.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import column, select, table
from sqlalchemy.sql import Select
from sqlalchemy.sql.expression import TableClause

from .catalog import MetadataCatalog, TableMetadata
from .core.relationships import parse_relationship_spec
from .exceptions import InvalidQueryError

logger = logging.getLogger(__name__)

__all__ = ['JoinStep', 'plan_joins', 'build_query', 'compile_sql', 'column_label']


@dataclass(frozen=True)
class JoinStep:
    """LEFT OUTER JOIN of ``target`` on ``target.target_column = source.source_column``."""

    source: str
    target: str
    source_column: str
    target_column: str
    level: int


def column_label(table_name: str, field_name: str) -> str:
    return f"{table_name}_{field_name}"


def _resolve_column(meta: TableMetadata, name: str) -> Optional[str]:
    """Catalog spelling of ``name`` when it is one of the table's fields."""
    wanted = name.upper()
    for f in meta.available_fields:
        if f.upper() == wanted:
            return f
    return None


def _primary_key_column(meta: TableMetadata) -> Optional[str]:
    if not meta.primary_key_field:
        return None
    return _resolve_column(meta, meta.primary_key_field) or meta.primary_key_field


def plan_joins(catalog: MetadataCatalog, root: TableMetadata, depth: int) -> List[JoinStep]:
    """Breadth-first walk of relationship specs, ``depth`` levels deep.

    Each table is joined at most once. The FK column of an entry lives on the
    target when the target catalogues it, otherwise on the source.
    """
    joined = {root.table_name}
    frontier = [root]
    steps: List[JoinStep] = []
    for level in range(1, depth + 1):
        next_frontier: List[TableMetadata] = []
        for source in frontier:
            for raw in parse_relationship_spec(source.relationship_spec):
                target = catalog.get(raw.target_table)
                if target is None:
                    logger.warning(
                        f"{source.table_name} links to {raw.target_table}, which is not in the catalog; skipping join"
                    )
                    continue
                if target.table_name in joined:
                    continue
                fk_on_target = _resolve_column(target, raw.foreign_key_column)
                if fk_on_target is not None:
                    ref = _resolve_column(source, raw.referenced_key_column) or raw.referenced_key_column
                    step = JoinStep(source.table_name, target.table_name, ref, fk_on_target, level)
                else:
                    fk = _resolve_column(source, raw.foreign_key_column) or raw.foreign_key_column
                    ref = _resolve_column(target, raw.referenced_key_column) or raw.referenced_key_column
                    step = JoinStep(source.table_name, target.table_name, fk, ref, level)
                joined.add(target.table_name)
                steps.append(step)
                next_frontier.append(target)
        if not next_frontier:
            break
        frontier = next_frontier
    return steps


def _table_clauses(catalog: MetadataCatalog, root: TableMetadata, steps: List[JoinStep]) -> Dict[str, TableClause]:
    needed: Dict[str, List[str]] = {root.table_name: []}

    def _add(name: str, col: Optional[str]) -> None:
        if not col:
            return
        cols = needed.setdefault(name, [])
        if col not in cols:
            cols.append(col)

    for meta in [root] + [catalog.get(s.target) for s in steps]:
        if meta is None:
            continue
        for f in meta.available_fields:
            _add(meta.table_name, f)
    _add(root.table_name, _primary_key_column(root))
    for s in steps:
        _add(s.source, s.source_column)
        _add(s.target, s.target_column)
    return {name: table(name, *[column(c) for c in cols]) for name, cols in needed.items()}


def build_query(
    catalog: MetadataCatalog,
    table_name: str,
    include_joins: bool = False,
    depth: int = 1,
) -> Select:
    root = catalog.get(table_name)
    if root is None:
        raise InvalidQueryError(f"Table '{table_name}' is not in the metadata catalog")
    if depth < 1:
        raise InvalidQueryError("depth must be at least 1")
    steps = plan_joins(catalog, root, depth) if include_joins else []
    clauses = _table_clauses(catalog, root, steps)
    root_clause = clauses[root.table_name]

    projection: List[Any] = [root_clause.c[f] for f in root.available_fields]
    from_clause: Any = root_clause
    for s in steps:
        target_meta = catalog.get(s.target)
        target_clause = clauses[s.target]
        source_clause = clauses[s.source]
        projection.extend(
            target_clause.c[f].label(column_label(s.target, f)) for f in target_meta.available_fields
        )
        from_clause = from_clause.outerjoin(
            target_clause, target_clause.c[s.target_column] == source_clause.c[s.source_column]
        )
        logger.debug(f"Join level {s.level}: {s.target}.{s.target_column} = {s.source}.{s.source_column}")

    if not projection:
        raise InvalidQueryError(f"Table '{root.table_name}' has no available fields")
    pk = _primary_key_column(root)
    # rows are grouped by the primary key, so it is selected even when not an available field
    if pk and _resolve_column(root, pk) is None:
        projection.insert(len(root.available_fields), root_clause.c[pk])
    stmt = select(*projection).select_from(from_clause)
    if pk:
        stmt = stmt.order_by(root_clause.c[pk])
    return stmt


def compile_sql(stmt: Select, dialect: Any = None) -> str:
    """Render ``stmt`` as SQL text for the given dialect (inline literals)."""
    try:
        return str(stmt.compile(dialect=dialect, compile_kwargs={'literal_binds': True}))
    except Exception as e:  # literal rendering is unsupported for some bind types
        logger.debug(f"Literal SQL rendering failed ({e}); falling back to parameterized text")
        return str(stmt.compile(dialect=dialect))
