"""Dynamic query service: validate, build, execute and optionally assemble."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from .catalog import MetadataCatalog, TableMetadata, get_metadata_by_id, get_metadata_by_table, load_catalog
from .config import MetaQueryConfig
from .core.hydration import HierarchicalAssembler
from .core.relationships import RelationshipClassifier
from .exceptions import EntityNotFoundError, InvalidQueryError, QueryExecutionError
from .query_builder import build_query, compile_sql

logger = logging.getLogger(__name__)

__all__ = ['DynamicQueryResult', 'DynamicQueryService', 'MetadataListing', 'translate_db_error']

FORMAT_FLAT = 'flat'
FORMAT_HIERARCHICAL = 'hierarchical'

# Driver messages for a missing relation / column across SQLite, PostgreSQL, MSSQL and Oracle
_MISSING_TABLE_PATTERNS = (
    re.compile(r'no such table:\s*"?([\w.]+)"?', re.I),
    re.compile(r'relation "([^"]+)" does not exist', re.I),
    re.compile(r"invalid object name '([^']+)'", re.I),
    re.compile(r'ORA-00942'),
)
_MISSING_COLUMN_PATTERNS = (
    re.compile(r'no such column:\s*"?([\w."]+)', re.I),
    re.compile(r'column "?([\w."]+)"? does not exist', re.I),
    re.compile(r"invalid column name '([^']+)'", re.I),
    re.compile(r'ORA-00904:\s*"?([\w."]+)', re.I),
)


def _first_match(patterns, message: str) -> Optional[str]:
    for p in patterns:
        m = p.search(message)
        if m:
            return (m.group(1) if m.groups() else '').replace('"', '') or 'unknown'
    return None


def translate_db_error(exc: DBAPIError, table: str) -> Exception:
    """Map a driver error to the MetaQuery error hierarchy."""
    message = str(getattr(exc, 'orig', None) or exc)
    missing_table = _first_match(_MISSING_TABLE_PATTERNS, message)
    if missing_table is not None:
        return EntityNotFoundError(
            f"Table '{table}' is registered in the metadata catalog but does not exist in the database",
            table=table,
        )
    missing_column = _first_match(_MISSING_COLUMN_PATTERNS, message)
    if missing_column is not None:
        return EntityNotFoundError(
            f"Column '{missing_column}' is registered in the metadata catalog but does not exist in the table",
            table=table,
            column=missing_column,
        )
    return QueryExecutionError(f"Error executing query: {message}")


@dataclass(frozen=True)
class DynamicQueryResult:
    table: str
    format: str
    include_joins: bool
    depth: int
    total: int
    data: Sequence[Any]
    sql: str


@dataclass(frozen=True)
class MetadataListing:
    total: int
    entries: List[TableMetadata]


class DynamicQueryService:
    """Queries any catalogued table, optionally joined and nested.

    The catalog is re-read on every call so that deactivated tables drop out
    of the whitelist immediately.
    """

    def __init__(self, config: Optional[MetaQueryConfig] = None):
        self.config = config or MetaQueryConfig()
        self.classifier = RelationshipClassifier(overrides=self.config.cardinality_overrides)

    async def catalog(self, session: AsyncSession) -> MetadataCatalog:
        return await load_catalog(session, active_only=True)

    async def available_tables(self, session: AsyncSession) -> List[str]:
        catalog = await self.catalog(session)
        names = catalog.table_names()
        logger.info(f"Listing {len(names)} available tables")
        return names

    async def metadata_by_id(self, session: AsyncSession, metadata_id: int) -> Optional[TableMetadata]:
        if metadata_id is None or metadata_id <= 0:
            raise InvalidQueryError("ID must be greater than zero")
        meta = await get_metadata_by_id(session, metadata_id)
        if meta is None:
            logger.info(f"No catalog entry with ID {metadata_id}")
        return meta

    async def metadata_by_table(self, session: AsyncSession, table: str) -> Optional[TableMetadata]:
        if not table or not str(table).strip():
            raise InvalidQueryError("Table is required")
        meta = await get_metadata_by_table(session, table)
        if meta is None:
            logger.info(f"No catalog entry for table {table}")
        return meta

    async def all_metadata(self, session: AsyncSession, active_only: bool = True) -> MetadataListing:
        """Every catalog entry, ordered by table name; inactive ones only when asked for."""
        catalog = await load_catalog(session, active_only=active_only)
        entries = list(catalog)
        logger.info(f"Listing {len(entries)} catalog entries (active_only={active_only})")
        return MetadataListing(total=len(entries), entries=entries)

    def _validate(self, catalog: MetadataCatalog, table: Optional[str], depth: int) -> str:
        if not table or not str(table).strip():
            raise InvalidQueryError("Table is required")
        name = str(table).strip().upper()
        if name not in catalog:
            allowed = ', '.join(catalog.table_names())
            raise InvalidQueryError(f"Table '{table}' is not authorized. Allowed tables: {allowed}")
        if not 1 <= depth <= self.config.max_depth:
            raise InvalidQueryError(f"Depth must be between 1 and {self.config.max_depth}")
        return name

    async def query(
        self,
        session: AsyncSession,
        table: str,
        include_joins: bool = False,
        depth: Optional[int] = None,
        hierarchical: bool = False,
    ) -> DynamicQueryResult:
        depth = self.config.default_depth if depth is None else depth
        logger.info(
            f"Querying table {table} with joins={include_joins}, depth={depth}, hierarchical={hierarchical}"
        )
        catalog = await self.catalog(session)
        name = self._validate(catalog, table, depth)

        stmt = build_query(catalog, name, include_joins=include_joins, depth=depth)
        bind = session.get_bind()
        sql = compile_sql(stmt, getattr(bind, 'dialect', None))
        logger.debug(f"Generated SQL: {sql}")

        try:
            result = await session.execute(stmt)
        except DBAPIError as e:
            err = translate_db_error(e, name)
            if isinstance(err, EntityNotFoundError):
                logger.warning(f"{err} SQL: {sql}")
            else:
                logger.error(f"Error executing dynamic query. SQL: {sql}", exc_info=True)
            raise err from e
        rows = [dict(r) for r in result.mappings().all()]
        logger.info(f"Query executed successfully. {len(rows)} rows returned")

        if len(rows) > self.config.row_warning_threshold:
            logger.warning(
                f"Query on table {name} returned {len(rows)} rows "
                f"(above the recommended {self.config.row_warning_threshold})"
            )

        data: Sequence[Any] = rows
        fmt = FORMAT_FLAT
        if include_joins and hierarchical:
            outcome = HierarchicalAssembler(catalog, self.classifier).assemble_outcome(rows, name)
            data = outcome.rows
            if outcome.assembled:
                fmt = FORMAT_HIERARCHICAL
            else:
                logger.info(f"Hierarchical format unavailable for {name} ({outcome.reason}); returning flat rows")

        return DynamicQueryResult(
            table=name,
            format=fmt,
            include_joins=include_joins,
            depth=depth,
            total=len(data),
            data=list(data),
            sql=sql,
        )
