"""Strawberry GraphQL surface for the dynamic query service.

Usage::

    schema = build_schema(MetaQueryConfig.from_env())
    await schema.execute(query, context_value={'db_session': session})
"""
from datetime import datetime
from typing import Any, List, Optional

import strawberry
from strawberry.scalars import JSON
from strawberry.types import Info

from .catalog import TableMetadata
from .config import MetaQueryConfig
from .service import DynamicQueryResult, DynamicQueryService

__all__ = ['DynamicQueryPayload', 'MetadataListPayload', 'TableMetadataType', 'build_schema', 'get_db_session']

_SESSION_KEYS = ('db_session', 'db', 'session', 'async_session')


def get_db_session(info_or_ctx: Any) -> Any:
    """Extract the AsyncSession from a Strawberry ``Info`` or a context object/dict.

    Tries ``db_session``, ``db``, ``session`` and ``async_session`` in order.
    Returns None when none is present.
    """
    if info_or_ctx is None:
        return None
    ctx = getattr(info_or_ctx, 'context', info_or_ctx)
    if ctx is None:
        return None
    if isinstance(ctx, dict):
        for k in _SESSION_KEYS:
            if ctx.get(k) is not None:
                return ctx[k]
        return None
    for k in _SESSION_KEYS:
        v = getattr(ctx, k, None)
        if v is not None:
            return v
    return None


@strawberry.type(description="Result of a dynamic table query")
class DynamicQueryPayload:
    table: str
    format: str
    include_joins: bool
    depth: int
    total: int
    data: JSON
    sql: str

    @classmethod
    def from_result(cls, result: DynamicQueryResult) -> 'DynamicQueryPayload':
        return cls(
            table=result.table,
            format=result.format,
            include_joins=result.include_joins,
            depth=result.depth,
            total=result.total,
            data=list(result.data),
            sql=result.sql,
        )


@strawberry.type(description="Catalog entry describing a queryable table")
class TableMetadataType:
    id: Optional[int]
    table_name: str
    available_fields: List[str]
    primary_key_field: Optional[str]
    relationship_spec: Optional[str]
    description: Optional[str]
    field_descriptions: Optional[str]
    visible_to_ai: bool
    active: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @classmethod
    def from_metadata(cls, meta: TableMetadata) -> 'TableMetadataType':
        return cls(
            id=meta.id,
            table_name=meta.table_name,
            available_fields=list(meta.available_fields),
            primary_key_field=meta.primary_key_field,
            relationship_spec=meta.relationship_spec,
            description=meta.description,
            field_descriptions=meta.field_descriptions,
            visible_to_ai=meta.visible_to_ai,
            active=meta.active,
            created_at=meta.created_at,
            updated_at=meta.updated_at,
        )


@strawberry.type
class MetadataListPayload:
    total: int
    entries: List[TableMetadataType]


def _require_session(info: Info) -> Any:
    session = get_db_session(info)
    if session is None:
        raise RuntimeError("No database session in GraphQL context. Pass context_value={'db_session': session}.")
    return session


def build_schema(config: Optional[MetaQueryConfig] = None) -> strawberry.Schema:
    """Build the GraphQL schema bound to a :class:`DynamicQueryService`."""
    config = config or MetaQueryConfig()
    service = DynamicQueryService(config)

    @strawberry.type
    class Query:
        @strawberry.field(description="Query a whitelisted table, optionally with joins and nested output")
        async def dynamic_query(
            self,
            info: Info,
            table: str,
            include_joins: bool = False,
            depth: Optional[int] = None,
            hierarchical: bool = False,
        ) -> DynamicQueryPayload:
            result = await service.query(
                _require_session(info),
                table,
                include_joins=include_joins,
                depth=depth,
                hierarchical=hierarchical,
            )
            return DynamicQueryPayload.from_result(result)

        @strawberry.field(description="Names of the tables that may be queried")
        async def available_tables(self, info: Info) -> List[str]:
            return await service.available_tables(_require_session(info))

        @strawberry.field(description="Catalog entry by ID")
        async def metadata_by_id(self, info: Info, id: int) -> Optional[TableMetadataType]:
            meta = await service.metadata_by_id(_require_session(info), id)
            return TableMetadataType.from_metadata(meta) if meta is not None else None

        @strawberry.field(description="Catalog entry by table name")
        async def metadata_by_table(self, info: Info, table: str) -> Optional[TableMetadataType]:
            meta = await service.metadata_by_table(_require_session(info), table)
            return TableMetadataType.from_metadata(meta) if meta is not None else None

        @strawberry.field(description="All catalog entries, optionally including inactive ones")
        async def all_metadata(self, info: Info, active_only: bool = True) -> MetadataListPayload:
            listing = await service.all_metadata(_require_session(info), active_only=active_only)
            return MetadataListPayload(
                total=listing.total,
                entries=[TableMetadataType.from_metadata(m) for m in listing.entries],
            )

    if config.strawberry_config is not None:
        return strawberry.Schema(query=Query, config=config.strawberry_config)
    return strawberry.Schema(query=Query)
