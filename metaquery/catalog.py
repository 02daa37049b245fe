"""Metadata catalog: which tables may be queried, their fields, keys and links.

The catalog lives in the ``DYNAMIC_TABLE`` table. ``load_catalog`` reads it
through an async SQLAlchemy session into an in-memory :class:`MetadataCatalog`
that the assembler and query builder consult synchronously.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)

__all__ = [
    'CatalogBase',
    'TableMetadataRecord',
    'TableMetadata',
    'MetadataCatalog',
    'parse_field_list',
    'load_catalog',
    'get_metadata_by_id',
    'get_metadata_by_table',
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CatalogBase(DeclarativeBase):
    pass


class TableMetadataRecord(CatalogBase):
    """One catalog row describing a queryable table."""
    __tablename__ = 'DYNAMIC_TABLE'

    id = Column('ID', Integer, primary_key=True)
    table_name = Column('TABLE_NAME', String(100), nullable=False, unique=True)
    available_fields = Column('AVAILABLE_FIELDS', Text, nullable=False)
    primary_key = Column('PRIMARY_KEY', String(100), nullable=False)
    table_links = Column('TABLE_LINKS', Text, nullable=True)
    table_description = Column('TABLE_DESCRIPTION', String(500), nullable=True)
    field_descriptions = Column('FIELD_DESCRIPTIONS', String(2000), nullable=True)
    visible_to_ai = Column('VISIBLE_TO_AI', Boolean, nullable=False, default=True)
    created_at = Column('CREATED_AT', DateTime, nullable=False, default=_utcnow,
                        server_default=func.current_timestamp())
    updated_at = Column('UPDATED_AT', DateTime, nullable=True)
    active = Column('ACTIVE', Boolean, nullable=False, default=True)


def parse_field_list(raw: Optional[str]) -> Tuple[str, ...]:
    """Split the comma separated field list, trimming blanks and empties."""
    if not raw:
        return ()
    return tuple(p.strip() for p in str(raw).split(',') if p.strip())


@dataclass(frozen=True)
class TableMetadata:
    table_name: str
    available_fields: Tuple[str, ...] = ()
    primary_key_field: Optional[str] = None
    relationship_spec: Optional[str] = None
    id: Optional[int] = None
    description: Optional[str] = None
    field_descriptions: Optional[str] = None
    visible_to_ai: bool = True
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, 'table_name', str(self.table_name).strip().upper())
        fields = self.available_fields
        if isinstance(fields, str):
            fields = parse_field_list(fields)
        object.__setattr__(self, 'available_fields', tuple(fields))

    @classmethod
    def from_record(cls, record: TableMetadataRecord) -> 'TableMetadata':
        return cls(
            table_name=record.table_name,
            available_fields=parse_field_list(record.available_fields),
            primary_key_field=(record.primary_key or '').strip() or None,
            relationship_spec=record.table_links,
            id=record.id,
            description=record.table_description,
            field_descriptions=record.field_descriptions,
            visible_to_ai=bool(record.visible_to_ai),
            active=bool(record.active),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class MetadataCatalog:
    """Case-insensitive, in-memory lookup of table metadata by name."""

    def __init__(self, entries: Iterable[TableMetadata] = ()):
        self._entries: Dict[str, TableMetadata] = {}
        for meta in entries:
            if meta.table_name in self._entries:
                logger.warning(f"Duplicate catalog entry for {meta.table_name}; keeping the last one")
            self._entries[meta.table_name] = meta

    def get(self, table_name: Optional[str]) -> Optional[TableMetadata]:
        if not table_name:
            return None
        return self._entries.get(str(table_name).strip().upper())

    def __contains__(self, table_name: object) -> bool:
        return isinstance(table_name, str) and self.get(table_name) is not None

    def __iter__(self) -> Iterator[TableMetadata]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def table_names(self) -> List[str]:
        return sorted(self._entries)


async def load_catalog(session: AsyncSession, *, active_only: bool = True) -> MetadataCatalog:
    """Read the catalog table into a :class:`MetadataCatalog`."""
    stmt = select(TableMetadataRecord).order_by(TableMetadataRecord.table_name)
    if active_only:
        stmt = stmt.where(TableMetadataRecord.active.is_(True))
    result = await session.execute(stmt)
    records = result.scalars().all()
    logger.debug(f"Loaded {len(records)} catalog entries (active_only={active_only})")
    return MetadataCatalog(TableMetadata.from_record(r) for r in records)


async def get_metadata_by_id(session: AsyncSession, metadata_id: int) -> Optional[TableMetadata]:
    """Catalog entry with the given ID, active or not."""
    record = await session.get(TableMetadataRecord, metadata_id)
    return TableMetadata.from_record(record) if record is not None else None


async def get_metadata_by_table(session: AsyncSession, table_name: str) -> Optional[TableMetadata]:
    """Catalog entry for ``table_name`` (case-insensitive), active or not."""
    stmt = select(TableMetadataRecord).where(
        func.upper(TableMetadataRecord.table_name) == str(table_name).strip().upper()
    )
    result = await session.execute(stmt)
    record = result.scalars().first()
    return TableMetadata.from_record(record) if record is not None else None
