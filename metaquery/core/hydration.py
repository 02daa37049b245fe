from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Hashable, List, Optional, Protocol, Sequence

from .extraction import RowGroup, extract_nested, group_rows, row_value
from .naming import ends_with_ci, pluralize, to_camel
from .relationships import (
    RelationshipClassifier,
    RelationshipDescriptor,
    classify_relationships,
    partition_by_cardinality,
)

if TYPE_CHECKING:  # pragma: no cover
    from ..catalog import TableMetadata

logger = logging.getLogger(__name__)

__all__ = [
    'AssemblyKind',
    'AssemblyOutcome',
    'MetadataLookup',
    'HierarchicalAssembler',
    'assemble_documents',
]

Document = Dict[str, Any]


class AssemblyKind(Enum):
    ASSEMBLED = 'assembled'
    PASSTHROUGH = 'passthrough'


@dataclass(frozen=True)
class AssemblyOutcome:
    """Result of an assembly attempt.

    ``PASSTHROUGH`` carries the caller's rows untouched together with the
    reason the hierarchy could not be built; ``ASSEMBLED`` carries one
    document per primary key.
    """

    kind: AssemblyKind
    rows: Sequence[Any]
    reason: Optional[str] = None

    @property
    def assembled(self) -> bool:
        return self.kind is AssemblyKind.ASSEMBLED

    @classmethod
    def passthrough(cls, rows: Sequence[Any], reason: str) -> 'AssemblyOutcome':
        return cls(AssemblyKind.PASSTHROUGH, rows, reason)


class MetadataLookup(Protocol):
    def get(self, table_name: str) -> Optional['TableMetadata']: ...


def _dedup_key(child: Document) -> Optional[Hashable]:
    for name, value in child.items():
        if ends_with_ci(name, 'id'):
            try:
                hash(value)
                return ('v', value)
            except TypeError:
                return ('r', repr(value))
    return None


def _collect_children(group: RowGroup, rel: RelationshipDescriptor) -> List[Document]:
    children: List[Document] = []
    seen: set = set()
    for row in group.rows:
        child = extract_nested(row, rel.target_table)
        if not child:
            continue
        key = _dedup_key(child)
        if key is not None:
            if key in seen:
                continue
            seen.add(key)
        children.append(child)
    return children


def _build_document(
    group: RowGroup,
    fields: Sequence[str],
    one_to_many: Sequence[RelationshipDescriptor],
    many_to_one: Sequence[RelationshipDescriptor],
) -> Document:
    first = group.first
    doc: Document = {}
    for name in fields:
        value = row_value(first, name)
        if value is not None:
            doc[to_camel(name)] = value
    for rel in many_to_one:
        child = extract_nested(first, rel.target_table)
        if child:
            doc[to_camel(rel.target_table)] = child
    for rel in one_to_many:
        children = _collect_children(group, rel)
        if children:
            doc[pluralize(to_camel(rel.target_table))] = children
    return doc


def assemble_documents(
    rows: Sequence[Any],
    metadata: 'TableMetadata',
    classifier: Optional[RelationshipClassifier] = None,
) -> AssemblyOutcome:
    """Assemble rows against already resolved metadata."""
    if not rows:
        return AssemblyOutcome.passthrough(rows, 'empty')
    descriptors = classify_relationships(metadata.relationship_spec, classifier)
    if not descriptors:
        return AssemblyOutcome.passthrough(rows, 'no-relationships')
    one_to_many, many_to_one = partition_by_cardinality(descriptors)
    groups = group_rows(rows, metadata.primary_key_field)
    docs = [
        _build_document(g, metadata.available_fields, one_to_many, many_to_one)
        for g in groups
    ]
    logger.debug(
        f"Assembled {len(rows)} flat rows of {metadata.table_name} into {len(docs)} documents "
        f"({len(many_to_one)} many-to-one, {len(one_to_many)} one-to-many)"
    )
    return AssemblyOutcome(AssemblyKind.ASSEMBLED, docs)


class HierarchicalAssembler:
    """Rebuilds nested documents from the flat rows of a join.

    The assembler is stateless apart from its collaborators: ``catalog``
    resolves table metadata by name and ``classifier`` decides the cardinality
    of each link. It never raises on degenerate input; rows are returned as-is
    whenever no hierarchy can be built.
    """

    def __init__(self, catalog: MetadataLookup, classifier: Optional[RelationshipClassifier] = None):
        self.catalog = catalog
        self.classifier = classifier

    def assemble_outcome(self, rows: Sequence[Any], table_name: str) -> AssemblyOutcome:
        if not rows:
            return AssemblyOutcome.passthrough(rows, 'empty')
        metadata = self.catalog.get(table_name)
        if metadata is None:
            logger.info(f"No metadata for {table_name}; returning flat rows")
            return AssemblyOutcome.passthrough(rows, 'no-metadata')
        return assemble_documents(rows, metadata, self.classifier)

    def assemble(self, rows: Sequence[Any], table_name: str) -> Sequence[Any]:
        return self.assemble_outcome(rows, table_name).rows
