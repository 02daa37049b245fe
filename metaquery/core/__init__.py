"""Pure, database-free building blocks of the flat-to-nested assembler."""
from .naming import to_camel, pluralize, strip_prefix
from .relationships import (
    Cardinality, RawRelationship, RelationshipDescriptor, RelationshipClassifier,
    parse_relationship_spec, classify_cardinality, classify_relationships, partition_by_cardinality,
)
from .extraction import RowGroup, as_mapping, row_value, extract_nested, group_rows
from .hydration import AssemblyKind, AssemblyOutcome, HierarchicalAssembler, assemble_documents

__all__ = [
    'to_camel', 'pluralize', 'strip_prefix',
    'Cardinality', 'RawRelationship', 'RelationshipDescriptor', 'RelationshipClassifier',
    'parse_relationship_spec', 'classify_cardinality', 'classify_relationships', 'partition_by_cardinality',
    'RowGroup', 'as_mapping', 'row_value', 'extract_nested', 'group_rows',
    'AssemblyKind', 'AssemblyOutcome', 'HierarchicalAssembler', 'assemble_documents',
]
