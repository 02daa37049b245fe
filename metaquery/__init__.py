"""MetaQuery public API and lightweight lazy exports.

The assembler core (``metaquery.core``) is pure Python and is imported
eagerly. The SQLAlchemy-backed catalog/service and the Strawberry schema are
resolved lazily so that callers who only need the assembler do not pay for
importing the database and GraphQL stacks.

Exposes:
- HierarchicalAssembler, AssemblyOutcome, AssemblyKind, assemble_documents
- Cardinality, RelationshipClassifier, parse_relationship_spec, classify_relationships
- to_camel, pluralize, extract_nested, group_rows
- Lazy: TableMetadata, MetadataCatalog, load_catalog, MetaQueryConfig,
  DynamicQueryService, DynamicQueryResult, build_query, build_schema
"""
from __future__ import annotations

from .core import (
    AssemblyKind,
    AssemblyOutcome,
    Cardinality,
    HierarchicalAssembler,
    RelationshipClassifier,
    RelationshipDescriptor,
    assemble_documents,
    classify_relationships,
    extract_nested,
    group_rows,
    parse_relationship_spec,
    pluralize,
    to_camel,
)
from .exceptions import EntityNotFoundError, InvalidQueryError, MetaQueryError, QueryExecutionError

__version__ = '0.1.0'

_LAZY = {
    'TableMetadata': 'catalog',
    'MetadataCatalog': 'catalog',
    'load_catalog': 'catalog',
    'MetaQueryConfig': 'config',
    'DynamicQueryService': 'service',
    'DynamicQueryResult': 'service',
    'build_query': 'query_builder',
    'build_schema': 'schema',
}


def __getattr__(name: str):  # PEP 562 lazy exports
    import importlib as _importlib
    module = _LAZY.get(name)
    if module is None:
        raise AttributeError(name)
    return getattr(_importlib.import_module(f"{__name__}.{module}"), name)


__all__ = [
    'AssemblyKind', 'AssemblyOutcome', 'Cardinality', 'HierarchicalAssembler',
    'RelationshipClassifier', 'RelationshipDescriptor', 'assemble_documents',
    'classify_relationships', 'extract_nested', 'group_rows', 'parse_relationship_spec',
    'pluralize', 'to_camel',
    'EntityNotFoundError', 'InvalidQueryError', 'MetaQueryError', 'QueryExecutionError',
    *_LAZY,
]
