"""Relationship spec parsing and cardinality classification.

A catalog entry describes the links of a table as ``TARGET:FK:REF`` triples
separated by ``;``. Parsing is lenient: entries with the wrong arity or with
empty parts are dropped. Classification uses a naming rule that callers can
override per target table or replace wholesale.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)

__all__ = [
    'Cardinality',
    'RawRelationship',
    'RelationshipDescriptor',
    'RelationshipClassifier',
    'CardinalityRule',
    'parse_relationship_spec',
    'classify_cardinality',
    'classify_relationships',
    'partition_by_cardinality',
]

ENTRY_SEPARATOR = ';'
PART_SEPARATOR = ':'
FK_PREFIX = 'ID_'


class Cardinality(Enum):
    ONE_TO_MANY = 'one_to_many'
    MANY_TO_ONE = 'many_to_one'

    @classmethod
    def parse(cls, value: str) -> 'Cardinality':
        """Accept enum values, names, or short forms like ``1:n`` / ``n:1``."""
        key = str(value).strip().lower().replace('-', '_')
        aliases = {
            '1:n': cls.ONE_TO_MANY,
            'one_to_many': cls.ONE_TO_MANY,
            'n:1': cls.MANY_TO_ONE,
            'many_to_one': cls.MANY_TO_ONE,
        }
        try:
            return aliases[key]
        except KeyError:
            raise ValueError(f"Unknown cardinality: {value!r}") from None


class RawRelationship(NamedTuple):
    target_table: str
    foreign_key_column: str
    referenced_key_column: str


@dataclass(frozen=True)
class RelationshipDescriptor:
    """One classified link from the primary table to ``target_table``."""

    target_table: str
    foreign_key_column: str
    referenced_key_column: str
    cardinality: Cardinality
    # True when ONE_TO_MANY was decided only by the ID_ prefix rule
    ambiguous: bool = False

    @property
    def is_one_to_many(self) -> bool:
        return self.cardinality is Cardinality.ONE_TO_MANY


CardinalityRule = Callable[[str, str], Cardinality]


def parse_relationship_spec(spec: Optional[str]) -> List[RawRelationship]:
    """Parse ``TARGET:FK:REF;TARGET:FK:REF`` into raw triples, in order."""
    if not spec:
        return []
    out: List[RawRelationship] = []
    for entry in str(spec).split(ENTRY_SEPARATOR):
        if not entry.strip():
            continue
        parts = [p.strip() for p in entry.split(PART_SEPARATOR)]
        if len(parts) != 3 or not all(parts):
            logger.debug(f"Dropping malformed relationship entry: {entry!r}")
            continue
        out.append(RawRelationship(*parts))
    return out


def _fk_names_target(target_table: str, foreign_key_column: str) -> bool:
    return target_table.lower() in foreign_key_column.lower()


def _fk_has_id_prefix(foreign_key_column: str) -> bool:
    return foreign_key_column.upper().startswith(FK_PREFIX)


def classify_cardinality(target_table: str, foreign_key_column: str) -> Cardinality:
    """Default naming rule.

    ONE_TO_MANY when the FK column contains the target table name or starts
    with ``ID_`` (both case-insensitive); MANY_TO_ONE otherwise.
    """
    if _fk_names_target(target_table, foreign_key_column) or _fk_has_id_prefix(foreign_key_column):
        return Cardinality.ONE_TO_MANY
    return Cardinality.MANY_TO_ONE


class RelationshipClassifier:
    """Turns raw triples into descriptors.

    ``overrides`` pins the cardinality of specific target tables (matched
    case-insensitively) and always wins over ``rule``. ``rule`` defaults to
    :func:`classify_cardinality`.
    """

    def __init__(
        self,
        overrides: Optional[Mapping[str, Cardinality]] = None,
        rule: Optional[CardinalityRule] = None,
    ):
        self.overrides: Dict[str, Cardinality] = {
            str(k).upper(): v for k, v in (overrides or {}).items()
        }
        self.rule: CardinalityRule = rule or classify_cardinality

    def classify(self, raw: RawRelationship) -> RelationshipDescriptor:
        target, fk, ref = raw
        pinned = self.overrides.get(target.upper())
        if pinned is not None:
            return RelationshipDescriptor(target, fk, ref, pinned)
        cardinality = self.rule(target, fk)
        ambiguous = (
            self.rule is classify_cardinality
            and cardinality is Cardinality.ONE_TO_MANY
            and not _fk_names_target(target, fk)
        )
        if ambiguous:
            logger.warning(
                f"Relationship {target}:{fk}:{ref} classified as one-to-many only because "
                f"'{fk}' starts with '{FK_PREFIX}'; add a cardinality override if this link "
                f"is many-to-one"
            )
        return RelationshipDescriptor(target, fk, ref, cardinality, ambiguous)

    def classify_all(self, raws: Iterable[RawRelationship]) -> List[RelationshipDescriptor]:
        return [self.classify(r) for r in raws]


_DEFAULT_CLASSIFIER = RelationshipClassifier()


def classify_relationships(
    spec: Optional[str],
    classifier: Optional[RelationshipClassifier] = None,
) -> List[RelationshipDescriptor]:
    """Parse and classify a relationship spec in one step."""
    return (classifier or _DEFAULT_CLASSIFIER).classify_all(parse_relationship_spec(spec))


def partition_by_cardinality(
    descriptors: Iterable[RelationshipDescriptor],
) -> Tuple[List[RelationshipDescriptor], List[RelationshipDescriptor]]:
    """Split into (one_to_many, many_to_one), keeping spec order in each."""
    one_to_many: List[RelationshipDescriptor] = []
    many_to_one: List[RelationshipDescriptor] = []
    for d in descriptors:
        (one_to_many if d.is_one_to_many else many_to_one).append(d)
    return one_to_many, many_to_one
