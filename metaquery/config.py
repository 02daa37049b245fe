"""Runtime configuration for the dynamic query service and GraphQL schema."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .core.relationships import Cardinality

logger = logging.getLogger(__name__)

__all__ = ['MetaQueryConfig', 'parse_cardinality_overrides']

ENV_PREFIX = 'METAQUERY_'


def parse_cardinality_overrides(raw: Optional[str]) -> Dict[str, Cardinality]:
    """Parse ``TABLE=one_to_many,OTHER=many_to_one`` into an override map.

    Entries with an unknown cardinality are skipped with a warning.
    """
    out: Dict[str, Cardinality] = {}
    if not raw:
        return out
    for item in raw.split(','):
        if not item.strip():
            continue
        name, sep, value = item.partition('=')
        if not sep or not name.strip():
            logger.warning(f"Ignoring malformed cardinality override: {item!r}")
            continue
        try:
            out[name.strip().upper()] = Cardinality.parse(value)
        except ValueError as e:
            logger.warning(f"Ignoring cardinality override {item!r}: {e}")
    return out


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"{ENV_PREFIX}{name}={raw!r} is not an integer; using {default}")
        return default


@dataclass
class MetaQueryConfig:
    max_depth: int = 3
    default_depth: int = 2
    row_warning_threshold: int = 5000
    cardinality_overrides: Dict[str, Cardinality] = field(default_factory=dict)
    # Optional strawberry.schema.config.StrawberryConfig for build_schema()
    strawberry_config: Any = None

    def __post_init__(self):
        if self.max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        if not 1 <= self.default_depth <= self.max_depth:
            raise ValueError(f"default_depth must be between 1 and {self.max_depth}")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides: Any) -> 'MetaQueryConfig':
        """Build a config from ``METAQUERY_*`` environment variables."""
        env = os.environ if env is None else env
        values: Dict[str, Any] = {
            'max_depth': _env_int(env, 'MAX_DEPTH', cls.max_depth),
            'default_depth': _env_int(env, 'DEFAULT_DEPTH', cls.default_depth),
            'row_warning_threshold': _env_int(env, 'ROW_WARNING_THRESHOLD', cls.row_warning_threshold),
            'cardinality_overrides': parse_cardinality_overrides(env.get(ENV_PREFIX + 'CARDINALITY_OVERRIDES')),
        }
        values.update(overrides)
        return cls(**values)
