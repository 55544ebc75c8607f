"""Shared state and helpers for the relationship detectors."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from schema_relations.analysis.models import (
    AnalysisWarning,
    RelationshipCandidate,
    RelationshipKind,
    RelationshipRef,
    WarningCode,
    inverse_kind,
)
from schema_relations.analysis.naming import NamingConventionResolver, model_name, singular
from schema_relations.analysis.overrides import RelationshipConfig
from schema_relations.database.base import DistinctValueSampler
from schema_relations.database.models import SchemaCatalog, Table
from schema_relations.errors import SamplingUnavailableError

logger = logging.getLogger(__name__)

# (morph name, type column, id column)
MorphPair = Tuple[str, str, str]


@dataclass
class DetectionContext:
    """Everything a detector may read while analyzing one table.

    A context lives for a single `analyze` call. The catalog, resolver and
    configuration are shared read-only; the sample cache and the warning list
    belong to the call.
    """

    catalog: SchemaCatalog
    resolver: NamingConventionResolver
    config: RelationshipConfig
    sampler: Optional[DistinctValueSampler] = None
    sampler_lock: Optional[Any] = None
    warnings: List[AnalysisWarning] = field(default_factory=list)
    _samples: Dict[Tuple[str, str], Optional[List[str]]] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        if self.sampler_lock is None:
            self.sampler_lock = threading.Lock()

    @property
    def conventions(self):
        return self.resolver.conventions

    def warn(self, code: WarningCode, message: str, **details) -> None:
        warning = AnalysisWarning(code=code, message=message, details=details)
        if warning not in self.warnings:
            logger.debug("%s: %s", code.value, message)
            self.warnings.append(warning)

    def has_soft_deletes(self, table_name: Optional[str]) -> bool:
        table = self.catalog.get_table(table_name) if table_name else None
        return bool(table and table.has_soft_delete(self.conventions.soft_delete_column))

    def has_timestamps(self, table: Table) -> bool:
        return table.has_timestamps(self.conventions.created_at_column, self.conventions.updated_at_column)

    def morph_pairs(self, table: Table) -> List[MorphPair]:
        """Polymorphic type/id column pairs declared on `table`, in column order."""
        pairs = []
        for column in table.column_names:
            name = self.resolver.morph_name_from_type_column(column)
            if not name:
                continue
            _, id_column = self.resolver.morph_columns(name)
            if table.has_column(id_column):
                pairs.append((name, column, id_column))
        return pairs

    def sample(self, table: str, column: str) -> Optional[List[str]]:
        """Distinct values of `table.column`, or None when sampling is unavailable.

        An empty sample carries no evidence and is reported as unavailable.
        """
        key = (table, column)
        if key in self._samples:
            return self._samples[key]

        values: Optional[List[str]] = None
        if self.sampler is not None:
            try:
                with self.sampler_lock:
                    values = self.sampler.get_distinct_values(table, column, limit=self.config.sample_limit)
            except SamplingUnavailableError as e:
                logger.info("Sampling unavailable: %s", e.message)
                values = None
        if values is not None:
            values = values[:self.config.sample_limit] or None

        self._samples[key] = values
        return values

    def type_value_denotes(self, value: str, table_name: str) -> bool:
        """Whether a stored morph type value names `table_name`.

        Accepted forms: posts, post, Post, App\\Models\\Post, app.models.Post.
        """
        model = model_name(table_name)
        if value in (table_name, singular(table_name), model):
            return True
        short = value.replace("\\", ".").rsplit(".", 1)[-1]
        return short != value and short == model

    def tables_for_type_values(self, values: List[str]) -> List[str]:
        """Catalog tables named by any of the sampled type values, in catalog order."""
        return [
            name for name in self.catalog.table_names
            if any(self.type_value_denotes(value, name) for value in values)
        ]


def make_inverse(
    resolver: NamingConventionResolver,
    candidate: RelationshipCandidate,
    unique: bool = False,
) -> RelationshipRef:
    """Inverse pointer of a candidate, synthesized from the candidate's own kind.

    The inverse lives on the related table and points back at the source
    table; `unique` selects hasOne/morphOne over hasMany/morphMany.
    """
    kind = inverse_kind(candidate.kind, unique)
    if kind == RelationshipKind.MORPH_TO:
        method = resolver.method_name(kind, morph_name=candidate.morph.name)
    elif kind == RelationshipKind.BELONGS_TO:
        local_key = candidate.local_key or ("id",)
        method = resolver.method_name(
            kind,
            candidate.source_table,
            foreign_key=candidate.foreign_key[0] if candidate.foreign_key else None,
            owner_key=local_key[0],
        )
    else:
        method = resolver.method_name(kind, candidate.source_table)
    return RelationshipRef(kind=kind, method=method, table=candidate.related_table)


def cascade_suffix(description: str, cascade_delete: bool) -> str:
    if cascade_delete:
        return f"{description} (with cascade delete)"
    return description
