"""Data models for inferred relationships.

Everything here is plain data: detectors build RelationshipCandidate values,
the coordinator renames and annotates them and packs them into a
RelationshipSet. None of these records holds a reference back to the
catalog or to a live connection, so a RelationshipSet can be serialized and
handed to code generators as-is.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from schema_relations.database.models import ReferentialAction
from schema_relations.errors import RelationshipError


class RelationshipKind(str, Enum):
    """The closed set of relationship kinds the engine can infer."""

    BELONGS_TO = "belongsTo"
    HAS_ONE = "hasOne"
    HAS_MANY = "hasMany"
    BELONGS_TO_MANY = "belongsToMany"
    MORPH_TO = "morphTo"
    MORPH_ONE = "morphOne"
    MORPH_MANY = "morphMany"

    @property
    def is_polymorphic(self) -> bool:
        return self in (RelationshipKind.MORPH_TO, RelationshipKind.MORPH_ONE, RelationshipKind.MORPH_MANY)


# Output order of a relationship set
KIND_ORDER: Dict[RelationshipKind, int] = {
    RelationshipKind.BELONGS_TO: 1,
    RelationshipKind.HAS_ONE: 2,
    RelationshipKind.HAS_MANY: 3,
    RelationshipKind.BELONGS_TO_MANY: 4,
    RelationshipKind.MORPH_TO: 5,
    RelationshipKind.MORPH_ONE: 6,
    RelationshipKind.MORPH_MANY: 7,
}


def inverse_kind(kind: RelationshipKind, unique: bool = False) -> RelationshipKind:
    """Kind of the relationship that points back along the same key.

    `unique` only matters for belongsTo and morphTo, whose inverse is the
    one-sided variant when the key columns are unique.
    """
    if kind in (RelationshipKind.HAS_ONE, RelationshipKind.HAS_MANY):
        return RelationshipKind.BELONGS_TO
    if kind == RelationshipKind.BELONGS_TO:
        return RelationshipKind.HAS_ONE if unique else RelationshipKind.HAS_MANY
    if kind == RelationshipKind.BELONGS_TO_MANY:
        return RelationshipKind.BELONGS_TO_MANY
    if kind in (RelationshipKind.MORPH_ONE, RelationshipKind.MORPH_MANY):
        return RelationshipKind.MORPH_TO
    return RelationshipKind.MORPH_ONE if unique else RelationshipKind.MORPH_MANY


class WarningCode(str, Enum):
    """Recoverable conditions reported next to a result."""

    AMBIGUOUS_NAMING = "AMBIGUOUS_NAMING"
    STRUCTURAL_AMBIGUITY = "STRUCTURAL_AMBIGUITY"
    SAMPLING_UNAVAILABLE = "SAMPLING_UNAVAILABLE"
    CUSTOM_OVERRIDE = "CUSTOM_OVERRIDE"


@dataclass(frozen=True)
class AnalysisWarning:
    """A condition the engine recovered from while analyzing a table."""
    code: WarningCode
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code.value, "message": self.message, "details": self.details}


@dataclass(frozen=True)
class PivotInfo:
    """Junction table metadata of a belongsToMany relationship."""
    table: str
    foreign_pivot_key: str  # column referencing the source table
    related_pivot_key: str  # column referencing the related table
    parent_key: str = "id"
    related_key: str = "id"
    fields: Tuple[str, ...] = ()
    has_timestamps: bool = False
    has_soft_deletes: bool = False
    by_naming_convention: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "foreign_pivot_key": self.foreign_pivot_key,
            "related_pivot_key": self.related_pivot_key,
            "parent_key": self.parent_key,
            "related_key": self.related_key,
            "fields": list(self.fields),
            "has_timestamps": self.has_timestamps,
            "has_soft_deletes": self.has_soft_deletes,
            "by_naming_convention": self.by_naming_convention,
        }


@dataclass(frozen=True)
class MorphInfo:
    """Polymorphic column pair of a morph relationship."""
    name: str
    type_column: str
    id_column: str
    type_values: Tuple[str, ...] = ()
    sampled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type_column": self.type_column,
            "id_column": self.id_column,
            "type_values": list(self.type_values),
            "sampled": self.sampled,
        }


@dataclass(frozen=True)
class RelationshipRef:
    """Pointer to a relationship on another (or the same) table."""
    kind: RelationshipKind
    method: str
    table: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "method": self.method, "table": self.table}


@dataclass(frozen=True)
class RelationshipCandidate:
    """One inferred (or declared) relationship of `source_table`.

    For belongsTo, `foreign_key` lives on the source table and `owner_key` on
    the related table. For hasOne/hasMany, `foreign_key` lives on the related
    table and `local_key` on the source table. Morph relationships use the
    id column of their pair as `foreign_key`.
    """
    kind: RelationshipKind
    source_table: str
    related_table: Optional[str]
    method: str
    foreign_key: Tuple[str, ...] = ()
    owner_key: Tuple[str, ...] = ()
    local_key: Tuple[str, ...] = ()
    required: bool = False
    on_delete: ReferentialAction = ReferentialAction.UNSPECIFIED
    on_update: ReferentialAction = ReferentialAction.UNSPECIFIED
    cascade_delete: bool = False
    cascade_update: bool = False
    has_soft_deletes: bool = False
    is_custom: bool = False
    is_self_referencing: bool = False
    confidence: float = 1.0
    secondary: bool = False
    description: str = ""
    pivot: Optional[PivotInfo] = None
    morph: Optional[MorphInfo] = None
    inverse: Optional[RelationshipRef] = None
    target_tables: Tuple[str, ...] = ()

    @property
    def signature(self) -> Tuple[str, Optional[str], Tuple[str, ...], Optional[str]]:
        """Structural identity used to match declared relationships to detected ones."""
        pivot_table = self.pivot.table if self.pivot else None
        return (self.kind.value, self.related_table, self.foreign_key, pivot_table)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "source_table": self.source_table,
            "related_table": self.related_table,
            "method": self.method,
            "foreign_key": list(self.foreign_key),
            "owner_key": list(self.owner_key),
            "local_key": list(self.local_key),
            "required": self.required,
            "on_delete": self.on_delete.value,
            "on_update": self.on_update.value,
            "cascade_delete": self.cascade_delete,
            "cascade_update": self.cascade_update,
            "has_soft_deletes": self.has_soft_deletes,
            "is_custom": self.is_custom,
            "is_self_referencing": self.is_self_referencing,
            "confidence": self.confidence,
            "secondary": self.secondary,
            "description": self.description,
            "pivot": self.pivot.to_dict() if self.pivot else None,
            "morph": self.morph.to_dict() if self.morph else None,
            "inverse": self.inverse.to_dict() if self.inverse else None,
            "target_tables": list(self.target_tables),
        }


@dataclass(frozen=True)
class BidirectionalMapping:
    """A relationship of the analyzed table paired with its inverse."""
    source_table: str
    target_table: Optional[str]
    forward: RelationshipRef
    inverse: RelationshipRef

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_table": self.source_table,
            "target_table": self.target_table,
            "forward": self.forward.to_dict(),
            "inverse": self.inverse.to_dict(),
        }


@dataclass(frozen=True)
class CycleReport:
    """A foreign-key cycle reachable from the analyzed table."""
    path: Tuple[str, ...]
    start_table: str
    tables_involved: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": list(self.path),
            "start_table": self.start_table,
            "tables_involved": list(self.tables_involved),
        }


@dataclass(frozen=True)
class SelfReference:
    column: str
    referenced_column: str
    method: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column": self.column,
            "foreign_column": self.referenced_column,
            "method": self.method,
            "relationship_type": "self-reference",
        }


@dataclass(frozen=True)
class PolymorphicUsage:
    """A morph slot that actually stores more than one type."""
    morph_name: str
    type_column: str
    id_column: str
    distinct_types: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "morph_name": self.morph_name,
            "type_column": self.type_column,
            "id_column": self.id_column,
            "distinct_types": list(self.distinct_types),
        }


@dataclass(frozen=True)
class ComplexRelationships:
    cycles: Tuple[CycleReport, ...] = ()
    self_references: Tuple[SelfReference, ...] = ()
    polymorphic_multi_type: Tuple[PolymorphicUsage, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycles": [c.to_dict() for c in self.cycles],
            "self_references": [s.to_dict() for s in self.self_references],
            "polymorphic_multi_type": [p.to_dict() for p in self.polymorphic_multi_type],
        }


@dataclass(frozen=True)
class NamingConventionProfile:
    """Naming habits observed across the whole schema.

    `foreign_key_style` is the style used by more than half of the
    single-column foreign keys, or None when no style dominates.
    """
    foreign_key_style: Optional[str] = None
    counts: Dict[str, int] = field(default_factory=dict)
    pivot_tables: Tuple[str, ...] = ()
    polymorphic: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "foreign_key_style": self.foreign_key_style,
            "counts": dict(self.counts),
            "pivot_tables": list(self.pivot_tables),
            "polymorphic": list(self.polymorphic),
        }


@dataclass(frozen=True)
class RelationshipSet:
    """Final relationships of one table plus the cross-cutting analyses."""
    table: str
    relationships: Tuple[RelationshipCandidate, ...] = ()
    bidirectional: Tuple[BidirectionalMapping, ...] = ()
    complex: ComplexRelationships = field(default_factory=ComplexRelationships)
    naming_conventions: NamingConventionProfile = field(default_factory=NamingConventionProfile)
    warnings: Tuple[AnalysisWarning, ...] = ()

    @property
    def methods(self) -> List[str]:
        return [r.method for r in self.relationships]

    def by_kind(self, kind: RelationshipKind) -> List[RelationshipCandidate]:
        return [r for r in self.relationships if r.kind == kind]

    def get(self, method: str) -> Optional[RelationshipCandidate]:
        for relationship in self.relationships:
            if relationship.method == method:
                return relationship
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "relationships": [r.to_dict() for r in self.relationships],
            "bidirectional": [b.to_dict() for b in self.bidirectional],
            "complex": self.complex.to_dict(),
            "naming_conventions": self.naming_conventions.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)


@dataclass
class SchemaAnalysisResult:
    """Outcome of a whole-schema run: successes and per-table failures."""
    results: Dict[str, RelationshipSet] = field(default_factory=dict)
    errors: Dict[str, RelationshipError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def summary(self) -> str:
        """Generate a summary of the run."""
        lines = [f"Tables analyzed: {len(self.results)}"]
        total = sum(len(s.relationships) for s in self.results.values())
        lines.append(f"  Relationships: {total}")
        if self.errors:
            lines.append(f"  Failed tables: {len(self.errors)}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": {name: s.to_dict() for name, s in sorted(self.results.items())},
            "errors": {name: e.to_dict() for name, e in sorted(self.errors.items())},
        }
