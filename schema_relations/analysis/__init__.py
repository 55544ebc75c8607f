"""Relationship inference over a schema catalog.

Detects, for any table:
- belongsTo / hasOne / hasMany relationships from foreign keys
- belongsToMany relationships through pivot tables
- morphTo / morphOne / morphMany polymorphic relationships

and reports foreign key cycles, self-references, polymorphic slots used
with several types, and the naming habits of the schema.
"""

from schema_relations.analysis.models import (
    AnalysisWarning,
    BidirectionalMapping,
    ComplexRelationships,
    CycleReport,
    MorphInfo,
    NamingConventionProfile,
    PivotInfo,
    PolymorphicUsage,
    RelationshipCandidate,
    RelationshipKind,
    RelationshipRef,
    RelationshipSet,
    SchemaAnalysisResult,
    SelfReference,
    WarningCode,
)
from schema_relations.analysis.overrides import (
    CustomRelationship,
    DetectionStrategies,
    NamingConventions,
    RelationshipConfig,
)
from schema_relations.analysis.naming import NamingConventionResolver
from schema_relations.analysis.graph import RelationshipGraph
from schema_relations.analysis.coordinator import RelationshipCoordinator

__all__ = [
    "AnalysisWarning",
    "BidirectionalMapping",
    "ComplexRelationships",
    "CustomRelationship",
    "CycleReport",
    "DetectionStrategies",
    "MorphInfo",
    "NamingConventionProfile",
    "NamingConventionResolver",
    "NamingConventions",
    "PivotInfo",
    "PolymorphicUsage",
    "RelationshipCandidate",
    "RelationshipConfig",
    "RelationshipCoordinator",
    "RelationshipGraph",
    "RelationshipKind",
    "RelationshipRef",
    "RelationshipSet",
    "SchemaAnalysisResult",
    "SelfReference",
    "WarningCode",
]
