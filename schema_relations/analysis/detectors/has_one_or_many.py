"""HasOne / HasMany detection.

Both kinds come from the same signal: a foreign key on another table that
references the analyzed table's primary key. Uniqueness of the key columns
on the child table is the only thing that tells them apart.
"""

from dataclasses import replace
from typing import Dict, List

from schema_relations.analysis.detectors.base import DetectionContext, cascade_suffix, make_inverse
from schema_relations.analysis.models import RelationshipCandidate, RelationshipKind, WarningCode
from schema_relations.database.models import ForeignKey, Table

SECONDARY_CONFIDENCE = 0.6


def _scan_children(table: Table, context: DetectionContext) -> List[RelationshipCandidate]:
    if not table.primary_key:
        return []

    keys_by_child: Dict[str, List[ForeignKey]] = {}
    for fk in context.catalog.foreign_keys_referencing(table.name):
        if fk.table != table.name and fk.referenced_columns == table.primary_key:
            keys_by_child.setdefault(fk.table, []).append(fk)

    candidates = []
    for child_name, fks in keys_by_child.items():
        child = context.catalog.get_table(child_name)
        uniques = [child.is_unique(fk.columns) for fk in fks]
        mixed = any(uniques) and not all(uniques)
        if mixed:
            context.warn(
                WarningCode.STRUCTURAL_AMBIGUITY,
                f"{child.name} references {table.name} through both unique and non-unique keys; "
                "hasOne is preferred and hasMany kept as secondary",
                table=child.name,
                columns=sorted(fk.local_column for fk in fks),
            )

        for fk, unique in zip(fks, uniques):
            kind = RelationshipKind.HAS_ONE if unique else RelationshipKind.HAS_MANY
            if unique:
                description = f"Get the associated {child.name} record"
            else:
                description = f"Get the {child.name} associated with this record"

            candidate = RelationshipCandidate(
                kind=kind,
                source_table=table.name,
                related_table=child.name,
                method=context.resolver.method_name(kind, child.name),
                foreign_key=fk.columns,
                local_key=fk.referenced_columns,
                on_delete=fk.on_delete,
                on_update=fk.on_update,
                cascade_delete=fk.cascades_on_delete,
                cascade_update=fk.cascades_on_update,
                has_soft_deletes=context.has_soft_deletes(child.name),
                confidence=SECONDARY_CONFIDENCE if mixed and not unique else 1.0,
                secondary=mixed and not unique,
                description=cascade_suffix(description, fk.cascades_on_delete),
            )
            candidates.append(replace(candidate, inverse=make_inverse(context.resolver, candidate)))

    return candidates


def detect_has_one(table: Table, context: DetectionContext) -> List[RelationshipCandidate]:
    """Children whose key to `table` is unique."""
    return [c for c in _scan_children(table, context) if c.kind == RelationshipKind.HAS_ONE]


def detect_has_many(table: Table, context: DetectionContext) -> List[RelationshipCandidate]:
    """Children whose key to `table` is not unique."""
    return [c for c in _scan_children(table, context) if c.kind == RelationshipKind.HAS_MANY]
