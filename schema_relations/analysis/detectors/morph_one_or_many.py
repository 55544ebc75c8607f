"""MorphOne / MorphMany detection.

The analyzed table is the polymorphic target. Other tables declare a
{name}_type/{name}_id pair; the sampled type values decide whether a pair
points at the analyzed table. Without a sample, the configured sampling
policy decides whether the structural match alone is kept.
"""

from dataclasses import replace
from typing import List

from schema_relations.analysis.detectors.base import DetectionContext, cascade_suffix, make_inverse
from schema_relations.analysis.models import MorphInfo, RelationshipCandidate, RelationshipKind, WarningCode
from schema_relations.database.models import Table

STRUCTURAL_CONFIDENCE = 0.5


def _scan_morph_children(table: Table, context: DetectionContext) -> List[RelationshipCandidate]:
    candidates = []

    for child in context.catalog.tables:
        if child.name == table.name:
            continue

        for name, type_column, id_column in context.morph_pairs(child):
            values = context.sample(child.name, type_column)

            if values is None:
                accepted = context.config.morph_sampling_policy == "accept"
                context.warn(
                    WarningCode.SAMPLING_UNAVAILABLE,
                    f"No type values for {child.name}.{type_column}; structural match "
                    + ("kept with lower confidence" if accepted else "rejected"),
                    table=child.name,
                    column=type_column,
                )
                if not accepted:
                    continue
                matched = ()
                confidence = STRUCTURAL_CONFIDENCE
            else:
                matched = tuple(v for v in values if context.type_value_denotes(v, table.name))
                if not matched:
                    continue
                confidence = 1.0

            unique = child.is_unique((type_column, id_column))
            kind = RelationshipKind.MORPH_ONE if unique else RelationshipKind.MORPH_MANY
            cascade = context.config.cascade_for(table.name, child.name, name)
            if unique:
                description = f"Get the associated {child.name} record as a polymorphic relation"
            else:
                description = f"Get the associated {child.name} records as a polymorphic relation"

            candidate = RelationshipCandidate(
                kind=kind,
                source_table=table.name,
                related_table=child.name,
                method=context.resolver.method_name(kind, child.name),
                foreign_key=(id_column,),
                local_key=table.primary_key[:1] or ("id",),
                cascade_delete=cascade.cascade_delete,
                cascade_update=cascade.cascade_update,
                has_soft_deletes=context.has_soft_deletes(child.name),
                confidence=confidence,
                description=cascade_suffix(description, cascade.cascade_delete),
                morph=MorphInfo(
                    name=name,
                    type_column=type_column,
                    id_column=id_column,
                    type_values=matched,
                    sampled=values is not None,
                ),
            )
            candidates.append(replace(candidate, inverse=make_inverse(context.resolver, candidate)))

    return candidates


def detect_morph_one(table: Table, context: DetectionContext) -> List[RelationshipCandidate]:
    return [c for c in _scan_morph_children(table, context) if c.kind == RelationshipKind.MORPH_ONE]


def detect_morph_many(table: Table, context: DetectionContext) -> List[RelationshipCandidate]:
    return [c for c in _scan_morph_children(table, context) if c.kind == RelationshipKind.MORPH_MANY]
