"""MorphTo detection: polymorphic type/id column pairs on the table itself."""

from dataclasses import replace
from typing import List

from schema_relations.analysis.detectors.base import DetectionContext, make_inverse
from schema_relations.analysis.models import MorphInfo, RelationshipCandidate, RelationshipKind
from schema_relations.database.models import Table


def detect_morph_to(table: Table, context: DetectionContext) -> List[RelationshipCandidate]:
    candidates = []

    for name, type_column, id_column in context.morph_pairs(table):
        values = context.sample(table.name, type_column)
        targets = context.tables_for_type_values(values) if values else []
        required = all(
            not table.get_column(column).is_nullable
            for column in (type_column, id_column)
        )

        candidate = RelationshipCandidate(
            kind=RelationshipKind.MORPH_TO,
            source_table=table.name,
            related_table=None,
            method=context.resolver.method_name(RelationshipKind.MORPH_TO, morph_name=name),
            foreign_key=(id_column,),
            required=required,
            description=f"Get the owning {name} model",
            morph=MorphInfo(
                name=name,
                type_column=type_column,
                id_column=id_column,
                type_values=tuple(values or ()),
                sampled=values is not None,
            ),
            target_tables=tuple(targets),
        )
        inverse = make_inverse(context.resolver, candidate, unique=table.is_unique((type_column, id_column)))
        candidates.append(replace(candidate, inverse=inverse))

    return candidates
