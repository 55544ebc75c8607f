"""BelongsTo detection: one relationship per foreign key the table owns."""

from dataclasses import replace
from typing import List

from schema_relations.analysis.detectors.base import DetectionContext, make_inverse
from schema_relations.analysis.models import RelationshipCandidate, RelationshipKind
from schema_relations.database.models import Table


def detect_belongs_to(table: Table, context: DetectionContext) -> List[RelationshipCandidate]:
    """Detect belongsTo relationships of `table`.

    Self-referencing keys are emitted and tagged. They carry no inverse, and
    neither does a key that references something other than the related
    table's primary key, since the hasOne/hasMany side would not be detected.
    """
    candidates = []

    for fk in table.foreign_keys:
        related = context.catalog.get_table(fk.referenced_table)
        required = all(
            column is not None and not column.is_nullable
            for column in (table.get_column(name) for name in fk.columns)
        )
        candidate = RelationshipCandidate(
            kind=RelationshipKind.BELONGS_TO,
            source_table=table.name,
            related_table=fk.referenced_table,
            method=context.resolver.method_name(
                RelationshipKind.BELONGS_TO,
                fk.referenced_table,
                foreign_key=fk.local_column,
                owner_key=fk.referenced_column,
            ),
            foreign_key=fk.columns,
            owner_key=fk.referenced_columns,
            required=required,
            on_delete=fk.on_delete,
            on_update=fk.on_update,
            cascade_delete=fk.cascades_on_delete,
            cascade_update=fk.cascades_on_update,
            has_soft_deletes=context.has_soft_deletes(fk.referenced_table),
            is_self_referencing=fk.is_self_referencing,
            description=f"Get the {context.resolver.singular(fk.referenced_table)} that this record belongs to",
        )

        if (
            not fk.is_self_referencing
            and related is not None
            and related.primary_key == fk.referenced_columns
        ):
            inverse = make_inverse(context.resolver, candidate, unique=table.is_unique(fk.columns))
            candidate = replace(candidate, inverse=inverse)

        candidates.append(candidate)

    return candidates
