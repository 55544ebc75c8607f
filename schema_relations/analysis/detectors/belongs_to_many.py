"""BelongsToMany detection through junction (pivot) tables.

Foreign key topology is enough to detect a pivot: any other table with at
least two foreign keys, one of them referencing the analyzed table. Pivot
naming (role_user, roles_users, ...) only raises confidence and picks the
primary endpoint when a pivot pairs the table with several others.
"""

import logging
from dataclasses import replace
from typing import List

from schema_relations.analysis.detectors.base import DetectionContext, make_inverse
from schema_relations.analysis.models import PivotInfo, RelationshipCandidate, RelationshipKind, WarningCode
from schema_relations.database.models import ForeignKey, Table

logger = logging.getLogger(__name__)

NAMING_MATCH_CONFIDENCE = 1.0
TOPOLOGY_CONFIDENCE = 0.8
SECONDARY_CONFIDENCE = 0.5


def is_strict_pivot(pivot: Table) -> bool:
    """Whether the pivot's primary key is absent, made of its FK columns, or one autoincrement column."""
    if not pivot.primary_key:
        return True
    fk_columns = {column for fk in pivot.foreign_keys for column in fk.columns}
    if set(pivot.primary_key) <= fk_columns:
        return True
    if len(pivot.primary_key) == 1:
        column = pivot.get_column(pivot.primary_key[0])
        return bool(column and column.autoincrement)
    return False


def pivot_fields(pivot: Table, context: DetectionContext) -> List[str]:
    """Columns of a pivot that carry data of their own, a surrogate id included."""
    excluded = {column for fk in pivot.foreign_keys for column in fk.columns}
    excluded.update({
        context.conventions.created_at_column,
        context.conventions.updated_at_column,
        context.conventions.soft_delete_column,
    })
    return [name for name in pivot.column_names if name not in excluded]


def _candidate(table: Table, pivot: Table, own: ForeignKey, other: ForeignKey,
               naming_match: bool, context: DetectionContext) -> RelationshipCandidate:
    related = other.referenced_table
    return RelationshipCandidate(
        kind=RelationshipKind.BELONGS_TO_MANY,
        source_table=table.name,
        related_table=related,
        method=context.resolver.method_name(RelationshipKind.BELONGS_TO_MANY, related),
        foreign_key=own.columns,
        owner_key=other.referenced_columns,
        local_key=own.referenced_columns,
        cascade_delete=own.cascades_on_delete,
        cascade_update=own.cascades_on_update,
        on_delete=own.on_delete,
        on_update=own.on_update,
        has_soft_deletes=context.has_soft_deletes(related),
        is_self_referencing=related == table.name,
        confidence=NAMING_MATCH_CONFIDENCE if naming_match else TOPOLOGY_CONFIDENCE,
        description=f"The {related} that belong to this {context.resolver.singular(table.name)}",
        pivot=PivotInfo(
            table=pivot.name,
            foreign_pivot_key=own.local_column,
            related_pivot_key=other.local_column,
            parent_key=own.referenced_column,
            related_key=other.referenced_column,
            fields=tuple(pivot_fields(pivot, context)),
            has_timestamps=context.has_timestamps(pivot),
            has_soft_deletes=pivot.has_soft_delete(context.conventions.soft_delete_column),
            by_naming_convention=naming_match,
        ),
    )


def detect_belongs_to_many(table: Table, context: DetectionContext) -> List[RelationshipCandidate]:
    candidates = []

    for pivot in context.catalog.tables:
        if pivot.name == table.name or len(pivot.foreign_keys) < 2:
            continue

        own_keys = pivot.foreign_keys_to(table.name)
        if not own_keys:
            continue
        if context.config.strict_pivot_detection and not is_strict_pivot(pivot):
            logger.debug("Skipping %s as pivot of %s: primary key is not pivot-shaped", pivot.name, table.name)
            continue

        own = own_keys[0]
        others = [
            fk for fk in pivot.foreign_keys
            if fk is not own and context.catalog.has_table(fk.referenced_table)
        ]
        if not others:
            continue

        matches = [context.resolver.is_pivot_name(pivot.name, table.name, fk.referenced_table) for fk in others]
        primary_index = matches.index(True) if any(matches) else 0

        if len(others) > 1:
            context.warn(
                WarningCode.STRUCTURAL_AMBIGUITY,
                f"{pivot.name} pairs {table.name} with {len(others)} tables; "
                f"{others[primary_index].referenced_table} is preferred",
                pivot_table=pivot.name,
                endpoints=[fk.referenced_table for fk in others],
            )

        for index, (other, naming_match) in enumerate(zip(others, matches)):
            candidate = _candidate(table, pivot, own, other, naming_match, context)
            if index != primary_index:
                candidate = replace(candidate, secondary=True, confidence=SECONDARY_CONFIDENCE)
            candidates.append(replace(candidate, inverse=make_inverse(context.resolver, candidate)))

    return candidates
