"""Relationship coordinator.

Runs every detector for a table, merges the user's declared relationships
on top, gives every relationship a unique method name and adds the
schema-level analyses (cycles, self-references, polymorphic usage, naming
profile).

Example usage:
    coordinator = RelationshipCoordinator(catalog, config=config, sampler=introspector)

    relationships = coordinator.analyze("users")
    result = coordinator.analyze_all(max_workers=4)
"""

import logging
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Set, Tuple

from schema_relations.analysis.detectors import DETECTORS, DetectionContext, make_inverse
from schema_relations.analysis.graph import RelationshipGraph
from schema_relations.analysis.models import (
    KIND_ORDER,
    BidirectionalMapping,
    ComplexRelationships,
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
from schema_relations.analysis.naming import (
    STYLE_ID_SUFFIXED,
    STYLE_TABLE_ID,
    STYLE_TABLE_PREFIXED,
    NamingConventionResolver,
    model_name,
)
from schema_relations.analysis.overrides import CustomRelationship, RelationshipConfig
from schema_relations.database.base import DistinctValueSampler
from schema_relations.database.models import SchemaCatalog, Table
from schema_relations.errors import RelationshipError, TableNotFoundError

logger = logging.getLogger(__name__)

# Order in which a dominant foreign key style is looked for
STYLE_PRIORITY = (STYLE_ID_SUFFIXED, STYLE_TABLE_ID, STYLE_TABLE_PREFIXED)


class RelationshipCoordinator:
    """Infers the relationships of tables in one schema catalog.

    The catalog, configuration and sampler are fixed at construction, as are
    the foreign key graph and the naming profile. `analyze` keeps no state
    between calls, so tables can be analyzed from several threads at once.
    """

    def __init__(
        self,
        catalog: SchemaCatalog,
        config: Optional[RelationshipConfig] = None,
        sampler: Optional[DistinctValueSampler] = None,
    ):
        self.catalog = catalog
        self.config = config or RelationshipConfig()
        self.sampler = sampler
        self.resolver = NamingConventionResolver(self.config.naming)
        self.graph = RelationshipGraph.from_catalog(catalog)
        self._sampler_lock = threading.Lock()
        self.naming_profile = self._profile_naming()

    def _context(self) -> DetectionContext:
        return DetectionContext(
            catalog=self.catalog,
            resolver=self.resolver,
            config=self.config,
            sampler=self.sampler,
            sampler_lock=self._sampler_lock,
        )

    def analyze(self, table_name: str) -> RelationshipSet:
        """Infer every relationship of one table.

        Args:
            table_name: Table to analyze

        Returns:
            RelationshipSet, empty when the table has no structural relationships

        Raises:
            TableNotFoundError: If the table is not in the catalog
        """
        table = self.catalog.get_table(table_name)
        if table is None:
            raise TableNotFoundError(table_name)

        context = self._context()

        detected: List[RelationshipCandidate] = []
        for kind, detector in DETECTORS:
            if self.config.detection.is_enabled(kind):
                detected.extend(detector(table, context))

        declared = self.config.custom_for(table.name)
        customs = [self._custom_candidate(table, custom) for custom in declared]
        custom_signatures = {c.signature for c in customs}

        kept = []
        for candidate in detected:
            if candidate.signature in custom_signatures:
                context.warn(
                    WarningCode.CUSTOM_OVERRIDE,
                    f"Detected {candidate.kind.value} '{candidate.method}' replaced by a custom relationship",
                    kind=candidate.kind.value,
                    related_table=candidate.related_table,
                )
                continue
            kept.append(candidate)

        relationships = self._assign_method_names(
            customs, [custom.method is not None for custom in declared], kept, context
        )
        if not self.config.generate_inverse:
            relationships = [replace(r, inverse=None) for r in relationships]

        logger.debug("Analyzed %s: %d relationship(s)", table.name, len(relationships))

        return RelationshipSet(
            table=table.name,
            relationships=tuple(relationships),
            bidirectional=tuple(self._bidirectional(table.name, relationships)),
            complex=self._complex_relationships(table, relationships, context),
            naming_conventions=self.naming_profile,
            warnings=tuple(context.warnings),
        )

    def analyze_all(
        self,
        tables: Optional[Iterable[str]] = None,
        max_workers: int = 1,
    ) -> SchemaAnalysisResult:
        """Analyze many tables; a failing table never stops the others.

        Args:
            tables: Tables to analyze (defaults to every table in the catalog)
            max_workers: Number of tables analyzed concurrently

        Returns:
            SchemaAnalysisResult with per-table results and per-table errors
        """
        names = list(tables) if tables is not None else self.catalog.table_names
        result = SchemaAnalysisResult()

        if max_workers > 1 and len(names) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                outcomes = list(executor.map(self._analyze_safely, names))
        else:
            outcomes = [self._analyze_safely(name) for name in names]

        for name, relationships, error in outcomes:
            if error is not None:
                result.errors[name] = error
            else:
                result.results[name] = relationships

        logger.info(
            "Analyzed %d table(s): %d succeeded, %d failed",
            len(names),
            len(result.results),
            len(result.errors),
        )
        return result

    def _analyze_safely(self, table_name: str) -> Tuple[str, Optional[RelationshipSet], Optional[RelationshipError]]:
        try:
            return table_name, self.analyze(table_name), None
        except RelationshipError as e:
            logger.warning("Analysis failed for %s: %s", table_name, e.message)
            return table_name, None, e
        except Exception as e:
            logger.exception("Unexpected error analyzing %s", table_name)
            return table_name, None, RelationshipError(
                f"Analysis failed for {table_name}: {e}",
                code="ANALYSIS_FAILED",
                details={"table": table_name, "type": type(e).__name__},
            )

    # Custom relationships

    def _find_foreign_key(self, owner: Optional[str], columns: Tuple[str, ...], referenced: Optional[str]):
        table = self.catalog.get_table(owner) if owner else None
        if table is None:
            return None
        for fk in table.foreign_keys:
            if fk.columns == columns and fk.referenced_table == referenced:
                return fk
        return None

    def _custom_candidate(self, table: Table, custom: CustomRelationship) -> RelationshipCandidate:
        """Build the candidate of a declared relationship, filling unset keys by convention."""
        resolver = self.resolver
        kind = custom.type
        related = custom.related_table or (resolver.table_for_model(custom.model) if custom.model else None)
        key = custom.related_key

        fields = dict(
            kind=kind,
            source_table=table.name,
            related_table=related,
            required=custom.required,
            is_custom=True,
            has_soft_deletes=self._has_soft_deletes(related),
            is_self_referencing=related == table.name,
        )
        unique = False

        if kind == RelationshipKind.BELONGS_TO:
            foreign_key = custom.foreign_key or resolver.foreign_key_candidates(related, key)[0]
            fk = self._find_foreign_key(table.name, (foreign_key,), related)
            unique = table.is_unique((foreign_key,))
            fields.update(
                foreign_key=(foreign_key,),
                owner_key=(key,),
                description=f"Get the related {custom.model or model_name(related)} that this record belongs to",
            )
        elif kind in (RelationshipKind.HAS_ONE, RelationshipKind.HAS_MANY):
            foreign_key = custom.foreign_key or resolver.foreign_key_candidates(table.name, key)[0]
            fk = self._find_foreign_key(related, (foreign_key,), table.name)
            label = custom.model or model_name(related)
            fields.update(
                foreign_key=(foreign_key,),
                local_key=(key,),
                description=(
                    f"Get the associated {label} record" if kind == RelationshipKind.HAS_ONE
                    else f"Get the {label} records associated with this record"
                ),
            )
        elif kind == RelationshipKind.BELONGS_TO_MANY:
            pivot_table = custom.pivot_table or resolver.default_pivot_table(table.name, related)
            foreign_pivot_key = custom.foreign_pivot_key or resolver.foreign_key_candidates(table.name)[0]
            related_pivot_key = custom.related_pivot_key or resolver.foreign_key_candidates(related)[0]
            fk = self._find_foreign_key(pivot_table, (foreign_pivot_key,), table.name)
            pivot = self.catalog.get_table(pivot_table)
            fields.update(
                foreign_key=(foreign_pivot_key,),
                owner_key=(key,),
                local_key=table.primary_key[:1] or ("id",),
                description=f"The {related} that belong to this {resolver.singular(table.name)}",
                pivot=PivotInfo(
                    table=pivot_table,
                    foreign_pivot_key=foreign_pivot_key,
                    related_pivot_key=related_pivot_key,
                    related_key=key,
                    fields=tuple(custom.pivot_fields),
                    has_timestamps=custom.pivot_timestamps,
                    has_soft_deletes=bool(pivot and pivot.has_soft_delete(self.config.naming.soft_delete_column)),
                    by_naming_convention=resolver.is_pivot_name(pivot_table, table.name, related),
                ),
            )
        else:
            type_column, id_column = resolver.morph_columns(custom.morph_name)
            type_column = custom.type_column or type_column
            id_column = custom.id_column or id_column
            fk = None
            if kind == RelationshipKind.MORPH_TO:
                unique = table.is_unique((type_column, id_column))
                type_values = (custom.type_value,) if custom.type_value else ()
                description = f"Get the owning {custom.morph_name} model"
            else:
                type_values = (custom.type_value or model_name(table.name),)
                description = (
                    f"Get the associated {related} record as a polymorphic relation"
                    if kind == RelationshipKind.MORPH_ONE
                    else f"Get the associated {related} records as a polymorphic relation"
                )
                cascade = self.config.cascade_for(table.name, related, custom.morph_name)
                fields.update(cascade_delete=cascade.cascade_delete, cascade_update=cascade.cascade_update)
            fields.update(
                foreign_key=(id_column,),
                description=description,
                morph=MorphInfo(
                    name=custom.morph_name,
                    type_column=type_column,
                    id_column=id_column,
                    type_values=type_values,
                ),
            )

        if fk is not None:
            fields.update(
                on_delete=fk.on_delete,
                on_update=fk.on_update,
                cascade_delete=fk.cascades_on_delete,
                cascade_update=fk.cascades_on_update,
            )
        if custom.comment:
            fields["description"] = custom.comment
        elif fields.get("cascade_delete") and kind != RelationshipKind.BELONGS_TO:
            fields["description"] += " (with cascade delete)"

        fields["method"] = custom.method or resolver.method_name(
            kind,
            related,
            foreign_key=fields["foreign_key"][0],
            owner_key=key,
            morph_name=custom.morph_name,
        )
        candidate = RelationshipCandidate(**fields)

        if candidate.is_self_referencing and kind == RelationshipKind.BELONGS_TO:
            return candidate
        return replace(candidate, inverse=make_inverse(resolver, candidate, unique=unique))

    def _has_soft_deletes(self, table_name: Optional[str]) -> bool:
        table = self.catalog.get_table(table_name) if table_name else None
        return bool(table and table.has_soft_delete(self.config.naming.soft_delete_column))

    # Naming

    def _assign_method_names(
        self,
        customs: List[RelationshipCandidate],
        declared: List[bool],
        detected: List[RelationshipCandidate],
        context: DetectionContext,
    ) -> List[RelationshipCandidate]:
        """Give every relationship a unique method name and order the result.

        Declared names are reserved first, then names generated for custom
        relationships, then detected relationships in output order. A taken
        name falls back to the resolver's alternatives, then to a numeric
        suffix.
        """
        taken: Set[str] = set()
        named: Dict[int, RelationshipCandidate] = {}

        def claim(candidate: RelationshipCandidate) -> RelationshipCandidate:
            method = candidate.method
            if method in taken:
                method = next(
                    (alt for alt in self.resolver.alternative_method_names(candidate) if alt not in taken),
                    None,
                )
            if method is None:
                suffix = 2
                while f"{candidate.method}{suffix}" in taken:
                    suffix += 1
                method = f"{candidate.method}{suffix}"
                context.warn(
                    WarningCode.AMBIGUOUS_NAMING,
                    f"Method '{candidate.method}' on {candidate.source_table} is taken; using '{method}'",
                    kind=candidate.kind.value,
                    related_table=candidate.related_table,
                    method=method,
                )
            taken.add(method)
            if method != candidate.method:
                logger.debug("Renamed %s.%s to %s", candidate.source_table, candidate.method, method)
                return replace(candidate, method=method)
            return candidate

        explicit = [i for i, is_declared in enumerate(declared) if is_declared]
        generated = [i for i, is_declared in enumerate(declared) if not is_declared]
        for index in explicit + generated:
            named[index] = claim(customs[index])

        ordered_detected = sorted(detected, key=lambda c: KIND_ORDER[c.kind])
        offset = len(customs)
        for index, candidate in enumerate(ordered_detected):
            named[offset + index] = claim(candidate)

        final = [named[i] for i in range(len(customs) + len(ordered_detected))]
        # Stable sort: customs precede detected relationships of the same kind
        return sorted(final, key=lambda c: (KIND_ORDER[c.kind], not c.is_custom))

    # Cross-cutting analyses

    def _bidirectional(self, table_name: str, relationships: List[RelationshipCandidate]) -> List[BidirectionalMapping]:
        return [
            BidirectionalMapping(
                source_table=table_name,
                target_table=r.related_table,
                forward=RelationshipRef(kind=r.kind, method=r.method, table=r.related_table),
                inverse=r.inverse,
            )
            for r in relationships
            if r.inverse is not None
        ]

    def _complex_relationships(
        self,
        table: Table,
        relationships: List[RelationshipCandidate],
        context: DetectionContext,
    ) -> ComplexRelationships:
        methods_by_key = {
            r.foreign_key: r.method
            for r in relationships
            if r.kind == RelationshipKind.BELONGS_TO and r.is_self_referencing
        }
        self_references = ()
        if self.graph.has_self_loop(table.name):
            self_references = tuple(
                SelfReference(
                    column=fk.local_column,
                    referenced_column=fk.referenced_column,
                    method=methods_by_key.get(fk.columns),
                )
                for fk in table.foreign_keys
                if fk.is_self_referencing
            )

        polymorphic = []
        for name, type_column, id_column in context.morph_pairs(table):
            values = context.sample(table.name, type_column)
            if values and len(set(values)) > 1:
                polymorphic.append(PolymorphicUsage(
                    morph_name=name,
                    type_column=type_column,
                    id_column=id_column,
                    distinct_types=tuple(sorted(set(values))),
                ))

        return ComplexRelationships(
            cycles=tuple(self.graph.find_cycles(table.name)),
            self_references=self_references,
            polymorphic_multi_type=tuple(polymorphic),
        )

    def _profile_naming(self) -> NamingConventionProfile:
        """Observe naming habits over the whole catalog."""
        counts: Counter = Counter()
        total = 0
        pivots = []
        morph_names: Set[str] = set()
        context = DetectionContext(catalog=self.catalog, resolver=self.resolver, config=self.config)

        for table in self.catalog.tables:
            for fk in table.foreign_keys:
                total += 1
                counts.update(self.resolver.foreign_key_style(fk.local_column, fk.referenced_table))

            referenced = list(dict.fromkeys(fk.referenced_table for fk in table.foreign_keys))
            if any(self.resolver.is_pivot_name(table.name, a, b) for a, b in combinations(referenced, 2)):
                pivots.append(table.name)

            morph_names.update(name for name, _, _ in context.morph_pairs(table))

        style = None
        if total:
            style = next((s for s in STYLE_PRIORITY if counts[s] / total > 0.5), None)

        return NamingConventionProfile(
            foreign_key_style=style,
            counts={s: counts[s] for s in STYLE_PRIORITY},
            pivot_tables=tuple(pivots),
            polymorphic=tuple(sorted(morph_names)),
        )
