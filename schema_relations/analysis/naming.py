"""Naming convention resolution.

Maps table and column names to model names, relationship method names and
polymorphic column pairs. Every function here is pure: the same names and
conventions always give the same result. Resolving collisions between the
proposed names is the coordinator's job.
"""

import re
from typing import Dict, List, Optional, Tuple

import inflect

from schema_relations.analysis.models import RelationshipCandidate, RelationshipKind
from schema_relations.analysis.overrides import NamingConventions

# Initialize inflect engine for pluralization
p = inflect.engine()

_WORD_SPLIT = re.compile(r"[^A-Za-z0-9]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

# Foreign key styles observed by the schema-wide naming profile
STYLE_TABLE_ID = "table_id"            # user_id
STYLE_ID_SUFFIXED = "idSuffixed"       # idUser
STYLE_TABLE_PREFIXED = "tablePrefixed"  # user_something


def _require(value: str, what: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{what} cannot be empty")
    return value


def _singular_of(word: str) -> Optional[str]:
    """Singular of `word` when it is a plural, else None.

    singular_noun strips a final "s" from singular words too (address,
    bus, status), so the result only counts when it pluralizes back to
    `word` and `word` itself does not take an "es" plural.
    """
    form = p.singular_noun(word)
    if not form or form == word or p.plural_noun(form) != word:
        return None
    if p.plural_noun(word).endswith("es"):
        return None
    return form


def singular(name: str) -> str:
    """Singular form; snake_case names only inflect their last segment."""
    _require(name, "Name")
    head, sep, last = name.rpartition("_")
    if not last:
        return name
    form = _singular_of(last)
    return f"{head}{sep}{form or last}"


def plural(name: str) -> str:
    """Plural form; names that are already plural are returned unchanged."""
    _require(name, "Name")
    head, sep, last = name.rpartition("_")
    if not last or _singular_of(last):
        return name
    return f"{head}{sep}{p.plural_noun(last)}"


def studly(name: str) -> str:
    """order_items -> OrderItems"""
    return "".join(part[:1].upper() + part[1:] for part in _WORD_SPLIT.split(_require(name, "Name")) if part)


def camel(name: str) -> str:
    """order_items -> orderItems, OrderItem -> orderItem"""
    result = studly(name)
    return result[:1].lower() + result[1:]


def snake(name: str) -> str:
    """OrderItem -> order_item"""
    _require(name, "Name")
    parts = [part for part in _WORD_SPLIT.split(_CAMEL_BOUNDARY.sub("_", name)) if part]
    return "_".join(part.lower() for part in parts)


def model_name(table: str) -> str:
    """Model-style name of a table: order_items -> OrderItem."""
    return studly(singular(table))


def table_for_model(model: str) -> str:
    """Conventional table name of a model: OrderItem -> order_items."""
    return plural(snake(model))


def _template_regex(template: str, groups: Dict[str, str]) -> re.Pattern:
    """Compile a naming template into an anchored regex, one named group per placeholder."""
    pattern = ""
    position = 0
    for match in re.finditer(r"\{(\w+)\}", template):
        pattern += re.escape(template[position:match.start()])
        name = match.group(1)
        if pattern.find(f"(?P<{name}>") >= 0:
            pattern += f"(?P={name})"
        else:
            pattern += f"(?P<{name}>{groups.get(name, '.+')})"
        position = match.end()
    pattern += re.escape(template[position:])
    return re.compile(f"^{pattern}$")


class NamingConventionResolver:
    """Proposes names for relationships according to a set of naming conventions."""

    def __init__(self, conventions: Optional[NamingConventions] = None):
        self.conventions = conventions or NamingConventions()
        self._type_regex = _template_regex(self.conventions.polymorphic_type_pattern, {"name": "[A-Za-z0-9_]+?"})

    # Display forms
    singular = staticmethod(singular)
    plural = staticmethod(plural)
    model_name = staticmethod(model_name)
    table_for_model = staticmethod(table_for_model)

    def foreign_key_stem(self, column: str, key: str = "id") -> Optional[str]:
        """The {table} part of a foreign key column, per the first pattern that matches.

        Patterns without a {table} placeholder carry no stem.
        """
        _require(column, "Column name")
        for pattern in self.conventions.foreign_key_patterns:
            if "{table}" not in pattern:
                continue
            regex = _template_regex(pattern.replace("{key}", key), {"table": "[A-Za-z0-9_]+?"})
            match = regex.match(column)
            if match:
                return match.group("table")
        return None

    def foreign_key_candidates(self, table: str, key: str = "id") -> List[str]:
        """Column names the patterns predict for a key referencing `table`."""
        table = singular(_require(table, "Table name"))
        names = [pattern.format(table=table, key=key) for pattern in self.conventions.foreign_key_patterns]
        return list(dict.fromkeys(names))

    def morph_columns(self, name: str) -> Tuple[str, str]:
        """(type_column, id_column) of a morph name."""
        _require(name, "Morph name")
        return (
            self.conventions.polymorphic_type_pattern.format(name=name),
            self.conventions.polymorphic_id_pattern.format(name=name),
        )

    def morph_name_from_type_column(self, column: str) -> Optional[str]:
        match = self._type_regex.match(_require(column, "Column name"))
        return match.group("name") if match else None

    def pivot_table_names(self, table1: str, table2: str) -> List[str]:
        """Conventional pivot names for two tables: singular/plural forms in both orders."""
        _require(table1, "Table name")
        _require(table2, "Table name")
        pattern = self.conventions.pivot_table_pattern
        names = []
        forms = [(singular(table1), singular(table2)), (table1, table2),
                 (singular(table1), table2), (table1, singular(table2))]
        for first, second in forms:
            names.append(pattern.format(table1=first, table2=second))
            names.append(pattern.format(table1=second, table2=first))
        return list(dict.fromkeys(names))

    def default_pivot_table(self, table1: str, table2: str) -> str:
        """Pivot name for two tables: singular forms in alphabetical order (role_user)."""
        first, second = sorted((singular(table1), singular(table2)))
        return self.conventions.pivot_table_pattern.format(table1=first, table2=second)

    def is_pivot_name(self, pivot: str, table1: str, table2: str) -> bool:
        return pivot in self.pivot_table_names(table1, table2)

    def method_name(
        self,
        kind: RelationshipKind,
        related_table: Optional[str] = None,
        foreign_key: Optional[str] = None,
        owner_key: str = "id",
        morph_name: Optional[str] = None,
    ) -> str:
        """Method name proposed for a relationship of `kind`.

        belongsTo names come from the foreign key's stem when the column
        follows a foreign key pattern (manager_id -> manager). morphTo names
        come from the morph name. Everything else uses the related table.
        """
        if kind == RelationshipKind.MORPH_TO:
            base = _require(morph_name or "", "Morph name")
        else:
            base = _require(related_table or "", "Related table")
            if kind == RelationshipKind.BELONGS_TO and foreign_key:
                base = self.foreign_key_stem(foreign_key, owner_key) or base

        template = self.conventions.method_template(kind)
        name = template.format(
            model=model_name(base),
            models=studly(plural(base)),
            table=base,
            name=morph_name or base,
        )
        return camel(name)

    def alternative_method_names(self, candidate: RelationshipCandidate) -> List[str]:
        """Names to try, in order, when a candidate's proposed method is taken.

        messages -> messagesBySender, users -> usersViaRoleUser
        """
        base = candidate.method
        alternatives = []

        if candidate.kind == RelationshipKind.BELONGS_TO_MANY and candidate.pivot:
            alternatives.append(f"{base}Via{studly(candidate.pivot.table)}")
        elif candidate.kind.is_polymorphic and candidate.morph:
            if candidate.kind == RelationshipKind.MORPH_TO:
                alternatives.append(f"{base}Morph")
            else:
                alternatives.append(f"{base}As{studly(candidate.morph.name)}")
        elif candidate.foreign_key:
            column = candidate.foreign_key[0]
            key = (candidate.owner_key or candidate.local_key or ("id",))[0]
            stem = self.foreign_key_stem(column, key)
            if candidate.kind == RelationshipKind.BELONGS_TO:
                if candidate.related_table:
                    alternatives.append(camel(f"{base}_{model_name(candidate.related_table)}"))
            elif stem:
                alternatives.append(f"{base}By{studly(stem)}")
            alternatives.append(f"{base}By{studly(column)}")

        return [name for name in dict.fromkeys(alternatives) if name != base]

    def foreign_key_style(self, column: str, referenced_table: str) -> List[str]:
        """Styles a foreign key column follows with respect to its referenced table."""
        table = singular(referenced_table)
        styles = []
        if column == f"id{studly(table)}":
            styles.append(STYLE_ID_SUFFIXED)
        if column == f"{table}_id":
            styles.append(STYLE_TABLE_ID)
        if column.startswith(table):
            styles.append(STYLE_TABLE_PREFIXED)
        return styles
