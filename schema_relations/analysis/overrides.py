"""Override configuration for relationship inference.

A RelationshipConfig is validated once, when it is loaded, and is then
passed read-only into the coordinator. It holds the naming templates, the
per-kind detection switches and the relationships users declare for
tables whose structure carries no signal (no foreign key, no naming match).

Example JSON document:

    {
      "naming": {"has_many_method": "{models}List"},
      "custom_relationships": {
        "users": [
          {"type": "hasMany", "model": "Comment", "foreign_key": "posted_by"}
        ]
      },
      "polymorphic_cascade": {"posts.comments": {"cascade_delete": true}}
    }
"""

import json
import logging
import string
from pathlib import Path
from typing import Dict, List, Literal, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from schema_relations.analysis.models import RelationshipKind
from schema_relations.errors import ConfigurationError

logger = logging.getLogger(__name__)

_FROZEN = ConfigDict(frozen=True, extra="forbid")

METHOD_PLACEHOLDERS = {"model", "models", "table", "name"}
FOREIGN_KEY_PLACEHOLDERS = {"table", "key"}
POLYMORPHIC_PLACEHOLDERS = {"name"}
PIVOT_PLACEHOLDERS = {"table1", "table2"}


def template_placeholders(template: str) -> Set[str]:
    """Names of the {placeholders} used in a naming template."""
    names = set()
    for _, field_name, format_spec, conversion in string.Formatter().parse(template):
        if field_name is None:
            continue
        if not field_name or format_spec or conversion:
            raise ValueError(f"Unsupported placeholder in template '{template}'")
        names.add(field_name)
    return names


def _check_template(template: str, allowed: Set[str], required: Optional[Set[str]] = None) -> str:
    if not template:
        raise ValueError("Naming template cannot be empty")
    try:
        used = template_placeholders(template)
    except ValueError as e:
        # str.Formatter raises on unbalanced braces
        raise ValueError(f"Malformed template '{template}': {e}") from e
    unknown = used - allowed
    if unknown:
        raise ValueError(
            f"Unknown placeholder(s) {sorted(unknown)} in template '{template}'; "
            f"allowed: {sorted(allowed)}"
        )
    missing = (required or set()) - used
    if missing:
        raise ValueError(f"Template '{template}' must contain {sorted(missing)}")
    return template


class NamingConventions(BaseModel):
    """Naming templates used to read and produce names."""

    model_config = _FROZEN

    # Foreign key patterns, tried in order
    foreign_key_patterns: List[str] = Field(default_factory=lambda: ["{table}_id", "{table}_{key}", "{key}"])

    # Polymorphic type and id column patterns
    polymorphic_type_pattern: str = "{name}_type"
    polymorphic_id_pattern: str = "{name}_id"

    pivot_table_pattern: str = "{table1}_{table2}"

    # Relationship method naming
    belongs_to_method: str = "{model}"
    has_one_method: str = "{model}"
    has_many_method: str = "{models}"
    belongs_to_many_method: str = "{models}"
    morph_to_method: str = "{name}"
    morph_one_method: str = "{model}"
    morph_many_method: str = "{models}"

    soft_delete_column: str = "deleted_at"
    created_at_column: str = "created_at"
    updated_at_column: str = "updated_at"

    @field_validator("foreign_key_patterns")
    @classmethod
    def validate_foreign_key_patterns(cls, patterns: List[str]) -> List[str]:
        if not patterns:
            raise ValueError("At least one foreign key pattern is required")
        return [_check_template(p, FOREIGN_KEY_PLACEHOLDERS) for p in patterns]

    @field_validator("polymorphic_type_pattern", "polymorphic_id_pattern")
    @classmethod
    def validate_polymorphic_pattern(cls, pattern: str) -> str:
        return _check_template(pattern, POLYMORPHIC_PLACEHOLDERS, required={"name"})

    @field_validator("pivot_table_pattern")
    @classmethod
    def validate_pivot_pattern(cls, pattern: str) -> str:
        return _check_template(pattern, PIVOT_PLACEHOLDERS, required=PIVOT_PLACEHOLDERS)

    @field_validator(
        "belongs_to_method",
        "has_one_method",
        "has_many_method",
        "belongs_to_many_method",
        "morph_to_method",
        "morph_one_method",
        "morph_many_method",
    )
    @classmethod
    def validate_method_template(cls, template: str) -> str:
        return _check_template(template, METHOD_PLACEHOLDERS)

    @model_validator(mode="after")
    def validate_polymorphic_pair(self) -> "NamingConventions":
        if self.polymorphic_type_pattern == self.polymorphic_id_pattern:
            raise ValueError("Polymorphic type and id patterns must differ")
        return self

    def method_template(self, kind: RelationshipKind) -> str:
        return {
            RelationshipKind.BELONGS_TO: self.belongs_to_method,
            RelationshipKind.HAS_ONE: self.has_one_method,
            RelationshipKind.HAS_MANY: self.has_many_method,
            RelationshipKind.BELONGS_TO_MANY: self.belongs_to_many_method,
            RelationshipKind.MORPH_TO: self.morph_to_method,
            RelationshipKind.MORPH_ONE: self.morph_one_method,
            RelationshipKind.MORPH_MANY: self.morph_many_method,
        }[kind]


class DetectionStrategies(BaseModel):
    """Switches for each detector; `polymorphic` covers all morph kinds."""

    model_config = _FROZEN

    belongs_to: bool = True
    has_one: bool = True
    has_many: bool = True
    belongs_to_many: bool = True
    polymorphic: bool = True

    def is_enabled(self, kind: RelationshipKind) -> bool:
        if kind.is_polymorphic:
            return self.polymorphic
        return {
            RelationshipKind.BELONGS_TO: self.belongs_to,
            RelationshipKind.HAS_ONE: self.has_one,
            RelationshipKind.HAS_MANY: self.has_many,
            RelationshipKind.BELONGS_TO_MANY: self.belongs_to_many,
        }[kind]


class CustomRelationship(BaseModel):
    """A relationship declared by the user for one table.

    Either `related_table` or `model` names the related side (morphTo has
    none). When only `model` is given, the related table is the plural
    snake_case form of the model name.
    """

    model_config = _FROZEN

    type: RelationshipKind
    model: Optional[str] = None
    related_table: Optional[str] = None
    foreign_key: Optional[str] = None
    related_key: str = "id"
    method: Optional[str] = None
    comment: Optional[str] = None
    required: bool = False

    # belongsToMany
    pivot_table: Optional[str] = None
    foreign_pivot_key: Optional[str] = None
    related_pivot_key: Optional[str] = None
    pivot_fields: List[str] = Field(default_factory=list)
    pivot_timestamps: bool = False

    # morph kinds
    morph_name: Optional[str] = None
    type_column: Optional[str] = None
    id_column: Optional[str] = None
    type_value: Optional[str] = None

    @field_validator("method")
    @classmethod
    def validate_method(cls, method: Optional[str]) -> Optional[str]:
        if method is not None and not method.isidentifier():
            raise ValueError(f"Method name '{method}' is not a valid identifier")
        return method

    @model_validator(mode="after")
    def validate_related_side(self) -> "CustomRelationship":
        if self.type != RelationshipKind.MORPH_TO and not (self.related_table or self.model):
            raise ValueError(f"A {self.type.value} relationship needs 'related_table' or 'model'")
        if self.type.is_polymorphic and not self.morph_name:
            raise ValueError(f"A {self.type.value} relationship needs 'morph_name'")
        return self


class CascadeOption(BaseModel):
    model_config = _FROZEN

    cascade_delete: bool = False
    cascade_update: bool = False


class RelationshipConfig(BaseModel):
    """Immutable configuration passed into the coordinator."""

    model_config = _FROZEN

    naming: NamingConventions = Field(default_factory=NamingConventions)
    detection: DetectionStrategies = Field(default_factory=DetectionStrategies)
    generate_inverse: bool = True
    custom_relationships: Dict[str, List[CustomRelationship]] = Field(default_factory=dict)

    # Keyed "table.related_table" or by morph name
    polymorphic_cascade: Dict[str, CascadeOption] = Field(default_factory=dict)

    morph_sampling_policy: Literal["accept", "reject"] = "accept"
    sample_limit: int = Field(default=100, ge=1)
    strict_pivot_detection: bool = False

    @model_validator(mode="after")
    def validate_unique_methods(self) -> "RelationshipConfig":
        for table, relations in self.custom_relationships.items():
            seen = set()
            for relation in relations:
                if relation.method is None:
                    continue
                if relation.method in seen:
                    raise ValueError(f"Duplicate custom method '{relation.method}' on table '{table}'")
                seen.add(relation.method)
        return self

    def custom_for(self, table: str) -> List[CustomRelationship]:
        return list(self.custom_relationships.get(table, []))

    def cascade_for(self, table: str, related_table: Optional[str], morph_name: str) -> CascadeOption:
        """Cascade options of a polymorphic relationship, by table pair first, then morph name."""
        pair = f"{table}.{related_table}"
        if pair in self.polymorphic_cascade:
            return self.polymorphic_cascade[pair]
        return self.polymorphic_cascade.get(morph_name, CascadeOption())

    @classmethod
    def from_dict(cls, data: Dict) -> "RelationshipConfig":
        """Validate a configuration mapping, raising ConfigurationError on failure."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            errors = [
                {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                for err in e.errors()
            ]
            raise ConfigurationError(
                f"Invalid relationship configuration ({len(errors)} error(s))",
                details={"errors": errors},
            ) from e

    @classmethod
    def load(cls, path: Union[str, Path]) -> "RelationshipConfig":
        """Load and validate a JSON configuration file."""
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {path}", details={"path": str(path)}) from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Configuration file is not valid JSON: {path}: {e}",
                details={"path": str(path)},
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be an object", details={"path": str(path)})

        config = cls.from_dict(data)
        logger.info(
            "Loaded relationship configuration from %s (%d tables with custom relationships)",
            path,
            len(config.custom_relationships),
        )
        return config
