"""Schema catalog data models.

A SchemaCatalog is a read-only snapshot of one database's structure. It is
built once by an introspector (or loaded from a JSON document) and shared by
every analysis run; nothing in the analysis layer mutates it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple


class ColumnType(str, Enum):
    """Semantic column types, independent of the database dialect."""

    INTEGER = "integer"
    BIGINT = "bigint"
    DECIMAL = "decimal"
    FLOAT = "float"
    STRING = "string"
    TEXT = "text"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    ENUM = "enum"
    JSON = "json"
    BINARY = "binary"
    GEOMETRIC = "geometric"
    UUID = "uuid"
    INTERVAL = "interval"
    UNKNOWN = "unknown"


class ReferentialAction(str, Enum):
    """Referential action applied on delete/update of the referenced row."""

    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO ACTION"
    UNSPECIFIED = ""

    @classmethod
    def parse(cls, value: Any) -> "ReferentialAction":
        """Normalize a driver-specific spelling ('set_null', 'no action', None)."""
        if isinstance(value, ReferentialAction):
            return value
        if value is None:
            return cls.UNSPECIFIED
        normalized = " ".join(str(value).replace("_", " ").upper().split())
        for action in cls:
            if action.value == normalized:
                return action
        return cls.UNSPECIFIED


def _as_tuple(value: Iterable[Any]) -> Tuple[Any, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True)
class Column:
    """Represents a database column."""
    name: str
    data_type: ColumnType = ColumnType.UNKNOWN
    is_nullable: bool = True
    default: Optional[Any] = None
    autoincrement: bool = False
    raw_type: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.data_type, ColumnType):
            object.__setattr__(self, "data_type", ColumnType(self.data_type))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "data_type": self.data_type.value,
            "is_nullable": self.is_nullable,
            "default": self.default,
            "autoincrement": self.autoincrement,
            "raw_type": self.raw_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Column":
        return cls(
            name=data["name"],
            data_type=ColumnType(data.get("data_type", "unknown")),
            is_nullable=data.get("is_nullable", True),
            default=data.get("default"),
            autoincrement=data.get("autoincrement", False),
            raw_type=data.get("raw_type"),
        )


@dataclass(frozen=True)
class ForeignKey:
    """A foreign key owned by `table` referencing `referenced_table`."""
    table: str
    columns: Tuple[str, ...]
    referenced_table: str
    referenced_columns: Tuple[str, ...]
    on_delete: ReferentialAction = ReferentialAction.UNSPECIFIED
    on_update: ReferentialAction = ReferentialAction.UNSPECIFIED
    name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "columns", _as_tuple(self.columns))
        object.__setattr__(self, "referenced_columns", _as_tuple(self.referenced_columns))
        object.__setattr__(self, "on_delete", ReferentialAction.parse(self.on_delete))
        object.__setattr__(self, "on_update", ReferentialAction.parse(self.on_update))
        if not self.columns:
            raise ValueError(f"Foreign key on {self.table} has no local columns")
        if len(self.columns) != len(self.referenced_columns):
            raise ValueError(
                f"Foreign key {self.table}({', '.join(self.columns)}) -> "
                f"{self.referenced_table}({', '.join(self.referenced_columns)}) "
                "has mismatched column counts"
            )

    @property
    def local_column(self) -> str:
        """First local column (the whole key for single-column FKs)."""
        return self.columns[0]

    @property
    def referenced_column(self) -> str:
        return self.referenced_columns[0]

    @property
    def is_self_referencing(self) -> bool:
        return self.referenced_table == self.table

    @property
    def cascades_on_delete(self) -> bool:
        return self.on_delete == ReferentialAction.CASCADE

    @property
    def cascades_on_update(self) -> bool:
        return self.on_update == ReferentialAction.CASCADE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "columns": list(self.columns),
            "referenced_table": self.referenced_table,
            "referenced_columns": list(self.referenced_columns),
            "on_delete": self.on_delete.value,
            "on_update": self.on_update.value,
        }

    @classmethod
    def from_dict(cls, table: str, data: Dict[str, Any]) -> "ForeignKey":
        return cls(
            table=table,
            columns=data["columns"],
            referenced_table=data["referenced_table"],
            referenced_columns=data.get("referenced_columns", ["id"]),
            on_delete=data.get("on_delete"),
            on_update=data.get("on_update"),
            name=data.get("name"),
        )


@dataclass(frozen=True)
class UniqueConstraint:
    """Uniqueness over a set of columns."""
    columns: Tuple[str, ...]
    name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "columns", _as_tuple(self.columns))

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "columns": list(self.columns)}


@dataclass(frozen=True)
class Index:
    """An index definition."""
    name: str
    columns: Tuple[str, ...]
    is_unique: bool = False

    def __post_init__(self):
        object.__setattr__(self, "columns", _as_tuple(self.columns))

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "columns": list(self.columns), "is_unique": self.is_unique}


@dataclass(frozen=True)
class Table:
    """Represents a database table."""
    name: str
    columns: Tuple[Column, ...] = ()
    primary_key: Tuple[str, ...] = ()
    foreign_keys: Tuple[ForeignKey, ...] = ()
    unique_constraints: Tuple[UniqueConstraint, ...] = ()
    indexes: Tuple[Index, ...] = ()
    schema: Optional[str] = None
    _columns_by_name: Dict[str, Column] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        for attr in ("columns", "primary_key", "foreign_keys", "unique_constraints", "indexes"):
            object.__setattr__(self, attr, _as_tuple(getattr(self, attr)))
        object.__setattr__(self, "_columns_by_name", {c.name: c for c in self.columns})

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def get_column(self, name: str) -> Optional[Column]:
        return self._columns_by_name.get(name)

    def has_column(self, name: str) -> bool:
        return name in self._columns_by_name

    def unique_column_sets(self) -> List[Tuple[str, ...]]:
        """All column sets known to be unique: primary key, unique constraints and unique indexes."""
        sets: List[Tuple[str, ...]] = []
        if self.primary_key:
            sets.append(self.primary_key)
        sets.extend(u.columns for u in self.unique_constraints)
        sets.extend(i.columns for i in self.indexes if i.is_unique)
        return sets

    def is_unique(self, columns: Sequence[str]) -> bool:
        """Whether the given columns are covered by a uniqueness guarantee.

        A unique set that is a subset of `columns` makes `columns` unique too.
        """
        wanted = set(columns)
        if not wanted:
            return False
        return any(set(unique) <= wanted for unique in self.unique_column_sets() if unique)

    def has_soft_delete(self, column: str = "deleted_at") -> bool:
        return self.has_column(column)

    def has_timestamps(self, created: str = "created_at", updated: str = "updated_at") -> bool:
        return self.has_column(created) and self.has_column(updated)

    def foreign_keys_to(self, table: str) -> List[ForeignKey]:
        return [fk for fk in self.foreign_keys if fk.referenced_table == table]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "schema": self.schema,
            "columns": [c.to_dict() for c in self.columns],
            "primary_key": list(self.primary_key),
            "foreign_keys": [fk.to_dict() for fk in self.foreign_keys],
            "unique_constraints": [u.to_dict() for u in self.unique_constraints],
            "indexes": [i.to_dict() for i in self.indexes],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Table":
        name = data["name"]
        return cls(
            name=name,
            schema=data.get("schema"),
            columns=[Column.from_dict(c) for c in data.get("columns", [])],
            primary_key=data.get("primary_key", []),
            foreign_keys=[ForeignKey.from_dict(name, fk) for fk in data.get("foreign_keys", [])],
            unique_constraints=[
                UniqueConstraint(columns=u["columns"], name=u.get("name"))
                for u in data.get("unique_constraints", [])
            ],
            indexes=[
                Index(name=i["name"], columns=i["columns"], is_unique=i.get("is_unique", False))
                for i in data.get("indexes", [])
            ],
        )


@dataclass(frozen=True)
class SchemaCatalog:
    """Read-only snapshot of one database's structural metadata."""
    name: str
    tables: Tuple[Table, ...] = ()
    _tables_by_name: Dict[str, Table] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "tables", _as_tuple(self.tables))
        by_name: Dict[str, Table] = {}
        for table in self.tables:
            if table.name in by_name:
                raise ValueError(f"Duplicate table in catalog: {table.name}")
            by_name[table.name] = table
        object.__setattr__(self, "_tables_by_name", by_name)

    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    def get_table(self, name: str) -> Optional[Table]:
        return self._tables_by_name.get(name)

    def has_table(self, name: str) -> bool:
        return name in self._tables_by_name

    def foreign_keys_referencing(self, table: str) -> List[ForeignKey]:
        """Foreign keys on any table (including `table` itself) that reference `table`."""
        return [
            fk
            for other in self.tables
            for fk in other.foreign_keys
            if fk.referenced_table == table
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "tables": [t.to_dict() for t in self.tables]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchemaCatalog":
        return cls(
            name=data.get("name", "catalog"),
            tables=[Table.from_dict(t) for t in data.get("tables", [])],
        )
