"""Database-specific type mapping strategies."""

from abc import ABC, abstractmethod

from .models import ColumnType


class TypeMapper(ABC):
    """Abstract base class for database type mapping."""

    @abstractmethod
    def to_semantic_type(self, db_type: str) -> ColumnType:
        """Convert a raw database type to a semantic column type."""
        pass


class DuckDBTypeMapper(TypeMapper):
    """Type mapper for DuckDB database types."""

    def to_semantic_type(self, db_type: str) -> ColumnType:
        """Convert DuckDB type to a semantic column type."""
        type_upper = (db_type or "").upper()

        if "UUID" in type_upper:
            return ColumnType.UUID
        elif type_upper.startswith("ENUM"):
            return ColumnType.ENUM
        elif "JSON" in type_upper:
            return ColumnType.JSON
        elif type_upper in ("TEXT", "STRING"):
            return ColumnType.TEXT
        elif any(t in type_upper for t in ["VARCHAR", "CHAR", "BPCHAR"]):
            return ColumnType.STRING

        # Checked before integers: both names contain "INT"
        elif "INTERVAL" in type_upper:
            return ColumnType.INTERVAL
        elif any(t in type_upper for t in ["GEOMETRY", "POINT", "POLYGON", "LINESTRING"]):
            return ColumnType.GEOMETRIC

        # Integer types
        elif any(t in type_upper for t in ["BIGINT", "HUGEINT", "UBIGINT", "INT8"]):
            return ColumnType.BIGINT
        elif "INT" in type_upper:
            return ColumnType.INTEGER

        # Floating point types
        elif any(t in type_upper for t in ["NUMERIC", "DECIMAL"]):
            return ColumnType.DECIMAL
        elif any(t in type_upper for t in ["DOUBLE", "FLOAT", "REAL"]):
            return ColumnType.FLOAT

        # Boolean
        elif "BOOL" in type_upper:
            return ColumnType.BOOLEAN

        # Date/Time types
        elif "TIMESTAMP" in type_upper or "DATETIME" in type_upper:
            return ColumnType.DATETIME
        elif type_upper == "DATE":
            return ColumnType.DATE
        elif type_upper.startswith("TIME"):
            return ColumnType.TIME

        # Binary types
        elif any(t in type_upper for t in ["BLOB", "BYTEA", "BINARY", "BIT"]):
            return ColumnType.BINARY

        return ColumnType.UNKNOWN
