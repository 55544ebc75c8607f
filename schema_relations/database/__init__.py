"""Schema catalog and introspection module for schema-relations.

This module provides the read-only catalog the inference engine works on,
plus a DuckDB introspector that builds it from a live database.
"""

from .models import (
    Column,
    ColumnType,
    ForeignKey,
    Index,
    ReferentialAction,
    SchemaCatalog,
    Table,
    UniqueConstraint,
)
from .base import DatabaseIntrospector, DistinctValueSampler, InMemoryValueSampler
from .type_mappers import TypeMapper, DuckDBTypeMapper
from .duckdb import DuckDBIntrospector

__all__ = [
    # Data models
    "Column",
    "ColumnType",
    "ForeignKey",
    "Index",
    "ReferentialAction",
    "SchemaCatalog",
    "Table",
    "UniqueConstraint",
    # Base classes
    "DatabaseIntrospector",
    "DistinctValueSampler",
    "InMemoryValueSampler",
    # Type mappers
    "TypeMapper",
    "DuckDBTypeMapper",
    # Introspectors
    "DuckDBIntrospector",
]
