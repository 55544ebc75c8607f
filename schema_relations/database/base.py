"""Abstract base classes for schema introspection and value sampling."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from schema_relations.errors import SamplingUnavailableError

from .models import Column, ForeignKey, Index, SchemaCatalog, Table, UniqueConstraint

logger = logging.getLogger(__name__)


class DistinctValueSampler(ABC):
    """Optional capability: read distinct values of a column from live data.

    Implementations must cap the read at `limit` rows and raise
    SamplingUnavailableError when the data cannot be queried.
    """

    @abstractmethod
    def get_distinct_values(self, table: str, column: str, limit: int = 100) -> List[str]:
        """Get up to `limit` distinct non-null values of `table.column` as strings."""
        pass


class InMemoryValueSampler(DistinctValueSampler):
    """Serves pre-collected values, keyed by (table, column).

    Used for catalogs loaded from JSON documents and in tests. Columns that
    were never collected are reported as unavailable rather than empty.
    """

    def __init__(self, values: Optional[Mapping[Tuple[str, str], Iterable[str]]] = None):
        self._values: Dict[Tuple[str, str], List[str]] = {
            key: list(dict.fromkeys(str(v) for v in vals if v is not None))
            for key, vals in (values or {}).items()
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, Iterable[str]]]) -> "InMemoryValueSampler":
        """Build from the nested {table: {column: [values]}} JSON shape."""
        return cls({
            (table, column): values
            for table, columns in data.items()
            for column, values in columns.items()
        })

    def get_distinct_values(self, table: str, column: str, limit: int = 100) -> List[str]:
        key = (table, column)
        if key not in self._values:
            raise SamplingUnavailableError(table, column, "no sample collected")
        return self._values[key][:limit]


class DatabaseIntrospector(ABC):
    """Abstract base class for database introspection.

    Subclasses must implement the abstract methods to provide
    database-specific introspection logic.
    """

    @abstractmethod
    def connect(self):
        """Establish connection to the database."""
        pass

    @abstractmethod
    def close(self):
        """Close the database connection."""
        pass

    @abstractmethod
    def get_tables(self, schema: str) -> List[str]:
        """Get all base tables in a schema.

        Args:
            schema: Schema name

        Returns:
            List of table names
        """
        pass

    @abstractmethod
    def get_columns(self, schema: str, table: str) -> List[Column]:
        """Get all columns for a table, in ordinal order."""
        pass

    @abstractmethod
    def get_primary_keys(self, schema: str, table: str) -> List[str]:
        """Get primary key columns for a table."""
        pass

    @abstractmethod
    def get_foreign_keys(self, schema: str, table: str) -> List[ForeignKey]:
        """Get foreign keys owned by a table."""
        pass

    @abstractmethod
    def get_unique_constraints(self, schema: str, table: str) -> List[UniqueConstraint]:
        """Get unique constraints declared on a table."""
        pass

    def get_indexes(self, schema: str, table: str) -> List[Index]:
        """Get index definitions. Dialects without index metadata return none."""
        return []

    def introspect_catalog(self, schema: str, name: Optional[str] = None) -> SchemaCatalog:
        """Introspect one schema and return an immutable catalog snapshot.

        Args:
            schema: Schema name to read
            name: Catalog name (defaults to the schema name)

        Returns:
            SchemaCatalog containing every base table of the schema
        """
        tables = []
        for table_name in self.get_tables(schema):
            tables.append(Table(
                name=table_name,
                schema=schema,
                columns=self.get_columns(schema, table_name),
                primary_key=self.get_primary_keys(schema, table_name),
                foreign_keys=self.get_foreign_keys(schema, table_name),
                unique_constraints=self.get_unique_constraints(schema, table_name),
                indexes=self.get_indexes(schema, table_name),
            ))

        logger.info("Introspected %d tables from schema %s", len(tables), schema)
        return SchemaCatalog(name=name or schema, tables=tables)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
