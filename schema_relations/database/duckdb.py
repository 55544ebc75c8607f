"""DuckDB database introspector."""

import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Sequence

from schema_relations.errors import IntrospectionError, SamplingUnavailableError

from .base import DatabaseIntrospector, DistinctValueSampler
from .models import Column, ForeignKey, Index, SchemaCatalog, UniqueConstraint
from .type_mappers import DuckDBTypeMapper

logger = logging.getLogger(__name__)

# e.g. FOREIGN KEY (user_id) REFERENCES main.users(id)
FOREIGN_KEY_TEXT = re.compile(
    r'FOREIGN KEY\s*\((?P<local>[^)]*)\)\s*REFERENCES\s+(?P<table>[^\s(]+)\s*\((?P<remote>[^)]*)\)',
    re.IGNORECASE,
)
ACTION_TEXT = r'ON {event}\s+(CASCADE|SET NULL|RESTRICT|NO ACTION)'
# e.g. CREATE UNIQUE INDEX profiles_user ON profiles(user_id);
INDEX_COLUMNS_TEXT = re.compile(r'\sON\s+[^\s(]+\s*\((?P<columns>.*)\)', re.IGNORECASE | re.DOTALL)
PLAIN_IDENTIFIER = re.compile(r'^"?(?P<name>[A-Za-z_][A-Za-z0-9_]*)"?(?:\s+(?:ASC|DESC))?$', re.IGNORECASE)


def _split_identifiers(text: str) -> List[str]:
    return [part.strip().strip('"') for part in text.split(',') if part.strip()]


class DuckDBIntrospector(DatabaseIntrospector, DistinctValueSampler):
    """Client for introspecting DuckDB database schema."""

    def __init__(self, database_path: Optional[str] = None, read_only: bool = True):
        """Initialize DuckDB introspector.

        Args:
            database_path: Path to .duckdb file (None or :memory: for in-memory)
            read_only: Open database in read-only mode (default True for introspection)
        """
        self.database_path = database_path or ':memory:'
        self.read_only = read_only
        self._connection = None
        self._type_mapper = DuckDBTypeMapper()

    @classmethod
    def from_connection(cls, connection: Any) -> "DuckDBIntrospector":
        """Wrap an already open DuckDB connection."""
        introspector = cls(read_only=False)
        introspector._connection = connection
        return introspector

    @property
    def database_name(self) -> str:
        if self.database_path == ':memory:':
            return 'memory'
        return Path(self.database_path).stem

    def connect(self):
        """Connect directly to the DuckDB database file."""
        if self._connection is not None:
            return self._connection

        try:
            import duckdb
        except ImportError:
            raise ImportError(
                "duckdb is required. "
                "Install it with: pip install duckdb"
            )

        self._connection = duckdb.connect(
            self.database_path,
            read_only=self.read_only and self.database_path != ':memory:'
        )
        return self._connection

    def close(self):
        """Close the DuckDB connection."""
        if self._connection:
            self._connection.close()
            self._connection = None

    def _execute_query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List:
        """Execute a SQL query and return all rows."""
        self.connect()
        if params:
            return self._connection.execute(sql, list(params)).fetchall()
        return self._connection.execute(sql).fetchall()

    def get_tables(self, schema: str) -> List[str]:
        """Get all base tables in a schema."""
        result = self._execute_query("""
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = ?
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """, [schema])
        return [row[0] for row in result]

    def get_columns(self, schema: str, table: str) -> List[Column]:
        """Get all columns for a table."""
        result = self._execute_query("""
            SELECT
                column_name,
                data_type,
                is_nullable,
                column_default
            FROM information_schema.columns
            WHERE table_schema = ?
              AND table_name = ?
            ORDER BY ordinal_position
        """, [schema, table])

        columns = []
        for name, data_type, is_nullable, default in result:
            default_text = str(default) if default is not None else None
            columns.append(Column(
                name=name,
                data_type=self._type_mapper.to_semantic_type(data_type),
                is_nullable=(is_nullable == 'YES'),
                default=default_text,
                autoincrement=bool(default_text and default_text.lower().startswith('nextval(')),
                raw_type=data_type,
            ))
        return columns

    def _constraints(self, schema: str, table: str, constraint_type: str) -> List[tuple]:
        try:
            return self._execute_query("""
                SELECT constraint_text, constraint_column_names
                FROM duckdb_constraints()
                WHERE schema_name = ?
                  AND table_name = ?
                  AND constraint_type = ?
                ORDER BY constraint_index
            """, [schema, table, constraint_type])
        except Exception as e:
            raise IntrospectionError(
                f"Failed to read {constraint_type} constraints for {schema}.{table}: {e}",
                details={"schema": schema, "table": table},
            ) from e

    def get_primary_keys(self, schema: str, table: str) -> List[str]:
        """Get primary key columns from duckdb_constraints()."""
        rows = self._constraints(schema, table, 'PRIMARY KEY')
        if not rows:
            return []
        pk_columns = rows[0][1]
        if isinstance(pk_columns, list):
            return pk_columns
        return [pk_columns]

    def get_unique_constraints(self, schema: str, table: str) -> List[UniqueConstraint]:
        return [
            UniqueConstraint(columns=list(column_names))
            for _, column_names in self._constraints(schema, table, 'UNIQUE')
        ]

    def get_foreign_keys(self, schema: str, table: str) -> List[ForeignKey]:
        """Parse foreign keys from the constraint text DuckDB reports."""
        foreign_keys = []
        for constraint_text, _ in self._constraints(schema, table, 'FOREIGN KEY'):
            match = FOREIGN_KEY_TEXT.search(constraint_text or '')
            if not match:
                logger.warning("Unrecognized foreign key definition on %s: %s", table, constraint_text)
                continue

            on_delete = re.search(ACTION_TEXT.format(event='DELETE'), constraint_text, re.IGNORECASE)
            on_update = re.search(ACTION_TEXT.format(event='UPDATE'), constraint_text, re.IGNORECASE)
            foreign_keys.append(ForeignKey(
                table=table,
                columns=_split_identifiers(match.group('local')),
                referenced_table=match.group('table').split('.')[-1].strip('"'),
                referenced_columns=_split_identifiers(match.group('remote')),
                on_delete=on_delete.group(1) if on_delete else None,
                on_update=on_update.group(1) if on_update else None,
            ))
        return foreign_keys

    def get_indexes(self, schema: str, table: str) -> List[Index]:
        """Get index definitions from duckdb_indexes().

        DuckDB leaves the expressions column empty, so the column list is
        read from the CREATE INDEX statement. Expression indexes are skipped.
        """
        try:
            rows = self._execute_query("""
                SELECT index_name, is_unique, sql
                FROM duckdb_indexes()
                WHERE schema_name = ?
                  AND table_name = ?
                ORDER BY index_name
            """, [schema, table])
        except Exception as e:
            raise IntrospectionError(
                f"Failed to read indexes for {schema}.{table}: {e}",
                details={"schema": schema, "table": table},
            ) from e

        indexes = []
        for index_name, is_unique, sql in rows:
            match = INDEX_COLUMNS_TEXT.search(sql or '')
            parts = [PLAIN_IDENTIFIER.match(part.strip()) for part in match.group('columns').split(',')] if match else []
            if not parts or not all(parts):
                logger.debug("Skipping index %s on %s: %s", index_name, table, sql)
                continue
            indexes.append(Index(
                name=index_name,
                columns=[part.group('name') for part in parts],
                is_unique=bool(is_unique),
            ))
        return indexes

    def introspect_catalog(self, schema: str = 'main', name: Optional[str] = None) -> SchemaCatalog:
        """Introspect the DuckDB database; the schema defaults to 'main'."""
        return super().introspect_catalog(schema, name=name or self.database_name)

    def get_distinct_values(self, table: str, column: str, limit: int = 100) -> List[str]:
        """Get distinct values from a column.

        Args:
            table: Table name
            column: Column name
            limit: Maximum number of values to return

        Returns:
            List of distinct non-null values as strings
        """
        try:
            # Identifiers cannot be bound as parameters
            result = self._execute_query(f"""
                SELECT DISTINCT "{column}"
                FROM "{table}"
                WHERE "{column}" IS NOT NULL
                ORDER BY 1
                LIMIT {int(limit)}
            """)
        except ImportError:
            raise
        except Exception as e:
            raise SamplingUnavailableError(table, column, str(e)) from e

        return [str(row[0]) for row in result if row[0] is not None]
