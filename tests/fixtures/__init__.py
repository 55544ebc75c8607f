"""Schema builders shared by the test modules."""

from schema_relations.database.models import Column, ColumnType, ForeignKey


def pk(name="id"):
    """Autoincrement integer primary key column."""
    return Column(name=name, data_type=ColumnType.INTEGER, is_nullable=False, autoincrement=True)


def col(name, data_type=ColumnType.STRING, nullable=True, **kwargs):
    return Column(name=name, data_type=data_type, is_nullable=nullable, **kwargs)


def fk(table, column, referenced_table, referenced_column="id", **kwargs):
    """Single-column foreign key."""
    return ForeignKey(
        table=table,
        columns=[column],
        referenced_table=referenced_table,
        referenced_columns=[referenced_column],
        **kwargs,
    )
