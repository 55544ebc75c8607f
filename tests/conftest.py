"""Shared pytest fixtures for schema-relations tests."""

import pytest

from schema_relations.analysis import RelationshipConfig, RelationshipCoordinator
from schema_relations.database.base import InMemoryValueSampler
from schema_relations.database.models import ColumnType, SchemaCatalog, Table, UniqueConstraint

from tests.fixtures import col, fk, pk


@pytest.fixture
def blog_catalog():
    """A small blog schema covering every relationship kind.

    users 1-1 profiles, users 1-n posts, users 1-n comments,
    users n-m roles (role_user), comments morph to posts/videos,
    employees.manager_id self-reference, a -> b -> c -> a cycle,
    and an isolated table.
    """
    return SchemaCatalog(
        name="blog",
        tables=[
            Table(
                name="users",
                columns=[
                    pk(),
                    col("name", nullable=False),
                    col("email", nullable=False),
                    col("created_at", ColumnType.DATETIME),
                    col("updated_at", ColumnType.DATETIME),
                    col("deleted_at", ColumnType.DATETIME),
                ],
                primary_key=["id"],
                unique_constraints=[UniqueConstraint(columns=["email"])],
            ),
            Table(
                name="profiles",
                columns=[pk(), col("user_id", ColumnType.INTEGER, nullable=False), col("bio", ColumnType.TEXT)],
                primary_key=["id"],
                foreign_keys=[fk("profiles", "user_id", "users", on_delete="CASCADE")],
                unique_constraints=[UniqueConstraint(columns=["user_id"])],
            ),
            Table(
                name="posts",
                columns=[
                    pk(),
                    col("user_id", ColumnType.INTEGER, nullable=False),
                    col("title", nullable=False),
                    col("created_at", ColumnType.DATETIME),
                    col("updated_at", ColumnType.DATETIME),
                ],
                primary_key=["id"],
                foreign_keys=[fk("posts", "user_id", "users")],
            ),
            Table(
                name="comments",
                columns=[
                    pk(),
                    col("user_id", ColumnType.INTEGER),
                    col("commentable_type", nullable=False),
                    col("commentable_id", ColumnType.INTEGER, nullable=False),
                    col("body", ColumnType.TEXT),
                ],
                primary_key=["id"],
                foreign_keys=[fk("comments", "user_id", "users", on_delete="SET NULL")],
            ),
            Table(
                name="videos",
                columns=[pk(), col("title", nullable=False)],
                primary_key=["id"],
            ),
            Table(
                name="roles",
                columns=[pk(), col("name", nullable=False)],
                primary_key=["id"],
            ),
            Table(
                name="role_user",
                columns=[
                    col("role_id", ColumnType.INTEGER, nullable=False),
                    col("user_id", ColumnType.INTEGER, nullable=False),
                    col("assigned_at", ColumnType.DATETIME),
                    col("created_at", ColumnType.DATETIME),
                    col("updated_at", ColumnType.DATETIME),
                ],
                primary_key=["role_id", "user_id"],
                foreign_keys=[
                    fk("role_user", "role_id", "roles", on_delete="CASCADE"),
                    fk("role_user", "user_id", "users", on_delete="CASCADE"),
                ],
            ),
            Table(
                name="employees",
                columns=[pk(), col("manager_id", ColumnType.INTEGER), col("name", nullable=False)],
                primary_key=["id"],
                foreign_keys=[fk("employees", "manager_id", "employees")],
            ),
            Table(
                name="a",
                columns=[pk(), col("b_id", ColumnType.INTEGER)],
                primary_key=["id"],
                foreign_keys=[fk("a", "b_id", "b")],
            ),
            Table(
                name="b",
                columns=[pk(), col("c_id", ColumnType.INTEGER)],
                primary_key=["id"],
                foreign_keys=[fk("b", "c_id", "c")],
            ),
            Table(
                name="c",
                columns=[pk(), col("a_id", ColumnType.INTEGER)],
                primary_key=["id"],
                foreign_keys=[fk("c", "a_id", "a")],
            ),
            Table(
                name="isolated",
                columns=[pk(), col("label")],
                primary_key=["id"],
            ),
        ],
    )


@pytest.fixture
def blog_sample_values():
    """Stored morph type values, in the nested JSON shape."""
    return {"comments": {"commentable_type": ["App\\Models\\Post", "App\\Models\\Video"]}}


@pytest.fixture
def blog_sampler(blog_sample_values):
    return InMemoryValueSampler.from_dict(blog_sample_values)


@pytest.fixture
def coordinator(blog_catalog, blog_sampler):
    """Coordinator over the blog schema with type-value sampling available."""
    return RelationshipCoordinator(blog_catalog, sampler=blog_sampler)


@pytest.fixture
def structural_coordinator(blog_catalog):
    """Coordinator over the blog schema with no data access."""
    return RelationshipCoordinator(blog_catalog)


@pytest.fixture
def make_coordinator(blog_catalog, blog_sampler):
    """Build a coordinator over the blog schema from a configuration mapping."""
    def _make(config=None, sampler=blog_sampler, catalog=blog_catalog):
        relationship_config = RelationshipConfig.from_dict(config) if config is not None else None
        return RelationshipCoordinator(catalog, config=relationship_config, sampler=sampler)
    return _make
