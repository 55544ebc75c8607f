"""Tests for the per-kind relationship detectors."""

import pytest

from schema_relations.analysis.detectors import (
    DetectionContext,
    detect_belongs_to,
    detect_belongs_to_many,
    detect_has_many,
    detect_has_one,
    detect_morph_many,
    detect_morph_one,
    detect_morph_to,
    is_strict_pivot,
)
from schema_relations.analysis.models import RelationshipKind, WarningCode
from schema_relations.analysis.naming import NamingConventionResolver
from schema_relations.analysis.overrides import CascadeOption, RelationshipConfig
from schema_relations.database.base import InMemoryValueSampler
from schema_relations.database.models import ColumnType, Index, ReferentialAction, SchemaCatalog, Table
from schema_relations.errors import SamplingUnavailableError

from tests.fixtures import col, fk, pk


def make_context(catalog, sampler=None, **config):
    relationship_config = RelationshipConfig(**config)
    return DetectionContext(
        catalog=catalog,
        resolver=NamingConventionResolver(relationship_config.naming),
        config=relationship_config,
        sampler=sampler,
    )


def run(detector, catalog, table, sampler=None, **config):
    context = make_context(catalog, sampler, **config)
    return detector(catalog.get_table(table), context), context


class TestBelongsTo:
    """Test belongsTo detection."""

    def test_one_per_foreign_key(self, blog_catalog):
        found, _ = run(detect_belongs_to, blog_catalog, "role_user")

        assert [(r.method, r.related_table) for r in found] == [("role", "roles"), ("user", "users")]
        assert all(r.on_delete == ReferentialAction.CASCADE for r in found)

    def test_required_follows_nullability(self, blog_catalog):
        posts, _ = run(detect_belongs_to, blog_catalog, "posts")
        comments, _ = run(detect_belongs_to, blog_catalog, "comments")

        assert posts[0].required is True
        assert comments[0].required is False
        assert comments[0].on_delete == ReferentialAction.SET_NULL

    def test_inverse_uses_uniqueness(self, blog_catalog):
        """Test the inverse of a unique key is hasOne, of a plain key hasMany."""
        profiles, _ = run(detect_belongs_to, blog_catalog, "profiles")
        posts, _ = run(detect_belongs_to, blog_catalog, "posts")

        assert profiles[0].inverse.kind == RelationshipKind.HAS_ONE
        assert profiles[0].inverse.method == "profile"
        assert posts[0].inverse.kind == RelationshipKind.HAS_MANY
        assert posts[0].inverse.method == "posts"
        assert posts[0].inverse.table == "users"

    def test_key_to_non_primary_column_has_no_inverse(self):
        catalog = SchemaCatalog(
            name="codes",
            tables=[
                Table(name="countries", columns=[pk(), col("code", nullable=False)], primary_key=["id"]),
                Table(
                    name="addresses",
                    columns=[pk(), col("country_code")],
                    primary_key=["id"],
                    foreign_keys=[fk("addresses", "country_code", "countries", "code")],
                ),
            ],
        )

        found, _ = run(detect_belongs_to, catalog, "addresses")

        assert found[0].owner_key == ("code",)
        assert found[0].inverse is None

    def test_key_to_table_outside_catalog_is_kept(self):
        catalog = SchemaCatalog(
            name="partial",
            tables=[Table(
                name="orders",
                columns=[pk(), col("customer_id", ColumnType.INTEGER)],
                primary_key=["id"],
                foreign_keys=[fk("orders", "customer_id", "customers")],
            )],
        )

        found, _ = run(detect_belongs_to, catalog, "orders")

        assert found[0].method == "customer"
        assert found[0].inverse is None


class TestHasOneHasMany:
    """Test hasOne / hasMany detection."""

    def test_split_by_uniqueness(self, blog_catalog):
        has_one, _ = run(detect_has_one, blog_catalog, "users")
        has_many, _ = run(detect_has_many, blog_catalog, "users")

        assert [r.related_table for r in has_one] == ["profiles"]
        assert [r.related_table for r in has_many] == ["posts", "comments", "role_user"]

    def test_cascade_description(self, blog_catalog):
        has_one, _ = run(detect_has_one, blog_catalog, "users")

        assert has_one[0].description == "Get the associated profiles record (with cascade delete)"

    def test_self_reference_not_a_child(self, blog_catalog):
        has_many, _ = run(detect_has_many, blog_catalog, "employees")

        assert has_many == []

    def test_unique_index_counts(self):
        catalog = SchemaCatalog(
            name="idx",
            tables=[
                Table(name="users", columns=[pk()], primary_key=["id"]),
                Table(
                    name="settings",
                    columns=[pk(), col("user_id", ColumnType.INTEGER)],
                    primary_key=["id"],
                    foreign_keys=[fk("settings", "user_id", "users")],
                    indexes=[Index(name="settings_user", columns=["user_id"], is_unique=True)],
                ),
            ],
        )

        has_one, _ = run(detect_has_one, catalog, "users")

        assert [r.method for r in has_one] == ["setting"]

    def test_two_keys_from_one_child(self):
        """Test sender_id and recipient_id both give hasMany messages."""
        catalog = SchemaCatalog(
            name="chat",
            tables=[
                Table(name="users", columns=[pk()], primary_key=["id"]),
                Table(
                    name="messages",
                    columns=[pk(), col("sender_id", ColumnType.INTEGER), col("recipient_id", ColumnType.INTEGER)],
                    primary_key=["id"],
                    foreign_keys=[fk("messages", "sender_id", "users"), fk("messages", "recipient_id", "users")],
                ),
            ],
        )

        has_many, context = run(detect_has_many, catalog, "users")

        assert [r.foreign_key for r in has_many] == [("sender_id",), ("recipient_id",)]
        assert all(r.method == "messages" for r in has_many)
        assert [r.inverse.method for r in has_many] == ["sender", "recipient"]
        assert context.warnings == []


class TestBelongsToMany:
    """Test pivot table detection."""

    def test_pivot_metadata(self, blog_catalog):
        found, _ = run(detect_belongs_to_many, blog_catalog, "users")

        assert len(found) == 1
        roles = found[0]
        assert roles.method == "roles"
        assert roles.confidence == 1.0
        assert roles.pivot.table == "role_user"
        assert roles.pivot.foreign_pivot_key == "user_id"
        assert roles.pivot.related_pivot_key == "role_id"
        assert roles.pivot.fields == ("assigned_at",)
        assert roles.pivot.has_timestamps is True
        assert roles.pivot.by_naming_convention is True
        assert roles.inverse.kind == RelationshipKind.BELONGS_TO_MANY
        assert roles.inverse.method == "users"

    def test_both_directions(self, blog_catalog):
        found, _ = run(detect_belongs_to_many, blog_catalog, "roles")

        assert [(r.method, r.pivot.foreign_pivot_key) for r in found] == [("users", "role_id")]

    @pytest.fixture
    def tagging_catalog(self):
        return SchemaCatalog(
            name="tagging",
            tables=[
                Table(name="posts", columns=[pk()], primary_key=["id"]),
                Table(name="tags", columns=[pk()], primary_key=["id"]),
                Table(name="users", columns=[pk()], primary_key=["id"]),
                Table(
                    name="post_tag",
                    columns=[
                        pk(),
                        col("post_id", ColumnType.INTEGER),
                        col("tag_id", ColumnType.INTEGER),
                        col("user_id", ColumnType.INTEGER),
                    ],
                    primary_key=["id"],
                    foreign_keys=[
                        fk("post_tag", "post_id", "posts"),
                        fk("post_tag", "user_id", "users"),
                        fk("post_tag", "tag_id", "tags"),
                    ],
                ),
            ],
        )

    def test_three_way_pivot_prefers_naming_match(self, tagging_catalog):
        found, context = run(detect_belongs_to_many, tagging_catalog, "posts")

        by_related = {r.related_table: r for r in found}
        assert set(by_related) == {"tags", "users"}
        assert by_related["tags"].secondary is False
        assert by_related["tags"].confidence == 1.0
        assert by_related["users"].secondary is True
        assert by_related["users"].confidence == 0.5
        assert [w.code for w in context.warnings] == [WarningCode.STRUCTURAL_AMBIGUITY]

    def test_surrogate_key_is_a_pivot_field(self, tagging_catalog):
        """Test only key and timestamp columns are left out of the pivot fields."""
        found, _ = run(detect_belongs_to_many, tagging_catalog, "posts")

        assert all(r.pivot.fields == ("id",) for r in found)

    def test_topology_without_naming_match(self):
        catalog = SchemaCatalog(
            name="members",
            tables=[
                Table(name="users", columns=[pk()], primary_key=["id"]),
                Table(name="teams", columns=[pk()], primary_key=["id"]),
                Table(
                    name="memberships",
                    columns=[col("user_id", ColumnType.INTEGER), col("team_id", ColumnType.INTEGER), col("role")],
                    primary_key=["user_id", "team_id"],
                    foreign_keys=[fk("memberships", "user_id", "users"), fk("memberships", "team_id", "teams")],
                ),
            ],
        )

        found, _ = run(detect_belongs_to_many, catalog, "users")

        assert found[0].method == "teams"
        assert found[0].confidence == 0.8
        assert found[0].pivot.by_naming_convention is False
        assert found[0].pivot.fields == ("role",)

    def test_strict_mode_skips_entity_tables(self):
        """Test a table with its own non-key identity is not a pivot in strict mode."""
        catalog = SchemaCatalog(
            name="orders",
            tables=[
                Table(name="customers", columns=[pk()], primary_key=["id"]),
                Table(name="stores", columns=[pk()], primary_key=["id"]),
                Table(
                    name="orders",
                    columns=[
                        col("number", nullable=False),
                        col("customer_id", ColumnType.INTEGER),
                        col("store_id", ColumnType.INTEGER),
                    ],
                    primary_key=["number"],
                    foreign_keys=[fk("orders", "customer_id", "customers"), fk("orders", "store_id", "stores")],
                ),
            ],
        )

        assert not is_strict_pivot(catalog.get_table("orders"))
        loose, _ = run(detect_belongs_to_many, catalog, "customers")
        strict, _ = run(detect_belongs_to_many, catalog, "customers", strict_pivot_detection=True)

        assert [r.related_table for r in loose] == ["stores"]
        assert strict == []

    def test_strict_pivot_shapes(self, blog_catalog):
        assert is_strict_pivot(blog_catalog.get_table("role_user"))
        assert is_strict_pivot(Table(name="free", columns=[col("a_id")]))


class TestMorphTo:
    """Test morphTo detection."""

    def test_pair_detected_with_targets(self, blog_catalog, blog_sampler):
        found, _ = run(detect_morph_to, blog_catalog, "comments", sampler=blog_sampler)

        assert len(found) == 1
        morph = found[0]
        assert morph.method == "commentable"
        assert morph.required is True
        assert morph.morph.type_column == "commentable_type"
        assert morph.morph.id_column == "commentable_id"
        assert morph.morph.sampled is True
        assert morph.target_tables == ("posts", "videos")
        assert morph.inverse.kind == RelationshipKind.MORPH_MANY

    def test_without_sampler(self, blog_catalog):
        found, _ = run(detect_morph_to, blog_catalog, "comments")

        assert found[0].target_tables == ()
        assert found[0].morph.sampled is False

    def test_type_column_without_id_column_ignored(self):
        catalog = SchemaCatalog(
            name="logs",
            tables=[Table(name="logs", columns=[pk(), col("entry_type")], primary_key=["id"])],
        )

        found, _ = run(detect_morph_to, catalog, "logs")

        assert found == []


class TestMorphOneMany:
    """Test the polymorphic target side."""

    def test_sampled_match(self, blog_catalog, blog_sampler):
        found, context = run(detect_morph_many, blog_catalog, "posts", sampler=blog_sampler)

        assert [r.method for r in found] == ["comments"]
        assert found[0].confidence == 1.0
        assert found[0].morph.type_values == ("App\\Models\\Post",)
        assert found[0].local_key == ("id",)
        assert context.warnings == []

    def test_sampled_mismatch(self, blog_catalog, blog_sampler):
        found, _ = run(detect_morph_many, blog_catalog, "roles", sampler=blog_sampler)

        assert found == []

    def test_unsampled_accept(self, blog_catalog):
        found, context = run(detect_morph_many, blog_catalog, "videos")

        assert len(found) == 1
        assert found[0].confidence == 0.5
        assert found[0].morph.sampled is False
        assert [w.code for w in context.warnings] == [WarningCode.SAMPLING_UNAVAILABLE]

    def test_unsampled_reject(self, blog_catalog):
        found, context = run(detect_morph_many, blog_catalog, "videos", morph_sampling_policy="reject")

        assert found == []
        assert [w.code for w in context.warnings] == [WarningCode.SAMPLING_UNAVAILABLE]

    def test_unique_pair_is_morph_one(self):
        catalog = SchemaCatalog(
            name="media",
            tables=[
                Table(name="users", columns=[pk()], primary_key=["id"]),
                Table(
                    name="images",
                    columns=[pk(), col("imageable_type"), col("imageable_id", ColumnType.INTEGER)],
                    primary_key=["id"],
                    indexes=[Index(name="images_owner", columns=["imageable_type", "imageable_id"], is_unique=True)],
                ),
            ],
        )
        sampler = InMemoryValueSampler.from_dict({"images": {"imageable_type": ["users"]}})

        morph_one, _ = run(detect_morph_one, catalog, "users", sampler=sampler)
        morph_many, _ = run(detect_morph_many, catalog, "users", sampler=sampler)

        assert [r.method for r in morph_one] == ["image"]
        assert morph_many == []

    def test_cascade_from_config(self, blog_catalog, blog_sampler):
        found, _ = run(
            detect_morph_many, blog_catalog, "posts", sampler=blog_sampler,
            polymorphic_cascade={"commentable": CascadeOption(cascade_delete=True)},
        )

        assert found[0].cascade_delete is True
        assert found[0].description.endswith("(with cascade delete)")


class TestSampling:
    """Test the context's sampling rules."""

    class FailingSampler(InMemoryValueSampler):
        def get_distinct_values(self, table, column, limit=100):
            raise SamplingUnavailableError(table, column, "permission denied")

    def test_failure_is_unavailable(self, blog_catalog):
        context = make_context(blog_catalog, self.FailingSampler())

        assert context.sample("comments", "commentable_type") is None

    def test_empty_sample_is_unavailable(self, blog_catalog):
        sampler = InMemoryValueSampler.from_dict({"comments": {"commentable_type": []}})
        context = make_context(blog_catalog, sampler)

        assert context.sample("comments", "commentable_type") is None

    def test_limit_applied(self, blog_catalog):
        sampler = InMemoryValueSampler.from_dict({"comments": {"commentable_type": ["a", "b", "c"]}})
        context = make_context(blog_catalog, sampler, sample_limit=2)

        assert context.sample("comments", "commentable_type") == ["a", "b"]

    @pytest.mark.parametrize("value,expected", [
        ("posts", True),
        ("post", True),
        ("Post", True),
        ("App\\Models\\Post", True),
        ("app.models.Post", True),
        ("App\\Models\\Video", False),
        ("Postal", False),
    ])
    def test_type_value_denotes(self, blog_catalog, value, expected):
        context = make_context(blog_catalog)

        assert context.type_value_denotes(value, "posts") is expected
