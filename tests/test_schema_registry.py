"""Tests for the schema registry and the DDL rendered from it"""

from blogvault.entities import Post
from blogvault.migrations import render_schema, satellite_ddl
from blogvault.schema_registry import POST_TYPES, REGISTRY


class TestRegistry:
    def test_all_thirteen_types_are_registered(self):
        assert set(POST_TYPES) == {
            "article",
            "photo",
            "gallery",
            "thought",
            "music",
            "video",
            "project",
            "link",
            "announcement",
            "event",
            "recommendation",
            "ranking",
            "rating",
        }

    def test_tables_and_aliases_are_unique(self):
        tables = [spec.table for spec in REGISTRY.values()]
        aliases = [spec.alias for spec in REGISTRY.values()]

        assert len(set(tables)) == len(tables)
        assert len(set(aliases)) == len(aliases)
        assert "p" not in aliases

    def test_entities_carry_their_tag(self):
        for post_type, spec in REGISTRY.items():
            assert issubclass(spec.entity, Post)
            assert spec.entity.model_fields["type"].default == post_type

    def test_only_gallery_and_ranking_own_children(self):
        owners = {post_type for post_type, spec in REGISTRY.items() if spec.child}
        assert owners == {"gallery", "ranking"}

    def test_media_targets(self):
        assert REGISTRY["photo"].media.url_column == "image_url"
        assert REGISTRY["music"].media.url_column == "cover_url"
        assert REGISTRY["video"].media.url_column == "thumbnail_url"
        assert REGISTRY["gallery"].media.child is True
        for post_type in ("thought", "link", "announcement"):
            assert REGISTRY[post_type].media is None

    def test_type_specific_decode_defaults(self):
        """The same column name defaults differently per type"""
        rating = {c.field: c for c in REGISTRY["rating"].columns}
        recommendation = {c.field: c for c in REGISTRY["recommendation"].columns}

        assert rating["rating"].default == 0
        assert recommendation["rating"].default is None
        assert recommendation["recommendation_type"].default == "otro"
        assert rating["item_type"].default == "otro"

    def test_project_status_is_stored_in_status_column(self):
        column = next(c for c in REGISTRY["project"].columns if c.field == "project_status")
        assert column.name == "status"


class TestRenderSchema:
    def test_posts_table_comes_first(self):
        statements = render_schema()

        assert "CREATE TABLE IF NOT EXISTS posts" in statements[0]
        assert "insert_seq BIGINT GENERATED ALWAYS AS IDENTITY" in statements[0]
        assert "CONSTRAINT posts_slug_key UNIQUE (slug)" in statements[0]

    def test_satellite_references_posts_with_cascade(self):
        ddl = satellite_ddl(REGISTRY["music"])

        assert ddl.startswith("CREATE TABLE IF NOT EXISTS music (")
        assert "id UUID PRIMARY KEY REFERENCES posts(id) ON DELETE CASCADE" in ddl
        assert "tracks JSONB" in ddl
        assert "total_tracks INTEGER" in ddl

    def test_children_come_after_their_parent(self):
        statements = render_schema()
        galleries = next(i for i, s in enumerate(statements) if "EXISTS galleries (" in s)
        images = next(i for i, s in enumerate(statements) if "EXISTS gallery_images (" in s)

        assert galleries < images
        assert (
            "gallery_id UUID NOT NULL REFERENCES galleries(id) ON DELETE CASCADE"
            in statements[images]
        )
        assert "image_url TEXT NOT NULL" in statements[images]

    def test_every_registered_table_is_created(self):
        schema = "\n".join(render_schema())
        for spec in REGISTRY.values():
            assert f"CREATE TABLE IF NOT EXISTS {spec.table} (" in schema
        for table in ("about_me", "about_me_skills", "about_me_interests", "about_me_socials"):
            assert f"CREATE TABLE IF NOT EXISTS {table} (" in schema
