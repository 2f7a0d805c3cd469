"""PostRepository statement flow against the in-memory fake pool"""

import re
from uuid import UUID, uuid4

import asyncpg
import pytest

from blogvault.db_context import Database
from blogvault.entities import GalleryPost, RankingPost, ThoughtPost
from blogvault.errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from blogvault.post_repository import PostRepository
from blogvault.repository import RepositoryConfig
from tests.fakes import FakePool, post_row

SLUG_PROBE = "WHERE slug ="
CURRENT_STATE = "published_at FROM posts"


def slug_violation() -> asyncpg.UniqueViolationError:
    exc = asyncpg.UniqueViolationError("duplicate key value violates unique constraint")
    exc.constraint_name = "posts_slug_key"
    return exc


def stored(post_type: str, post_id: UUID, published_at=None) -> dict:
    return {"id": post_id, "type": post_type, "status": "draft", "published_at": published_at}


@pytest.fixture
def pool():
    return FakePool()


@pytest.fixture
def conn(pool):
    return pool.connection


@pytest.fixture
def repo(pool):
    return PostRepository(Database(pool))


class TestListPosts:
    @pytest.mark.asyncio
    async def test_children_are_fetched_once_per_type(self, repo, conn):
        galleries = [post_row("gallery"), post_row("gallery")]
        ranking = post_row("ranking")
        rows = [*galleries, post_row("thought", content="hi"), ranking]
        conn.on("FROM gallery_images", [
            {"gallery_id": galleries[1]["id"], "image_url": "/b.jpg", "image_alt": "b", "sort_order": 0},
        ])
        conn.on("COUNT(*)", 4)
        conn.on("FROM posts p", rows, method="fetch")

        page = await repo.list_posts({"limit": "10"})

        assert len(conn.queries("FROM gallery_images")) == 1
        assert len(conn.queries("FROM ranking_items")) == 1
        gallery_call = next(call for call in conn.calls if "FROM gallery_images" in call[1])
        assert gallery_call[2] == [galleries[0]["id"], galleries[1]["id"]]

        assert [post.type for post in page.posts] == ["gallery", "gallery", "thought", "ranking"]
        assert isinstance(page.posts[0], GalleryPost)
        assert page.posts[0].images == []
        assert page.posts[1].images[0].url == "/b.jpg"
        assert isinstance(page.posts[3], RankingPost)
        assert page.total_count == 4
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_no_child_queries_without_child_owning_types(self, repo, conn):
        conn.on("FROM posts p", [post_row("thought", content="x")], method="fetch")

        page = await repo.list_posts()

        assert conn.queries("gallery_images") == []
        assert conn.queries("ranking_items") == []
        assert page.total_count == 0
        assert isinstance(page.posts[0], ThoughtPost)

    @pytest.mark.asyncio
    async def test_invalid_filters_are_rejected_before_querying(self, repo, conn):
        with pytest.raises(ValidationError):
            await repo.list_posts({"page": 0})
        assert conn.calls == []


class TestGet:
    @pytest.mark.asyncio
    async def test_missing_post(self, repo):
        with pytest.raises(NotFoundError):
            await repo.get("no-such-slug")

    @pytest.mark.asyncio
    async def test_found_by_slug(self, repo, conn):
        conn.on("p.id::text", post_row("thought", content="hello"))

        post = await repo.get("thought-slug")

        assert post.content == "hello"
        assert conn.calls[0][2][:2] == ["thought-slug", "thought-slug"]


class TestCreate:
    @pytest.mark.asyncio
    async def test_statements_in_order(self, repo, conn):
        post_id = await repo.create(
            {
                "type": "gallery",
                "slug": "trip",
                "title": "Trip",
                "status": "published",
                "images": [{"imageUrl": "/1.jpg"}, {"imageUrl": "/2.jpg", "imageAlt": "two"}],
            }
        )

        statements = [query.split(" (")[0] for _, query, _ in conn.calls]
        assert statements == [
            "SELECT 1 FROM posts WHERE slug = $1 LIMIT $2",
            "INSERT INTO posts",
            "INSERT INTO galleries",
            "INSERT INTO gallery_images",
        ]
        assert conn.events == ["begin", "savepoint", "release", "commit"]

        _, _, post_params = conn.calls[1]
        assert post_params[0] == post_id
        assert "trip" in post_params
        _, children_sql, children_params = conn.calls[3]
        assert "VALUES ($1, $2, $3, $4), ($5, $6, $7, $8)" in children_sql
        assert children_params == [post_id, "/1.jpg", None, 0, post_id, "/2.jpg", "two", 1]

    @pytest.mark.asyncio
    async def test_timestamps_and_publish_stamp_are_set(self, repo, conn):
        await repo.create(
            {"type": "thought", "slug": "t-slug", "title": "T", "content": "c", "status": "published"}
        )

        insert = next(query for query in conn.queries("INSERT INTO posts"))
        for column in ("created_at", "updated_at", "published_at"):
            assert column in insert

    @pytest.mark.asyncio
    async def test_invalid_payload_writes_nothing(self, repo, conn):
        with pytest.raises(ValidationError):
            await repo.create({"type": "rating", "slug": "r-slug", "title": "R"})
        assert conn.calls == []


class TestUniqueSlug:
    @pytest.mark.asyncio
    async def test_first_free_suffix(self, repo, conn):
        taken = {"hello", "hello-1"}
        conn.on(SLUG_PROBE, lambda query, params: 1 if params[0] in taken else None)

        async with repo.db.transaction():
            slug = await repo.unique_slug("hello")

        assert slug == "hello-2"

    @pytest.mark.asyncio
    async def test_timestamp_fallback_after_suffix_limit(self, pool, conn):
        repo = PostRepository(Database(pool), RepositoryConfig(slug_probe_limit=3))
        conn.on(SLUG_PROBE, 1)

        async with repo.db.transaction():
            slug = await repo.unique_slug("hello")

        assert re.fullmatch(r"hello-\d{13}", slug)
        assert len(conn.queries(SLUG_PROBE)) == 4

    @pytest.mark.asyncio
    async def test_concurrent_collision_is_retried(self, repo, conn):
        attempts = []

        def insert_post(query, params):
            attempts.append(params)
            if len(attempts) == 1:
                raise slug_violation()
            return "INSERT 0 1"

        conn.on("INSERT INTO posts", insert_post)

        await repo.create({"type": "link", "slug": "s-slug", "title": "S", "url": "https://x.dev"})

        assert len(attempts) == 2
        assert conn.events == [
            "begin",
            "savepoint",
            "rollback to savepoint",
            "savepoint",
            "release",
            "commit",
        ]

    @pytest.mark.asyncio
    async def test_repeated_collisions_end_in_conflict(self, repo, conn):
        conn.on("INSERT INTO posts", slug_violation())

        with pytest.raises(ConflictError):
            await repo.create({"type": "link", "slug": "s-slug", "title": "S", "url": "https://x.dev"})

        assert len(conn.queries("INSERT INTO posts")) == 4
        assert conn.queries("INSERT INTO links") == []
        assert conn.events[-1] == "rollback"

    @pytest.mark.asyncio
    async def test_other_unique_violations_are_not_retried(self, repo, conn):
        exc = asyncpg.UniqueViolationError("duplicate key value")
        exc.constraint_name = "posts_pkey"
        conn.on("INSERT INTO posts", exc)

        with pytest.raises(PersistenceError):
            await repo.create({"type": "link", "slug": "s-slug", "title": "S", "url": "https://x.dev"})

        assert len(conn.queries("INSERT INTO posts")) == 1


class TestUpdate:
    @pytest.mark.asyncio
    async def test_type_change_is_rejected_before_any_write(self, repo, conn):
        post_id = uuid4()
        conn.on(CURRENT_STATE, stored("article", post_id))

        with pytest.raises(ValidationError):
            await repo.update(post_id, {"type": "photo", "title": "x"})

        assert [method for method, _, _ in conn.calls] == ["fetchrow"]

    @pytest.mark.asyncio
    async def test_unknown_id_is_not_found(self, repo, conn):
        with pytest.raises(NotFoundError):
            await repo.update("not-a-uuid", {"title": "x"})
        assert conn.calls == []

        with pytest.raises(NotFoundError):
            await repo.update(uuid4(), {"title": "x"})

    @pytest.mark.asyncio
    async def test_only_sent_fields_are_written(self, repo, conn):
        post_id = uuid4()
        conn.on(CURRENT_STATE, stored("article", post_id))

        await repo.update(post_id, {"title": "New", "readTime": "4 min"})

        posts_update = conn.queries("UPDATE posts")[0]
        assert posts_update.startswith("UPDATE posts SET title = $1, updated_at = $2 WHERE")
        assert conn.queries("UPDATE articles") == [
            "UPDATE articles SET read_time = $1 WHERE id = $2"
        ]

    @pytest.mark.asyncio
    async def test_empty_patch_writes_nothing(self, repo, conn):
        post_id = uuid4()
        conn.on(CURRENT_STATE, stored("thought", post_id))

        assert await repo.update(post_id, {"title": None}) == post_id
        assert len(conn.calls) == 1

    @pytest.mark.asyncio
    async def test_first_publish_stamps_published_at(self, repo, conn):
        post_id = uuid4()
        conn.on(CURRENT_STATE, stored("thought", post_id))

        await repo.update(post_id, {"status": "published"})

        assert "published_at" in conn.queries("UPDATE posts")[0]

    @pytest.mark.asyncio
    async def test_child_collection_is_replaced(self, repo, conn):
        post_id = uuid4()
        conn.on(CURRENT_STATE, stored("ranking", post_id))

        await repo.update(
            post_id,
            {"items": [{"rank": 1, "subjectTitle": "Alien", "itemType": "película"}]},
        )

        delete = conn.queries("DELETE FROM ranking_items")
        insert = conn.queries("INSERT INTO ranking_items")
        assert delete == ["DELETE FROM ranking_items WHERE ranking_id = $1"]
        assert len(insert) == 1
        assert conn.queries("UPDATE rankings") == []

    @pytest.mark.asyncio
    async def test_empty_child_list_clears_collection(self, repo, conn):
        post_id = uuid4()
        conn.on(CURRENT_STATE, stored("gallery", post_id))

        await repo.update(post_id, {"images": []})

        assert len(conn.queries("DELETE FROM gallery_images")) == 1
        assert conn.queries("INSERT INTO gallery_images") == []

    @pytest.mark.asyncio
    async def test_slug_collision_is_a_conflict(self, repo, conn):
        post_id = uuid4()
        conn.on(CURRENT_STATE, stored("thought", post_id))
        conn.on("UPDATE posts", slug_violation())

        with pytest.raises(ConflictError):
            await repo.update(post_id, {"slug": "taken"})


class TestDelete:
    @pytest.mark.asyncio
    async def test_missing_post(self, repo, conn):
        with pytest.raises(NotFoundError):
            await repo.delete(uuid4())

    @pytest.mark.asyncio
    async def test_malformed_id_never_reaches_the_database(self, repo, conn):
        with pytest.raises(NotFoundError):
            await repo.delete("42")
        assert conn.calls == []

    @pytest.mark.asyncio
    async def test_deleted_id_is_returned(self, repo, conn):
        post_id = uuid4()
        conn.on("DELETE FROM posts", post_id)

        assert await repo.delete(str(post_id)) == post_id


class TestAttachMedia:
    @pytest.mark.asyncio
    async def test_gallery_images_are_appended(self, repo, conn):
        post_id = uuid4()
        conn.on(CURRENT_STATE, stored("gallery", post_id))
        conn.on("COALESCE(MAX(sort_order)", 3)
        conn.on("INSERT INTO gallery_images", 42)

        result = await repo.attach_media(
            post_id, [{"url": "/a.jpg"}, {"url": "/b.jpg", "alt": "b"}]
        )

        assert result.persisted is True
        assert [item.sort_order for item in result.inserted] == [3, 4]
        assert result.inserted[0].image_id == 42
        assert conn.queries("INSERT INTO galleries") == [
            "INSERT INTO galleries (id) VALUES ($1) ON CONFLICT (id) DO NOTHING"
        ]
        assert len(conn.queries("UPDATE posts SET updated_at")) == 1

    @pytest.mark.asyncio
    async def test_single_image_types_overwrite_the_column(self, repo, conn):
        post_id = uuid4()
        conn.on(CURRENT_STATE, stored("photo", post_id))
        conn.on("UPDATE photos", post_id)

        result = await repo.attach_image(post_id, "/p.jpg", alt="Sunset")

        assert conn.queries("UPDATE photos") == [
            "UPDATE photos SET image_url = $1, image_alt = $2 WHERE id = $3 RETURNING id"
        ]
        assert conn.queries("INSERT INTO photos") == []
        assert result.inserted[0].url == "/p.jpg"

    @pytest.mark.asyncio
    async def test_missing_satellite_row_is_inserted(self, repo, conn):
        post_id = uuid4()
        conn.on(CURRENT_STATE, stored("video", post_id))

        await repo.attach_image(post_id, "/thumb.jpg")

        assert conn.queries("INSERT INTO videos") == [
            "INSERT INTO videos (id, thumbnail_url) VALUES ($1, $2)"
        ]

    @pytest.mark.asyncio
    async def test_types_without_media_persist_nothing(self, repo, conn):
        post_id = uuid4()
        conn.on(CURRENT_STATE, stored("thought", post_id))

        result = await repo.attach_image(post_id, "/x.jpg")

        assert result.persisted is False
        assert result.inserted[0].url == "/x.jpg"
        assert len(conn.calls) == 1

    @pytest.mark.asyncio
    async def test_uploaded_files_are_removed_on_failure(self, repo, conn, tmp_path):
        upload = tmp_path / "upload.jpg"
        upload.write_bytes(b"jpeg")
        post_id = uuid4()
        conn.on(CURRENT_STATE, stored("gallery", post_id))
        conn.on("COALESCE(MAX(sort_order)", 0)
        conn.on("INSERT INTO gallery_images", asyncpg.DataError("invalid input"))

        with pytest.raises(PersistenceError):
            await repo.attach_image(post_id, "/upload.jpg", filepath=str(upload))

        assert not upload.exists()
        assert conn.events[-1] == "rollback"

    @pytest.mark.asyncio
    async def test_files_are_removed_when_post_is_missing(self, repo, tmp_path):
        upload = tmp_path / "orphan.jpg"
        upload.write_bytes(b"jpeg")

        with pytest.raises(NotFoundError):
            await repo.attach_image(uuid4(), "/orphan.jpg", filepath=str(upload))

        assert not upload.exists()

    @pytest.mark.asyncio
    async def test_invalid_items_are_rejected_and_uploads_removed(self, repo, conn, tmp_path):
        upload = tmp_path / "first.jpg"
        upload.write_bytes(b"jpeg")

        with pytest.raises(ValidationError) as exc_info:
            await repo.attach_media(uuid4(), [{"url": "/first.jpg", "filepath": str(upload)}, {"url": ""}])

        assert exc_info.value.details[0]["field"] == "1.url"
        assert not upload.exists()
        assert conn.calls == []
