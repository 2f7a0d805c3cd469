import logging
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

import asyncpg

from blogvault.child_fetchers import fetch_children
from blogvault.db_context import Database, transactional
from blogvault.entities import AttachedMedia, AttachResult, Post, PostPage
from blogvault.errors import ConflictError, NotFoundError
from blogvault.inputs import MediaItem
from blogvault.payloads import (
    BASE_FIELDS,
    PostFilters,
    PostPatch,
    PostPayload,
    validate_create,
    validate_filters,
    validate_media,
    validate_patch,
)
from blogvault.post_queries import (
    count_query,
    current_state_query,
    get_query,
    list_query,
    next_position_query,
    slug_exists_query,
)
from blogvault.repository import Repository, RepositoryConfig
from blogvault.schema_registry import (
    POSTS_TABLE,
    REGISTRY,
    SLUG_CONSTRAINT,
    ChildCollectionSpec,
    SatelliteSpec,
)
from blogvault.transformer import PostTransformer

logger = logging.getLogger(__name__)


class PostRepository(Repository):
    """Persistence for the polymorphic post aggregate.

    Each post is one ``posts`` row, one row in its type's satellite table and
    (for galleries and rankings) an ordered list of child rows. Every public
    operation runs in a single transaction.
    """

    def __init__(self, db: Database, config: RepositoryConfig | None = None):
        super().__init__(db, config)
        self.transformer = PostTransformer(REGISTRY)

    # Reads

    @transactional()
    async def list_posts(self, filters: PostFilters | dict[str, Any] | None = None) -> PostPage:
        """One filtered page plus the total count.

        Children are loaded with one query per child-owning type present on
        the page, never one per post.
        """
        if not isinstance(filters, PostFilters):
            filters = validate_filters(filters or {})

        rows = await self.db_ops.fetch_all(*list_query(filters))
        total = await self.db_ops.fetch_value(*count_query(filters))
        children = await self._children_for(rows)

        return PostPage(
            posts=self.transformer.decode_rows(rows, children),
            total_count=total or 0,
            page=filters.page,
            limit=filters.limit,
        )

    @transactional()
    async def get(self, id_or_slug: str | UUID) -> Post:
        """Find a post by id or by slug"""
        row = await self.db_ops.fetch_one(*get_query(str(id_or_slug)))
        if row is None:
            raise NotFoundError()
        children = await self._children_for([row])
        return self.transformer.decode(row, children.get(row["id"], ()))

    async def _children_for(self, rows: Sequence[Any]) -> dict[Any, list[Any]]:
        children: dict[Any, list[Any]] = {}
        for spec in REGISTRY.values():
            if spec.child is None:
                continue
            parent_ids = [row["id"] for row in rows if row["type"] == spec.post_type]
            children.update(await fetch_children(self.db_ops, spec.child, parent_ids))
        return children

    # Writes

    @transactional()
    async def create(self, payload: PostPayload | dict[str, Any]) -> UUID:
        """Insert the post row, its satellite row and its children.

        The requested slug is made unique by suffixing (see ``unique_slug``).
        Returns the new post id.
        """
        if not isinstance(payload, PostPayload):
            payload = validate_create(payload)
        spec = self.transformer.spec_for(payload.type)

        post_id = uuid4()
        base = {"id": post_id, "type": spec.post_type}
        base.update(payload.model_dump(include=set(BASE_FIELDS)))
        base = self._apply_create_features(base)
        slug = await self._insert_post_row(base)

        satellite = {"id": post_id, **self.transformer.encode_create(payload)}
        await self._insert(spec.table, satellite)

        if spec.child:
            items = getattr(payload, spec.child.field) or []
            await self._insert_children(
                spec.child, post_id, [item.model_dump() for item in items]
            )

        logger.info("Created %s post %s (slug=%s)", spec.post_type, post_id, slug)
        return post_id

    async def _insert_post_row(self, base: dict[str, Any]) -> str:
        """Insert the posts row under a unique slug.

        The insert runs in a savepoint so a concurrent creator taking the
        probed slug first only costs a re-probe.
        """
        requested = base["slug"]
        for attempt in range(self.config.slug_conflict_retries + 1):
            base["slug"] = await self.unique_slug(requested)
            try:
                async with self.db.transaction():
                    await self._insert(POSTS_TABLE, base)
                return base["slug"]
            except asyncpg.UniqueViolationError as exc:
                if exc.constraint_name != SLUG_CONSTRAINT:
                    raise
                logger.warning(
                    "Slug '%s' was taken concurrently (attempt %d)", base["slug"], attempt + 1
                )
        raise ConflictError(f"Could not allocate a unique slug for '{requested}'")

    async def unique_slug(self, requested: str) -> str:
        """``requested`` if free, else the first free ``requested-N`` up to the
        probe limit, else ``requested-<epoch ms>``"""
        if not await self._slug_taken(requested):
            return requested
        for counter in range(1, self.config.slug_probe_limit + 1):
            candidate = f"{requested}-{counter}"
            if not await self._slug_taken(candidate):
                return candidate
        return f"{requested}-{int(time.time() * 1000)}"

    async def _slug_taken(self, slug: str) -> bool:
        return await self.db_ops.fetch_value(*slug_exists_query(slug)) is not None

    async def _insert_children(
        self,
        child: ChildCollectionSpec,
        parent_id: UUID,
        items: Sequence[dict[str, Any]],
        start: int = 0,
    ) -> None:
        rows = [
            [parent_id, *row]
            for row in self.transformer.encode_children(child, items, start=start)
        ]
        columns = [child.parent_column, *(column.name for column in child.columns)]
        await self._insert_many(child.table, columns, rows)

    @transactional()
    async def update(self, post_id: str | UUID, patch: PostPatch | dict[str, Any]) -> UUID:
        """Apply a partial update; absent (or null) fields keep their values.

        A present child collection replaces the stored one wholesale.
        """
        current = await self._current_state(post_id)
        spec = self.transformer.spec_for(current["type"])
        if not isinstance(patch, PostPatch):
            patch = validate_patch(patch, spec.post_type)

        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        changes.pop("type", None)
        base_changes = {key: changes.pop(key) for key in BASE_FIELDS if key in changes}
        items = changes.pop(spec.child.field, None) if spec.child else None
        satellite_changes = self.transformer.encode_patch(spec.post_type, changes)

        if not base_changes and not satellite_changes and items is None:
            return current["id"]

        base_changes = self._apply_update_features(base_changes, current)
        try:
            await self._update(POSTS_TABLE, base_changes, current["id"])
        except asyncpg.UniqueViolationError as exc:
            raise ConflictError(f"Slug '{base_changes.get('slug')}' is already in use") from exc

        await self._update(spec.table, satellite_changes, current["id"])

        if items is not None:
            await self._delete(spec.child.table, current["id"], key_column=spec.child.parent_column)
            await self._insert_children(spec.child, current["id"], items)

        logger.info("Updated %s post %s", spec.post_type, current["id"])
        return current["id"]

    async def _current_state(self, post_id: str | UUID) -> dict[str, Any]:
        key = self.coerce_id(post_id)
        row = None
        if key is not None:
            row = await self.db_ops.fetch_one(*current_state_query(key))
        if row is None:
            raise NotFoundError()
        return dict(row)

    @transactional()
    async def delete(self, post_id: str | UUID) -> UUID:
        """Delete the post row; satellite and child rows go with it (cascade)"""
        key = self.coerce_id(post_id)
        deleted = None
        if key is not None:
            deleted = await self._delete(POSTS_TABLE, key, returning="id")
        if deleted is None:
            raise NotFoundError()
        logger.info("Deleted post %s", deleted)
        return deleted

    # Media

    async def attach_media(
        self, post_id: str | UUID, items: Sequence[MediaItem | dict[str, Any]]
    ) -> AttachResult:
        """Attach already-stored uploads to a post.

        Galleries get one appended image row per item; types with a single
        image column get it overwritten; other types persist nothing. If
        anything fails, validation included, the transaction is rolled back and
        the uploaded files named by ``filepath`` are removed before the error
        propagates.
        """
        filepaths = [
            item.get("filepath") if isinstance(item, dict) else getattr(item, "filepath", None)
            for item in items
        ]
        try:
            return await self._attach_media(post_id, validate_media(items))
        except Exception:
            self._remove_files(filepaths)
            raise

    async def attach_image(
        self,
        post_id: str | UUID,
        url: str,
        alt: str | None = None,
        filepath: str | None = None,
    ) -> AttachResult:
        """Single-upload form of ``attach_media``"""
        return await self.attach_media(
            post_id, [MediaItem(url=url, alt=alt, filepath=filepath)]
        )

    @transactional()
    async def _attach_media(self, post_id: str | UUID, items: Sequence[MediaItem]) -> AttachResult:
        current = await self._current_state(post_id)
        spec = REGISTRY.get(current["type"])

        if spec is None or spec.media is None:
            return AttachResult(
                id=current["id"],
                inserted=[AttachedMedia(url=item.url, alt=item.alt) for item in items],
                persisted=False,
            )

        if spec.media.child:
            inserted = await self._append_child_media(spec, current["id"], items)
        else:
            inserted = await self._set_satellite_media(spec, current["id"], items)

        await self._update(
            POSTS_TABLE, self._apply_update_features({}, current), current["id"]
        )
        logger.info("Attached %d media item(s) to post %s", len(inserted), current["id"])
        return AttachResult(id=current["id"], inserted=inserted)

    async def _append_child_media(
        self, spec: SatelliteSpec, post_id: UUID, items: Sequence[MediaItem]
    ) -> list[AttachedMedia]:
        child = spec.child
        target = spec.media
        await self._insert(spec.table, {"id": post_id}, ignore_conflict_on="id")
        start = await self.db_ops.fetch_value(*next_position_query(child, post_id))

        inserted = []
        for index, item in enumerate(items):
            position = item.sort_order if item.sort_order is not None else start + index
            row = {
                child.parent_column: post_id,
                target.url_column: item.url,
                target.alt_column: item.alt,
                child.position_column: position,
            }
            image_id = await self._insert(child.table, row, returning="id")
            inserted.append(
                AttachedMedia(url=item.url, alt=item.alt, sort_order=position, image_id=image_id)
            )
        return inserted

    async def _set_satellite_media(
        self, spec: SatelliteSpec, post_id: UUID, items: Sequence[MediaItem]
    ) -> list[AttachedMedia]:
        """Last item wins: the satellite holds a single image"""
        target = spec.media
        for item in items:
            data = {target.url_column: item.url}
            if target.alt_column and item.alt is not None:
                data[target.alt_column] = item.alt
            updated = await self._update(spec.table, data, post_id, returning="id")
            if updated is None:
                await self._insert(spec.table, {"id": post_id, **data})
        return [AttachedMedia(url=item.url, alt=item.alt) for item in items]

    @staticmethod
    def _remove_files(filepaths: Sequence[str | None]) -> None:
        for filepath in filepaths:
            if not filepath:
                continue
            try:
                Path(filepath).unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove uploaded file %s", filepath, exc_info=True)
