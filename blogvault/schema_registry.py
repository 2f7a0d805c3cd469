"""
Declarative description of every post type's storage.

One ``SatelliteSpec`` per type drives everything table-shaped in the
package: the DDL in ``migrations``, the wide select in ``post_queries``,
the payload models in ``payloads`` and the row encoding/decoding in
``transformer``. Adding a post type means adding an entry here plus its
entity class.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import Field

from blogvault.entities import (
    AnnouncementPost,
    ArticlePost,
    EventPost,
    GalleryPost,
    ImageMedia,
    ItemType,
    LinkPost,
    MusicPost,
    PhotoPost,
    Post,
    ProjectPost,
    RankingItem,
    RankingPost,
    RatingPost,
    RecommendationPost,
    ThoughtPost,
    VideoPost,
)
from blogvault.inputs import GalleryImageInput, NestedAudioMixin, RankingItemInput

POSTS_TABLE = "posts"
POSTS_ALIAS = "p"
SLUG_CONSTRAINT = "posts_slug_key"

# Shared columns of the posts table, in select order
BASE_COLUMNS = (
    "id",
    "slug",
    "type",
    "title",
    "status",
    "featured",
    "category",
    "tags",
    "created_at",
    "updated_at",
    "published_at",
)

Score = Annotated[float, Field(ge=0, le=10)]


@dataclass(frozen=True)
class ColumnSpec:
    """One satellite (or child) column.

    field: payload/entity-side name
    sql_type: column type used in the DDL
    annotation: payload value type
    default: value used when decoding a NULL column
    create_default: value stored on create when the payload omits the field
    required: the create payload must carry the field (NOT NULL for children)
    column: storage name when it differs from ``field``
    """

    field: str
    sql_type: str = "TEXT"
    annotation: Any = str
    default: Any = None
    create_default: Any = None
    required: bool = False
    column: str | None = None

    @property
    def name(self) -> str:
        return self.column or self.field

    @property
    def is_json(self) -> bool:
        return self.sql_type == "JSONB"


@dataclass(frozen=True)
class ChildCollectionSpec:
    """Ordered child rows owned by a satellite row (gallery images, ranking items)"""

    table: str
    parent_column: str
    field: str
    item_entity: type
    item_input: type
    columns: tuple[ColumnSpec, ...]
    order_by: tuple[str, ...]
    position_column: str = "sort_order"


@dataclass(frozen=True)
class MediaTarget:
    """Where an attached upload lands for a post type.

    ``child`` means every upload appends a child row; otherwise the upload
    replaces the satellite's single image column.
    """

    url_column: str
    alt_column: str | None = None
    child: bool = False


@dataclass(frozen=True)
class SatelliteSpec:
    post_type: str
    table: str
    alias: str
    entity: type[Post]
    columns: tuple[ColumnSpec, ...]
    child: ChildCollectionSpec | None = None
    media: MediaTarget | None = None
    payload_mixin: type | None = None

    def select_alias(self, column: ColumnSpec) -> str:
        return f"{self.post_type}__{column.name}"


def _cover(alt: bool = True) -> tuple[ColumnSpec, ...]:
    columns = (ColumnSpec("cover_image_url"),)
    if alt:
        columns += (ColumnSpec("cover_image_alt", default=""),)
    return columns


COVER_MEDIA = MediaTarget("cover_image_url", "cover_image_alt")

GALLERY_IMAGES = ChildCollectionSpec(
    table="gallery_images",
    parent_column="gallery_id",
    field="images",
    item_entity=ImageMedia,
    item_input=GalleryImageInput,
    columns=(
        ColumnSpec("image_url", required=True),
        ColumnSpec("image_alt", default=""),
        ColumnSpec("sort_order", "INTEGER", int, default=0, required=True),
    ),
    order_by=("sort_order",),
)

RANKING_ITEMS = ChildCollectionSpec(
    table="ranking_items",
    parent_column="ranking_id",
    field="items",
    item_entity=RankingItem,
    item_input=RankingItemInput,
    columns=(
        ColumnSpec("rank", "INTEGER", int, required=True),
        ColumnSpec("subject_title", required=True),
        ColumnSpec("item_type", required=True, default="otro"),
        *_cover(),
        ColumnSpec("rating", "DOUBLE PRECISION", Score),
        ColumnSpec("description"),
        ColumnSpec("external_url"),
        ColumnSpec("sort_order", "INTEGER", int, default=0, required=True),
    ),
    order_by=("rank", "sort_order"),
)

_SPECS = (
    SatelliteSpec(
        post_type="article",
        table="articles",
        alias="a",
        entity=ArticlePost,
        columns=(
            ColumnSpec("excerpt", default=""),
            ColumnSpec("content", default=""),
            *_cover(),
            ColumnSpec("read_time"),
        ),
        media=COVER_MEDIA,
    ),
    SatelliteSpec(
        post_type="photo",
        table="photos",
        alias="ph",
        entity=PhotoPost,
        columns=(
            ColumnSpec("image_url", default=""),
            ColumnSpec("image_alt", default=""),
            ColumnSpec("location"),
            ColumnSpec("camera"),
            ColumnSpec("settings"),
        ),
        media=MediaTarget("image_url", "image_alt"),
    ),
    SatelliteSpec(
        post_type="gallery",
        table="galleries",
        alias="g",
        entity=GalleryPost,
        columns=(
            ColumnSpec("description"),
            ColumnSpec(
                "columns", "INTEGER", Literal[2, 3, 4], default=2, create_default=2
            ),
        ),
        child=GALLERY_IMAGES,
        media=MediaTarget("image_url", "image_alt", child=True),
    ),
    SatelliteSpec(
        post_type="thought",
        table="thoughts",
        alias="t",
        entity=ThoughtPost,
        columns=(
            ColumnSpec("content", default="", required=True),
            ColumnSpec("source"),
            ColumnSpec("style", annotation=Literal["quote", "note", "idea"]),
            ColumnSpec(
                "mood",
                annotation=Literal["reflective", "inspired", "curious", "grateful"],
            ),
        ),
    ),
    SatelliteSpec(
        post_type="music",
        table="music",
        alias="m",
        entity=MusicPost,
        columns=(
            ColumnSpec("description"),
            ColumnSpec("audio_url", default=""),
            ColumnSpec("audio_title", default=""),
            ColumnSpec("artist", default=""),
            ColumnSpec("album"),
            ColumnSpec("genre"),
            ColumnSpec("duration", default=""),
            ColumnSpec("cover_url"),
            ColumnSpec("music_type", annotation=Literal["track", "album"]),
            ColumnSpec("spotify_id"),
            ColumnSpec("spotify_url"),
            ColumnSpec("apple_music_url"),
            ColumnSpec("youtube_url"),
            ColumnSpec("release_date"),
            ColumnSpec("total_tracks", "INTEGER", int),
            ColumnSpec("tracks", "JSONB", list[dict[str, Any]]),
        ),
        media=MediaTarget("cover_url"),
        payload_mixin=NestedAudioMixin,
    ),
    SatelliteSpec(
        post_type="video",
        table="videos",
        alias="v",
        entity=VideoPost,
        columns=(
            ColumnSpec("video_url", default=""),
            ColumnSpec("embed_url"),
            ColumnSpec("thumbnail_url"),
            ColumnSpec("duration"),
            ColumnSpec("provider", annotation=Literal["youtube", "vimeo", "self"]),
            ColumnSpec("description"),
            ColumnSpec("transcript"),
        ),
        media=MediaTarget("thumbnail_url"),
    ),
    SatelliteSpec(
        post_type="project",
        table="projects",
        alias="pr",
        entity=ProjectPost,
        columns=(
            ColumnSpec("description", default=""),
            ColumnSpec("content"),
            ColumnSpec("technologies", "TEXT[]", list[str]),
            ColumnSpec(
                "project_status",
                annotation=Literal["in-progress", "completed", "archived"],
                column="status",
            ),
            ColumnSpec("live_url"),
            ColumnSpec("repo_url"),
            *_cover(),
        ),
        media=COVER_MEDIA,
    ),
    SatelliteSpec(
        post_type="link",
        table="links",
        alias="l",
        entity=LinkPost,
        columns=(
            ColumnSpec("url", default="", required=True),
            ColumnSpec("description"),
            ColumnSpec("site_name"),
            ColumnSpec("favicon"),
            ColumnSpec("image_url"),
            ColumnSpec("image_alt", default=""),
        ),
    ),
    SatelliteSpec(
        post_type="announcement",
        table="announcements",
        alias="an",
        entity=AnnouncementPost,
        columns=(
            ColumnSpec("content", default="", required=True),
            ColumnSpec("priority", annotation=Literal["low", "normal", "high", "urgent"]),
            ColumnSpec("cta_text"),
            ColumnSpec("cta_url"),
            ColumnSpec("expires_at", "TIMESTAMPTZ", datetime),
        ),
    ),
    SatelliteSpec(
        post_type="event",
        table="events",
        alias="e",
        entity=EventPost,
        columns=(
            ColumnSpec("description", default=""),
            ColumnSpec("content"),
            ColumnSpec("cover_image_url"),
            ColumnSpec("start_date", "TIMESTAMPTZ", datetime),
            ColumnSpec("end_date", "TIMESTAMPTZ", datetime),
            ColumnSpec("location_name"),
            ColumnSpec("location_address"),
            ColumnSpec("location_lat", "DOUBLE PRECISION", float),
            ColumnSpec("location_lng", "DOUBLE PRECISION", float),
            ColumnSpec("is_virtual", "BOOLEAN", bool, create_default=False),
            ColumnSpec("virtual_url"),
            ColumnSpec("registration_url"),
            ColumnSpec("price"),
            ColumnSpec("capacity", "INTEGER", int),
        ),
        media=MediaTarget("cover_image_url"),
    ),
    SatelliteSpec(
        post_type="recommendation",
        table="recommendations",
        alias="rec",
        entity=RecommendationPost,
        columns=(
            ColumnSpec("subject_title", default="", required=True),
            ColumnSpec("recommendation_type", annotation=ItemType, default="otro"),
            ColumnSpec("description"),
            *_cover(),
            ColumnSpec("rating", "DOUBLE PRECISION", Score),
            ColumnSpec("external_url"),
            ColumnSpec("recommended_by_user", "BOOLEAN", bool, create_default=True),
            ColumnSpec("compact", "BOOLEAN", bool, create_default=False),
        ),
        media=COVER_MEDIA,
    ),
    SatelliteSpec(
        post_type="rating",
        table="ratings",
        alias="rat",
        entity=RatingPost,
        columns=(
            ColumnSpec("subject_title", default="", required=True),
            ColumnSpec("item_type", annotation=ItemType, default="otro"),
            *_cover(),
            ColumnSpec(
                "rating", "DOUBLE PRECISION", Score, default=0, create_default=0
            ),
            ColumnSpec("liked", "BOOLEAN", bool, create_default=False),
            ColumnSpec("comment"),
        ),
        media=COVER_MEDIA,
    ),
    SatelliteSpec(
        post_type="ranking",
        table="rankings",
        alias="rnk",
        entity=RankingPost,
        columns=(
            ColumnSpec("description"),
            *_cover(),
        ),
        child=RANKING_ITEMS,
        media=COVER_MEDIA,
    ),
)

REGISTRY: dict[str, SatelliteSpec] = {spec.post_type: spec for spec in _SPECS}

POST_TYPES: tuple[str, ...] = tuple(REGISTRY)
