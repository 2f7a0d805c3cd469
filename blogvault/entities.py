"""Domain entities: the post tagged union and its media value objects.

Entities are what the repositories return. Fields are snake_case in Python
and camelCase on the wire (``to_json``). Enum-like fields are typed as plain
strings here so decoding a stored row never fails; the payload models in
``blogvault.payloads`` are the strict side.
"""

from datetime import datetime
from typing import Any, ClassVar, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

PostStatus = Literal["draft", "published", "archived"]
ItemType = Literal["serie", "película", "libro", "podcast", "otro"]


class CamelModel(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(
        alias_generator=to_camel, populate_by_name=True
    )

    def to_json(self) -> dict[str, Any]:
        """Wire representation: camelCase keys, absent optionals omitted"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ImageMedia(CamelModel):
    url: str
    alt: str = ""
    sort_order: int | None = None

    @classmethod
    def from_columns(cls, values: dict[str, Any]) -> "ImageMedia":
        return cls(
            url=values["image_url"],
            alt=values["image_alt"],
            sort_order=values["sort_order"],
        )


def image_or_none(url: str | None, alt: str | None) -> ImageMedia | None:
    """An image only exists when it has a URL"""
    if not url:
        return None
    return ImageMedia(url=url, alt=alt or "")


class AudioMedia(CamelModel):
    url: str = ""
    title: str = ""
    artist: str = ""
    album: str | None = None
    genre: str | None = None
    duration: str = ""
    cover_url: str | None = None


class VideoMedia(CamelModel):
    url: str = ""
    embed_url: str | None = None
    thumbnail: str | None = None
    duration: str | None = None
    provider: str | None = None


class Coordinates(CamelModel):
    lat: float
    lng: float


class EventLocation(CamelModel):
    name: str
    address: str | None = None
    coordinates: Coordinates | None = None
    virtual: bool | None = None
    url: str | None = None


class RankingItem(CamelModel):
    rank: int
    subject_title: str
    item_type: str
    cover_image: ImageMedia | None = None
    rating: float | None = None
    description: str | None = None
    external_url: str | None = None
    sort_order: int = 0

    @classmethod
    def from_columns(cls, values: dict[str, Any]) -> "RankingItem":
        return cls(
            rank=values["rank"],
            subject_title=values["subject_title"],
            item_type=values["item_type"],
            cover_image=image_or_none(values["cover_image_url"], values["cover_image_alt"]),
            rating=values["rating"],
            description=values["description"],
            external_url=values["external_url"],
            sort_order=values["sort_order"],
        )


class Post(CamelModel):
    """Shared post fields. Also the decoded shape of an unrecognized type."""

    id: UUID
    slug: str
    type: str
    title: str
    status: str | None = None
    draft: bool = False
    featured: bool = False
    category: str | None = None
    tags: list[str] | None = None
    created_at: datetime
    updated_at: datetime | None = None
    published_at: datetime | None = None

    @classmethod
    def from_columns(
        cls, base: dict[str, Any], values: dict[str, Any], children: list[Any]
    ) -> "Post":
        """Project base fields plus this type's satellite values.

        ``values`` holds the satellite columns keyed by payload field name,
        with the registry's decode defaults already applied.
        """
        return cls(**base)


class ArticlePost(Post):
    type: Literal["article"] = "article"
    excerpt: str = ""
    content: str = ""
    cover_image: ImageMedia | None = None
    read_time: str | None = None

    @classmethod
    def from_columns(cls, base, values, children):
        return cls(
            **base,
            excerpt=values["excerpt"],
            content=values["content"],
            cover_image=image_or_none(values["cover_image_url"], values["cover_image_alt"]),
            read_time=values["read_time"],
        )


class PhotoPost(Post):
    type: Literal["photo"] = "photo"
    image: ImageMedia
    location: str | None = None
    camera: str | None = None
    settings: str | None = None

    @classmethod
    def from_columns(cls, base, values, children):
        return cls(
            **base,
            image=ImageMedia(url=values["image_url"], alt=values["image_alt"]),
            location=values["location"],
            camera=values["camera"],
            settings=values["settings"],
        )


class GalleryPost(Post):
    type: Literal["gallery"] = "gallery"
    description: str | None = None
    images: list[ImageMedia] = []
    columns: int = 2

    @classmethod
    def from_columns(cls, base, values, children):
        return cls(
            **base,
            description=values["description"],
            images=children,
            columns=values["columns"],
        )


class ThoughtPost(Post):
    type: Literal["thought"] = "thought"
    content: str = ""
    source: str | None = None
    style: str | None = None
    mood: str | None = None

    @classmethod
    def from_columns(cls, base, values, children):
        return cls(
            **base,
            content=values["content"],
            source=values["source"],
            style=values["style"],
            mood=values["mood"],
        )


class MusicPost(Post):
    type: Literal["music"] = "music"
    audio: AudioMedia
    description: str | None = None
    music_type: str | None = None
    spotify_id: str | None = None
    spotify_url: str | None = None
    apple_music_url: str | None = None
    youtube_url: str | None = None
    release_date: str | None = None
    total_tracks: int | None = None
    tracks: list[dict[str, Any]] | None = None

    @classmethod
    def from_columns(cls, base, values, children):
        return cls(
            **base,
            audio=AudioMedia(
                url=values["audio_url"],
                title=values["audio_title"],
                artist=values["artist"],
                album=values["album"],
                genre=values["genre"],
                duration=values["duration"],
                cover_url=values["cover_url"],
            ),
            description=values["description"],
            music_type=values["music_type"],
            spotify_id=values["spotify_id"],
            spotify_url=values["spotify_url"],
            apple_music_url=values["apple_music_url"],
            youtube_url=values["youtube_url"],
            release_date=values["release_date"],
            total_tracks=values["total_tracks"],
            tracks=values["tracks"],
        )


class VideoPost(Post):
    type: Literal["video"] = "video"
    video: VideoMedia
    description: str | None = None
    transcript: str | None = None

    @classmethod
    def from_columns(cls, base, values, children):
        return cls(
            **base,
            video=VideoMedia(
                url=values["video_url"],
                embed_url=values["embed_url"],
                thumbnail=values["thumbnail_url"],
                duration=values["duration"],
                provider=values["provider"],
            ),
            description=values["description"],
            transcript=values["transcript"],
        )


class ProjectPost(Post):
    type: Literal["project"] = "project"
    description: str = ""
    content: str | None = None
    cover_image: ImageMedia | None = None
    technologies: list[str] | None = None
    live_url: str | None = None
    repo_url: str | None = None
    project_status: str | None = None

    @classmethod
    def from_columns(cls, base, values, children):
        return cls(
            **base,
            description=values["description"],
            content=values["content"],
            cover_image=image_or_none(values["cover_image_url"], values["cover_image_alt"]),
            technologies=values["technologies"],
            live_url=values["live_url"],
            repo_url=values["repo_url"],
            project_status=values["project_status"],
        )


class LinkPost(Post):
    type: Literal["link"] = "link"
    url: str = ""
    description: str | None = None
    site_name: str | None = None
    favicon: str | None = None
    image: ImageMedia | None = None

    @classmethod
    def from_columns(cls, base, values, children):
        return cls(
            **base,
            url=values["url"],
            description=values["description"],
            site_name=values["site_name"],
            favicon=values["favicon"],
            image=image_or_none(values["image_url"], values["image_alt"]),
        )


class AnnouncementPost(Post):
    type: Literal["announcement"] = "announcement"
    content: str = ""
    priority: str | None = None
    cta_text: str | None = None
    cta_url: str | None = None
    expires_at: datetime | None = None

    @classmethod
    def from_columns(cls, base, values, children):
        return cls(
            **base,
            content=values["content"],
            priority=values["priority"],
            cta_text=values["cta_text"],
            cta_url=values["cta_url"],
            expires_at=values["expires_at"],
        )


class EventPost(Post):
    type: Literal["event"] = "event"
    description: str = ""
    content: str | None = None
    cover_image: ImageMedia | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    location: EventLocation | None = None
    registration_url: str | None = None
    price: str | None = None
    capacity: int | None = None

    @classmethod
    def from_columns(cls, base, values, children):
        location = None
        if values["location_name"]:
            coordinates = None
            if values["location_lat"] is not None and values["location_lng"] is not None:
                coordinates = Coordinates(
                    lat=values["location_lat"], lng=values["location_lng"]
                )
            location = EventLocation(
                name=values["location_name"],
                address=values["location_address"],
                coordinates=coordinates,
                virtual=values["is_virtual"],
                url=values["virtual_url"],
            )
        return cls(
            **base,
            description=values["description"],
            content=values["content"],
            cover_image=image_or_none(values["cover_image_url"], ""),
            start_date=values["start_date"],
            end_date=values["end_date"],
            location=location,
            registration_url=values["registration_url"],
            price=values["price"],
            capacity=values["capacity"],
        )


class RecommendationPost(Post):
    type: Literal["recommendation"] = "recommendation"
    subject_title: str = ""
    recommendation_type: str = "otro"
    description: str | None = None
    cover_image: ImageMedia | None = None
    rating: float | None = None
    external_url: str | None = None
    recommended_by_user: bool | None = None
    compact: bool | None = None

    @classmethod
    def from_columns(cls, base, values, children):
        return cls(
            **base,
            subject_title=values["subject_title"],
            recommendation_type=values["recommendation_type"],
            description=values["description"],
            cover_image=image_or_none(values["cover_image_url"], values["cover_image_alt"]),
            rating=values["rating"],
            external_url=values["external_url"],
            recommended_by_user=values["recommended_by_user"],
            compact=values["compact"],
        )


class RatingPost(Post):
    type: Literal["rating"] = "rating"
    subject_title: str = ""
    item_type: str = "otro"
    cover_image: ImageMedia | None = None
    rating: float = 0
    liked: bool | None = None
    comment: str | None = None

    @classmethod
    def from_columns(cls, base, values, children):
        return cls(
            **base,
            subject_title=values["subject_title"],
            item_type=values["item_type"],
            cover_image=image_or_none(values["cover_image_url"], values["cover_image_alt"]),
            rating=values["rating"],
            liked=values["liked"],
            comment=values["comment"],
        )


class RankingPost(Post):
    type: Literal["ranking"] = "ranking"
    description: str | None = None
    cover_image: ImageMedia | None = None
    items: list[RankingItem] = []

    @classmethod
    def from_columns(cls, base, values, children):
        return cls(
            **base,
            description=values["description"],
            cover_image=image_or_none(values["cover_image_url"], values["cover_image_alt"]),
            items=children,
        )


class PostPage(BaseModel):
    """One page of a filtered post listing"""

    posts: list[Post]
    total_count: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return -(-self.total_count // self.limit) if self.limit else 0

    @property
    def has_more(self) -> bool:
        return self.total_count > self.page * self.limit


class AttachedMedia(CamelModel):
    url: str
    alt: str | None = None
    sort_order: int | None = None
    image_id: int | None = None


class AttachResult(CamelModel):
    id: UUID
    inserted: list[AttachedMedia]
    persisted: bool = True


class Social(CamelModel):
    icon: str
    href: str
    label: str


class AboutMe(CamelModel):
    id: UUID
    name: str
    title: str
    location: str
    bio: str
    email: str
    image: str
    quote: str | None = None
    skills: list[str] = []
    interests: list[str] = []
    socials: list[Social] = []
    created_at: datetime
    updated_at: datetime
