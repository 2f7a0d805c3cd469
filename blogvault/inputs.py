"""Nested input models shared by the post payloads and the registry."""

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from blogvault.entities import ItemType


class InputModel(BaseModel):
    """camelCase and snake_case keys are both accepted; unknown keys dropped"""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class GalleryImageInput(InputModel):
    image_url: str = Field(min_length=1)
    image_alt: str | None = None
    sort_order: int | None = None


class RankingItemInput(InputModel):
    rank: int = Field(ge=1)
    subject_title: str = Field(min_length=1)
    item_type: ItemType
    cover_image_url: str | None = None
    cover_image_alt: str | None = None
    rating: float | None = Field(default=None, ge=0, le=10)
    description: str | None = None
    external_url: str | None = None
    sort_order: int | None = None


class MediaItem(InputModel):
    """An uploaded file already stored by the caller.

    ``filepath`` is where the file lives on disk; it is removed if the
    attach operation fails.
    """

    url: str = Field(min_length=1)
    alt: str | None = None
    sort_order: int | None = None
    filepath: str | None = None


# Keys of the nested ``audio`` object mapped to flat music columns
AUDIO_FIELDS = {
    "url": "audio_url",
    "title": "audio_title",
    "artist": "artist",
    "album": "album",
    "genre": "genre",
    "duration": "duration",
    "cover_url": "cover_url",
    "coverUrl": "cover_url",
}


class NestedAudioMixin(BaseModel):
    """Lets music payloads carry ``audio: {url, title, ...}`` like the entity"""

    @model_validator(mode="before")
    @classmethod
    def _flatten_audio(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not isinstance(data.get("audio"), dict):
            return data
        data = dict(data)
        audio = data.pop("audio")
        for key, field_name in AUDIO_FIELDS.items():
            if key not in audio:
                continue
            if field_name in data or to_camel(field_name) in data:
                continue
            data[field_name] = audio[key]
        return data
