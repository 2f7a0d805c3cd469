"""
Create/patch payload models and request validation.

The per-type models are generated from the schema registry, so each type's
accepted fields always match its satellite columns. Create payloads form a
discriminated union on ``type``; patch payloads are looked up by the type
already stored for the post.
"""

from datetime import datetime
from functools import lru_cache
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, create_model
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel, to_snake

from blogvault.entities import PostStatus
from blogvault.errors import ValidationError
from blogvault.inputs import MediaItem
from blogvault.schema_registry import REGISTRY, SatelliteSpec

# Base payload fields stored on the posts table
BASE_FIELDS = ("slug", "title", "status", "featured", "category", "tags", "published_at")


class PostPayload(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    slug: str = Field(min_length=3, max_length=200)
    title: str = Field(min_length=1)
    status: PostStatus = "draft"
    featured: bool = False
    category: str | None = None
    tags: list[str] | None = None
    published_at: datetime | None = None


class PostPatch(BaseModel):
    """Every field optional; only the keys actually sent are applied"""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    slug: str | None = Field(default=None, min_length=3, max_length=200)
    title: str | None = Field(default=None, min_length=1)
    status: PostStatus | None = None
    featured: bool | None = None
    category: str | None = None
    tags: list[str] | None = None
    published_at: datetime | None = None


def _model_name(spec: SatelliteSpec, suffix: str) -> str:
    return f"{spec.post_type.capitalize()}{suffix}"


def _bases(spec: SatelliteSpec, base: type[BaseModel]) -> type | tuple[type, ...]:
    if spec.payload_mixin is None:
        return base
    return (spec.payload_mixin, base)


def _create_model(spec: SatelliteSpec) -> type[PostPayload]:
    fields: dict[str, Any] = {"type": (Literal[spec.post_type], ...)}
    for column in spec.columns:
        if column.required:
            fields[column.field] = (column.annotation, ...)
        else:
            fields[column.field] = (column.annotation | None, None)
    if spec.child:
        fields[spec.child.field] = (list[spec.child.item_input] | None, None)
    return create_model(
        _model_name(spec, "Payload"), __base__=_bases(spec, PostPayload), **fields
    )


def _patch_model(spec: SatelliteSpec) -> type[PostPatch]:
    fields: dict[str, Any] = {"type": (Literal[spec.post_type] | None, None)}
    for column in spec.columns:
        fields[column.field] = (column.annotation | None, None)
    if spec.child:
        fields[spec.child.field] = (list[spec.child.item_input] | None, None)
    return create_model(
        _model_name(spec, "Patch"), __base__=_bases(spec, PostPatch), **fields
    )


CREATE_MODELS: dict[str, type[PostPayload]] = {
    post_type: _create_model(spec) for post_type, spec in REGISTRY.items()
}
PATCH_MODELS: dict[str, type[PostPatch]] = {
    post_type: _patch_model(spec) for post_type, spec in REGISTRY.items()
}


@lru_cache
def _create_adapter() -> TypeAdapter:
    union = Union[tuple(CREATE_MODELS.values())]
    return TypeAdapter(Annotated[union, Field(discriminator="type")])


def _details(exc: PydanticValidationError, tagged: bool = False) -> list[dict[str, str]]:
    """Flatten pydantic errors into ``[{"field": "a.b", "message": ...}]``"""
    details = []
    for error in exc.errors():
        loc = list(error["loc"])
        # Discriminated unions prefix the location with the matched tag
        if tagged and loc and loc[0] in CREATE_MODELS:
            loc = loc[1:]
        if error["type"] in ("union_tag_invalid", "union_tag_not_found"):
            loc = ["type"]
        field = ".".join(
            to_snake(part) if isinstance(part, str) else str(part) for part in loc
        ) or "body"
        details.append({"field": field, "message": error["msg"]})
    return details


def validate_create(data: Any) -> PostPayload:
    """Validate a create request body into its type's payload model"""
    try:
        return _create_adapter().validate_python(data)
    except PydanticValidationError as exc:
        raise ValidationError(_details(exc, tagged=True)) from exc


def validate_patch(data: Any, post_type: str) -> PostPatch:
    """Validate a patch body against the type already stored for the post"""
    model = PATCH_MODELS.get(post_type)
    if model is None:
        raise ValidationError.for_field("type", f"Unknown post type '{post_type}'")
    if isinstance(data, dict):
        requested = data.get("type")
        if requested is not None and requested != post_type:
            raise ValidationError.for_field(
                "type", f"Post type cannot be changed from '{post_type}'"
            )
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_details(exc)) from exc


class PostFilters(BaseModel):
    """Listing filters as they arrive in a query string"""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore")

    type: str | None = None
    status: PostStatus | None = None
    featured: bool | None = None
    category: str | None = None
    tag: str | None = None
    q: str | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)

    @property
    def types(self) -> list[str]:
        """``type`` may be a comma-separated list"""
        if not self.type:
            return []
        return [part.strip() for part in self.type.split(",") if part.strip()]


def validate_filters(data: Any) -> PostFilters:
    try:
        return PostFilters.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_details(exc)) from exc


class SocialInput(BaseModel):
    icon: str = Field(min_length=1)
    href: str = Field(min_length=1)
    label: str = Field(min_length=1)


class AboutMeUpdate(BaseModel):
    """Scalar fields are replaced wholesale; a list is replaced only when sent"""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    title: str = Field(min_length=1)
    location: str = Field(min_length=1)
    bio: str = Field(min_length=1)
    email: str = Field(min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    image: str = Field(min_length=1)
    quote: str | None = None
    skills: list[str] | None = None
    interests: list[str] | None = None
    socials: list[SocialInput] | None = None


def validate_about_me(data: Any) -> AboutMeUpdate:
    try:
        return AboutMeUpdate.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_details(exc)) from exc


def validate_social(data: Any) -> SocialInput:
    try:
        return SocialInput.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_details(exc)) from exc


_MEDIA_ITEMS = TypeAdapter(list[MediaItem])


def validate_media(items: Any) -> list[MediaItem]:
    """Validate uploads to attach; error fields are ``<index>.<field>``"""
    try:
        return _MEDIA_ITEMS.validate_python(items)
    except PydanticValidationError as exc:
        raise ValidationError(_details(exc)) from exc
