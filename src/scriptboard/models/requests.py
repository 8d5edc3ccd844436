"""Inbound request models for the three generation modes.

Validation happens here, before any job row exists. Payload keys are
accepted in either snake_case or the camelCase used by web clients
(``sceneCount``, ``projectName`` ...).
"""

from __future__ import annotations

from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, ValidationError
from pydantic.alias_generators import to_camel

from scriptboard.providers.image import DEFAULT_SIZE, ImageSize

AssetCategory = Literal["character", "environment", "nature"]
SingleImageCategory = Literal["character", "environment", "nature", "general"]

# Presets offered by the browsing UI; free text is still accepted.
STYLE_PRESETS: tuple[str, ...] = (
    "Photoreal",
    "Illustration",
    "Anime",
    "Pixel",
    "3D",
    "Line Art",
)

MIN_SCRIPT_LENGTH = 20
MIN_SCENE_COUNT = 2
MAX_SCENE_COUNT = 8
MAX_CATEGORY_COUNT = 6
MAX_REFERENCE_ASSETS = 24
MAX_NAME_LENGTH = 120


class RequestValidationError(Exception):
    """Raised when an inbound request is malformed or out of range.

    Attributes:
        message: Human-readable description of the first problem.
        field: Dotted path of the offending field, if any.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(f"{field}: {message}" if field else message)

    def to_dict(self) -> dict[str, str]:
        body = {"message": self.message}
        if self.field:
            body["field"] = self.field
        return body


class _Request(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class SingleImageRequest(_Request):
    prompt: str = Field(min_length=1)
    title: str | None = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    project_name: str | None = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    asset_category: SingleImageCategory | None = None
    negative_prompt: str | None = None
    style_preset: str | None = None
    size: ImageSize = DEFAULT_SIZE


class ProjectPackRequest(_Request):
    project_name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    script: str = Field(min_length=MIN_SCRIPT_LENGTH)
    character_count: int = Field(default=2, ge=1, le=MAX_CATEGORY_COUNT)
    environment_count: int = Field(default=2, ge=1, le=MAX_CATEGORY_COUNT)
    nature_count: int = Field(default=2, ge=1, le=MAX_CATEGORY_COUNT)
    style_preset: str | None = None
    size: ImageSize = DEFAULT_SIZE


class StoryboardRequest(_Request):
    script: str = Field(min_length=MIN_SCRIPT_LENGTH)
    scene_count: int = Field(default=4, ge=MIN_SCENE_COUNT, le=MAX_SCENE_COUNT)
    project_name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    character_notes: str | None = None
    environment_notes: str | None = None
    nature_notes: str | None = None
    reference_asset_ids: list[PositiveInt] | None = Field(
        default=None, max_length=MAX_REFERENCE_ASSETS
    )
    style_preset: str | None = None
    size: ImageSize = DEFAULT_SIZE


RequestT = TypeVar("RequestT", bound=_Request)


def parse_request(model: type[RequestT], payload: Any) -> RequestT:
    """Validate *payload* into *model*.

    Raises:
        RequestValidationError: With the first validation problem and its field path.
    """
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        errors = e.errors()
        if not errors:
            raise RequestValidationError("Invalid request") from e
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise RequestValidationError(first.get("msg", "Invalid request"), field) from e
