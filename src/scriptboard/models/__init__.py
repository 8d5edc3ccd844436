"""Ledger records, inbound requests and flow results."""

from scriptboard.models.records import (
    TERMINAL_STATUSES,
    Asset,
    AssetRendition,
    GenerationJob,
    JobStatus,
)
from scriptboard.models.requests import (
    STYLE_PRESETS,
    AssetCategory,
    ProjectPackRequest,
    RequestValidationError,
    SingleImageRequest,
    StoryboardRequest,
    parse_request,
)
from scriptboard.models.results import (
    PackAssets,
    ProjectPackResult,
    SingleImageResult,
    StoryboardFrame,
    StoryboardResult,
)

__all__ = [
    "STYLE_PRESETS",
    "TERMINAL_STATUSES",
    "Asset",
    "AssetCategory",
    "AssetRendition",
    "GenerationJob",
    "JobStatus",
    "PackAssets",
    "ProjectPackRequest",
    "ProjectPackResult",
    "RequestValidationError",
    "SingleImageRequest",
    "SingleImageResult",
    "StoryboardFrame",
    "StoryboardRequest",
    "StoryboardResult",
    "parse_request",
]
