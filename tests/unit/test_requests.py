"""Tests for request validation."""

from __future__ import annotations

from typing import Any

import pytest

from scriptboard.models.requests import (
    ProjectPackRequest,
    RequestValidationError,
    SingleImageRequest,
    StoryboardRequest,
    parse_request,
)

SCRIPT = "A script that is comfortably longer than twenty characters."


def _storyboard(**overrides: Any) -> dict[str, Any]:
    return {"script": SCRIPT, "projectName": "Skyline", **overrides}


class TestDefaults:
    def test_single_image(self) -> None:
        req = parse_request(SingleImageRequest, {"prompt": "a red cube"})
        assert req.size == "1024x1024"
        assert req.asset_category is None

    def test_project_pack(self) -> None:
        req = parse_request(ProjectPackRequest, {"projectName": "P", "script": SCRIPT})
        assert (req.character_count, req.environment_count, req.nature_count) == (2, 2, 2)

    def test_storyboard(self) -> None:
        req = parse_request(StoryboardRequest, _storyboard())
        assert req.scene_count == 4
        assert req.reference_asset_ids is None

    def test_snake_case_keys_accepted(self) -> None:
        req = parse_request(StoryboardRequest, {"script": SCRIPT, "project_name": "P"})
        assert req.project_name == "P"

    def test_model_instance_passes_through(self) -> None:
        req = SingleImageRequest(prompt="x")
        assert parse_request(SingleImageRequest, req) is req


class TestValidation:
    @pytest.mark.parametrize(
        ("payload", "field"),
        [
            (_storyboard(script="too short"), "script"),
            (_storyboard(sceneCount=1), "sceneCount"),
            (_storyboard(sceneCount=9), "sceneCount"),
            (_storyboard(projectName=""), "projectName"),
            (_storyboard(projectName="p" * 121), "projectName"),
            (_storyboard(size="2048x2048"), "size"),
            (_storyboard(referenceAssetIds=[1, 0]), "referenceAssetIds.1"),
            (_storyboard(referenceAssetIds=list(range(1, 26))), "referenceAssetIds"),
        ],
    )
    def test_storyboard_field_errors(self, payload: dict[str, Any], field: str) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_request(StoryboardRequest, payload)

        assert exc_info.value.field == field
        assert exc_info.value.to_dict()["field"] == field
        assert exc_info.value.message

    @pytest.mark.parametrize("field", ["characterCount", "environmentCount", "natureCount"])
    @pytest.mark.parametrize("value", [0, 7])
    def test_pack_counts_bounded(self, field: str, value: int) -> None:
        payload = {"projectName": "P", "script": SCRIPT, field: value}
        with pytest.raises(RequestValidationError) as exc_info:
            parse_request(ProjectPackRequest, payload)
        assert exc_info.value.field == field

    def test_single_image_category(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_request(SingleImageRequest, {"prompt": "x", "assetCategory": "prop"})
        assert exc_info.value.field == "assetCategory"

    def test_missing_required_field(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_request(SingleImageRequest, {})
        assert exc_info.value.field == "prompt"

    def test_non_mapping_payload(self) -> None:
        with pytest.raises(RequestValidationError):
            parse_request(SingleImageRequest, "a red cube")
