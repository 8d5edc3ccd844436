"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

_PROVIDER_ENV = (
    "IMAGE_PROVIDER",
    "OPENAI_API_KEY",
    "OPENAI_IMAGE_MODEL",
    "BEDROCK_API_KEY",
    "BEDROCK_AUTH",
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
    "BEDROCK_MODEL_ID",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SESSION_TOKEN",
    "SCRIPTBOARD_DB",
)


@pytest.fixture(autouse=True)
def isolate_provider_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real credentials from the developer shell out of test runs.

    Tests that need a provider set the variables they use explicitly.
    """
    for name in _PROVIDER_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
