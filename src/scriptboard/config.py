"""Application configuration loading.

Configuration is resolved once at process start and threaded explicitly into
the image provider factory. Sources, highest precedence first:

1. Environment variables (``IMAGE_PROVIDER``, ``OPENAI_API_KEY``, ``AWS_*`` ...)
2. Optional YAML file (``scriptboard.yaml``)
3. Built-in defaults
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from ruamel.yaml import YAML

ProviderName = Literal["openai", "bedrock", "placeholder"]

PROVIDER_NAMES: tuple[str, ...] = ("openai", "bedrock", "placeholder")
DEFAULT_PROVIDER: ProviderName = "openai"
DEFAULT_DB_PATH = "scriptboard.db"
DEFAULT_CONFIG_FILE = "scriptboard.yaml"
DEFAULT_OPENAI_MODEL = "gpt-image-1"
DEFAULT_BEDROCK_MODEL = "amazon.nova-canvas-v1:0"
DEFAULT_BEDROCK_REGION = "us-east-1"


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or is inconsistent."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid configuration ({source}): {reason}")


@dataclass(frozen=True)
class SignedCredentials:
    """Access key pair for SigV4 request signing."""

    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class BearerCredentials:
    """Pre-issued Bedrock API key sent as a bearer token."""

    api_key: str = field(repr=False)


BedrockCredentials = SignedCredentials | BearerCredentials


@dataclass(frozen=True)
class OpenAIConfig:
    """Backend A settings."""

    model: str = DEFAULT_OPENAI_MODEL
    api_key: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class BedrockConfig:
    """Backend B settings. Exactly one credential kind is ever active."""

    credentials: BedrockCredentials
    region: str = DEFAULT_BEDROCK_REGION
    model_id: str = DEFAULT_BEDROCK_MODEL

    @property
    def host(self) -> str:
        return f"bedrock-runtime.{self.region}.amazonaws.com"


@dataclass(frozen=True)
class AppConfig:
    """Resolved application configuration."""

    image_provider: ProviderName = DEFAULT_PROVIDER
    db_path: str = DEFAULT_DB_PATH
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    bedrock: BedrockConfig | None = None


def _read_yaml(config_path: Path) -> dict[str, Any]:
    yaml = YAML(typ="safe")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
    except Exception as e:
        raise ConfigError(str(config_path), str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(str(config_path), "top level must be a mapping")
    return dict(data)


def _section(data: Mapping[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(key, "section must be a mapping")
    return dict(value)


def resolve_bedrock_credentials(
    env: Mapping[str, str],
    file_section: Mapping[str, Any],
) -> BedrockCredentials:
    """Pick exactly one Bedrock credential kind.

    An explicit ``BEDROCK_AUTH`` / ``bedrock.auth`` of ``signed`` or ``bearer``
    wins. Otherwise the single configured kind is used; configuring both
    without a choice is an error rather than a silent preference.

    Raises:
        ConfigError: On missing, ambiguous, or incomplete credentials.
    """
    api_key = env.get("BEDROCK_API_KEY") or file_section.get("api_key")
    access_key_id = env.get("AWS_ACCESS_KEY_ID") or file_section.get("access_key_id")
    secret_access_key = env.get("AWS_SECRET_ACCESS_KEY") or file_section.get("secret_access_key")
    session_token = env.get("AWS_SESSION_TOKEN") or file_section.get("session_token")
    auth = (env.get("BEDROCK_AUTH") or file_section.get("auth") or "").lower()

    has_bearer = bool(api_key)
    has_signed = bool(access_key_id and secret_access_key)

    if auth and auth not in ("signed", "bearer"):
        raise ConfigError("bedrock.auth", f"must be 'signed' or 'bearer', got '{auth}'")

    if not auth:
        if has_bearer and has_signed:
            raise ConfigError(
                "bedrock",
                "both BEDROCK_API_KEY and AWS access keys are set; "
                "set BEDROCK_AUTH=signed or BEDROCK_AUTH=bearer to choose one",
            )
        auth = "bearer" if has_bearer else "signed" if has_signed else ""

    if auth == "bearer":
        if not api_key:
            raise ConfigError("bedrock", "bearer auth selected but BEDROCK_API_KEY is not set")
        return BearerCredentials(api_key=str(api_key))

    if auth == "signed":
        if not has_signed:
            raise ConfigError(
                "bedrock",
                "signed auth selected but AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY are not set",
            )
        return SignedCredentials(
            access_key_id=str(access_key_id),
            secret_access_key=str(secret_access_key),
            session_token=str(session_token) if session_token else None,
        )

    raise ConfigError(
        "bedrock",
        "Missing Bedrock credentials. Set BEDROCK_API_KEY or "
        "AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY.",
    )


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load application configuration.

    Args:
        config_path: YAML file to read. When None, ``scriptboard.yaml`` in the
            working directory is used if it exists.
        env: Environment mapping; defaults to ``os.environ``.

    Returns:
        Resolved AppConfig.

    Raises:
        ConfigError: If the file is unreadable or values are invalid.
    """
    env = os.environ if env is None else env

    data: dict[str, Any] = {}
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(str(config_path), "File not found")
        data = _read_yaml(config_path)
    elif Path(DEFAULT_CONFIG_FILE).exists():
        data = _read_yaml(Path(DEFAULT_CONFIG_FILE))

    provider = (env.get("IMAGE_PROVIDER") or data.get("image_provider") or DEFAULT_PROVIDER).lower()
    if provider not in PROVIDER_NAMES:
        supported = ", ".join(PROVIDER_NAMES)
        raise ConfigError("image_provider", f"unknown provider '{provider}' ({supported})")

    openai_section = _section(data, "openai")
    openai = OpenAIConfig(
        model=env.get("OPENAI_IMAGE_MODEL") or openai_section.get("model") or DEFAULT_OPENAI_MODEL,
        api_key=env.get("OPENAI_API_KEY") or openai_section.get("api_key"),
    )

    bedrock: BedrockConfig | None = None
    if provider == "bedrock":
        bedrock_section = _section(data, "bedrock")
        bedrock = BedrockConfig(
            credentials=resolve_bedrock_credentials(env, bedrock_section),
            region=(
                env.get("AWS_REGION")
                or env.get("AWS_DEFAULT_REGION")
                or bedrock_section.get("region")
                or DEFAULT_BEDROCK_REGION
            ),
            model_id=(
                env.get("BEDROCK_MODEL_ID")
                or bedrock_section.get("model_id")
                or DEFAULT_BEDROCK_MODEL
            ),
        )

    return AppConfig(
        image_provider=provider,  # type: ignore[arg-type]
        db_path=env.get("SCRIPTBOARD_DB") or data.get("db_path") or DEFAULT_DB_PATH,
        openai=openai,
        bedrock=bedrock,
    )
