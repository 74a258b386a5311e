from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nocodebot.domain import Workflow
from nocodebot.errors import ConfigError


def _check_token(value: str, label: str, prefix: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError(f"missing slack {label} token")
    if not value.startswith(prefix):
        raise ValueError(f"slack {label} token should have {prefix} prefix")
    return value


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Credentials; camelCase keys are what older config files use
    slack_app_token: str = Field(default="", validation_alias=AliasChoices("slack_app_token", "slackAppToken"))
    slack_bot_token: str = Field(default="", validation_alias=AliasChoices("slack_bot_token", "slackBotToken"))

    # Directory of Block Kit message templates, one JSON file per message
    demo_dir: str = Field(default="demo", validation_alias=AliasChoices("demo_dir", "demoDir"))
    workflows: list[Workflow] = Field(default_factory=list)

    # Slash command names
    summary_command: str = Field(default="/summary")
    workflow_command: str = Field(default="/workflow")

    @field_validator("slack_app_token", mode="before")
    @classmethod
    def _validate_app_token(cls, v):  # type: ignore[override]
        return _check_token(v, "app", "xapp-")

    @field_validator("slack_bot_token", mode="before")
    @classmethod
    def _validate_bot_token(cls, v):  # type: ignore[override]
        return _check_token(v, "bot", "xoxb-")

    @field_validator("workflows", mode="before")
    @classmethod
    def _validate_workflows(cls, v):  # type: ignore[override]
        return v or []


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse config file {path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    return raw


def load_settings(config_file: str | Path | None = None, **overrides: Any) -> Settings:
    """Build Settings from an optional YAML file, the environment and ``overrides``.

    Values from the file take precedence over the environment.
    """
    values: dict[str, Any] = {}
    if config_file is not None:
        path = Path(config_file)
        values.update(_read_yaml(path))
        # Relative template dirs resolve against the config file's location.
        for key in ("demo_dir", "demoDir"):
            demo_dir = values.get(key)
            if demo_dir and not Path(demo_dir).is_absolute():
                values[key] = str(path.parent / demo_dir)
    values.update(overrides)
    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
