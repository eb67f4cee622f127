"""
Centralized settings for infractl.

:class:`InfraSettings` is the single validated source of every tunable the
orchestrator reads from its environment. Values come from ``INFRACTL_*``
environment variables or a ``.env`` file; the conventional ``EDITOR``,
``PAGER`` and ``TAGS`` variables are honoured as aliases.

Precedence: CLI option > ``INFRACTL_*`` > conventional alias > default.

Tags:
    configuration, settings, pydantic, environment, infractl
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

try:
    from pydantic_settings import BaseSettings, SettingsConfigDict
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "infractl.core.settings requires pydantic-settings. Install it with: pip install pydantic-settings"
    ) from exc

from pydantic import AliasChoices, Field, field_validator

DEFAULT_SOURCE_URL = "https://gitlab.com/infractl/infractl.git"


class InfraSettings(BaseSettings):
    """Orchestrator configuration.

    Fields
    ──────
    projects_dir       : Root directory holding one subdirectory per project
    clone_dir          : Local cache of the infractl git repository (self-upgrade)
    editor             : Command used by the edit-* commands
    pager              : Command used by show-defaults
    tags               : Comma-separated tag filter for deploy/check
    source_url         : Canonical git location of infractl
    upgrade_channel    : Branch or tag checked out by self-upgrade
    password_generator : builtin | pwgen | none
    log_level          : structlog level
    log_format         : console | json
    """

    model_config = SettingsConfigDict(
        env_prefix="INFRACTL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ── Paths ────────────────────────────────────────────────────
    projects_dir: Path = Field(default_factory=lambda: Path.home() / "playbooks")
    clone_dir: Path = Field(default_factory=lambda: Path.home() / ".cache" / "infractl" / "source")

    # ── Interactive tools ────────────────────────────────────────
    editor: str = Field(
        default="nano",
        validation_alias=AliasChoices("INFRACTL_EDITOR", "EDITOR", "editor"),
    )
    pager: str = Field(
        default="less",
        validation_alias=AliasChoices("INFRACTL_PAGER", "PAGER", "pager"),
    )

    # ── Deploy filters ───────────────────────────────────────────
    tags: str | None = Field(
        default=None,
        validation_alias=AliasChoices("INFRACTL_TAGS", "TAGS", "tags"),
    )

    # ── Self-upgrade ─────────────────────────────────────────────
    source_url: str = Field(default=DEFAULT_SOURCE_URL)
    upgrade_channel: str = Field(default="release")

    # ── Secrets ──────────────────────────────────────────────────
    password_generator: Literal["builtin", "pwgen", "none"] = Field(default="builtin")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="WARNING")
    log_format: str = Field(default="console")

    @field_validator("projects_dir", "clone_dir", mode="after")
    @classmethod
    def _expand_user(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("tags", mode="after")
    @classmethod
    def _blank_tags_to_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("log_level", mode="after")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


@lru_cache(maxsize=1)
def get_settings() -> InfraSettings:
    """Return the cached settings for this process."""
    return InfraSettings()
