"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class AccessConfig(BaseModel):
    sys_admin_bypass: bool = True  # System admins may emit every catalog type


class PolicyConfig(BaseModel):
    # A failing policy source cannot prove that no approval is needed
    require_approval_on_policy_error: bool = True
    default_notify_message: str = "Event '{event_type}' occurred on project '{project_title}'"
    default_approval_message: str = (
        "Approval requested for event '{event_type}' on project '{project_title}'"
    )


class ProjectionConfig(BaseModel):
    pending_id_prefix: str = "pending"  # Synthetic ids of pending entries


class RenderingConfig(BaseModel):
    namespace_separator: str = "."
    word_separators: list[str] = Field(default_factory=lambda: ["_", "-", "."])


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"
    metrics_enabled: bool = False
    metrics_port: int = 9090


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    access: AccessConfig = Field(default_factory=AccessConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    projection: ProjectionConfig = Field(default_factory=ProjectionConfig)
    rendering: RenderingConfig = Field(default_factory=RenderingConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "GOVERNANCE_", "env_nested_delimiter": "__"}


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                data = tomli.load(f)
        else:
            from .errors import ConfigError

            raise ConfigError(f"Config file not found: {path}")

    if overrides:
        data.update(overrides)

    return Settings(**data)
