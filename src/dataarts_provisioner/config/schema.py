"""Configuration models for YAML-based provisioning."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dataarts_provisioner.resources.security_rule import (
    SecurityRuleResource,  # noqa: TC001 Pydantic needs this at runtime
)


class ProviderConfig(BaseSettings):
    """DataArts provider connection settings.

    Fields can be set via YAML (constructor kwargs), environment variables
    with the ``DATAARTS_`` prefix, or a ``.env`` file next to the config.
    Constructor kwargs take precedence, then the environment, then ``.env``.

    ``token`` is typically provided via the ``DATAARTS_TOKEN`` environment
    variable rather than YAML to avoid committing secrets to version control.
    """

    # Other DATAARTS_* variables (DATAARTS_LOG) may share the .env file.
    model_config = SettingsConfigDict(
        env_prefix="DATAARTS_", env_file_encoding="utf-8-sig", extra="ignore"
    )

    region: str | None = None
    project_id: str | None = None
    projects: dict[str, str] = Field(default_factory=dict)
    endpoint: str | None = None
    token: str | None = None
    timeout: float = 60.0


def _labelled(value: Any) -> Any:
    """``{label: body}`` -> ``[{"label": label, **body}]``."""
    if value is None:
        return []
    if not isinstance(value, dict):
        return value
    return [
        {**body, "label": label} if isinstance(body, dict) else body
        for label, body in value.items()
    ]


class Config(BaseModel):
    """Provisioning configuration, validated straight from YAML.

    ``security_rules`` is a mapping keyed by label, so every label in a
    file is unique.
    """

    provider: ProviderConfig
    state_path: Path = Path(".dataarts-state.json")
    security_rules: Annotated[list[SecurityRuleResource], BeforeValidator(_labelled)] = []
    config_dir: Path = Path()

    @property
    def resources(self) -> list[SecurityRuleResource]:
        return list(self.security_rules)
