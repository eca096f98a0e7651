from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from apirouting.discovery.ignore import DEFAULT_IGNORES
from apirouting.markers import HttpMethod


class RoutingConfig(BaseModel):
    """Conventions used to turn handler classes into routes."""

    model_config = ConfigDict(frozen=True)

    api_root: str = "api"
    manifest_names: tuple[str, ...] = ("pyproject.toml", "setup.cfg", "setup.py")
    handler_suffix: str = "_async"
    body_methods: frozenset[HttpMethod] = frozenset(
        {HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH}
    )
    # When set, replaces the manifest search for the project root.
    project_root: Optional[Path] = None
    ignore_dirs: frozenset[str] = Field(default_factory=lambda: frozenset(DEFAULT_IGNORES))

    @classmethod
    def from_env(cls, **overrides) -> "RoutingConfig":
        values: dict = {}
        root = os.environ.get("APIROUTING_PROJECT_ROOT")
        if root:
            values["project_root"] = Path(root).expanduser().resolve()
        api_root = os.environ.get("APIROUTING_API_ROOT")
        if api_root:
            values["api_root"] = api_root.strip("/")
        values.update(overrides)
        return cls(**values)


DEFAULT_CONFIG = RoutingConfig()
