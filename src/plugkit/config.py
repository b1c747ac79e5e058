"""plugkit configuration — loaded once per invocation and passed explicitly.

Resolution:
    project root    --root option, else PLUGKIT_ROOT, else the current directory
    settings        <root>/plugkit.yaml (optional; every key has a default)

Example plugkit.yaml:
    repo_url: https://github.com/example/aztec-plugin
    switch_mode: config
    detect_limit: 5
    manifest_patterns:
      Nargo.toml: 'tag\\s*=\\s*"([^"]+)"'
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from . import CONFIG_FILENAME
from .models import Preset, SwitchMode

DEFAULT_MANIFEST_PATTERNS: dict[str, str] = {
    "Nargo.toml": r'tag\s*=\s*"([^"]+)"',
    "package.json": r'"@aztec/[^"]+"\s*:\s*"[\^~]?([^"]+)"',
}


def _default_project_root() -> Path:
    """Resolve the default project root, respecting PLUGKIT_ROOT env var.

    Returns:
        Path: The project root directory.
    """
    env = os.environ.get("PLUGKIT_ROOT")
    if env:
        return Path(env)
    return Path.cwd()


class ToolConfig(BaseModel):
    """Settings shared by the release and network tools."""

    project_root: Path = Field(default_factory=Path.cwd)

    plugin_manifest: str = Field(
        default=".claude-plugin/plugin.json",
        description="Plugin descriptor, version at .version",
    )
    marketplace_manifest: str = Field(
        default=".claude-plugin/marketplace.json",
        description="Marketplace descriptor, version at .plugins[0].version",
    )
    remote: str = Field(default="origin", description="Git remote for fetch and push")
    release_branch: str = Field(default="main", description="Branch pushed on release")
    repo_url: str = Field(default="", description="Upstream repository URL for hints")

    state_file: str = Field(default="network.json", description="Preset state file")
    switch_mode: SwitchMode = Field(default=SwitchMode.GIT)
    default_preset: Preset = Field(default=Preset.DEVNET)
    detect_limit: int = Field(default=10, ge=1, description="Max manifests scanned by detect")
    manifest_patterns: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_MANIFEST_PATTERNS),
        description="Manifest filename -> regex capturing the version token",
    )

    @field_validator("manifest_patterns")
    @classmethod
    def validate_patterns(cls, v: dict[str, str]) -> dict[str, str]:
        """Each pattern must compile and capture exactly one group."""
        for name, pattern in v.items():
            try:
                compiled = re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"Bad pattern for {name}: {exc}") from exc
            if compiled.groups != 1:
                raise ValueError(f"Pattern for {name} must have one capture group")
        return v

    @property
    def plugin_path(self) -> Path:
        return self.project_root / self.plugin_manifest

    @property
    def marketplace_path(self) -> Path:
        return self.project_root / self.marketplace_manifest

    @property
    def state_path(self) -> Path:
        return self.project_root / self.state_file


def load_config(root: Optional[Path] = None) -> ToolConfig:
    """Load the tool configuration for a project.

    Args:
        root: Project root (default: PLUGKIT_ROOT or the current directory).

    Returns:
        ToolConfig: Settings with defaults filled in.

    Raises:
        ValueError: If plugkit.yaml is not a mapping or holds invalid values.
    """
    project_root = (root or _default_project_root()).expanduser().resolve()
    config_path = project_root / CONFIG_FILENAME

    raw: dict = {}
    if config_path.exists():
        try:
            loaded = yaml.safe_load(config_path.read_text())
        except yaml.YAMLError as exc:
            raise ValueError(f"{CONFIG_FILENAME} is not valid YAML: {exc}") from exc
        if loaded is not None and not isinstance(loaded, dict):
            raise ValueError(f"{CONFIG_FILENAME} must be a YAML mapping, got {type(loaded).__name__}")
        raw = loaded or {}

    raw.pop("project_root", None)
    try:
        return ToolConfig.model_validate({**raw, "project_root": project_root})
    except ValidationError as exc:
        raise ValueError(f"Invalid {CONFIG_FILENAME}: {exc}") from exc
