"""plugkit data models — versions, presets, and the network state file.

Two persisted records:
  - VersionRecord: the plugin and marketplace descriptor versions
  - PresetState: which network preset is active, and since when
"""

from __future__ import annotations

import enum
import re
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class Preset(str, enum.Enum):
    """Named network presets, each backed by a branch of the same name."""

    MAINNET = "mainnet"
    TESTNET = "testnet"
    DEVNET = "devnet"

    @classmethod
    def names(cls) -> list[str]:
        return [p.value for p in cls]


class BumpClass(str, enum.Enum):
    """Semantic-versioning increment categories, in menu order."""

    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"
    CUSTOM = "custom"


class SwitchMode(str, enum.Enum):
    """How a preset is applied: by checking out its branch, or by config only."""

    GIT = "git"
    CONFIG = "config"


class SemVer(BaseModel):
    """A parsed MAJOR.MINOR.PATCH[-prerelease][+build] version."""

    major: int
    minor: int
    patch: int
    prerelease: str = ""
    build: str = ""

    @classmethod
    def parse(cls, text: str) -> "SemVer":
        """Parse a semantic version string.

        Raises:
            ValueError: If the string is not a valid semantic version.
        """
        match = SEMVER_RE.match(text.strip())
        if match is None:
            raise ValueError(f"Not a semantic version: '{text}'")
        return cls(
            major=int(match["major"]),
            minor=int(match["minor"]),
            patch=int(match["patch"]),
            prerelease=match["prerelease"] or "",
            build=match["build"] or "",
        )

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text


class VersionRecord(BaseModel):
    """The version pair read from the plugin and marketplace descriptors."""

    plugin_version: str
    marketplace_version: str

    @property
    def in_sync(self) -> bool:
        return self.plugin_version == self.marketplace_version


class PresetState(BaseModel):
    """Contents of the network state file.

    The git-branch variant stores ``network``/``switchedAt``/``notes``;
    the config-only variant stores ``version``/``setAt``/``note``.
    Either shape loads into the same model.
    """

    preset: Preset = Field(
        validation_alias=AliasChoices("network", "version", "selectedPreset", "preset"),
    )
    set_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("switchedAt", "setAt", "set_at"),
    )
    note: str = Field(
        default="",
        validation_alias=AliasChoices("notes", "note"),
    )

    @field_validator("set_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Treat naive timestamps as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_document(self, mode: SwitchMode) -> dict[str, Any]:
        """Render the state file document for the given switch mode."""
        stamp = self.set_at.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT) if self.set_at else ""
        if mode == SwitchMode.GIT:
            return {"network": self.preset.value, "switchedAt": stamp, "notes": self.note}
        return {"version": self.preset.value, "setAt": stamp, "note": self.note}
