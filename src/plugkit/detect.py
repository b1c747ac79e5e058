"""Preset autodetection from dependency manifests.

detect_preset scans the working tree for known manifest files (Nargo.toml,
package.json, ...), pulls the first version token out of each with the
configured pattern, and classifies the token with CLASSIFICATION_RULES.

Rules are evaluated in order; the first predicate that holds wins:
    token mentions "devnet"                -> devnet
    token mentions "testnet"               -> testnet
    token mentions "mainnet"               -> mainnet
    0.x release line                       -> testnet
    >=1.0.0 with a pre-release suffix      -> devnet
    >=1.0.0 stable                         -> mainnet
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Callable, Iterator, Optional

from pydantic import BaseModel, Field

from .config import ToolConfig
from .models import Preset, SemVer

logger = logging.getLogger("plugkit.detect")

SKIP_DIRS = {".git", "node_modules", "target", "__pycache__", ".venv", "venv"}

_VERSION_IN_TOKEN = re.compile(r"(\d+\.\d+\.\d+(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?)")


def release_line(token: str) -> Optional[SemVer]:
    """Parse the first X.Y.Z[-pre] embedded in a tag such as ``v0.87.2``."""
    match = _VERSION_IN_TOKEN.search(token)
    if match is None:
        return None
    try:
        return SemVer.parse(match.group(1))
    except ValueError:
        return None


def _mentions(word: str) -> Callable[[str], bool]:
    return lambda token: word in token.lower()


def _line(predicate: Callable[[SemVer], bool]) -> Callable[[str], bool]:
    def check(token: str) -> bool:
        v = release_line(token)
        return v is not None and predicate(v)

    return check


CLASSIFICATION_RULES: list[tuple[Callable[[str], bool], Preset]] = [
    (_mentions("devnet"), Preset.DEVNET),
    (_mentions("testnet"), Preset.TESTNET),
    (_mentions("mainnet"), Preset.MAINNET),
    (_line(lambda v: v.major == 0), Preset.TESTNET),
    (_line(lambda v: v.major >= 1 and bool(v.prerelease)), Preset.DEVNET),
    (_line(lambda v: v.major >= 1), Preset.MAINNET),
]


def classify_token(
    token: str,
    rules: Optional[list[tuple[Callable[[str], bool], Preset]]] = None,
) -> Optional[Preset]:
    """Return the preset of the first matching rule, or None."""
    for predicate, preset in rules if rules is not None else CLASSIFICATION_RULES:
        if predicate(token):
            return preset
    return None


class Detection(BaseModel):
    """What detect found, and which preset it proposes."""

    preset: Optional[Preset] = None
    token: str = ""
    manifest: Optional[Path] = None
    scanned: list[Path] = Field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.preset is not None


def find_manifests(root: Path, names: set[str], limit: int) -> list[Path]:
    """Walk root for files named in names, stopping after limit matches.

    Directory order is sorted so repeated runs scan the same files.
    """
    found: list[Path] = []
    for path in _walk(root, names):
        found.append(path)
        if len(found) >= limit:
            break
    return found


def _walk(root: Path, names: set[str]) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS and not d.startswith("."))
        for filename in sorted(filenames):
            if filename in names:
                yield Path(dirpath) / filename


def extract_token(path: Path, pattern: str) -> Optional[str]:
    """First capture of pattern in the file, or None."""
    try:
        text = path.read_text(errors="replace")
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None
    match = re.search(pattern, text)
    return match.group(1) if match else None


def detect_preset(config: ToolConfig) -> Detection:
    """Scan the project for a manifest token that names a preset.

    Manifests are tried in scan order; the first token that classifies wins.
    Tokens that match no rule are skipped.
    """
    manifests = find_manifests(
        config.project_root, set(config.manifest_patterns), config.detect_limit
    )
    for manifest in manifests:
        token = extract_token(manifest, config.manifest_patterns[manifest.name])
        if token is None:
            continue
        preset = classify_token(token)
        logger.debug("%s: token %r -> %s", manifest, token, preset)
        if preset is not None:
            return Detection(preset=preset, token=token, manifest=manifest, scanned=manifests)
    logger.warning(
        "No preset detected in %d manifest(s); default %s",
        len(manifests),
        config.default_preset.value,
    )
    return Detection(scanned=manifests)
