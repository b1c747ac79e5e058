"""Plugin and marketplace descriptor I/O.

    .claude-plugin/plugin.json        {"name": ..., "version": "1.2.3", ...}
    .claude-plugin/marketplace.json   {"plugins": [{"name": ..., "version": "1.2.3"}], ...}

Only the version fields are touched; every other key round-trips unchanged.
"""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any

from .config import ToolConfig
from .models import VersionRecord

logger = logging.getLogger("plugkit.manifests")


def _read_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Descriptor not found: {path}")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"{path} must hold a JSON object, got {type(data).__name__}")
    return data


def _dump_json(data: dict[str, Any]) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def _plugin_version(data: dict[str, Any], path: Path) -> str:
    version = data.get("version")
    if not isinstance(version, str):
        raise ValueError(f"{path}: missing string field 'version'")
    return version


def _marketplace_entry(data: dict[str, Any], path: Path) -> dict[str, Any]:
    plugins = data.get("plugins")
    if not isinstance(plugins, list) or not plugins or not isinstance(plugins[0], dict):
        raise ValueError(f"{path}: expected a non-empty 'plugins' list")
    return plugins[0]


def _marketplace_version(data: dict[str, Any], path: Path) -> str:
    version = _marketplace_entry(data, path).get("version")
    if not isinstance(version, str):
        raise ValueError(f"{path}: missing string field 'plugins[0].version'")
    return version


def read_versions(config: ToolConfig) -> VersionRecord:
    """Read the version pair from both descriptors.

    Raises:
        FileNotFoundError: If either descriptor is missing.
        ValueError: If either descriptor is malformed.
    """
    plugin = _read_json(config.plugin_path)
    marketplace = _read_json(config.marketplace_path)
    return VersionRecord(
        plugin_version=_plugin_version(plugin, config.plugin_path),
        marketplace_version=_marketplace_version(marketplace, config.marketplace_path),
    )


def _atomic_write(path: Path, content: str) -> None:
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as fh:
            fh.write(content)
        os.chmod(tmp, stat.S_IMODE(path.stat().st_mode))
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def write_versions(config: ToolConfig, new_version: str) -> list[Path]:
    """Rewrite both descriptors with a new version.

    Both documents are rendered before either file is replaced, so a
    malformed descriptor aborts the write with neither file changed.

    Returns:
        list[Path]: The files written, plugin descriptor first.
    """
    plugin = _read_json(config.plugin_path)
    marketplace = _read_json(config.marketplace_path)

    _plugin_version(plugin, config.plugin_path)
    _marketplace_version(marketplace, config.marketplace_path)

    plugin["version"] = new_version
    _marketplace_entry(marketplace, config.marketplace_path)["version"] = new_version

    rendered = [
        (config.plugin_path, _dump_json(plugin)),
        (config.marketplace_path, _dump_json(marketplace)),
    ]
    for path, content in rendered:
        _atomic_write(path, content)
        logger.info("Updated %s -> %s", path, new_version)
    return [path for path, _ in rendered]
