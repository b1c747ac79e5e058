"""Version Bumper — release the plugin and marketplace descriptors together.

Flow (prompts live in the CLI; this module only decides and mutates):
    check_versions   both descriptors agree, or VersionMismatchError
    plan_bump        menu choice -> BumpPlan (see versioning)
    apply_release    write both descriptors, commit them, tag v<version>
    push_release     push the release branch and the tag
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .config import ToolConfig
from .git import Git
from .manifests import read_versions, write_versions
from .versioning import BumpPlan

logger = logging.getLogger("plugkit.release")


class VersionMismatchError(ValueError):
    """plugin.json and marketplace.json disagree on the version."""

    def __init__(self, plugin_version: str, marketplace_version: str) -> None:
        self.plugin_version = plugin_version
        self.marketplace_version = marketplace_version
        super().__init__(
            f"Version mismatch: plugin.json={plugin_version} "
            f"marketplace.json={marketplace_version}"
        )


def check_versions(config: ToolConfig) -> str:
    """Return the shared current version.

    Raises:
        VersionMismatchError: If the two descriptors disagree.
    """
    record = read_versions(config)
    if not record.in_sync:
        raise VersionMismatchError(record.plugin_version, record.marketplace_version)
    return record.plugin_version


def commit_message(plan: BumpPlan) -> str:
    return f"Bump version to {plan.new}"


def tag_message(plan: BumpPlan) -> str:
    return f"Release {plan.tag}"


def apply_release(config: ToolConfig, plan: BumpPlan, git: Git) -> list[Path]:
    """Write the new version to both descriptors, commit them, and tag.

    Args:
        config: Tool configuration.
        plan: The confirmed bump.
        git: Git runner for the project root.

    Returns:
        list[Path]: The descriptor files written.

    Raises:
        GitError: If staging, committing, or tagging fails.
    """
    written = write_versions(config, plan.new)
    rel = [p.relative_to(config.project_root) for p in written]

    git.add(*rel)
    git.commit(commit_message(plan), *rel)
    logger.info("Committed %s", commit_message(plan))

    git.tag_annotated(plan.tag, tag_message(plan))
    logger.info("Created tag %s", plan.tag)
    return written


def push_release(config: ToolConfig, plan: BumpPlan, git: Git) -> None:
    """Push the release branch, then the tag, to the configured remote."""
    git.push(config.remote, config.release_branch)
    git.push(config.remote, plan.tag)


def push_commands(config: ToolConfig, plan: BumpPlan) -> list[str]:
    """The manual push commands printed when the push is declined."""
    return [
        f"git push {config.remote} {config.release_branch}",
        f"git push {config.remote} {plan.tag}",
    ]


def release_page_url(config: ToolConfig, plan: BumpPlan) -> Optional[str]:
    """GitHub 'new release' URL for the tag, when a repo_url is configured."""
    if not config.repo_url:
        return None
    base = config.repo_url.rstrip("/")
    if base.endswith(".git"):
        base = base[: -len(".git")]
    return f"{base}/releases/new?tag={plan.tag}"
