"""Preset Switcher — record which network preset the plugin targets.

Layout:
    <root>/network.json     state file, fully overwritten on every switch
    branches devnet / testnet / mainnet   one branch per preset (git mode)

decide() maps the CLI argument to an action without side effects;
apply_preset() performs a switch; load_state() reads the current record.
"""

from __future__ import annotations

import enum
import json
import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ValidationError

from .config import ToolConfig
from .git import Git, GitError
from .models import Preset, PresetState, SwitchMode

logger = logging.getLogger("plugkit.presets")

PRESET_DESCRIPTIONS: dict[Preset, str] = {
    Preset.MAINNET: "Stable release for Aztec mainnet",
    Preset.TESTNET: "Current testnet version",
    Preset.DEVNET: "Latest development version (may have breaking changes)",
}

PRESET_GUIDANCE: dict[Preset, list[str]] = {
    Preset.MAINNET: [
        "Contract and client patterns follow the stable mainnet release.",
        "Pin dependencies to the mainnet tag before deploying.",
    ],
    Preset.TESTNET: [
        "Contract and client patterns follow the current testnet release.",
        "Expect fees and sequencer behavior to match the public testnet.",
    ],
    Preset.DEVNET: [
        "Contract and client patterns follow the latest devnet build.",
        "Syntax may change between devnet releases; re-run detect after upgrading.",
    ],
}

STATUS_ALIASES = {"status", "--status", "-s"}
HELP_ALIASES = {"help", "--help", "-h"}


class SwitchAction(str, enum.Enum):
    USAGE = "usage"
    HELP = "help"
    STATUS = "status"
    DETECT = "detect"
    APPLY = "apply"
    UNKNOWN = "unknown"


class SwitchDecision(BaseModel):
    action: SwitchAction
    preset: Optional[Preset] = None
    argument: str = ""


class NotARepositoryError(RuntimeError):
    """Git mode was requested outside a git working tree."""


class BranchMissingError(ValueError):
    """The preset's branch exists neither locally nor on the remote."""

    def __init__(self, branch: str, remote: str, available: list[str]) -> None:
        self.branch = branch
        self.remote = remote
        self.available = available
        super().__init__(f"Branch '{branch}' does not exist locally or on {remote}")


class StashedSwitchError(RuntimeError):
    """The checkout failed after local changes were already stashed."""

    def __init__(self, cause: GitError) -> None:
        self.cause = cause
        super().__init__(f"{cause} (local changes were stashed)")


class ApplyResult(BaseModel):
    state: PresetState
    stashed: bool = False
    created_branch: bool = False


def decide(argument: Optional[str]) -> SwitchDecision:
    """Map the first CLI argument to what the switcher should do."""
    if argument is None or argument == "":
        return SwitchDecision(action=SwitchAction.USAGE)
    if argument in STATUS_ALIASES:
        return SwitchDecision(action=SwitchAction.STATUS, argument=argument)
    if argument in HELP_ALIASES:
        return SwitchDecision(action=SwitchAction.HELP, argument=argument)
    if argument == "detect":
        return SwitchDecision(action=SwitchAction.DETECT, argument=argument)
    if argument in Preset.names():
        return SwitchDecision(action=SwitchAction.APPLY, preset=Preset(argument), argument=argument)
    return SwitchDecision(action=SwitchAction.UNKNOWN, argument=argument)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def preset_note(preset: Preset) -> str:
    return (
        f"Plugin configured for {preset.value}. "
        "Syntax and patterns match this network version."
    )


# ── State file ────────────────────────────────────────────────────────


def read_state_text(config: ToolConfig) -> Optional[str]:
    """Raw state file content, or None when there is no state file."""
    if not config.state_path.exists():
        return None
    return config.state_path.read_text()


def load_state(config: ToolConfig) -> Optional[PresetState]:
    """Parse the state file.

    Returns:
        PresetState, or None when the file is absent or unreadable.
    """
    text = read_state_text(config)
    if text is None:
        return None
    try:
        return PresetState.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Ignoring unreadable state file %s: %s", config.state_path, exc)
        return None


def current_preset(config: ToolConfig, state: Optional[PresetState]) -> Preset:
    """The active preset: the recorded one, else the configured default."""
    return state.preset if state is not None else config.default_preset


def write_state(config: ToolConfig, state: PresetState) -> None:
    """Overwrite the state file in the configured switch mode's shape."""
    doc = state.to_document(config.switch_mode)
    config.state_path.parent.mkdir(parents=True, exist_ok=True)
    config.state_path.write_text(json.dumps(doc, indent=2) + "\n")
    logger.info("Wrote %s (%s)", config.state_path, state.preset.value)


# ── Switching ─────────────────────────────────────────────────────────


def _switch_branch(config: ToolConfig, preset: Preset, git: Git) -> tuple[bool, bool]:
    """Check out the preset's branch. Returns (stashed, created_branch)."""
    if not git.is_repo():
        raise NotARepositoryError("Not a git repository")

    branch = preset.value
    local = git.has_local_branch(branch)
    if not local and not git.has_remote_branch(config.remote, branch):
        raise BranchMissingError(branch, config.remote, git.remote_branches(config.remote))

    git.fetch(config.remote, branch)

    stashed = False
    if git.has_uncommitted_changes():
        logger.info("Stashing local changes before switching to %s", branch)
        git.stash()
        stashed = True

    try:
        if local:
            git.checkout(branch)
        else:
            git.checkout_tracking(branch, config.remote)
    except GitError as exc:
        if stashed:
            raise StashedSwitchError(exc) from exc
        raise
    return stashed, not local


def apply_preset(config: ToolConfig, preset: Preset, git: Optional[Git] = None) -> ApplyResult:
    """Switch the project to a preset and record it.

    In git mode the preset's branch is fetched, local changes are stashed,
    and the branch is checked out; the state file is written only
    once the checkout succeeded. In config mode only the state file changes.

    Raises:
        NotARepositoryError: Git mode outside a working tree.
        BranchMissingError: Git mode and the branch exists nowhere.
        StashedSwitchError: The checkout failed after local changes were stashed.
        GitError: Any other git command failed.
    """
    stashed = created = False
    if config.switch_mode == SwitchMode.GIT:
        stashed, created = _switch_branch(config, preset, git or Git(config.project_root))

    state = PresetState(preset=preset, set_at=_utcnow(), note=preset_note(preset))
    write_state(config, state)
    return ApplyResult(state=state, stashed=stashed, created_branch=created)
