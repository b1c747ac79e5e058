"""Tests for the preset switcher — decisions, state file, git and config modes."""

import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, call

import pytest

from plugkit import presets
from plugkit.config import load_config
from plugkit.git import Git, GitError
from plugkit.models import Preset
from plugkit.presets import (
    BranchMissingError,
    NotARepositoryError,
    StashedSwitchError,
    SwitchAction,
    apply_preset,
    current_preset,
    decide,
    load_state,
)

FIXED_NOW = datetime(2026, 10, 19, 8, 30, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def fixed_clock(monkeypatch):
    monkeypatch.setattr(presets, "_utcnow", lambda: FIXED_NOW)


@pytest.fixture
def config_mode(tmp_path: Path):
    (tmp_path / "plugkit.yaml").write_text("switch_mode: config\n")
    return load_config(tmp_path)


@pytest.fixture
def git_mode(tmp_path: Path):
    return load_config(tmp_path)


@pytest.fixture
def mock_git() -> MagicMock:
    git = MagicMock(spec=Git)
    git.is_repo.return_value = True
    git.has_local_branch.return_value = True
    git.has_remote_branch.return_value = True
    git.has_uncommitted_changes.return_value = False
    git.remote_branches.return_value = ["main", "devnet"]
    return git


class TestDecide:
    """Test argument -> action mapping."""

    @pytest.mark.parametrize("argument", [None, ""])
    def test_no_argument_shows_usage(self, argument):
        """No argument asks for usage."""
        assert decide(argument).action == SwitchAction.USAGE

    @pytest.mark.parametrize("argument", ["status", "--status", "-s"])
    def test_status(self, argument):
        """All status aliases map to STATUS."""
        assert decide(argument).action == SwitchAction.STATUS

    @pytest.mark.parametrize("argument", ["help", "--help", "-h"])
    def test_help(self, argument):
        """All help aliases map to HELP."""
        assert decide(argument).action == SwitchAction.HELP

    def test_detect(self):
        """'detect' maps to DETECT."""
        assert decide("detect").action == SwitchAction.DETECT

    @pytest.mark.parametrize("preset", list(Preset))
    def test_presets(self, preset):
        """Each preset name maps to APPLY with that preset."""
        decision = decide(preset.value)
        assert decision.action == SwitchAction.APPLY
        assert decision.preset == preset

    @pytest.mark.parametrize("argument", ["localnet", "DEVNET", "dev"])
    def test_unknown(self, argument):
        """Anything else is UNKNOWN and keeps the argument."""
        decision = decide(argument)
        assert decision.action == SwitchAction.UNKNOWN
        assert decision.argument == argument


class TestState:
    """Test reading the state file."""

    def test_absent_state_implies_default(self, git_mode):
        """No state file means the default preset."""
        assert load_state(git_mode) is None
        assert current_preset(git_mode, None) == Preset.DEVNET

    def test_configured_default(self, tmp_path: Path):
        """default_preset from plugkit.yaml is honored."""
        (tmp_path / "plugkit.yaml").write_text("default_preset: testnet\n")
        assert current_preset(load_config(tmp_path), None) == Preset.TESTNET

    def test_unreadable_state_ignored(self, git_mode):
        """A corrupt state file reads as absent."""
        git_mode.state_path.write_text("{broken")
        assert load_state(git_mode) is None


class TestApplyConfigMode:
    """Test switching in config mode."""

    def test_writes_config_shape(self, config_mode):
        """Config mode writes version/setAt/note."""
        result = apply_preset(config_mode, Preset.TESTNET)
        assert result.state.preset == Preset.TESTNET
        doc = json.loads(config_mode.state_path.read_text())
        assert doc == {
            "version": "testnet",
            "setAt": "2026-10-19T08:30:00Z",
            "note": presets.preset_note(Preset.TESTNET),
        }

    def test_overwrites_previous_state(self, config_mode):
        """The state file is replaced, not merged."""
        config_mode.state_path.write_text(json.dumps({"version": "mainnet", "extra": 1}))
        apply_preset(config_mode, Preset.DEVNET)
        doc = json.loads(config_mode.state_path.read_text())
        assert doc["version"] == "devnet"
        assert "extra" not in doc

    def test_does_not_touch_git(self, config_mode, mock_git):
        """Config mode never calls git."""
        apply_preset(config_mode, Preset.MAINNET, mock_git)
        assert mock_git.mock_calls == []


class TestApplyGitMode:
    """Test switching in git mode."""

    def test_checkout_existing_local_branch(self, git_mode, mock_git):
        """An existing local branch is fetched and checked out."""
        result = apply_preset(git_mode, Preset.TESTNET, mock_git)
        mock_git.fetch.assert_called_once_with("origin", "testnet")
        mock_git.checkout.assert_called_once_with("testnet")
        mock_git.checkout_tracking.assert_not_called()
        mock_git.stash.assert_not_called()
        assert not result.created_branch

        doc = json.loads(git_mode.state_path.read_text())
        assert doc["network"] == "testnet"
        assert doc["switchedAt"] == "2026-10-19T08:30:00Z"

    def test_creates_tracking_branch(self, git_mode, mock_git):
        """A remote-only branch gets a local tracking branch."""
        mock_git.has_local_branch.return_value = False
        result = apply_preset(git_mode, Preset.MAINNET, mock_git)
        mock_git.checkout_tracking.assert_called_once_with("mainnet", "origin")
        mock_git.checkout.assert_not_called()
        assert result.created_branch

    def test_stashes_dirty_tree(self, git_mode, mock_git):
        """Local changes are stashed before checkout."""
        mock_git.has_uncommitted_changes.return_value = True
        result = apply_preset(git_mode, Preset.DEVNET, mock_git)
        mock_git.stash.assert_called_once_with()
        assert result.stashed

    def test_fetch_precedes_stash(self, git_mode, mock_git):
        """The remote is fetched before local changes are stashed."""
        mock_git.has_uncommitted_changes.return_value = True
        apply_preset(git_mode, Preset.DEVNET, mock_git)
        ordered = [c for c in mock_git.mock_calls if c[0] in ("fetch", "stash", "checkout")]
        assert ordered == [call.fetch("origin", "devnet"), call.stash(), call.checkout("devnet")]

    def test_not_a_repository(self, git_mode, mock_git):
        """Outside a repository nothing is written."""
        mock_git.is_repo.return_value = False
        with pytest.raises(NotARepositoryError):
            apply_preset(git_mode, Preset.DEVNET, mock_git)
        assert not git_mode.state_path.exists()

    def test_branch_missing(self, git_mode, mock_git):
        """A missing branch leaves the tree and the state file alone."""
        mock_git.has_local_branch.return_value = False
        mock_git.has_remote_branch.return_value = False
        git_mode.state_path.write_text('{"network": "devnet"}\n')

        with pytest.raises(BranchMissingError) as info:
            apply_preset(git_mode, Preset.MAINNET, mock_git)

        assert info.value.available == ["main", "devnet"]
        mock_git.stash.assert_not_called()
        mock_git.checkout.assert_not_called()
        assert git_mode.state_path.read_text() == '{"network": "devnet"}\n'

    def test_fetch_failure_is_fatal(self, git_mode, mock_git):
        """A failed fetch stops the switch before anything changes."""
        mock_git.fetch.side_effect = GitError(["fetch"], 128, "could not read from remote")
        with pytest.raises(GitError):
            apply_preset(git_mode, Preset.TESTNET, mock_git)
        mock_git.checkout.assert_not_called()
        assert not git_mode.state_path.exists()

    def test_fetch_failure_keeps_changes_in_place(self, git_mode, mock_git):
        """A failed fetch does not stash a dirty tree."""
        mock_git.has_uncommitted_changes.return_value = True
        mock_git.fetch.side_effect = GitError(["fetch"], 128, "could not read from remote")
        with pytest.raises(GitError):
            apply_preset(git_mode, Preset.TESTNET, mock_git)
        mock_git.stash.assert_not_called()

    def test_checkout_failure_after_stash(self, git_mode, mock_git):
        """A failed checkout after stashing reports the stash."""
        mock_git.has_uncommitted_changes.return_value = True
        failure = GitError(["checkout", "testnet"], 1, "would be overwritten")
        mock_git.checkout.side_effect = failure

        with pytest.raises(StashedSwitchError) as info:
            apply_preset(git_mode, Preset.TESTNET, mock_git)

        assert info.value.cause is failure
        assert "stashed" in str(info.value)
        mock_git.stash.assert_called_once_with()
        assert not git_mode.state_path.exists()

    def test_checkout_failure_clean_tree(self, git_mode, mock_git):
        """A failed checkout on a clean tree re-raises the git error."""
        mock_git.checkout.side_effect = GitError(["checkout", "testnet"], 1, "boom")
        with pytest.raises(GitError) as info:
            apply_preset(git_mode, Preset.TESTNET, mock_git)
        assert not isinstance(info.value, StashedSwitchError)
