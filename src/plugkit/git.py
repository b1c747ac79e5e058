"""Thin wrapper over the git CLI for the release and network tools.

Every command runs synchronously in the project root. A non-zero exit
raises GitError; nothing is retried.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

logger = logging.getLogger("plugkit.git")


class GitError(RuntimeError):
    """A git command exited non-zero."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str) -> None:
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        super().__init__(f"git {' '.join(args)} failed ({returncode}): {self.stderr}")


class Git:
    """Run git commands against one working tree.

    Args:
        cwd: Directory the commands run in.
    """

    def __init__(self, cwd: Path) -> None:
        self.cwd = cwd

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        logger.debug("git %s", " ".join(args))
        result = subprocess.run(
            ["git", *args],
            cwd=self.cwd,
            capture_output=True,
            text=True,
        )
        if check and result.returncode != 0:
            raise GitError(args, result.returncode, result.stderr)
        return result

    # ── Queries ───────────────────────────────────────────────────────

    def is_repo(self) -> bool:
        """True when cwd is inside a git working tree."""
        try:
            return self._run("rev-parse", "--git-dir", check=False).returncode == 0
        except FileNotFoundError:
            # git binary missing
            return False

    def current_branch(self) -> str:
        return self._run("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()

    def _ref_exists(self, ref: str) -> bool:
        return self._run("show-ref", "--verify", "--quiet", ref, check=False).returncode == 0

    def has_local_branch(self, branch: str) -> bool:
        return self._ref_exists(f"refs/heads/{branch}")

    def has_remote_branch(self, remote: str, branch: str) -> bool:
        return self._ref_exists(f"refs/remotes/{remote}/{branch}")

    def remote_branches(self, remote: str) -> list[str]:
        """Branch names known under a remote, without the remote prefix or HEAD."""
        out = self._run("branch", "-r").stdout
        prefix = f"{remote}/"
        names = []
        for line in out.splitlines():
            name = line.strip()
            if not name.startswith(prefix) or "HEAD" in name:
                continue
            names.append(name[len(prefix):])
        return names

    def has_uncommitted_changes(self) -> bool:
        return self._run("diff", "--quiet", check=False).returncode != 0

    # ── Mutations ─────────────────────────────────────────────────────

    def stash(self) -> None:
        self._run("stash")

    def fetch(self, remote: str, branch: str) -> None:
        self._run("fetch", remote, branch)

    def checkout(self, branch: str) -> None:
        self._run("checkout", branch)

    def checkout_tracking(self, branch: str, remote: str) -> None:
        """Create a local branch tracking remote/branch and switch to it."""
        self._run("checkout", "-b", branch, f"{remote}/{branch}")

    def add(self, *paths: Path | str) -> None:
        self._run("add", "--", *(str(p) for p in paths))

    def commit(self, message: str, *paths: Path | str) -> None:
        """Commit; when paths are given, only those paths are committed."""
        if paths:
            self._run("commit", "-m", message, "--", *(str(p) for p in paths))
        else:
            self._run("commit", "-m", message)

    def tag_annotated(self, tag: str, message: str) -> None:
        self._run("tag", "-a", tag, "-m", message)

    def push(self, remote: str, ref: str) -> None:
        self._run("push", remote, ref)
