#!/usr/bin/env python3
"""
Fix-branch handling on a local checkout using GitPython.

Only one fix branch is worked on at a time. ``GitWorkspace.fix_branch`` checks
the branch out fresh from its base, and if the body of the ``with`` block
raises (or the session is discarded) the working tree is reset, the base
branch is checked out again and the local fix branch is deleted, so a
half-patched manifest is never left committed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from git import GitCommandError, Repo

from frogfix.constants import DEFAULT_REMOTE_NAME
from frogfix.errors import DirtyWorkingTreeError, VcsError

logger = logging.getLogger(__name__)


@dataclass
class FixBranchSession:
    branch_name: str
    base_branch: str
    discarded: bool = False
    commit_sha: str | None = None

    def discard(self) -> None:
        self.discarded = True


class GitWorkspace:
    """A local clone in which fix branches are created, committed and pushed.

    ``ignored_paths`` are files frogfix itself writes while running (a log
    file inside the checkout); they never make the tree dirty, are never
    committed and survive a discard.
    """

    def __init__(
        self,
        repo_path: str | Path,
        remote_name: str = DEFAULT_REMOTE_NAME,
        dry_run: bool = False,
        ignored_paths: Iterable[str | Path] = (),
    ):
        self.repo = Repo(repo_path)
        self.path = Path(self.repo.working_tree_dir or repo_path)
        self.remote_name = remote_name
        self.dry_run = dry_run
        self.ignored_paths = self._relative_paths(ignored_paths)

    def _relative_paths(self, paths: Iterable[str | Path]) -> list[str]:
        root = self.path.resolve()
        relative: list[str] = []
        for p in paths:
            try:
                relative.append(Path(p).resolve().relative_to(root).as_posix())
            except ValueError:
                # Outside the checkout: git never sees it
                continue
        return relative

    def current_branch(self) -> str:
        return self.repo.active_branch.name

    def ensure_clean(self) -> None:
        untracked = [f for f in self.repo.untracked_files if f not in self.ignored_paths]
        if self.repo.is_dirty() or untracked:
            raise DirtyWorkingTreeError(f"Working tree at {self.path} has uncommitted changes")

    @contextmanager
    def fix_branch(self, branch_name: str, base_branch: str) -> Iterator[FixBranchSession]:
        """Check out ``branch_name`` from ``base_branch`` for the duration of the block."""
        self.repo.git.checkout(base_branch)
        self.repo.git.checkout("-B", branch_name)
        logger.debug("Checked out %s from %s", branch_name, base_branch)
        session = FixBranchSession(branch_name, base_branch)
        try:
            yield session
        except BaseException:
            self._discard(session)
            raise
        if session.discarded:
            self._discard(session)
        else:
            self.repo.git.checkout(base_branch)

    def _discard(self, session: FixBranchSession) -> None:
        logger.info("Discarding fix branch %s", session.branch_name)
        for args in (
            ("reset", "--hard"),
            ("clean", "-fd", *(f"--exclude=/{p}" for p in self.ignored_paths)),
            ("checkout", session.base_branch),
            ("branch", "-D", session.branch_name),
        ):
            try:
                self.repo.git.execute(["git", *args])
            except GitCommandError as e:
                logger.warning("git %s failed while discarding %s: %s", args[0], session.branch_name, e)

    def commit_all(self, message: str) -> str | None:
        """Stage every change and commit it. Returns the commit sha, or ``None`` if nothing changed."""
        self.repo.git.add("--all", "--", ".", *(f":(exclude){p}" for p in self.ignored_paths))
        if not self.repo.index.diff("HEAD"):
            return None
        commit = self.repo.index.commit(message)
        logger.debug("Committed %s: %s", commit.hexsha[:8], message)
        return commit.hexsha

    def push(self, branch_name: str) -> None:
        """Force-push ``branch_name`` so the remote fix branch mirrors the local one."""
        if self.dry_run:
            logger.info("[dry-run] Skipping push of %s", branch_name)
            return
        try:
            results = self.repo.remote(self.remote_name).push(
                refspec=f"{branch_name}:{branch_name}", force=True
            )
            results.raise_if_error()
        except (GitCommandError, ValueError) as e:
            raise VcsError(f"Failed to push {branch_name} to {self.remote_name}: {e}") from e
        logger.info("Pushed %s to %s", branch_name, self.remote_name)
