from __future__ import annotations

from pathlib import Path

import pytest
from git import Repo

from frogfix.errors import DirtyWorkingTreeError, VcsError
from frogfix.remediation.git_workspace import GitWorkspace


def test_ensure_clean_rejects_untracked_files(git_repo: Repo) -> None:
    workspace = GitWorkspace(git_repo.working_tree_dir)
    workspace.ensure_clean()
    (Path(git_repo.working_tree_dir) / "stray.txt").write_text("x", encoding="utf-8")
    with pytest.raises(DirtyWorkingTreeError):
        workspace.ensure_clean()


def test_fix_branch_commit_and_return_to_base(git_repo: Repo) -> None:
    workspace = GitWorkspace(git_repo.working_tree_dir)
    readme = workspace.path / "README.md"

    with workspace.fix_branch("frogbot-demo", "master") as session:
        assert workspace.current_branch() == "frogbot-demo"
        readme.write_text("# patched\n", encoding="utf-8")
        session.commit_sha = workspace.commit_all("Upgrade demo to 2.0.0")

    assert session.commit_sha is not None
    assert workspace.current_branch() == "master"
    assert readme.read_text(encoding="utf-8") == "# demo\n"
    assert git_repo.commit("frogbot-demo").message.strip() == "Upgrade demo to 2.0.0"


def test_commit_all_without_changes_returns_none(git_repo: Repo) -> None:
    workspace = GitWorkspace(git_repo.working_tree_dir)
    with workspace.fix_branch("frogbot-empty", "master") as session:
        assert workspace.commit_all("nothing") is None
        session.discard()
    assert "frogbot-empty" not in [h.name for h in git_repo.heads]


def test_exception_discards_branch_and_changes(git_repo: Repo) -> None:
    workspace = GitWorkspace(git_repo.working_tree_dir)
    readme = workspace.path / "README.md"

    with pytest.raises(RuntimeError):
        with workspace.fix_branch("frogbot-broken", "master"):
            readme.write_text("half patched\n", encoding="utf-8")
            (workspace.path / "new.txt").write_text("new\n", encoding="utf-8")
            raise RuntimeError("boom")

    assert workspace.current_branch() == "master"
    assert readme.read_text(encoding="utf-8") == "# demo\n"
    assert not (workspace.path / "new.txt").exists()
    assert "frogbot-broken" not in [h.name for h in git_repo.heads]
    workspace.ensure_clean()


def test_push_to_remote(git_repo: Repo, tmp_path: Path) -> None:
    remote = Repo.init(tmp_path / "remote.git", bare=True)
    git_repo.create_remote("origin", str(tmp_path / "remote.git"))
    workspace = GitWorkspace(git_repo.working_tree_dir)

    with workspace.fix_branch("frogbot-push", "master"):
        (workspace.path / "README.md").write_text("# pushed\n", encoding="utf-8")
        workspace.commit_all("push me")
        workspace.push("frogbot-push")

    assert "frogbot-push" in [h.name for h in remote.heads]


def test_push_failure_raises_vcs_error(git_repo: Repo, tmp_path: Path) -> None:
    git_repo.create_remote("origin", str(tmp_path / "does-not-exist.git"))
    workspace = GitWorkspace(git_repo.working_tree_dir)
    with pytest.raises(VcsError):
        workspace.push("master")


def test_dry_run_skips_push(git_repo: Repo) -> None:
    # No remote configured: a real push would fail
    workspace = GitWorkspace(git_repo.working_tree_dir, dry_run=True)
    workspace.push("master")


def test_ignored_paths_are_not_dirty_committed_or_cleaned(git_repo: Repo) -> None:
    root = Path(git_repo.working_tree_dir)
    log_file = root / "logs" / "run.log"
    log_file.parent.mkdir()
    log_file.write_text("started\n", encoding="utf-8")
    workspace = GitWorkspace(root, ignored_paths=[log_file, "/elsewhere/outside.log"])

    assert workspace.ignored_paths == ["logs/run.log"]
    workspace.ensure_clean()

    with workspace.fix_branch("frogbot-logged", "master"):
        (root / "README.md").write_text("# patched\n", encoding="utf-8")
        workspace.commit_all("patch readme")
    assert git_repo.git.show("--name-only", "--format=", "frogbot-logged").split() == ["README.md"]

    with pytest.raises(RuntimeError):
        with workspace.fix_branch("frogbot-broken", "master"):
            raise RuntimeError("boom")
    assert log_file.read_text(encoding="utf-8") == "started\n"
