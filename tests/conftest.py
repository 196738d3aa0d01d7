"""Shared fixtures: a throwaway git checkout and quiet progress bars."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from git import Repo


@pytest.fixture(autouse=True)
def _no_progress_bars(monkeypatch):
    monkeypatch.setenv("FROGFIX_PROGRESS", "0")


@pytest.fixture(autouse=True)
def _restore_root_logging():
    # setup_logging() replaces root handlers; put pytest's back afterwards
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def write_file(p: Path, content: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")


@pytest.fixture
def git_repo(tmp_path: Path) -> Repo:
    """A repository on branch ``master`` with one commit containing a README."""
    repo_dir = tmp_path / "repo"
    repo_dir.mkdir()
    repo = Repo.init(repo_dir)
    # Configure identity for commits
    with repo.config_writer() as cw:
        cw.set_value("user", "name", "Tester")
        cw.set_value("user", "email", "tester@example.com")

    readme = repo_dir / "README.md"
    write_file(readme, "# demo\n")
    repo.index.add([str(readme)])
    repo.index.commit("initial commit")
    # Independent of init.defaultBranch
    repo.git.branch("-M", "master")
    return repo
