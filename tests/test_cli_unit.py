from __future__ import annotations

import json
from pathlib import Path

import pytest
from git import Repo

from frogfix import cli
from frogfix.constants import ENV_VARS
from frogfix.utils.config import RemediationConfig


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def _scan_file(tmp_path: Path) -> Path:
    path = tmp_path / "scan.json"
    component = "npm://minimist:1.2.0"
    path.write_text(
        json.dumps(
            {
                "vulnerabilities": [
                    {
                        "severity": "High",
                        "cves": [{"cve": "CVE-2021-44906"}],
                        "components": {
                            component: {
                                "fixed_versions": ["[1.2.6]"],
                                "impact_paths": [[{"component_id": "npm://app:1.0.0"}, {"component_id": component}]],
                            }
                        },
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    return path


def test_parse_args():
    args = cli.parse_args(["scan.json", "--base-branch", "main", "--base-branch", "dev", "--no-aggregate"])
    assert args.scan_results == "scan.json"
    assert args.base_branches == ["main", "dev"]
    assert args.aggregate is False
    assert args.dry_run is None
    assert args.log_level == "INFO"


def test_flags_override_environment_config():
    args = cli.parse_args(["scan.json", "--aggregate", "--owner", "acme", "--dry-run"])
    env = RemediationConfig(base_branches=("main",), owner="other", repo="app", token="t")
    config = cli.resolve_config(args, env)
    assert config.aggregate_fixes is True
    assert config.owner == "acme"
    assert config.repo == "app"
    assert config.base_branches == ("main",)
    assert config.dry_run is True


def test_build_vcs_client_requires_repository_coordinates():
    with pytest.raises(cli.FrogfixError):
        cli.build_vcs_client(RemediationConfig())
    assert isinstance(cli.build_vcs_client(RemediationConfig(dry_run=True)), cli.InMemoryVcsClient)
    assert isinstance(cli.build_vcs_client(RemediationConfig(owner="a", repo="b")), cli.GitHubClient)


def test_main_dry_run(git_repo: Repo, tmp_path: Path, capsys) -> None:
    manifest = Path(git_repo.working_tree_dir) / "package.json"
    manifest.write_text('{"dependencies": {"minimist": "^1.2.0"}}\n', encoding="utf-8")
    git_repo.index.add([str(manifest)])
    git_repo.index.commit("add package.json")

    code = cli.main([str(_scan_file(tmp_path)), "--repo-path", git_repo.working_tree_dir, "--dry-run"])

    assert code == 0
    out = capsys.readouterr().out
    assert "created" in out
    assert "frogbot-minimist-" in out
    assert any(h.name.startswith("frogbot-minimist-") for h in git_repo.heads)


def test_main_missing_scan_file(tmp_path: Path) -> None:
    assert cli.main([str(tmp_path / "missing.json"), "--dry-run"]) == 1


def test_main_not_a_git_repository(tmp_path: Path) -> None:
    plain = tmp_path / "plain"
    plain.mkdir()
    assert cli.main([str(_scan_file(tmp_path)), "--repo-path", str(plain), "--dry-run"]) == 1


def _commit_package_json(repo: Repo) -> None:
    manifest = Path(repo.working_tree_dir) / "package.json"
    manifest.write_text('{"dependencies": {"minimist": "^1.2.0"}}\n', encoding="utf-8")
    repo.index.add([str(manifest)])
    repo.index.commit("add package.json")


def test_main_from_inside_the_checkout(git_repo: Repo, tmp_path: Path, monkeypatch) -> None:
    _commit_package_json(git_repo)
    scan = _scan_file(tmp_path)
    monkeypatch.chdir(git_repo.working_tree_dir)

    assert cli.main([str(scan), "--dry-run"]) == 0
    # Console-only logging leaves nothing behind in the checkout
    assert git_repo.untracked_files == []
    assert not (Path(git_repo.working_tree_dir) / "logs").exists()


def test_log_file_inside_checkout_is_never_committed(git_repo: Repo, tmp_path: Path, monkeypatch) -> None:
    _commit_package_json(git_repo)
    scan = _scan_file(tmp_path)
    monkeypatch.chdir(git_repo.working_tree_dir)

    assert cli.main([str(scan), "--dry-run", "--log-file", "logs/run.log"]) == 0

    log_file = Path(git_repo.working_tree_dir) / "logs" / "run.log"
    assert "Fix plan" in log_file.read_text(encoding="utf-8")
    branch = next(h.name for h in git_repo.heads if h.name.startswith("frogbot-minimist-"))
    committed = git_repo.git.show("--name-only", "--format=", branch).split()
    assert committed == ["package.json"]
