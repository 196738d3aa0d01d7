#!/usr/bin/env python3
"""
Command-line entry point: remediate the vulnerabilities in a scan-result file.

    frogfix scan.json --repo-path . --base-branch main --aggregate

Flags override the JF_* environment variables (and a ``.env`` file).
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from frogfix.constants import ENV_VARS
from frogfix.errors import FrogfixError
from frogfix.remediation.git_workspace import GitWorkspace
from frogfix.remediation.report import print_summary
from frogfix.remediation.scan_repository import ScanRepository
from frogfix.remediation.vcs import GitHubClient, InMemoryVcsClient, VcsClient
from frogfix.security.vulnerability_map import load_scan_results
from frogfix.utils.common import add_common_args, setup_logging
from frogfix.utils.config import RemediationConfig, get_remediation_config

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Open pull requests that upgrade vulnerable dependencies",
        epilog="Environment: " + ", ".join(ENV_VARS),
    )
    parser.add_argument("scan_results", help="Path to the scan-result JSON document")
    parser.add_argument("--repo-path", default=".", help="Local checkout to patch (default: .)")
    parser.add_argument(
        "--base-branch",
        dest="base_branches",
        action="append",
        help="Base branch to remediate; repeat for several (default: checked-out branch)",
    )
    parser.add_argument(
        "--aggregate",
        dest="aggregate",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="One pull request per technology instead of one per package",
    )
    parser.add_argument("--dry-run", action="store_true", default=None, help="Do not push or call the VCS API")
    parser.add_argument("--owner", help="Repository owner on the VCS provider")
    parser.add_argument("--repo", help="Repository name on the VCS provider")
    parser.add_argument("--token", help="VCS access token")
    parser.add_argument("--api-endpoint", help="VCS API base URL")
    parser.add_argument("--remote", help="Git remote to push fix branches to")
    add_common_args(parser)
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace, config: RemediationConfig) -> RemediationConfig:
    """Overlay explicit command-line values on the environment configuration."""
    return RemediationConfig(
        base_branches=tuple(args.base_branches) if args.base_branches else config.base_branches,
        aggregate_fixes=config.aggregate_fixes if args.aggregate is None else args.aggregate,
        token=args.token or config.token,
        owner=args.owner or config.owner,
        repo=args.repo or config.repo,
        api_endpoint=args.api_endpoint or config.api_endpoint,
        remote_name=args.remote or config.remote_name,
        commit_message_template=config.commit_message_template,
        pull_request_title_template=config.pull_request_title_template,
        dry_run=bool(args.dry_run) or config.dry_run,
    )


def build_vcs_client(config: RemediationConfig) -> VcsClient:
    if config.dry_run:
        return InMemoryVcsClient()
    if not (config.owner and config.repo):
        raise FrogfixError("Repository owner and name are required (--owner/--repo or JF_GIT_OWNER/JF_GIT_REPO)")
    return GitHubClient(config.owner, config.repo, token=config.token, api_endpoint=config.api_endpoint)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    try:
        config = resolve_config(args, get_remediation_config())
        scan_results = load_scan_results(args.scan_results)
        workspace = GitWorkspace(
            args.repo_path,
            remote_name=config.remote_name,
            dry_run=config.dry_run,
            ignored_paths=[args.log_file] if args.log_file else (),
        )
        runner = ScanRepository(
            workspace,
            build_vcs_client(config),
            aggregate_fixes=config.aggregate_fixes,
            commit_message_template=config.commit_message_template,
            pull_request_title_template=config.pull_request_title_template,
        )
        summary = runner.run(scan_results, list(config.base_branches))
    except (FrogfixError, GitCommandError, InvalidGitRepositoryError, NoSuchPathError) as e:
        logger.error("❌ Remediation aborted: %s", e)
        return 1

    print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
