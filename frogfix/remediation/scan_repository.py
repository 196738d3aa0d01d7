#!/usr/bin/env python3
"""
One remediation pass over a repository.

scan results -> vulnerability map -> fix plan -> per base branch:
prepare PRs -> decide (concurrent, read-only) -> patch/commit/push (sequential)
-> create or update PRs.

Failures of a single dependency or branch are recorded in the summary and the
pass continues; VCS and git infrastructure errors propagate to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from frogfix.constants import MAX_PR_QUERY_WORKERS
from frogfix.errors import PatchFailureError, UnsupportedFixError
from frogfix.remediation.branches import BranchNamer
from frogfix.remediation.fix_plan import FixBranch, FixPlan, build_fix_plan
from frogfix.remediation.git_workspace import GitWorkspace
from frogfix.remediation.manifest_patcher import ManifestPatcher
from frogfix.remediation.pull_requests import (
    PullRequestAction,
    PullRequestDecision,
    PullRequestLifecycleManager,
)
from frogfix.remediation.vcs import PullRequestInfo, VcsClient
from frogfix.security.models import VulnerabilityDetails
from frogfix.security.vulnerability_map import create_vulnerabilities_map
from frogfix.utils.progress import progress_iter

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class BranchOutcome:
    branch_name: str
    base_branch: str
    status: str
    packages: list[str] = field(default_factory=list)
    pull_request: PullRequestInfo | None = None
    detail: str = ""


@dataclass
class RemediationSummary:
    outcomes: list[BranchOutcome] = field(default_factory=list)
    # (dependency name, reason) for everything that was not fixed
    skipped_dependencies: list[tuple[str, str]] = field(default_factory=list)
    failed_dependencies: list[tuple[str, str]] = field(default_factory=list)

    def with_status(self, status: str) -> list[BranchOutcome]:
        return [o for o in self.outcomes if o.status == status]


class ScanRepository:
    """Runs remediation passes against one local checkout.

    Args:
        workspace: Checkout in which fix branches are built.
        vcs_client: Provider client for pull requests.
        aggregate_fixes: One branch per technology instead of one per package.
        commit_message_template: Optional single-package commit message template.
        pull_request_title_template: Optional single-package PR title template.
        max_workers: Concurrency for read-only pull request queries.
    """

    def __init__(
        self,
        workspace: GitWorkspace,
        vcs_client: VcsClient,
        aggregate_fixes: bool = False,
        commit_message_template: str | None = None,
        pull_request_title_template: str | None = None,
        max_workers: int = MAX_PR_QUERY_WORKERS,
    ):
        self.workspace = workspace
        self.aggregate_fixes = aggregate_fixes
        self.namer = BranchNamer(commit_message_template)
        self.lifecycle = PullRequestLifecycleManager(vcs_client, pull_request_title_template)
        self.patcher = ManifestPatcher(workspace.path)
        self.max_workers = max_workers

    def run(
        self, scan_results: Mapping[str, Any], base_branches: Sequence[str] | None = None
    ) -> RemediationSummary:
        vulnerabilities_map = create_vulnerabilities_map(scan_results)  # type: ignore[arg-type]
        plan = build_fix_plan(vulnerabilities_map, self.aggregate_fixes)
        return self.run_plan(plan, base_branches)

    def run_plan(self, plan: FixPlan, base_branches: Sequence[str] | None = None) -> RemediationSummary:
        summary = RemediationSummary()
        for details, reason in plan.not_fixable:
            summary.skipped_dependencies.append((details.impacted_dependency_name, reason))

        if plan.is_empty:
            logger.info("🎉 No fixable vulnerabilities found; nothing to do")
            return summary

        self.workspace.ensure_clean()
        original_branch = self.workspace.current_branch()
        try:
            for base_branch in base_branches or [original_branch]:
                logger.info("🔧 Remediating base branch %s", base_branch)
                self._remediate_base_branch(plan, base_branch, summary)
        finally:
            if self.workspace.current_branch() != original_branch:
                self.workspace.repo.git.checkout(original_branch)
        return summary

    def _remediate_base_branch(self, plan: FixPlan, base_branch: str, summary: RemediationSummary) -> None:
        prepared = [
            self.lifecycle.prepare(
                fix_branch.branch_name(base_branch, self.namer),
                base_branch,
                fix_branch.vulnerabilities,
                fix_branch.aggregate,
            )
            for fix_branch in plan.branches
        ]
        decisions = self.lifecycle.decide_all(prepared, max_workers=self.max_workers)

        for fix_branch, decision in progress_iter(
            zip(plan.branches, decisions), total=len(decisions), desc="Fix branches"
        ):
            pr = decision.pull_request
            if decision.action is PullRequestAction.NOOP:
                summary.outcomes.append(
                    BranchOutcome(pr.branch_name, base_branch, UNCHANGED, fix_branch.package_names, decision.existing)
                )
                continue
            summary.outcomes.append(self._apply_fix_branch(fix_branch, decision, summary))

    def _patch_dependencies(
        self, fix_branch: FixBranch, summary: RemediationSummary
    ) -> tuple[list[VulnerabilityDetails], list[str]]:
        fixed: list[VulnerabilityDetails] = []
        failures: list[str] = []
        for details in fix_branch.vulnerabilities:
            name = details.impacted_dependency_name
            try:
                self.patcher.update_package_to_fixed_version(details)
            except UnsupportedFixError as e:
                logger.info("⏭️ Skipping %s: %s", name, e)
                summary.skipped_dependencies.append((name, str(e)))
                continue
            except PatchFailureError as e:
                logger.error("❌ Failed to patch %s: %s", name, e)
                summary.failed_dependencies.append((name, str(e)))
                failures.append(name)
                continue
            fixed.append(details)
        return fixed, failures

    def _apply_fix_branch(
        self, fix_branch: FixBranch, decision: PullRequestDecision, summary: RemediationSummary
    ) -> BranchOutcome:
        pr = decision.pull_request
        with self.workspace.fix_branch(pr.branch_name, pr.base_branch) as session:
            fixed, failures = self._patch_dependencies(fix_branch, summary)
            if not fixed:
                session.discard()
                status = FAILED if failures else SKIPPED
                return BranchOutcome(
                    pr.branch_name, pr.base_branch, status, fix_branch.package_names,
                    detail="no dependency could be patched",
                )

            if len(fixed) != len(fix_branch.vulnerabilities):
                # Describe only what was actually patched, then re-check the remote PR
                partial = self.lifecycle.prepare(pr.branch_name, pr.base_branch, fixed, fix_branch.aggregate)
                decision = self.lifecycle.decide(partial)
                pr = decision.pull_request
                if decision.action is PullRequestAction.NOOP:
                    session.discard()
                    return BranchOutcome(
                        pr.branch_name, pr.base_branch, UNCHANGED,
                        [v.impacted_dependency_name for v in fixed], decision.existing,
                    )

            commit_message = fix_branch.commit_message(self.namer)
            session.commit_sha = self.workspace.commit_all(commit_message)
            if session.commit_sha is None:
                session.discard()
                return BranchOutcome(
                    pr.branch_name, pr.base_branch, SKIPPED, fix_branch.package_names,
                    detail="patching produced no changes",
                )
            self.workspace.push(pr.branch_name)

        info = self.lifecycle.apply(decision)
        status = CREATED if decision.action is PullRequestAction.CREATE else UPDATED
        logger.info("%s pull request for %s", status.capitalize(), pr.branch_name)
        return BranchOutcome(
            pr.branch_name, pr.base_branch, status, [v.impacted_dependency_name for v in fixed], info
        )
