#!/usr/bin/env python3
"""
Pull request rendering and lifecycle.

A remediation PR body ends with an invisible markdown comment carrying a
checksum of the rendered vulnerability content:

    [comment]: <> (Checksum: <md5 hex>)

On a re-run the checksum is read back from the open PR. Equal checksums mean
the vulnerability set is unchanged and nothing is touched; a different or
missing checksum means the branch and the PR are rewritten.
"""

from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum

from frogfix.constants import (
    AGGREGATED_TITLE_TEMPLATE,
    CHECKSUM_COMMENT_TEMPLATE,
    CHECKSUM_PATTERN,
    FIX_VERSION_PLACEHOLDER,
    IMPACTED_PACKAGE_PLACEHOLDER,
    MAX_PR_QUERY_WORKERS,
    PULL_REQUEST_FOOTER,
    PULL_REQUEST_TITLE_TEMPLATE,
    VULNERABLE_DEPENDENCIES_HEADER,
)
from frogfix.remediation.vcs import PullRequestInfo, VcsClient
from frogfix.security.models import VulnerabilityDetails

logger = logging.getLogger(__name__)

_CHECKSUM_RE = re.compile(CHECKSUM_PATTERN, re.I)


class PullRequestAction(Enum):
    NOOP = "no-op"
    CREATE = "create"
    UPDATE = "update"


@dataclass
class RemediationPullRequest:
    branch_name: str
    base_branch: str
    title: str
    body: str
    checksum: str


@dataclass
class PullRequestDecision:
    action: PullRequestAction
    pull_request: RemediationPullRequest
    existing: PullRequestInfo | None = None


def _sorted_rows(vulnerabilities: Iterable[VulnerabilityDetails]) -> list[VulnerabilityDetails]:
    return sorted(
        vulnerabilities,
        key=lambda v: (-v.severity_num_value, v.impacted_dependency_name, v.impacted_dependency_version),
    )


def render_vulnerability_rows(vulnerabilities: Iterable[VulnerabilityDetails]) -> str:
    """Render the markdown table describing the fixed vulnerabilities."""
    lines = [
        "| SEVERITY | DIRECT DEPENDENCY | IMPACTED DEPENDENCY | FIX VERSION | CVES |",
        "| :---: | :---: | :---: | :---: | :---: |",
    ]
    for v in _sorted_rows(vulnerabilities):
        impacted = v.impacted_dependency_name
        if v.impacted_dependency_version:
            impacted = f"{impacted}:{v.impacted_dependency_version}"
        lines.append(
            f"| {v.severity} | {'✅' if v.is_direct_dependency else '➖'} | {impacted} "
            f"| {v.suggested_fixed_version} | {', '.join(v.cves) or '-'} |"
        )
    return "\n".join(lines)


def render_pull_request_body(vulnerabilities: Iterable[VulnerabilityDetails]) -> str:
    """Return the PR body without the checksum comment."""
    return (
        f"{VULNERABLE_DEPENDENCIES_HEADER}\n\n"
        "### ✍️ Summary\n\n"
        f"{render_vulnerability_rows(vulnerabilities)}\n\n"
        "---\n"
        f"{PULL_REQUEST_FOOTER}"
    )


def compute_checksum(content: str) -> str:
    """Change-detection digest for rendered PR content (not a security control)."""
    return hashlib.md5(content.encode("utf-8")).hexdigest()


def checksum_comment(checksum: str) -> str:
    return CHECKSUM_COMMENT_TEMPLATE.format(checksum=checksum)


def extract_checksum(body: str | None) -> str:
    """Return the checksum embedded in a PR body, or ``""`` when absent."""
    if not body:
        return ""
    match = _CHECKSUM_RE.search(body)
    return match.group(1) if match else ""


def pull_request_title(
    vulnerabilities: Sequence[VulnerabilityDetails],
    aggregate: bool,
    title_template: str | None = None,
) -> str:
    if aggregate:
        technologies = sorted({v.technology.value for v in vulnerabilities if v.technology is not None})
        title = AGGREGATED_TITLE_TEMPLATE.format(TECHNOLOGIES=", ".join(technologies))
        return " ".join(title.split())
    details = vulnerabilities[0]
    template = title_template or PULL_REQUEST_TITLE_TEMPLATE
    return template.replace(IMPACTED_PACKAGE_PLACEHOLDER, details.impacted_dependency_name).replace(
        FIX_VERSION_PLACEHOLDER, details.suggested_fixed_version
    )


class PullRequestLifecycleManager:
    """Decides whether a fix branch's pull request is created, updated or left alone.

    Args:
        vcs_client: Provider client used to list, open and edit pull requests.
        title_template: Optional single-package title override using
            ``{IMPACTED_PACKAGE}`` and ``{FIX_VERSION}``.
    """

    def __init__(self, vcs_client: VcsClient, title_template: str | None = None):
        self.vcs_client = vcs_client
        self.title_template = title_template

    def prepare(
        self,
        branch_name: str,
        base_branch: str,
        vulnerabilities: Sequence[VulnerabilityDetails],
        aggregate: bool,
    ) -> RemediationPullRequest:
        content = render_pull_request_body(vulnerabilities)
        checksum = compute_checksum(content)
        body = f"{content}\n\n{checksum_comment(checksum)}\n"
        return RemediationPullRequest(
            branch_name=branch_name,
            base_branch=base_branch,
            title=pull_request_title(vulnerabilities, aggregate, self.title_template),
            body=body,
            checksum=checksum,
        )

    def decide(self, pull_request: RemediationPullRequest) -> PullRequestDecision:
        existing = self.vcs_client.list_open_pull_requests(
            pull_request.branch_name, pull_request.base_branch
        )
        if not existing:
            return PullRequestDecision(PullRequestAction.CREATE, pull_request)

        current = existing[0]
        remote_checksum = extract_checksum(current.body)
        if remote_checksum and remote_checksum == pull_request.checksum:
            logger.info(
                "Pull request #%d for %s is up to date; nothing to do",
                current.id,
                pull_request.branch_name,
            )
            return PullRequestDecision(PullRequestAction.NOOP, pull_request, current)
        logger.info(
            "Pull request #%d for %s has changed content; it will be updated",
            current.id,
            pull_request.branch_name,
        )
        return PullRequestDecision(PullRequestAction.UPDATE, pull_request, current)

    def decide_all(
        self,
        pull_requests: Sequence[RemediationPullRequest],
        max_workers: int = MAX_PR_QUERY_WORKERS,
    ) -> list[PullRequestDecision]:
        """Query the provider for several branches concurrently, keeping input order."""
        if not pull_requests:
            return []
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(pull_requests)))) as executor:
            futures = [executor.submit(self.decide, pr) for pr in pull_requests]
            return [future.result() for future in futures]

    def apply(self, decision: PullRequestDecision) -> PullRequestInfo | None:
        pr = decision.pull_request
        if decision.action is PullRequestAction.CREATE:
            return self.vcs_client.create_pull_request(pr.branch_name, pr.base_branch, pr.title, pr.body)
        if decision.action is PullRequestAction.UPDATE:
            assert decision.existing is not None
            return self.vcs_client.update_pull_request(decision.existing.id, pr.title, pr.body)
        return None
