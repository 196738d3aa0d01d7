#!/usr/bin/env python3
"""
Group fixable vulnerabilities into fix branches.

Aggregate mode yields one branch per technology; otherwise every fixable
package gets its own branch. The grouping mode is passed in explicitly.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from frogfix.remediation.branches import BranchNamer
from frogfix.security.models import Technology, VulnerabilityDetails

logger = logging.getLogger(__name__)

NO_FIX_VERSION = "no fix version"
BUILD_TOOL_DEPENDENCY = "build tool dependency"
UNKNOWN_TECHNOLOGY = "unknown technology"


@dataclass
class FixBranch:
    """Vulnerabilities fixed together on one branch."""

    technology: Technology
    vulnerabilities: list[VulnerabilityDetails]
    aggregate: bool = False

    def branch_name(self, base_branch: str, namer: BranchNamer) -> str:
        if self.aggregate:
            return namer.aggregated_branch_name(base_branch, self.technology.value)
        details = self.vulnerabilities[0]
        return namer.fix_branch_name(
            base_branch, details.impacted_dependency_name, details.suggested_fixed_version
        )

    def commit_message(self, namer: BranchNamer) -> str:
        if self.aggregate:
            return namer.aggregated_commit_message(self.technology.value)
        details = self.vulnerabilities[0]
        return namer.commit_message(details.impacted_dependency_name, details.suggested_fixed_version)

    @property
    def package_names(self) -> list[str]:
        return [v.impacted_dependency_name for v in self.vulnerabilities]


@dataclass
class FixPlan:
    aggregate: bool
    branches: list[FixBranch] = field(default_factory=list)
    # (details, reason) for dependencies left out of every branch
    not_fixable: list[tuple[VulnerabilityDetails, str]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.branches


def _exclusion_reason(details: VulnerabilityDetails) -> str | None:
    if not details.is_fixable:
        return NO_FIX_VERSION
    if details.technology is None:
        return UNKNOWN_TECHNOLOGY
    if details.is_build_tool_dependency:
        return BUILD_TOOL_DEPENDENCY
    return None


def build_fix_plan(
    vulnerabilities_map: Mapping[str, VulnerabilityDetails], aggregate_fixes: bool
) -> FixPlan:
    """Return the fix plan for a vulnerability map.

    Branch order is deterministic: packages sorted by name, technologies by tag.
    """
    plan = FixPlan(aggregate=aggregate_fixes)
    by_technology: dict[Technology, list[VulnerabilityDetails]] = {}
    for name in sorted(vulnerabilities_map):
        details = vulnerabilities_map[name]
        reason = _exclusion_reason(details)
        if reason is not None:
            plan.not_fixable.append((details, reason))
            continue
        assert details.technology is not None
        by_technology.setdefault(details.technology, []).append(details)

    for technology in sorted(by_technology, key=lambda t: t.value):
        vulnerabilities = by_technology[technology]
        if aggregate_fixes:
            plan.branches.append(FixBranch(technology, vulnerabilities, aggregate=True))
        else:
            plan.branches.extend(FixBranch(technology, [details]) for details in vulnerabilities)

    logger.info(
        "📋 Fix plan: %d branch(es), %d dependencies left out",
        len(plan.branches),
        len(plan.not_fixable),
    )
    return plan
