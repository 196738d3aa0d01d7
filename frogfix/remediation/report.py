from __future__ import annotations

from frogfix.constants import STATUS_ICONS
from frogfix.remediation.scan_repository import RemediationSummary


def render_summary(summary: RemediationSummary) -> list[str]:
    if not summary.outcomes and not summary.skipped_dependencies:
        return ["🎉 No fixable vulnerabilities found"]

    lines = ["🐸 **REMEDIATION SUMMARY**", "=" * 80]
    for outcome in summary.outcomes:
        icon = STATUS_ICONS.get(outcome.status, "•")
        line = f"{icon} {outcome.status:<9} {outcome.branch_name} -> {outcome.base_branch}"
        if outcome.pull_request is not None and outcome.pull_request.url:
            line += f" ({outcome.pull_request.url})"
        lines.append(line)
        if outcome.packages:
            lines.append(f"   Packages: {', '.join(outcome.packages)}")
        if outcome.detail:
            lines.append(f"   {outcome.detail}")

    if summary.skipped_dependencies:
        lines.append("")
        lines.append(f"⏭️ Not fixed ({len(summary.skipped_dependencies)}):")
        lines.extend(f"   • {name}: {reason}" for name, reason in summary.skipped_dependencies)
    if summary.failed_dependencies:
        lines.append("")
        lines.append(f"❌ Patch failures ({len(summary.failed_dependencies)}):")
        lines.extend(f"   • {name}: {reason}" for name, reason in summary.failed_dependencies)
    return lines


def print_summary(summary: RemediationSummary) -> None:
    for line in render_summary(summary):
        print(line)
