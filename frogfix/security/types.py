"""
TypedDicts describing the scan-result document consumed by frogfix.

The shape follows the scanner's JSON output: one scan response per scanned
project, each carrying vulnerability and violation findings keyed by
component id.
"""

from __future__ import annotations

from typing import NotRequired, TypedDict


class CveEntry(TypedDict):
    cve: str
    cvss_v3_score: NotRequired[str]
    cvss_v2_score: NotRequired[str]


class ImpactPathNode(TypedDict):
    component_id: str


class ScanComponent(TypedDict):
    fixed_versions: list[str]
    impact_paths: list[list[ImpactPathNode]]


class Finding(TypedDict):
    issue_id: NotRequired[str]
    summary: NotRequired[str]
    severity: str
    technology: NotRequired[str]
    cves: NotRequired[list[CveEntry]]
    components: dict[str, ScanComponent]
    # Present on violations only: "security", "license" or "operational_risk"
    violation_type: NotRequired[str]


class ScanResponse(TypedDict):
    vulnerabilities: NotRequired[list[Finding]]
    violations: NotRequired[list[Finding]]


class ScanResults(TypedDict):
    scans: list[ScanResponse]
