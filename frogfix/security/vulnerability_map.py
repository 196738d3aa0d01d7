#!/usr/bin/env python3
"""
Build the per-dependency vulnerability map from raw scan results.

Each finding (vulnerability or security violation) lists the components it
affects. Every component is reduced to a dependency name, installed version
and suggested fix, then merged into a single ``VulnerabilityDetails`` per
dependency name. Entries that cannot be interpreted are skipped with a
warning rather than failing the whole build.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from frogfix.constants import (
    COMPONENT_SCHEME_TECHNOLOGIES,
    DIRECT_DEPENDENCY_PATH_LENGTH,
    SECURITY_VIOLATION_TYPE,
)
from frogfix.errors import MalformedScanDataError
from frogfix.security.models import Technology, VulnerabilityDetails
from frogfix.security.types import ScanResults
from frogfix.security.versions import (
    get_minimal_fix_version,
    min_fix_version,
    parse_version_change_string,
)

logger = logging.getLogger(__name__)


def load_scan_results(path: str | Path) -> ScanResults:
    """Read a scan-result JSON document.

    Accepts ``{"scans": [...]}``, a bare list of scan responses, or a single
    scan response with ``vulnerabilities``/``violations`` keys.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise MalformedScanDataError(f"Cannot read scan results from {path}: {e}") from e
    return normalize_scan_results(data)


def normalize_scan_results(data: Any) -> ScanResults:
    if isinstance(data, list):
        scans = data
    elif isinstance(data, Mapping) and isinstance(data.get("scans"), list):
        scans = data["scans"]
    elif isinstance(data, Mapping) and ("vulnerabilities" in data or "violations" in data):
        scans = [data]
    else:
        raise MalformedScanDataError("Scan results must contain a list of scan responses")
    return {"scans": [s for s in scans if isinstance(s, Mapping)]}  # type: ignore[typeddict-item]


def parse_component_id(component_id: str) -> tuple[str, str, str] | None:
    """Split ``<scheme>://<name>:<version>`` into ``(scheme, name, version)``.

    The scheme and version are optional: ``"vuln1"`` yields ``("", "vuln1", "")``.
    Maven ids keep ``group:artifact`` as the name.
    """
    if not component_id or not isinstance(component_id, str):
        return None
    scheme, sep, rest = component_id.partition("://")
    if not sep:
        scheme, rest = "", component_id
    if not rest:
        return None
    name, version = rest, ""
    if ":" in rest:
        name, version = rest.rsplit(":", 1)
    if not name:
        return None
    return scheme.lower(), name, version


def is_direct_dependency(component_id: str, impact_paths: Any) -> bool | None:
    """Return whether the shortest impact path is root -> component.

    Returns ``None`` when the impact paths are missing or do not reference
    the component, which callers treat as malformed data.
    """
    if not isinstance(impact_paths, list) or not impact_paths:
        return None
    lengths: list[int] = []
    for path in impact_paths:
        if not isinstance(path, list) or not path:
            return None
        ids = [node.get("component_id") if isinstance(node, Mapping) else None for node in path]
        if not all(ids):
            return None
        if ids[-1] != component_id:
            return None
        lengths.append(len(ids))
    return min(lengths) == DIRECT_DEPENDENCY_PATH_LENGTH


def _finding_technology(finding: Mapping[str, Any], scheme: str) -> Technology | None:
    technology = Technology.parse(finding.get("technology"))
    if technology is None:
        technology = Technology.parse(COMPONENT_SCHEME_TECHNOLOGIES.get(scheme))
    return technology


def _finding_cves(finding: Mapping[str, Any]) -> list[str]:
    cves: list[str] = []
    for entry in finding.get("cves") or []:
        if isinstance(entry, Mapping) and entry.get("cve"):
            cves.append(str(entry["cve"]))
    return cves


def add_finding_to_map(
    vulnerabilities_map: dict[str, VulnerabilityDetails], finding: Mapping[str, Any]
) -> None:
    """Merge every component of one finding into ``vulnerabilities_map``."""
    components = finding.get("components")
    if not isinstance(components, Mapping):
        logger.warning("Skipping finding %s without components", finding.get("issue_id", "?"))
        return

    cves = _finding_cves(finding)
    severity = str(finding.get("severity") or "Unknown")
    for component_id, component in components.items():
        parsed = parse_component_id(component_id)
        if parsed is None or not isinstance(component, Mapping):
            logger.warning("Skipping malformed component entry %r", component_id)
            continue
        direct = is_direct_dependency(component_id, component.get("impact_paths"))
        if direct is None:
            logger.warning("Skipping component %s with missing or broken impact paths", component_id)
            continue

        scheme, name, version = parsed
        fixed_versions = [
            v
            for v in (parse_version_change_string(str(raw)) for raw in component.get("fixed_versions") or [])
            if v
        ]
        suggested = get_minimal_fix_version(version, fixed_versions) if fixed_versions else ""

        details = vulnerabilities_map.get(name)
        if details is None:
            details = VulnerabilityDetails(
                impacted_dependency_name=name,
                impacted_dependency_version=version,
                technology=_finding_technology(finding, scheme),
                suggested_fixed_version=suggested,
                summary=str(finding.get("summary") or ""),
            )
            vulnerabilities_map[name] = details
        else:
            details.suggested_fixed_version = min_fix_version(
                details.suggested_fixed_version, suggested
            )
            if details.technology is None:
                details.technology = _finding_technology(finding, scheme)
            if not details.summary:
                details.summary = str(finding.get("summary") or "")

        details.is_direct_dependency = details.is_direct_dependency or direct
        details.add_fixed_versions(fixed_versions)
        details.add_cves(cves)
        details.raise_severity(severity)
        issue_id = finding.get("issue_id")
        if issue_id and issue_id not in details.issue_ids:
            details.issue_ids.append(str(issue_id))
        if component_id not in details.components:
            details.components.append(component_id)


def create_vulnerabilities_map(scan_results: ScanResults | Mapping[str, Any]) -> dict[str, VulnerabilityDetails]:
    """Return dependency name -> ``VulnerabilityDetails`` for a whole scan.

    Vulnerabilities and security violations contribute alike; license and
    operational-risk violations carry no fix and are ignored. Dependencies
    without a resolvable fix stay in the map with an empty suggestion.
    """
    vulnerabilities_map: dict[str, VulnerabilityDetails] = {}
    for scan in scan_results.get("scans", []):
        for finding in scan.get("vulnerabilities") or []:
            if isinstance(finding, Mapping):
                add_finding_to_map(vulnerabilities_map, finding)
        for violation in scan.get("violations") or []:
            if not isinstance(violation, Mapping):
                continue
            violation_type = str(violation.get("violation_type") or SECURITY_VIOLATION_TYPE)
            if violation_type.lower() != SECURITY_VIOLATION_TYPE:
                logger.debug("Ignoring %s violation %s", violation_type, violation.get("issue_id", "?"))
                continue
            add_finding_to_map(vulnerabilities_map, violation)

    fixable = sum(1 for v in vulnerabilities_map.values() if v.is_fixable)
    logger.info(
        "🔍 Found %d vulnerable dependencies (%d with a fix version)",
        len(vulnerabilities_map),
        fixable,
    )
    return vulnerabilities_map
