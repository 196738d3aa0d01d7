#!/usr/bin/env python3
"""
Domain model for remediation: technologies, severities and the per-dependency
vulnerability record built from a scan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from frogfix.constants import BUILD_TOOLS_DEPENDENCIES, SEVERITY_NUM_VALUES


class Technology(Enum):
    """Package ecosystems frogfix knows how to patch."""

    GO = "go"
    MAVEN = "maven"
    GRADLE = "gradle"
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    DOTNET = "dotnet"
    NUGET = "nuget"
    PIP = "pip"
    PIPENV = "pipenv"
    POETRY = "poetry"

    @classmethod
    def parse(cls, raw: str | None) -> Technology | None:
        """Return the technology for a scanner tag, or ``None`` if unknown.

        Tags are matched case-insensitively; ``yarn1``/``yarn2`` map to YARN.
        """
        if not raw:
            return None
        tag = raw.strip().lower()
        if tag in {"yarn1", "yarn2"}:
            tag = "yarn"
        try:
            return cls(tag)
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value


def normalize_severity(raw: str | None) -> str:
    """Map a scanner severity string onto one of the known severity names."""
    if not raw:
        return "Unknown"
    candidate = raw.strip().capitalize()
    return candidate if candidate in SEVERITY_NUM_VALUES else "Unknown"


def severity_num_value(severity: str) -> int:
    return SEVERITY_NUM_VALUES.get(normalize_severity(severity), 0)


def is_build_tool_dependency(technology: Technology | None, dependency_name: str) -> bool:
    """Return ``True`` when the dependency is consumed by the build tool itself."""
    if technology is None:
        return False
    return dependency_name.lower() in {
        name.lower() for name in BUILD_TOOLS_DEPENDENCIES.get(technology.value, [])
    }


@dataclass
class VulnerabilityDetails:
    """Everything known about one vulnerable dependency in a scan.

    One record exists per impacted dependency name; findings referencing the
    same dependency are merged into it.
    """

    impacted_dependency_name: str
    impacted_dependency_version: str
    technology: Technology | None = None
    fixed_versions: list[str] = field(default_factory=list)
    suggested_fixed_version: str = ""
    is_direct_dependency: bool = False
    cves: list[str] = field(default_factory=list)
    severity: str = "Unknown"
    severity_num_value: int = 0
    summary: str = ""
    issue_ids: list[str] = field(default_factory=list)
    components: list[str] = field(default_factory=list)

    @property
    def is_fixable(self) -> bool:
        return bool(self.suggested_fixed_version)

    @property
    def is_build_tool_dependency(self) -> bool:
        return is_build_tool_dependency(self.technology, self.impacted_dependency_name)

    def add_cves(self, cves: list[str]) -> None:
        self.cves = sorted(set(self.cves) | {c for c in cves if c})

    def add_fixed_versions(self, versions: list[str]) -> None:
        for version in versions:
            if version and version not in self.fixed_versions:
                self.fixed_versions.append(version)

    def raise_severity(self, severity: str) -> None:
        """Keep the highest severity seen for this dependency."""
        value = severity_num_value(severity)
        if value > self.severity_num_value:
            self.severity = normalize_severity(severity)
            self.severity_num_value = value
