#!/usr/bin/env python3
"""
Technology dispatch for manifest patching.

``MANIFEST_EDITORS`` maps every ``Technology`` to the routine that rewrites its
manifests. The table is checked when the module is imported, so a new
technology without an editor fails immediately instead of at fix time.
"""

from __future__ import annotations

import logging
from pathlib import Path

from frogfix.errors import PatchFailureError, UnsupportedFixError
from frogfix.remediation.manifest_editors import (
    ManifestEditor,
    edit_build_gradle,
    edit_dotnet_projects,
    edit_go_mod,
    edit_package_json,
    edit_pipfile,
    edit_poetry_pyproject,
    edit_pom_xml,
    edit_python_requirements,
)
from frogfix.security.models import Technology, VulnerabilityDetails, is_build_tool_dependency

logger = logging.getLogger(__name__)

MANIFEST_EDITORS: dict[Technology, ManifestEditor] = {
    Technology.GO: edit_go_mod,
    Technology.MAVEN: edit_pom_xml,
    Technology.GRADLE: edit_build_gradle,
    Technology.NPM: edit_package_json,
    Technology.YARN: edit_package_json,
    Technology.PNPM: edit_package_json,
    Technology.DOTNET: edit_dotnet_projects,
    Technology.NUGET: edit_dotnet_projects,
    Technology.PIP: edit_python_requirements,
    Technology.PIPENV: edit_pipfile,
    Technology.POETRY: edit_poetry_pyproject,
}

# go.mod lists indirect requirements explicitly; other manifests only hold direct ones
INDIRECT_FIX_TECHNOLOGIES = frozenset({Technology.GO})


def validate_editor_table(editors: dict[Technology, ManifestEditor]) -> None:
    missing = [t.value for t in Technology if t not in editors]
    if missing:
        raise RuntimeError(f"No manifest editor registered for: {', '.join(missing)}")


validate_editor_table(MANIFEST_EDITORS)


class ManifestPatcher:
    """Rewrite dependency declarations under one working directory."""

    def __init__(self, working_dir: str | Path, editors: dict[Technology, ManifestEditor] | None = None):
        self.working_dir = Path(working_dir)
        self.editors = editors if editors is not None else MANIFEST_EDITORS

    def patch(
        self,
        technology: Technology | str | None,
        dependency_name: str,
        target_version: str,
        is_direct_dependency: bool = True,
    ) -> list[Path]:
        """Set ``dependency_name`` to ``target_version`` in the technology's manifests.

        Returns:
            The files that were rewritten.

        Raises:
            UnsupportedFixError: build-tool-only dependency, unknown technology,
                unsupported indirect dependency, or no declaration found.
            PatchFailureError: a manifest could not be read or written.
        """
        tech = technology if isinstance(technology, Technology) else Technology.parse(technology)
        if tech is None or tech not in self.editors:
            raise UnsupportedFixError(
                dependency_name, target_version, UnsupportedFixError.UNSUPPORTED_TECHNOLOGY
            )
        if is_build_tool_dependency(tech, dependency_name):
            raise UnsupportedFixError(
                dependency_name, target_version, UnsupportedFixError.BUILD_TOOL_DEPENDENCY
            )
        if not is_direct_dependency and tech not in INDIRECT_FIX_TECHNOLOGIES:
            raise UnsupportedFixError(
                dependency_name, target_version, UnsupportedFixError.INDIRECT_DEPENDENCY
            )

        try:
            changed = self.editors[tech](self.working_dir, dependency_name, target_version)
        except PatchFailureError:
            raise
        except OSError as e:
            raise PatchFailureError(f"Failed to patch {dependency_name}: {e}") from e

        if not changed:
            raise UnsupportedFixError(dependency_name, target_version, UnsupportedFixError.NOT_DECLARED)
        logger.info(
            "Upgraded %s to %s in %s",
            dependency_name,
            target_version,
            ", ".join(str(p.relative_to(self.working_dir)) for p in changed),
        )
        return changed

    def update_package_to_fixed_version(self, details: VulnerabilityDetails) -> list[Path]:
        return self.patch(
            details.technology,
            details.impacted_dependency_name,
            details.suggested_fixed_version,
            details.is_direct_dependency,
        )


def patch_manifest(
    technology: Technology | str | None,
    dependency_name: str,
    target_version: str,
    working_dir: str | Path,
    is_direct_dependency: bool = True,
) -> list[Path]:
    return ManifestPatcher(working_dir).patch(
        technology, dependency_name, target_version, is_direct_dependency
    )
