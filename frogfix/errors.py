"""Exceptions raised across frogfix.

Per-dependency errors (``UnsupportedFixError``, ``PatchFailureError``) are
caught by the remediation pass and reported; the others abort the run.
"""

from __future__ import annotations


class FrogfixError(Exception):
    pass


class UnsupportedFixError(FrogfixError):
    """No safe place exists to write the new version of a dependency."""

    BUILD_TOOL_DEPENDENCY = "build_tool_dependency"
    INDIRECT_DEPENDENCY = "indirect_dependency"
    UNSUPPORTED_TECHNOLOGY = "unsupported_technology"
    NOT_DECLARED = "not_declared"

    _MESSAGES = {
        BUILD_TOOL_DEPENDENCY: "it is a build tool dependency",
        INDIRECT_DEPENDENCY: "fixing indirect dependencies is not supported for this technology",
        UNSUPPORTED_TECHNOLOGY: "its technology is not supported",
        NOT_DECLARED: "it is not declared in any package descriptor",
    }

    def __init__(self, package_name: str, fixed_version: str, reason: str):
        self.package_name = package_name
        self.fixed_version = fixed_version
        self.reason = reason
        detail = self._MESSAGES.get(reason, reason)
        super().__init__(f"Cannot upgrade {package_name} to {fixed_version}: {detail}")


class PatchFailureError(FrogfixError):
    """A manifest file could not be read, parsed or rewritten."""


class MalformedScanDataError(FrogfixError, ValueError):
    """The scan-result document cannot be read at all."""


class VcsError(FrogfixError):
    """The VCS provider rejected or failed a request."""


class DirtyWorkingTreeError(FrogfixError):
    """The checkout has uncommitted changes and cannot host fix branches."""
