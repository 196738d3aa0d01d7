#!/usr/bin/env python3
"""
Deterministic names for fix branches and their commits.

Branch names are pure functions of their inputs so that a re-run finds the
branch (and pull request) created by an earlier run.
"""

from __future__ import annotations

import hashlib

from frogfix.constants import (
    AGGREGATED_BRANCH_NAME_TEMPLATE,
    AGGREGATED_TITLE_TEMPLATE,
    BRANCH_HASH_LENGTH,
    BRANCH_NAME_TEMPLATE,
    BRANCH_PREFIX,
    COMMIT_MESSAGE_TEMPLATE,
    FIX_VERSION_PLACEHOLDER,
    ILLEGAL_BRANCH_CHARACTERS,
    IMPACTED_PACKAGE_PLACEHOLDER,
)


def sanitize_branch_component(value: str) -> str:
    """Replace characters git does not accept in a ref name with ``_``."""
    for ch in ILLEGAL_BRANCH_CHARACTERS:
        value = value.replace(ch, "_")
    return value


def branch_name_hash(base_branch: str, impacted_package: str, fix_version: str) -> str:
    """Return the fixed-length digest identifying a (base, package, version) fix."""
    digest = hashlib.md5()
    for part in (BRANCH_PREFIX, base_branch, impacted_package, fix_version):
        digest.update(part.encode("utf-8"))
    return digest.hexdigest()[:BRANCH_HASH_LENGTH]


class BranchNamer:
    """Builds fix branch names and commit messages.

    Args:
        commit_message_template: Optional override for single-package commit
            messages; may use ``{IMPACTED_PACKAGE}`` and ``{FIX_VERSION}``.
    """

    def __init__(self, commit_message_template: str | None = None):
        self.commit_message_template = commit_message_template or COMMIT_MESSAGE_TEMPLATE

    @staticmethod
    def fix_branch_name(base_branch: str, impacted_package: str, fix_version: str) -> str:
        package = sanitize_branch_component(impacted_package)
        return BRANCH_NAME_TEMPLATE.format(
            IMPACTED_PACKAGE=package,
            BRANCH_NAME_HASH=branch_name_hash(base_branch, package, fix_version),
        )

    @staticmethod
    def aggregated_branch_name(base_branch: str, technology: str) -> str:
        return AGGREGATED_BRANCH_NAME_TEMPLATE.format(
            TECHNOLOGY=sanitize_branch_component(str(technology)),
            BASE_BRANCH=base_branch,
        )

    def commit_message(self, impacted_package: str, fix_version: str) -> str:
        return self.commit_message_template.replace(
            IMPACTED_PACKAGE_PLACEHOLDER, impacted_package
        ).replace(FIX_VERSION_PLACEHOLDER, fix_version)

    @staticmethod
    def aggregated_commit_message(technology: str) -> str:
        return AGGREGATED_TITLE_TEMPLATE.format(TECHNOLOGIES=str(technology))
