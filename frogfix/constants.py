#!/usr/bin/env python3
"""
Centralized constants for frogfix.

Branch, commit and pull request templates, environment variable names and
per-technology lookup tables live here so that the naming contracts stay in
one place.
"""

# Branch naming
BRANCH_PREFIX = "frogbot"
BRANCH_NAME_TEMPLATE = "frogbot-{IMPACTED_PACKAGE}-{BRANCH_NAME_HASH}"
AGGREGATED_BRANCH_NAME_TEMPLATE = "frogbot-update-{TECHNOLOGY}-dependencies-{BASE_BRANCH}"
BRANCH_HASH_LENGTH = 16
# Characters that git refuses in a ref name
ILLEGAL_BRANCH_CHARACTERS = (":", " ", "~", "^", "?", "*", "[", "\\")

# Commit messages and pull request titles
PULL_REQUEST_TITLE_PREFIX = "[🐸 Frogbot]"
COMMIT_MESSAGE_TEMPLATE = "Upgrade {IMPACTED_PACKAGE} to {FIX_VERSION}"
PULL_REQUEST_TITLE_TEMPLATE = PULL_REQUEST_TITLE_PREFIX + " Update version of {IMPACTED_PACKAGE} to {FIX_VERSION}"
AGGREGATED_TITLE_TEMPLATE = PULL_REQUEST_TITLE_PREFIX + " Update {TECHNOLOGIES} dependencies"
IMPACTED_PACKAGE_PLACEHOLDER = "{IMPACTED_PACKAGE}"
FIX_VERSION_PLACEHOLDER = "{FIX_VERSION}"

# Pull request body
CHECKSUM_COMMENT_TEMPLATE = "[comment]: <> (Checksum: {checksum})"
CHECKSUM_PATTERN = r"\[comment\]: <> \(Checksum: (\w+)\)"
VULNERABLE_DEPENDENCIES_HEADER = "## 📦 Vulnerable Dependencies"
PULL_REQUEST_FOOTER = "Created by frogfix"

# Scan data
DIRECT_DEPENDENCY_PATH_LENGTH = 2
SECURITY_VIOLATION_TYPE = "security"

# Dependencies consumed by the build tool itself; no manifest the user owns
# declares them, so there is nowhere safe to write a new version.
BUILD_TOOLS_DEPENDENCIES = {
    "go": ["github.com/golang/go"],
    "pip": ["pip", "setuptools", "wheel"],
    "pipenv": ["pip", "setuptools", "wheel"],
    "poetry": ["pip", "setuptools", "wheel"],
}

# Component id scheme -> technology, used when a finding carries no technology
COMPONENT_SCHEME_TECHNOLOGIES = {
    "npm": "npm",
    "gav": "maven",
    "go": "go",
    "pypi": "pip",
    "nuget": "nuget",
}

SEVERITY_NUM_VALUES = {
    "Critical": 4,
    "High": 3,
    "Medium": 2,
    "Low": 1,
    "Unknown": 0,
}

# Manifest discovery
SKIPPED_DIRECTORIES = {"node_modules", ".git", "vendor", ".venv", "venv", "target", "build"}

# VCS
DEFAULT_API_ENDPOINT = "https://api.github.com"
DEFAULT_REMOTE_NAME = "origin"
VCS_TIMEOUT_SECONDS = 30
MAX_PR_QUERY_WORKERS = 4

# Logging
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

# Environment Variables
ENV_VARS = {
    "JF_GIT_BASE_BRANCH": None,
    "JF_GIT_AGGREGATE_FIXES": "false",
    "JF_GIT_TOKEN": None,
    "JF_GIT_OWNER": None,
    "JF_GIT_REPO": None,
    "JF_GIT_API_ENDPOINT": DEFAULT_API_ENDPOINT,
    "JF_GIT_REMOTE": DEFAULT_REMOTE_NAME,
    "JF_COMMIT_MESSAGE_TEMPLATE": None,
    "JF_PULL_REQUEST_TITLE_TEMPLATE": None,
    "JF_DRY_RUN": "false",
}

# Status Messages
STATUS_ICONS = {
    "created": "✅",
    "updated": "🔄",
    "unchanged": "⏸️",
    "skipped": "⏭️",
    "failed": "❌",
}
