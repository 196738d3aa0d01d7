from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from frogfix.constants import DEFAULT_API_ENDPOINT, DEFAULT_REMOTE_NAME

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RemediationConfig:
    """Settings for one remediation pass.

    ``base_branches`` empty means "the branch currently checked out".
    """

    base_branches: tuple[str, ...] = field(default_factory=tuple)
    aggregate_fixes: bool = False
    token: str | None = None
    owner: str | None = None
    repo: str | None = None
    api_endpoint: str = DEFAULT_API_ENDPOINT
    remote_name: str = DEFAULT_REMOTE_NAME
    commit_message_template: str | None = None
    pull_request_title_template: str | None = None
    dry_run: bool = False


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_str(name: str) -> str | None:
    # Treat empty strings as absent so CI can blank out secrets
    value = os.getenv(name)
    return value.strip() if value and value.strip() else None


def parse_branch_list(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(b.strip() for b in raw.split(",") if b.strip())


def get_remediation_config() -> RemediationConfig:
    """Return settings after loading environment variables.

    A ``.env`` file is loaded first; real environment variables win over it.
    """
    from dotenv import find_dotenv, load_dotenv

    env_path = find_dotenv(usecwd=True)
    load_dotenv(dotenv_path=env_path or None, override=False)

    config = RemediationConfig(
        base_branches=parse_branch_list(_env_str("JF_GIT_BASE_BRANCH")),
        aggregate_fixes=_env_flag("JF_GIT_AGGREGATE_FIXES"),
        token=_env_str("JF_GIT_TOKEN"),
        owner=_env_str("JF_GIT_OWNER"),
        repo=_env_str("JF_GIT_REPO"),
        api_endpoint=_env_str("JF_GIT_API_ENDPOINT") or DEFAULT_API_ENDPOINT,
        remote_name=_env_str("JF_GIT_REMOTE") or DEFAULT_REMOTE_NAME,
        commit_message_template=_env_str("JF_COMMIT_MESSAGE_TEMPLATE"),
        pull_request_title_template=_env_str("JF_PULL_REQUEST_TITLE_TEMPLATE"),
        dry_run=_env_flag("JF_DRY_RUN"),
    )
    if not config.base_branches:
        logger.info("[config] JF_GIT_BASE_BRANCH not set; using the checked-out branch")
    return config
