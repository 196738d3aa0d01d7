from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from frogfix.constants import DEFAULT_API_ENDPOINT, VCS_TIMEOUT_SECONDS
from frogfix.errors import VcsError

logger = logging.getLogger(__name__)


@dataclass
class PullRequestInfo:
    id: int
    source_branch: str
    target_branch: str
    title: str = ""
    body: str = ""
    url: str = ""


class VcsClient(Protocol):
    def list_open_pull_requests(self, source_branch: str, target_branch: str) -> list[PullRequestInfo]: ...

    def create_pull_request(
        self, source_branch: str, target_branch: str, title: str, body: str
    ) -> PullRequestInfo: ...

    def update_pull_request(self, pull_request_id: int, title: str, body: str) -> PullRequestInfo: ...


class GitHubClient:
    """Minimal GitHub REST v3 client for remediation pull requests."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str | None = None,
        api_endpoint: str = DEFAULT_API_ENDPOINT,
        session: requests.Session | None = None,
        timeout_s: int = VCS_TIMEOUT_SECONDS,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.base_url = f"{api_endpoint.rstrip('/')}/repos/{owner}/{repo}"
        self.timeout_s = timeout_s
        self.session = session or requests.Session()
        self.session.headers.update(
            {"Accept": "application/vnd.github+json", "User-Agent": "frogfix/1.0"}
        )
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout_s, **kwargs)
            resp.raise_for_status()
            # requests.JSONDecodeError is a RequestException
            return resp.json()
        except requests.RequestException as e:
            raise VcsError(f"{method} {url} failed: {e}") from e

    @staticmethod
    def _to_pull_request(data: dict[str, Any]) -> PullRequestInfo:
        return PullRequestInfo(
            id=int(data["number"]),
            source_branch=str((data.get("head") or {}).get("ref", "")),
            target_branch=str((data.get("base") or {}).get("ref", "")),
            title=str(data.get("title") or ""),
            body=str(data.get("body") or ""),
            url=str(data.get("html_url") or ""),
        )

    def list_open_pull_requests(self, source_branch: str, target_branch: str) -> list[PullRequestInfo]:
        data = self._request(
            "GET",
            "/pulls",
            params={"state": "open", "head": f"{self.owner}:{source_branch}", "base": target_branch},
        )
        pull_requests = [self._to_pull_request(item) for item in data or []]
        # The head filter is ignored by some GitHub-compatible servers
        return [
            pr
            for pr in pull_requests
            if pr.source_branch == source_branch and pr.target_branch == target_branch
        ]

    def create_pull_request(
        self, source_branch: str, target_branch: str, title: str, body: str
    ) -> PullRequestInfo:
        data = self._request(
            "POST",
            "/pulls",
            json={"title": title, "head": source_branch, "base": target_branch, "body": body},
        )
        pr = self._to_pull_request(data)
        logger.info("Opened pull request #%d %s", pr.id, pr.url)
        return pr

    def update_pull_request(self, pull_request_id: int, title: str, body: str) -> PullRequestInfo:
        data = self._request("PATCH", f"/pulls/{pull_request_id}", json={"title": title, "body": body})
        return self._to_pull_request(data)


class InMemoryVcsClient:
    """VCS client that keeps pull requests in memory; used for dry runs and tests."""

    def __init__(self, pull_requests: list[PullRequestInfo] | None = None) -> None:
        self.pull_requests: list[PullRequestInfo] = list(pull_requests or [])
        self.created: list[PullRequestInfo] = []
        self.updated: list[PullRequestInfo] = []

    def list_open_pull_requests(self, source_branch: str, target_branch: str) -> list[PullRequestInfo]:
        return [
            pr
            for pr in self.pull_requests
            if pr.source_branch == source_branch and pr.target_branch == target_branch
        ]

    def create_pull_request(
        self, source_branch: str, target_branch: str, title: str, body: str
    ) -> PullRequestInfo:
        next_id = max((pr.id for pr in self.pull_requests), default=0) + 1
        pr = PullRequestInfo(next_id, source_branch, target_branch, title, body)
        self.pull_requests.append(pr)
        self.created.append(pr)
        logger.info("[dry-run] Would open pull request %r", title)
        return pr

    def update_pull_request(self, pull_request_id: int, title: str, body: str) -> PullRequestInfo:
        for pr in self.pull_requests:
            if pr.id == pull_request_id:
                pr.title = title
                pr.body = body
                self.updated.append(pr)
                logger.info("[dry-run] Would update pull request #%d", pull_request_id)
                return pr
        raise VcsError(f"Pull request #{pull_request_id} not found")
