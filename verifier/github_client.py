"""
Minimal GitHub REST API client.

Covers the calls the verifier needs: listing commits, reading and
updating releases, and creating check runs.
"""

import json
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from .config import DEFAULT_API_URL, GITHUB_API_TIMEOUT_SECONDS, GITHUB_API_VERSION
from .errors import GitHubError


class GitHubClient:
    """
    Thin wrapper around the GitHub REST API.

    Every failed call raises GitHubError; callers decide whether that is fatal.
    """

    def __init__(
        self,
        token: str = "",
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: int = GITHUB_API_TIMEOUT_SECONDS,
    ) -> None:
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def list_commits(self, owner: str, repo: str, per_page: int = 1) -> list[dict[str, Any]]:
        """List the most recent commits on the repository's default branch."""
        result = self._request("GET", f"/repos/{owner}/{repo}/commits", query={"per_page": per_page})
        return result if isinstance(result, list) else []

    def get_release_by_tag(self, owner: str, repo: str, tag: str) -> dict[str, Any]:
        return self._request("GET", f"/repos/{owner}/{repo}/releases/tags/{quote(tag, safe='')}")

    def update_release(self, owner: str, repo: str, release_id: int, body: str) -> dict[str, Any]:
        return self._request("PATCH", f"/repos/{owner}/{repo}/releases/{release_id}", payload={"body": body})

    def create_check_run(self, owner: str, repo: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", f"/repos/{owner}/{repo}/check-runs", payload=payload)

    def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.api_url}{path}"
        if query:
            url = f"{url}?{urlencode(query)}"

        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": "project-verifier",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        data: bytes | None = None
        if payload is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(payload).encode("utf-8")

        request = Request(url, headers=headers, data=data, method=method)
        try:
            with urlopen(request, timeout=self.timeout_seconds) as response:
                body = response.read().decode("utf-8", errors="replace")
        except HTTPError as exc:
            raise GitHubError(self._error_message(exc), status=exc.code) from exc
        except URLError as exc:
            raise GitHubError(f"Could not reach GitHub API: {exc.reason}") from exc

        if not body.strip():
            return {}
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise GitHubError(f"GitHub API returned invalid JSON: {exc}") from exc

    @staticmethod
    def _error_message(exc: HTTPError) -> str:
        message = f"GitHub API returned HTTP {exc.code}."
        try:
            detail = json.loads(exc.read().decode("utf-8", errors="replace") or "{}")
        except (OSError, ValueError):
            return message
        if isinstance(detail, dict) and detail.get("message"):
            message += f" {str(detail['message'])[:220]}"
        return message
