"""Minimal async GitHub REST client for check runs and PR comments."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from recipe_runner.models.check_run import (
    MAX_ANNOTATIONS,
    CheckRunConclusion,
    CheckRunOutput,
    CheckRunStatus,
)

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


class GitHubAPIError(Exception):
    """A GitHub API request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GitHubClient:
    """Talks to the REST API with a caller-supplied installation or user token.

    Pass ``http_client`` to reuse a connection pool (or a mock transport in
    tests); otherwise a short-lived client is opened per request.
    """

    def __init__(
        self,
        token: str,
        api_url: str = GITHUB_API_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.http_client = http_client
        self.timeout = timeout

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    async def _request(self, method: str, path: str, payload: dict) -> dict[str, Any]:
        url = f"{self.api_url}{path}"
        logger.debug("GitHub %s %s", method, path)
        try:
            if self.http_client is not None:
                response = await self.http_client.request(
                    method, url, headers=self._headers, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(
                        method, url, headers=self._headers, json=payload)
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            raise GitHubAPIError(
                f"{method} {path} returned {response.status_code}: {response.text[:300]}",
                status_code=response.status_code,
            )
        return response.json() if response.content else {}

    async def create_check_run(
        self,
        owner: str,
        repo: str,
        name: str,
        head_sha: str,
        status: CheckRunStatus = CheckRunStatus.IN_PROGRESS,
        output: Optional[CheckRunOutput] = None,
    ) -> int:
        payload: dict[str, Any] = {"name": name, "head_sha": head_sha, "status": status.value}
        if output is not None:
            payload["output"] = _output_payload(output)
        data = await self._request("POST", f"/repos/{owner}/{repo}/check-runs", payload)
        return int(data["id"])

    async def update_check_run(
        self,
        owner: str,
        repo: str,
        check_run_id: int,
        status: CheckRunStatus,
        conclusion: Optional[CheckRunConclusion] = None,
        output: Optional[CheckRunOutput] = None,
    ) -> None:
        payload: dict[str, Any] = {"status": status.value}
        if conclusion is not None:
            payload["conclusion"] = conclusion.value
        if output is not None:
            payload["output"] = _output_payload(output)
        await self._request("PATCH", f"/repos/{owner}/{repo}/check-runs/{check_run_id}", payload)

    async def create_issue_comment(self, owner: str, repo: str, number: int, body: str) -> int:
        data = await self._request(
            "POST", f"/repos/{owner}/{repo}/issues/{number}/comments", {"body": body})
        return int(data.get("id", 0))


def _output_payload(output: CheckRunOutput) -> dict[str, Any]:
    payload = output.model_dump(exclude={"annotations"})
    if output.annotations:
        payload["annotations"] = [a.model_dump() for a in output.annotations[:MAX_ANNOTATIONS]]
    return payload
