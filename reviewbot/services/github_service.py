"""GitHub REST API client used by the reporting commands."""

import logging
from typing import Any

import httpx

from reviewbot.config import get_settings
from reviewbot.errors import GitHubAuthError, GitHubError

logger = logging.getLogger(__name__)


class GitHubService:
    """Service for GitHub API operations authenticated with a personal token."""

    PER_PAGE = 100

    def __init__(
        self,
        token: str | None = None,
        username: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.token = token if token is not None else settings.github_token
        self.username = username if username is not None else settings.github_username
        self.api_url = settings.github_api_url
        self.user_agent = settings.user_agent
        self.timeout = settings.request_timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": self.user_agent,
            "X-GitHub-Api-Version": "2022-11-28",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Send one API request and return the decoded JSON body.

        Raises:
            GitHubAuthError: on 401
            GitHubError: on any other non-2xx response or a transport failure
        """
        async with httpx.AsyncClient(
            base_url=self.api_url,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.request(method, path, params=params, json=json)
            except httpx.HTTPError as e:
                raise GitHubError(f"GitHub API {method} {path} failed: {e}") from e

        if response.status_code == 401:
            raise GitHubAuthError("GitHub authentication failed: check GITHUB_TOKEN", status_code=401)
        if response.is_error:
            try:
                detail = response.json().get("message", response.text)
            except ValueError:
                detail = response.text
            raise GitHubError(
                f"GitHub API {method} {path} failed ({response.status_code}): {detail}",
                status_code=response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # =========================================================================
    # Authentication
    # =========================================================================

    async def verify_auth(self) -> dict[str, Any]:
        """Check the token and remember the authenticated login.

        Returns:
            Authenticated user data
        """
        if not self.token:
            raise GitHubAuthError("GITHUB_TOKEN not found in environment variables")
        try:
            user = await self._request("GET", "/user")
        except GitHubError as e:
            if e.status_code == 403:
                raise GitHubAuthError(f"GitHub rejected the token: {e}", status_code=403) from e
            raise
        if not self.username:
            self.username = user["login"]
        logger.info(f"Authenticated as {user['login']}")
        return user

    # =========================================================================
    # Repositories and branches
    # =========================================================================

    async def get_repo(self, owner: str, repo: str) -> dict[str, Any]:
        return await self._request("GET", f"/repos/{owner}/{repo}")

    async def list_branches(self, owner: str, repo: str) -> list[dict[str, Any]]:
        return await self._request(
            "GET", f"/repos/{owner}/{repo}/branches", params={"per_page": self.PER_PAGE}
        )

    async def delete_branch(self, owner: str, repo: str, branch: str) -> None:
        await self._request("DELETE", f"/repos/{owner}/{repo}/git/refs/heads/{branch}")

    # =========================================================================
    # Issues
    # =========================================================================

    async def list_issues(
        self, owner: str, repo: str, state: str = "open", creator: str | None = None
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"state": state, "per_page": self.PER_PAGE}
        if creator:
            params["creator"] = creator
        return await self._request("GET", f"/repos/{owner}/{repo}/issues", params=params)

    async def create_issue(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        labels: list[str] | None = None,
        assignees: list[str] | None = None,
    ) -> dict[str, Any]:
        data: dict[str, Any] = {"title": title, "body": body}
        if labels:
            data["labels"] = labels
        if assignees:
            data["assignees"] = assignees
        return await self._request("POST", f"/repos/{owner}/{repo}/issues", json=data)

    async def create_issue_comment(
        self, owner: str, repo: str, issue_number: int, body: str
    ) -> dict[str, Any]:
        return await self._request(
            "POST", f"/repos/{owner}/{repo}/issues/{issue_number}/comments", json={"body": body}
        )

    # =========================================================================
    # Pull requests
    # =========================================================================

    async def list_pulls(
        self, owner: str, repo: str, state: str = "open", head: str | None = None
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"state": state, "per_page": self.PER_PAGE}
        if head:
            params["head"] = head
        return await self._request("GET", f"/repos/{owner}/{repo}/pulls", params=params)

    async def list_pull_files(self, owner: str, repo: str, pr_number: int) -> list[dict[str, Any]]:
        return await self._request(
            "GET",
            f"/repos/{owner}/{repo}/pulls/{pr_number}/files",
            params={"per_page": self.PER_PAGE},
        )

    async def list_pull_reviews(self, owner: str, repo: str, pr_number: int) -> list[dict[str, Any]]:
        return await self._request(
            "GET",
            f"/repos/{owner}/{repo}/pulls/{pr_number}/reviews",
            params={"per_page": self.PER_PAGE},
        )

    async def create_review(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        body: str,
        event: str = "COMMENT",
        comments: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Create a PR review with optional inline comments.

        Args:
            owner: Repository owner
            repo: Repository name
            pr_number: PR number
            body: Review summary body
            event: APPROVE, REQUEST_CHANGES, or COMMENT
            comments: Optional list of inline comments

        Returns:
            Created review data
        """
        data: dict[str, Any] = {"body": body, "event": event}
        if comments:
            data["comments"] = comments
        return await self._request("POST", f"/repos/{owner}/{repo}/pulls/{pr_number}/reviews", json=data)

    async def create_pull(
        self, owner: str, repo: str, title: str, head: str, base: str, body: str
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            json={"title": title, "head": head, "base": base, "body": body},
        )
