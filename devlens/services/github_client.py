import logging
from typing import Any, Dict, List, Optional

import httpx

from ..context import ExternalClientContext
from ..errors import NotFoundError, RateLimitedError, TransientNetworkError
from ..utils import clean_identifier

logger = logging.getLogger(__name__)

RawExternalData = Dict[str, Any]  # {"user": {...}, "repos": [...]}


class GitHubClient:
    """Code-hosting API client.

    Every request goes through the context's rate limiter (circuit breaker) and
    feeds the quota headers back into it. `fetch` is served from the raw-data
    cache when possible, in which case neither the network nor the counters are
    touched.
    """

    def __init__(self, context: ExternalClientContext):
        self.context = context
        self.settings = context.settings
        self.limiter = context.github_limiter

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        # Optional: use GITHUB_TOKEN to increase rate limit
        if self.settings.github_token:
            headers["Authorization"] = f"Bearer {self.settings.github_token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.github_api_url,
            headers=self._headers(),
            timeout=self.settings.github_timeout,
            transport=self.context.transport,
        )

    def _rate_limited(self, resp: httpx.Response) -> RateLimitedError:
        retry_after: Optional[float] = None
        if resp.headers.get("retry-after"):
            try:
                retry_after = float(resp.headers["retry-after"])
            except ValueError:
                retry_after = None
        if retry_after is None:
            retry_after = self.limiter.retry_after()
        return RateLimitedError("GitHub API rate limit exceeded. Please try again later.", retry_after=retry_after)

    @staticmethod
    def _is_rate_limit_response(resp: httpx.Response) -> bool:
        if resp.status_code == 429:
            return True
        if resp.status_code != 403:
            return False
        if resp.headers.get("x-ratelimit-remaining") == "0":
            return True
        return "rate limit" in resp.text.lower()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None, not_found: str = "") -> Any:
        """GET a JSON document, retrying transient failures with exponential backoff."""
        attempts = self.settings.github_max_retries
        last_error: Optional[TransientNetworkError] = None
        for attempt in range(attempts):
            if attempt:
                sleep_for = self.settings.github_retry_backoff * (2 ** (attempt - 1))
                logger.warning(
                    "Retrying GET %s (attempt %d/%d) in %.1fs: %s",
                    path, attempt + 1, attempts, sleep_for, last_error,
                )
                await self.context.sleep(sleep_for)
            async with self.limiter.permit():
                try:
                    async with self._client() as client:
                        resp = await client.get(path, params=params)
                except httpx.TimeoutException:
                    last_error = TransientNetworkError(
                        f"GitHub request timed out after {int(self.settings.github_timeout)}s"
                    )
                    continue
                except httpx.TransportError as e:
                    last_error = TransientNetworkError(f"GitHub request failed: {e}")
                    continue

            self.limiter.update_from_headers(resp.headers)
            if resp.status_code == 404:
                raise NotFoundError(not_found or f"GitHub resource '{path}' not found")
            if self._is_rate_limit_response(resp):
                raise self._rate_limited(resp)
            if resp.status_code >= 500:
                last_error = TransientNetworkError(
                    f"GitHub HTTP {resp.status_code}", upstream_status=resp.status_code
                )
                continue
            if resp.status_code >= 400:
                try:
                    detail = resp.json().get("message", resp.text)
                except (ValueError, AttributeError):
                    detail = resp.text
                raise TransientNetworkError(
                    f"GitHub HTTP {resp.status_code}: {detail}", upstream_status=resp.status_code
                )
            try:
                return resp.json()
            except ValueError:
                raise TransientNetworkError(
                    f"GitHub returned a non-JSON response for {path}", upstream_status=resp.status_code
                )
        assert last_error is not None
        raise last_error

    async def fetch(self, identifier: str) -> RawExternalData:
        """User record plus up to 30 most recently updated repositories."""
        username = clean_identifier(identifier)
        cached = self.context.cache.raw.get(username)
        if cached is not None:
            return cached

        logger.info("Fetching GitHub data for %s", username)
        not_found = f"GitHub user '{username}' not found"
        user = await self._get(f"/users/{username}", not_found=not_found)
        repos = await self._get(
            f"/users/{username}/repos",
            params={"sort": "updated", "per_page": 30},
            not_found=not_found,
        )
        data = {"user": user, "repos": repos if isinstance(repos, list) else []}
        self.context.cache.raw.set(username, data)
        return data

    async def fetch_user(self, identifier: str) -> Dict[str, Any]:
        username = clean_identifier(identifier)
        return await self._get(f"/users/{username}", not_found=f"GitHub user '{username}' not found")

    async def fetch_commits(self, owner: str, repo: str, author: str, per_page: int = 10) -> List[Dict[str, Any]]:
        commits = await self._get(
            f"/repos/{owner}/{repo}/commits",
            params={"author": author, "per_page": per_page},
            not_found=f"Repository '{owner}/{repo}' not found",
        )
        return commits if isinstance(commits, list) else []

    async def search_users(self, query: str, per_page: int = 30) -> Dict[str, Any]:
        return await self._get("/search/users", params={"q": query, "per_page": per_page})

    async def fetch_public_events(self, identifier: str, per_page: int = 100) -> List[Dict[str, Any]]:
        username = clean_identifier(identifier)
        events = await self._get(
            f"/users/{username}/events/public",
            params={"per_page": per_page},
            not_found=f"GitHub user '{username}' not found",
        )
        return events if isinstance(events, list) else []

    async def fetch_repo(self, full_name: str) -> Dict[str, Any]:
        return await self._get(f"/repos/{full_name}", not_found=f"Repository '{full_name}' not found")
