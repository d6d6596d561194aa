import logging
from typing import Any, Dict, List

from ..context import ExternalClientContext
from ..errors import DevLensError, InvalidInputError
from ..models.schemas import Candidate, SearchCriteria, SearchResult
from ..utils import dedupe_casefold
from .github_client import GitHubClient

logger = logging.getLogger(__name__)


def _quote(value: str) -> str:
    value = value.strip().replace('"', "")
    return f'"{value}"' if " " in value else value


def build_search_query(criteria: SearchCriteria) -> str:
    """Combine the criteria into one search expression, e.g. `rust go location:Berlin repos:>=10`."""
    skills = dedupe_casefold(criteria.skills)
    if not skills:
        raise InvalidInputError("At least one skill is required")
    parts = [_quote(s) for s in skills]
    if criteria.location and criteria.location.strip():
        parts.append(f"location:{_quote(criteria.location)}")
    if criteria.min_repos:
        parts.append(f"repos:>={criteria.min_repos}")
    if criteria.min_followers:
        parts.append(f"followers:>={criteria.min_followers}")
    return " ".join(parts)


def _candidate_from_user(user: Dict[str, Any]) -> Candidate:
    return Candidate(
        identifier=user.get("login") or "",
        display_name=user.get("name") or user.get("login") or "",
        avatar_url=user.get("avatar_url") or "",
        bio=user.get("bio") or "",
        location=user.get("location") or "",
        repo_count=user.get("public_repos") or 0,
        follower_count=user.get("followers") or 0,
        enriched=True,
    )


def _partial_candidate(item: Dict[str, Any]) -> Candidate:
    return Candidate(
        identifier=item.get("login") or "",
        display_name=item.get("login") or "",
        avatar_url=item.get("avatar_url") or "",
        enriched=False,
    )


class CandidateSearch:
    def __init__(self, context: ExternalClientContext, github: GitHubClient = None):
        self.context = context
        self.github = github or GitHubClient(context)

    async def search(self, criteria: SearchCriteria) -> SearchResult:
        query = build_search_query(criteria)
        per_page = criteria.limit or self.context.settings.search_per_page
        logger.info("Searching developers: %s", query)
        response = await self.github.search_users(query, per_page=per_page)
        items = (response or {}).get("items") or []

        candidates: List[Candidate] = []
        for item in items[:per_page]:
            login = item.get("login")
            if not login:
                continue
            try:
                user = await self.github.fetch_user(login)
                candidates.append(_candidate_from_user(user))
            except DevLensError as e:
                # best effort: keep the hit with what the search returned
                logger.warning("Could not enrich search hit %s: %s", login, e.message)
                candidates.append(_partial_candidate(item))
        return SearchResult(candidates=candidates, total=len(candidates))
