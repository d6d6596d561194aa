import logging
from typing import Any, Dict, List

from ..context import ExternalClientContext
from ..errors import DevLensError, RateLimitedError
from ..models.schemas import Contribution, ContributionSummary
from ..utils import cache_key, clean_identifier
from .github_client import GitHubClient

logger = logging.getLogger(__name__)

CONTRIBUTION_EVENTS = {"PullRequestEvent", "PushEvent", "IssuesEvent", "IssueCommentEvent", "CreateEvent"}
MAX_ENRICHED = 10


class ContributionsAnalyzer:
    """Public activity on repositories the user does not own, grouped per repository."""

    def __init__(self, context: ExternalClientContext, github: GitHubClient = None):
        self.context = context
        self.github = github or GitHubClient(context)

    async def summarize(self, identifier: str) -> ContributionSummary:
        username = clean_identifier(identifier)
        events = await self.github.fetch_public_events(username)

        grouped: Dict[str, Dict[str, Any]] = {}
        for event in events:
            kind = event.get("type")
            full_name = (event.get("repo") or {}).get("name") or ""
            if kind not in CONTRIBUTION_EVENTS or "/" not in full_name:
                continue
            owner = full_name.split("/", 1)[0]
            if cache_key(owner) == cache_key(username):
                continue
            entry = grouped.setdefault(full_name, {"owner": owner, "count": 0, "types": [], "last": ""})
            entry["count"] += 1
            if kind not in entry["types"]:
                entry["types"].append(kind)
            created = event.get("created_at") or ""
            if created > entry["last"]:
                entry["last"] = created

        ordered = sorted(grouped.items(), key=lambda kv: kv[1]["count"], reverse=True)
        contributions: List[Contribution] = []
        rate_limited = False
        for i, (full_name, entry) in enumerate(ordered):
            details: Dict[str, Any] = {}
            if i < MAX_ENRICHED and not rate_limited:
                try:
                    details = await self.github.fetch_repo(full_name)
                except RateLimitedError as e:
                    rate_limited = True
                    logger.warning("Rate limited enriching %s, skipping remaining details: %s", full_name, e.message)
                except DevLensError as e:
                    logger.info("No details for %s: %s", full_name, e.message)
            contributions.append(Contribution(
                repo_name=full_name,
                repo_url=f"https://github.com/{full_name}",
                owner=entry["owner"],
                contributions=entry["count"],
                types=entry["types"],
                last_activity=entry["last"],
                stars=details.get("stargazers_count") or 0,
                forks=details.get("forks_count") or 0,
                description=details.get("description"),
                language=details.get("language"),
            ))

        return ContributionSummary(
            contributions=contributions,
            total_external_repos=len(contributions),
            total_contributions=sum(c.contributions for c in contributions),
        )
