import logging
from typing import Any, Dict, List

from ..context import ExternalClientContext
from ..models.schemas import Language, Profile
from ..utils import clean_identifier, dedupe_casefold
from .github_client import GitHubClient
from .language_stats import calculate_language_stats
from .llm_client import LLMClient
from .llm_parser import Fallback, as_str, as_str_list, infer_structured
from .prompts import build_skill_extraction_prompt

logger = logging.getLogger(__name__)

PROFICIENCY_LEVELS = {"expert", "intermediate", "beginner"}


def normalize_proficiency(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    levels: Dict[str, str] = {}
    for skill, level in value.items():
        if not isinstance(skill, str) or not skill.strip():
            continue
        level = level.strip().lower() if isinstance(level, str) else ""
        levels[skill.strip()] = level if level in PROFICIENCY_LEVELS else "intermediate"
    return levels


def fallback_skill_data(user: Dict[str, Any], repos: List[Dict[str, Any]], languages: List[Language]) -> Dict[str, Any]:
    top_language = languages[0].name if languages else "software development"
    return {
        "skills": [lang.name for lang in languages],
        "proficiency_levels": {lang.name: "intermediate" for lang in languages},
        "strengths": ["Active GitHub contributor"],
        "experience_summary": (
            f"Developer with {user.get('public_repos', 0)} repositories and expertise in {top_language}."
        ),
        "notable_projects": [r.get("name") for r in repos[:3] if r.get("name")],
    }


class ProfileAnalyzer:
    """fetch -> language stats -> skill-extraction prompt -> inference -> parse -> Profile."""

    def __init__(self, context: ExternalClientContext, github: GitHubClient = None, llm: LLMClient = None):
        self.context = context
        self.github = github or GitHubClient(context)
        self.llm = llm or LLMClient(context)

    async def analyze(self, identifier: str) -> Profile:
        username = clean_identifier(identifier)
        cached = self.context.cache.profiles.get(username)
        if cached is not None:
            return cached

        raw = await self.github.fetch(username)
        user, repos = raw["user"], raw["repos"]
        languages = calculate_language_stats(repos)

        prompt = build_skill_extraction_prompt(user, repos, languages)
        outcome = await infer_structured(self.llm, prompt, f"skill extraction for {username}")
        if isinstance(outcome, Fallback):
            source = "fallback"
            ai_data = fallback_skill_data(user, repos, languages)
        else:
            source = "model"
            ai_data = outcome.data

        profile = Profile(
            identifier=user.get("login") or username,
            display_name=user.get("name") or user.get("login") or username,
            avatar_url=user.get("avatar_url") or "",
            bio=user.get("bio") or "",
            repo_count=user.get("public_repos") or 0,
            follower_count=user.get("followers") or 0,
            location=user.get("location") or None,
            languages=languages,
            skills=dedupe_casefold(as_str_list(ai_data.get("skills"))),
            proficiency_levels=normalize_proficiency(ai_data.get("proficiency_levels")),
            experience_summary=as_str(ai_data.get("experience_summary")),
            strengths=as_str_list(ai_data.get("strengths")),
            notable_projects=as_str_list(ai_data.get("notable_projects")),
            source=source,
        )
        self.context.cache.profiles.set(username, profile)
        logger.info("Analyzed profile %s (%d skills, source=%s)", username, len(profile.skills), source)
        return profile
