import logging
import re
from typing import Any, Dict, List, Tuple

from ..context import ExternalClientContext
from ..errors import NotFoundError, TransientNetworkError
from ..models.schemas import CodeDNA
from ..utils import clean_identifier
from .github_client import GitHubClient
from .job_matcher import coerce_score
from .llm_client import LLMClient
from .llm_parser import Fallback, as_str, as_str_list, infer_structured
from .prompts import build_code_dna_prompt

logger = logging.getLogger(__name__)

MAX_REPOS = 5
MAX_COMMIT_SAMPLES = 40

TRAITS: Dict[Tuple[str, str], Tuple[str, ...]] = {
    ("personality", "communicationStyle"): ("Concise", "Detailed", "Visual"),
    ("personality", "documentationHabits"): ("Extensive", "Moderate", "Minimal"),
    ("personality", "commitStyle"): ("Atomic", "Feature-based", "Mixed"),
    ("collaboration", "role"): ("Mentor", "Contributor", "Solo Builder", "Architect"),
    ("collaboration", "reviewActivity"): ("Active Reviewer", "Occasional", "Rare"),
    ("technicalDNA", "codeStructure"): ("Functional", "OOP", "Hybrid"),
    ("technicalDNA", "testingApproach"): ("TDD Advocate", "Pragmatic", "Minimal"),
    ("technicalDNA", "architecturePreference"): ("Microservices", "Monolithic", "Modular"),
    ("evolution", "complexityTrend"): ("Increasing", "Stable", "Exploring"),
}

_CONVENTIONAL = re.compile(r"^(feat|fix|docs|chore|refactor|test|perf|build|ci|style)(\(.+\))?!?:", re.IGNORECASE)


def language_progression(repos: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Languages of repositories grouped by the year they were created, oldest first."""
    by_year: Dict[int, List[str]] = {}
    for repo in repos:
        created = repo.get("created_at") or ""
        language = repo.get("language")
        if not language or len(created) < 4 or not created[:4].isdigit():
            continue
        year = int(created[:4])
        langs = by_year.setdefault(year, [])
        if language not in langs:
            langs.append(language)
    return [{"year": year, "languages": by_year[year]} for year in sorted(by_year)]


def fallback_traits(
    user: Dict[str, Any], repos: List[Dict[str, Any]], messages: List[str], progression: List[Dict[str, Any]]
) -> Dict[str, Any]:
    """Trait guesses computed from repository metadata and commit messages alone."""
    avg_len = sum(len(m) for m in messages) / len(messages) if messages else 0
    short_share = sum(1 for m in messages if len(m) <= 72) / len(messages) if messages else 0
    conventional_share = sum(1 for m in messages if _CONVENTIONAL.match(m)) / len(messages) if messages else 0

    described = sum(1 for r in repos if r.get("description")) / len(repos) if repos else 0
    if described >= 0.7:
        documentation = "Extensive"
    elif described >= 0.3:
        documentation = "Moderate"
    else:
        documentation = "Minimal"

    if short_share >= 0.6:
        commit_style = "Atomic"
    elif avg_len > 100:
        commit_style = "Feature-based"
    else:
        commit_style = "Mixed"

    fork_share = sum(1 for r in repos if r.get("fork")) / len(repos) if repos else 0
    if (user.get("followers") or 0) >= 100:
        role = "Mentor"
    elif fork_share >= 0.3:
        role = "Contributor"
    else:
        role = "Solo Builder"

    has_tests = any(
        "test" in ((r.get("name") or "") + " " + (r.get("description") or "")).lower() for r in repos
    )

    seen: List[str] = []
    exploring = False
    for entry in progression:
        new = [lang for lang in entry["languages"] if lang not in seen]
        exploring = bool(new) and bool(seen)
        seen.extend(new)
    if progression:
        growth = progression[-1]["languages"][0]
    else:
        growth = "General software development"

    markers = []
    if conventional_share >= 0.5:
        markers.append("Conventional commit messages")

    return {
        "personality": {
            "communicationStyle": "Concise" if avg_len < 50 else "Detailed",
            "documentationHabits": documentation,
            "commitStyle": commit_style,
        },
        "collaboration": {"role": role, "reviewActivity": "Rare", "prQuality": 50},
        "technicalDNA": {
            "codeStructure": "Hybrid",
            "testingApproach": "Pragmatic" if has_tests else "Minimal",
            "architecturePreference": "Modular",
        },
        "evolution": {
            "primaryGrowthArea": growth,
            "complexityTrend": "Exploring" if exploring else "Stable",
        },
        "uniqueMarkers": markers,
    }


def merge_traits(model: Dict[str, Any], fallback: Dict[str, Any]) -> Dict[str, Any]:
    """Take each trait from the model output when it is in vocabulary, else from the fallback."""
    merged = {section: dict(values) for section, values in fallback.items() if isinstance(values, dict)}
    for (section, key), allowed in TRAITS.items():
        value = (model.get(section) or {}).get(key) if isinstance(model.get(section), dict) else None
        if value in allowed:
            merged[section][key] = value

    collaboration = model.get("collaboration") if isinstance(model.get("collaboration"), dict) else {}
    pr_quality = coerce_score(collaboration.get("prQuality"))
    if pr_quality is not None:
        merged["collaboration"]["prQuality"] = pr_quality

    evolution = model.get("evolution") if isinstance(model.get("evolution"), dict) else {}
    growth = as_str(evolution.get("primaryGrowthArea"))
    if growth:
        merged["evolution"]["primaryGrowthArea"] = growth

    markers = as_str_list(model.get("uniqueMarkers"))
    merged["uniqueMarkers"] = markers if "uniqueMarkers" in model else fallback["uniqueMarkers"]
    return merged


class CodeDNAAnalyzer:
    def __init__(self, context: ExternalClientContext, github: GitHubClient = None, llm: LLMClient = None):
        self.context = context
        self.github = github or GitHubClient(context)
        self.llm = llm or LLMClient(context)

    async def _commit_messages(self, username: str, repos: List[Dict[str, Any]]) -> List[str]:
        messages: List[str] = []
        for repo in repos:
            owner = (repo.get("owner") or {}).get("login") or username
            try:
                commits = await self.github.fetch_commits(owner, repo.get("name"), username)
            except (NotFoundError, TransientNetworkError) as e:
                # empty or unavailable repositories are skipped
                logger.info("Skipping commits for %s/%s: %s", owner, repo.get("name"), e.message)
                continue
            for c in commits:
                message = ((c.get("commit") or {}).get("message") or "").strip()
                if message:
                    messages.append(message.splitlines()[0])
        return messages[:MAX_COMMIT_SAMPLES]

    async def analyze(self, identifier: str) -> CodeDNA:
        username = clean_identifier(identifier)
        cached = self.context.cache.dna.get(username)
        if cached is not None:
            return cached

        raw = await self.github.fetch(username)
        user, repos = raw["user"], raw["repos"]
        sampled = [r for r in repos if not r.get("fork") and r.get("name")][:MAX_REPOS]
        messages = await self._commit_messages(username, sampled)
        progression = language_progression(repos)
        fallback = fallback_traits(user, repos, messages, progression)

        prompt = build_code_dna_prompt(user, sampled, messages, progression)
        outcome = await infer_structured(self.llm, prompt, f"code DNA for {username}")
        if isinstance(outcome, Fallback):
            source, traits = "fallback", fallback
        else:
            source, traits = "model", merge_traits(outcome.data, fallback)

        evolution = dict(traits["evolution"], languageProgression=progression)
        dna = CodeDNA.model_validate({
            "identifier": user.get("login") or username,
            "personality": traits["personality"],
            "collaboration": traits["collaboration"],
            "technicalDNA": traits["technicalDNA"],
            "evolution": evolution,
            "uniqueMarkers": traits["uniqueMarkers"],
            "source": source,
        })
        self.context.cache.dna.set(username, dna)
        return dna
