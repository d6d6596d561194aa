import logging
import re
from typing import Any, Dict, List, Optional

from ..context import ExternalClientContext
from ..errors import InvalidInputError
from ..models.schemas import MatchVerdict, Profile
from ..utils import truncate_text
from .llm_client import LLMClient
from .llm_parser import Structured, as_str, as_str_list, infer_structured
from .prompts import build_match_prompt

logger = logging.getLogger(__name__)

RECOMMENDATIONS = {"hire", "interview", "pass"}
FALLBACK_REASONING = "Analysis completed with limited parsing. Manual review recommended."


def band_recommendation(score: int, missing_skills: List[str]) -> str:
    """Score bands: 80+ with nothing missing -> hire, 60+ -> interview, else pass."""
    if score >= 80 and not missing_skills:
        return "hire"
    if score >= 60:
        return "interview"
    return "pass"


def coerce_score(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        score = round(float(value))
    except (TypeError, ValueError, OverflowError):
        return None
    return max(0, min(100, int(score)))


def skills_mentioned(skills: List[str], text: str) -> List[str]:
    lowered = text.lower()
    found = []
    for skill in skills:
        pattern = r"(?<![\w+#])" + re.escape(skill.lower()) + r"(?![\w+#])"
        if re.search(pattern, lowered):
            found.append(skill)
    return found


def fallback_verdict(profile: Profile, job_description: str) -> MatchVerdict:
    matching = skills_mentioned(profile.skills, job_description) or profile.skills[:3]
    return MatchVerdict(
        score=50,
        matching_skills=matching,
        missing_skills=["Unable to parse requirements"],
        strengths_for_role=profile.strengths[:2],
        recommendation="interview",
        reasoning=FALLBACK_REASONING,
        source="fallback",
    )


class JobMatcher:
    """Scores one profile against one job description. Results are never cached."""

    def __init__(self, context: ExternalClientContext, llm: LLMClient = None):
        self.context = context
        self.settings = context.settings
        self.llm = llm or LLMClient(context)

    def _verdict_from(self, data: Dict[str, Any]) -> Optional[MatchVerdict]:
        score = coerce_score(data.get("match_score", data.get("score")))
        if score is None:
            return None
        missing = as_str_list(data.get("missing_skills"))
        recommendation = as_str(data.get("recommendation")).lower()
        if self.settings.enforce_recommendation_bands or recommendation not in RECOMMENDATIONS:
            recommendation = band_recommendation(score, missing)
        return MatchVerdict(
            score=score,
            matching_skills=as_str_list(data.get("matching_skills")),
            missing_skills=missing,
            strengths_for_role=as_str_list(data.get("strengths_for_role")),
            recommendation=recommendation,
            reasoning=as_str(data.get("reasoning")),
            source="model",
        )

    async def match(self, profile: Profile, job_description: str) -> MatchVerdict:
        if not job_description or not job_description.strip():
            raise InvalidInputError("Job description is required")
        job_text = truncate_text(job_description, self.settings.max_job_description_chars)

        prompt = build_match_prompt(profile, job_text)
        outcome = await infer_structured(self.llm, prompt, f"job match for {profile.identifier}")
        if isinstance(outcome, Structured):
            verdict = self._verdict_from(outcome.data)
            if verdict is not None:
                return verdict
            logger.warning("Job match for %s: model output has no usable score, using fallback", profile.identifier)
        return fallback_verdict(profile, job_text)
