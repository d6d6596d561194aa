import logging
from typing import Any, Dict, List, Optional

from ..context import ExternalClientContext
from ..errors import InvalidInputError
from ..models.schemas import InterviewQuestion, InterviewQuestionSet, Profile
from ..utils import truncate_text
from .llm_client import LLMClient
from .llm_parser import Fallback, as_str, infer_structured
from .prompts import build_interview_prompt

logger = logging.getLogger(__name__)

MAX_QUESTIONS = 10
FALLBACK_QUESTION_COUNT = 5

DIFFICULTY_BY_LEVEL = {"expert": "hard", "intermediate": "medium", "beginner": "easy"}

FALLBACK_TEMPLATES = [
    ("practical", "Walk me through a project where you used {skill}. What would you change if you rebuilt it today?",
     "Which part of that project was hardest to get right?"),
    ("conceptual", "What are the main trade-offs of {skill} compared with the alternatives you have used?",
     "When would you advise a team not to use {skill}?"),
    ("scenario", "A production issue is traced to code written in {skill}. How do you narrow it down?",
     "How would you keep the same issue from coming back?"),
]


def _skills_for(profile: Profile) -> List[str]:
    return profile.skills or [lang.name for lang in profile.languages]


def fallback_questions(profile: Profile) -> List[InterviewQuestion]:
    questions = []
    for i, skill in enumerate(_skills_for(profile)[:FALLBACK_QUESTION_COUNT]):
        category, question, follow_up = FALLBACK_TEMPLATES[i % len(FALLBACK_TEMPLATES)]
        level = profile.proficiency_levels.get(skill, "intermediate")
        questions.append(InterviewQuestion(
            skill=skill,
            question=question.format(skill=skill),
            difficulty=DIFFICULTY_BY_LEVEL.get(level, "medium"),
            category=category,
            follow_up=follow_up.format(skill=skill),
        ))
    return questions


def normalize_question(item: Any) -> Optional[InterviewQuestion]:
    if not isinstance(item, dict):
        return None
    skill, question = as_str(item.get("skill")), as_str(item.get("question"))
    if not skill or not question:
        return None
    difficulty = as_str(item.get("difficulty")).lower()
    category = as_str(item.get("category")).lower()
    return InterviewQuestion(
        skill=skill,
        question=question,
        difficulty=difficulty if difficulty in ("easy", "medium", "hard") else "medium",
        category=category if category in ("conceptual", "practical", "scenario") else "conceptual",
        follow_up=as_str(item.get("followUp") or item.get("follow_up")) or None,
    )


class InterviewQuestionGenerator:
    def __init__(self, context: ExternalClientContext, llm: LLMClient = None):
        self.context = context
        self.llm = llm or LLMClient(context)

    async def generate(self, profile: Profile, job_description: Optional[str] = None) -> InterviewQuestionSet:
        if not _skills_for(profile):
            raise InvalidInputError("Profile has no skills to ask about")
        job_text = None
        if job_description and job_description.strip():
            job_text = truncate_text(job_description, self.context.settings.max_job_description_chars)

        prompt = build_interview_prompt(profile, job_text)
        outcome = await infer_structured(self.llm, prompt, f"interview questions for {profile.identifier}")
        if not isinstance(outcome, Fallback):
            data: Dict[str, Any] = outcome.data
            items = data.get("questions") if isinstance(data.get("questions"), list) else []
            questions = [q for q in (normalize_question(i) for i in items) if q is not None][:MAX_QUESTIONS]
            if questions:
                return InterviewQuestionSet(questions=questions, source="model")
            logger.warning("Interview questions for %s: model returned no usable questions", profile.identifier)
        return InterviewQuestionSet(questions=fallback_questions(profile), source="fallback")
