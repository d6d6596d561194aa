import pytest

from devlens.conftest import fenced
from devlens.errors import InvalidInputError
from devlens.models.schemas import Language, Profile
from devlens.services.interview_questions import (
    InterviewQuestionGenerator,
    fallback_questions,
    normalize_question,
)

PROFILE = Profile(
    identifier="octocat",
    display_name="Octo Cat",
    skills=["Go", "Redis", "Kubernetes", "gRPC", "PostgreSQL", "Terraform"],
    proficiency_levels={"Go": "expert", "Redis": "beginner"},
)


class TestGenerate:
    async def test_model_questions_are_normalized(self, context, upstream):
        upstream.llm_replies.append(fenced({"questions": [
            {"skill": "Go", "question": "How do you bound goroutine fan-out?", "difficulty": "HARD",
             "category": "scenario", "followUp": "And with context cancellation?"},
            {"skill": "Redis", "question": "Streams or lists?", "difficulty": "trivial", "category": "other"},
            {"skill": "", "question": "dropped"},
            "not a question",
        ]}))
        result = await InterviewQuestionGenerator(context).generate(PROFILE, "Backend role")
        assert result.source == "model"
        assert len(result.questions) == 2
        first, second = result.questions
        assert (first.difficulty, first.category, first.follow_up) == ("hard", "scenario", "And with context cancellation?")
        assert (second.difficulty, second.category, second.follow_up) == ("medium", "conceptual", None)
        assert "Backend role" in upstream.llm_calls[0]["messages"][0]["content"]

    async def test_unusable_output_uses_templates(self, context, upstream):
        upstream.llm_replies.append(fenced({"questions": []}))
        result = await InterviewQuestionGenerator(context).generate(PROFILE)
        assert result.source == "fallback"
        assert len(result.questions) == 5

    async def test_profile_without_skills_rejected(self, context, upstream):
        with pytest.raises(InvalidInputError):
            await InterviewQuestionGenerator(context).generate(Profile(identifier="x", display_name="x"))
        assert upstream.llm_calls == []


def test_fallback_questions_follow_proficiency():
    questions = fallback_questions(PROFILE)
    assert [q.skill for q in questions] == ["Go", "Redis", "Kubernetes", "gRPC", "PostgreSQL"]
    assert [q.difficulty for q in questions[:3]] == ["hard", "easy", "medium"]
    assert [q.category for q in questions[:4]] == ["practical", "conceptual", "scenario", "practical"]
    assert "Go" in questions[0].question


def test_fallback_questions_use_languages_when_no_skills():
    profile = Profile(
        identifier="x", display_name="x", languages=[Language(name="Rust", percentage=100, color="#dea584")]
    )
    assert [q.skill for q in fallback_questions(profile)] == ["Rust"]


def test_normalize_question_accepts_snake_case_follow_up():
    q = normalize_question({"skill": "Go", "question": "Why?", "follow_up": "Really?"})
    assert q.follow_up == "Really?"
    assert normalize_question(["Go"]) is None
