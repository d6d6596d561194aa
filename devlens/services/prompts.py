"""Prompt templates for every inference task.

Each builder returns a `PromptPayload`: a fixed system instruction (framing,
vocabulary, rubric and one worked example) plus a task body carrying the
caller's data. Structured values are always embedded with `json.dumps` so the
model sees exactly the shapes it is asked to return.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..models.schemas import Language, Profile
from .language_stats import format_language_stats


@dataclass(frozen=True)
class PromptPayload:
    system: str
    task: str


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, indent=2)


def _example(input_value: Any, output_value: Dict[str, Any]) -> str:
    return (
        "EXAMPLE INPUT\n"
        "-------------\n"
        f"{_dump(input_value)}\n\n"
        "EXAMPLE OUTPUT\n"
        "--------------\n"
        f"{_dump(output_value)}"
    )


OUTPUT_RULES = """OUTPUT RULES
------------
- Output ONLY the JSON object, inside a single ```json fenced block.
- Use exactly the keys shown in the example output. No extra keys.
- Never invent repositories, employers or skills that the input gives no evidence for."""


# ---------- Skill extraction ----------

SKILL_TAXONOMY = """SKILL TAXONOMY
--------------
- languages: programming languages actually used in repositories
- frameworks & libraries: e.g. React, Django, PyTorch, Spring
- infrastructure: cloud, containers, CI/CD, databases
- practices: testing, documentation, API design, open-source maintenance

PROFICIENCY LEVELS
------------------
- expert: sustained, substantial work (large or popular repositories, many projects)
- intermediate: repeated, non-trivial use
- beginner: isolated or small experiments"""

SKILL_EXAMPLE_INPUT = {
    "user": {"name": "Ada Example", "bio": "Backend engineer", "publicRepos": 24, "followers": 130},
    "languages": "Go: 61.2%, Python: 30.4%, Shell: 8.4%",
    "topRepositories": [
        {"name": "queue-service", "description": "Distributed job queue on Redis", "stars": 412, "forks": 37, "language": "Go"},
        {"name": "etl-scripts", "description": "Data loading helpers", "stars": 3, "forks": 0, "language": "Python"},
    ],
}

SKILL_EXAMPLE_OUTPUT = {
    "skills": ["Go", "Python", "Redis", "Distributed Systems", "Shell"],
    "proficiency_levels": {
        "Go": "expert",
        "Python": "intermediate",
        "Redis": "intermediate",
        "Distributed Systems": "intermediate",
        "Shell": "beginner",
    },
    "strengths": ["Builds production-grade backend services", "Maintains a popular open-source project"],
    "experience_summary": "Backend engineer focused on Go services. Maintains a widely used Redis-backed job queue and supporting Python tooling.",
    "notable_projects": ["queue-service"],
}

SKILL_SYSTEM = f"""You are an expert technical recruiter analyzing a developer's public GitHub profile.
Extract the developer's technical skills and how proficient they appear to be.

{SKILL_TAXONOMY}

{_example(SKILL_EXAMPLE_INPUT, SKILL_EXAMPLE_OUTPUT)}

{OUTPUT_RULES}"""


def summarize_repos(repos: List[Dict[str, Any]], limit: int = 10) -> List[Dict[str, Any]]:
    return [
        {
            "name": r.get("name"),
            "description": r.get("description"),
            "stars": r.get("stargazers_count", 0),
            "forks": r.get("forks_count", 0),
            "language": r.get("language"),
        }
        for r in repos[:limit]
    ]


def build_skill_extraction_prompt(
    user: Dict[str, Any], repos: List[Dict[str, Any]], languages: List[Language]
) -> PromptPayload:
    data = {
        "user": {
            "name": user.get("name") or user.get("login"),
            "bio": user.get("bio") or "No bio",
            "publicRepos": user.get("public_repos", 0),
            "followers": user.get("followers", 0),
        },
        "languages": format_language_stats(languages),
        "topRepositories": summarize_repos(repos),
    }
    task = (
        "Analyze this GitHub profile and extract technical skills.\n\n"
        f"INPUT\n-----\n{_dump(data)}\n\n"
        "Now produce the JSON."
    )
    return PromptPayload(system=SKILL_SYSTEM, task=task)


# ---------- Job matching ----------

MATCH_RUBRIC = """SCORING RUBRIC
--------------
match_score is an integer from 0 to 100.
- 80-100 and every required skill present -> recommendation "hire"
- 60-79, or strong transferable skills covering the gaps -> recommendation "interview"
- below 60, or a critical required skill missing -> recommendation "pass"
The recommendation MUST agree with the score band above."""

MATCH_EXAMPLE_INPUT = {
    "candidate": {
        "skills": ["Go", "Python", "Redis", "Docker"],
        "proficiencyLevels": {"Go": "expert", "Python": "intermediate", "Redis": "intermediate", "Docker": "beginner"},
        "strengths": ["Builds production-grade backend services"],
        "experienceSummary": "Backend engineer focused on Go services.",
    },
    "jobDescription": "Senior backend engineer. Required: Go, PostgreSQL, Kubernetes. Nice to have: Redis.",
}

MATCH_EXAMPLE_OUTPUT = {
    "match_score": 68,
    "matching_skills": ["Go", "Redis"],
    "missing_skills": ["PostgreSQL", "Kubernetes"],
    "strengths_for_role": ["Expert-level Go", "Experience with Redis-backed services"],
    "recommendation": "interview",
    "reasoning": "Strong Go background matches the core requirement. No visible PostgreSQL or Kubernetes work, but Docker and Redis experience suggest the gaps are learnable.",
}

MATCH_SYSTEM = f"""You are an expert technical recruiter. Compare a candidate's skills to a job description
and produce a match analysis.

{MATCH_RUBRIC}

{_example(MATCH_EXAMPLE_INPUT, MATCH_EXAMPLE_OUTPUT)}

{OUTPUT_RULES}"""


def build_match_prompt(profile: Profile, job_description: str) -> PromptPayload:
    data = {
        "candidate": {
            "skills": profile.skills,
            "proficiencyLevels": profile.proficiency_levels,
            "strengths": profile.strengths,
            "experienceSummary": profile.experience_summary,
        },
        "jobDescription": job_description,
    }
    task = (
        "Analyze how well this candidate matches the job requirements.\n\n"
        f"INPUT\n-----\n{_dump(data)}\n\n"
        "Now produce the JSON."
    )
    return PromptPayload(system=MATCH_SYSTEM, task=task)


# ---------- Code DNA ----------

DNA_VOCABULARY = """TRAIT VOCABULARY (use these exact values)
-----------------------------------------
personality.communicationStyle: Concise | Detailed | Visual
personality.documentationHabits: Extensive | Moderate | Minimal
personality.commitStyle: Atomic | Feature-based | Mixed
collaboration.role: Mentor | Contributor | Solo Builder | Architect
collaboration.reviewActivity: Active Reviewer | Occasional | Rare
collaboration.prQuality: integer 0-100
technicalDNA.codeStructure: Functional | OOP | Hybrid
technicalDNA.testingApproach: TDD Advocate | Pragmatic | Minimal
technicalDNA.architecturePreference: Microservices | Monolithic | Modular
evolution.complexityTrend: Increasing | Stable | Exploring"""

DNA_EXAMPLE_INPUT = {
    "user": {"login": "ada-example", "followers": 130, "publicRepos": 24},
    "repositories": [
        {"name": "queue-service", "description": "Distributed job queue on Redis", "language": "Go", "fork": False, "hasTests": True},
    ],
    "commitSamples": [
        "fix: retry lease renewal on timeout",
        "feat(worker): add graceful shutdown",
        "docs: document visibility timeout",
    ],
    "languageProgression": [{"year": 2019, "languages": ["Python"]}, {"year": 2022, "languages": ["Go"]}],
}

DNA_EXAMPLE_OUTPUT = {
    "personality": {"communicationStyle": "Concise", "documentationHabits": "Moderate", "commitStyle": "Atomic"},
    "collaboration": {"role": "Contributor", "reviewActivity": "Occasional", "prQuality": 78},
    "technicalDNA": {"codeStructure": "Hybrid", "testingApproach": "Pragmatic", "architecturePreference": "Modular"},
    "evolution": {"primaryGrowthArea": "Distributed systems in Go", "complexityTrend": "Increasing"},
    "uniqueMarkers": ["Conventional commit messages", "Moved from scripting to systems work"],
}

DNA_SYSTEM = f"""You are a senior engineering manager reading a developer's repositories and commit history.
Infer their "code DNA": personality, collaboration style, technical habits and how their work has evolved.

{DNA_VOCABULARY}

{_example(DNA_EXAMPLE_INPUT, DNA_EXAMPLE_OUTPUT)}

{OUTPUT_RULES}"""


def build_code_dna_prompt(
    user: Dict[str, Any],
    repos: List[Dict[str, Any]],
    commit_messages: List[str],
    language_progression: List[Dict[str, Any]],
) -> PromptPayload:
    data = {
        "user": {
            "login": user.get("login"),
            "followers": user.get("followers", 0),
            "publicRepos": user.get("public_repos", 0),
        },
        "repositories": [
            {
                "name": r.get("name"),
                "description": r.get("description"),
                "language": r.get("language"),
                "fork": bool(r.get("fork")),
                "hasTests": "test" in (r.get("name") or "").lower(),
            }
            for r in repos
        ],
        "commitSamples": commit_messages,
        "languageProgression": language_progression,
    }
    task = (
        "Infer the code DNA of this developer.\n\n"
        f"INPUT\n-----\n{_dump(data)}\n\n"
        "Now produce the JSON."
    )
    return PromptPayload(system=DNA_SYSTEM, task=task)


# ---------- Interview questions ----------

INTERVIEW_EXAMPLE_INPUT = {
    "skills": ["Go", "Redis"],
    "proficiencyLevels": {"Go": "expert", "Redis": "intermediate"},
    "notableProjects": ["queue-service"],
    "jobDescription": "Senior backend engineer working on high-throughput services.",
}

INTERVIEW_EXAMPLE_OUTPUT = {
    "questions": [
        {
            "skill": "Go",
            "question": "In queue-service, how do you stop a slow consumer from blocking lease renewal for other jobs?",
            "difficulty": "hard",
            "category": "scenario",
            "followUp": "What changes if the worker pool runs across several hosts?",
        },
        {
            "skill": "Redis",
            "question": "When would you choose Redis streams over lists for a job queue?",
            "difficulty": "medium",
            "category": "conceptual",
            "followUp": "How do consumer groups handle a crashed consumer?",
        },
    ]
}

INTERVIEW_SYSTEM = f"""You are a technical interviewer preparing questions for a specific candidate.
Write questions that dig into the candidate's actual projects and claimed proficiency.
Harder questions go to skills rated expert; easier ones to beginner skills.

FIELDS
------
difficulty: easy | medium | hard
category: conceptual | practical | scenario

{_example(INTERVIEW_EXAMPLE_INPUT, INTERVIEW_EXAMPLE_OUTPUT)}

{OUTPUT_RULES}"""


def build_interview_prompt(profile: Profile, job_description: Optional[str] = None, count: int = 6) -> PromptPayload:
    data = {
        "skills": profile.skills,
        "proficiencyLevels": profile.proficiency_levels,
        "notableProjects": profile.notable_projects,
        "jobDescription": job_description or "(none provided)",
    }
    task = (
        f"Write {count} interview questions for this candidate.\n\n"
        f"INPUT\n-----\n{_dump(data)}\n\n"
        "Now produce the JSON."
    )
    return PromptPayload(system=INTERVIEW_SYSTEM, task=task)
