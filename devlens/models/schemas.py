from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ProficiencyLevel = Literal["expert", "intermediate", "beginner"]
Recommendation = Literal["hire", "interview", "pass"]
Source = Literal["model", "fallback"]


class CamelModel(BaseModel):
    # JSON contracts use camelCase; Python code uses snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Language(CamelModel):
    name: str
    percentage: float
    color: str


class Profile(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    identifier: str
    display_name: str
    avatar_url: str = ""
    bio: str = ""
    repo_count: int = 0
    follower_count: int = 0
    location: Optional[str] = None
    languages: List[Language] = []
    skills: List[str] = []
    proficiency_levels: Dict[str, ProficiencyLevel] = {}
    experience_summary: str = ""
    strengths: List[str] = []
    notable_projects: List[str] = []
    source: Source = "model"


class MatchVerdict(CamelModel):
    score: int = Field(ge=0, le=100)
    matching_skills: List[str] = []
    missing_skills: List[str] = []
    strengths_for_role: List[str] = []
    recommendation: Recommendation = "interview"
    reasoning: str = ""
    source: Source = "model"


class CandidateRanking(MatchVerdict):
    rank: int = Field(ge=1)
    profile: Profile


class BatchError(CamelModel):
    identifier: str
    reason: str
    kind: Literal["not_found", "rate_limited", "skipped", "invalid", "error"] = "error"


class BatchResult(CamelModel):
    candidates: List[CandidateRanking] = []
    errors: List[BatchError] = []
    total_analyzed: int = 0
    total_failed: int = 0


class SearchCriteria(CamelModel):
    skills: List[str] = []
    location: Optional[str] = None
    min_repos: Optional[int] = Field(default=None, ge=0)
    min_followers: Optional[int] = Field(default=None, ge=0)
    limit: Optional[int] = Field(default=None, ge=1, le=100)


class Candidate(CamelModel):
    identifier: str
    display_name: str
    avatar_url: str = ""
    bio: str = ""
    location: str = ""
    repo_count: int = 0
    follower_count: int = 0
    enriched: bool = True


class SearchResult(CamelModel):
    candidates: List[Candidate] = []
    total: int = 0


class Personality(CamelModel):
    communication_style: Literal["Concise", "Detailed", "Visual"]
    documentation_habits: Literal["Extensive", "Moderate", "Minimal"]
    commit_style: Literal["Atomic", "Feature-based", "Mixed"]


class Collaboration(CamelModel):
    role: Literal["Mentor", "Contributor", "Solo Builder", "Architect"]
    review_activity: Literal["Active Reviewer", "Occasional", "Rare"]
    pr_quality: int = Field(ge=0, le=100)


class TechnicalDNA(CamelModel):
    code_structure: Literal["Functional", "OOP", "Hybrid"]
    testing_approach: Literal["TDD Advocate", "Pragmatic", "Minimal"]
    architecture_preference: Literal["Microservices", "Monolithic", "Modular"]


class LanguageYear(CamelModel):
    year: int
    languages: List[str]


class Evolution(CamelModel):
    primary_growth_area: str
    complexity_trend: Literal["Increasing", "Stable", "Exploring"]
    language_progression: List[LanguageYear] = []


class CodeDNA(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    identifier: str
    personality: Personality
    collaboration: Collaboration
    technical_dna: TechnicalDNA = Field(alias="technicalDNA")
    evolution: Evolution
    unique_markers: List[str] = []
    source: Source = "model"


class InterviewQuestion(CamelModel):
    skill: str
    question: str
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    category: Literal["conceptual", "practical", "scenario"] = "conceptual"
    follow_up: Optional[str] = None


class InterviewQuestionSet(CamelModel):
    questions: List[InterviewQuestion] = []
    source: Source = "model"


class Contribution(CamelModel):
    repo_name: str
    repo_url: str
    owner: str
    contributions: int
    types: List[str]
    last_activity: str
    stars: int = 0
    forks: int = 0
    description: Optional[str] = None
    language: Optional[str] = None


class ContributionSummary(CamelModel):
    contributions: List[Contribution] = []
    total_external_repos: int = 0
    total_contributions: int = 0


class SavedAnalysisIn(CamelModel):
    identifier: str
    profile_snapshot: Profile
    match_snapshot: Optional[MatchVerdict] = None
    job_description: Optional[str] = None


class SavedAnalysis(SavedAnalysisIn):
    id: int
    created_at: datetime


# ---------- Request bodies ----------

class AnalyzeRequest(CamelModel):
    username: str


class MatchRequest(CamelModel):
    profile: Profile
    job_description: str = ""


class BatchCompareRequest(CamelModel):
    usernames: List[str]
    job_description: str = ""


class InterviewQuestionsRequest(CamelModel):
    profile: Profile
    job_description: Optional[str] = None
