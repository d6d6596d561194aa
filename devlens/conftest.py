import json
import re
from typing import Any, Dict, List, Optional

import httpx
import pytest

from devlens.context import ExternalClientContext
from devlens.settings import Settings

START = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = START):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Sleeps:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds)


def make_user(login: str, **overrides: Any) -> Dict[str, Any]:
    user = {
        "login": login,
        "name": login.title(),
        "avatar_url": f"https://avatars.example/{login}.png",
        "bio": "Builds things",
        "public_repos": 12,
        "followers": 40,
        "location": "Berlin",
    }
    user.update(overrides)
    return user


def make_repo(name: str, language: Optional[str] = "Python", size: int = 100, **overrides: Any) -> Dict[str, Any]:
    repo = {
        "name": name,
        "description": f"{name} description",
        "language": language,
        "size": size,
        "stargazers_count": 5,
        "forks_count": 1,
        "fork": False,
        "created_at": "2021-03-01T00:00:00Z",
        "owner": {"login": overrides.pop("owner", "someone")},
    }
    repo.update(overrides)
    return repo


def fenced(obj: Dict[str, Any]) -> str:
    return "Here is the analysis:\n```json\n" + json.dumps(obj) + "\n```\nLet me know if you need more."


class FakeUpstream:
    """In-process stand-in for the GitHub API and the LLM messages API."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.users: Dict[str, Dict[str, Any]] = {}
        self.repos: Dict[str, List[Dict[str, Any]]] = {}
        self.commits: Dict[str, List[Dict[str, Any]]] = {}
        self.events: Dict[str, List[Dict[str, Any]]] = {}
        self.repo_details: Dict[str, Dict[str, Any]] = {}
        self.search_items: List[Dict[str, Any]] = []
        self.rate_limited: set = set()
        self.status_overrides: Dict[str, List[int]] = {}
        self.html_bodies: Dict[str, str] = {}
        self.remaining = 4999
        self.llm_replies: List[str] = []
        self.llm_default = "I could not produce JSON for this one."
        self.github_calls: List[str] = []
        self.llm_calls: List[Dict[str, Any]] = []
        self.transport = httpx.MockTransport(self.handle)

    def add_user(self, login: str, repos: Optional[List[Dict[str, Any]]] = None, **overrides: Any) -> None:
        self.users[login.lower()] = make_user(login, **overrides)
        self.repos[login.lower()] = repos if repos is not None else [make_repo(f"{login}-app")]

    def _headers(self) -> Dict[str, str]:
        return {
            "x-ratelimit-remaining": str(self.remaining),
            "x-ratelimit-reset": str(int(self.clock.now + 3600)),
        }

    def _json(self, payload: Any, status: int = 200) -> httpx.Response:
        return httpx.Response(status, json=payload, headers=self._headers())

    def calls_to(self, path: str) -> int:
        return sum(1 for p in self.github_calls if p.lower() == path.lower())

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.anthropic.com":
            self.llm_calls.append(json.loads(request.content))
            text = self.llm_replies.pop(0) if self.llm_replies else self.llm_default
            return httpx.Response(200, json={"content": [{"type": "text", "text": text}]})

        path = request.url.path
        self.github_calls.append(path)

        overrides = self.status_overrides.get(path)
        if overrides:
            return httpx.Response(overrides.pop(0), json={"message": "boom"}, headers=self._headers())
        if path in self.html_bodies:
            return httpx.Response(200, text=self.html_bodies[path], headers=self._headers())

        m = re.match(r"^/users/([^/]+)(/repos|/events/public)?$", path)
        if m:
            login = m.group(1).lower()
            if login in self.rate_limited:
                return httpx.Response(
                    403,
                    json={"message": "API rate limit exceeded"},
                    headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": str(int(self.clock.now + 600))},
                )
            if login not in self.users:
                return self._json({"message": "Not Found"}, 404)
            if m.group(2) == "/repos":
                return self._json(self.repos.get(login, []))
            if m.group(2) == "/events/public":
                return self._json(self.events.get(login, []))
            return self._json(self.users[login])

        m = re.match(r"^/repos/([^/]+/[^/]+)(/commits)?$", path)
        if m:
            full_name = m.group(1)
            if m.group(2):
                if full_name not in self.commits:
                    return self._json({"message": "Git Repository is empty."}, 409)
                return self._json(self.commits[full_name])
            if full_name not in self.repo_details:
                return self._json({"message": "Not Found"}, 404)
            return self._json(self.repo_details[full_name])

        if path == "/search/users":
            return self._json({"total_count": len(self.search_items), "items": self.search_items})

        return self._json({"message": "Not Found"}, 404)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps(clock) -> Sleeps:
    return Sleeps(clock)


@pytest.fixture
def upstream(clock) -> FakeUpstream:
    return FakeUpstream(clock)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        anthropic_api_key="test-key",
        github_retry_backoff=0.5,
        batch_delay_seconds=1.0,
        data_dir=str(tmp_path),
    )


@pytest.fixture
def context(settings, upstream, clock, sleeps) -> ExternalClientContext:
    return ExternalClientContext.from_settings(settings, transport=upstream.transport, clock=clock, sleep=sleeps)


PROFILE_REPLY = {
    "skills": ["Python", "FastAPI", "python", "PostgreSQL"],
    "proficiency_levels": {"Python": "Expert", "FastAPI": "intermediate", "PostgreSQL": "guru"},
    "strengths": ["API design"],
    "experience_summary": "Backend developer.",
    "notable_projects": ["api-server"],
}

MATCH_REPLY = {
    "match_score": 82,
    "matching_skills": ["Python"],
    "missing_skills": [],
    "strengths_for_role": ["API design"],
    "recommendation": "hire",
    "reasoning": "Strong backend fit.",
}
