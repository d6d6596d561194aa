import inspect

import pytest
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from devlens.conftest import MATCH_REPLY, PROFILE_REPLY, fenced, make_repo
from devlens.main import create_app
from devlens.storage import AnalysisStore


@pytest.fixture
def client(context, tmp_path):
    return TestClient(create_app(context, AnalysisStore(str(tmp_path))))


@pytest.fixture
def profile_json(client, upstream):
    upstream.add_user("octocat", repos=[make_repo("api-server", "Python", 200)])
    upstream.llm_replies.append(fenced(PROFILE_REPLY))
    return client.post("/api/analyze-github", json={"username": "octocat"}).json()


class TestAnalyzeRoute:
    def test_returns_camel_case_profile(self, profile_json):
        assert profile_json["identifier"] == "octocat"
        assert profile_json["displayName"] == "Octocat"
        assert profile_json["languages"][0] == {"name": "Python", "percentage": 100.0, "color": "#3776ab"}
        assert profile_json["proficiencyLevels"]["Python"] == "expert"
        assert profile_json["source"] == "model"

    def test_unknown_user_is_404(self, client):
        resp = client.post("/api/analyze-github", json={"username": "ghost"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "GitHub user 'ghost' not found"}

    def test_rate_limit_is_429_with_retry_after(self, client, upstream):
        upstream.add_user("octocat")
        upstream.rate_limited.add("octocat")
        resp = client.post("/api/analyze-github", json={"username": "octocat"})
        assert resp.status_code == 429
        assert resp.json()["retryAfter"] == 600
        assert resp.headers["retry-after"] == "600"

    def test_upstream_outage_is_500(self, client, upstream):
        upstream.add_user("octocat")
        upstream.status_overrides["/users/octocat"] = [503, 503, 503]
        resp = client.post("/api/analyze-github", json={"username": "octocat"})
        assert resp.status_code == 500
        assert "error" in resp.json()

    def test_non_json_upstream_body_is_json_500(self, client, upstream):
        upstream.add_user("octocat")
        upstream.html_bodies["/users/octocat"] = "<html>maintenance</html>"
        resp = client.post("/api/analyze-github", json={"username": "octocat"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "GitHub returned a non-JSON response for /users/octocat"}

    @pytest.mark.parametrize("body", [{"username": "  "}, {"username": "bad/name"}, {}])
    def test_bad_input_is_400(self, client, body):
        resp = client.post("/api/analyze-github", json=body)
        assert resp.status_code == 400
        assert "error" in resp.json()


class TestMatchRoutes:
    def test_match_job(self, client, upstream, profile_json):
        upstream.llm_replies.append(fenced(MATCH_REPLY))
        resp = client.post("/api/match-job", json={"profile": profile_json, "jobDescription": "Python backend"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["score"] == 82
        assert body["matchingSkills"] == ["Python"]
        assert body["strengthsForRole"] == ["API design"]

    def test_match_job_requires_description(self, client, profile_json):
        resp = client.post("/api/match-job", json={"profile": profile_json, "jobDescription": "  "})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Job description is required"}

    def test_batch_compare(self, client, upstream):
        upstream.add_user("alice")
        upstream.add_user("bob")
        upstream.llm_replies.extend([
            "profile text", fenced(dict(MATCH_REPLY, match_score=55)),
            "profile text", fenced(dict(MATCH_REPLY, match_score=91)),
        ])
        resp = client.post("/api/batch-compare", json={
            "usernames": ["alice", "ghost", "bob"], "jobDescription": "Python backend",
        })
        assert resp.status_code == 200
        body = resp.json()
        assert [(c["profile"]["identifier"], c["rank"]) for c in body["candidates"]] == [("bob", 1), ("alice", 2)]
        assert body["errors"] == [{"identifier": "ghost", "reason": "GitHub user 'ghost' not found", "kind": "not_found"}]
        assert (body["totalAnalyzed"], body["totalFailed"]) == (2, 1)

    def test_batch_compare_too_many(self, client):
        resp = client.post("/api/batch-compare", json={
            "usernames": [f"u{i}" for i in range(21)], "jobDescription": "x",
        })
        assert resp.status_code == 400

    def test_interview_questions(self, client, profile_json):
        resp = client.post("/api/interview-questions", json={"profile": profile_json})
        assert resp.status_code == 200
        body = resp.json()
        assert body["source"] == "fallback"
        assert body["questions"][0]["followUp"]


class TestLookupRoutes:
    def test_search_developers(self, client, upstream):
        upstream.add_user("alice")
        upstream.search_items = [{"login": "alice"}]
        resp = client.post("/api/search-developers", json={"skills": ["rust"], "minRepos": 2})
        assert resp.status_code == 200
        assert resp.json()["candidates"][0]["identifier"] == "alice"

    def test_search_requires_skills(self, client):
        assert client.post("/api/search-developers", json={"skills": []}).status_code == 400

    def test_code_dna(self, client, upstream):
        upstream.add_user("octocat")
        resp = client.post("/api/code-dna", json={"username": "octocat"})
        assert resp.status_code == 200
        assert "technicalDNA" in resp.json()

    def test_contributions(self, client, upstream):
        upstream.add_user("octocat")
        resp = client.get("/api/contributions/octocat")
        assert resp.status_code == 200
        assert resp.json()["totalContributions"] == 0


class TestCacheRoutes:
    def test_status_and_clear(self, client, upstream, profile_json):
        status = client.get("/api/cache/status").json()
        assert (status["rawData"], status["profiles"]) == (1, 1)
        assert status["rateLimit"]["remaining"] == 4999

        assert client.delete("/api/cache", params={"username": "OctoCat"}).json() == {"cleared": "OctoCat"}
        status = client.get("/api/cache/status").json()
        assert (status["rawData"], status["profiles"]) == (0, 0)

        client.post("/api/analyze-github", json={"username": "octocat"})
        assert upstream.calls_to("/users/octocat") == 2

    def test_clear_all(self, client, profile_json):
        assert client.delete("/api/cache").json() == {"cleared": "all"}
        assert client.get("/api/cache/status").json()["profiles"] == 0

    def test_clear_normalizes_username(self, client, profile_json):
        assert client.delete("/api/cache", params={"username": " @OctoCat "}).json() == {"cleared": "OctoCat"}
        status = client.get("/api/cache/status").json()
        assert (status["rawData"], status["profiles"]) == (0, 0)

    def test_clear_rejects_malformed_username(self, client, profile_json):
        resp = client.delete("/api/cache", params={"username": "bad/name"})
        assert resp.status_code == 400
        assert "error" in resp.json()
        assert client.get("/api/cache/status").json()["profiles"] == 1

    def test_cache_routes_run_on_the_event_loop(self, client):
        endpoints = {
            (route.path, method): route.endpoint
            for route in client.app.routes
            if isinstance(route, APIRoute)
            for method in route.methods
        }
        assert inspect.iscoroutinefunction(endpoints[("/api/cache/status", "GET")])
        assert inspect.iscoroutinefunction(endpoints[("/api/cache", "DELETE")])


class TestUnhandledErrors:
    def test_unexpected_exception_is_json_500(self, context, tmp_path, monkeypatch):
        def broken_status():
            raise RuntimeError("cache exploded")

        monkeypatch.setattr(context.cache, "status", broken_status)
        client = TestClient(create_app(context, AnalysisStore(str(tmp_path))), raise_server_exceptions=False)
        resp = client.get("/api/cache/status")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}


class TestSavedAnalyses:
    def test_crud(self, client, profile_json):
        resp = client.post("/api/analyses", json={"identifier": "octocat", "profileSnapshot": profile_json})
        assert resp.status_code == 200
        saved = resp.json()
        assert saved["id"] == 1
        assert "createdAt" in saved

        assert [a["id"] for a in client.get("/api/analyses").json()] == [1]
        assert client.get("/api/analyses/1").json()["profileSnapshot"]["identifier"] == "octocat"
        assert client.delete("/api/analyses/1").json() == {"deleted": 1}
        missing = client.get("/api/analyses/1")
        assert missing.status_code == 404
        assert missing.json() == {"error": "Analysis 1 not found"}
