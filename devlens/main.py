import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .context import ExternalClientContext
from .errors import DevLensError, NotFoundError, RateLimitedError
from .models.schemas import (
    AnalyzeRequest,
    BatchCompareRequest,
    BatchResult,
    CodeDNA,
    ContributionSummary,
    InterviewQuestionSet,
    InterviewQuestionsRequest,
    MatchRequest,
    MatchVerdict,
    Profile,
    SavedAnalysis,
    SavedAnalysisIn,
    SearchCriteria,
    SearchResult,
)
from .services.batch_comparator import BatchComparator
from .services.candidate_search import CandidateSearch
from .services.code_dna import CodeDNAAnalyzer
from .services.contributions import ContributionsAnalyzer
from .services.github_client import GitHubClient
from .services.interview_questions import InterviewQuestionGenerator
from .services.job_matcher import JobMatcher
from .services.llm_client import LLMClient
from .services.profile_analyzer import ProfileAnalyzer
from .settings import Settings
from .storage import AnalysisStore
from .utils import clean_identifier

logger = logging.getLogger(__name__)

origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


def create_app(context: Optional[ExternalClientContext] = None, store: Optional[AnalysisStore] = None) -> FastAPI:
    if context is None:
        settings = Settings.from_env()
        logging.basicConfig(
            level=getattr(logging, settings.log_level, logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        context = ExternalClientContext.from_settings(settings)
    if store is None:
        store = AnalysisStore(context.settings.data_dir, context.settings.database_url)

    github = GitHubClient(context)
    llm = LLMClient(context)
    analyzer = ProfileAnalyzer(context, github=github, llm=llm)
    matcher = JobMatcher(context, llm=llm)
    comparator = BatchComparator(context, analyzer=analyzer, matcher=matcher)
    search = CandidateSearch(context, github=github)
    dna = CodeDNAAnalyzer(context, github=github, llm=llm)
    questions = InterviewQuestionGenerator(context, llm=llm)
    contributions = ContributionsAnalyzer(context, github=github)

    app = FastAPI(title="DevLens API", version="1.0.0")
    app.state.context = context
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DevLensError)
    async def devlens_error_handler(request: Request, exc: DevLensError) -> JSONResponse:
        content: Dict[str, Any] = {"error": exc.message}
        headers = {}
        if isinstance(exc, RateLimitedError) and exc.retry_after is not None:
            content["retryAfter"] = round(exc.retry_after)
            headers["Retry-After"] = str(round(exc.retry_after))
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ())[1:])}: {e.get('msg')}" for e in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {details}"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("%s %s failed", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.post("/api/analyze-github", response_model=Profile)
    async def analyze_profile(body: AnalyzeRequest) -> Profile:
        return await analyzer.analyze(body.username)

    @app.post("/api/match-job", response_model=MatchVerdict)
    async def match_job(body: MatchRequest) -> MatchVerdict:
        return await matcher.match(body.profile, body.job_description)

    @app.post("/api/batch-compare", response_model=BatchResult)
    async def batch_compare(body: BatchCompareRequest) -> BatchResult:
        return await comparator.compare_all(body.usernames, body.job_description)

    @app.post("/api/search-developers", response_model=SearchResult)
    async def search_developers(body: SearchCriteria) -> SearchResult:
        return await search.search(body)

    @app.post("/api/code-dna", response_model=CodeDNA)
    async def code_dna(body: AnalyzeRequest) -> CodeDNA:
        return await dna.analyze(body.username)

    @app.post("/api/interview-questions", response_model=InterviewQuestionSet)
    async def interview_questions(body: InterviewQuestionsRequest) -> InterviewQuestionSet:
        return await questions.generate(body.profile, body.job_description)

    @app.get("/api/contributions/{username}", response_model=ContributionSummary)
    async def open_source_contributions(username: str) -> ContributionSummary:
        return await contributions.summarize(username)

    @app.get("/api/cache/status")
    async def cache_status() -> Dict[str, Any]:
        return {**context.cache.status(), "rateLimit": context.github_limiter.status()}

    @app.delete("/api/cache")
    async def clear_cache(username: Optional[str] = Query(None)) -> Dict[str, Any]:
        key = clean_identifier(username) if username and username.strip() else None
        context.cache.invalidate(key)
        return {"cleared": key or "all"}

    @app.post("/api/analyses", response_model=SavedAnalysis)
    def save_analysis(body: SavedAnalysisIn) -> SavedAnalysis:
        return store.save(body)

    @app.get("/api/analyses", response_model=List[SavedAnalysis])
    def list_analyses() -> List[SavedAnalysis]:
        return store.list()

    @app.get("/api/analyses/{analysis_id}", response_model=SavedAnalysis)
    def get_analysis(analysis_id: int) -> SavedAnalysis:
        saved = store.get(analysis_id)
        if saved is None:
            raise NotFoundError(f"Analysis {analysis_id} not found")
        return saved

    @app.delete("/api/analyses/{analysis_id}")
    def delete_analysis(analysis_id: int) -> Dict[str, Any]:
        if not store.delete(analysis_id):
            raise NotFoundError(f"Analysis {analysis_id} not found")
        return {"deleted": analysis_id}

    return app


app = create_app()
