import logging
from typing import Callable, List, Optional

from ..context import ExternalClientContext
from ..errors import DevLensError, InvalidInputError, NotFoundError, RateLimitedError
from ..models.schemas import BatchError, BatchResult, CandidateRanking
from ..utils import cache_key
from .job_matcher import JobMatcher
from .profile_analyzer import ProfileAnalyzer

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str], None]

SKIP_REASON = "Skipped: GitHub API rate limit reached earlier in this batch"


class BatchComparator:
    """Analyze and match up to `max_batch_size` candidates, then rank them.

    Candidates are processed one at a time, spaced by the batch limiter. A
    failure is recorded against its candidate only. Once one candidate hits the
    upstream rate limit, every candidate not yet attempted is recorded as
    skipped without touching the network.
    """

    def __init__(self, context: ExternalClientContext, analyzer: ProfileAnalyzer = None, matcher: JobMatcher = None):
        self.context = context
        self.settings = context.settings
        self.analyzer = analyzer or ProfileAnalyzer(context)
        self.matcher = matcher or JobMatcher(context)

    def _clean(self, identifiers: List[str]) -> List[str]:
        seen = set()
        out: List[str] = []
        for identifier in identifiers or []:
            if not isinstance(identifier, str) or not identifier.strip():
                continue
            value = identifier.strip()
            if cache_key(value) in seen:
                continue
            seen.add(cache_key(value))
            out.append(value)
        return out

    async def compare_all(
        self,
        identifiers: List[str],
        job_description: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchResult:
        usernames = self._clean(identifiers)
        if not usernames:
            raise InvalidInputError("At least one username is required")
        if len(usernames) > self.settings.max_batch_size:
            raise InvalidInputError(f"At most {self.settings.max_batch_size} usernames can be compared at once")
        if not job_description or not job_description.strip():
            raise InvalidInputError("Job description is required")

        def notify(username: str, status: str) -> None:
            if on_progress is not None:
                on_progress(username, status)

        limiter = self.context.batch_limiter()
        scored: List[tuple] = []
        errors: List[BatchError] = []
        rate_limited = False

        for i, username in enumerate(usernames):
            if rate_limited:
                errors.append(BatchError(identifier=username, reason=SKIP_REASON, kind="skipped"))
                notify(username, "skipped")
                continue

            logger.info("Batch %d/%d: %s", i + 1, len(usernames), username)
            try:
                async with limiter.permit():
                    notify(username, "analyzing")
                    profile = await self.analyzer.analyze(username)
                    notify(username, "matching")
                    verdict = await self.matcher.match(profile, job_description)
            except RateLimitedError as e:
                rate_limited = True
                logger.warning("Batch rate limited at %s; skipping %d remaining", username, len(usernames) - i - 1)
                errors.append(BatchError(identifier=username, reason=e.message, kind="rate_limited"))
                notify(username, "error")
                continue
            except NotFoundError as e:
                errors.append(BatchError(identifier=username, reason=e.message, kind="not_found"))
                notify(username, "error")
                continue
            except InvalidInputError as e:
                errors.append(BatchError(identifier=username, reason=e.message, kind="invalid"))
                notify(username, "error")
                continue
            except DevLensError as e:
                logger.warning("Batch candidate %s failed: %s", username, e.message)
                errors.append(BatchError(identifier=username, reason=e.message, kind="error"))
                notify(username, "error")
                continue
            except Exception as e:
                logger.exception("Unexpected failure analyzing %s", username)
                errors.append(BatchError(identifier=username, reason=str(e) or type(e).__name__, kind="error"))
                notify(username, "error")
                continue

            scored.append((profile, verdict))
            notify(username, "complete")

        # sorted() is stable: equal scores keep input order
        ranked = sorted(scored, key=lambda pair: pair[1].score, reverse=True)
        rankings = [
            CandidateRanking(**verdict.model_dump(), rank=rank, profile=profile)
            for rank, (profile, verdict) in enumerate(ranked, start=1)
        ]
        return BatchResult(
            candidates=rankings,
            errors=errors,
            total_analyzed=len(rankings),
            total_failed=len(errors),
        )
