"""Asynchronous AI review of submitted course files.

A review moves a course file's ``ai_review`` through ``pending`` into one of
the terminal states ``complete`` or ``failed``. Re-requesting a review
restarts the cycle. Every request carries a generation number per course
file; only the newest generation may write its result back to the store.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Protocol, Set, Tuple

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, Field

from ..config import API_KEY_ENV, ReviewConfig
from .events import emit_task_event
from .models import AiReview, Correction, CourseFile
from .notifications import NotificationQueue
from .store import DomainStore

if TYPE_CHECKING:
    from ..context import PortalContext


LOGGER = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = f"AI review is unavailable. Set {API_KEY_ENV} to enable it."
FAILED_SUMMARY = "The AI review could not be completed. Please try again later."

# Fixed excerpt sent with every request; the misspellings are intentional.
SAMPLE_CONTENT = (
    "Unit 1: Introduction to the subject, core terminology and historical context.\n"
    "Unit 2: Fundamental techniques with worked examples and practise problems.\n"
    "Unit 3: Applications, case studies and a mini project.\n"
    "Assessment: two internal tests, one assignment, end semester examination.\n"
    "Refrence books: listed in the syllabus apendix."
)


class ReviewProviderError(RuntimeError):
    """Raised by providers when the external call cannot produce content."""


class CorrectionPayload(BaseModel):
    original: str
    corrected: str


class ReviewResult(BaseModel):
    """Structured document expected back from the provider."""

    summary: str
    suggestions: List[str]
    corrections: List[CorrectionPayload] = Field(default_factory=list)

    def to_review(self) -> AiReview:
        return AiReview(
            summary=self.summary,
            suggestions=list(self.suggestions),
            corrections=[
                Correction(original=item.original, corrected=item.corrected)
                for item in self.corrections
            ],
            status="complete",
        )


REVIEW_DIRECTIVE = (
    "You review course files submitted by faculty. Reply with a single JSON object "
    "matching this schema and nothing else: "
    + json.dumps(ReviewResult.model_json_schema(), separators=(",", ":"))
)


@dataclass(frozen=True)
class ReviewRequest:
    subject: str
    content: str
    directive: str = REVIEW_DIRECTIVE


class ReviewProvider(Protocol):
    async def review(self, request: ReviewRequest) -> str:
        """Return the raw structured document for *request*."""
        ...


class OpenAIReviewProvider:
    """Review provider backed by the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key)
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    async def review(self, request: ReviewRequest) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": request.directive},
                    {"role": "user", "content": f"Subject: {request.subject}\n\n{request.content}"},
                ],
                response_format={"type": "json_object"},
            )
        except OpenAIError as error:
            raise ReviewProviderError(f"{error.__class__.__name__}: {error}") from error

        if not response.choices:
            raise ReviewProviderError("Provider returned no choices")
        content = response.choices[0].message.content
        if not content:
            raise ReviewProviderError("Provider returned an empty message")
        return content


def build_review_provider(config: ReviewConfig) -> Optional[ReviewProvider]:
    """Return a provider for *config*, or ``None`` when reviews are disabled."""

    if not config.enabled:
        LOGGER.warning("%s is not set. AI review will be disabled.", API_KEY_ENV)
        return None
    try:
        return OpenAIReviewProvider(config.api_key or "", model=config.model)
    except OpenAIError as error:
        LOGGER.error("Failed to initialise the review client; AI review disabled: %s", error)
        return None


def build_review_request(course_file: CourseFile) -> ReviewRequest:
    attachments = ", ".join(item.name for item in course_file.files) or "none"
    content = (
        f"Course file for {course_file.subject} (semester {course_file.semester}), "
        f"submitted by {course_file.faculty_name}, {course_file.department}.\n"
        f"Attachments: {attachments}\n\n{SAMPLE_CONTENT}"
    )
    return ReviewRequest(subject=course_file.subject, content=content)


class ReviewCoordinator:
    """Run reviews against the store and keep their lifecycle consistent."""

    def __init__(
        self,
        store: DomainStore,
        notifications: NotificationQueue,
        *,
        provider: Optional[ReviewProvider] = None,
        timeout: float = 60.0,
    ) -> None:
        self._store = store
        self._notifications = notifications
        self._provider = provider
        self._timeout = timeout
        self._generations: Dict[str, int] = {}
        self._tasks: Set["asyncio.Task[Optional[AiReview]]"] = set()

    @property
    def available(self) -> bool:
        return self._provider is not None

    @property
    def in_flight(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    def generation(self, course_file_id: str) -> int:
        return self._generations.get(course_file_id, 0)

    def _apply(self, course_file_id: str, review: AiReview) -> bool:
        if self._store.find_course_file(course_file_id) is None:
            return False
        self._store.replace(
            "course_files",
            lambda files: [
                dataclasses.replace(item, ai_review=review) if item.id == course_file_id else item
                for item in files
            ],
        )
        return True

    def begin(self, course_file_id: str) -> Optional[Tuple[int, ReviewRequest]]:
        """Move the course file to ``pending`` and return its generation and request."""

        if self._provider is None:
            self._notifications.push(UNAVAILABLE_MESSAGE, "warning")
            return None

        course_file = self._store.find_course_file(course_file_id)
        if course_file is None:
            LOGGER.debug("Review requested for unknown course file %s", course_file_id)
            return None

        generation = self.generation(course_file_id) + 1
        self._generations[course_file_id] = generation
        self._apply(course_file_id, AiReview(summary="", suggestions=[], status="pending"))
        emit_task_event(
            "pending",
            "AI review started",
            course_file=course_file_id,
            generation=generation,
        )
        return generation, build_review_request(course_file)

    async def _run(
        self,
        course_file_id: str,
        generation: int,
        request: ReviewRequest,
    ) -> Optional[AiReview]:
        assert self._provider is not None
        start = time.perf_counter()
        error_text: Optional[str] = None
        try:
            raw = await asyncio.wait_for(self._provider.review(request), timeout=self._timeout)
            review = ReviewResult.model_validate_json(raw).to_review()
        except asyncio.TimeoutError:
            error_text = f"timed out after {self._timeout:g}s"
            review = AiReview(summary=FAILED_SUMMARY, suggestions=[], status="failed")
        except Exception as error:  # noqa: BLE001 - provider failures become the failed state
            error_text = f"{error.__class__.__name__}: {error}"
            review = AiReview(summary=FAILED_SUMMARY, suggestions=[], status="failed")
        duration_ms = (time.perf_counter() - start) * 1000.0

        if self.generation(course_file_id) != generation:
            emit_task_event(
                "stale",
                "Discarded superseded AI review",
                course_file=course_file_id,
                generation=generation,
                duration_ms=duration_ms,
            )
            return None

        if not self._apply(course_file_id, review):
            LOGGER.info("Course file %s disappeared during review", course_file_id)
            return None

        if review.status == "complete":
            self._notifications.push(f"AI review completed for {request.subject}.", "success")
            emit_task_event(
                "complete",
                "AI review finished",
                course_file=course_file_id,
                generation=generation,
                duration_ms=duration_ms,
            )
        else:
            self._notifications.push(f"AI review failed for {request.subject}.", "error")
            emit_task_event(
                "failed",
                "AI review failed",
                course_file=course_file_id,
                generation=generation,
                error=error_text,
                duration_ms=duration_ms,
                level=logging.WARNING,
            )
        return review

    async def request(self, course_file_id: str) -> Optional[AiReview]:
        """Run a review to completion; returns the applied review, if any."""

        started = self.begin(course_file_id)
        if started is None:
            return None
        generation, request = started
        return await self._run(course_file_id, generation, request)

    def start(self, course_file_id: str) -> Optional["asyncio.Task[Optional[AiReview]]"]:
        """Apply ``pending`` now and finish the review in a background task.

        Must be called from a running event loop.
        """

        loop = asyncio.get_running_loop()
        started = self.begin(course_file_id)
        if started is None:
            return None
        generation, request = started
        task = loop.create_task(
            self._run(course_file_id, generation, request),
            name=f"ai-review-{course_file_id}-{generation}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for every background review started via :meth:`start`."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


async def request_review(ctx: "PortalContext", course_file_id: str) -> Optional[AiReview]:
    return await ctx.reviews.request(course_file_id)


def start_review(
    ctx: "PortalContext", course_file_id: str
) -> Optional["asyncio.Task[Optional[AiReview]]"]:
    return ctx.reviews.start(course_file_id)


__all__ = [
    "OpenAIReviewProvider",
    "ReviewCoordinator",
    "ReviewProvider",
    "ReviewProviderError",
    "ReviewRequest",
    "ReviewResult",
    "build_review_provider",
    "build_review_request",
    "request_review",
    "start_review",
]
