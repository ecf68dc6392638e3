import asyncio
import logging
import time
from typing import List, Literal, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from src.core.exceptions import BackendError, BackendTimeoutError, ErrorKind
from src.llm.backends import TextGenerationBackend
from src.llm.prompt import build_answer_prompt
from src.utils.timing import measure_latency

logger = logging.getLogger(__name__)

AttemptKind = Literal["Timeout", "BackendError", "EmptyReply"]

_FAILURE_MESSAGES = {
    ErrorKind.INVALID_INPUT: "Question is required and must be a non-empty string",
    ErrorKind.TIMEOUT: (
        "The AI service is taking too long to respond. "
        "Please try with a shorter question or try again later."
    ),
    ErrorKind.BACKEND_ERROR: "AI models are temporarily unavailable. Please try again later.",
    ErrorKind.ALL_BACKENDS_EXHAUSTED: "AI service could not generate an answer. Please try again.",
}


class Attempt(BaseModel):
    """Outcome of one failed candidate attempt."""

    model: str
    kind: AttemptKind
    status_code: Optional[int] = None
    detail: Optional[str] = None


class AnswerResult(BaseModel):
    ok: bool
    reply: Optional[str] = None
    model: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    attempts: List[Attempt] = Field(default_factory=list)
    duration_ms: float = 0.0

    @classmethod
    def success(cls, reply: str, model: str, attempts: List[Attempt]) -> "AnswerResult":
        return cls(ok=True, reply=reply, model=model, attempts=attempts)

    @classmethod
    def failure(cls, kind: ErrorKind, attempts: Optional[List[Attempt]] = None) -> "AnswerResult":
        return cls(ok=False, error_kind=kind, message=_FAILURE_MESSAGES[kind], attempts=attempts or [])

    @property
    def last_detail(self) -> Optional[str]:
        if not self.attempts:
            return None
        last = self.attempts[-1]
        if last.status_code is not None:
            return f"{last.model}: {last.kind} ({last.status_code}) {last.detail or ''}".strip()
        return f"{last.model}: {last.kind} {last.detail or ''}".strip()


def terminal_kind(attempts: Sequence[Attempt]) -> ErrorKind:
    """Classify an exhausted run by its last recorded condition."""
    if not attempts:
        return ErrorKind.ALL_BACKENDS_EXHAUSTED
    last = attempts[-1].kind
    if last == "Timeout":
        return ErrorKind.TIMEOUT
    if last == "BackendError":
        return ErrorKind.BACKEND_ERROR
    return ErrorKind.ALL_BACKENDS_EXHAUSTED


class AnswerDraftFetcher:
    """
    Drafts an answer by trying candidate models in order.

    Candidates are attempted strictly one after another; the first non-empty
    reply wins. Each attempt is bounded by its own timeout, and a failed model
    is never retried within the same call.
    """

    def __init__(
        self,
        backend: TextGenerationBackend,
        models: Sequence[str],
        timeout: float = 25.0,
        model_timeouts: Optional[Mapping[str, float]] = None,
    ):
        self.backend = backend
        self.models = list(models)
        self.timeout = timeout
        self.model_timeouts = dict(model_timeouts or {})

    def timeout_for(self, model: str) -> float:
        return self.model_timeouts.get(model, self.timeout)

    @measure_latency
    async def fetch_draft_answer(self, question) -> AnswerResult:
        if not isinstance(question, str) or not question.strip():
            logger.warning("Rejected blank question")
            return AnswerResult.failure(ErrorKind.INVALID_INPUT)

        logger.info(f"Processing question ({len(question)} chars)")
        prompt = build_answer_prompt(question)
        attempts: List[Attempt] = []

        for model in self.models:
            timeout = self.timeout_for(model)
            start = time.perf_counter()
            logger.info(f"Attempting with model: {model} (timeout {timeout}s)")
            try:
                text = await asyncio.wait_for(self.backend.generate(model, prompt), timeout=timeout)
            except (asyncio.TimeoutError, BackendTimeoutError):
                logger.warning(f"Timeout with {model}, trying next model...")
                attempts.append(Attempt(model=model, kind="Timeout"))
                continue
            except BackendError as e:
                logger.warning(f"Model {model} failed: {e}")
                attempts.append(
                    Attempt(model=model, kind="BackendError", status_code=e.status_code, detail=e.details)
                )
                continue
            except Exception as e:
                logger.error(f"Unexpected error from {model}: {type(e).__name__}: {e}", exc_info=True)
                attempts.append(Attempt(model=model, kind="BackendError", detail=type(e).__name__))
                continue

            reply = text.strip() if isinstance(text, str) else ""
            if not reply:
                logger.warning(f"Empty response from {model}, trying next model...")
                attempts.append(Attempt(model=model, kind="EmptyReply"))
                continue

            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.info(f"Success with {model} ({elapsed_ms:.0f}ms, {len(reply)} chars)")
            return AnswerResult.success(reply, model, attempts)

        kind = terminal_kind(attempts)
        logger.error(f"All models failed ({len(attempts)} attempts). Terminal condition: {kind.value}")
        return AnswerResult.failure(kind, attempts)
