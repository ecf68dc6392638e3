import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api.schemas import AnswerRequest, AnswerResponse, EnvStatus, ErrorResponse
from src.core.config import Settings, get_settings
from src.core.exceptions import DraftServiceError, ErrorKind
from src.llm.backends import build_backend
from src.llm.fetcher import AnswerDraftFetcher

# Logs
logging.basicConfig(level=get_settings().log_level)
for _noisy in ("httpx", "httpcore", "openai"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger("answer_api")

app = FastAPI(title="AI Answer Draft Service")


def _settings_for(request: Request) -> Settings:
    # Handlers run outside dependency injection, so overrides are resolved here
    provider = request.app.dependency_overrides.get(get_settings, get_settings)
    return provider()


def _error_response(
    status_code: int, error: str, details: Optional[str], settings: Settings
) -> JSONResponse:
    body = ErrorResponse(error=error, details=details if settings.is_development else None)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Invalid request body on {request.url.path}")
    return _error_response(400, "Invalid request format", None, _settings_for(request))


@app.exception_handler(DraftServiceError)
async def draft_service_exception_handler(request: Request, exc: DraftServiceError):
    logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")
    return _error_response(exc.kind.http_status, exc.message, exc.details, _settings_for(request))


@app.exception_handler(Exception)
async def unexpected_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error in {request.url.path}: {type(exc).__name__}", exc_info=True)
    return _error_response(
        500, "An unexpected error occurred. Please try again.", str(exc), _settings_for(request)
    )


async def get_fetcher(settings: Settings = Depends(get_settings)):
    """Per-request fetcher; the backend client is closed once the response is built."""
    async with build_backend(settings) as backend:
        yield AnswerDraftFetcher(
            backend,
            models=settings.candidate_models,
            timeout=settings.ai_timeout_seconds,
        )


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/check-env", response_model=EnvStatus)
def check_env(settings: Settings = Depends(get_settings)):
    api_key = settings.api_key
    return EnvStatus(
        provider=settings.ai_provider,
        has_api_key=api_key is not None,
        api_key_length=len(api_key) if api_key else 0,
        configured_vars=settings.configured_env_vars(),
    )


@app.post(
    "/api/answers/draft",
    response_model=AnswerResponse,
    responses={400: {"model": ErrorResponse}, 408: {"model": ErrorResponse},
               500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def draft_answer(
    request: AnswerRequest,
    fetcher: AnswerDraftFetcher = Depends(get_fetcher),
    settings: Settings = Depends(get_settings),
):
    result = await fetcher.fetch_draft_answer(request.question)

    if not result.ok:
        kind = result.error_kind or ErrorKind.ALL_BACKENDS_EXHAUSTED
        logger.info(f"Draft failed: {kind.value} after {len(result.attempts)} attempts ({result.duration_ms}ms)")
        return _error_response(kind.http_status, result.message, result.last_detail, settings)

    logger.info(f"Draft generated by {result.model} ({result.duration_ms}ms)")
    return AnswerResponse(reply=result.reply, model=result.model, duration_ms=result.duration_ms)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
