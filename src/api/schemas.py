from pydantic import BaseModel
from typing import List, Optional


class AnswerRequest(BaseModel):
    # Blank questions are rejected by the fetcher with a 400, not by validation
    question: str


class AnswerResponse(BaseModel):
    reply: str
    model: str
    duration_ms: float


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class EnvStatus(BaseModel):
    provider: str
    has_api_key: bool
    api_key_length: int
    configured_vars: List[str]
