from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ============================================================
# Error bodies
# ============================================================

class ErrorBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str = ""
    type: Optional[str] = None
    code: Optional[Union[int, str]] = None


class WrappedError(BaseModel):
    """Backends report failures as {"error": {...}}."""
    model_config = ConfigDict(extra="ignore")

    error: ErrorBody


# ============================================================
# /completion
# ============================================================

class CompletionRequest(BaseModel):
    # extra sampling options (top_k, min_p, ...) go through untouched
    model_config = ConfigDict(extra="allow")

    prompt: str
    n_predict: int = Field(default=-1, description="Tokens to generate; 0 only evaluates the prompt")
    temperature: Optional[float] = None
    stop: List[str] = Field(default_factory=list)
    grammar: Optional[str] = None
    cache_prompt: bool = True
    stream: bool = False


class CompletionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: str
    stop: bool = True
    tokens_predicted: int = 0
    tokens_evaluated: int = 0
    tokens_cached: int = 0
    stopped_eos: bool = False
    stopped_word: bool = False
    stopped_limit: bool = False
    stopping_word: str = ""


__all__ = [
    "ErrorBody",
    "WrappedError",
    "CompletionRequest",
    "CompletionResponse",
]
