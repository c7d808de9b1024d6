# cascade/llm_interaction/__init__.py

"""
1) Client ----------- How requests reach the server
2) Retry ------------ When a failed request is worth another attempt
3) Adapter ---------- How a prompt becomes generated text
4) Prompt Builders -- How the conversation becomes a prompt


client.py
"How we talk to the completion server"
It is the transport layer. One configured host, JSON in, JSON out.
Every request is rebuilt per attempt and run through the backoff loop.
Transport failures and rejected requests surface on the first attempt,
rate limiting is retried until the elapsed budget runs out.


retry.py
"When to try again"
classify_response maps (status code, error body) to success, retry or fail.
ExponentialBackoff hands out the delays. Both are pure.


adapter.py
"How we ask for text"
Nothing above this layer builds CompletionRequest objects, everything just calls:
adapter.complete(...) or adapter.prime_cache(...)


prompt_builders.py
"How the conversation becomes a prompt"
Renders turns through a chat template and leaves the assistant turn open,
so a round's generation prefix is continued rather than answered.


errors.py / schemas.py / config.py
Exception taxonomy, pydantic wire shapes, and endpoint settings.
"""

from .adapter import LLMAdapter
from .client import LlamaClient
from .config import ApiConfig
from .errors import (
    ApiError,
    DeserializationError,
    LLMError,
    StepError,
    TransportError,
)
from .retry import ExponentialBackoff, RetryDecision, classify_response

__all__ = [
    "LLMAdapter",
    "LlamaClient",
    "ApiConfig",
    "ApiError",
    "DeserializationError",
    "LLMError",
    "StepError",
    "TransportError",
    "ExponentialBackoff",
    "RetryDecision",
    "classify_response",
]
