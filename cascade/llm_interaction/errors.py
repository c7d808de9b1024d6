from __future__ import annotations

from typing import Optional


class LLMError(RuntimeError):
    """Base class for every failure raised by the cascade stack."""


class ApiError(LLMError):
    """The backend answered with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        type: Optional[str] = None,
        code: Optional[int | str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.type = type
        self.code = code

    def __str__(self) -> str:
        label = f"HTTP {self.status_code}" if self.status_code is not None else "API"
        if self.type:
            return f"{label} ({self.type}): {self.message}"
        return f"{label}: {self.message}"


class TransportError(LLMError):
    """Connection, DNS, TLS or timeout failure before a response arrived."""

    def __init__(self, message: str, *, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.cause = cause


class DeserializationError(LLMError):
    """Response bytes do not match the expected shape."""

    def __init__(self, message: str, *, content: bytes = b"") -> None:
        super().__init__(message)
        self.content = content


class StepError(LLMError):
    """Raised when a step cannot produce, format or prime its outcome."""


def map_deserialization_error(exc: Exception, content: bytes) -> DeserializationError:
    preview = content[:200].decode("utf-8", errors="replace")
    return DeserializationError(
        f"Failed to deserialize response: {exc} (body: {preview!r})",
        content=content,
    )


__all__ = [
    "LLMError",
    "ApiError",
    "TransportError",
    "DeserializationError",
    "StepError",
    "map_deserialization_error",
]
