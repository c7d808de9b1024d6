from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Mapping, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError

from .config import ApiConfig
from .errors import ApiError, TransportError, map_deserialization_error
from .retry import ExponentialBackoff, RetryDecision, classify_response
from .schemas import CompletionRequest, CompletionResponse, ErrorBody, WrappedError

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)
RequestMaker = Callable[[], httpx.Request]


class LlamaClient:
    """
    HTTP gateway to a single completion server.

    Every call goes through ``execute_raw``: rate limiting is retried with
    exponential backoff inside a wall-clock budget, anything else surfaces
    on the first attempt.
    """

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        *,
        backoff: Optional[ExponentialBackoff] = None,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.config = config or ApiConfig()
        self.backoff = backoff or ExponentialBackoff()
        self.http_client = http_client or httpx.Client(timeout=self.config.timeout)
        self._sleep = sleep
        self._clock = clock
        self._rng = rng

    def close(self) -> None:
        self.http_client.close()

    def __enter__(self) -> "LlamaClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -------------------------------------------------

    def completion(self, request: CompletionRequest) -> CompletionResponse:
        return self.post("/completion", request, CompletionResponse)

    def post(
        self,
        path: str,
        payload: Union[BaseModel, Mapping[str, Any]],
        response_model: Type[ResponseT],
    ) -> ResponseT:
        """Make a POST request to ``path`` and deserialize the response body."""
        if isinstance(payload, BaseModel):
            body = payload.model_dump(exclude_none=True)
        else:
            body = dict(payload)

        # rebuilt on every attempt
        def request_maker() -> httpx.Request:
            return self.http_client.build_request(
                "POST",
                self.config.url(path),
                params=self.config.query(),
                headers=self.config.headers(),
                json=body,
            )

        return self.execute(request_maker, response_model)

    def execute(self, request_maker: RequestMaker, response_model: Type[ResponseT]) -> ResponseT:
        content = self.execute_raw(request_maker)
        try:
            return response_model.model_validate_json(content)
        except ValidationError as exc:
            raise map_deserialization_error(exc, content) from exc

    def execute_raw(self, request_maker: RequestMaker) -> bytes:
        started = self._clock()
        retry_index = 0

        while True:
            request = request_maker()
            try:
                response = self.http_client.send(request)
                content = response.read()
            except httpx.HTTPError as exc:
                raise TransportError(f"{request.method} {request.url} failed: {exc}", cause=exc) from exc

            status = response.status_code
            if classify_response(status) is RetryDecision.SUCCESS:
                logger.debug("[HTTP] %s %s -> %s", request.method, request.url.path, status)
                return content

            error = _parse_error_body(content)
            api_error = ApiError(
                error.message or response.reason_phrase,
                status_code=status,
                type=error.type,
                code=error.code,
            )

            if classify_response(status, error) is RetryDecision.FAIL:
                raise api_error

            delay = self.backoff.next_delay(retry_index, self._clock() - started, rng=self._rng)
            if delay is None:
                logger.warning("Rate limited and out of retry budget: %s", error.message)
                raise api_error

            logger.warning("Rate limited: %s (retry %d in %.2fs)", error.message, retry_index + 1, delay)
            self._sleep(delay)
            retry_index += 1


def _parse_error_body(content: bytes) -> ErrorBody:
    try:
        return WrappedError.model_validate_json(content).error
    except ValidationError as exc:
        raise map_deserialization_error(exc, content) from exc


__all__ = ["LlamaClient"]
