from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Sequence

from .client import LlamaClient
from .errors import LLMError
from .schemas import CompletionRequest

logger = logging.getLogger(__name__)


class LLMAdapter:
    """
    Thin gateway around the completion client.
    Turns a rendered prompt plus sampling options into generated text.
    """

    def __init__(
        self,
        client: Optional[LlamaClient] = None,
        *,
        default_options: Optional[Mapping[str, Any]] = None,
        stage_options: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> None:
        self.client = client or LlamaClient()
        self.default_options = dict(default_options or {})
        self.stage_options = dict(stage_options or {})

    # -------------------------------------------------

    def complete(
        self,
        stage: str,
        prompt: str,
        *,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        stop: Sequence[str] = (),
        grammar: Optional[str] = None,
        cache_prompt: bool = True,
    ) -> str:
        # call arguments win over stage options, which win over defaults
        options = self._stage_options(stage)
        options.update(prompt=prompt, cache_prompt=cache_prompt)
        if stop:
            options["stop"] = list(stop)
        if grammar is not None:
            options["grammar"] = grammar
        if max_tokens is not None:
            options["n_predict"] = max_tokens
        if temperature is not None:
            options["temperature"] = temperature

        request = CompletionRequest(**options)

        logger.info("[%s] completion started (%s prompt chars)", stage.upper(), len(prompt))
        response = self.client.completion(request)
        logger.info(
            "[%s] completion finished (%s tokens, %s cached)",
            stage.upper(),
            response.tokens_predicted,
            response.tokens_cached,
        )
        return response.content

    def prime_cache(self, stage: str, prompt: str) -> None:
        """Evaluate ``prompt`` into the server's cache without generating."""
        request = CompletionRequest(prompt=prompt, n_predict=0, cache_prompt=True)
        logger.info("[%s] priming cache (%s prompt chars)", stage.upper(), len(prompt))
        response = self.client.completion(request)
        if response.tokens_predicted:
            raise LLMError(
                f"Stage '{stage}' generated {response.tokens_predicted} tokens while priming the cache."
            )

    # -------------------------------------------------

    def _stage_options(self, stage: str) -> Dict[str, Any]:
        options = dict(self.default_options)
        if stage in self.stage_options:
            options.update(self.stage_options[stage])
        return options


__all__ = ["LLMAdapter"]
