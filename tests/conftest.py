# tests/conftest.py
# Shared pytest fixtures for all tests under tests/:
#   - FakeAdapter / fake_adapter: scripted stand-in for LLMAdapter (no server)
#   - request: an LLMRequest wired to the fake adapter
#   - make_client: LlamaClient over httpx.MockTransport with recorded sleeps

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cascade.history import History  # noqa: E402
from cascade.llm_interaction.client import LlamaClient  # noqa: E402
from cascade.llm_interaction.config import ApiConfig  # noqa: E402
from cascade.request import LLMRequest  # noqa: E402


class FakeAdapter:
    """Returns queued outputs in order; queued exceptions are raised instead."""

    def __init__(self, outputs: Optional[List[Any]] = None) -> None:
        self.outputs: List[Any] = list(outputs or [])
        self.calls: List[Dict[str, Any]] = []
        self.primed: List[Dict[str, str]] = []
        self.prime_error: Optional[Exception] = None

    def queue(self, *outputs: Any) -> None:
        self.outputs.extend(outputs)

    def complete(self, stage: str, prompt: str, **options: Any) -> str:
        self.calls.append({"stage": stage, "prompt": prompt, **options})
        if not self.outputs:
            raise AssertionError("FakeAdapter ran out of scripted outputs.")
        output = self.outputs.pop(0)
        if isinstance(output, Exception):
            raise output
        return output

    def prime_cache(self, stage: str, prompt: str) -> None:
        self.primed.append({"stage": stage, "prompt": prompt})
        if self.prime_error is not None:
            raise self.prime_error


@pytest.fixture
def fake_adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def request_ctx(fake_adapter: FakeAdapter) -> LLMRequest:
    return LLMRequest(adapter=fake_adapter, history=History())


@pytest.fixture
def make_client() -> Callable[..., tuple[LlamaClient, List[float]]]:
    """
    Build a client whose transport is ``handler``.
    Jitter is disabled (rng=0.5) and sleeps are recorded instead of taken.
    """

    def _make(
        handler: Callable[[httpx.Request], httpx.Response],
        *,
        config: Optional[ApiConfig] = None,
        **kwargs: Any,
    ) -> tuple[LlamaClient, List[float]]:
        sleeps: List[float] = []
        client = LlamaClient(
            config or ApiConfig(host="llama.test", port=None),
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
            sleep=sleeps.append,
            rng=lambda: 0.5,
            **kwargs,
        )
        return client, sleeps

    return _make
