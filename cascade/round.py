from __future__ import annotations

import dataclasses
import logging
from collections import deque
from typing import Any, Deque, Iterable, Optional

from .display import render_round
from .llm_interaction.errors import LLMError
from .request import LLMRequest
from .step import CascadeStep, StepConfig

logger = logging.getLogger(__name__)


class RoundError(LLMError):
    """Raised when a round is driven in a state that has nothing to do."""


class CascadeRound:
    """
    One task split into an ordered pipeline of steps.

    Steps wait in ``unresolved`` (execution order) and move to ``resolved``
    (completion order) once they succeed. Every step sits in exactly one of
    the two queues between calls.
    """

    def __init__(self, task: str, *, step_separator: Optional[str] = " ") -> None:
        if step_separator is not None and len(step_separator) != 1:
            raise ValueError("step_separator must be a single character or None.")
        self._task = task
        self.unresolved: Deque[CascadeStep] = deque()
        self.resolved: Deque[CascadeStep] = deque()
        self.step_separator = step_separator

    @property
    def task(self) -> str:
        return self._task

    def __len__(self) -> int:
        return len(self.unresolved) + len(self.resolved)

    # -------------------------------------------------
    # Building
    # -------------------------------------------------

    def add_inference_step(self, config: StepConfig) -> CascadeStep:
        step = CascadeStep.new_inference_step(dataclasses.replace(config), len(self.unresolved) + 1)
        self.unresolved.append(step)
        return step

    def add_guidance_step(self, config: StepConfig, llm_content: str) -> CascadeStep:
        step = CascadeStep.new_guidance_step(
            dataclasses.replace(config),
            len(self.unresolved) + 1,
            llm_content,
        )
        self.unresolved.append(step)
        return step

    # -------------------------------------------------
    # Text composition
    # -------------------------------------------------

    def generation_prefix(self, step: CascadeStep) -> Optional[str]:
        """
        Text visible to ``step`` before it runs: every resolved outcome, then
        the step's own prefix. None when there is nothing to show.
        """
        outcomes = [resolved.display_step_outcome() for resolved in self.resolved]
        own_prefix = step.display_step_prefix()
        if own_prefix:
            outcomes.append(own_prefix)
        prefix = self._compose(outcomes)
        return prefix or None

    def display_outcome(self) -> str:
        return self._compose(step.display_step_outcome() for step in self.resolved)

    def _compose(self, parts: Iterable[str]) -> str:
        composed = ""
        for part in parts:
            if composed and self.step_separator is not None:
                composed += self.step_separator
            composed += part
        return composed

    # -------------------------------------------------
    # Execution
    # -------------------------------------------------

    def run_all_steps(self, request: LLMRequest) -> None:
        """
        Run every unresolved step in order.

        All or nothing: if a step fails, every step goes back to
        ``unresolved`` in its original order, the history is restored to
        the turns it held before the call, and the error is re-raised.
        """
        # adding the task turn may trim a bounded history
        before = request.history.snapshot()
        request.history.add_user_turn().set_content(self.task)

        while self.unresolved:
            try:
                self.run_next_step(request)
            except Exception as exc:
                logger.warning(
                    "Round failed at step %s/%s, rolling back: %s",
                    self.unresolved[0].step_counter,
                    len(self),
                    exc,
                )
                self._rollback()
                request.history.restore(before)
                raise

        request.history.add_assistant_turn().set_content(self.display_outcome())
        logger.info("Round resolved %s steps", len(self.resolved))

    def run_next_step(self, request: LLMRequest) -> None:
        if not self.unresolved:
            raise RoundError("No unresolved steps in round.")

        step = self.unresolved.popleft()
        try:
            prefix = self.generation_prefix(step)
            step.run(prefix, request)
        except Exception:
            self.unresolved.appendleft(step)
            raise
        self.resolved.append(step)

    def _rollback(self) -> None:
        merged = self.resolved
        for step in merged:
            step.reset()
        merged.extend(self.unresolved)
        self.resolved = deque()
        self.unresolved = merged

    def primitive_result(self) -> Any:
        if not self.resolved:
            return None
        return self.resolved[-1].primitive_result()

    # -------------------------------------------------
    # Externally driven rounds
    # -------------------------------------------------

    def open_round(self, request: LLMRequest) -> None:
        request.history.add_user_turn().set_content(self.task)

    def close_round(self, request: LLMRequest) -> None:
        outcome = self.display_outcome()
        request.history.add_assistant_turn().set_content(outcome)

    def last_step(self) -> CascadeStep:
        if not self.resolved:
            raise RoundError("No steps in round.")
        return self.resolved[-1]

    def set_cache_up_to_last_step(self, request: LLMRequest) -> None:
        """
        Prime the backend cache with everything that preceded the most recent
        step. The step is always put back on ``resolved``.
        """
        if not self.resolved:
            raise RoundError("No resolved steps to prime the cache with.")

        last_step = self.resolved.pop()
        try:
            prefix = self.generation_prefix(last_step)
            last_step.prime_cache(prefix, request)
        finally:
            self.resolved.append(last_step)

    def __str__(self) -> str:
        return render_round(self)


__all__ = ["CascadeRound", "RoundError"]
