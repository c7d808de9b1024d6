from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional

from .llm_interaction.errors import LLMError, StepError
from .request import LLMRequest

logger = logging.getLogger(__name__)


class StepKind(str, Enum):
    INFERENCE = "inference"
    GUIDANCE = "guidance"


class StepStatus(str, Enum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class StepConfig:
    """
    How one step is shown and sampled.

    step_prefix seeds an inference step; the model continues from it.
    parser turns the cleaned output into the step's primitive result,
    validator rejects output by raising ValueError.
    """
    step_prefix: Optional[str] = None
    use_counter: bool = False
    stop_word_done: Optional[str] = None
    stop_word_no_result: Optional[str] = None
    cache_prompt: bool = True
    grammar: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    stage: str = "step"
    parser: Optional[Callable[[str], Any]] = None
    validator: Optional[Callable[[str], None]] = None

    def stop_words(self) -> List[str]:
        return [w for w in (self.stop_word_done, self.stop_word_no_result) if w]


@dataclass
class CascadeStep:
    """
    One unit of work inside a round.

    Guidance steps hold literal text and never reach the backend. Inference
    steps render the shared conversation plus their generation prefix and
    ask the backend to continue it.
    """
    config: StepConfig
    step_counter: int
    kind: StepKind
    llm_content: Optional[str] = None
    status: StepStatus = StepStatus.UNRESOLVED
    primitive: Any = None
    attempts: int = 0
    last_error: Optional[str] = None
    notes: List[str] = field(default_factory=list)

    @classmethod
    def new_inference_step(cls, config: StepConfig, step_counter: int) -> "CascadeStep":
        return cls(config=config, step_counter=step_counter, kind=StepKind.INFERENCE)

    @classmethod
    def new_guidance_step(cls, config: StepConfig, step_counter: int, llm_content: str) -> "CascadeStep":
        return cls(
            config=config,
            step_counter=step_counter,
            kind=StepKind.GUIDANCE,
            llm_content=llm_content,
        )

    @property
    def is_resolved(self) -> bool:
        return self.status is StepStatus.RESOLVED

    # -------------------------------------------------
    # Execution
    # -------------------------------------------------

    def run(self, generation_prefix: Optional[str], request: LLMRequest) -> None:
        if self.status is StepStatus.FAILED:
            raise StepError(f"Step {self.step_counter} was marked failed and cannot run again.")

        self.attempts += 1
        logger.debug("[STEP %s] %s attempt %s", self.step_counter, self.kind.value, self.attempts)

        try:
            if self.kind is StepKind.GUIDANCE:
                self._resolve(self.llm_content or "")
            else:
                self._run_inference(generation_prefix, request)
        except LLMError as exc:
            self.last_error = str(exc)
            self.notes.append(f"attempt {self.attempts}: {exc}")
            raise

        self.last_error = None

    def prime_cache(self, generation_prefix: Optional[str], request: LLMRequest) -> None:
        if not self.config.cache_prompt:
            logger.debug("[STEP %s] cache priming disabled, skipping", self.step_counter)
            return
        prompt = request.build_prompt(generation_prefix)
        request.adapter.prime_cache(self.config.stage, prompt)

    def reset(self) -> None:
        """Put a resolved step back into the unresolved state."""
        if self.status is StepStatus.FAILED:
            return
        self.status = StepStatus.UNRESOLVED
        self.primitive = None
        if self.kind is StepKind.INFERENCE:
            self.llm_content = None

    def mark_failed(self) -> None:
        self.status = StepStatus.FAILED

    def _run_inference(self, generation_prefix: Optional[str], request: LLMRequest) -> None:
        prompt = request.build_prompt(generation_prefix)
        raw = request.adapter.complete(
            self.config.stage,
            prompt,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            stop=self.config.stop_words(),
            grammar=self.config.grammar,
            cache_prompt=self.config.cache_prompt,
        )
        self._resolve(self._clean_output(raw))

    def _clean_output(self, raw: str) -> str:
        text = raw.strip()
        done = self.config.stop_word_done
        if done and text.endswith(done):
            text = text[: -len(done)].rstrip()
        no_result = self.config.stop_word_no_result
        if no_result and text == no_result:
            raise StepError(f"Step {self.step_counter} returned no result ({no_result!r}).")
        if not text:
            raise StepError(f"Step {self.step_counter} returned empty output.")
        return text

    def _resolve(self, text: str) -> None:
        try:
            if self.config.validator:
                self.config.validator(text)
            primitive = self.config.parser(text) if self.config.parser else None
        except (ValueError, TypeError) as exc:
            raise StepError(f"Step {self.step_counter} output was invalid: {exc}") from exc

        self.llm_content = text
        self.primitive = primitive
        self.status = StepStatus.RESOLVED

    # -------------------------------------------------
    # Display
    # -------------------------------------------------

    def display_step_prefix(self) -> Optional[str]:
        if self.kind is StepKind.GUIDANCE:
            return self.llm_content or None
        return self._seed() or None

    def display_step_outcome(self) -> str:
        if not self.is_resolved:
            raise StepError(f"Step {self.step_counter} has no outcome yet ({self.status.value}).")
        if self.kind is StepKind.GUIDANCE:
            return self.llm_content or ""
        seed = self._seed()
        return f"{seed} {self.llm_content}" if seed else self.llm_content or ""

    def primitive_result(self) -> Any:
        return self.primitive if self.is_resolved else None

    def _seed(self) -> str:
        prefix = (self.config.step_prefix or "").strip()
        if self.config.use_counter:
            return f"{self.step_counter}. {prefix}".strip()
        return prefix


__all__ = ["CascadeStep", "StepConfig", "StepKind", "StepStatus"]
