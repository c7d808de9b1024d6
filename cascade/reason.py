from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Optional

from .llm_interaction.errors import LLMError
from .prompt_texts import (
    ANSWER_GUIDANCE,
    PRIMITIVE_GRAMMARS,
    PRIMITIVE_INSTRUCTIONS,
    THINK_GUIDANCE,
)
from .request import LLMRequest
from .round import CascadeRound
from .step import StepConfig

logger = logging.getLogger(__name__)


# =========================
# Primitive Parsers
# =========================

def parse_boolean(text: str) -> bool:
    words = re.findall(r"[a-z]+", text.lower())
    if not words:
        raise ValueError("Expected yes or no.")
    if words[0] in {"yes", "true"}:
        return True
    if words[0] in {"no", "false"}:
        return False
    raise ValueError(f"Expected yes or no, got '{words[0]}'.")


def parse_integer(text: str) -> int:
    match = re.search(r"-?\d+", text)
    if match is None:
        raise ValueError("Expected a whole number.")
    return int(match.group())


def parse_text(text: str) -> str:
    return text.strip().rstrip(".").strip()


PRIMITIVE_PARSERS: Dict[str, Callable[[str], Any]] = {
    "boolean": parse_boolean,
    "integer": parse_integer,
    "text": parse_text,
}


# =========================
# Reason Flow
# =========================

class ReasonFlow:
    """
    Think-then-answer over a single round:

    1. guidance   "Let's think step by step."
    2. inference  free reasoning
    3. guidance   "Therefore, the answer is"
    4. inference  the answer, parsed into a primitive

    A failed round is re-run from scratch up to ``retry_after_fail`` times.
    """

    def __init__(
        self,
        question: str,
        *,
        primitive: str = "text",
        retry_after_fail: int = 2,
        reasoning_tokens: int = 300,
        answer_tokens: int = 16,
        step_separator: Optional[str] = " ",
    ) -> None:
        if primitive not in PRIMITIVE_PARSERS:
            raise ValueError(f"Unknown primitive '{primitive}'.")
        self.question = question
        self.primitive = primitive
        self.retry_after_fail = max(0, retry_after_fail)
        self.reasoning_tokens = reasoning_tokens
        self.answer_tokens = answer_tokens
        self.round = self.build_round(step_separator)
        self.attempts: List[Dict[str, Any]] = []

    def build_round(self, step_separator: Optional[str] = " ") -> CascadeRound:
        task = f"{self.question}\n\n{PRIMITIVE_INSTRUCTIONS[self.primitive]}"
        round_ = CascadeRound(task, step_separator=step_separator)

        round_.add_guidance_step(StepConfig(stage="think"), THINK_GUIDANCE)
        round_.add_inference_step(
            StepConfig(
                stage="reason",
                max_tokens=self.reasoning_tokens,
                stop_word_done=ANSWER_GUIDANCE,
                temperature=0.6,
            )
        )
        round_.add_guidance_step(StepConfig(stage="answer"), ANSWER_GUIDANCE)
        round_.add_inference_step(
            StepConfig(
                stage="answer",
                max_tokens=self.answer_tokens,
                stop_word_done=".",
                grammar=PRIMITIVE_GRAMMARS.get(self.primitive),
                temperature=0.0,
                parser=PRIMITIVE_PARSERS[self.primitive],
            )
        )
        return round_

    def run(self, request: LLMRequest) -> Any:
        max_attempts = self.retry_after_fail + 1

        for attempt_num in range(1, max_attempts + 1):
            try:
                self.round.run_all_steps(request)
            except LLMError as exc:
                self.attempts.append({"attempt": attempt_num, "error": str(exc)})
                logger.warning("[REASON] attempt %s/%s failed: %s", attempt_num, max_attempts, exc)
                continue

            result = self.round.primitive_result()
            self.attempts.append({
                "attempt": attempt_num,
                "outcome": self.round.display_outcome(),
                "result": result,
            })
            return result

        raise LLMError(f"Reasoning failed after {max_attempts} attempts.")


__all__ = [
    "ReasonFlow",
    "PRIMITIVE_PARSERS",
    "parse_boolean",
    "parse_integer",
    "parse_text",
]
