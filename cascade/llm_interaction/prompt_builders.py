from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ..history import Turn


# -------------------------
# Chat Template
# -------------------------

@dataclass(frozen=True)
class ChatTemplate:
    """Wraps each turn in start/end markers; ChatML by default."""
    turn_start: str = "<|im_start|>"
    turn_end: str = "<|im_end|>"
    bos: str = ""

    def render_turn(self, turn: Turn) -> str:
        return f"{self.turn_start}{turn.role}\n{turn.content}{self.turn_end}\n"

    def open_turn(self, role: str) -> str:
        return f"{self.turn_start}{role}\n"


CHATML = ChatTemplate()


# -------------------------
# Prompt Builders
# -------------------------

def build_completion_prompt(
    turns: Iterable[Turn],
    generation_prefix: Optional[str] = None,
    *,
    system_prompt: Optional[str] = None,
    template: ChatTemplate = CHATML,
) -> str:
    """
    Render the conversation and leave an assistant turn open.
    The generation prefix, when given, is the beginning of that turn, so the
    model continues it rather than answering it.
    """
    parts = [template.bos]
    if system_prompt:
        parts.append(template.render_turn(Turn(role="system", content=system_prompt)))
    for turn in turns:
        parts.append(template.render_turn(turn))
    parts.append(template.open_turn("assistant"))
    if generation_prefix:
        parts.append(generation_prefix)
    return "".join(parts)


__all__ = ["ChatTemplate", "CHATML", "build_completion_prompt"]
