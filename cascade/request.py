from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .history import History
from .llm_interaction.adapter import LLMAdapter
from .llm_interaction.prompt_builders import CHATML, ChatTemplate, build_completion_prompt


@dataclass
class LLMRequest:
    """
    Conversational context shared by the rounds of one task.
    Rounds append turns to ``history``; inference steps render it through
    ``template`` and send it with ``adapter``.

    Not safe to drive from two rounds at once.
    """
    adapter: LLMAdapter
    history: History = field(default_factory=History)
    system_prompt: Optional[str] = None
    template: ChatTemplate = CHATML

    def build_prompt(self, generation_prefix: Optional[str] = None) -> str:
        return build_completion_prompt(
            self.history.turns,
            generation_prefix,
            system_prompt=self.system_prompt,
            template=self.template,
        )


__all__ = ["LLMRequest"]
