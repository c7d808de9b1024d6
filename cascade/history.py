from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence


@dataclass
class Turn:
    role: str  # "system", "user" or "assistant"
    content: str = ""

    def set_content(self, text: str) -> "Turn":
        self.content = text
        return self


class History:
    """Ordered conversational turns shared by the rounds that drive it."""

    def __init__(self, max_turns: Optional[int] = None) -> None:
        """
        max_turns: None means unbounded; otherwise keep only the most recent N turns.
        """
        if max_turns is not None and max_turns < 1:
            raise ValueError(f"max_turns must be at least 1, got {max_turns}.")
        self.max_turns = max_turns
        self.turns: List[Turn] = []

    def add_user_turn(self) -> Turn:
        return self._add("user")

    def add_assistant_turn(self) -> Turn:
        return self._add("assistant")

    def snapshot(self) -> List[Turn]:
        return list(self.turns)

    def restore(self, snapshot: Sequence[Turn]) -> None:
        """Put back the turns captured by ``snapshot``, including any trimmed since."""
        self.turns = list(snapshot)

    def recent(self, limit: int | None = None) -> Sequence[Turn]:
        lim = self.max_turns if limit is None else limit
        if lim is None:
            return list(self.turns)
        return self.turns[-lim:] if lim > 0 else []

    def as_text(self, limit: int | None = None) -> str:
        lines = [f"{turn.role.title()}: {turn.content}" for turn in self.recent(limit)]
        return "\n".join(lines).strip()

    def __len__(self) -> int:
        return len(self.turns)

    def _add(self, role: str) -> Turn:
        turn = Turn(role=role)
        self.turns.append(turn)
        if self.max_turns is not None and len(self.turns) > self.max_turns:
            self.turns = self.turns[-self.max_turns :]
        return turn


__all__ = ["History", "Turn"]
