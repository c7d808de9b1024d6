"""Colorized dumps of round state, for debugging only."""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from .llm_interaction.errors import StepError

if TYPE_CHECKING:
    from .round import CascadeRound
    from .step import CascadeStep

BOLD = "\x1b[1m"
RESET = "\x1b[0m"

STEP_GRADIENT = (
    "\x1b[38;2;0;142;250m",
    "\x1b[38;2;53;138;249m",
    "\x1b[38;2;77;133;248m",
    "\x1b[38;2;95;128;246m",
    "\x1b[38;2;111;123;243m",
    "\x1b[38;2;125;118;239m",
    "\x1b[38;2;138;112;234m",
    "\x1b[38;2;150;106;228m",
    "\x1b[38;2;160;100;222m",
    "\x1b[38;2;170;93;214m",
    "\x1b[38;2;179;86;206m",
    "\x1b[38;2;187;79;198m",
    "\x1b[38;2;194;71;189m",
    "\x1b[38;2;200;63;179m",
    "\x1b[38;2;206;54;169m",
    "\x1b[38;2;210;45;158m",
    "\x1b[38;2;214;36;147m",
    "\x1b[38;2;216;26;136m",
    "\x1b[38;2;218;13;124m",
    "\x1b[38;2;219;0;113m",
)


def render_step(index: int, step: "CascadeStep") -> str:
    color = STEP_GRADIENT[index % len(STEP_GRADIENT)]
    try:
        outcome = f"'{step.display_step_outcome()}'"
    except StepError:
        outcome = "'No outcome'"
    return f"{BOLD}{color}step {step.step_counter}{RESET}: {outcome}"


def render_round(round_: "CascadeRound") -> str:
    lines: List[str] = ["", f"{BOLD}{STEP_GRADIENT[-1]}task{RESET}: '{round_.task}'"]

    if round_.unresolved:
        lines.append(f"{BOLD}unresolved_steps{RESET}")
        lines.extend(render_step(i, step) for i, step in enumerate(round_.unresolved))
        if round_.resolved:
            lines.append(f"{BOLD}resolved_steps{RESET}")
            lines.extend(render_step(i, step) for i, step in enumerate(round_.resolved))
    else:
        lines.extend(render_step(i, step) for i, step in enumerate(round_.resolved))

    return "\n".join(lines) + "\n"


__all__ = ["STEP_GRADIENT", "render_round", "render_step"]
