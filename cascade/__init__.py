"""Multi-step generation rounds over a resilient completion client."""

from .history import History, Turn
from .reason import ReasonFlow
from .request import LLMRequest
from .round import CascadeRound, RoundError
from .step import CascadeStep, StepConfig, StepKind, StepStatus

__all__ = [
    "CascadeRound",
    "CascadeStep",
    "History",
    "LLMRequest",
    "ReasonFlow",
    "RoundError",
    "StepConfig",
    "StepKind",
    "StepStatus",
    "Turn",
]
