"""Loop scheduling module."""

from .defaults import DEFAULT_AGENT_IDS, default_loop_specs
from .schedule import parse_schedule
from .scheduler import ILoopScheduler, LoopScheduler

__all__ = [
    "DEFAULT_AGENT_IDS",
    "default_loop_specs",
    "parse_schedule",
    "ILoopScheduler",
    "LoopScheduler",
]
