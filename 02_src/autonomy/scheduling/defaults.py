"""Built-in loop configuration.

Seeded into storage on first start; afterwards specs are loaded from storage.
"""

from datetime import timedelta

from ..models import LoopSpec, Priority
from .schedule import parse_schedule

DEFAULT_AGENT_IDS = ("strategy", "content", "engagement", "analytics", "orchestrator")


def default_loop_specs(timezone: str = "UTC") -> list[LoopSpec]:
    """Return the five standard agent loops."""
    return [
        LoopSpec(
            id="strategy_loop",
            name="Strategy Review & Planning",
            agent_id="strategy",
            schedule=parse_schedule("0 0 * * 1", timezone),  # Mondays at midnight
            priority=Priority.HIGH,
            max_duration=timedelta(minutes=30),
            adaptive=True,
            dependencies=frozenset({"analytics_loop"}),
        ),
        LoopSpec(
            id="content_loop",
            name="Content Generation & Optimization",
            agent_id="content",
            schedule=parse_schedule("0 * * * *", timezone),
            priority=Priority.HIGH,
            max_duration=timedelta(minutes=15),
            adaptive=True,
            dependencies=frozenset({"strategy_loop"}),
        ),
        LoopSpec(
            id="engagement_loop",
            name="Engagement Opportunity Scanning",
            agent_id="engagement",
            schedule=parse_schedule("*/30 * * * *", timezone),
            priority=Priority.MEDIUM,
            max_duration=timedelta(minutes=10),
            adaptive=True,
        ),
        LoopSpec(
            id="analytics_loop",
            name="Performance Analysis & Insights",
            agent_id="analytics",
            schedule=parse_schedule("0 6 * * *", timezone),  # daily at 06:00
            priority=Priority.HIGH,
            max_duration=timedelta(minutes=20),
            adaptive=True,
        ),
        LoopSpec(
            id="orchestration_loop",
            name="Agent Coordination & Resource Management",
            agent_id="orchestrator",
            schedule=parse_schedule("*/5 * * * *", timezone),
            priority=Priority.CRITICAL,
            max_duration=timedelta(minutes=5),
            adaptive=False,
        ),
    ]
