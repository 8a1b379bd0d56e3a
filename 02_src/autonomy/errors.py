"""Error taxonomy for the coordination core.

Failures recover at the lowest level that can handle them (per action, per
loop) and travel upward only as health signals: LoopState, SystemHealth and
the alert queue.
"""


class AutonomyError(Exception):
    """Base class for all core errors."""


class ConfigurationError(AutonomyError):
    """Invalid LoopSpec, schedule, or dependency graph. Fatal at registration."""


class DependencyUnmetError(AutonomyError):
    """A loop dependency is failed. The loop pauses and is retried next tick."""

    def __init__(self, loop_id: str, dependencies: list[str]):
        self.loop_id = loop_id
        self.dependencies = dependencies
        super().__init__(f"Loop {loop_id} paused: failed dependencies {dependencies}")


class HealthCheckFailure(AutonomyError):
    """An agent failed its pre-run health check."""

    def __init__(self, agent_id: str, reason: str = "health check failed"):
        self.agent_id = agent_id
        super().__init__(f"Agent {agent_id}: {reason}")


class ActionExecutionError(AutonomyError):
    """A single action failed. Converted to a failed result, never propagated."""

    def __init__(self, action_id: str, reason: str):
        self.action_id = action_id
        super().__init__(f"Action {action_id} failed: {reason}")


class MessageTimeoutError(AutonomyError):
    """No correlated response arrived before the timeout or deadline."""

    def __init__(self, message_id: str, timeout: float):
        self.message_id = message_id
        self.timeout = timeout
        super().__init__(f"Message response timeout after {timeout:.3f}s ({message_id})")


class TransportFailure(AutonomyError):
    """The bus could not persist or deliver. Surfaced through health checks."""


class GenerationError(AutonomyError):
    """The content generator could not produce a structured result."""
