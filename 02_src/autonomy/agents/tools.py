"""Tool and sensor contracts used by agent runtimes."""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol

from ..models import Context, ObservationKind


class Tool(Protocol):
    """Named side-effecting capability an agent can dispatch actions to."""

    @property
    def name(self) -> str:
        """Name actions refer to."""
        ...

    async def execute(self, parameters: dict[str, Any]) -> Any:
        """Perform the side effect. Raising marks the action failed."""
        ...


class FunctionTool:
    """Tool wrapping an async callable."""

    def __init__(
        self,
        name: str,
        func: Callable[[dict[str, Any]], Awaitable[Any]],
        description: str = "",
    ):
        self._name = name
        self._func = func
        self.description = description

    @property
    def name(self) -> str:
        return self._name

    async def execute(self, parameters: dict[str, Any]) -> Any:
        return await self._func(parameters)


@dataclass
class SensorReading:
    """What a sensor reports; the runtime turns it into an Observation.

    ``data`` may carry ``suggested_actions``: a list of
    ``{"action", "parameters", "expected_outcome"}`` dicts that become thought
    implications.
    """

    kind: ObservationKind
    data: dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.8
    relevance: float = 0.5


Sensor = Callable[[Context], Awaitable[SensorReading]]

# Handles a task assignment: receives the subtask payload, returns its outputs.
TaskHandler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]
