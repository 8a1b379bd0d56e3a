"""Agent runtime module."""

from .catalog import DEFAULT_PROFILES, AgentProfile, build_default_agents
from .memory import AgentMemory, EpisodicMemory, LongTermMemory, SemanticMemory, ShortTermMemory
from .runtime import AgentRuntime, IAgentRuntime
from .tools import FunctionTool, Sensor, SensorReading, TaskHandler, Tool

__all__ = [
    "AgentRuntime",
    "IAgentRuntime",
    "AgentMemory",
    "ShortTermMemory",
    "LongTermMemory",
    "EpisodicMemory",
    "SemanticMemory",
    "Tool",
    "FunctionTool",
    "Sensor",
    "SensorReading",
    "TaskHandler",
    "AgentProfile",
    "DEFAULT_PROFILES",
    "build_default_agents",
]
