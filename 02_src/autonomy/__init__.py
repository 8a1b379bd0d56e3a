"""Autonomy core: loop scheduling, agent messaging and coordination."""

from .agents import AgentRuntime, IAgentRuntime
from .app import Application, IApplication
from .bus import IMessageBus, MessageBus
from .coordinator import Coordinator, ICoordinator
from .llm import ContentGenerator, IContentGenerator
from .models import (
    AgentMessage,
    CompositeTask,
    LoopSpec,
    LoopState,
    Schedule,
    SubTask,
    SystemHealth,
    TraceEvent,
)
from .scheduling import ILoopScheduler, LoopScheduler
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "AgentMessage",
    "CompositeTask",
    "LoopSpec",
    "LoopState",
    "Schedule",
    "SubTask",
    "SystemHealth",
    "TraceEvent",
    # Components
    "IStorage",
    "Storage",
    "IMessageBus",
    "MessageBus",
    "ITracker",
    "Tracker",
    "IContentGenerator",
    "ContentGenerator",
    "IAgentRuntime",
    "AgentRuntime",
    "ILoopScheduler",
    "LoopScheduler",
    "ICoordinator",
    "Coordinator",
]
