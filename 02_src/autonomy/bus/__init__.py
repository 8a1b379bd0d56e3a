"""MessageBus module."""

from .message_bus import IMessageBus, MessageBus, MessageHandler

__all__ = ["IMessageBus", "MessageBus", "MessageHandler"]
