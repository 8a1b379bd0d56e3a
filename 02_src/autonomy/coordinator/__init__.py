"""Coordinator module."""

from .coordinator import Coordinator, ICoordinator, task_score, topological_order

__all__ = ["Coordinator", "ICoordinator", "task_score", "topological_order"]
