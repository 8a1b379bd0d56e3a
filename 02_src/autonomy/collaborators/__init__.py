"""External collaborators: knowledge store, oversight channel, resource gauges."""

from .knowledge import IKnowledgeStore, KnowledgeStore
from .oversight import IOversightChannel, OversightChannel
from .resources import IResourceGauges, ResourceGauges

__all__ = [
    "IKnowledgeStore",
    "KnowledgeStore",
    "IOversightChannel",
    "OversightChannel",
    "IResourceGauges",
    "ResourceGauges",
]
