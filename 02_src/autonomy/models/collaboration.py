"""Models shared with external collaborators (knowledge store, oversight)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .loops import Priority


@dataclass
class KnowledgeEntry:
    """A learning accepted into the shared knowledge store."""

    id: str
    domain: str
    content: str
    confidence: float
    contributors: list[str]
    evidence: list[str] = field(default_factory=list)
    occurrences: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class ReviewRequest:
    """A bounded request for human review of an agent's behaviour."""

    id: str
    user_id: str
    agent_id: str
    subject: dict[str, Any]
    urgency: Priority
    created_at: datetime
    status: str = "pending"  # pending | approved | rejected
