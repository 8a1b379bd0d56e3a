"""Shared knowledge store fed by agent learnings."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..logging_config import get_logger
from ..models import Context, Experience, KnowledgeEntry, Learning, Pattern
from ..storage import IStorage

logger = get_logger(__name__)

SIMILARITY_THRESHOLD = 0.8
PATTERN_SUCCESS_STEP = 0.1
PATTERN_FAILURE_STEP = 0.05


def insight_similarity(first: str, second: str) -> float:
    """Jaccard similarity of the lower-cased word sets."""
    words1 = set(first.lower().split())
    words2 = set(second.lower().split())
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


class IKnowledgeStore(Protocol):
    """Cross-agent knowledge base."""

    async def share_knowledge(
        self, agent_id: str, learning: Learning, context: Context
    ) -> KnowledgeEntry:
        """Contribute a learning; merges into a similar entry when one exists."""
        ...

    async def record_experience(self, agent_id: str, experience: Experience) -> list[Pattern]:
        """Fold an experience into the cross-agent patterns; returns those it touched."""
        ...

    async def get_knowledge(self, domain: str | None = None) -> list[KnowledgeEntry]:
        """Entries ordered by confidence."""
        ...


class KnowledgeStore:
    """Knowledge base persisted to Storage.

    A learning whose wording is close enough to an existing entry in the same
    domain is merged into it (confidence becomes the running mean of the
    contributions); otherwise a new entry is created.
    """

    def __init__(self, storage: IStorage):
        self._storage = storage
        self._patterns: dict[str, Pattern] = {}

    @staticmethod
    def classify_domain(learning: Learning) -> str:
        if learning.applicability:
            return learning.applicability[0]
        return learning.kind.value

    async def share_knowledge(
        self, agent_id: str, learning: Learning, context: Context
    ) -> KnowledgeEntry:
        domain = self.classify_domain(learning)
        now = datetime.now(timezone.utc)

        existing = None
        for entry in await self._storage.get_knowledge(domain):
            if insight_similarity(entry.content, learning.content) > SIMILARITY_THRESHOLD:
                existing = entry
                break

        if existing:
            total = existing.confidence * existing.occurrences + learning.confidence
            existing.occurrences += 1
            existing.confidence = min(1.0, total / existing.occurrences)
            if agent_id not in existing.contributors:
                existing.contributors.append(agent_id)
            existing.evidence.append(learning.id)
            existing.updated_at = now
            entry = existing
            logger.info(
                "Agent %s contributed to knowledge %s (%s)",
                agent_id,
                entry.id,
                domain,
                extra={"agent_id": agent_id},
            )
        else:
            entry = KnowledgeEntry(
                id=str(uuid.uuid4()),
                domain=domain,
                content=learning.content,
                confidence=learning.confidence,
                contributors=[agent_id],
                evidence=[learning.id],
                created_at=now,
                updated_at=now,
            )
            logger.info(
                "Agent %s proposed new knowledge %s (%s)",
                agent_id,
                entry.id,
                domain,
                extra={"agent_id": agent_id, "loop_id": context.loop_id},
            )

        await self._storage.save_knowledge(entry)
        return entry

    async def record_experience(self, agent_id: str, experience: Experience) -> list[Pattern]:
        touched: list[Pattern] = []
        tools = sorted({action.tool for action in experience.actions})
        for tool in tools:
            key = f"{experience.context.loop_id or agent_id}:{tool}"
            pattern = self._patterns.get(key)
            if pattern is None:
                pattern = Pattern(
                    id=key,
                    description=f"'{tool}' during {experience.context.loop_id or 'ad-hoc'} cycles",
                    conditions=[tool],
                    outcomes=[],
                    confidence=0.7 if experience.success else 0.3,
                    occurrences=0,
                    last_seen=experience.timestamp,
                )
                self._patterns[key] = pattern
            elif experience.success:
                pattern.confidence = min(1.0, pattern.confidence + PATTERN_SUCCESS_STEP)
            else:
                pattern.confidence = max(0.0, pattern.confidence - PATTERN_FAILURE_STEP)
            pattern.occurrences += 1
            pattern.last_seen = experience.timestamp
            pattern.outcomes = ["success" if experience.success else "failure"]
            touched.append(pattern)
        return touched

    async def get_knowledge(self, domain: str | None = None) -> list[KnowledgeEntry]:
        return await self._storage.get_knowledge(domain)

    def get_patterns(self) -> list[Pattern]:
        return sorted(self._patterns.values(), key=lambda p: p.confidence, reverse=True)
