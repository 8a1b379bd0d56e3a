"""Layered agent memory: short-term, long-term, episodic and semantic."""

import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from ..models import Experience, LearningKind, Pattern

Clock = Callable[[], datetime]

PATTERN_MATCH_RATIO = 0.7
PATTERN_SUCCESS_STEP = 0.1
PATTERN_FAILURE_STEP = 0.05


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _ShortTermEntry:
    value: Any
    stored_at: datetime
    accessed: int = 0


class ShortTermMemory:
    """Key/value scratchpad whose entries expire after a TTL.

    Expired entries are swept on every read and write.
    """

    def __init__(self, ttl: timedelta = timedelta(hours=1), clock: Clock = _utcnow):
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, _ShortTermEntry] = {}

    def _sweep(self, now: datetime) -> None:
        horizon = now - self._ttl
        for key in [k for k, v in self._entries.items() if v.stored_at < horizon]:
            del self._entries[key]

    def set(self, key: str, value: Any) -> None:
        now = self._clock()
        self._entries[key] = _ShortTermEntry(value=value, stored_at=now)
        self._sweep(now)

    def get(self, key: str, default: Any = None) -> Any:
        self._sweep(self._clock())
        entry = self._entries.get(key)
        if entry is None:
            return default
        entry.accessed += 1
        return entry.value

    def __len__(self) -> int:
        self._sweep(self._clock())
        return len(self._entries)


@dataclass
class _LongTermEntry:
    value: Any
    importance: float
    last_accessed: datetime


class LongTermMemory:
    """Persistent-for-the-process store ranked by importance, then recency."""

    def __init__(self, clock: Clock = _utcnow):
        self._clock = clock
        self._entries: dict[str, _LongTermEntry] = {}
        self._connections: dict[str, set[str]] = {}

    def store(self, key: str, value: Any, importance: float = 0.5) -> None:
        self._entries[key] = _LongTermEntry(
            value=value,
            importance=max(0.0, min(1.0, importance)),
            last_accessed=self._clock(),
        )

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        entry.last_accessed = self._clock()
        return entry.value

    def connect(self, key: str, other: str) -> None:
        self._connections.setdefault(key, set()).add(other)
        self._connections.setdefault(other, set()).add(key)

    def connections(self, key: str) -> set[str]:
        return set(self._connections.get(key, set()))

    def recall(self, limit: int = 10) -> list[tuple[str, Any]]:
        """Most important entries first; ties broken by most recent access."""
        ranked = sorted(
            self._entries.items(),
            key=lambda item: (item[1].importance, item[1].last_accessed),
            reverse=True,
        )
        return [(key, entry.value) for key, entry in ranked[:limit]]

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class SuccessCase:
    experience_id: str
    key_factors: list[str]
    replicability: float


@dataclass
class FailureCase:
    experience_id: str
    root_causes: list[str]
    prevention: list[str]


class EpisodicMemory:
    """Most recent experiences plus the patterns and cases derived from them."""

    def __init__(self, capacity: int = 1000, clock: Clock = _utcnow):
        self._clock = clock
        self.experiences: deque[Experience] = deque(maxlen=capacity)
        self.patterns: list[Pattern] = []
        self.success_cases: deque[SuccessCase] = deque(maxlen=capacity)
        self.failure_cases: deque[FailureCase] = deque(maxlen=capacity)

    def append(self, experience: Experience) -> None:
        self.experiences.append(experience)

    def extract_pattern(self, experience: Experience) -> Pattern:
        """Reinforce the matching pattern or start a new one."""
        conditions = self._conditions(experience)
        outcomes = [
            f"{'success' if r.success else 'failure'}_{r.action_id}" for r in experience.results
        ]
        now = self._clock()

        for pattern in self.patterns:
            if self._matches(pattern.conditions, conditions):
                pattern.occurrences += 1
                pattern.last_seen = now
                if experience.success:
                    pattern.confidence = min(1.0, pattern.confidence + PATTERN_SUCCESS_STEP)
                else:
                    pattern.confidence = max(0.0, pattern.confidence - PATTERN_FAILURE_STEP)
                return pattern

        pattern = Pattern(
            id=str(uuid.uuid4()),
            description=f"Pattern from {experience.context.loop_id or 'ad-hoc'} cycle",
            conditions=conditions,
            outcomes=outcomes,
            confidence=0.7 if experience.success else 0.3,
            occurrences=1,
            last_seen=now,
        )
        self.patterns.append(pattern)
        return pattern

    def record_case(self, experience: Experience) -> None:
        if experience.success:
            confidences = [l.confidence for l in experience.learnings]
            self.success_cases.append(
                SuccessCase(
                    experience_id=experience.id,
                    key_factors=[l.content for l in experience.learnings],
                    replicability=sum(confidences) / len(confidences) if confidences else 0.0,
                )
            )
        else:
            self.failure_cases.append(
                FailureCase(
                    experience_id=experience.id,
                    root_causes=[r.error or "unknown" for r in experience.results if not r.success],
                    prevention=[l.content for l in experience.learnings],
                )
            )

    @staticmethod
    def _conditions(experience: Experience) -> list[str]:
        context = experience.context
        return [
            f"loop_{context.loop_id}",
            f"goal_count_{len(context.goals)}",
            f"hour_{context.timestamp.hour}",
        ]

    @staticmethod
    def _matches(first: list[str], second: list[str]) -> bool:
        shared = [c for c in first if c in second]
        return len(shared) >= min(len(first), len(second)) * PATTERN_MATCH_RATIO

    def __len__(self) -> int:
        return len(self.experiences)


@dataclass
class Strategy:
    name: str
    domain: str
    steps: list[str]
    conditions: list[str]
    success_rate: float
    last_used: datetime


@dataclass
class SemanticMemory:
    """Accretive conceptual knowledge. Nothing is ever removed."""

    concepts: dict[str, Any] = field(default_factory=dict)
    relationships: dict[str, set[str]] = field(default_factory=dict)
    rules: list[str] = field(default_factory=list)
    strategies: list[Strategy] = field(default_factory=list)

    def absorb(self, experience: Experience, domain: str, now: datetime) -> int:
        """Turn success and optimization learnings into strategies; returns how many."""
        added = 0
        for learning in experience.learnings:
            if learning.kind in (LearningKind.SUCCESS_PATTERN, LearningKind.OPTIMIZATION):
                self.strategies.append(
                    Strategy(
                        name=learning.content,
                        domain=domain,
                        steps=list(learning.evidence),
                        conditions=list(learning.applicability),
                        success_rate=learning.confidence,
                        last_used=now,
                    )
                )
                added += 1
        return added


class AgentMemory:
    """The four memory layers of one agent."""

    def __init__(
        self,
        short_term_ttl: timedelta = timedelta(hours=1),
        episodic_capacity: int = 1000,
        clock: Clock = _utcnow,
    ):
        self._clock = clock
        self.short_term = ShortTermMemory(short_term_ttl, clock)
        self.long_term = LongTermMemory(clock)
        self.episodic = EpisodicMemory(episodic_capacity, clock)
        self.semantic = SemanticMemory()

    def learn(self, experience: Experience, domain: str) -> Pattern:
        """Append an experience and update every derived structure."""
        self.episodic.append(experience)
        pattern = self.episodic.extract_pattern(experience)
        self.semantic.absorb(experience, domain, self._clock())
        self.episodic.record_case(experience)
        return pattern

    def usage(self) -> dict[str, int]:
        return {
            "short_term": len(self.short_term),
            "long_term": len(self.long_term),
            "episodic": len(self.episodic),
            "patterns": len(self.episodic.patterns),
            "strategies": len(self.semantic.strategies),
        }
