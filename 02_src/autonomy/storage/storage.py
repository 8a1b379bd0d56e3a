"""SQLite storage implementation."""

import dataclasses
import json
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Protocol
from zoneinfo import ZoneInfo

import aiosqlite

from ..config import resolve_db_path
from ..models import (
    AgentMessage,
    Alert,
    AlertSeverity,
    Experience,
    KnowledgeEntry,
    LoopSpec,
    LoopState,
    LoopStatus,
    MessageKind,
    Priority,
    ReviewRequest,
    Schedule,
    TraceEvent,
)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return str(value)


def to_json(value: Any) -> str:
    """Serialize dataclasses, enums and datetimes to a JSON string."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    return json.dumps(value, default=_json_default)


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class IStorage(Protocol):
    """Persistent storage for loop configuration, runtime snapshots and audit data."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    async def ping(self) -> None:
        """Cheap round trip used for latency probes."""
        ...

    # Loop configuration / state
    async def save_loop_spec(self, spec: LoopSpec) -> None: ...

    async def get_loop_specs(self) -> list[LoopSpec]: ...

    async def save_loop_state(self, state: LoopState) -> None: ...

    async def get_loop_states(self) -> list[LoopState]: ...

    # Experiences
    async def save_experience(self, experience: Experience) -> None: ...

    async def get_experiences(self, agent_id: str, limit: int = 100) -> list[dict]: ...

    # Bus messages
    async def save_bus_message(self, message: AgentMessage) -> None: ...

    async def get_bus_messages(
        self, recipient: str | None = None, limit: int = 100
    ) -> list[AgentMessage]: ...

    # Alerts
    async def save_alert(self, alert: Alert) -> None: ...

    async def get_alerts(self, include_resolved: bool = False) -> list[Alert]: ...

    # Knowledge / oversight
    async def save_knowledge(self, entry: KnowledgeEntry) -> None: ...

    async def get_knowledge(self, domain: str | None = None) -> list[KnowledgeEntry]: ...

    async def save_review_request(self, request: ReviewRequest) -> None: ...

    async def get_review_requests(self, status: str | None = None) -> list[ReviewRequest]: ...

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None: ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]: ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear runtime data (loop specs are kept)."""
        ...


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    async def ping(self) -> None:
        """Cheap round trip used for latency probes."""
        conn = self._require_conn()
        cursor = await conn.execute("SELECT 1")
        await cursor.fetchone()

    # Loop configuration
    async def save_loop_spec(self, spec: LoopSpec) -> None:
        """Insert or replace a loop spec."""
        conn = self._require_conn()
        await conn.execute(
            """
            INSERT OR REPLACE INTO loop_specs
            (id, agent_id, name, schedule_expression, schedule_interval_s,
             schedule_anchor, schedule_timezone, priority, max_duration_s,
             adaptive, dependencies)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                spec.id,
                spec.agent_id,
                spec.name,
                spec.schedule.expression,
                spec.schedule.interval.total_seconds(),
                _ts(spec.schedule.anchor),
                spec.schedule.timezone,
                spec.priority.value,
                spec.max_duration.total_seconds(),
                int(spec.adaptive),
                json.dumps(sorted(spec.dependencies)),
            ),
        )
        await conn.commit()

    async def get_loop_specs(self) -> list[LoopSpec]:
        """Get all stored loop specs."""
        conn = self._require_conn()
        cursor = await conn.execute(
            """
            SELECT id, agent_id, name, schedule_expression, schedule_interval_s,
                   schedule_anchor, schedule_timezone, priority, max_duration_s,
                   adaptive, dependencies
            FROM loop_specs
            ORDER BY id
            """
        )
        rows = await cursor.fetchall()

        return [
            LoopSpec(
                id=row[0],
                agent_id=row[1],
                name=row[2],
                schedule=Schedule(
                    expression=row[3],
                    interval=timedelta(seconds=row[4]),
                    anchor=_parse_ts(row[5]).astimezone(ZoneInfo(row[6])),
                    timezone=row[6],
                ),
                priority=Priority(row[7]),
                max_duration=timedelta(seconds=row[8]),
                adaptive=bool(row[9]),
                dependencies=frozenset(json.loads(row[10])),
            )
            for row in rows
        ]

    async def save_loop_state(self, state: LoopState) -> None:
        """Snapshot a loop state."""
        conn = self._require_conn()
        await conn.execute(
            """
            INSERT OR REPLACE INTO loop_states
            (id, status, last_run, next_run, average_duration, success_rate,
             performance_score, adaptive_multiplier, consecutive_failures,
             run_count, last_error, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
            """,
            (
                state.id,
                state.status.value,
                _ts(state.last_run),
                _ts(state.next_run),
                state.average_duration,
                state.success_rate,
                state.performance_score,
                state.adaptive_multiplier,
                state.consecutive_failures,
                state.run_count,
                state.last_error,
            ),
        )
        await conn.commit()

    async def get_loop_states(self) -> list[LoopState]:
        """Get the last snapshot of every loop state."""
        conn = self._require_conn()
        cursor = await conn.execute(
            """
            SELECT id, status, last_run, next_run, average_duration, success_rate,
                   performance_score, adaptive_multiplier, consecutive_failures,
                   run_count, last_error
            FROM loop_states
            ORDER BY id
            """
        )
        rows = await cursor.fetchall()

        return [
            LoopState(
                id=row[0],
                status=LoopStatus(row[1]),
                last_run=_parse_ts(row[2]),
                next_run=_parse_ts(row[3]),
                average_duration=row[4],
                success_rate=row[5],
                performance_score=row[6],
                adaptive_multiplier=row[7],
                consecutive_failures=row[8],
                run_count=row[9],
                last_error=row[10],
            )
            for row in rows
        ]

    # Experiences
    async def save_experience(self, experience: Experience) -> None:
        """Append an experience record."""
        conn = self._require_conn()
        await conn.execute(
            """
            INSERT INTO experiences (id, agent_id, loop_id, success, data, timestamp)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                experience.id,
                experience.agent_id,
                experience.context.loop_id,
                int(experience.success),
                to_json(experience),
                _ts(experience.timestamp),
            ),
        )
        await conn.commit()

    async def get_experiences(self, agent_id: str, limit: int = 100) -> list[dict]:
        """Get serialized experiences for an agent (newest first)."""
        conn = self._require_conn()
        cursor = await conn.execute(
            """
            SELECT data FROM experiences
            WHERE agent_id = ?
            ORDER BY timestamp DESC
            LIMIT ?
            """,
            (agent_id, limit),
        )
        rows = await cursor.fetchall()
        return [json.loads(row[0]) for row in rows]

    # Bus messages
    async def save_bus_message(self, message: AgentMessage) -> None:
        """Save a bus message."""
        conn = self._require_conn()
        await conn.execute(
            """
            INSERT OR REPLACE INTO bus_messages
            (id, sender, recipient, kind, priority, payload, correlation_ids, timestamp)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                message.id or str(uuid.uuid4()),
                message.sender,
                message.to,
                message.kind.value,
                message.priority.value,
                json.dumps(message.payload, default=_json_default),
                json.dumps(list(message.correlation_ids)),
                _ts(message.timestamp or datetime.now(timezone.utc)),
            ),
        )
        await conn.commit()

    async def get_bus_messages(
        self, recipient: str | None = None, limit: int = 100
    ) -> list[AgentMessage]:
        """Get bus messages (newest first)."""
        conn = self._require_conn()

        if recipient:
            cursor = await conn.execute(
                """
                SELECT id, sender, recipient, kind, priority, payload, correlation_ids, timestamp
                FROM bus_messages
                WHERE recipient = ?
                ORDER BY timestamp DESC
                LIMIT ?
                """,
                (recipient, limit),
            )
        else:
            cursor = await conn.execute(
                """
                SELECT id, sender, recipient, kind, priority, payload, correlation_ids, timestamp
                FROM bus_messages
                ORDER BY timestamp DESC
                LIMIT ?
                """,
                (limit,),
            )
        rows = await cursor.fetchall()

        return [
            AgentMessage(
                id=row[0],
                sender=row[1],
                to=row[2],
                kind=MessageKind(row[3]),
                priority=Priority(row[4]),
                payload=json.loads(row[5]),
                correlation_ids=tuple(json.loads(row[6])),
                timestamp=_parse_ts(row[7]),
            )
            for row in rows
        ]

    # Alerts
    async def save_alert(self, alert: Alert) -> None:
        """Insert or update an alert."""
        conn = self._require_conn()
        await conn.execute(
            """
            INSERT OR REPLACE INTO alerts (id, severity, message, source, timestamp, resolved)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                alert.id,
                alert.severity.value,
                alert.message,
                alert.source,
                _ts(alert.timestamp),
                int(alert.resolved),
            ),
        )
        await conn.commit()

    async def get_alerts(self, include_resolved: bool = False) -> list[Alert]:
        """Get alerts (oldest first)."""
        conn = self._require_conn()
        where_clause = "" if include_resolved else "WHERE resolved = 0"
        cursor = await conn.execute(
            f"""
            SELECT id, severity, message, source, timestamp, resolved
            FROM alerts
            {where_clause}
            ORDER BY timestamp ASC
            """
        )
        rows = await cursor.fetchall()

        return [
            Alert(
                id=row[0],
                severity=AlertSeverity(row[1]),
                message=row[2],
                source=row[3],
                timestamp=_parse_ts(row[4]),
                resolved=bool(row[5]),
            )
            for row in rows
        ]

    # Knowledge
    async def save_knowledge(self, entry: KnowledgeEntry) -> None:
        """Insert or update a knowledge entry."""
        conn = self._require_conn()
        await conn.execute(
            """
            INSERT OR REPLACE INTO knowledge
            (id, domain, content, confidence, contributors, evidence, occurrences,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.id,
                entry.domain,
                entry.content,
                entry.confidence,
                json.dumps(entry.contributors),
                json.dumps(entry.evidence),
                entry.occurrences,
                _ts(entry.created_at),
                _ts(entry.updated_at),
            ),
        )
        await conn.commit()

    async def get_knowledge(self, domain: str | None = None) -> list[KnowledgeEntry]:
        """Get knowledge entries, optionally for one domain."""
        conn = self._require_conn()
        query = """
            SELECT id, domain, content, confidence, contributors, evidence,
                   occurrences, created_at, updated_at
            FROM knowledge
        """
        params: list[Any] = []
        if domain:
            query += " WHERE domain = ?"
            params.append(domain)
        query += " ORDER BY confidence DESC"

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        return [
            KnowledgeEntry(
                id=row[0],
                domain=row[1],
                content=row[2],
                confidence=row[3],
                contributors=json.loads(row[4]),
                evidence=json.loads(row[5]),
                occurrences=row[6],
                created_at=_parse_ts(row[7]),
                updated_at=_parse_ts(row[8]),
            )
            for row in rows
        ]

    # Review requests
    async def save_review_request(self, request: ReviewRequest) -> None:
        """Insert or update a review request."""
        conn = self._require_conn()
        await conn.execute(
            """
            INSERT OR REPLACE INTO review_requests
            (id, user_id, agent_id, subject, urgency, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                request.id,
                request.user_id,
                request.agent_id,
                json.dumps(request.subject, default=_json_default),
                request.urgency.value,
                request.status,
                _ts(request.created_at),
            ),
        )
        await conn.commit()

    async def get_review_requests(self, status: str | None = None) -> list[ReviewRequest]:
        """Get review requests (oldest first)."""
        conn = self._require_conn()
        query = """
            SELECT id, user_id, agent_id, subject, urgency, status, created_at
            FROM review_requests
        """
        params: list[Any] = []
        if status:
            query += " WHERE status = ?"
            params.append(status)
        query += " ORDER BY created_at ASC"

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        return [
            ReviewRequest(
                id=row[0],
                user_id=row[1],
                agent_id=row[2],
                subject=json.loads(row[3]),
                urgency=Priority(row[4]),
                status=row[5],
                created_at=_parse_ts(row[6]),
            )
            for row in rows
        ]

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        conn = self._require_conn()
        await conn.execute(
            """
            INSERT INTO trace_events (id, event_type, actor, data, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                event.id or str(uuid.uuid4()),
                event.event_type,
                event.actor,
                json.dumps(event.data, default=_json_default),
                _ts(event.timestamp),
            ),
        )
        await conn.commit()

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters (newest first)."""
        conn = self._require_conn()

        conditions = []
        params: list[Any] = []

        if after:
            if after.tzinfo is None:
                after = after.replace(tzinfo=timezone.utc)
            conditions.append("timestamp > ?")
            params.append(_ts(after))
        if event_types:
            placeholders = ",".join("?" * len(event_types))
            conditions.append(f"event_type IN ({placeholders})")
            params.extend(event_types)
        if actor:
            conditions.append("actor = ?")
            params.append(actor)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT id, event_type, actor, data, timestamp
            FROM trace_events
            {where_clause}
            ORDER BY timestamp DESC
            LIMIT ?
        """
        params.append(limit)

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        return [
            TraceEvent(
                id=row[0],
                event_type=row[1],
                actor=row[2],
                data=json.loads(row[3]),
                timestamp=_parse_ts(row[4]),
            )
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear runtime data. Loop specs are static configuration and survive."""
        conn = self._require_conn()

        tables = [
            "loop_states",
            "experiences",
            "bus_messages",
            "alerts",
            "knowledge",
            "review_requests",
            "trace_events",
        ]

        for table in tables:
            await conn.execute(f"DELETE FROM {table}")

        await conn.commit()
