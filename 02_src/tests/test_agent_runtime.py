"""Tests for AgentRuntime."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from autonomy.agents import FunctionTool, SensorReading
from autonomy.errors import GenerationError, MessageTimeoutError
from autonomy.models import (
    AgentMessage,
    Capability,
    Context,
    LearningKind,
    MessageKind,
    ObservationKind,
    Priority,
    ResultStatus,
    ThoughtKind,
)


def _context(actions=(), **kwargs):
    environment = {"suggested_actions": list(actions)} if actions else {}
    return Context(
        timestamp=datetime.now(timezone.utc),
        agent_id="worker",
        loop_id="test_loop",
        environment=environment,
        **kwargs,
    )


def _tool(name, result=None, error=None):
    async def run(parameters):
        if error:
            raise error
        return result if result is not None else {"ok": name}

    return FunctionTool(name, run)


class TestCognitiveCycle:
    """Tests for run_cycle()."""

    @pytest.mark.asyncio
    async def test_failed_action_does_not_abort_siblings(self, make_agent, storage):
        """Test that three actions where the second throws yield three results."""
        agent = make_agent()
        agent.register_tool(_tool("first"))
        agent.register_tool(_tool("second", error=RuntimeError("boom")))
        agent.register_tool(_tool("third"))
        await agent.start()

        experience = await agent.run_cycle(
            _context([{"action": "first"}, {"action": "second"}, {"action": "third"}])
        )

        statuses = [r.status for r in experience.results]
        assert len(experience.results) == 3
        assert statuses.count(ResultStatus.FAILED) == 1
        assert statuses.count(ResultStatus.COMPLETED) == 2
        failed = [r for r in experience.results if r.status is ResultStatus.FAILED][0]
        assert failed.error == "boom"
        assert not experience.success

        kinds = {l.kind for l in experience.learnings}
        assert kinds == {LearningKind.SUCCESS_PATTERN, LearningKind.FAILURE_ANALYSIS}
        assert len(await storage.get_experiences("worker")) == 1

    @pytest.mark.asyncio
    async def test_unbound_tool_yields_failed_result(self, make_agent):
        agent = make_agent()
        agent.register_tool(_tool("first"))
        await agent.start()

        experience = await agent.run_cycle(_context([{"action": "first"}, {"action": "missing"}]))

        assert [a.tool for a in experience.actions] == ["first", "missing"]
        by_tool = {a.tool: r for a, r in zip(experience.actions, experience.results)}
        assert by_tool["first"].status is ResultStatus.COMPLETED
        assert by_tool["missing"].status is ResultStatus.FAILED
        assert by_tool["missing"].error == "Tool not found: missing"
        assert not experience.success

    @pytest.mark.asyncio
    async def test_cancelled_cycle_skips_actions(self, make_agent):
        agent = make_agent()
        agent.register_tool(_tool("first"))
        cancel = asyncio.Event()
        cancel.set()

        experience = await agent.run_cycle(_context([{"action": "first"}]), cancel)

        assert [r.status for r in experience.results] == [ResultStatus.SKIPPED]

    @pytest.mark.asyncio
    async def test_metrics_produce_optimization_learning(self, make_agent):
        agent = make_agent()
        agent.register_tool(_tool("measure", result={"metrics": {"ctr": 0.04}}))

        experience = await agent.run_cycle(_context([{"action": "measure"}]))

        optimization = [l for l in experience.learnings if l.kind is LearningKind.OPTIMIZATION]
        assert optimization and "ctr" in optimization[0].content

    @pytest.mark.asyncio
    async def test_memory_learns_from_cycle(self, make_agent):
        agent = make_agent()
        await agent.run_cycle(_context())
        await agent.run_cycle(_context())

        assert len(agent.memory.episodic) == 2
        assert agent.get_status()["performance"]["cycles_completed"] == 2


class TestPerceiveAndThink:
    """Tests for perception and reasoning phases."""

    @pytest.mark.asyncio
    async def test_failing_sensor_degrades(self, make_agent):
        """Test that a failing sensor becomes a degraded observation and a concern."""
        agent = make_agent()

        async def broken(context):
            raise ConnectionError("api down")

        agent.register_sensor("social_api", broken)
        context = _context()

        observations = await agent.perceive(context)
        assert observations[0].kind is ObservationKind.DEGRADED
        assert observations[0].error == "api down"

        thoughts = await agent.think(observations, context)
        assert thoughts[0].kind is ThoughtKind.CONCERN

        plan = agent.plan(thoughts, context)
        assert plan.steps == ()
        assert plan.risks

    @pytest.mark.asyncio
    async def test_opportunity_becomes_insight(self, make_agent):
        agent = make_agent()

        async def trends(context):
            return SensorReading(kind=ObservationKind.OPPORTUNITY, data={"topic": "ai"})

        agent.register_sensor("trends", trends)
        context = _context()
        thoughts = await agent.think(await agent.perceive(context), context)
        assert thoughts[0].kind is ThoughtKind.INSIGHT

    @pytest.mark.asyncio
    async def test_priority_messages_are_perceived(self, make_agent, message_bus):
        agent = make_agent()
        agent.attach(message_bus)
        await message_bus.enqueue_priority(
            AgentMessage(
                id="p1",
                sender="orchestrator",
                to="worker",
                kind=MessageKind.ALERT,
                payload={"alert": "spike"},
                priority=Priority.CRITICAL,
            )
        )

        observations = await agent.perceive(_context())

        assert observations[0].kind is ObservationKind.MESSAGE
        assert observations[0].relevance == 1.0
        assert message_bus.priority_backlog == 0

    @pytest.mark.asyncio
    async def test_generator_hypotheses(self, make_agent, mock_generator):
        mock_generator.generate = AsyncMock(
            return_value={
                "hypotheses": [
                    {
                        "content": "Video outperforms text",
                        "confidence": 0.85,
                        "implications": [{"action": "first"}],
                    }
                ]
            }
        )
        agent = make_agent(generator=mock_generator)
        agent.register_tool(_tool("first"))
        context = _context(goals=("grow reach",))

        thoughts = await agent.think(await agent.perceive(_context([{"action": "x"}])), context)

        hypotheses = [t for t in thoughts if t.kind is ThoughtKind.HYPOTHESIS]
        assert hypotheses[0].content == "Video outperforms text"
        plan = agent.plan(thoughts, context)
        assert [s.action for s in plan.steps] == ["x", "first"]
        assert plan.steps[1].priority is Priority.HIGH

    @pytest.mark.asyncio
    async def test_generator_failure_falls_back(self, make_agent, mock_generator):
        mock_generator.generate = AsyncMock(side_effect=GenerationError("quota"))
        agent = make_agent(generator=mock_generator)
        agent.register_tool(_tool("x"))

        experience = await agent.run_cycle(_context([{"action": "x"}]))

        assert experience.success
        assert agent.get_status()["health"]["warnings"]


class TestHealthAndOversight:
    @pytest.mark.asyncio
    async def test_health_requires_start(self, make_agent):
        agent = make_agent()
        assert not await agent.health_check()
        await agent.start()
        assert await agent.health_check()
        await agent.stop()
        assert not await agent.health_check()

    @pytest.mark.asyncio
    async def test_many_errors_fail_health(self, make_agent):
        agent = make_agent()
        agent.register_tool(_tool("bad", error=ValueError("nope")))
        await agent.start()

        for _ in range(11):
            await agent.run_cycle(_context([{"action": "bad"}]))

        assert agent.get_status()["health"]["status"] == "error"
        assert not await agent.health_check()

    @pytest.mark.asyncio
    async def test_multiple_failures_request_review(self, make_agent):
        oversight = Mock()
        oversight.request_review = AsyncMock()
        agent = make_agent(oversight=oversight)
        for name in ("a", "b", "c"):
            agent.register_tool(_tool(name, error=RuntimeError(name)))
        agent.register_tool(_tool("d"))

        await agent.run_cycle(
            _context([{"action": "a"}, {"action": "b"}, {"action": "c"}, {"action": "d"}])
        )

        args = oversight.request_review.await_args.args
        assert args[1] == "worker"
        assert args[3] is Priority.HIGH

    @pytest.mark.asyncio
    async def test_all_failed_actions_escalate_high(self, make_agent):
        oversight = Mock()
        oversight.request_review = AsyncMock()
        agent = make_agent(oversight=oversight)
        for name in ("a", "b", "c"):
            agent.register_tool(_tool(name, error=RuntimeError(name)))

        await agent.run_cycle(_context([{"action": "a"}, {"action": "b"}, {"action": "c"}]))

        args = oversight.request_review.await_args.args
        assert args[3] is Priority.HIGH
        assert args[2]["reason"] == "Multiple action failures detected (3)"

    @pytest.mark.asyncio
    async def test_plain_success_is_not_reviewed(self, make_agent):
        oversight = Mock()
        oversight.request_review = AsyncMock()
        agent = make_agent(oversight=oversight)
        agent.register_tool(_tool("first"))

        experience = await agent.run_cycle(_context([{"action": "first"}]))

        assert experience.success
        assert experience.learnings[0].confidence == pytest.approx(0.5)
        oversight.request_review.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_long_success_streak_is_reviewed(self, make_agent):
        """Test that only a well-evidenced success pattern counts as high-confidence."""
        oversight = Mock()
        oversight.request_review = AsyncMock()
        agent = make_agent(oversight=oversight)
        names = [f"tool{i}" for i in range(10)]
        for name in names:
            agent.register_tool(_tool(name))

        await agent.run_cycle(_context([{"action": name} for name in names]))

        args = oversight.request_review.await_args.args
        assert args[3] is Priority.MEDIUM
        assert args[2]["reason"] == "Discovered 1 high-confidence insights"

    @pytest.mark.asyncio
    async def test_high_confidence_learning_is_shared(self, make_agent):
        knowledge = Mock()
        knowledge.share_knowledge = AsyncMock()
        knowledge.record_experience = AsyncMock(return_value=[])
        agent = make_agent(knowledge=knowledge)
        names = [f"tool{i}" for i in range(5)]
        for name in names:
            agent.register_tool(_tool(name))

        await agent.run_cycle(_context([{"action": name} for name in names]))

        knowledge.share_knowledge.assert_awaited_once()
        knowledge.record_experience.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_single_success_is_not_shared(self, make_agent):
        knowledge = Mock()
        knowledge.share_knowledge = AsyncMock()
        knowledge.record_experience = AsyncMock(return_value=[])
        agent = make_agent(knowledge=knowledge)
        agent.register_tool(_tool("first"))

        await agent.run_cycle(_context([{"action": "first"}]))

        knowledge.share_knowledge.assert_not_awaited()


class TestMessaging:
    """Tests for handle_message()."""

    @pytest.mark.asyncio
    async def test_request_is_acknowledged(self, make_agent, message_bus):
        agent = make_agent()
        agent.attach(message_bus)

        response = await message_bus.request_response(
            AgentMessage(id="r1", sender="orchestrator", to="worker", kind=MessageKind.REQUEST)
        )

        assert response.payload == {"status": "acknowledged", "original_request": "r1"}
        assert response.sender == "worker"

    @pytest.mark.asyncio
    async def test_task_assignment_uses_handler(self, make_agent, message_bus):
        agent = make_agent()
        agent.attach(message_bus)

        async def handler(subtask):
            return {"report": f"analysed {subtask['inputs']['data']}"}

        agent.register_task_handler(Capability.ANALYTICS, handler)

        response = await message_bus.request_response(
            AgentMessage(
                id="r1",
                sender="coordinator",
                to="worker",
                kind=MessageKind.REQUEST,
                payload={
                    "type": "task_assignment",
                    "subtask": {
                        "id": "s1",
                        "capability": "analytics",
                        "inputs": {"data": "q3"},
                        "outputs": ["report"],
                    },
                },
            )
        )

        assert response.payload == {"status": "completed", "outputs": {"report": "analysed q3"}}

    @pytest.mark.asyncio
    async def test_task_assignment_wrong_capability(self, make_agent, message_bus):
        agent = make_agent()
        agent.attach(message_bus)

        response = await message_bus.request_response(
            AgentMessage(
                id="r1",
                sender="coordinator",
                to="worker",
                kind=MessageKind.REQUEST,
                payload={"type": "task_assignment", "subtask": {"id": "s1", "capability": "strategy"}},
            )
        )

        assert response.payload["status"] == "failed"

    @pytest.mark.asyncio
    async def test_broadcast_goes_to_long_term(self, make_agent, message_bus):
        agent = make_agent()
        agent.attach(message_bus)

        await message_bus.broadcast({"news": "launch"}, priority=Priority.HIGH, sender="strategy")

        recalled = agent.memory.long_term.recall()
        assert recalled[0][1] == {"news": "launch"}

    @pytest.mark.asyncio
    async def test_own_broadcast_ignored(self, make_agent, message_bus):
        agent = make_agent()
        agent.attach(message_bus)
        await message_bus.broadcast({"news": "x"}, sender="worker")
        assert len(agent.memory.long_term) == 0

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self, make_agent, message_bus):
        agent = make_agent()
        agent.attach(message_bus)
        await agent.start()
        await agent.stop()

        with pytest.raises(MessageTimeoutError):
            await message_bus.request_response(
                AgentMessage(id="r1", sender="o", to="worker", kind=MessageKind.REQUEST),
                timeout=0.05,
            )
