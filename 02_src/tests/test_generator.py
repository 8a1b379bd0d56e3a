"""Tests for ContentGenerator."""

import json
from unittest.mock import AsyncMock, Mock, patch

import pytest

from autonomy.errors import GenerationError
from autonomy.llm import ContentGenerator

CLIENT = "autonomy.llm.generator.anthropic.AsyncAnthropic"


def _client(text="{}", error=None):
    mock_client = Mock()
    mock_response = Mock()
    mock_response.content = [Mock(text=text)]
    if error is not None:
        mock_client.messages.create = AsyncMock(side_effect=error)
    else:
        mock_client.messages.create = AsyncMock(return_value=mock_response)
    return mock_client


class TestContentGeneratorInit:
    """Tests for ContentGenerator initialization."""

    def test_init_with_api_key(self, monkeypatch):
        """Test initialization with API key from the environment."""
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test_key")

        with patch(CLIENT) as mock_cls:
            ContentGenerator()
            mock_cls.assert_called_once_with(api_key="test_key")

    def test_init_without_api_key(self, monkeypatch):
        """Test initialization without API key raises ValueError."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        with patch(CLIENT):
            with pytest.raises(ValueError):
                ContentGenerator()


class TestContentGeneratorGenerate:
    """Tests for ContentGenerator.generate()."""

    @pytest.mark.asyncio
    async def test_parses_json_reply(self):
        mock_client = _client('{"subtasks": [{"id": "a"}]}')
        with patch(CLIENT, return_value=mock_client):
            generator = ContentGenerator(api_key="k")
            result = await generator.generate({"task": "decompose"})

        assert result == {"subtasks": [{"id": "a"}]}

    @pytest.mark.asyncio
    async def test_sends_prompt_as_json(self):
        mock_client = _client("{}")
        with patch(CLIENT, return_value=mock_client):
            generator = ContentGenerator(api_key="k", model="test-model", max_tokens=256)
            await generator.generate({"task": "hypotheses", "n": 2})

        call_kwargs = mock_client.messages.create.call_args.kwargs
        assert call_kwargs["model"] == "test-model"
        assert call_kwargs["max_tokens"] == 256
        assert json.loads(call_kwargs["messages"][0]["content"]) == {"task": "hypotheses", "n": 2}

    @pytest.mark.asyncio
    async def test_tolerates_fenced_reply(self):
        mock_client = _client('```json\n{"ok": true}\n```')
        with patch(CLIENT, return_value=mock_client):
            result = await ContentGenerator(api_key="k").generate({})

        assert result == {"ok": True}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["no json here", "{not valid}", "[1, 2]"])
    async def test_unparseable_reply(self, text):
        with patch(CLIENT, return_value=_client(text)):
            generator = ContentGenerator(api_key="k")
            with pytest.raises(GenerationError):
                await generator.generate({})

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self):
        with patch(CLIENT, return_value=_client(error=RuntimeError("overloaded"))):
            generator = ContentGenerator(api_key="k")
            with pytest.raises(GenerationError, match="overloaded"):
                await generator.generate({})


class TestContentGeneratorQuota:
    """Tests for the hourly call quota."""

    @pytest.mark.asyncio
    async def test_quota_usage_and_exhaustion(self):
        now = [0.0]
        with patch(CLIENT, return_value=_client("{}")):
            generator = ContentGenerator(api_key="k", hourly_quota=2, clock=lambda: now[0])

            await generator.generate({})
            assert generator.quota_usage() == 50.0
            await generator.generate({})
            assert generator.quota_usage() == 100.0

            with pytest.raises(GenerationError, match="quota"):
                await generator.generate({})

    @pytest.mark.asyncio
    async def test_quota_window_slides(self):
        now = [0.0]
        with patch(CLIENT, return_value=_client("{}")):
            generator = ContentGenerator(api_key="k", hourly_quota=1, clock=lambda: now[0])

            await generator.generate({})
            now[0] = 3601.0

            assert generator.quota_usage() == 0.0
            await generator.generate({})
