"""
Unit tests for ClaudeConfig and ClaudeAPIClient.

The Anthropic client is replaced with a stub exposing messages.create, so
the tests check request construction and content-block parsing offline.
"""
import asyncio
import sys
import os
from types import SimpleNamespace

import httpx
from anthropic import APIStatusError

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from itsm_data_analyst.llm.claude_config import ClaudeConfig, build_translation_system_prompt
from itsm_data_analyst.llm.client import ClaudeAPIClient, ClaudeAPIError, parse_response_content


class StubMessages:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


class StubLLM:
    def __init__(self, response=None, error=None):
        self.messages = StubMessages(response, error)


def text_block(text):
    return SimpleNamespace(type="text", text=text)


def tool_block(name, payload):
    return SimpleNamespace(type="tool_use", name=name, input=payload, id="toolu_1")


def response_with(*blocks):
    return SimpleNamespace(content=list(blocks), usage=SimpleNamespace(input_tokens=10, output_tokens=5))


CHART = {"chartType": "bar", "config": {"title": "T", "description": "D"}, "data": [], "chartConfig": {}}


def test_config_payload():
    config = ClaudeConfig(charting_enabled=True)
    payload = config.get_request_payload([{"role": "user", "content": "hi"}])
    assert payload["model"] == "claude-sonnet-4-5-20250929"
    assert payload["max_tokens"] == 4096
    assert payload["temperature"] == 0.7
    assert payload["system"][0]["cache_control"] == {"type": "ephemeral"}
    tool = payload["tools"][0]
    assert tool["name"] == "generate_graph_data"
    assert len(tool["input_schema"]["properties"]["chartType"]["enum"]) == 11
    assert tool["input_schema"]["required"] == ["chartType", "config", "data", "chartConfig"]
    assert "yAxisKey" in tool["input_schema"]["properties"]["config"]["properties"]


def test_config_without_charting_offers_no_tools():
    payload = ClaudeConfig(charting_enabled=False).get_request_payload([])
    assert "tools" not in payload


def test_translation_prompt_embeds_schema():
    prompt = build_translation_system_prompt("Table: incident (Incident)")
    assert "Table: incident (Incident)" in prompt
    assert "javascript:gs.daysAgoStart(7)" in prompt
    assert '"needsClarification": true' in prompt


def test_parse_last_text_block_wins():
    parsed = parse_response_content(
        [text_block("first"), tool_block("generate_graph_data", CHART), text_block("last")],
        "generate_graph_data",
    )
    assert parsed.text_content == "last"
    assert parsed.chart_data == CHART
    assert parsed.has_tool_use is True


def test_parse_ignores_other_tools_and_accepts_dict_blocks():
    parsed = parse_response_content(
        [{"type": "tool_use", "name": "other", "input": {}}, {"type": "text", "text": "hello"}],
        "generate_graph_data",
    )
    assert parsed.text_content == "hello"
    assert parsed.chart_data is None
    assert parsed.has_tool_use is False


def test_parse_empty_content():
    parsed = parse_response_content(None, "generate_graph_data")
    assert parsed.text_content == ""
    assert parsed.has_tool_use is False


def test_call_sends_config_payload():
    llm = StubLLM(response_with(text_block("Here is your chart"), tool_block("generate_graph_data", CHART)))
    client = ClaudeAPIClient(llm, ClaudeConfig(charting_enabled=True))
    result = asyncio.run(client.call([{"role": "user", "content": "chart it"}]))
    assert result.text_content == "Here is your chart"
    assert result.chart_data == CHART
    sent = llm.messages.calls[0]
    assert sent["messages"] == [{"role": "user", "content": "chart it"}]
    assert sent["system"][0]["type"] == "text"


def test_call_with_system_overrides_prompt():
    llm = StubLLM(response_with(text_block('{"table": "incident"}')))
    client = ClaudeAPIClient(llm)
    asyncio.run(client.call_with_system("translate please", [{"role": "user", "content": "q"}]))
    assert llm.messages.calls[0]["system"] == "translate please"


def test_missing_client_raises_500():
    client = ClaudeAPIClient(None)
    try:
        asyncio.run(client.call([{"role": "user", "content": "hi"}]))
        assert False, "expected ClaudeAPIError"
    except ClaudeAPIError as e:
        assert e.status_code == 500
        assert e.error == "Anthropic API key not configured"


def test_api_status_error_passes_status_through():
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(429, request=request)
    error = APIStatusError("rate limited", response=response, body={"error": {"type": "rate_limit_error"}})
    client = ClaudeAPIClient(StubLLM(error=error))
    try:
        asyncio.run(client.call([{"role": "user", "content": "hi"}]))
        assert False, "expected ClaudeAPIError"
    except ClaudeAPIError as e:
        assert e.status_code == 429
        assert e.error == "Claude API error"
        assert "rate_limit_error" in e.details


def test_unexpected_exception_becomes_500():
    client = ClaudeAPIClient(StubLLM(error=RuntimeError("socket closed")))
    try:
        asyncio.run(client.call([{"role": "user", "content": "hi"}]))
        assert False, "expected ClaudeAPIError"
    except ClaudeAPIError as e:
        assert e.status_code == 500
        assert e.to_dict() == {"error": "API call failed", "details": "socket closed"}
