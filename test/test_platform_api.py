"""
Unit tests for PlatformAPIClient.

HTTP is served by httpx.MockTransport handlers, so request shape
(paths, sysparm_* parameters, JSON bodies) and response unwrapping are
checked without a platform instance.
"""
import asyncio
import base64
import json
import sys
import os
from urllib.parse import unquote

import httpx

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from itsm_data_analyst.core.models import Message, QueryClarification, QueryConfig, QueryTranslation
from itsm_data_analyst.services.platform_api import (
    PlatformAPIClient,
    PlatformAPIError,
    convert_query_results_to_file_upload,
)

NAMESPACE = "/api/x_test/claude_ai"


def make_client(handler):
    return PlatformAPIClient(
        base_url="https://instance.example.com",
        namespace=NAMESPACE,
        transport=httpx.MockTransport(handler),
    )


async def call(handler, method, *args):
    async with make_client(handler) as client:
        return await getattr(client, method)(*args)


def test_fetch_session_token_sets_header():
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.path.endswith("/get_token"):
            return httpx.Response(200, json={"result": {"sessionToken": "abc123", "username": "admin"}})
        return httpx.Response(200, json={"result": []})

    async def scenario():
        async with make_client(handler) as client:
            token = await client.fetch_session_token()
            await client.execute_table_query(QueryConfig(table="incident"))
            return token

    token = asyncio.run(scenario())
    assert (token.session_token, token.username) == ("abc123", "admin")
    assert seen[1].headers["X-UserToken"] == "abc123"


def test_translate_posts_body_and_unwraps_result():
    captured = {}

    def handler(request):
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"result": {
            "table": "incident",
            "tableLabel": "Incident",
            "encodedQuery": "priority=1^active=true",
            "fields": ["number", "priority"],
            "limit": 50,
            "summary": "Open P1 incidents",
        }})

    outcome = asyncio.run(call(handler, "translate_query", "open p1s", "Table: incident", "incident"))
    assert captured["path"] == f"{NAMESPACE}/query_translate"
    assert captured["body"] == {"naturalLanguage": "open p1s", "tableHint": "incident", "schema": "Table: incident"}
    assert isinstance(outcome, QueryTranslation)
    assert outcome.encoded_query == "priority=1^active=true"
    assert outcome.limit == 50


def test_translate_returns_clarification():
    def handler(request):
        return httpx.Response(200, json={"needsClarification": True, "message": "Which table?"})

    outcome = asyncio.run(call(handler, "translate_query", "stuff", "schema"))
    assert isinstance(outcome, QueryClarification)
    assert outcome.message == "Which table?"
    assert outcome.suggestion is None


def test_translate_invalid_payload_raises():
    def handler(request):
        return httpx.Response(200, json={"tableLabel": "Incident"})

    try:
        asyncio.run(call(handler, "translate_query", "stuff", "schema"))
        assert False, "expected PlatformAPIError"
    except PlatformAPIError as e:
        assert str(e) == "Invalid translation format"


def test_non_json_body_raises():
    def handler(request):
        return httpx.Response(200, text="<html>login</html>")

    try:
        asyncio.run(call(handler, "translate_query", "stuff", "schema"))
        assert False, "expected PlatformAPIError"
    except PlatformAPIError as e:
        assert e.details == "<html>login</html>"


def test_http_error_carries_status_and_body():
    def handler(request):
        return httpx.Response(500, json={"error": "Could not parse query translation from AI response"})

    try:
        asyncio.run(call(handler, "translate_query", "stuff", "schema"))
        assert False, "expected PlatformAPIError"
    except PlatformAPIError as e:
        assert e.status_code == 500
        assert e.details["error"] == "Could not parse query translation from AI response"


def test_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    try:
        asyncio.run(call(handler, "execute_table_query", QueryConfig(table="incident")))
        assert False, "expected PlatformAPIError"
    except PlatformAPIError as e:
        assert e.status_code is None


def test_table_query_parameters():
    captured = {}

    def handler(request):
        captured["path"] = request.url.path
        captured["params"] = dict(request.url.params)
        return httpx.Response(200, json={"result": [{"number": "INC001"}]})

    config = QueryConfig(
        table="incident",
        query="priority=1",
        fields="number,priority",
        limit=25,
        offset=50,
        display_value="true",
    )
    rows = asyncio.run(call(handler, "execute_table_query", config))
    assert rows == [{"number": "INC001"}]
    assert captured["path"] == "/api/now/table/incident"
    assert captured["params"] == {
        "sysparm_limit": "25",
        "sysparm_query": "priority=1",
        "sysparm_fields": "number,priority",
        "sysparm_display_value": "true",
        "sysparm_offset": "50",
    }


def test_table_query_sends_only_limit_by_default():
    captured = {}

    def handler(request):
        captured["params"] = dict(request.url.params)
        return httpx.Response(200, json={"result": []})

    asyncio.run(call(handler, "execute_table_query", QueryConfig(table="problem", offset=0)))
    assert captured["params"] == {"sysparm_limit": "100"}


def test_table_query_unwraps_double_envelope_and_missing_list():
    responses = iter([
        {"result": {"result": [{"a": 1}]}},
        {"result": {"rows": "nope"}},
        {"unexpected": True},
    ])

    def handler(request):
        return httpx.Response(200, json=next(responses))

    async def scenario():
        async with make_client(handler) as client:
            config = QueryConfig(table="task")
            return [await client.execute_table_query(config) for _ in range(3)]

    assert asyncio.run(scenario()) == [[{"a": 1}], [], []]


def test_analyze_posts_messages_and_defaults():
    captured = {}

    def handler(request):
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"result": {"content": "", "chartData": {"chartType": "bar"}}})

    messages = [Message(role="user", content="Chart it")]
    result = asyncio.run(call(handler, "analyze", messages, None))
    assert captured["body"] == {"messages": [{"role": "user", "content": "Chart it"}], "fileData": None}
    assert result.content == "No response from AI"
    assert result.chart_data == {"chartType": "bar"}
    assert result.has_tool_use is True


def test_analyze_without_chart():
    def handler(request):
        return httpx.Response(200, json={"content": "Mostly P3s.", "hasToolUse": False})

    result = asyncio.run(call(handler, "analyze", [Message(role="user", content="Summary?")], None))
    assert result.content == "Mostly P3s."
    assert result.chart_data is None
    assert result.has_tool_use is False


def test_convert_query_results_to_file_upload():
    rows = [{"number": "INC001", "short_description": "Email down & slow"}]
    upload = convert_query_results_to_file_upload(rows, "incident")
    assert upload.file_name == "incident_query_results.json"
    assert upload.media_type == "application/json"
    assert upload.is_text is True
    decoded = unquote(base64.b64decode(upload.base64).decode("ascii"))
    assert decoded == json.dumps(rows, indent=2)
    assert upload.to_dict()["fileName"] == "incident_query_results.json"
