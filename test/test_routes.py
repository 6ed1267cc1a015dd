"""
Integration tests for the claude_ai blueprint.

Runs the Quart app through its test client with a stub Anthropic client
installed in APP_STATE["llm"].
"""
import asyncio
import json
import sys
import os
from types import SimpleNamespace

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from itsm_data_analyst.core.config import APP_STATE
from itsm_data_analyst.main import create_app
from itsm_data_analyst.services.platform_api import encode_text_payload


class StubMessages:
    def __init__(self, blocks):
        self.blocks = blocks
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(content=self.blocks, usage=None)


def install_llm(*blocks):
    llm = SimpleNamespace(messages=StubMessages(list(blocks)))
    APP_STATE["llm"] = llm
    return llm


def text(value):
    return SimpleNamespace(type="text", text=value)


def chart_tool(payload):
    return SimpleNamespace(type="tool_use", name="generate_graph_data", input=payload, id="toolu_1")


CHART = {
    "chartType": "pie",
    "config": {"title": "By category", "description": "Open incidents"},
    "data": [{"category": "Network", "count": 5}, {"category": "Database", "count": 3}],
    "chartConfig": {"count": {"label": "Count"}},
}


def request(method, path, body=None):
    async def go():
        client = create_app().test_client()
        if method == "GET":
            response = await client.get(path)
        else:
            response = await client.post(path, json=body)
        return response.status_code, await response.get_json()
    return asyncio.run(go())


def test_analyze_rejects_empty_messages():
    install_llm(text("unused"))
    status, body = request("POST", "/api/claude_ai/analyze", {"messages": []})
    assert status == 400
    assert body == {"error": "Messages array is required"}


def test_analyze_rejects_non_list_messages():
    install_llm(text("unused"))
    status, body = request("POST", "/api/claude_ai/analyze", {"messages": "hi"})
    assert status == 400
    assert body == {"error": "Messages must be an array"}


def test_analyze_rejects_non_object_message():
    install_llm(text("unused"))
    status, body = request("POST", "/api/claude_ai/analyze", {"messages": ["hello"]})
    assert status == 400
    assert body == {"error": "Each message must be an object with role and content"}


def test_analyze_rejects_message_with_bad_role_or_content():
    llm = install_llm(text("unused"))
    for message in ({"role": "system", "content": "hi"}, {"role": "user", "content": 5}, {"role": "user"}):
        status, body = request("POST", "/api/claude_ai/analyze", {"messages": [message]})
        assert status == 400, message
        assert body["error"] == "Invalid message format"
    assert llm.messages.calls == []


def test_analyze_returns_chart_component():
    llm = install_llm(text("Network leads."), chart_tool(CHART))
    file_data = {"base64": encode_text_payload("category,count\nNetwork,5"), "fileName": "cats.csv"}
    status, body = request("POST", "/api/claude_ai/analyze", {
        "messages": [{"role": "user", "content": "Chart categories"}],
        "fileData": file_data,
    })
    assert status == 200
    assert body["content"] == "Network leads."
    assert body["chartData"] == CHART
    assert body["hasToolUse"] is True
    assert body["component"]["metadata"]["status"] == "success"
    assert body["component"]["spec"]["valueKey"] == "count"
    sent = llm.messages.calls[0]["messages"][-1]["content"]
    assert sent.startswith("File contents of cats.csv:\n\ncategory,count\nNetwork,5\n\n")


def test_analyze_text_only():
    install_llm(text("No chart needed."))
    status, body = request("POST", "/api/claude_ai/analyze", {"messages": [{"role": "user", "content": "hi"}]})
    assert status == 200
    assert body == {"content": "No chart needed.", "chartData": None, "hasToolUse": False}


def test_analyze_without_llm_client():
    APP_STATE["llm"] = None
    status, body = request("POST", "/api/claude_ai/analyze", {"messages": [{"role": "user", "content": "hi"}]})
    assert status == 500
    assert body["error"] == "Anthropic API key not configured"


def test_query_translate_requires_text_and_schema():
    install_llm(text("{}"))
    status, body = request("POST", "/api/claude_ai/query_translate", {"naturalLanguage": " ", "schema": "x"})
    assert (status, body) == (400, {"error": "Natural language query is required"})
    status, body = request("POST", "/api/claude_ai/query_translate", {"naturalLanguage": "open p1s"})
    assert (status, body) == (400, {"error": "Table schema context is required"})


def test_query_translate_success_with_table_hint():
    translation = {
        "table": "incident",
        "tableLabel": "Incident",
        "encodedQuery": "priority=1^active=true",
        "fields": ["number", "priority"],
        "limit": 100,
        "displayValue": "true",
        "summary": "Open P1 incidents",
    }
    llm = install_llm(text("Here you go:\n```json\n" + json.dumps(translation) + "\n```"))
    status, body = request("POST", "/api/claude_ai/query_translate", {
        "naturalLanguage": "open p1s",
        "tableHint": "incident",
        "schema": "Table: incident (Incident)",
    })
    assert status == 200
    assert body == translation
    call = llm.messages.calls[0]
    assert call["messages"] == [{"role": "user", "content": "Table hint: incident\n\nQuery: open p1s"}]
    assert "Table: incident (Incident)" in call["system"]


def test_query_translate_clarification():
    install_llm(text('{"needsClarification": true, "message": "Which table?", "suggestion": "Open incidents"}'))
    status, body = request("POST", "/api/claude_ai/query_translate", {"naturalLanguage": "stuff", "schema": "s"})
    assert status == 200
    assert body == {"needsClarification": True, "message": "Which table?", "suggestion": "Open incidents"}


def test_query_translate_unparseable_response():
    install_llm(text("I cannot help with that."))
    status, body = request("POST", "/api/claude_ai/query_translate", {"naturalLanguage": "stuff", "schema": "s"})
    assert status == 500
    assert body == {
        "error": "Could not parse query translation from AI response",
        "details": "I cannot help with that.",
    }


def test_query_translate_missing_fields():
    install_llm(text('{"table": "incident"}'))
    status, body = request("POST", "/api/claude_ai/query_translate", {"naturalLanguage": "stuff", "schema": "s"})
    assert status == 500
    assert body == {"error": "Invalid translation format", "details": "Missing required fields: table or summary"}


def test_list_tables():
    status, body = request("GET", "/api/claude_ai/tables")
    assert status == 200
    assert [t["name"] for t in body["tables"]] == ["incident", "change_request", "problem", "task"]


def test_table_schema_route():
    status, body = request("GET", "/api/claude_ai/tables/problem/schema")
    assert status == 200
    assert body["schema"].startswith("Table: problem (Problem)")
    status, _ = request("GET", "/api/claude_ai/tables/cmdb_ci/schema")
    assert status == 404
