# src/itsm_data_analyst/llm/claude_config.py
"""
Prompt and tool configuration for the Anthropic Messages API.

ClaudeConfig owns everything that goes into an analysis request besides the
conversation itself: model settings, the cached system prompt, and the
generate_graph_data tool schema. The query-translation prompt is built per
request because it embeds the table schema text.
"""
from typing import Any, Dict, List, Optional

from itsm_data_analyst.components.chart.spec import CHART_TYPE_VALUES
from itsm_data_analyst.core.config import APP_CONFIG

ANALYSIS_SYSTEM_PROMPT = (
    "You are a ServiceNow data visualization expert. Your role is to analyze ServiceNow data "
    "exports and create clear, meaningful visualizations using generate_graph_data tool:\n\n"
    "Here are the chart types available and their ideal use cases:\n\n"
    '1. LINE CHARTS ("line") - Time series data showing trends\n'
    '2. BAR CHARTS ("bar") - Single metric comparisons\n'
    '3. MULTI-BAR CHARTS ("multiBar") - Multiple metrics comparison\n'
    '4. AREA CHARTS ("area") - Volume or quantity over time\n'
    '5. STACKED AREA CHARTS ("stackedArea") - Component breakdowns over time\n'
    '6. PIE CHARTS ("pie") - Distribution analysis\n'
    '7. HORIZONTAL BAR CHARTS ("horizontalBar") - Rankings and long category names\n'
    '8. STACKED BAR CHARTS ("stackedBar") - Part-to-whole comparisons across categories\n'
    '9. SCATTER CHARTS ("scatter") - Correlation between two numeric fields (set xAxisKey and yAxisKey)\n'
    '10. DONUT CHARTS ("donut") - Distribution analysis with a highlighted total\n'
    '11. COMPOSED CHARTS ("composed") - One metric as bars, the rest as lines\n\n'
    "Every key in chartConfig must be a field name that appears in each data record, and "
    "xAxisKey must name the category field of those records.\n\n"
    "Common ServiceNow Data Patterns to Recognize:\n"
    "- Incident records: number, priority, state, assignment_group, category\n"
    "- Change requests: number, type, state, risk, approval_status\n"
    "- Assets (CMDB): name, category, status, assigned_to, location\n"
    "- Service catalog: requested_for, opened_by, state, approval\n"
    "- Problem records: number, state, priority, related_incidents\n\n"
    "Always generate real, contextually appropriate data and use proper formatting for ServiceNow metrics."
)


class ClaudeConfig:
    """Request settings for the analysis endpoint."""

    def __init__(
        self,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        charting_enabled: Optional[bool] = None,
    ):
        self.model = model or APP_CONFIG.LLM_MODEL
        self.max_tokens = max_tokens or APP_CONFIG.LLM_MAX_TOKENS
        self.temperature = APP_CONFIG.LLM_TEMPERATURE if temperature is None else temperature
        self.api_version = APP_CONFIG.LLM_API_VERSION
        self.tool_name = APP_CONFIG.CHART_TOOL_NAME
        self.charting_enabled = (
            APP_CONFIG.CHARTING_ENABLED if charting_enabled is None else charting_enabled
        )

    def get_system_prompt(self) -> List[Dict[str, Any]]:
        """System prompt as a single cached text block."""
        return [{
            "type": "text",
            "text": ANALYSIS_SYSTEM_PROMPT,
            "cache_control": {"type": "ephemeral"},
        }]

    def get_tools(self) -> List[Dict[str, Any]]:
        if not self.charting_enabled:
            return []
        return [{
            "name": self.tool_name,
            "description": "Generate structured JSON data for creating ServiceNow data visualizations and charts.",
            "input_schema": {
                "type": "object",
                "properties": {
                    "chartType": {
                        "type": "string",
                        "enum": list(CHART_TYPE_VALUES),
                        "description": "The type of chart to generate",
                    },
                    "config": {
                        "type": "object",
                        "properties": {
                            "title": {"type": "string"},
                            "description": {"type": "string"},
                            "xAxisKey": {"type": "string"},
                            "yAxisKey": {"type": "string"},
                            "footer": {"type": "string"},
                        },
                        "required": ["title", "description"],
                    },
                    "data": {
                        "type": "array",
                        "items": {"type": "object"},
                    },
                    "chartConfig": {"type": "object"},
                },
                "required": ["chartType", "config", "data", "chartConfig"],
            },
            "cache_control": {"type": "ephemeral"},
        }]

    def get_request_payload(self, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Keyword arguments for ``messages.create`` on an analysis request."""
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "system": self.get_system_prompt(),
            "messages": messages,
        }
        tools = self.get_tools()
        if tools:
            payload["tools"] = tools
        return payload


def build_translation_system_prompt(schema: str) -> str:
    """System prompt for natural-language to encoded-query translation."""
    return f"""You are a ServiceNow query translation assistant. Your job is to translate natural language requests into structured ServiceNow Table API query parameters.

## Available Tables and Fields

{schema}

## ServiceNow Encoded Query Syntax

Use these operators to build encoded queries:
- = (equals): field=value
- != (not equals): field!=value
- > (greater than): field>value
- < (less than): field<value
- >= (greater or equal): field>=value
- <= (less or equal): field<=value
- ^ (AND): condition1^condition2
- ^OR (OR): condition1^ORcondition2
- LIKE (contains): fieldLIKEvalue
- STARTSWITH: fieldSTARTSWITHvalue
- ENDSWITH: fieldENDSWITHvalue

For boolean fields:
- active=true (for true)
- active=false (for false)

For reference fields (assignment_group, assigned_to, etc.):
- Use field= for "is empty" or "unassigned"
- Use field!= for "is not empty" or "assigned"

For date fields:
- Use javascript:gs.daysAgoStart(7) for "last 7 days"
- Use javascript:gs.daysAgoEnd(7) for "before 7 days ago"

## Examples

User: "Show me all critical priority incidents that are still open"
Output:
{{
  "table": "incident",
  "tableLabel": "Incident",
  "encodedQuery": "priority=1^active=true",
  "fields": ["number", "short_description", "priority", "state", "assigned_to", "opened_at"],
  "limit": 100,
  "displayValue": "true",
  "summary": "Searching Incidents where priority is Critical (1) and active is true"
}}

User: "Get pending change requests with high risk"
Output:
{{
  "table": "change_request",
  "tableLabel": "Change Request",
  "encodedQuery": "state=-5^ORstate=-4^risk=1",
  "fields": ["number", "short_description", "state", "risk", "priority", "start_date"],
  "limit": 100,
  "displayValue": "true",
  "summary": "Searching Change Requests where state is New (-5) or Assess (-4) and risk is High (1)"
}}

User: "Find unassigned problems from the last 7 days"
Output:
{{
  "table": "problem",
  "tableLabel": "Problem",
  "encodedQuery": "assignment_group=^sys_created_on>=javascript:gs.daysAgoStart(7)",
  "fields": ["number", "short_description", "priority", "state", "sys_created_on"],
  "limit": 100,
  "displayValue": "true",
  "summary": "Searching Problems where assignment group is empty and created within the last 7 days"
}}

## Instructions

1. Analyze the user's natural language request
2. Determine the most appropriate table (use table hint if provided, but can override if user is explicit)
3. Identify the fields/conditions mentioned
4. Build the encoded query using proper ServiceNow syntax
5. Select relevant fields to return (include key identifying fields + fields mentioned in query)
6. Create a human-readable summary of what the query will search for
7. Return ONLY valid JSON matching this exact format:

{{
  "table": "table_name",
  "tableLabel": "Human Readable Table Name",
  "encodedQuery": "field1=value1^field2=value2",
  "fields": ["field1", "field2", "field3"],
  "limit": 100,
  "displayValue": "true",
  "summary": "Human readable description of what this query searches for"
}}

If the request is too ambiguous to translate (no identifiable table or condition), return this instead:

{{
  "needsClarification": true,
  "message": "What needs clarifying, phrased as a question to the user",
  "suggestion": "An example of a request that could be translated"
}}

IMPORTANT:
- Always return valid JSON only
- Use actual field names from the schema (not labels)
- Use actual choice values (numbers) not labels
- If encodedQuery is empty string, it means "get all records"
- Always include key identifier fields like "number" and "short_description"
- Limit should typically be 100 unless user specifies otherwise
- DisplayValue should be "true" for human-readable results"""
