# src/itsm_data_analyst/llm/client.py
import json
import logging
import pprint
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from anthropic import APIStatusError

from itsm_data_analyst.llm.claude_config import ClaudeConfig

llm_logger = logging.getLogger("llm_conversation")
app_logger = logging.getLogger("quart.app")


class ClaudeAPIError(Exception):
    """A failed Messages API call, carrying the HTTP status to relay to the caller."""

    def __init__(self, error: str, details: Optional[str] = None, status_code: int = 500):
        super().__init__(error)
        self.error = error
        self.details = details
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "details": self.details}


@dataclass
class ClaudeResponse:
    text_content: str = ""
    chart_data: Optional[Any] = None

    @property
    def has_tool_use(self) -> bool:
        return self.chart_data is not None


def _block_field(block: Any, name: str) -> Any:
    if isinstance(block, dict):
        return block.get(name)
    return getattr(block, name, None)


def parse_response_content(content: Optional[List[Any]], tool_name: str) -> ClaudeResponse:
    """
    Extract text and chart tool input from Messages API content blocks.

    The last text block wins; only tool_use blocks for the chart tool count.
    """
    parsed = ClaudeResponse()
    if not content:
        return parsed

    for block in content:
        block_type = _block_field(block, "type")
        if block_type == "text":
            parsed.text_content = _block_field(block, "text") or ""
        elif block_type == "tool_use" and _block_field(block, "name") == tool_name:
            parsed.chart_data = _block_field(block, "input")
    return parsed


class ClaudeAPIClient:
    """Thin wrapper around AsyncAnthropic.messages.create for the proxy endpoints."""

    def __init__(self, llm_instance: Any, config: Optional[ClaudeConfig] = None):
        self.llm_instance = llm_instance
        self.config = config or ClaudeConfig()

    async def call(self, messages: List[Dict[str, Any]]) -> ClaudeResponse:
        """Analysis call: configured system prompt plus the chart tool."""
        return await self._make_api_call(messages, None)

    async def call_with_system(
        self,
        system_prompt: Union[str, List[Dict[str, Any]]],
        messages: List[Dict[str, Any]],
    ) -> ClaudeResponse:
        """Same request, with the system prompt replaced."""
        return await self._make_api_call(messages, system_prompt)

    async def _make_api_call(
        self,
        messages: List[Dict[str, Any]],
        custom_system: Optional[Union[str, List[Dict[str, Any]]]],
    ) -> ClaudeResponse:
        if self.llm_instance is None:
            app_logger.error("ClaudeAPIClient: Anthropic API key not configured")
            raise ClaudeAPIError("Anthropic API key not configured", status_code=500)

        payload = self.config.get_request_payload(messages)
        if custom_system:
            payload["system"] = custom_system

        llm_logger.info(
            f"--- REQUEST ({self.config.model}) ---\n"
            f"{json.dumps(messages, indent=2, default=str, ensure_ascii=False)}"
        )

        try:
            response = await self.llm_instance.messages.create(**payload)
        except APIStatusError as e:
            app_logger.error(f"ClaudeAPIClient: API error {e.status_code} - {e.message}")
            body = e.body if e.body is not None else e.message
            raise ClaudeAPIError(
                "Claude API error",
                details=body if isinstance(body, str) else json.dumps(body, default=str),
                status_code=e.status_code,
            ) from e
        except Exception as e:
            app_logger.error(f"ClaudeAPIClient: Exception - {e}", exc_info=True)
            raise ClaudeAPIError("API call failed", details=str(e), status_code=500) from e

        app_logger.debug(f"RAW LLM Response Object (Anthropic): {pprint.pformat(response)}")

        parsed = parse_response_content(_block_field(response, "content"), self.config.tool_name)

        usage = _block_field(response, "usage")
        if usage is not None:
            llm_logger.info(
                f"--- RESPONSE --- tokens in={_block_field(usage, 'input_tokens')} "
                f"out={_block_field(usage, 'output_tokens')} tool_use={parsed.has_tool_use}\n"
                f"{parsed.text_content}"
            )
        else:
            llm_logger.info(f"--- RESPONSE --- tool_use={parsed.has_tool_use}\n{parsed.text_content}")

        return parsed
