# src/itsm_data_analyst/api/routes.py
import logging
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from quart import Blueprint, jsonify, request

from itsm_data_analyst.components.chart.handler import ChartComponentHandler
from itsm_data_analyst.core.config import APP_STATE
from itsm_data_analyst.core.models import QueryClarification, QueryTranslation
from itsm_data_analyst.core.table_schemas import (
    format_schema_for_prompt,
    get_available_tables,
    get_table_schema,
)
from itsm_data_analyst.core.utils import extract_json_from_text
from itsm_data_analyst.llm.claude_config import build_translation_system_prompt
from itsm_data_analyst.llm.client import ClaudeAPIClient, ClaudeAPIError
from itsm_data_analyst.llm.message_processor import MessageProcessor

claude_ai_bp = Blueprint('claude_ai', __name__, url_prefix='/api/claude_ai')
app_logger = logging.getLogger("quart.app")

chart_handler = ChartComponentHandler()


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class FileDataPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    base64: str = ""
    file_name: str = Field("upload.txt", alias="fileName")
    media_type: str = Field("text/plain", alias="mediaType")
    is_text: bool = Field(True, alias="isText")


class TranslateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    natural_language: Optional[str] = Field(None, alias="naturalLanguage")
    table_hint: Optional[str] = Field(None, alias="tableHint")
    schema_text: Optional[str] = Field(None, alias="schema")


def _get_claude_client() -> ClaudeAPIClient:
    return ClaudeAPIClient(APP_STATE.get("llm"))


@claude_ai_bp.route('/analyze', methods=['POST'])
async def analyze():
    """
    Chat analysis proxy.

    Body: {messages: [{role, content}], fileData?: {base64, fileName, ...}}
    Returns {content, chartData, hasToolUse}, plus ``component`` when the
    model called the chart tool.
    """
    try:
        data = await request.get_json(silent=True) or {}
        processor = MessageProcessor()

        messages = data.get("messages", [])
        is_valid, error = processor.validate(messages)
        if not is_valid:
            return jsonify({"error": error}), 400

        try:
            messages = [ChatMessage.model_validate(msg).model_dump() for msg in messages]
        except ValidationError as e:
            app_logger.warning(f"Analyze request carried malformed messages: {e}")
            return jsonify({"error": "Invalid message format", "details": e.errors(include_url=False)}), 400

        file_data = None
        if data.get("fileData"):
            try:
                file_data = FileDataPayload.model_validate(data["fileData"]).model_dump(by_alias=True)
            except ValidationError as e:
                app_logger.warning(f"Analyze request carried invalid fileData: {e}")
                return jsonify({"error": "Invalid file data", "details": e.errors()}), 400

        anthropic_messages = processor.process(messages, file_data)

        try:
            result = await _get_claude_client().call(anthropic_messages)
        except ClaudeAPIError as e:
            return jsonify(e.to_dict()), e.status_code

        body = {
            "content": result.text_content,
            "chartData": result.chart_data,
            "hasToolUse": result.has_tool_use,
        }
        if result.chart_data is not None:
            payload = await chart_handler.process(result.chart_data)
            body["component"] = payload.to_collected_data()

        return jsonify(body), 200

    except Exception as e:
        app_logger.error(f"Error in claude_analyze API: {e}", exc_info=True)
        return jsonify({"error": "Internal server error", "details": str(e)}), 500


@claude_ai_bp.route('/query_translate', methods=['POST'])
async def query_translate():
    """
    Natural-language to Table API query translation.

    Body: {naturalLanguage, tableHint?, schema}
    Returns a translation object, or {needsClarification: true, message, suggestion?}.
    """
    try:
        data = await request.get_json(silent=True) or {}
        try:
            req = TranslateRequest.model_validate(data)
        except ValidationError as e:
            return jsonify({"error": "Invalid request body", "details": e.errors()}), 400

        natural_language = (req.natural_language or "").strip()
        schema_text = (req.schema_text or "").strip()

        if not natural_language:
            return jsonify({"error": "Natural language query is required"}), 400
        if not schema_text:
            return jsonify({"error": "Table schema context is required"}), 400

        system_prompt = build_translation_system_prompt(req.schema_text)

        user_message = req.natural_language
        if req.table_hint:
            user_message = f"Table hint: {req.table_hint}\n\nQuery: {req.natural_language}"

        try:
            result = await _get_claude_client().call_with_system(
                system_prompt, [{"role": "user", "content": user_message}]
            )
        except ClaudeAPIError as e:
            return jsonify(e.to_dict()), e.status_code

        translation = extract_json_from_text(result.text_content)
        if not isinstance(translation, dict):
            return jsonify({
                "error": "Could not parse query translation from AI response",
                "details": result.text_content,
            }), 500

        if translation.get("needsClarification") is True:
            try:
                clarification = QueryClarification.model_validate(translation)
            except ValidationError as e:
                return jsonify({"error": "Invalid clarification format", "details": str(e)}), 500
            return jsonify(clarification.model_dump(by_alias=True, exclude_none=True)), 200

        if not translation.get("table") or not translation.get("summary"):
            return jsonify({
                "error": "Invalid translation format",
                "details": "Missing required fields: table or summary",
            }), 500

        try:
            parsed = QueryTranslation.model_validate(translation)
        except ValidationError as e:
            return jsonify({"error": "Invalid translation format", "details": str(e)}), 500

        app_logger.info(f"Translated query for table '{parsed.table}': {parsed.encoded_query!r}")
        return jsonify(parsed.model_dump(by_alias=True, exclude_none=True)), 200

    except Exception as e:
        app_logger.error(f"Error in query_translate API: {e}", exc_info=True)
        return jsonify({"error": "Internal server error", "details": str(e)}), 500


@claude_ai_bp.route('/tables', methods=['GET'])
async def list_tables():
    """Tables with embedded schemas, for the table-hint selector."""
    return jsonify({"tables": get_available_tables()}), 200


@claude_ai_bp.route('/tables/<table_name>/schema', methods=['GET'])
async def table_schema(table_name: str):
    """Prompt-formatted schema text for one table."""
    if get_table_schema(table_name) is None:
        return jsonify({"error": f"Unknown table '{table_name}'"}), 404
    return jsonify({"table": table_name, "schema": format_schema_for_prompt(table_name)}), 200
