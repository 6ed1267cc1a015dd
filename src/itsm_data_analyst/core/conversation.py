# src/itsm_data_analyst/core/conversation.py
"""
Conversation and query-builder state.

ConversationState drives the request sequence of the analyst:
translate -> confirm (or auto-execute) -> fetch rows -> analyze -> render.

Async operations may overlap (a second query started before the first
resolves). Each operation captures a request epoch when it starts and drops
its result if a newer request of the same kind has started since. Only the
current request clears its own loading flag.
"""
import logging
from typing import Any, Dict, List, Optional

from itsm_data_analyst.components.chart.dispatcher import DEFAULT_PALETTE, RenderOutcome, render_chart
from itsm_data_analyst.components.chart.spec import ChartSpec
from itsm_data_analyst.core.config import APP_CONFIG
from itsm_data_analyst.core.models import (
    FileUpload,
    Message,
    QueryClarification,
    QueryConfig,
    QueryResults,
    QueryTranslation,
)
from itsm_data_analyst.core.table_schemas import QUERY_TEMPLATES, format_schema_for_prompt
from itsm_data_analyst.services.platform_api import (
    PlatformAPIError,
    convert_query_results_to_file_upload,
    encode_text_payload,
)

app_logger = logging.getLogger("quart.app")

ANALYSIS_ERROR_MESSAGE = "Sorry, I encountered an error processing your request."
MISSING_QUESTION_NOTICE = "Please enter a question about the data"

DATA_SOURCES = ("file", "query")
QUERY_MODES = ("simple", "advanced")
OPERATIONS = ("translate", "query", "analyze")


def _error_message(error: PlatformAPIError, default: str) -> str:
    """Prefer the server's {error: ...} body over the transport message."""
    details = error.details
    if isinstance(details, dict) and details.get("error"):
        return str(details["error"])
    return str(error) or default


class ConversationState:
    """
    Holds chat history, the pending upload and the query-builder state.

    ``api`` is any object with the PlatformAPIClient coroutine methods
    translate_query, execute_table_query and analyze.
    """

    def __init__(self, api: Any, auto_execute: Optional[bool] = None, palette=DEFAULT_PALETTE):
        self.api = api
        if auto_execute is None:
            auto_execute = APP_CONFIG.AUTO_EXECUTE_TRANSLATIONS
        self.auto_execute = auto_execute
        self.palette = palette

        self.messages: List[Message] = []
        self.current_upload: Optional[FileUpload] = None
        self.data_source: str = "file"
        self.query_mode: str = "simple"
        self.query_config: Optional[QueryConfig] = None
        self.query_results: Optional[QueryResults] = None
        self.translation_result: Optional[QueryTranslation] = None
        self.clarification: Optional[QueryClarification] = None
        self.translation_error: Optional[str] = None
        self.query_error: Optional[str] = None
        self.notice: Optional[str] = None

        self.is_translating = False
        self.is_query_loading = False
        self.is_analyzing = False

        self._epochs: Dict[str, int] = {op: 0 for op in OPERATIONS}

    # --- Request epochs ---

    def begin(self, op: str) -> int:
        """Start a new request of kind ``op`` and return its epoch."""
        self._epochs[op] += 1
        return self._epochs[op]

    def is_current(self, op: str, epoch: int) -> bool:
        return self._epochs[op] == epoch

    def _invalidate(self, op: str) -> None:
        self._epochs[op] += 1

    # --- Upload / source selection ---

    def select_file(self, file_name: str, text: str) -> FileUpload:
        self.current_upload = FileUpload(
            base64=encode_text_payload(text),
            file_name=file_name,
            media_type="text/plain",
            is_text=True,
        )
        return self.current_upload

    def clear_upload(self) -> None:
        self.current_upload = None

    def set_data_source(self, source: str) -> None:
        if source not in DATA_SOURCES:
            raise ValueError(f"Unknown data source '{source}'. Expected one of {DATA_SOURCES}.")
        self.data_source = source
        if source == "file":
            self._invalidate("query")
            self.is_query_loading = False
            self.query_results = None
        else:
            self.current_upload = None

    def set_query_mode(self, mode: str) -> None:
        if mode not in QUERY_MODES:
            raise ValueError(f"Unknown query mode '{mode}'. Expected one of {QUERY_MODES}.")
        self.query_mode = mode

    def load_query_template(self, name: str) -> QueryConfig:
        """Load a canned advanced-mode search into the query builder."""
        template = QUERY_TEMPLATES.get(name)
        if template is None:
            raise KeyError(f"Unknown query template '{name}'")
        self.query_mode = "advanced"
        self.query_config = template
        return template

    # --- Translation ---

    async def translate(self, text: str, table_hint: Optional[str] = None) -> None:
        if not text or not text.strip():
            return

        epoch = self.begin("translate")
        self.is_translating = True
        self.translation_error = None
        self.translation_result = None
        self.clarification = None

        schema = format_schema_for_prompt(table_hint) if table_hint else format_schema_for_prompt()
        try:
            outcome = await self.api.translate_query(text, schema, table_hint)
        except PlatformAPIError as e:
            if self.is_current("translate", epoch):
                app_logger.error(f"Translation error: {e}")
                self.translation_error = _error_message(e, "Failed to translate query")
            return
        finally:
            if self.is_current("translate", epoch):
                self.is_translating = False

        if not self.is_current("translate", epoch):
            app_logger.debug("Dropping stale translation result.")
            return

        if isinstance(outcome, QueryClarification):
            self.clarification = outcome
            return

        self.translation_result = outcome
        if self.auto_execute:
            await self.confirm_translation()

    async def confirm_translation(self) -> None:
        if self.translation_result is None:
            return
        await self.execute_query(self.translation_result.to_query_config())

    def edit_translation(self) -> None:
        """Hand the query over to the advanced builder."""
        self._invalidate("translate")
        self.is_translating = False
        if self.translation_result is not None:
            self.query_config = self.translation_result.to_query_config()
        self.query_mode = "advanced"
        self.translation_result = None
        self.translation_error = None
        self.clarification = None

    def retry_translation(self) -> None:
        self.translation_error = None
        self.clarification = None

    # --- Table query ---

    async def execute_query(self, config: QueryConfig) -> None:
        epoch = self.begin("query")
        self.is_query_loading = True
        self.query_config = config
        self.query_results = None
        self.translation_result = None
        self.query_error = None

        try:
            records = await self.api.execute_table_query(config)
        except PlatformAPIError as e:
            if self.is_current("query", epoch):
                app_logger.error(f"Query execution error: {e}")
                self.query_error = f"Failed to execute query: {_error_message(e, 'request failed')}"
            return
        finally:
            if self.is_current("query", epoch):
                self.is_query_loading = False

        if not self.is_current("query", epoch):
            app_logger.debug("Dropping stale query result.")
            return
        self.query_results = QueryResults(data=records, table=config.table, query=config.query)

    # --- Analysis ---

    async def submit(self, text: str) -> None:
        """Send a chat turn against the active data source."""
        self.notice = None
        if self.data_source == "query" and self.query_results is not None:
            await self.analyze_query_results(text)
            return

        if not text.strip() and self.current_upload is None:
            return

        self._append(Message(role="user", content=text))
        await self._run_analysis(self.current_upload, clear_upload=True)

    async def analyze_query_results(self, text: str) -> None:
        if self.query_results is None or not text.strip():
            self.notice = MISSING_QUESTION_NOTICE
            return
        self.notice = None

        self._append(Message(role="user", content=text))
        upload = convert_query_results_to_file_upload(self.query_results.data, self.query_results.table)
        await self._run_analysis(upload, clear_upload=False)

    async def _run_analysis(self, upload: Optional[FileUpload], clear_upload: bool) -> None:
        epoch = self.begin("analyze")
        self.is_analyzing = True
        history = list(self.messages)

        try:
            result = await self.api.analyze(history, upload)
        except PlatformAPIError as e:
            if self.is_current("analyze", epoch):
                app_logger.error(f"Analysis error: {e}")
                self._append(Message(role="assistant", content=ANALYSIS_ERROR_MESSAGE))
            return
        finally:
            if self.is_current("analyze", epoch):
                self.is_analyzing = False

        if not self.is_current("analyze", epoch):
            app_logger.debug("Dropping stale analysis result.")
            return

        chart_data = ChartSpec.from_tool_input(result.chart_data) if result.chart_data is not None else None
        self._append(Message(
            role="assistant",
            content=result.content,
            chart_data=chart_data,
            has_tool_use=result.has_tool_use,
        ))
        if clear_upload and self.current_upload is upload:
            self.current_upload = None

    def _append(self, message: Message) -> None:
        self.messages = self.messages + [message]

    # --- Rendering ---

    def render_message_chart(self, message: Message) -> Optional[RenderOutcome]:
        if message.chart_data is None:
            return None
        return render_chart(message.chart_data, self.palette)

    @property
    def charts(self) -> List[RenderOutcome]:
        """Rendered charts of every assistant message, oldest first."""
        rendered = (self.render_message_chart(m) for m in self.messages)
        return [chart for chart in rendered if chart is not None]
