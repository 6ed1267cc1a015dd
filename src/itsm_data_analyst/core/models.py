# src/itsm_data_analyst/core/models.py
"""
Data carried between the platform client, the conversation state and the
proxy endpoints.

Plain dataclasses hold locally built values. Anything that arrives from the
LLM as JSON (query translations, clarifications) is validated with pydantic.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from itsm_data_analyst.components.chart.spec import ChartSpec
from itsm_data_analyst.core.config import APP_CONFIG
from itsm_data_analyst.core.utils import new_message_id


# --- Conversation ---

@dataclass(frozen=True)
class Message:
    """One chat turn. Immutable once appended to the history."""
    role: str  # 'user' | 'assistant'
    content: str
    id: str = field(default_factory=new_message_id)
    chart_data: Optional[ChartSpec] = None
    has_tool_use: bool = False

    def to_api_dict(self) -> Dict[str, str]:
        """Only role and content go over the wire."""
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class FileUpload:
    """A file ready to be sent with an analyze request."""
    base64: str
    file_name: str
    media_type: str
    is_text: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base64": self.base64,
            "fileName": self.file_name,
            "mediaType": self.media_type,
            "isText": self.is_text,
        }


@dataclass(frozen=True)
class AnalyzeResult:
    content: str
    chart_data: Optional[Any] = None
    has_tool_use: bool = False


@dataclass(frozen=True)
class SessionToken:
    session_token: str
    username: str


# --- Table queries ---

@dataclass(frozen=True)
class QueryConfig:
    """Table API query; maps onto the sysparm_* parameters."""
    table: str
    query: str = ""
    fields: Optional[str] = None
    limit: int = APP_CONFIG.DEFAULT_QUERY_LIMIT
    offset: Optional[int] = None
    display_value: Optional[str] = None

    def to_params(self) -> Dict[str, Any]:
        """Only set parameters are sent; sysparm_limit always is."""
        params: Dict[str, Any] = {"sysparm_limit": self.limit}
        if self.query:
            params["sysparm_query"] = self.query
        if self.fields:
            params["sysparm_fields"] = self.fields
        if self.display_value:
            params["sysparm_display_value"] = self.display_value
        if self.offset:
            params["sysparm_offset"] = self.offset
        return params


@dataclass
class QueryResults:
    data: List[Dict[str, Any]]
    table: str
    query: str = ""


# --- LLM translation payloads ---

class QueryTranslation(BaseModel):
    """A natural-language request translated into a structured Table API query."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    table: str = Field(..., min_length=1)
    summary: str = Field(..., min_length=1)
    table_label: str = Field("", alias="tableLabel")
    encoded_query: str = Field("", alias="encodedQuery")
    fields: List[str] = Field(default_factory=list)
    limit: int = APP_CONFIG.DEFAULT_QUERY_LIMIT
    display_value: Optional[str] = Field(None, alias="displayValue")  # 'true' | 'false' | 'all'

    def to_query_config(self) -> QueryConfig:
        return QueryConfig(
            table=self.table,
            query=self.encoded_query,
            fields=",".join(self.fields),
            limit=self.limit,
            offset=0,
            display_value=self.display_value or APP_CONFIG.DEFAULT_DISPLAY_VALUE,
        )


class QueryClarification(BaseModel):
    """Returned instead of a translation when the request is ambiguous."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    needs_clarification: Literal[True] = Field(True, alias="needsClarification")
    message: str
    suggestion: Optional[str] = None


TranslationOutcome = Union[QueryTranslation, QueryClarification]


def parse_translation_payload(payload: Any) -> TranslationOutcome:
    """
    Classify and validate a translate endpoint payload.

    Raises:
        ValidationError: If the payload is neither a valid clarification nor a valid translation.
    """
    if isinstance(payload, dict) and payload.get("needsClarification") is True:
        return QueryClarification.model_validate(payload)
    return QueryTranslation.model_validate(payload)


__all__ = [
    "AnalyzeResult",
    "FileUpload",
    "Message",
    "QueryClarification",
    "QueryConfig",
    "QueryResults",
    "QueryTranslation",
    "SessionToken",
    "TranslationOutcome",
    "ValidationError",
    "parse_translation_payload",
]
