# src/itsm_data_analyst/services/platform_api.py
"""
Async client for the platform side of the analyst: the session token
endpoint, the scripted query_translate/analyze proxies and the Table API.

Every call is single-shot. Transport failures, HTTP error statuses and
non-JSON bodies are raised as PlatformAPIError; callers decide how to
surface them.
"""
import base64
import json
import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from itsm_data_analyst.core.config import APP_CONFIG
from itsm_data_analyst.core.models import (
    AnalyzeResult,
    FileUpload,
    Message,
    QueryConfig,
    SessionToken,
    TranslationOutcome,
    parse_translation_payload,
)

app_logger = logging.getLogger("quart.app")

NO_RESPONSE_TEXT = "No response from AI"

# encodeURIComponent leaves these unescaped
_URI_COMPONENT_SAFE = "-_.!~*'()"


class PlatformAPIError(Exception):
    """A failed call to the platform; status_code is None for transport errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


def encode_text_payload(text: str) -> str:
    """base64(encodeURIComponent(text)), the upload encoding the analyze endpoint expects."""
    return base64.b64encode(quote(text, safe=_URI_COMPONENT_SAFE).encode("ascii")).decode("ascii")


def unwrap_result(data: Any) -> Any:
    """Scripted REST responses may be wrapped in a ``result`` envelope."""
    if isinstance(data, dict) and data.get("result"):
        return data["result"]
    return data


def convert_query_results_to_file_upload(data: Sequence[Dict[str, Any]], table_name: str) -> FileUpload:
    """Package Table API rows as a JSON upload for analysis."""
    query_data_string = json.dumps(list(data), indent=2, default=str, ensure_ascii=False)
    return FileUpload(
        base64=encode_text_payload(query_data_string),
        file_name=f"{table_name}_query_results.json",
        media_type="application/json",
        is_text=True,
    )


class PlatformAPIClient:
    """httpx-based client for the platform endpoints used by the conversation state."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        namespace: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.namespace = (namespace or APP_CONFIG.PLATFORM_API_NAMESPACE).rstrip("/")
        self.table_api_path = APP_CONFIG.PLATFORM_TABLE_API_PATH
        self.session_token: Optional[str] = None
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url or APP_CONFIG.PLATFORM_INSTANCE_URL,
            timeout=timeout or APP_CONFIG.PLATFORM_REQUEST_TIMEOUT,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "PlatformAPIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def _headers(self) -> Dict[str, str]:
        if self.session_token:
            return {"X-UserToken": self.session_token}
        return {}

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self.client.request(method, url, headers=self._headers(), **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            app_logger.error(f"Platform API {method} {url} failed with status {e.response.status_code}")
            details: Any
            try:
                details = e.response.json()
            except ValueError:
                details = e.response.text
            raise PlatformAPIError(
                f"Request to {url} failed with status {e.response.status_code}",
                status_code=e.response.status_code,
                details=details,
            ) from e
        except httpx.RequestError as e:
            app_logger.error(f"Platform API request error for {method} {url}: {e}")
            raise PlatformAPIError(f"Could not connect to platform: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            app_logger.error(f"Platform API {method} {url} returned a non-JSON body")
            raise PlatformAPIError(
                f"Response from {url} was not valid JSON",
                status_code=response.status_code,
                details=response.text,
            ) from e

    # --- Session ---

    async def fetch_session_token(self) -> SessionToken:
        data = unwrap_result(await self._request("GET", f"{self.namespace}/get_token"))
        if not isinstance(data, dict) or not data.get("sessionToken"):
            raise PlatformAPIError("Session token response did not contain a sessionToken", details=data)
        token = SessionToken(session_token=data["sessionToken"], username=data.get("username", ""))
        self.session_token = token.session_token
        return token

    # --- Translation ---

    async def translate_query(
        self,
        text: str,
        schema: str,
        table_hint: Optional[str] = None,
    ) -> TranslationOutcome:
        """
        Translate natural-language text into a QueryTranslation, or a
        QueryClarification when the model needs more detail.
        """
        data = await self._request(
            "POST",
            f"{self.namespace}/query_translate",
            json={"naturalLanguage": text, "tableHint": table_hint, "schema": schema},
        )
        payload = unwrap_result(data)
        try:
            return parse_translation_payload(payload)
        except ValidationError as e:
            raise PlatformAPIError("Invalid translation format", details=str(e)) from e

    # --- Table API ---

    async def execute_table_query(self, config: QueryConfig) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET",
            f"{self.table_api_path}/{config.table}",
            params=config.to_params(),
        )
        result = unwrap_result(data)
        if isinstance(result, list):
            return result
        if isinstance(result, dict) and isinstance(result.get("result"), list):
            return result["result"]
        return []

    # --- Analysis ---

    async def analyze(
        self,
        messages: Sequence[Message],
        file_upload: Optional[FileUpload] = None,
    ) -> AnalyzeResult:
        data = await self._request(
            "POST",
            f"{self.namespace}/analyze",
            json={
                "messages": [m.to_api_dict() for m in messages],
                "fileData": file_upload.to_dict() if file_upload else None,
            },
        )
        result = unwrap_result(data)
        if not isinstance(result, dict):
            raise PlatformAPIError("Analyze response was not a JSON object", details=result)
        chart_data = result.get("chartData")
        return AnalyzeResult(
            content=result.get("content") or NO_RESPONSE_TEXT,
            chart_data=chart_data,
            has_tool_use=bool(result.get("hasToolUse")) or bool(chart_data),
        )
