# src/itsm_data_analyst/llm/message_processor.py
import base64
import binascii
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote

app_logger = logging.getLogger("quart.app")


def decode_file_payload(encoded: str) -> str:
    """Reverse base64(encodeURIComponent(text)) as produced by the upload flow."""
    raw = base64.b64decode(encoded, validate=True).decode("utf-8")
    return unquote(raw, encoding="utf-8", errors="strict")


class MessageProcessor:
    """Validates inbound chat history and attaches uploaded file contents."""

    def validate(self, messages: Any) -> Tuple[bool, str]:
        """
        Returns:
            (is_valid, error_message); error_message is empty when valid.
        """
        if messages is None or not isinstance(messages, list):
            return False, "Messages must be an array"
        if len(messages) == 0:
            return False, "Messages array is required"
        if not all(isinstance(msg, dict) for msg in messages):
            return False, "Each message must be an object with role and content"
        return True, ""

    def process(
        self,
        messages: List[Dict[str, Any]],
        file_data: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Copy role/content into Messages API shape, prepending file contents to the last message."""
        anthropic_messages = [
            {"role": msg.get("role"), "content": msg.get("content")}
            for msg in messages
        ]

        if file_data and file_data.get("base64"):
            self._attach_file_data(anthropic_messages, file_data)

        return anthropic_messages

    def _attach_file_data(self, messages: List[Dict[str, Any]], file_data: Dict[str, Any]) -> None:
        if not messages:
            return

        try:
            decoded_text = decode_file_payload(file_data["base64"])
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            app_logger.warning(f"MessageProcessor: Failed to decode file data - {e}")
            return

        last_message = messages[-1]
        file_header = f"File contents of {file_data.get('fileName')}:\n\n"
        original_content = last_message.get("content") or ""
        last_message["content"] = file_header + decoded_text + "\n\n" + original_content
