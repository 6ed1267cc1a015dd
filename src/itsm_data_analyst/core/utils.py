"""
JSON extraction and serialization utilities shared by the LLM proxy and the chart core.
"""

from __future__ import annotations

import json
import re
import uuid
from typing import Any, Optional, Union


def extract_json_from_text(text: str) -> Optional[Union[dict, list]]:
    """
    Find and parse the first JSON object or array in model output.

    Handles:
    - Bare JSON
    - JSON inside markdown code fences (```json ... ```)
    - JSON preceded or followed by explanatory text
    - Nested brackets and braces inside string values

    Returns:
        Parsed dict/list, or None if no valid JSON found.
    """
    if not text:
        return None

    fence_match = re.search(r'```(?:json)?\s*\n?([\s\S]*?)```', text)
    if fence_match:
        try:
            return json.loads(fence_match.group(1).strip())
        except json.JSONDecodeError:
            pass

    for start_char, end_char in [('{', '}'), ('[', ']')]:
        idx = text.find(start_char)
        if idx == -1:
            continue
        depth = 0
        in_string = False
        escape = False
        for i in range(idx, len(text)):
            c = text[i]
            if escape:
                escape = False
                continue
            if c == '\\' and in_string:
                escape = True
                continue
            if c == '"':
                in_string = not in_string
                continue
            if in_string:
                continue
            if c == start_char:
                depth += 1
            elif c == end_char:
                depth -= 1
                if depth == 0:
                    try:
                        return json.loads(text[idx:i + 1])
                    except json.JSONDecodeError:
                        break

    try:
        return json.loads(text.strip())
    except json.JSONDecodeError:
        return None


def safe_json_dumps(obj: Any, indent: int = 2) -> str:
    """
    json.dumps with default=str and ensure_ascii=False.

    Safely serializes raw tool input that may contain datetimes, Decimals, etc.
    """
    return json.dumps(obj, indent=indent, default=str, ensure_ascii=False)


def new_message_id() -> str:
    return str(uuid.uuid4())
