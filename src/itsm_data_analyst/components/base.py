"""
Base classes for tool-driven UI components.

A component handler turns the arguments of one LLM tool call into a
ComponentRenderPayload: a JSON-serializable description that the frontend
knows how to draw next to the assistant's reply.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger("quart.app")


# ---------------------------------------------------------------------------
# Render targets
# ---------------------------------------------------------------------------

class RenderTarget(Enum):
    """Where the component output is displayed in the chat view."""
    INLINE = "inline"              # Inside the assistant message bubble
    DIAGNOSTIC = "diagnostic"      # Collapsible error panel under the message


# ---------------------------------------------------------------------------
# Component render payload
# ---------------------------------------------------------------------------

@dataclass
class ComponentRenderPayload:
    """
    Standardized output from a component handler.

    This is the contract between the analyze endpoint and the frontend
    renderers; it is attached to the analyze response as ``component``.
    """

    component_id: str
    """Which component produced this payload (e.g., 'chart')."""

    render_target: RenderTarget = RenderTarget.INLINE

    spec: Dict[str, Any] = field(default_factory=dict)
    """JSON-serializable spec for client-side rendering."""

    container_id: str = ""
    """Unique DOM ID for the render target div. Auto-generated if empty."""

    title: str = ""

    metadata: Dict[str, Any] = field(default_factory=dict)
    """Component-specific metadata (tool_name, chart_type, status, ...)."""

    def __post_init__(self):
        if not self.container_id:
            self.container_id = f"component-{uuid.uuid4().hex[:12]}"

    def to_collected_data(self) -> Dict[str, Any]:
        """Convert to the JSON shape returned to the frontend."""
        return {
            "type": self.component_id,
            "component_id": self.component_id,
            "render_target": self.render_target.value,
            "spec": self.spec,
            "container_id": self.container_id,
            "title": self.title,
            "metadata": self.metadata,
        }


# ---------------------------------------------------------------------------
# Base component handler
# ---------------------------------------------------------------------------

class BaseComponentHandler(ABC):
    """
    Base class for component backend handlers.

    Subclasses must implement:
        component_id: unique identifier of the component
        tool_name: the tool name the LLM calls
        process(): transforms tool arguments into a render payload

    Optional overrides:
        validate_arguments: argument validation before processing
    """

    @property
    @abstractmethod
    def component_id(self) -> str:
        """Unique component identifier (e.g., 'chart')."""

    @property
    @abstractmethod
    def tool_name(self) -> str:
        """The tool name this handler processes (e.g., 'generate_graph_data')."""

    @abstractmethod
    async def process(
        self,
        arguments: Any,
        context: Optional[Dict[str, Any]] = None,
    ) -> ComponentRenderPayload:
        """
        Process tool-call arguments into a renderable payload.

        Args:
            arguments: Tool call input from the LLM. Untrusted; may be any JSON value.
            context: Optional request context (e.g. a palette override).

        Returns:
            ComponentRenderPayload for frontend rendering.
        """

    def validate_arguments(self, arguments: Any) -> Tuple[bool, str]:
        """
        Validate tool arguments before processing.

        Returns:
            (is_valid, error_message); error_message is empty when valid.
        """
        return True, ""

    def handles(self, tool_name: Optional[str]) -> bool:
        return tool_name == self.tool_name
