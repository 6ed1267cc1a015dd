"""
Chart Component Handler.

Processes generate_graph_data tool calls into render-ready chart
descriptions. Validation and dispatch live in the chart core; this module
only adapts their outcome into a ComponentRenderPayload.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from itsm_data_analyst.components.base import (
    BaseComponentHandler,
    ComponentRenderPayload,
    RenderTarget,
)
from itsm_data_analyst.components.chart.dispatcher import (
    DEFAULT_PALETTE,
    ChartErrorView,
    render_chart,
)
from itsm_data_analyst.components.chart.spec import ChartSpec
from itsm_data_analyst.core.config import APP_CONFIG

logger = logging.getLogger("quart.app")


class ChartComponentHandler(BaseComponentHandler):
    """Handler for the generate_graph_data tool."""

    @property
    def component_id(self) -> str:
        return "chart"

    @property
    def tool_name(self) -> str:
        return APP_CONFIG.CHART_TOOL_NAME

    def validate_arguments(self, arguments: Any) -> Tuple[bool, str]:
        if not isinstance(arguments, dict):
            return False, "Chart tool input must be a JSON object."
        return True, ""

    async def process(
        self,
        arguments: Any,
        context: Optional[Dict[str, Any]] = None,
    ) -> ComponentRenderPayload:
        """Validate and dispatch the tool input, never raising."""
        context = context or {}
        palette = context.get("palette") or DEFAULT_PALETTE

        is_valid, error = self.validate_arguments(arguments)
        if not is_valid:
            logger.warning(f"Chart tool input rejected: {error}")

        spec = ChartSpec.from_tool_input(arguments)
        outcome = render_chart(spec, palette)

        if isinstance(outcome, ChartErrorView):
            category = "llm_field_mismatch" if outcome.field_mismatch else "render"
            logger.warning(
                f"Chart component failed ({outcome.kind}, category={category}): "
                f"{'; '.join(outcome.errors)}"
            )
            return ComponentRenderPayload(
                component_id=self.component_id,
                render_target=RenderTarget.DIAGNOSTIC,
                spec=outcome.to_dict(),
                title=spec.config.title,
                metadata={
                    "tool_name": self.tool_name,
                    "chart_type": spec.chart_type,
                    "status": "error",
                    "failure_category": category,
                },
            )

        for warning in outcome.warnings:
            logger.warning(f"Chart warning: {warning}")

        return ComponentRenderPayload(
            component_id=self.component_id,
            render_target=RenderTarget.INLINE,
            spec=outcome.to_dict(),
            title=outcome.title,
            metadata={
                "tool_name": self.tool_name,
                "chart_type": outcome.chart_type.value,
                "status": "success",
                "series_count": len(outcome.series),
            },
        )
