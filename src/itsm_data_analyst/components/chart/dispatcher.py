"""
Chart dispatcher.

Maps a ChartSpec onto one of eleven render-ready chart descriptions. The
dispatcher is stateless and total: validation failures, unknown chart types
and unexpected exceptions all come back as a ChartErrorView rather than
propagating. The colour palette is injected so callers and tests can
substitute their own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from itsm_data_analyst.components.chart.keys import (
    first_record,
    resolve_bar_value_key,
    resolve_pie_keys,
    resolve_scatter_keys,
)
from itsm_data_analyst.components.chart.spec import ChartSpec, ChartType
from itsm_data_analyst.components.chart.validation import (
    ValidationResult,
    has_field_mismatch_error,
    validate_chart_data,
)
from itsm_data_analyst.core.config import APP_CONFIG

logger = logging.getLogger("quart.app")

DEFAULT_PALETTE: Tuple[str, ...] = tuple(APP_CONFIG.CHART_PALETTE)

STACK_ID = "stack"

# Render primitives understood by the frontend
BAR = "bar"
LINE = "line"
AREA = "area"


@dataclass(frozen=True)
class SeriesSpec:
    key: str
    label: str
    color: str
    primitive: str
    stack_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dataKey": self.key,
            "name": self.label,
            "color": self.color,
            "type": self.primitive,
            "stackId": self.stack_id,
        }


@dataclass
class RenderedChart:
    """Render-ready chart description consumed by the presentation layer."""

    chart_type: ChartType
    title: str
    description: str
    layout: str = "cartesian"
    footer: Optional[str] = None
    x_axis_key: Optional[str] = None
    orientation: str = "vertical"
    series: List[SeriesSpec] = field(default_factory=list)
    name_key: Optional[str] = None
    value_key: Optional[str] = None
    inner_radius: Optional[int] = None
    outer_radius: Optional[int] = None
    x_key: Optional[str] = None
    y_key: Optional[str] = None
    data: List[Dict[str, Any]] = field(default_factory=list)
    empty: bool = False
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chartType": self.chart_type.value,
            "title": self.title,
            "description": self.description,
            "footer": self.footer,
            "layout": self.layout,
            "xAxisKey": self.x_axis_key,
            "orientation": self.orientation,
            "series": [s.to_dict() for s in self.series],
            "nameKey": self.name_key,
            "valueKey": self.value_key,
            "innerRadius": self.inner_radius,
            "outerRadius": self.outer_radius,
            "xKey": self.x_key,
            "yKey": self.y_key,
            "data": self.data,
            "empty": self.empty,
            "warnings": list(self.warnings),
        }


@dataclass
class ChartErrorView:
    """Diagnostic panel shown in place of a chart."""

    kind: str  # validation | unknown_type | render_error
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...] = ()
    field_mismatch: bool = False
    raw_spec: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "fieldMismatch": self.field_mismatch,
            "rawSpec": self.raw_spec,
        }


RenderOutcome = Union[RenderedChart, ChartErrorView]


# ---------------------------------------------------------------------------
# Series construction
# ---------------------------------------------------------------------------

def _series_color(spec: ChartSpec, key: str, index: int, palette: Sequence[str]) -> str:
    series = spec.chart_config.get(key)
    if series is not None and series.color:
        return series.color
    return palette[index % len(palette)]


def _series_label(spec: ChartSpec, key: str) -> str:
    series = spec.chart_config.get(key)
    return series.label if series is not None else key


def _multi_series(
    spec: ChartSpec,
    palette: Sequence[str],
    primitive_for: Callable[[int], str],
    stack_id: Optional[str] = None,
) -> List[SeriesSpec]:
    return [
        SeriesSpec(
            key=key,
            label=_series_label(spec, key),
            color=_series_color(spec, key, index, palette),
            primitive=primitive_for(index),
            stack_id=stack_id,
        )
        for index, key in enumerate(spec.series_keys)
    ]


def _base(spec: ChartSpec, chart_type: ChartType, warnings: Tuple[str, ...]) -> RenderedChart:
    return RenderedChart(
        chart_type=chart_type,
        title=spec.config.title,
        description=spec.config.description,
        footer=spec.config.footer,
        x_axis_key=spec.config.x_axis_key,
        data=[dict(row) for row in spec.data],
        empty=not spec.data,
        warnings=warnings,
    )


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def _render_single_bar(chart: RenderedChart, spec: ChartSpec, palette: Sequence[str]) -> None:
    value_key = resolve_bar_value_key(
        first_record(spec.data), spec.config.x_axis_key, spec.series_keys
    )
    if value_key is None:
        return
    series = spec.chart_config.get(value_key)
    chart.series = [
        SeriesSpec(
            key=value_key,
            label=_series_label(spec, value_key),
            color=series.color if series is not None and series.color else palette[0],
            primitive=BAR,
        )
    ]


def _render_bar(chart, spec, palette):
    _render_single_bar(chart, spec, palette)


def _render_horizontal_bar(chart, spec, palette):
    chart.orientation = "horizontal"
    _render_single_bar(chart, spec, palette)


def _render_multi_bar(chart, spec, palette):
    chart.series = _multi_series(spec, palette, lambda i: BAR)


def _render_line(chart, spec, palette):
    chart.series = _multi_series(spec, palette, lambda i: LINE)


def _render_area(chart, spec, palette):
    chart.series = _multi_series(spec, palette, lambda i: AREA)


def _render_stacked_area(chart, spec, palette):
    chart.series = _multi_series(spec, palette, lambda i: AREA, stack_id=STACK_ID)


def _render_stacked_bar(chart, spec, palette):
    chart.series = _multi_series(spec, palette, lambda i: BAR, stack_id=STACK_ID)


def _render_composed(chart, spec, palette):
    # Index 0 is the bar, every later series is a line
    chart.series = _multi_series(spec, palette, lambda i: BAR if i == 0 else LINE)


def _render_radial(chart: RenderedChart, spec: ChartSpec, palette: Sequence[str], inner_radius: int) -> None:
    keys = resolve_pie_keys(first_record(spec.data))
    chart.layout = "radial"
    chart.x_axis_key = None
    chart.name_key = keys.name_key
    chart.value_key = keys.value_key
    chart.inner_radius = inner_radius
    chart.outer_radius = APP_CONFIG.PIE_OUTER_RADIUS
    chart.data = [
        dict(row, fill=palette[index % len(palette)])
        for index, row in enumerate(spec.data)
    ]


def _render_pie(chart, spec, palette):
    _render_radial(chart, spec, palette, inner_radius=0)


def _render_donut(chart, spec, palette):
    _render_radial(chart, spec, palette, inner_radius=APP_CONFIG.DONUT_INNER_RADIUS)


def _render_scatter(chart, spec, palette):
    keys = resolve_scatter_keys(
        first_record(spec.data), spec.config.x_axis_key, spec.config.y_axis_key
    )
    chart.layout = "scatter"
    chart.x_key = keys.x_key
    chart.y_key = keys.y_key
    chart.series = [
        SeriesSpec(
            key=keys.y_key,
            label=spec.config.title or keys.y_key,
            color=palette[0],
            primitive="scatter",
        )
    ]


_STRATEGIES: Dict[ChartType, Callable[[RenderedChart, ChartSpec, Sequence[str]], None]] = {
    ChartType.BAR: _render_bar,
    ChartType.MULTI_BAR: _render_multi_bar,
    ChartType.LINE: _render_line,
    ChartType.PIE: _render_pie,
    ChartType.AREA: _render_area,
    ChartType.STACKED_AREA: _render_stacked_area,
    ChartType.HORIZONTAL_BAR: _render_horizontal_bar,
    ChartType.STACKED_BAR: _render_stacked_bar,
    ChartType.SCATTER: _render_scatter,
    ChartType.DONUT: _render_donut,
    ChartType.COMPOSED: _render_composed,
}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _error_view(spec: ChartSpec, kind: str, result: ValidationResult) -> ChartErrorView:
    return ChartErrorView(
        kind=kind,
        errors=result.errors,
        warnings=result.warnings,
        field_mismatch=has_field_mismatch_error(result),
        raw_spec=spec.raw_json(),
    )


def render_chart(spec: ChartSpec, palette: Sequence[str] = DEFAULT_PALETTE) -> RenderOutcome:
    """
    Validate a chart spec and dispatch it to its rendering strategy.

    Args:
        spec: ChartSpec built from tool-call input.
        palette: Ordered series colours, indexed modulo its length.

    Returns:
        A RenderedChart, or a ChartErrorView describing why no chart was drawn.
    """
    result = validate_chart_data(spec)
    if not result.valid:
        logger.warning(f"Chart validation failed: {'; '.join(result.errors)}")
        return _error_view(spec, "validation", result)

    chart_type = ChartType.resolve(spec.chart_type)
    if chart_type is None:
        logger.warning(f"Unknown chart type requested: {spec.chart_type!r}")
        unknown = ValidationResult(
            valid=False,
            errors=(f'Unknown chart type: "{spec.chart_type}"',),
            warnings=result.warnings,
        )
        return _error_view(spec, "unknown_type", unknown)

    for warning in result.warnings:
        logger.info(f"Chart warning ({chart_type.value}): {warning}")

    try:
        colors = tuple(palette) or DEFAULT_PALETTE
        chart = _base(spec, chart_type, result.warnings)
        _STRATEGIES[chart_type](chart, spec, colors)
        return chart
    except Exception as e:
        logger.error(f"Error rendering {chart_type.value} chart: {e}", exc_info=True)
        failed = ValidationResult(
            valid=False,
            errors=(f"Error rendering chart: {e}",),
            warnings=result.warnings,
        )
        return _error_view(spec, "render_error", failed)
