"""
ChartSpec: the artifact produced by the generate_graph_data tool call.

The tool input is untrusted model output. ``ChartSpec.from_tool_input`` never
raises; it coerces the input into a lenient typed view, keeps the raw form for
diagnostic display, and records every coercion as a normalization note that
the validator later surfaces as a warning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from itsm_data_analyst.core.utils import safe_json_dumps

logger = logging.getLogger("quart.app")


class ChartType(str, Enum):
    """The closed set of chart renderings the dispatcher supports."""
    BAR = "bar"
    MULTI_BAR = "multiBar"
    LINE = "line"
    PIE = "pie"
    AREA = "area"
    STACKED_AREA = "stackedArea"
    HORIZONTAL_BAR = "horizontalBar"
    STACKED_BAR = "stackedBar"
    SCATTER = "scatter"
    DONUT = "donut"
    COMPOSED = "composed"

    @classmethod
    def resolve(cls, value: Any) -> Optional["ChartType"]:
        """Return the matching ChartType, or None for anything outside the set."""
        for member in cls:
            if member.value == value:
                return member
        return None


CHART_TYPE_VALUES: Tuple[str, ...] = tuple(member.value for member in ChartType)

# Chart types whose category axis comes from config.xAxisKey
X_AXIS_CHART_TYPES = frozenset({
    ChartType.BAR,
    ChartType.MULTI_BAR,
    ChartType.LINE,
    ChartType.AREA,
    ChartType.STACKED_AREA,
    ChartType.HORIZONTAL_BAR,
    ChartType.STACKED_BAR,
    ChartType.COMPOSED,
})

# Chart types that plot one series per chartConfig entry
MULTI_SERIES_CHART_TYPES = frozenset({
    ChartType.MULTI_BAR,
    ChartType.LINE,
    ChartType.STACKED_AREA,
    ChartType.STACKED_BAR,
    ChartType.COMPOSED,
})


@dataclass(frozen=True)
class SeriesConfig:
    """Per-field plotting config from chartConfig."""
    label: str
    color: Optional[str] = None


@dataclass(frozen=True)
class ChartDisplayConfig:
    title: str = ""
    description: str = ""
    x_axis_key: Optional[str] = None
    y_axis_key: Optional[str] = None
    footer: Optional[str] = None


@dataclass
class ChartSpec:
    """
    Lenient typed view of a chart specification.

    ``chart_type`` stays a plain string here; the dispatcher resolves it to a
    ChartType so that an unknown type becomes a diagnostic rather than a
    parse failure.
    """

    chart_type: str
    config: ChartDisplayConfig = field(default_factory=ChartDisplayConfig)
    data: List[Dict[str, Any]] = field(default_factory=list)
    chart_config: Dict[str, SeriesConfig] = field(default_factory=dict)
    raw: Any = None
    normalization_notes: List[str] = field(default_factory=list)

    @property
    def data_fields(self) -> List[str]:
        """Field names of the first record; later rows are not inspected."""
        if not self.data:
            return []
        return list(self.data[0].keys())

    @property
    def series_keys(self) -> List[str]:
        return list(self.chart_config.keys())

    @classmethod
    def from_tool_input(cls, raw: Any) -> "ChartSpec":
        """Build a ChartSpec from raw tool-call input. Never raises."""
        notes: List[str] = []

        if not isinstance(raw, dict):
            notes.append(f"Chart input must be an object, got {type(raw).__name__}")
            return cls(chart_type="", raw=raw, normalization_notes=notes)

        chart_type = raw.get("chartType")
        if not isinstance(chart_type, str) or not chart_type:
            notes.append("Chart input is missing chartType")
            chart_type = "" if chart_type is None else str(chart_type)

        config = _coerce_display_config(raw.get("config"), notes)
        data = _normalize_chart_data(raw.get("data"), notes)
        chart_config = _coerce_chart_config(raw.get("chartConfig"), notes)

        return cls(
            chart_type=chart_type,
            config=config,
            data=data,
            chart_config=chart_config,
            raw=raw,
            normalization_notes=notes,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the camelCase wire shape."""
        config: Dict[str, Any] = {
            "title": self.config.title,
            "description": self.config.description,
        }
        if self.config.x_axis_key is not None:
            config["xAxisKey"] = self.config.x_axis_key
        if self.config.y_axis_key is not None:
            config["yAxisKey"] = self.config.y_axis_key
        if self.config.footer is not None:
            config["footer"] = self.config.footer

        chart_config: Dict[str, Any] = {}
        for key, series in self.chart_config.items():
            entry: Dict[str, Any] = {"label": series.label}
            if series.color is not None:
                entry["color"] = series.color
            chart_config[key] = entry

        return {
            "chartType": self.chart_type,
            "config": config,
            "data": [dict(row) for row in self.data],
            "chartConfig": chart_config,
        }

    def raw_json(self) -> str:
        """Pretty-printed raw input for diagnostic panels."""
        return safe_json_dumps(self.raw if self.raw is not None else self.to_dict())


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def _optional_key(config: Dict[str, Any], name: str, notes: List[str]) -> Optional[str]:
    value = config.get(name)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        notes.append(f"config.{name} must be a string, got {type(value).__name__}; ignoring it")
        return None
    return value


def _coerce_display_config(value: Any, notes: List[str]) -> ChartDisplayConfig:
    if not isinstance(value, dict):
        notes.append("Chart input is missing config; using an untitled chart")
        return ChartDisplayConfig()

    title = value.get("title")
    if not isinstance(title, str) or not title:
        notes.append("config.title is missing")
        title = "" if title is None else str(title)

    description = value.get("description")
    if not isinstance(description, str):
        notes.append("config.description is missing")
        description = "" if description is None else str(description)

    footer = value.get("footer")
    return ChartDisplayConfig(
        title=title,
        description=description,
        x_axis_key=_optional_key(value, "xAxisKey", notes),
        y_axis_key=_optional_key(value, "yAxisKey", notes),
        footer=footer if isinstance(footer, str) and footer else None,
    )


def _coerce_chart_config(value: Any, notes: List[str]) -> Dict[str, SeriesConfig]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        notes.append(f"chartConfig must be an object, got {type(value).__name__}; ignoring it")
        return {}

    series: Dict[str, SeriesConfig] = {}
    for key, entry in value.items():
        key = str(key)
        if isinstance(entry, dict):
            label = entry.get("label")
            color = entry.get("color")
            series[key] = SeriesConfig(
                label=str(label) if label is not None else key,
                color=color if isinstance(color, str) and color else None,
            )
        elif isinstance(entry, str):
            # {"sales": "Sales"}: label given directly
            series[key] = SeriesConfig(label=entry)
        else:
            series[key] = SeriesConfig(label=key)
    return series


def _normalize_chart_data(data: Any, notes: List[str]) -> List[Dict[str, Any]]:
    """
    Normalize chart data into a flat list of records.

    Handles the nested/hallucinated formats models produce:
    - Nested tool output: [{results: [...]}, {results: [...]}]
    - Labels/values format: {labels: [...], values: [...]}
    - Columns/rows format: {columns: [...], rows: [[...], ...]} or rows of objects
    """
    if data is None:
        notes.append("Chart input is missing data")
        return []

    if isinstance(data, list) and data and all(
        isinstance(item, dict) and set(item.keys()) == {"results"} for item in data
    ):
        logger.info("Detected nested tool output. Flattening data for charting.")
        flattened: List[Any] = []
        for item in data:
            results_list = item.get("results")
            if isinstance(results_list, list):
                flattened.extend(results_list)
        notes.append("Flattened nested results into chart records")
        data = flattened

    if isinstance(data, dict) and "labels" in data and "values" in data:
        labels = data.get("labels")
        values = data.get("values")
        if isinstance(labels, list) and isinstance(values, list) and len(labels) == len(values):
            logger.warning("Correcting hallucinated chart data format from labels/values to list of records.")
            notes.append("Converted labels/values data into records with fields 'label' and 'value'")
            return [{"label": label, "value": value} for label, value in zip(labels, values)]

    if isinstance(data, dict) and "columns" in data and "rows" in data:
        columns = data.get("columns")
        rows = data.get("rows")
        if isinstance(rows, list):
            logger.warning("Correcting hallucinated chart data format from columns/rows to list of records.")
            notes.append("Converted columns/rows data into records")
            if isinstance(columns, list) and all(isinstance(row, (list, tuple)) for row in rows):
                data = [dict(zip((str(c) for c in columns), row)) for row in rows]
            else:
                data = rows

    if not isinstance(data, list):
        notes.append(f"Chart data must be an array of records, got {type(data).__name__}")
        return []

    records = [row for row in data if isinstance(row, dict)]
    dropped = len(data) - len(records)
    if dropped:
        notes.append(f"Dropped {dropped} chart data row(s) that were not objects")

    # Field names are matched against string config keys
    if any(not isinstance(key, str) for row in records for key in row):
        notes.append("Converted non-string field names in chart data to strings")
        records = [{str(key): value for key, value in row.items()} for row in records]
    return records
