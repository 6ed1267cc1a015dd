"""
Unit tests for ChartSpec.from_tool_input.

Tool input is untrusted model output: the constructor must never raise,
must keep the raw form, and must normalize the common hallucinated data
shapes into a list of records while noting what it changed.
"""
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from itsm_data_analyst.components.chart.spec import ChartSpec, ChartType, SeriesConfig


def test_well_formed_input():
    raw = {
        "chartType": "bar",
        "config": {"title": "By priority", "description": "Open incidents", "xAxisKey": "priority"},
        "data": [{"priority": "P1", "count": 4}],
        "chartConfig": {"count": {"label": "Count", "color": "#0088FE"}},
    }
    spec = ChartSpec.from_tool_input(raw)
    assert spec.chart_type == "bar"
    assert spec.config.x_axis_key == "priority"
    assert spec.chart_config == {"count": SeriesConfig(label="Count", color="#0088FE")}
    assert spec.normalization_notes == []
    assert spec.raw is raw
    assert spec.to_dict() == raw


def test_chart_config_order_is_preserved():
    spec = ChartSpec.from_tool_input({
        "chartType": "line",
        "config": {"title": "T", "description": "D"},
        "data": [{"c": 1, "a": 2, "b": 3}],
        "chartConfig": {"c": {"label": "C"}, "a": {"label": "A"}, "b": {"label": "B"}},
    })
    assert spec.series_keys == ["c", "a", "b"]


def test_labels_values_shape_is_normalized():
    spec = ChartSpec.from_tool_input({
        "chartType": "pie",
        "config": {"title": "T", "description": "D"},
        "data": {"labels": ["Network", "Database"], "values": [5, 2]},
        "chartConfig": {},
    })
    assert spec.data == [{"label": "Network", "value": 5}, {"label": "Database", "value": 2}]
    assert spec.normalization_notes


def test_columns_rows_shape_is_normalized():
    spec = ChartSpec.from_tool_input({
        "chartType": "bar",
        "config": {"title": "T", "description": "D"},
        "data": {"columns": ["state", "count"], "rows": [["New", 3], ["Closed", 8]]},
        "chartConfig": {"count": {"label": "Count"}},
    })
    assert spec.data == [{"state": "New", "count": 3}, {"state": "Closed", "count": 8}]


def test_nested_results_are_flattened():
    spec = ChartSpec.from_tool_input({
        "chartType": "bar",
        "config": {"title": "T", "description": "D"},
        "data": [{"results": [{"a": 1}]}, {"results": [{"a": 2}]}],
        "chartConfig": {},
    })
    assert spec.data == [{"a": 1}, {"a": 2}]


def test_non_object_rows_are_dropped():
    spec = ChartSpec.from_tool_input({
        "chartType": "bar",
        "config": {"title": "T", "description": "D"},
        "data": [{"a": 1}, "junk", 7],
        "chartConfig": {},
    })
    assert spec.data == [{"a": 1}]
    assert any("Dropped 2" in note for note in spec.normalization_notes)


def test_malformed_input_never_raises():
    for raw in (None, "text", 42, [], {"chartType": 5, "config": "x", "data": "y", "chartConfig": []}):
        spec = ChartSpec.from_tool_input(raw)
        assert spec.data == []
        assert spec.chart_config == {}
        assert spec.normalization_notes


def test_string_series_entry_becomes_label():
    spec = ChartSpec.from_tool_input({
        "chartType": "bar",
        "config": {"title": "T", "description": "D"},
        "data": [{"sales": 1}],
        "chartConfig": {"sales": "Sales", "other": 3},
    })
    assert spec.chart_config["sales"] == SeriesConfig(label="Sales")
    assert spec.chart_config["other"] == SeriesConfig(label="other")


def test_non_string_axis_key_is_ignored():
    spec = ChartSpec.from_tool_input({
        "chartType": "bar",
        "config": {"title": "T", "description": "D", "xAxisKey": 3},
        "data": [{"a": 1}],
        "chartConfig": {},
    })
    assert spec.config.x_axis_key is None
    assert any("xAxisKey" in note for note in spec.normalization_notes)


def test_chart_type_resolution():
    assert ChartType.resolve("stackedArea") is ChartType.STACKED_AREA
    assert ChartType.resolve("radar") is None
    assert ChartType.resolve(None) is None


def test_non_string_field_names_are_stringified():
    spec = ChartSpec.from_tool_input({
        "chartType": "bar",
        "config": {"title": "T", "description": "D"},
        "data": [{1: 10, 2: 20}, {"month": "Feb", 3: 30}],
        "chartConfig": {},
    })
    assert spec.data == [{"1": 10, "2": 20}, {"month": "Feb", "3": 30}]
    assert "Converted non-string field names in chart data to strings" in spec.normalization_notes
