"""
Structural validation of LLM-produced chart specifications.

The validator is total: every problem is reported in the returned
ValidationResult, nothing raises. Only errors block rendering; warnings are
logged by the caller and the chart still renders.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from itsm_data_analyst.components.chart.spec import (
    ChartSpec,
    ChartType,
    MULTI_SERIES_CHART_TYPES,
    X_AXIS_CHART_TYPES,
)

EMPTY_DATA_WARNING = "Chart has no data to display"
EMPTY_RECORD_WARNING = "Chart data records are empty"
PIE_MULTI_METRIC_WARNING = (
    "Pie chart with multiple metrics may be confusing. Consider using a bar chart instead."
)

FIELD_MISMATCH_MARKERS = (
    "not found in data",
    "references fields not found",
    "X-axis field",
    "Y-axis field",
)


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a chart spec."""

    valid: bool
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()


def _join(fields: List[str]) -> str:
    return ", ".join(str(f) for f in fields)


def validate_chart_data(spec: ChartSpec) -> ValidationResult:
    """
    Validate a chart spec against its own data.

    Only the first record's keys are inspected; rows are assumed homogeneous.

    Args:
        spec: The ChartSpec built from tool-call input.

    Returns:
        ValidationResult with valid == (no errors).
    """
    errors: List[str] = []
    warnings: List[str] = list(spec.normalization_notes)

    if not spec.data:
        warnings.append(EMPTY_DATA_WARNING)
        return ValidationResult(valid=True, errors=(), warnings=tuple(warnings))

    first = spec.data[0]
    data_fields = list(first.keys())
    if not data_fields:
        warnings.append(EMPTY_RECORD_WARNING)
        return ValidationResult(valid=True, errors=(), warnings=tuple(warnings))

    x_axis_key = spec.config.x_axis_key
    y_axis_key = spec.config.y_axis_key

    if x_axis_key and x_axis_key not in first:
        errors.append(
            f'X-axis field "{x_axis_key}" not found in data. Available fields: {_join(data_fields)}'
        )
    if y_axis_key and y_axis_key not in first:
        errors.append(
            f'Y-axis field "{y_axis_key}" not found in data. Available fields: {_join(data_fields)}'
        )

    config_fields = spec.series_keys
    invalid_fields = [f for f in config_fields if f not in first]
    if invalid_fields:
        errors.append(
            "Chart configuration references fields not found in data: "
            f"{_join(invalid_fields)}. Available fields in data: {_join(data_fields)}"
        )

    for field_name in config_fields:
        if field_name in first and first[field_name] is None:
            warnings.append(f'Field "{field_name}" has no data in first record')

    chart_type = ChartType.resolve(spec.chart_type)

    if chart_type is ChartType.PIE and len(config_fields) > 1:
        warnings.append(PIE_MULTI_METRIC_WARNING)

    if chart_type in X_AXIS_CHART_TYPES and not x_axis_key:
        warnings.append(f'Chart type "{spec.chart_type}" typically requires an xAxisKey in config')

    if chart_type in MULTI_SERIES_CHART_TYPES and not config_fields:
        warnings.append(f'Chart type "{spec.chart_type}" has no series defined in chartConfig')

    return ValidationResult(valid=not errors, errors=tuple(errors), warnings=tuple(warnings))


def format_validation_errors(result: ValidationResult) -> str:
    """Bullet list of errors for display; empty string when the spec is valid."""
    if result.valid:
        return ""
    return "Chart validation failed:\n" + "\n".join(f"• {error}" for error in result.errors)


def has_field_mismatch_error(result: ValidationResult) -> bool:
    """True when an error indicates the model invented field names."""
    return any(
        marker in error
        for error in result.errors
        for marker in FIELD_MISMATCH_MARKERS
    )
