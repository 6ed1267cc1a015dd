# src/itsm_data_analyst/core/table_schemas.py
"""
Embedded platform table schemas.

The query-translation prompt needs field names, types and choice values of
the common ITSM tables. They are embedded here rather than fetched from the
dictionary API so translation works without extra round trips.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from itsm_data_analyst.core.models import QueryConfig


@dataclass(frozen=True)
class FieldSchema:
    name: str
    label: str
    type: str  # string | integer | choice | reference | boolean | date | datetime
    choices: Optional[Tuple[Tuple[str, str], ...]] = None
    description: Optional[str] = None
    reference: Optional[str] = None


@dataclass(frozen=True)
class TableSchema:
    name: str
    label: str
    fields: Tuple[FieldSchema, ...]


def _f(name, label, type_, choices=None, description=None, reference=None) -> FieldSchema:
    return FieldSchema(
        name=name,
        label=label,
        type=type_,
        choices=tuple(choices) if choices is not None else None,
        description=description,
        reference=reference,
    )


_PRIORITY_CHOICES = [("1", "Critical"), ("2", "High"), ("3", "Moderate"), ("4", "Low")]

TABLE_SCHEMAS: Tuple[TableSchema, ...] = (
    TableSchema("incident", "Incident", (
        _f("asset", "Asset", "reference", reference="alm_asset"),
        _f("business_impact", "Business impact", "string"),
        _f("business_stc", "Business resolve time", "choice", choices=[]),
        _f("caller_id", "Caller", "reference", reference="sys_user"),
        _f("category", "Category", "string"),
        _f("caused_by", "Caused by Change", "reference", reference="change_request"),
        _f("rfc", "Change Request", "reference", reference="change_request"),
        _f("child_incidents", "Child Incidents", "choice", choices=[]),
        _f("close_code", "Close code", "string"),
        _f("u_down_time_end", "Down time end", "datetime"),
        _f("u_down_time_start", "Down time start", "datetime"),
        _f("incident_state", "Incident state", "choice", choices=[
            ("1", "New"), ("2", "In Progress"), ("3", "On Hold"),
            ("6", "Resolved"), ("7", "Closed"), ("8", "Canceled"),
        ]),
        _f("reopened_time", "Last reopened at", "datetime"),
        _f("reopened_by", "Last reopened by", "reference", reference="sys_user"),
        _f("notify", "Notify", "choice", choices=[
            ("1", "Do Not Notify"), ("2", "Send Email"), ("3", "Telephone"),
        ]),
        _f("u_number_of_group_members", "Number of Group Members", "choice", choices=[]),
        _f("hold_reason", "On hold reason", "choice", choices=[
            ("1", "Awaiting Caller"), ("5", "Awaiting Change"),
            ("3", "Awaiting Problem"), ("4", "Awaiting Vendor"),
        ]),
        _f("origin_id", "Origin", "string"),
        _f("origin_table", "Origin table", "string"),
        _f("parent_incident", "Parent Incident", "reference", reference="incident"),
        _f("cause", "Probable cause", "string"),
        _f("problem_id", "Problem", "reference", reference="problem"),
        _f("reopen_count", "Reopen count", "choice", choices=[]),
        _f("calendar_stc", "Resolve time", "choice", choices=[]),
        _f("resolved_at", "Resolved", "datetime"),
        _f("resolved_by", "Resolved by", "reference", reference="sys_user"),
        _f("severity", "Severity", "choice", choices=[
            ("1", "1 - High"), ("2", "2 - Medium"), ("3", "3 - Low"),
        ]),
        _f("subcategory", "Subcategory", "string"),
    )),
    TableSchema("change_request", "Change Request", (
        _f("backout_plan", "Backout plan", "string"),
        _f("cab_date_time", "CAB date/time", "datetime"),
        _f("cab_delegate", "CAB delegate", "reference", reference="sys_user"),
        _f("cab_recommendation", "CAB recommendation", "string"),
        _f("cab_required", "CAB required", "boolean"),
        _f("category", "Category", "string"),
        _f("change_plan", "Change plan", "string"),
        _f("close_code", "Close code", "string"),
        _f("conflict_last_run", "Conflict last run", "datetime"),
        _f("conflict_status", "Conflict status", "string"),
        _f("copied_from", "Copied from", "reference", reference="change_request"),
        _f("devops_change", "DevOps change", "boolean"),
        _f("implementation_plan", "Implementation plan", "string"),
        _f("justification", "Justification", "string"),
        _f("chg_model", "Model", "reference", reference="chg_model"),
        _f("on_hold", "On hold", "boolean"),
        _f("on_hold_task", "On Hold Change Tasks", "string"),
        _f("on_hold_reason", "On hold reason", "string"),
        _f("outside_maintenance_schedule", "Outside maintenance schedule", "boolean"),
        _f("phase", "Phase", "string"),
        _f("phase_state", "Phase state", "string"),
        _f("end_date", "Planned end date", "datetime"),
        _f("start_date", "Planned start date", "datetime"),
        _f("production_system", "Production system", "boolean"),
        _f("reason", "Reason", "string"),
        _f("requested_by", "Requested by", "reference", reference="sys_user"),
        _f("requested_by_date", "Requested by date", "datetime"),
        _f("review_comments", "Review comments", "string"),
        _f("review_date", "Review date", "date"),
        _f("review_status", "Review status", "choice", choices=[("1", "Success"), ("2", "Fail")]),
        _f("risk", "Risk", "choice", choices=[("2", "High"), ("3", "Moderate"), ("4", "Low")]),
        _f("risk_impact_analysis", "Risk and impact analysis", "string"),
        _f("scope", "Scope", "choice", choices=[
            ("1", "Massive"), ("2", "Large"), ("3", "Medium"), ("4", "Small"), ("5", "Tiny"),
        ]),
        _f("std_change_producer_version", "Standard Change Template version", "reference",
           reference="std_change_producer_version"),
        _f("test_plan", "Test plan", "string"),
        _f("type", "Type", "string"),
        _f("unauthorized", "Unauthorized", "boolean"),
    )),
    TableSchema("problem", "Problem", (
        _f("number", "Number", "string", description="Problem number (e.g., PRB0040001)"),
        _f("short_description", "Short description", "string"),
        _f("description", "Description", "string"),
        _f("state", "State", "choice", choices=[
            ("1", "New"), ("2", "Assess"), ("3", "Root Cause Analysis"), ("4", "Fix in Progress"),
            ("6", "Resolved"), ("7", "Closed"), ("8", "Canceled"),
        ]),
        _f("priority", "Priority", "choice", choices=_PRIORITY_CHOICES),
        _f("impact", "Impact", "choice", choices=[("1", "High"), ("2", "Medium"), ("3", "Low")]),
        _f("assignment_group", "Assignment group", "reference"),
        _f("assigned_to", "Assigned to", "reference"),
        _f("category", "Category", "string"),
        _f("opened_at", "Opened", "datetime"),
        _f("closed_at", "Closed", "datetime"),
        _f("sys_created_on", "Created", "datetime"),
        _f("sys_updated_on", "Updated", "datetime"),
    )),
    TableSchema("task", "Task", (
        _f("number", "Number", "string"),
        _f("short_description", "Short description", "string"),
        _f("description", "Description", "string"),
        _f("state", "State", "choice", choices=[
            ("1", "Open"), ("2", "Work in Progress"), ("3", "Closed Complete"),
            ("4", "Closed Incomplete"), ("7", "Closed Skipped"),
        ]),
        _f("priority", "Priority", "choice", choices=_PRIORITY_CHOICES),
        _f("active", "Active", "boolean"),
        _f("assignment_group", "Assignment group", "reference"),
        _f("assigned_to", "Assigned to", "reference"),
        _f("opened_at", "Opened", "datetime"),
        _f("closed_at", "Closed", "datetime"),
        _f("sys_created_on", "Created", "datetime"),
        _f("sys_updated_on", "Updated", "datetime"),
    )),
)

# Canned advanced-mode searches
QUERY_TEMPLATES: Dict[str, QueryConfig] = {
    "Open P1 Incidents": QueryConfig(
        table="incident",
        query="priority=1^active=true",
        fields="number,short_description,priority,state,assigned_to",
    ),
    "Pending Changes": QueryConfig(
        table="change_request",
        query="state=1^ORstate=2",
        fields="number,short_description,state,risk,priority",
    ),
    "Unassigned Incidents": QueryConfig(
        table="incident",
        query="assignment_group=",
        fields="number,short_description,priority,sys_created_on",
    ),
    "Open Problems": QueryConfig(
        table="problem",
        query="state=1^ORstate=2",
        fields="number,short_description,state,priority",
    ),
}


def get_table_schema(table_name: str) -> Optional[TableSchema]:
    for schema in TABLE_SCHEMAS:
        if schema.name == table_name:
            return schema
    return None


def get_available_tables() -> List[Dict[str, str]]:
    return [{"name": schema.name, "label": schema.label} for schema in TABLE_SCHEMAS]


def _format_field(field: FieldSchema) -> str:
    desc = f"  - {field.name} ({field.label}): {field.type}"
    if field.description:
        desc += f" - {field.description}"
    # An empty choice list still prints its header line
    if field.choices is not None:
        choices = ", ".join(f"{value}={label}" for value, label in field.choices)
        desc += f"\n    Choices: {choices}"
    return desc


def format_schema_for_prompt(table_name: Optional[str] = None) -> str:
    """
    Render table schemas as prompt context.

    Args:
        table_name: Restrict output to one table. All tables when omitted.

    Returns:
        One block per table, separated by a blank line. Empty when the table is unknown.
    """
    schemas = [s for s in TABLE_SCHEMAS if s.name == table_name] if table_name else list(TABLE_SCHEMAS)
    blocks = []
    for schema in schemas:
        fields_desc = "\n".join(_format_field(field) for field in schema.fields)
        blocks.append(f"Table: {schema.name} ({schema.label})\nFields:\n{fields_desc}")
    return "\n\n".join(blocks)
