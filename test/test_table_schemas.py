"""
Unit tests for the embedded table schemas and prompt formatting.
"""
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from itsm_data_analyst.core.table_schemas import (
    QUERY_TEMPLATES,
    format_schema_for_prompt,
    get_available_tables,
    get_table_schema,
)


def test_available_tables():
    assert get_available_tables() == [
        {"name": "incident", "label": "Incident"},
        {"name": "change_request", "label": "Change Request"},
        {"name": "problem", "label": "Problem"},
        {"name": "task", "label": "Task"},
    ]


def test_get_table_schema():
    schema = get_table_schema("problem")
    assert schema.label == "Problem"
    assert "priority" in [f.name for f in schema.fields]
    assert get_table_schema("cmdb_ci") is None


def test_format_single_table():
    text = format_schema_for_prompt("problem")
    assert text.startswith("Table: problem (Problem)\nFields:\n")
    assert "  - number (Number): string - Problem number (e.g., PRB0040001)" in text
    assert "  - priority (Priority): choice\n    Choices: 1=Critical, 2=High, 3=Moderate, 4=Low" in text
    assert "Table: incident" not in text


def test_format_all_tables_separated_by_blank_line():
    text = format_schema_for_prompt()
    blocks = text.split("\n\nTable: ")
    assert len(blocks) == 4


def test_empty_choice_list_prints_header():
    text = format_schema_for_prompt("incident")
    assert "  - business_stc (Business resolve time): choice\n    Choices: \n" in text


def test_unknown_table_formats_empty():
    assert format_schema_for_prompt("cmdb_ci") == ""


def test_query_templates_target_known_tables():
    for name, config in QUERY_TEMPLATES.items():
        assert get_table_schema(config.table) is not None, name
    assert QUERY_TEMPLATES["Open P1 Incidents"].query == "priority=1^active=true"
