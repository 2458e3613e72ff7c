"""Tests for the schema resources, prompts and tool registry."""

from formxml.schema_set import SCHEMA_DELIMITER
from tools import TOOL_REGISTRY
from tools.resources import (
    SERVER_INSTRUCTIONS,
    prompt_clean_form,
    prompt_instructions,
    resource_filterxml_schema,
    resource_formxml_schema,
    resource_layoutxml_schema,
)


def test_formxml_resource_contains_whole_set():
    text = resource_formxml_schema()
    assert text.count(SCHEMA_DELIMITER) == 3
    assert 'name="form"' in text
    assert 'name="grid"' in text
    assert 'name="fetch"' in text


def test_view_schema_resources():
    assert 'xs:element name="grid"' in resource_layoutxml_schema()
    assert 'xs:element name="fetch"' in resource_filterxml_schema()


def test_prompts():
    assert prompt_instructions() == SERVER_INSTRUCTIONS
    text = prompt_clean_form("new_project")
    assert "'new_project'" in text
    assert "{table}" not in text


def test_registry_covers_every_tool():
    assert len(TOOL_REGISTRY) == 16
    for name, meta in TOOL_REGISTRY.items():
        assert meta.tool_name == name
        assert meta.category in ("READ", "CREATE", "UPDATE")


def test_registry_hints():
    assert TOOL_REGISTRY["Validate_form_xml"].read_only
    assert TOOL_REGISTRY["Update_form_xml"].is_destructive
    assert not TOOL_REGISTRY["Update_form_xml"].read_only
    assert not TOOL_REGISTRY["Create_view"].idempotent
    assert TOOL_REGISTRY["Rename_view"].idempotent
