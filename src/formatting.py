"""
Text and JSON renderings of forms, views and validation results.

Tool output is read by the agent, so list output uses the same compact
pipe-delimited tables as the metadata tools and XML is shown in fenced
code blocks.
"""

from typing import Any, Optional

from lxml import etree

from formxml import ValidationResult
from model import FormType, ViewQueryType

FIXING_TIPS = (
    "Check that all required attributes are present (e.g. cell id, control id and classid).",
    "Verify that element names and nesting match the schema: "
    "form/tabs/tab/columns/column/sections/section/rows/row/cell.",
    "Ensure attribute values have the expected type (booleans are true/false, "
    "languagecode is a positive number).",
    "Read the `schema://formxml` resource for the full schema.",
)


def _type_label(enum_cls, value: Any) -> str:
    try:
        return enum_cls(int(value)).label
    except (TypeError, ValueError):
        return str(value)


def _yes(value: Any) -> str:
    return "Y" if value else ""


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------

def format_form_list(table: str, forms: list[dict]) -> str:
    if not forms:
        return f"No forms found for table '{table}'."
    lines = [
        f"Forms of table '{table}' ({len(forms)}):",
        "FormId | Name | Type | Default | Description",
    ]
    for f in forms:
        description = (f.get("description") or "").replace("\n", " ")
        lines.append(
            f"{f.get('formid', '')} | {f.get('name', '')} | {_type_label(FormType, f.get('type'))}"
            f" | {_yes(f.get('isdefault'))} | {description}"
        )
    return "\n".join(lines)


def form_summary(form: dict) -> dict:
    return {
        "formid": form.get("formid"),
        "name": form.get("name"),
        "type": _type_label(FormType, form.get("type")),
        "isdefault": bool(form.get("isdefault")),
        "description": form.get("description"),
    }


def format_form_selection(table: str, forms: list[dict]) -> str:
    """Ask the agent to pick one of several matching Main forms."""
    lines = [
        f"Found {len(forms)} Main forms for table '{table}'. Choose one and call "
        "`Get_form_definition` again with its form_name:",
        "",
    ]
    for index, form in enumerate(forms, start=1):
        marker = " (default)" if form.get("isdefault") else ""
        lines.append(f"{index}. {form.get('name')}{marker} [FormId: {form.get('formid')}]")
        if form.get("description"):
            lines.append(f"   {form['description']}")
    lines.extend(["", f"Example: Get_form_definition(table=\"{table}\", form_name=\"{forms[0].get('name')}\")"])
    return "\n".join(lines)


def format_form_definition(form: dict) -> str:
    return "\n".join([
        f"Form: {form.get('name')}",
        f"FormId: {form.get('formid')}",
        f"Type: {_type_label(FormType, form.get('type'))}",
        f"Default: {'yes' if form.get('isdefault') else 'no'}",
        f"Description: {form.get('description') or ''}",
        "",
        "```xml",
        form.get("formxml") or "",
        "```",
    ])


def form_definition_json(table: str, forms: list[dict]) -> dict:
    return {
        "table": table,
        "count": len(forms),
        "forms": [
            {
                **form_summary(form),
                "definition": xml_to_dict(form.get("formxml")),
                "formxml": form.get("formxml"),
            }
            for form in forms
        ],
    }


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

def format_view_list(table: str, views: list[dict]) -> str:
    if not views:
        return f"No views found for table '{table}'."
    lines = [
        f"Views of table '{table}' ({len(views)}):",
        "ViewId | Name | Query type | Default | Description",
    ]
    for v in views:
        description = (v.get("description") or "").replace("\n", " ")
        lines.append(
            f"{v.get('savedqueryid', '')} | {v.get('name', '')} | {_type_label(ViewQueryType, v.get('querytype'))}"
            f" | {_yes(v.get('isdefault'))} | {description}"
        )
    return "\n".join(lines)


def view_summary(view: dict) -> dict:
    return {
        "savedqueryid": view.get("savedqueryid"),
        "name": view.get("name"),
        "table": view.get("returnedtypecode"),
        "querytype": _type_label(ViewQueryType, view.get("querytype")),
        "isdefault": bool(view.get("isdefault")),
        "layoutxml": view.get("layoutxml"),
        "fetchxml": view.get("fetchxml"),
    }


def format_view_definition(view: dict) -> str:
    return "\n".join([
        f"View: {view.get('name')}",
        f"ViewId: {view.get('savedqueryid')}",
        f"Table: {view.get('returnedtypecode')}",
        f"Query type: {_type_label(ViewQueryType, view.get('querytype'))}",
        "",
        "Layout XML:",
        "```xml",
        view.get("layoutxml") or "",
        "```",
        "",
        "Fetch XML:",
        "```xml",
        view.get("fetchxml") or "",
        "```",
    ])


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def format_validation_report(result: ValidationResult, label: str = "Form XML") -> str:
    if result.is_valid and not result.has_warnings:
        return f"{label} validation successful. The document is valid according to the schema."

    lines = [
        f"{label} validation passed with warnings." if result.is_valid
        else f"{label} validation failed.",
        "",
    ]
    for title, items in (("Error", result.errors), ("Warning", result.warnings)):
        if not items:
            continue
        lines.append(f"{len(items)} {title}(s):")
        lines.extend(f"  {i}. {d}" for i, d in enumerate(items, start=1))
        lines.append("")
    if not result.is_valid:
        lines.append("Tips:")
        lines.extend(f"  - {tip}" for tip in FIXING_TIPS)
    return "\n".join(lines).rstrip()


# ---------------------------------------------------------------------------
# XML to JSON
# ---------------------------------------------------------------------------

def _element_to_value(element) -> Any:
    node: dict[str, Any] = {f"@{name}": value for name, value in element.attrib.items()}
    for child in element:
        if not isinstance(child.tag, str):
            continue  # comments and processing instructions
        value = _element_to_value(child)
        if child.tag in node:
            existing = node[child.tag]
            if not isinstance(existing, list):
                node[child.tag] = existing = [existing]
            existing.append(value)
        else:
            node[child.tag] = value
    text = (element.text or "").strip()
    if text:
        if not node:
            return text
        node["#text"] = text
    return node or None


def xml_to_dict(xml_text: Optional[str]) -> Optional[dict]:
    """
    Convert XML into nested dicts: attributes as "@name", text as "#text",
    repeated child elements as lists. Returns None for empty or malformed input.
    """
    if not xml_text or not xml_text.strip():
        return None
    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)
    try:
        root = etree.fromstring(xml_text.encode("utf-8"), parser)
    except etree.XMLSyntaxError:
        return None
    return {root.tag: _element_to_value(root)}
