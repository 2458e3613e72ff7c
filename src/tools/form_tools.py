"""
Form engineering tools: list, read, validate, audit and update form definitions.

IMPORTANT GUIDANCE FOR THE AGENT:
- The `table` parameter is the table LogicalName (singular, e.g. "account").
  If unsure, call `List_tables` first.
- Before changing a form, read it with `Get_form_definition`, edit the FormXML,
  check it with `Validate_form_xml` and `Audit_form_grid`, then save it with
  `Update_form_xml`. Invalid FormXML is never saved.
- Form IDs are GUIDs in the format xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx.
"""

import logging
from typing import Any, Optional

import dataverse
import formxml
from audit import audited_tool
from auth import AuthenticationRequiredError
from formatting import (
    form_definition_json,
    form_summary,
    format_form_definition,
    format_form_list,
    format_form_selection,
    format_validation_report,
)
from model import FormType
from token_resolver import OBO_TOKEN_DEFAULT, resolve_token
from tools.common import auth_error_message, validation_gate
from validation import (
    validate_form_type,
    validate_guid,
    validate_logical_name,
    validate_output_format,
    validate_required_text,
)

logger = logging.getLogger(__name__)


async def tool_list_forms(
    table: str,
    output_format: str = "formatted",
    _obo_token: Optional[str] = OBO_TOKEN_DEFAULT,
) -> Any:
    """
    List the forms (main, quick create, quick view, card, ...) of a Dataverse table.

    Parameters:
    - table (required): LogicalName of the table, e.g. "account".
    - output_format (optional): "formatted" (default) for a pipe-delimited list,
      "json" for structured data.

    Output format (formatted):
        FormId | Name | Type | Default | Description
        8448b78f-... | Account | Main | Y | A form for this entity.

    Use the FormId with `Update_form_xml`, or the Name with `Get_form_definition`.
    """
    try:
        table = validate_logical_name(table)
        output_format = validate_output_format(output_format)
    except ValueError as e:
        return f"Validation error: {e}"

    try:
        token = await resolve_token(_obo_token)
        forms = await dataverse.list_forms(token, table)
    except AuthenticationRequiredError:
        return auth_error_message("list_forms")
    except Exception as e:
        logger.exception("list_forms failed for table %s", table)
        return f"Failed to list forms of '{table}': {e}"

    if output_format == "json":
        return {"table": table, "count": len(forms), "forms": [form_summary(f) for f in forms]}
    return format_form_list(table, forms)


async def tool_get_form_definition(
    table: str,
    form_name: Optional[str] = None,
    form_type: Optional[str] = None,
    output_format: str = "xml",
    _obo_token: Optional[str] = OBO_TOKEN_DEFAULT,
) -> Any:
    """
    Retrieve the FormXML definition of a form.

    Parameters:
    - table (required): LogicalName of the table, e.g. "account".
    - form_name (optional): exact form name.
    - form_type (optional): form type, e.g. "Main", "QuickCreate", "QuickView", "Card".
    - output_format (optional): "xml" (default) shows the metadata and the raw FormXML;
      "json" returns structured data including an XML-to-JSON conversion.

    When neither form_name nor form_type is given, the table's Main forms are
    searched. If there is more than one, a selection list is returned: ask the
    user which one to use and call this tool again with form_name.
    """
    try:
        table = validate_logical_name(table)
        parsed_type = validate_form_type(form_type)
        output_format = validate_output_format(output_format, allowed=("xml", "json"))
    except ValueError as e:
        return f"Validation error: {e}"

    smart_search = not form_name and parsed_type is None
    try:
        token = await resolve_token(_obo_token)
        forms = await dataverse.find_forms(
            token,
            table,
            form_name=form_name or None,
            form_type=FormType.MAIN if smart_search else parsed_type,
        )
    except AuthenticationRequiredError:
        return auth_error_message("get_form_definition")
    except Exception as e:
        logger.exception("get_form_definition failed for table %s", table)
        return f"Failed to retrieve form definition: {e}"

    if not forms:
        filters = []
        if form_name:
            filters.append(f"name '{form_name}'")
        if parsed_type is not None or smart_search:
            filters.append(f"type {(parsed_type or FormType.MAIN).label}")
        return f"No forms found for table '{table}' with {' and '.join(filters)}."

    if smart_search and len(forms) > 1:
        return format_form_selection(table, forms)

    if output_format == "json":
        return form_definition_json(table, forms)
    return "\n\n---\n\n".join(format_form_definition(f) for f in forms)


async def tool_validate_form_xml(form_xml: str) -> Any:
    """
    Validate FormXML against the Dataverse FormXML schema.

    Always call this before `Update_form_xml`. Returns a success message, or
    numbered lists of errors and warnings (with line/column) and fixing tips.
    Does not contact Dataverse.
    """
    try:
        result = formxml.form_validator.validate(form_xml)
    except Exception as e:
        logger.exception("validate_form_xml failed")
        return f"Failed to validate form XML: {e}"
    return format_validation_report(result)


async def tool_audit_form_grid(form_xml: str) -> Any:
    """
    Check the cell grid of every section of a FormXML document.

    Lays out the cells of each section honoring colspan/rowspan and reports:
    - overlapping cells (error)
    - positions no cell covers, empty rows and sections without rows (warnings)

    Use it together with `Validate_form_xml`: the schema check does not know
    about the grid. Does not contact Dataverse.
    """
    try:
        result = formxml.audit_form_grid(form_xml)
    except Exception as e:
        logger.exception("audit_form_grid failed")
        return f"Failed to audit form grid: {e}"
    if not len(result):
        return "Form grid audit successful. Every section grid is complete and free of overlaps."
    return format_validation_report(result, "Form grid")


@audited_tool("Update_form_xml", "UPDATE")
async def tool_update_form_xml(
    form_id: str,
    form_xml: str,
    skip_validation: bool = False,
    _obo_token: Optional[str] = OBO_TOKEN_DEFAULT,
) -> Any:
    """
    Replace the FormXML of a form and publish its table.

    The FormXML is validated against the schema first; if it has errors the
    update is blocked and the errors are returned. Nothing is written then.

    Parameters:
    - form_id (required): FormId (GUID) from `List_forms` or `Get_form_definition`.
    - form_xml (required): the complete new FormXML (root element <form>).
    - skip_validation (optional): set to true ONLY when the user explicitly asks
      to save without validation. Defaults to false.
    """
    try:
        form_id = validate_guid(form_id)
        validate_required_text(form_xml, "Form XML")
    except ValueError as e:
        return f"Validation error: {e}"

    blocked = validation_gate(
        formxml.form_validator, form_xml, "formxml",
        skip_validation=skip_validation, record_id=form_id,
    )
    if blocked:
        return blocked

    try:
        token = await resolve_token(_obo_token)
        form = await dataverse.get_form(token, form_id)
        if form is None:
            return f"Form '{form_id}' not found."
        await dataverse.update_form_xml(token, form_id, form_xml)
        table = form.get("objecttypecode")
        await dataverse.publish_tables(token, [table])
    except AuthenticationRequiredError:
        return auth_error_message("update_form_xml")
    except Exception as e:
        logger.exception("update_form_xml failed for form %s", form_id)
        return f"Failed to update form '{form_id}': {e}"

    return f"Form '{form.get('name')}' ({form_id}) updated and table '{table}' published."
