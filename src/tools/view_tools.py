"""
View engineering tools: list, read, create, rename and update system views.

A view (savedquery) has two XML documents:
- Layout XML (root <grid>): the visible columns and their widths.
- Fetch XML (root <fetch>): the query that returns the rows.
Every column in the layout must be returned by an <attribute> of the fetch.
Both are validated against the bundled schema before anything is written.
"""

import logging
from typing import Any, Optional

import dataverse
import formxml
from audit import audited_tool
from auth import AuthenticationRequiredError
from formatting import format_view_definition, format_view_list, view_summary
from token_resolver import OBO_TOKEN_DEFAULT, resolve_token
from tools.common import auth_error_message, validation_gate
from validation import (
    validate_guid,
    validate_logical_name,
    validate_output_format,
    validate_required_text,
)

logger = logging.getLogger(__name__)


def _check_view_documents(
    layout_xml: Optional[str],
    fetch_xml: Optional[str],
    *,
    skip_validation: bool,
    record_id: Optional[str] = None,
) -> Optional[str]:
    if layout_xml is not None:
        blocked = validation_gate(
            formxml.layout_validator, layout_xml, "layoutxml",
            skip_validation=skip_validation, record_id=record_id,
        )
        if blocked:
            return blocked
    if fetch_xml is not None:
        return validation_gate(
            formxml.fetch_validator, fetch_xml, "fetchxml",
            skip_validation=skip_validation, record_id=record_id,
        )
    return None


async def tool_list_views(
    table: str,
    output_format: str = "formatted",
    _obo_token: Optional[str] = OBO_TOKEN_DEFAULT,
) -> Any:
    """
    List the system views of a Dataverse table.

    Includes public views, advanced find, associated (sub-grid), quick find
    and lookup views.

    Parameters:
    - table (required): LogicalName of the table, e.g. "account".
    - output_format (optional): "formatted" (default) or "json".

    Output format (formatted):
        ViewId | Name | Query type | Default | Description
    """
    try:
        table = validate_logical_name(table)
        output_format = validate_output_format(output_format)
    except ValueError as e:
        return f"Validation error: {e}"

    try:
        token = await resolve_token(_obo_token)
        views = await dataverse.list_views(token, table)
    except AuthenticationRequiredError:
        return auth_error_message("list_views")
    except Exception as e:
        logger.exception("list_views failed for table %s", table)
        return f"Failed to list views of '{table}': {e}"

    if output_format == "json":
        return {
            "table": table,
            "count": len(views),
            "views": [
                {k: v for k, v in view_summary(view).items() if k not in ("layoutxml", "fetchxml")}
                for view in views
            ],
        }
    return format_view_list(table, views)


async def tool_get_view_definition(
    view_id: str,
    output_format: str = "formatted",
    _obo_token: Optional[str] = OBO_TOKEN_DEFAULT,
) -> Any:
    """
    Retrieve the Layout XML and Fetch XML of a view.

    Parameters:
    - view_id (required): ViewId (GUID) from `List_views`.
    - output_format (optional): "formatted" (default) or "json".
    """
    try:
        view_id = validate_guid(view_id)
        output_format = validate_output_format(output_format)
    except ValueError as e:
        return f"Validation error: {e}"

    try:
        token = await resolve_token(_obo_token)
        view = await dataverse.get_view(token, view_id)
    except AuthenticationRequiredError:
        return auth_error_message("get_view_definition")
    except Exception as e:
        logger.exception("get_view_definition failed for view %s", view_id)
        return f"Failed to retrieve view '{view_id}': {e}"

    if view is None:
        return f"View '{view_id}' not found."
    if output_format == "json":
        return view_summary(view)
    return format_view_definition(view)


@audited_tool("Create_view", "CREATE")
async def tool_create_view(
    table: str,
    view_name: str,
    layout_xml: str,
    fetch_xml: str,
    skip_validation: bool = False,
    _obo_token: Optional[str] = OBO_TOKEN_DEFAULT,
) -> Any:
    """
    Create a new public view on a table and publish the table.

    Parameters:
    - table (required): LogicalName of the table, e.g. "account".
    - view_name (required): display name; must not already be used by a view of the table.
    - layout_xml (required): Layout XML, root <grid name="resultset" object="<ObjectTypeCode>" jump="<primary name>" select="1" icon="1" preview="1">
      with one <row name="result" id="<primary id>"> holding <cell name="<column>" width="150"/> entries.
    - fetch_xml (required): Fetch XML, root <fetch version="1.0" mapping="logical">
      with <entity name="<table>"> holding one <attribute> per layout column.
    - skip_validation (optional): true ONLY when the user explicitly asks to skip validation.

    Call `List_tables` to get the ObjectTypeCode and `List_table_columns` for column names.
    """
    try:
        table = validate_logical_name(table)
        view_name = validate_required_text(view_name, "View name")
        validate_required_text(layout_xml, "Layout XML")
        validate_required_text(fetch_xml, "Fetch XML")
    except ValueError as e:
        return f"Validation error: {e}"

    blocked = _check_view_documents(layout_xml, fetch_xml, skip_validation=skip_validation)
    if blocked:
        return blocked

    try:
        token = await resolve_token(_obo_token)
        existing = await dataverse.find_view_by_name(token, table, view_name)
        if existing is not None:
            return (
                f"A view named '{view_name}' already exists on table '{table}' "
                f"(ViewId: {existing.get('savedqueryid')}). Choose another name or use "
                "`Update_view_definition`."
            )
        view_id = await dataverse.create_view(token, table, view_name, layout_xml, fetch_xml)
        await dataverse.publish_tables(token, [table])
    except AuthenticationRequiredError:
        return auth_error_message("create_view")
    except Exception as e:
        logger.exception("create_view failed for table %s", table)
        return f"Failed to create view '{view_name}': {e}"

    return f"View '{view_name}' created on table '{table}' (ViewId: {view_id}) and published."


@audited_tool("Rename_view", "UPDATE")
async def tool_rename_view(
    view_id: str,
    new_name: str,
    _obo_token: Optional[str] = OBO_TOKEN_DEFAULT,
) -> Any:
    """
    Rename a view and publish its table.

    Parameters:
    - view_id (required): ViewId (GUID) from `List_views`.
    - new_name (required): the new display name.
    """
    try:
        view_id = validate_guid(view_id)
        new_name = validate_required_text(new_name, "New name")
    except ValueError as e:
        return f"Validation error: {e}"

    try:
        token = await resolve_token(_obo_token)
        view = await dataverse.get_view(token, view_id)
        if view is None:
            return f"View '{view_id}' not found."
        old_name = view.get("name")
        if old_name == new_name:
            return f"View '{view_id}' is already named '{new_name}'. Nothing changed."
        await dataverse.update_view(token, view_id, {"name": new_name})
        await dataverse.publish_tables(token, [view.get("returnedtypecode")])
    except AuthenticationRequiredError:
        return auth_error_message("rename_view")
    except Exception as e:
        logger.exception("rename_view failed for view %s", view_id)
        return f"Failed to rename view '{view_id}': {e}"

    return f"View renamed from '{old_name}' to '{new_name}' and published."


@audited_tool("Update_view_definition", "UPDATE")
async def tool_update_view_definition(
    view_id: str,
    layout_xml: Optional[str] = None,
    fetch_xml: Optional[str] = None,
    skip_validation: bool = False,
    _obo_token: Optional[str] = OBO_TOKEN_DEFAULT,
) -> Any:
    """
    Replace the Layout XML and/or Fetch XML of a view and publish its table.

    Parameters:
    - view_id (required): ViewId (GUID) from `List_views`.
    - layout_xml (optional): new Layout XML (root <grid>).
    - fetch_xml (optional): new Fetch XML (root <fetch>).
    - skip_validation (optional): true ONLY when the user explicitly asks to skip validation.

    At least one of layout_xml and fetch_xml is required. When adding a column,
    update both: the cell in the layout and the attribute in the fetch.
    Returns the previous and the new XML so the change can be reverted.
    """
    try:
        view_id = validate_guid(view_id)
        if not (layout_xml and layout_xml.strip()) and not (fetch_xml and fetch_xml.strip()):
            raise ValueError("Provide layout_xml, fetch_xml or both.")
    except ValueError as e:
        return f"Validation error: {e}"

    layout_xml = layout_xml if layout_xml and layout_xml.strip() else None
    fetch_xml = fetch_xml if fetch_xml and fetch_xml.strip() else None

    blocked = _check_view_documents(
        layout_xml, fetch_xml, skip_validation=skip_validation, record_id=view_id,
    )
    if blocked:
        return blocked

    changes = {}
    if layout_xml is not None:
        changes["layoutxml"] = layout_xml
    if fetch_xml is not None:
        changes["fetchxml"] = fetch_xml

    try:
        token = await resolve_token(_obo_token)
        view = await dataverse.get_view(token, view_id)
        if view is None:
            return f"View '{view_id}' not found."
        await dataverse.update_view(token, view_id, changes)
        await dataverse.publish_tables(token, [view.get("returnedtypecode")])
    except AuthenticationRequiredError:
        return auth_error_message("update_view_definition")
    except Exception as e:
        logger.exception("update_view_definition failed for view %s", view_id)
        return f"Failed to update view '{view_id}': {e}"

    lines = [f"View '{view.get('name')}' ({view_id}) updated and published."]
    for column, title in (("layoutxml", "Layout XML"), ("fetchxml", "Fetch XML")):
        if column in changes:
            lines.extend([
                "",
                f"Previous {title}:",
                "```xml", view.get(column) or "", "```",
                f"New {title}:",
                "```xml", changes[column], "```",
            ])
    return "\n".join(lines)
