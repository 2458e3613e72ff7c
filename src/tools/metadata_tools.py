"""
Table metadata, user identity and cache management tools.

Form and view editing needs exact column LogicalNames (for control
datafieldname, layout cells and fetch attributes) and a table's
ObjectTypeCode (for the layout <grid object="...">). These tools provide
them from a Redis cache backed by the EntityDefinitions metadata API.
"""

import logging
from typing import Any, Optional

import cache
import dataverse
from auth import AuthenticationRequiredError
from token_resolver import OBO_TOKEN_DEFAULT, get_user_oid, resolve_token
from tools.common import auth_error_message
from validation import validate_logical_name

logger = logging.getLogger(__name__)


async def tool_whoami(_obo_token: Optional[str] = OBO_TOKEN_DEFAULT) -> Any:
    """
    Return the identity of the signed-in Dataverse user.

    Cached for 24 hours. Call it after sign-in to confirm the session and
    greet the user by FullName.

    Returns a dict with UserId, FullName, BusinessUnitId and OrganizationId.
    """
    try:
        token = await resolve_token(_obo_token)
        return await dataverse.whoami(token, get_user_oid(_obo_token))
    except AuthenticationRequiredError:
        return auth_error_message("whoami")
    except Exception as e:
        logger.exception("whoami failed")
        return f"Failed to retrieve user identity: {e}"


async def tool_list_tables(_obo_token: Optional[str] = OBO_TOKEN_DEFAULT) -> Any:
    """
    Return a compact pipe-delimited list of all tables in the Dataverse environment.

    Cached for 24 hours, so this call is cheap after the first fetch.

    Output format:
        LogicalName | DisplayName | EntitySetName | ObjectTypeCode
        account | Account | accounts | 1

    - LogicalName: pass it as `table` to the form and view tools
    - ObjectTypeCode: the value of the `object` attribute of a view's Layout XML <grid>
    """
    try:
        token = await resolve_token(_obo_token)
        tables = await dataverse.list_tables(token)
    except AuthenticationRequiredError:
        return auth_error_message("list_tables")
    except Exception as e:
        logger.exception("list_tables failed")
        return f"Failed to retrieve table list: {e}"

    lines = ["LogicalName | DisplayName | EntitySetName | ObjectTypeCode"]
    lines.extend(
        f"{t['LogicalName']} | {t['DisplayName']} | {t['EntitySetName']} | {t.get('ObjectTypeCode') or ''}"
        for t in tables
    )
    return "\n".join(lines)


async def tool_list_table_columns(
    table: str,
    _obo_token: Optional[str] = OBO_TOKEN_DEFAULT,
) -> Any:
    """
    List the columns of a table, for use in FormXML controls and view XML.

    Cached per table for 1 hour.

    Output format:
        Column | Display Name | Type | Req | Form
        name | Account Name | String | Y | Y

    - Column: LogicalName; use it as control datafieldname, layout cell name
      and fetch attribute name
    - Req: "Y" when the column is required (system or application)
    - Form: "Y" when the column can be placed on a form
    """
    try:
        table = validate_logical_name(table)
    except ValueError as e:
        return f"Validation error: {e}"

    try:
        token = await resolve_token(_obo_token)
        columns = await dataverse.get_table_columns(token, table)
    except AuthenticationRequiredError:
        return auth_error_message("list_table_columns")
    except Exception as e:
        logger.exception("list_table_columns failed for %s", table)
        return f"Failed to retrieve columns of '{table}': {e}"

    lines = [f"Table: {table}", "", "Column | Display Name | Type | Req | Form"]
    for c in columns:
        required = "Y" if c.get("RequiredLevel") in ("SystemRequired", "ApplicationRequired") else ""
        on_form = "Y" if c.get("IsValidForForm") else ""
        lines.append(
            f"{c['LogicalName']} | {c['DisplayName']} | {c['AttributeType']} | {required} | {on_form}"
        )
    return "\n".join(lines)


async def tool_invalidate_cache(table: Optional[str] = None) -> str:
    """
    Invalidate cached table metadata to force a fresh fetch from Dataverse.

    Call this when column names or tables seem outdated, e.g. right after a
    column was added in the maker portal. Do NOT call it routinely.

    Parameters:
    - table (optional): LogicalName of one table whose columns to drop.
      If omitted, all cached columns and the table list are dropped.
      The identity cache is never affected.
    """
    if table:
        try:
            table = validate_logical_name(table)
        except ValueError as e:
            return f"Validation error: {e}"
        cache.invalidate_columns(table)
        return (
            f"Column cache invalidated for table '{table}'. "
            "The next `List_table_columns` call for it fetches fresh data."
        )

    cached = cache.get_cached_column_tables()
    cache.invalidate_columns()
    cache.invalidate_tables()
    return (
        f"Metadata cache invalidated ({len(cached)} table(s) plus the table list). "
        "The next `List_tables` or `List_table_columns` call fetches fresh data."
    )
