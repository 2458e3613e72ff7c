"""
Dataverse Web API async client for forms, views and table metadata.

Wraps the OData v4 endpoints of the systemform, savedquery and
EntityDefinitions collections plus the WhoAmI and PublishXml actions.
Every call takes the caller's bearer token explicitly (see
token_resolver.resolve_token). Identity and metadata lookups are cached
through cache.py; forms and views are always fetched live.
"""

import logging
from typing import Any, Iterable, Optional

import httpx

import audit
import cache
from config import settings
from model import ViewQueryType
from publish import PublishXmlBuilder

logger = logging.getLogger(__name__)

FORM_LIST_FIELDS = "formid,name,type,isdefault,description,formactivationstate"
FORM_FIELDS = FORM_LIST_FIELDS + ",objecttypecode,formxml"
VIEW_LIST_FIELDS = "savedqueryid,name,querytype,isdefault,description,statecode"
VIEW_FIELDS = VIEW_LIST_FIELDS + ",returnedtypecode,layoutxml,fetchxml"

# Query types shown by List_views.
LISTED_VIEW_TYPES = (
    ViewQueryType.MAIN_APPLICATION_VIEW,
    ViewQueryType.ADVANCED_SEARCH,
    ViewQueryType.SUB_GRID,
    ViewQueryType.QUICK_FIND,
    ViewQueryType.LOOKUP,
)

NEW_VIEW_DESCRIPTION = "View created using MCP Server"


def _parse_dataverse_error(response: httpx.Response) -> str:
    """
    Extract the most useful error message from a Dataverse OData error response.
    Dataverse wraps errors in: {"error": {"code": "...", "message": "..."}}
    """
    try:
        error = response.json().get("error", {})
        return f"[{error.get('code', 'unknown')}] {error.get('message', response.text)}"
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:500]}"


def _odata_literal(value: str) -> str:
    """Quote *value* as an OData string literal."""
    return "'" + value.replace("'", "''") + "'"


def _headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/json",
        "OData-MaxVersion": "4.0",
        "OData-Version": "4.0",
        "Content-Type": "application/json",
        "Prefer": 'odata.include-annotations="OData.Community.Display.V1.FormattedValue"',
    }


async def _send(
    method: str,
    path: str,
    *,
    token: str,
    params: Optional[dict] = None,
    json: Optional[dict] = None,
) -> httpx.Response:
    """
    Execute an authenticated request and return the successful response.

    Raises:
        httpx.HTTPStatusError: on 4xx/5xx responses (with Dataverse error message).
        httpx.RequestError: on network-level failures.
    """
    url = f"{settings.api_base}{path}"
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        response = await client.request(
            method=method, url=url, headers=_headers(token), params=params, json=json,
        )

    if not response.is_success:
        error_msg = _parse_dataverse_error(response)
        logger.error("Dataverse API error %s %s: %s", method, url, error_msg)
        raise httpx.HTTPStatusError(error_msg, request=response.request, response=response)
    return response


async def _request(method: str, path: str, *, token: str, **kwargs: Any) -> Optional[Any]:
    response = await _send(method, path, token=token, **kwargs)
    # 204 No Content (PATCH and action responses)
    if response.status_code == 204 or not response.content:
        return None
    return response.json()


async def _get_or_none(path: str, *, token: str, params: Optional[dict] = None) -> Optional[dict]:
    try:
        return await _request("GET", path, token=token, params=params)
    except httpx.HTTPStatusError as e:
        if e.response is not None and e.response.status_code == 404:
            return None
        raise


def _label(obj: Optional[dict]) -> Optional[str]:
    if not obj:
        return None
    user_label = obj.get("UserLocalizedLabel") or {}
    if user_label.get("Label"):
        return user_label["Label"]
    labels = obj.get("LocalizedLabels") or []
    return labels[0].get("Label") if labels else None


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

async def whoami(token: str, user_oid: Optional[str] = None) -> dict:
    """
    Identity of the signed-in user: UserId, BusinessUnitId, OrganizationId, FullName.

    Cached per user (see cache.WHOAMI_CACHE_TTL_SECONDS).
    """
    cached = cache.get_whoami(user_oid)
    if cached is not None:
        return cached

    result = await _request("GET", "/WhoAmI", token=token)
    data = {
        "UserId": result.get("UserId"),
        "BusinessUnitId": result.get("BusinessUnitId"),
        "OrganizationId": result.get("OrganizationId"),
    }
    if data["UserId"]:
        try:
            user = await _request(
                "GET", f"/systemusers({data['UserId']})", token=token,
                params={"$select": "fullname"},
            )
            data["FullName"] = user.get("fullname")
        except httpx.HTTPError as e:
            logger.warning("Failed to fetch user fullname: %s", e)

    cache.set_whoami(user_oid, data)
    return data


# ---------------------------------------------------------------------------
# Table metadata
# ---------------------------------------------------------------------------

async def list_tables(token: str) -> list[dict]:
    """All tables: LogicalName, DisplayName, EntitySetName, ObjectTypeCode (cached)."""
    cached = cache.get_tables()
    if cached is not None:
        return cached

    result = await _request(
        "GET", "/EntityDefinitions", token=token,
        params={"$select": "LogicalName,DisplayName,EntitySetName,ObjectTypeCode"},
    )
    tables = sorted(
        (
            {
                "LogicalName": e.get("LogicalName", ""),
                "DisplayName": _label(e.get("DisplayName")) or "",
                "EntitySetName": e.get("EntitySetName", ""),
                "ObjectTypeCode": e.get("ObjectTypeCode"),
            }
            for e in result.get("value", [])
        ),
        key=lambda t: t["LogicalName"],
    )
    cache.set_tables(tables)
    return tables


async def get_table(token: str, table: str) -> Optional[dict]:
    """Definition of one table, or None if it does not exist."""
    entity = await _get_or_none(
        f"/EntityDefinitions(LogicalName={_odata_literal(table)})", token=token,
        params={"$select": "LogicalName,DisplayName,EntitySetName,ObjectTypeCode,PrimaryIdAttribute,PrimaryNameAttribute"},
    )
    if entity is None:
        return None
    entity["DisplayName"] = _label(entity.get("DisplayName")) or ""
    return entity


async def get_table_columns(token: str, table: str) -> list[dict]:
    """
    Columns of *table*: LogicalName, DisplayName, AttributeType, RequiredLevel.

    Cached per table (see cache.METADATA_CACHE_TTL_SECONDS).
    """
    cached = cache.get_columns(table)
    if cached is not None:
        return cached

    result = await _request(
        "GET", f"/EntityDefinitions(LogicalName={_odata_literal(table)})/Attributes", token=token,
        params={
            "$select": "LogicalName,DisplayName,AttributeType,RequiredLevel,IsValidForForm",
            "$filter": "AttributeType ne 'Virtual'",
        },
    )
    columns = sorted(
        (
            {
                "LogicalName": a.get("LogicalName", ""),
                "DisplayName": _label(a.get("DisplayName")) or "",
                "AttributeType": a.get("AttributeType", ""),
                "RequiredLevel": (a.get("RequiredLevel") or {}).get("Value", ""),
                "IsValidForForm": a.get("IsValidForForm"),
            }
            for a in result.get("value", [])
        ),
        key=lambda c: c["LogicalName"],
    )
    cache.set_columns(table, columns)
    return columns


# ---------------------------------------------------------------------------
# Forms (systemform)
# ---------------------------------------------------------------------------

async def list_forms(token: str, table: str) -> list[dict]:
    """Forms of *table*, ordered by type then name (formxml not included)."""
    result = await _request(
        "GET", "/systemforms", token=token,
        params={
            "$select": FORM_LIST_FIELDS,
            "$filter": f"objecttypecode eq {_odata_literal(table)}",
            "$orderby": "type asc,name asc",
        },
    )
    return result.get("value", [])


async def find_forms(
    token: str,
    table: str,
    *,
    form_name: Optional[str] = None,
    form_type: Optional[int] = None,
) -> list[dict]:
    """Forms of *table* matching the optional name and type, with formxml."""
    clauses = [f"objecttypecode eq {_odata_literal(table)}"]
    if form_name:
        clauses.append(f"name eq {_odata_literal(form_name)}")
    if form_type is not None:
        clauses.append(f"type eq {int(form_type)}")
    result = await _request(
        "GET", "/systemforms", token=token,
        params={
            "$select": FORM_FIELDS,
            "$filter": " and ".join(clauses),
            "$orderby": "name asc",
        },
    )
    return result.get("value", [])


async def get_form(token: str, form_id: str) -> Optional[dict]:
    return await _get_or_none(
        f"/systemforms({form_id})", token=token, params={"$select": FORM_FIELDS},
    )


async def update_form_xml(token: str, form_id: str, form_xml: str) -> None:
    await _request("PATCH", f"/systemforms({form_id})", token=token, json={"formxml": form_xml})


# ---------------------------------------------------------------------------
# Views (savedquery)
# ---------------------------------------------------------------------------

async def list_views(token: str, table: str) -> list[dict]:
    """System views of *table* with the query types in LISTED_VIEW_TYPES."""
    types = " or ".join(f"querytype eq {int(t)}" for t in LISTED_VIEW_TYPES)
    result = await _request(
        "GET", "/savedqueries", token=token,
        params={
            "$select": VIEW_LIST_FIELDS,
            "$filter": f"returnedtypecode eq {_odata_literal(table)} and ({types})",
            "$orderby": "querytype asc,name asc",
        },
    )
    return result.get("value", [])


async def get_view(token: str, view_id: str) -> Optional[dict]:
    return await _get_or_none(
        f"/savedqueries({view_id})", token=token, params={"$select": VIEW_FIELDS},
    )


async def find_view_by_name(token: str, table: str, name: str) -> Optional[dict]:
    result = await _request(
        "GET", "/savedqueries", token=token,
        params={
            "$select": VIEW_LIST_FIELDS,
            "$filter": f"returnedtypecode eq {_odata_literal(table)} and name eq {_odata_literal(name)}",
            "$top": 1,
        },
    )
    matches = result.get("value", [])
    return matches[0] if matches else None


async def create_view(
    token: str,
    table: str,
    name: str,
    layout_xml: str,
    fetch_xml: str,
    *,
    description: str = NEW_VIEW_DESCRIPTION,
) -> str:
    """
    Create a main application view and return its savedqueryid.

    Dataverse answers 204 with the new record URL in the OData-EntityId header.
    """
    response = await _send(
        "POST", "/savedqueries", token=token,
        json={
            "name": name,
            "returnedtypecode": table,
            "querytype": int(ViewQueryType.MAIN_APPLICATION_VIEW),
            "layoutxml": layout_xml,
            "fetchxml": fetch_xml,
            "description": description,
        },
    )
    # https://org.crm.dynamics.com/api/data/v9.2/savedqueries(guid)
    entity_id = response.headers.get("OData-EntityId", "")
    return entity_id.rsplit("(", 1)[-1].rstrip(")") if "(" in entity_id else ""


async def update_view(token: str, view_id: str, changes: dict) -> None:
    """PATCH the given savedquery columns (name, layoutxml, fetchxml)."""
    await _request("PATCH", f"/savedqueries({view_id})", token=token, json=changes)


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------

async def publish_tables(token: str, tables: Iterable[str]) -> None:
    """Publish the customizations of *tables* (forms and views included)."""
    builder = PublishXmlBuilder()
    for table in tables:
        builder.add_table(table)
    try:
        await _request(
            "POST", "/PublishXml", token=token, json={"ParameterXml": builder.build()},
        )
    except httpx.HTTPError as e:
        audit.log_publish(builder.tables, False, reason=str(e))
        raise
    audit.log_publish(builder.tables, True)
    logger.info("Published %s", ", ".join(builder.tables))
