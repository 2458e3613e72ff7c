"""
Dataverse Form Engineer MCP Server entrypoint.

Registers all tools, schema resources and prompts with FastMCP and starts
the server.

Environment variables (set via Docker or .env file):
  DATAVERSE_URL            (required): e.g. https://yourorg.crm4.dynamics.com
  CLIENT_ID                (required): Azure AD app client ID from your Entra ID app registration
  REDIS_URL                (required): e.g. redis://localhost:6379/0
  TENANT_ID                (optional): Azure AD tenant ID, defaults to "common"
  CLIENT_SECRET            (optional): enables Azure on-behalf-of mode
  MCP_TRANSPORT            (optional): "stdio" (default) or "sse"
"""

import logging
import os
import sys

from fastmcp import FastMCP

import formxml
from tools import (
    TOOL_REGISTRY,
    tool_audit_form_grid,
    tool_authenticate,
    tool_create_view,
    tool_get_form_definition,
    tool_get_view_definition,
    tool_invalidate_cache,
    tool_list_forms,
    tool_list_table_columns,
    tool_list_tables,
    tool_list_views,
    tool_rename_view,
    tool_sign_out,
    tool_update_form_xml,
    tool_update_view_definition,
    tool_validate_form_xml,
    tool_whoami,
)
from tools.resources import (
    SERVER_INSTRUCTIONS,
    prompt_clean_form,
    prompt_instructions,
    resource_filterxml_schema,
    resource_formxml_schema,
    resource_layoutxml_schema,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,  # Log to stderr to avoid polluting MCP stdio protocol on stdout
)
logging.getLogger("mcp.shared.tool_name_validation").setLevel(logging.ERROR)

logger = logging.getLogger(__name__)

mcp = FastMCP(name="Dataverse Form Engineer MCP Server", instructions=SERVER_INSTRUCTIONS)


def _register(name: str, fn) -> None:
    meta = TOOL_REGISTRY[name]
    mcp.tool(
        name=name,
        description=fn.__doc__,
        annotations={
            "title": meta.description,
            "readOnlyHint": meta.read_only,
            "destructiveHint": meta.is_destructive,
            "idempotentHint": meta.idempotent,
            "openWorldHint": name not in ("Validate_form_xml", "Audit_form_grid"),
        },
    )(fn)


_register("Sign_in_to_Dataverse", tool_authenticate)
_register("Sign_out_from_Dataverse", tool_sign_out)
_register("Get_my_identity", tool_whoami)

_register("List_tables", tool_list_tables)
_register("List_table_columns", tool_list_table_columns)
_register("Refresh_metadata_cache", tool_invalidate_cache)

_register("List_forms", tool_list_forms)
_register("Get_form_definition", tool_get_form_definition)
_register("Validate_form_xml", tool_validate_form_xml)
_register("Audit_form_grid", tool_audit_form_grid)
_register("Update_form_xml", tool_update_form_xml)

_register("List_views", tool_list_views)
_register("Get_view_definition", tool_get_view_definition)
_register("Create_view", tool_create_view)
_register("Rename_view", tool_rename_view)
_register("Update_view_definition", tool_update_view_definition)

mcp.resource(
    "schema://formxml",
    name="FormXML schema",
    description=resource_formxml_schema.__doc__,
    mime_type="text/plain",
)(resource_formxml_schema)
mcp.resource(
    "schema://layoutxml",
    name="LayoutXML schema",
    description=resource_layoutxml_schema.__doc__,
    mime_type="application/xml",
)(resource_layoutxml_schema)
mcp.resource(
    "schema://filterxml",
    name="FilterXML schema",
    description=resource_filterxml_schema.__doc__,
    mime_type="application/xml",
)(resource_filterxml_schema)

mcp.prompt(
    name="Instructions",
    description="How to use this server to inspect and edit Dataverse forms and views.",
)(prompt_instructions)
mcp.prompt(
    name="Clean_form",
    description="Clean the generated main form of a new custom table.",
)(prompt_clean_form)

if __name__ == "__main__":
    logger.info(
        "Schema set ready: %s",
        ", ".join(d.name for d in formxml.default_loader.get_schema_set().documents),
    )
    transport = os.environ.get("MCP_TRANSPORT", "stdio")
    logger.info("Starting Dataverse Form Engineer MCP Server (transport=%s)", transport)
    if transport == "sse":
        host = os.environ.get("MCP_HOST", "127.0.0.1")
        mcp.run(transport=transport, host=host, port=8000)
    else:
        mcp.run(transport=transport)
