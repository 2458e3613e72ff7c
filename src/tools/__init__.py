from dataclasses import dataclass
from typing import Optional

from tools.auth_tools import (
    tool_authenticate,
    tool_sign_out,
)
from tools.form_tools import (
    tool_list_forms,
    tool_get_form_definition,
    tool_validate_form_xml,
    tool_audit_form_grid,
    tool_update_form_xml,
)
from tools.view_tools import (
    tool_list_views,
    tool_get_view_definition,
    tool_create_view,
    tool_rename_view,
    tool_update_view_definition,
)
from tools.metadata_tools import (
    tool_whoami,
    tool_list_tables,
    tool_list_table_columns,
    tool_invalidate_cache,
)

__all__ = [
    "tool_authenticate",
    "tool_sign_out",
    "tool_list_forms",
    "tool_get_form_definition",
    "tool_validate_form_xml",
    "tool_audit_form_grid",
    "tool_update_form_xml",
    "tool_list_views",
    "tool_get_view_definition",
    "tool_create_view",
    "tool_rename_view",
    "tool_update_view_definition",
    "tool_whoami",
    "tool_list_tables",
    "tool_list_table_columns",
    "tool_invalidate_cache",
    "TOOL_REGISTRY",
]


# ---------------------------------------------------------------------------
# Tool classification metadata
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolMeta:
    tool_name: str
    category: str  # READ | CREATE | UPDATE
    is_destructive: bool = False
    description: Optional[str] = None

    @property
    def read_only(self) -> bool:
        return self.category == "READ"

    @property
    def idempotent(self) -> bool:
        # Repeating a create makes a second record.
        return self.category != "CREATE"


TOOL_REGISTRY: dict[str, ToolMeta] = {
    meta.tool_name: meta
    for meta in (
        ToolMeta("Sign_in_to_Dataverse", "READ", description="Interactive browser sign-in"),
        ToolMeta("Sign_out_from_Dataverse", "READ", description="Clear cached auth tokens"),
        ToolMeta("Get_my_identity", "READ", description="Return current user identity (WhoAmI)"),
        ToolMeta("List_tables", "READ", description="List all Dataverse tables"),
        ToolMeta("List_table_columns", "READ", description="Column metadata of one table"),
        ToolMeta("Refresh_metadata_cache", "READ", description="Drop cached table metadata"),
        ToolMeta("List_forms", "READ", description="Forms of a table"),
        ToolMeta("Get_form_definition", "READ", description="FormXML of a form"),
        ToolMeta("Validate_form_xml", "READ", description="Schema validation of FormXML"),
        ToolMeta("Audit_form_grid", "READ", description="Section grid audit of FormXML"),
        ToolMeta(
            "Update_form_xml", "UPDATE", is_destructive=True,
            description="Replace the FormXML of a form and publish",
        ),
        ToolMeta("List_views", "READ", description="System views of a table"),
        ToolMeta("Get_view_definition", "READ", description="Layout and fetch XML of a view"),
        ToolMeta("Create_view", "CREATE", description="Create a public view and publish"),
        ToolMeta("Rename_view", "UPDATE", description="Rename a view and publish"),
        ToolMeta(
            "Update_view_definition", "UPDATE", is_destructive=True,
            description="Replace the layout/fetch XML of a view and publish",
        ),
    )
}
