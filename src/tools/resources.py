"""
MCP resources (schema documents) and prompts.
"""

import formxml
from formxml.schema_set import FILTER_SCHEMA, LAYOUT_SCHEMA

SERVER_INSTRUCTIONS = """
You are connected to a Microsoft Dataverse environment and can read and change
the forms and views of its tables.

AUTHENTICATION:
- Call tools directly. If one reports missing authentication, call
  `Sign_in_to_Dataverse`, show the returned URL to the user and wait until
  they confirm. Then call `Get_my_identity` and greet the user by FullName.
- `Sign_out_from_Dataverse` clears the session (e.g. to switch accounts).

FINDING THINGS:
- `List_tables` gives table LogicalNames and ObjectTypeCodes.
- `List_table_columns` gives column LogicalNames. Never guess column names.
- `List_forms` / `List_views` give the form and view IDs of a table.

CHANGING A FORM:
1. `Get_form_definition` to read the current FormXML.
2. Edit the XML. Keep every existing id attribute; new cells and controls need
   a new unique id ({GUID} format for cells).
3. `Validate_form_xml` and `Audit_form_grid` until no errors remain.
4. `Update_form_xml` saves and publishes. It refuses invalid FormXML.

CHANGING A VIEW:
- `Get_view_definition` returns the Layout XML (<grid>) and Fetch XML (<fetch>).
- A column shown in the layout must also be an <attribute> in the fetch.
- `Create_view`, `Rename_view` and `Update_view_definition` validate, save and publish.

The schemas are available as resources: schema://formxml, schema://layoutxml,
schema://filterxml. Pass skip_validation=true only when the user explicitly asks.
""".strip()

CLEAN_FORM_PROMPT = """
Clean up the main form of the Dataverse table '{table}'.

Newly created custom tables get a generated main form that needs tidying:
1. Call `Get_form_definition` for table '{table}' to read the main form.
2. Remove the empty sections and tabs that carry no controls, except the first tab.
3. Give the remaining tabs and sections meaningful labels.
4. Make sure the primary name column and the owner are on the first tab.
5. Call `Audit_form_grid` and fix every overlap and missing cell it reports.
6. Call `Validate_form_xml` until the FormXML is valid.
7. Show the user a summary of the changes and, once they agree, call `Update_form_xml`.
""".strip()


def resource_formxml_schema() -> str:
    """All schemas of the FormXML schema set, pretty printed, one block per schema."""
    return formxml.default_loader.export_schema_text()


def resource_layoutxml_schema() -> str:
    """XSD of view Layout XML (savedquery.layoutxml)."""
    return formxml.default_loader.read_schema_resource(LAYOUT_SCHEMA)


def resource_filterxml_schema() -> str:
    """XSD of view Fetch XML (savedquery.fetchxml)."""
    return formxml.default_loader.read_schema_resource(FILTER_SCHEMA)


def prompt_instructions() -> str:
    return SERVER_INSTRUCTIONS


def prompt_clean_form(table: str) -> str:
    return CLEAN_FORM_PROMPT.replace("{table}", table)
