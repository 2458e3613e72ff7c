"""
FormXML schema validation and form grid geometry.

The module-level validators share one SchemaSetLoader, so the bundled schema
set is compiled once per process.
"""

from formxml.diagnostics import ValidationDiagnostic, ValidationLevel, ValidationResult
from formxml.errors import FormXmlError, SchemaLoadError
from formxml.geometry import resolve_column_span, resolve_row_span
from formxml.grid import audit_form_grid
from formxml.schema_set import SchemaSet, SchemaSetLoader
from formxml.validator import FormXmlValidator

default_loader = SchemaSetLoader()

form_validator = FormXmlValidator(default_loader, root_element="form", label="Form XML")
layout_validator = FormXmlValidator(default_loader, root_element="grid", label="Layout XML")
fetch_validator = FormXmlValidator(default_loader, root_element="fetch", label="Fetch XML")

__all__ = [
    "FormXmlError",
    "FormXmlValidator",
    "SchemaLoadError",
    "SchemaSet",
    "SchemaSetLoader",
    "ValidationDiagnostic",
    "ValidationLevel",
    "ValidationResult",
    "audit_form_grid",
    "default_loader",
    "fetch_validator",
    "form_validator",
    "layout_validator",
    "resolve_column_span",
    "resolve_row_span",
]
