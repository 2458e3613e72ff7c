"""
Input validators for form and view tool parameters.

Sanity checks for GUIDs, logical names and option arguments before they
reach the API. Every validator returns the normalized value or raises
ValueError with a message meant for the agent.
"""

import re
from typing import Optional

from model import FormType

_GUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

_LOGICAL_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

_LOGICAL_NAME_MAX_LENGTH = 256


def validate_guid(value: str) -> str:
    """Validate that *value* is a well-formed UUID, optionally wrapped in braces.

    Returns the bare lowercase GUID, raises ValueError otherwise.
    """
    candidate = (value or "").strip()
    if candidate.startswith("{") and candidate.endswith("}"):
        candidate = candidate[1:-1]
    if not _GUID_RE.match(candidate):
        raise ValueError(
            f"Invalid GUID format: '{value}'. "
            "Expected format: xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx"
        )
    return candidate.lower()


def validate_logical_name(value: str, what: str = "Table name") -> str:
    """Validate a Dataverse logical name (letters, digits, underscores; max 256).

    Logical names are lowercase in Dataverse, so the value is lowercased.
    """
    if not value or not value.strip():
        raise ValueError(f"{what} must not be empty.")
    value = value.strip()
    if len(value) > _LOGICAL_NAME_MAX_LENGTH:
        raise ValueError(
            f"{what} too long ({len(value)} chars, max {_LOGICAL_NAME_MAX_LENGTH})."
        )
    if not _LOGICAL_NAME_RE.match(value):
        raise ValueError(
            f"Invalid {what.lower()}: '{value}'. "
            "Use the logical name: letters, digits and underscores, starting with a letter."
        )
    return value.lower()


def validate_form_type(value: Optional[str]) -> Optional[FormType]:
    """Parse an optional form type name ("Main", "QuickCreate") or number."""
    if value is None or not str(value).strip():
        return None
    try:
        return FormType.parse(str(value))
    except (KeyError, ValueError):
        allowed = ", ".join(t.label for t in FormType)
        raise ValueError(f"Unknown form type '{value}'. Allowed: {allowed}.") from None


def validate_output_format(value: str, allowed: tuple[str, ...] = ("formatted", "json")) -> str:
    fmt = (value or "").strip().lower()
    if fmt not in allowed:
        raise ValueError(
            f"Unsupported output format '{value}'. Use one of: {', '.join(allowed)}."
        )
    return fmt


def validate_required_text(value: Optional[str], what: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{what} must not be empty.")
    return value.strip()
