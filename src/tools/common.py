"""
Helpers shared by the form and view tools.
"""

import logging
from typing import Optional

import audit
from formatting import format_validation_report
from formxml import FormXmlValidator

logger = logging.getLogger(__name__)


def auth_error_message(tool_name: str) -> str:
    return (
        f"`{tool_name}` failed: not authenticated. "
        "Call `Sign_in_to_Dataverse` to sign in, then retry this tool."
    )


def validation_gate(
    validator: FormXmlValidator,
    xml_text: str,
    target: str,
    *,
    skip_validation: bool = False,
    record_id: Optional[str] = None,
) -> Optional[str]:
    """
    Validate *xml_text* before it is written.

    Returns None when the write may proceed, otherwise the message explaining
    why it was blocked. Only ``skip_validation=True`` (the bool, not any truthy
    value) bypasses the check.
    """
    if skip_validation is True:
        logger.warning("Validation of %s skipped on request (record %s)", target, record_id)
        audit.log_validation(target, errors=0, warnings=0, bypassed=True, record_id=record_id)
        return None

    result = validator.validate(xml_text)
    audit.log_validation(
        target, errors=len(result.errors), warnings=len(result.warnings), record_id=record_id,
    )
    if result.is_valid:
        return None
    return (
        f"Update blocked: the {validator.label} is not valid. Nothing was changed.\n\n"
        + format_validation_report(result, validator.label)
    )
