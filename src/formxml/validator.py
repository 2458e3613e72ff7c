"""
Structural validation of FormXML (and view LayoutXML / FetchXML) documents.

Invalid documents are the normal case here, so validate() never raises for
them: every problem becomes a ValidationDiagnostic in the returned
ValidationResult. Only a broken schema set (SchemaLoadError) or a caller
passing something other than a string escapes as an exception.
"""

import logging
from typing import Optional

from lxml import etree

from formxml.diagnostics import ValidationDiagnostic, ValidationLevel, ValidationResult
from formxml.schema_set import SchemaSet, SchemaSetLoader

logger = logging.getLogger(__name__)

PARSE_ERROR_PREFIX = "XML Parsing Error"


def _new_parser() -> etree.XMLParser:
    # XMLParser instances are not thread-safe; one per call. The text is always
    # handed over as UTF-8, whatever its XML declaration says.
    return etree.XMLParser(
        encoding="utf-8", resolve_entities=False, no_network=True, load_dtd=False
    )


def parse_document(xml_text: Optional[str], label: str = "Form XML"):
    """Parse *xml_text* into an lxml root element.

    Returns ``(root, None)`` on success or ``(None, result)`` where *result*
    holds the Error diagnostics for empty or malformed input.
    """
    if xml_text is None or (isinstance(xml_text, str) and not xml_text.strip()):
        return None, ValidationResult([ValidationDiagnostic.error(f"{label} is empty or null")])
    if not isinstance(xml_text, str):
        raise TypeError(f"xml_text must be a string, not {type(xml_text).__name__}")

    try:
        data = xml_text.encode("utf-8")
    except UnicodeEncodeError as e:
        return None, ValidationResult([
            ValidationDiagnostic.error(
                f"{PARSE_ERROR_PREFIX}: {e.reason} at character {e.start + 1}"
            )
        ])

    try:
        root = etree.fromstring(data, _new_parser())
    except etree.XMLSyntaxError as e:
        return None, ValidationResult(_parse_diagnostics(e))
    return root, None


def _parse_diagnostics(exc: etree.XMLSyntaxError) -> list[ValidationDiagnostic]:
    entries = exc.error_log.filter_from_errors()
    if not entries:
        line, column = exc.position if exc.position else (None, None)
        return [ValidationDiagnostic.error(f"{PARSE_ERROR_PREFIX}: {exc.msg}", line=line, column=column)]
    return [
        ValidationDiagnostic.error(
            f"{PARSE_ERROR_PREFIX}: {entry.message}", line=entry.line, column=entry.column
        )
        for entry in entries
    ]


def _level_for(entry) -> ValidationLevel:
    if entry.level == etree.ErrorLevels.WARNING:
        return ValidationLevel.WARNING
    return ValidationLevel.ERROR


class FormXmlValidator:
    """Validates XML text against the composed schema set.

    ``root_element`` is the element the document must start with: ``form``
    for form definitions, ``grid`` for view layouts and ``fetch`` for view
    queries. The schema set is built when the validator is created, so a
    broken resource fails construction with SchemaLoadError.
    """

    def __init__(
        self,
        loader: Optional[SchemaSetLoader] = None,
        root_element: str = "form",
        label: str = "Form XML",
    ):
        self.loader = loader or SchemaSetLoader()
        self.root_element = root_element
        self.label = label
        self._schema_set: SchemaSet = self.loader.get_schema_set()

    def validate(self, xml_text: Optional[str]) -> ValidationResult:
        root, failure = parse_document(xml_text, self.label)
        if failure is not None:
            logger.debug("%s rejected before schema validation (%d issue(s))", self.label, len(failure))
            return failure

        if root.tag != self.root_element:
            return ValidationResult([
                ValidationDiagnostic.error(
                    f"Root element missing or unexpected: expected <{self.root_element}>, found <{root.tag}>",
                    line=root.sourceline,
                )
            ])

        entries = self._schema_set.validate(root.getroottree())
        result = ValidationResult(
            ValidationDiagnostic.create(
                _level_for(entry),
                entry.message,
                line=entry.line,
                column=entry.column,
                path=entry.path,
            )
            for entry in entries
        )
        if result:
            logger.warning(
                "%s validation found %d error(s), %d warning(s)",
                self.label,
                len(result.errors),
                len(result.warnings),
            )
        for diagnostic in result:
            logger.debug("Validation %s: %s", diagnostic.level.value, diagnostic.message)
        return result
