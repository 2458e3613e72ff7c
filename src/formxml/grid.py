"""
Section grid audit for FormXML.

Each form section is a grid: rows of cells where a cell may cover several
columns (colspan) and several rows (rowspan). The audit lays the cells out the
way the form renderer does and reports overlaps (Error), uncovered positions
and empty rows or sections (Warning).

Spans come straight from the document, so the grid is bounded: a cell may
reach at most MAX_ROW_OVERHANG rows past the last ``<row>`` and at most
MAX_SECTION_COLUMNS columns. Cells beyond that are reported as Errors and left
out of the coverage checks.
"""

from dataclasses import dataclass
from typing import Optional

from formxml.diagnostics import ValidationDiagnostic, ValidationResult
from formxml.geometry import cell_spans
from formxml.validator import parse_document

MAX_ROW_OVERHANG = 16
MAX_SECTION_COLUMNS = 64


@dataclass(frozen=True)
class CellPlacement:
    row: int  # zero-based
    column: int
    column_span: int
    row_span: int

    def covers(self, row: int, column: int) -> bool:
        return (
            self.row <= row < self.row + self.row_span
            and self.column <= column < self.column + self.column_span
        )


def _covering(placements: list[CellPlacement], row: int, column: int) -> Optional[CellPlacement]:
    for placement in placements:
        if placement.covers(row, column):
            return placement
    return None


def _section_name(section) -> str:
    return section.get("name") or section.get("id") or ""


def place_cells(rows) -> tuple[list[CellPlacement], list[int]]:
    """Place the cells of *rows* (lxml ``<row>`` elements).

    Returns the placements and the 1-based numbers of rows without cells.
    """
    placements: list[CellPlacement] = []
    empty_rows = []
    for row_index, row in enumerate(rows):
        cells = row.findall("cell")
        if not cells:
            empty_rows.append(row_index + 1)
            continue
        column = 0
        for cell in cells:
            # Skip past cells spanning down from earlier rows.
            blocker = _covering(placements, row_index, column)
            while blocker is not None:
                column = blocker.column + blocker.column_span
                blocker = _covering(placements, row_index, column)
            column_span, row_span = cell_spans(cell)
            placements.append(CellPlacement(row_index, column, column_span, row_span))
            column += column_span
    return placements, empty_rows


def audit_section(section) -> list[ValidationDiagnostic]:
    """Audit one lxml ``<section>`` element."""
    name = _section_name(section)
    rows = section.findall("rows/row")
    if not rows:
        return [ValidationDiagnostic.warning(f"Section '{name}' has no rows defined.")]

    diagnostics = []
    placements, empty_rows = place_cells(rows)
    for number in empty_rows:
        diagnostics.append(
            ValidationDiagnostic.warning(f"Row {number} in section '{name}' has no cells defined.")
        )

    row_limit = len(rows) + MAX_ROW_OVERHANG
    bounded = []
    for p in placements:
        if p.row + p.row_span > row_limit or p.column + p.column_span > MAX_SECTION_COLUMNS:
            diagnostics.append(
                ValidationDiagnostic.error(
                    f"Cell at row {p.row + 1}, column {p.column + 1} in section '{name}' "
                    f"extends beyond grid boundaries (spans {p.row_span}x{p.column_span})."
                )
            )
            continue
        bounded.append(p)

    if bounded:
        height = max(len(rows), max(p.row + p.row_span for p in bounded))
        width = max(p.column + p.column_span for p in bounded)
    else:
        height, width = len(rows), 0

    covered: set[tuple[int, int]] = set()
    for placement in bounded:
        for r in range(placement.row, placement.row + placement.row_span):
            for c in range(placement.column, placement.column + placement.column_span):
                if (r, c) in covered:
                    diagnostics.append(
                        ValidationDiagnostic.error(
                            f"Cell overlap detected at row {r + 1}, column {c + 1} in section '{name}'."
                        )
                    )
                else:
                    covered.add((r, c))

    missing = [
        f"({r + 1},{c + 1})" for r in range(height) for c in range(width) if (r, c) not in covered
    ]
    if missing:
        diagnostics.append(
            ValidationDiagnostic.warning(
                f"Section '{name}' has incomplete grid coverage. "
                f"Missing cells at positions: {', '.join(missing)}."
            )
        )

    starting_rows = {p.row for p in placements}
    for r in range(height):
        if r in starting_rows:
            continue
        if not all((r, c) in covered for c in range(width)):
            diagnostics.append(
                ValidationDiagnostic.warning(
                    f"Row {r + 1} in section '{name}' is not fully covered by cells."
                )
            )
    return diagnostics


def audit_form_grid(xml_text: Optional[str]) -> ValidationResult:
    """Audit the cell grid of every section of a FormXML document."""
    root, failure = parse_document(xml_text)
    if failure is not None:
        return failure

    diagnostics = []
    for section in root.iterfind("tabs/tab/columns/column/sections/section"):
        diagnostics.extend(audit_section(section))
    return ValidationResult(diagnostics)
