"""Tests for formxml.grid: section grid layout checks."""

from formxml import audit_form_grid
from formxml.diagnostics import ValidationLevel
from formxml.grid import CellPlacement, place_cells
from lxml import etree
from samples import cell, form, row, section, section_form, tab


def _messages(result, level=None):
    return [d.message for d in result if level is None or d.level is level]


def test_section_without_rows():
    xml_text = form(tab("general", section("Empty", with_rows_element=False)))
    result = audit_form_grid(xml_text)
    assert len(result) == 1
    assert result[0].level is ValidationLevel.WARNING
    assert result[0].message == "Section 'Empty' has no rows defined."


def test_rows_without_cells():
    result = audit_form_grid(section_form(row(), row()))
    assert _messages(result) == [
        "Row 1 in section 'TestSection' has no cells defined.",
        "Row 2 in section 'TestSection' has no cells defined.",
    ]
    assert result.is_valid


def test_simple_two_by_two_grid():
    result = audit_form_grid(section_form(row(cell("a"), cell("b")), row(cell("c"), cell("d"))))
    assert len(result) == 0


def test_colspan_fills_row():
    result = audit_form_grid(section_form(row(cell("a", colspan=2)), row(cell("b"), cell("c"))))
    assert len(result) == 0


def test_inconsistent_row_widths():
    result = audit_form_grid(section_form(row(cell("a", colspan=2)), row(cell("b"), cell("c"), cell("d"))))
    assert result.is_valid
    assert _messages(result) == [
        "Section 'TestSection' has incomplete grid coverage. Missing cells at positions: (1,3)."
    ]


def test_rowspan_is_honoured():
    result = audit_form_grid(section_form(row(cell("a", rowspan=2), cell("b")), row(cell("c"))))
    assert len(result) == 0


def test_rowspan_pushes_next_row_cells_right():
    result = audit_form_grid(section_form(row(cell("a", rowspan=2)), row(cell("b"))))
    assert _messages(result) == [
        "Section 'TestSection' has incomplete grid coverage. Missing cells at positions: (1,2)."
    ]


def test_overlap_is_an_error():
    xml_text = section_form(
        row(cell("a"), cell("b", rowspan=2)),
        row(cell("c", colspan=2)),
    )
    result = audit_form_grid(xml_text)
    assert not result.is_valid
    assert _messages(result, ValidationLevel.ERROR) == [
        "Cell overlap detected at row 2, column 2 in section 'TestSection'."
    ]


def test_rows_implied_by_rowspan_not_covered():
    result = audit_form_grid(section_form(row(cell("a", rowspan=3), cell("b"))))
    messages = _messages(result)
    assert (
        "Section 'TestSection' has incomplete grid coverage. "
        "Missing cells at positions: (2,2), (3,2)."
    ) in messages
    assert "Row 2 in section 'TestSection' is not fully covered by cells." in messages
    assert "Row 3 in section 'TestSection' is not fully covered by cells." in messages
    assert result.is_valid


def test_malformed_span_counts_as_one():
    result = audit_form_grid(section_form(row(cell("a", colspan="abc"), cell("b")), row(cell("c"), cell("d"))))
    assert len(result) == 0


def test_every_section_is_audited():
    xml_text = form(
        tab("first", section("One", row(cell("a")))),
        tab("second", section("Two", with_rows_element=False), section("Three", row())),
    )
    messages = _messages(audit_form_grid(xml_text))
    assert messages == [
        "Section 'Two' has no rows defined.",
        "Row 1 in section 'Three' has no cells defined.",
    ]


def test_section_name_falls_back_to_id():
    xml_text = (
        '<form><tabs><tab><columns><column><sections><section id="{s1}"/>'
        "</sections></column></columns></tab></tabs></form>"
    )
    assert _messages(audit_form_grid(xml_text)) == ["Section '{s1}' has no rows defined."]


def test_malformed_document():
    result = audit_form_grid("<form><tabs>")
    assert not result.is_valid
    assert all(d.message.startswith("XML Parsing Error") for d in result)


def test_empty_document():
    result = audit_form_grid("")
    assert _messages(result) == ["Form XML is empty or null"]


def test_place_cells():
    rows = etree.fromstring(
        '<rows><row><cell colspan="2"/><cell/></row><row/><row><cell rowspan="2"/></row></rows>'
    ).findall("row")
    placements, empty_rows = place_cells(rows)
    assert placements == [
        CellPlacement(0, 0, 2, 1),
        CellPlacement(0, 2, 1, 1),
        CellPlacement(2, 0, 1, 2),
    ]
    assert empty_rows == [2]


def test_cell_placement_covers():
    placement = CellPlacement(row=1, column=1, column_span=2, row_span=2)
    assert placement.covers(1, 1)
    assert placement.covers(2, 2)
    assert not placement.covers(3, 1)
    assert not placement.covers(1, 0)


def test_huge_rowspan_is_out_of_bounds():
    result = audit_form_grid(section_form(row(cell("a", colspan=4, rowspan=30000000))))
    assert _messages(result, ValidationLevel.ERROR) == [
        "Cell at row 1, column 1 in section 'TestSection' extends beyond grid boundaries "
        "(spans 30000000x4)."
    ]
    assert not result.is_valid


def test_huge_colspan_does_not_stall_placement():
    result = audit_form_grid(section_form(
        row(cell("a", colspan=2147483647, rowspan=2), cell("b")),
        row(cell("c")),
    ))
    assert _messages(result, ValidationLevel.ERROR) == [
        "Cell at row 1, column 1 in section 'TestSection' extends beyond grid boundaries "
        "(spans 2x2147483647).",
        "Cell at row 1, column 2147483648 in section 'TestSection' extends beyond grid boundaries "
        "(spans 1x1).",
        "Cell at row 2, column 2147483648 in section 'TestSection' extends beyond grid boundaries "
        "(spans 1x1).",
    ]


def test_in_bounds_cells_still_audited_next_to_oversized_one():
    result = audit_form_grid(section_form(
        row(cell("a"), cell("b")),
        row(cell("c", rowspan=1000)),
    ))
    messages = _messages(result)
    assert (
        "Cell at row 2, column 1 in section 'TestSection' extends beyond grid boundaries "
        "(spans 1000x1)."
    ) in messages
    assert (
        "Section 'TestSection' has incomplete grid coverage. "
        "Missing cells at positions: (2,1), (2,2)."
    ) in messages
