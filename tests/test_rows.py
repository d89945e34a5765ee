import pytest

from lazada_autoproc.rows import MIN_CELLS, extract_row, find_control, pin_row, release_row, resolve_control
from lazada_autoproc.scanner import TABLE_BODY, TABLE_ROW
from lazada_autoproc.utils import parse_leading_int

from tests.fakes import FakeElement, find, make_page, make_row


def test_extract_row_reads_fixed_columns():
    row = make_row("LZ123", "Customer refuses delivery", "1")
    record = extract_row(row)

    assert record is not None
    assert record.identity == "LZ123"
    assert record.reason == "Customer refuses delivery"
    assert record.attempts == 1
    assert record.source is row
    assert record.actionable


def test_extract_row_skips_rows_with_too_few_cells():
    for cells in (0, 1, 7, MIN_CELLS - 1):
        assert extract_row(make_row("LZ1", "Customer refuses delivery", "3", cells=cells)) is None


def test_extract_row_accepts_extra_cells_and_uses_last_cell_for_controls():
    record = extract_row(make_row("LZ9", cells=14, buttons=("Edit",)))
    assert record is not None
    assert record.action_control.element_handle().name == "LZ9:Edit"


def test_non_numeric_attempts_parse_as_zero():
    assert extract_row(make_row("LZ1", attempts="n/a")).attempts == 0
    assert extract_row(make_row("LZ1", attempts="")).attempts == 0
    assert extract_row(make_row("LZ1", attempts="2 attempts")).attempts == 2


def test_edit_control_found_by_label_not_position():
    record = extract_row(make_row("LZ1", buttons=("Print", "Edit Reason", "History")))
    assert record.action_control.element_handle().name == "LZ1:Edit Reason"


def test_missing_edit_control_leaves_record_not_actionable():
    record = extract_row(make_row("LZ1", buttons=("View", "History")))
    assert record is not None
    assert record.action_control is None
    assert not record.actionable

    assert extract_row(make_row("LZ2", buttons=())).action_control is None


def test_resolve_control_last_match_wins():
    a, b, c = FakeElement("Edit"), FakeElement("Delete"), FakeElement("Edit")
    assert resolve_control([a, b, c], lambda label: "Edit" in label) is c
    assert resolve_control([], lambda label: True) is None


def test_parse_leading_int():
    assert parse_leading_int(" 3 ") == 3
    assert parse_leading_int("12abc") == 12
    assert parse_leading_int("abc 3") == 0
    assert parse_leading_int("-1") == 0
    assert parse_leading_int(None) == 0


def test_find_control_returns_last_matching_index():
    assert find_control([" Edit ", "View", "Edit Reason"], lambda label: "Edit" in label) == 2
    assert find_control(["View", None], lambda label: "Edit" in label) is None


def _positional_row(page, index=0):
    return page.locator(TABLE_BODY).first.locator(TABLE_ROW).all()[index]


def test_extraction_locators_follow_row_position():
    page = make_page([make_row("A", "Customer refuses delivery")])
    record = extract_row(_positional_row(page))

    page.children[TABLE_BODY][0].children[TABLE_ROW].insert(0, make_row("Z"))

    # The positional control now points at the inserted row
    assert record.action_control.element_handle().name == "Z:Edit"


def test_pin_row_binds_handles_to_the_extracted_row():
    page = make_page([make_row("A", "Customer refuses delivery"), make_row("B")])
    record = extract_row(_positional_row(page))

    pinned = pin_row(record)

    assert pinned.identity == "A"
    assert pinned.source is find(page, "A")
    assert pinned.action_control is find(page, "A:Edit")

    page.children[TABLE_BODY][0].children[TABLE_ROW].insert(0, make_row("Z"))
    assert pinned.action_control is find(page, "A:Edit")

    release_row(pinned)
    assert find(page, "A").disposed
    assert find(page, "A:Edit").disposed


def test_pin_row_refuses_a_shifted_row():
    page = make_page([make_row("A", "Customer refuses delivery")])
    record = extract_row(_positional_row(page))

    page.children[TABLE_BODY][0].children[TABLE_ROW].insert(0, make_row("Z"))

    assert pin_row(record) is None
    assert find(page, "Z").disposed


def test_pin_row_requires_edit_control_still_present():
    page = make_page([make_row("A", "Customer refuses delivery")])
    record = extract_row(_positional_row(page))

    find(page, "A:Edit").text = "Saving..."

    assert pin_row(record) is None


def test_unreadable_row_raises_from_extraction():
    row = make_row("GONE", "Customer refuses delivery")
    find(row, "GONE:td").read_error = RuntimeError("Element is not attached to the DOM")

    with pytest.raises(RuntimeError):
        extract_row(row)
