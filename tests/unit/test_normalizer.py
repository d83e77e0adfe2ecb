from __future__ import annotations

from task_dispatch.services.normalizer import (
    canonical_key,
    cell_text,
    find_column,
    normalize_row,
    normalize_rows,
)


def test_canonical_key():
    assert canonical_key("  FirstName ") == "firstname"


def test_find_column_any_header_variant():
    row = {" PHONE ": "1", "firstname": "Ann"}
    assert find_column(row, "Phone") == "1"
    assert find_column(row, "FirstName") == "Ann"
    assert find_column(row, "Notes") is None


def test_cell_text():
    assert cell_text(None) == ""
    assert cell_text("  hi  ") == "hi"
    assert cell_text(5550100.0) == "5550100"
    assert cell_text(12) == "12"
    assert cell_text(1.5) == "1.5"


def test_normalize_row_trims_every_field():
    record = normalize_row({" firstname": "  Ann ", "PHONE": " 555 0100 ", "Notes": " call "}, 4)
    assert record.first_name == "Ann"
    assert record.phone == "555 0100"
    assert record.notes == "call"
    assert record.original_row == 4


def test_normalize_row_absent_notes_become_empty():
    record = normalize_row({"FirstName": "Ann", "Phone": "1", "Notes": None}, 1)
    assert record.notes == ""


def test_normalize_rows_positions_are_one_based_input_order():
    rows = [{"FirstName": n, "Phone": "1", "Notes": ""} for n in ["A", "B", "C"]]
    records = normalize_rows(rows)
    assert [(r.first_name, r.original_row) for r in records] == [("A", 1), ("B", 2), ("C", 3)]
