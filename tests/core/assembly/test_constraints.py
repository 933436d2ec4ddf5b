"""
Tests for constraint specification parsing.

Tests cover:
- CalLB/CalUB parsing including the "Null" open bound
- Filter decoding: Bounds (case-insensitive) and Set (exact) logic
- Arity checks across FilterAttr/FilterLogic/FilterData
- Missing columns, custom column names
- Table-level parsing: IsLoaded filtering and dense row indices
- encode_filters output parsed back by parse_constraint
"""

import pytest

from shadowtest.core.assembly.constraints import (
    BIG_NUMBER,
    Constraint,
    ConstraintColumns,
    encode_filters,
    parse_bound,
    parse_constraint,
    parse_constraint_table,
    parse_filters,
)
from shadowtest.core.assembly.content_table import ContentTable
from shadowtest.core.assembly.errors import (
    ColumnNotFound,
    DuplicateFilterAttribute,
    FilterArityMismatch,
    NumericFieldError,
    UnknownFilterLogic,
)

HEADER = (
    "Id",
    "Description",
    "Type",
    "Level",
    "CalAttr",
    "CalLB",
    "CalUB",
    "FilterAttr",
    "FilterLogic",
    "FilterData",
)


def _row(cal_lb="1", cal_ub="5", attr="", logic="", data="", level="Item"):
    return ("C1", "desc", "Number", level, "Items", cal_lb, cal_ub, attr, logic, data)


class TestParseBound:
    """Tests for CalLB/CalUB parsing."""

    def test_null_lower_bound(self):
        assert parse_bound("Null", "CalLB", 0, lower=True) == pytest.approx(-1_000_000)

    def test_null_upper_bound(self):
        assert parse_bound("Null", "CalUB", 0, lower=False) == pytest.approx(BIG_NUMBER)

    def test_null_marker_is_case_sensitive(self):
        with pytest.raises(NumericFieldError):
            parse_bound("null", "CalLB", 0, lower=True)

    def test_numeric_bound(self):
        assert parse_bound("2.5", "CalLB", 0, lower=True) == pytest.approx(2.5)

    def test_malformed_bound(self):
        with pytest.raises(NumericFieldError, match="'CalUB' holds non-numeric"):
            parse_bound("five", "CalUB", 4, lower=False)


class TestParseFilters:
    """Tests for parse_filters."""

    def test_bounds_and_set(self):
        bounds, sets = parse_filters("Content|Format", "Bounds|Set", "0|10#MC|TF")
        assert bounds == {"Content": pytest.approx([0.0, 10.0])}
        assert sets == {"Format": {"MC", "TF"}}

    def test_empty_filters(self):
        assert parse_filters("", "", "") == ({}, {})

    def test_bounds_logic_is_case_insensitive(self):
        bounds, sets = parse_filters("Content", "BOUNDS", "1|2")
        assert bounds == {"Content": pytest.approx([1.0, 2.0])}
        assert sets == {}

    def test_set_logic_is_case_sensitive(self):
        with pytest.raises(UnknownFilterLogic, match="'set'"):
            parse_filters("Format", "set", "MC")

    def test_unknown_logic(self):
        with pytest.raises(UnknownFilterLogic, match="Unknown filter logic 'Range'"):
            parse_filters("Content", "Range", "1|2")

    def test_fewer_logic_tokens_than_attributes(self):
        with pytest.raises(FilterArityMismatch, match="FilterAttr has 2 entries"):
            parse_filters("A|B", "Bounds", "1|2")

    def test_more_datasets_than_attributes(self):
        with pytest.raises(FilterArityMismatch):
            parse_filters("A", "Set", "x#y")

    def test_bounds_needs_two_elements(self):
        with pytest.raises(FilterArityMismatch, match="exactly 2 elements, got 3"):
            parse_filters("Content", "Bounds", "1|2|3")

    def test_bounds_element_must_be_numeric(self):
        with pytest.raises(NumericFieldError):
            parse_filters("Content", "Bounds", "low|2")

    def test_trailing_delimiters_are_ignored(self):
        bounds, sets = parse_filters("Format|", "Set|", "MC|TF")
        assert bounds == {}
        assert sets == {"Format": {"MC", "TF"}}

    def test_attribute_filtered_twice(self):
        with pytest.raises(DuplicateFilterAttribute, match="'Content'"):
            parse_filters("Content|Content", "Bounds|Set", "1|2#A")

    def test_attribute_in_one_mapping_only(self):
        bounds, sets = parse_filters("A|B|C", "Set|Bounds|Set", "x#0|1#y|z")
        assert not set(bounds) & set(sets)
        assert set(bounds) | set(sets) == {"A", "B", "C"}

    def test_error_context_has_row(self):
        with pytest.raises(FilterArityMismatch) as exc_info:
            parse_filters("A|B", "Set", "x", row_index=9)
        assert exc_info.value.context["row"] == 9


class TestParseConstraint:
    """Tests for parse_constraint."""

    def test_full_row(self):
        row = _row("Null", "Null", "Content|Format", "Bounds|Set", "0|10#MC|TF")
        constraint = parse_constraint(HEADER, row, 3)

        assert constraint.id == "C1"
        assert constraint.description == "desc"
        assert constraint.type == "Number"
        assert constraint.level == "Item"
        assert constraint.cal_attr == "Items"
        assert constraint.cal_lb == pytest.approx(-1_000_000)
        assert constraint.cal_ub == pytest.approx(1_000_000)
        assert constraint.filter_bounds == {"Content": pytest.approx([0.0, 10.0])}
        assert constraint.filter_sets == {"Format": {"MC", "TF"}}
        assert constraint.row_index == 3
        assert constraint.activity == pytest.approx(0.0)

    def test_column_order_does_not_matter(self):
        header = tuple(reversed(HEADER))
        row = tuple(reversed(_row("2", "3")))
        constraint = parse_constraint(header, row, 0)
        assert constraint.cal_lb == pytest.approx(2.0)
        assert constraint.cal_ub == pytest.approx(3.0)

    def test_missing_columns_are_all_reported(self):
        header = HEADER[:-2]
        with pytest.raises(ColumnNotFound, match="FilterLogic, FilterData"):
            parse_constraint(header, _row()[:-2], 0)

    def test_row_width_must_match_header(self):
        with pytest.raises(ValueError, match="has 3 values"):
            parse_constraint(HEADER, ("C1", "desc", "Number"), 0)

    def test_custom_column_names(self):
        columns = ConstraintColumns(id="Code", cal_lb="Min", cal_ub="Max")
        header = ("Code",) + HEADER[1:5] + ("Min", "Max") + HEADER[7:]
        constraint = parse_constraint(header, _row("0", "7"), 1, columns)
        assert constraint.id == "C1"
        assert constraint.cal_ub == pytest.approx(7.0)

    def test_passage_level(self):
        constraint = parse_constraint(HEADER, _row(level="Passage"), 0)
        assert constraint.applies_to_passages

    def test_filter_attributes(self):
        row = _row(attr="Content|Format", logic="Bounds|Set", data="0|10#MC")
        constraint = parse_constraint(HEADER, row, 0)
        assert constraint.filter_attributes == ["Content", "Format"]


class TestParseConstraintTable:
    """Tests for parse_constraint_table."""

    def test_only_loaded_rows(self, constraint_table):
        constraints = parse_constraint_table(constraint_table)
        assert [c.id for c in constraints] == ["C1", "C2", "C4"]

    def test_row_indices_are_dense(self, constraint_table):
        constraints = parse_constraint_table(constraint_table)
        assert [c.row_index for c in constraints] == [0, 1, 2]

    def test_empty_table(self):
        assert parse_constraint_table(ContentTable.empty()) == []

    def test_header_only_table(self, constraint_table):
        table = ContentTable.from_rows(constraint_table.column_names, [])
        assert parse_constraint_table(table) == []

    def test_missing_is_loaded_column(self):
        table = ContentTable.from_rows(HEADER, [_row()])
        with pytest.raises(ColumnNotFound, match="IsLoaded"):
            parse_constraint_table(table)


class TestEncodeFilters:
    """Tests for encode_filters."""

    def test_encodes_both_kinds(self):
        attr, logic, data = encode_filters({"Content": [0, 10]}, {"Format": {"TF", "MC"}})
        assert attr == "Content|Format"
        assert logic == "Bounds|Set"
        assert data == "0.0|10.0#MC|TF"

    def test_output_parses_back(self):
        bounds = {"Content": [0.1, 10.0], "Difficulty": [-2.5, 2.5]}
        sets = {"Format": {"MC", "TF"}, "Topic": {"Science"}}
        attr, logic, data = encode_filters(bounds, sets)

        constraint = parse_constraint(HEADER, _row(attr=attr, logic=logic, data=data), 0)

        assert constraint.filter_bounds == bounds
        assert constraint.filter_sets == sets

    def test_empty_mappings(self):
        assert encode_filters({}, {}) == ("", "", "")

    def test_attribute_in_both_mappings(self):
        with pytest.raises(ValueError, match="both bounds- and set-filtered"):
            encode_filters({"A": [0, 1]}, {"A": {"x"}})

    def test_bounds_must_be_a_pair(self):
        with pytest.raises(ValueError, match="pair"):
            encode_filters({"A": [0, 1, 2]}, {})

    def test_empty_set(self):
        with pytest.raises(ValueError, match="is empty"):
            encode_filters({}, {"A": set()})

    def test_delimiter_in_element(self):
        with pytest.raises(ValueError, match="contains a delimiter"):
            encode_filters({}, {"A": {"x|y"}})


class TestConstraintActivity:
    """Tests for the mutable activity field."""

    def test_activity_is_writable(self):
        constraint = Constraint("C1", "", "Number", "Item", "Items", 0.0, 1.0)
        constraint.activity = 0.75
        assert constraint.activity == pytest.approx(0.75)
