"""
Constraint specification parser for shadow-test assembly.

Each row of the constraint sheet describes one linear constraint of the
shadow-test MIP: a calculated attribute (e.g. item count, sum of a numeric
attribute) whose total over the qualifying items or passages must lie in
``[CalLB, CalUB]``. Qualifying entities are described by filter predicates
packed into three text columns:

    FilterAttr   "Content|Format"        attributes, separated by "|"
    FilterLogic  "Bounds|Set"            one logic token per attribute
    FilterData   "0|10#MC|TF"            one dataset per attribute, separated
                                         by "#"; elements separated by "|"

``Bounds`` (matched case-insensitively) restricts a numeric attribute to a
closed interval given by exactly two numbers. ``Set`` (matched exactly)
restricts a categorical attribute to the listed values.

The three lists are consumed pairwise by position and must have the same
length. A mismatch is a parse error; the lists are never truncated.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Set, Tuple

from shadowtest.core.assembly.content_table import ContentTable
from shadowtest.core.assembly.errors import (
    ColumnNotFound,
    DuplicateFilterAttribute,
    FilterArityMismatch,
    NumericFieldError,
    UnknownFilterLogic,
)

logger = logging.getLogger(__name__)

# Textual marker for an open bound on CalLB/CalUB (exact case).
UNBOUNDED_MARKER = "Null"

# Finite surrogate for an open bound.
BIG_NUMBER = 1_000_000.0

DATA_SET_DELIMITER = "#"
DATA_ELEMENT_DELIMITER = "|"

BOUNDS_FILTER = "Bounds"
SET_FILTER = "Set"


@dataclass(frozen=True)
class ConstraintColumns:
    """Header names of the constraint sheet.

    The defaults match the standard sheet; pass a custom instance when a
    sheet uses different headings.
    """

    id: str = "Id"
    description: str = "Description"
    type: str = "Type"
    level: str = "Level"
    cal_attr: str = "CalAttr"
    cal_lb: str = "CalLB"
    cal_ub: str = "CalUB"
    filter_attr: str = "FilterAttr"
    filter_logic: str = "FilterLogic"
    filter_data: str = "FilterData"
    is_loaded: str = "IsLoaded"

    def required(self) -> Tuple[str, ...]:
        """Columns that parse_constraint reads (IsLoaded is table-level only)."""
        return (
            self.id,
            self.description,
            self.type,
            self.level,
            self.cal_attr,
            self.cal_lb,
            self.cal_ub,
            self.filter_attr,
            self.filter_logic,
            self.filter_data,
        )


DEFAULT_CONSTRAINT_COLUMNS = ConstraintColumns()


@dataclass
class Constraint:
    """One shadow-test constraint.

    Everything except ``activity`` is fixed at parse time. ``activity`` is
    set by apply_constraint_activities on a per-examinee copy and reports
    how binding the constraint was.
    """

    id: str
    description: str
    type: str
    level: str
    cal_attr: str
    cal_lb: float
    cal_ub: float
    filter_bounds: Dict[str, List[float]] = field(default_factory=dict)
    filter_sets: Dict[str, Set[str]] = field(default_factory=dict)
    row_index: int = 0
    activity: float = 0.0

    @property
    def applies_to_passages(self) -> bool:
        return self.level.strip().lower() == "passage"

    @property
    def filter_attributes(self) -> List[str]:
        """All filtered attribute names (bounds first, then sets)."""
        return list(self.filter_bounds) + list(self.filter_sets)


def _split(text: str, delimiter: str) -> List[str]:
    """Split on a literal delimiter.

    An empty field yields no pieces and trailing empty pieces are dropped,
    so "A|B|" reads as two entries.
    """
    if text == "":
        return []
    pieces = text.split(delimiter)
    while pieces and pieces[-1] == "":
        pieces.pop()
    return pieces


def _parse_number(text: str, column: str, row_index: int) -> float:
    try:
        return float(text)
    except (TypeError, ValueError) as e:
        raise NumericFieldError(
            f"Column '{column}' holds non-numeric value {text!r}",
            original_error=e,
            context={"row": row_index},
        ) from e


def parse_bound(text: str, column: str, row_index: int, lower: bool) -> float:
    """
    Parse a CalLB/CalUB cell.

    ``Null`` maps to ``-BIG_NUMBER`` for a lower bound and ``+BIG_NUMBER``
    for an upper bound.
    """
    if text == UNBOUNDED_MARKER:
        return -BIG_NUMBER if lower else BIG_NUMBER
    return _parse_number(text, column, row_index)


def parse_filters(
    filter_attr: str,
    filter_logic: str,
    filter_data: str,
    row_index: int = 0,
) -> Tuple[Dict[str, List[float]], Dict[str, Set[str]]]:
    """
    Decode the three filter columns of a constraint row.

    Args:
        filter_attr: "|"-separated attribute names.
        filter_logic: "|"-separated logic tokens, one per attribute.
        filter_data: "#"-separated datasets, one per attribute.
        row_index: Row position, used in error context only.

    Returns:
        Tuple of (bounds filters, set filters).

    Raises:
        FilterArityMismatch: If the three lists differ in length, or a
            Bounds dataset does not hold exactly two elements.
        NumericFieldError: If a Bounds element is not a number.
        UnknownFilterLogic: If a logic token is neither Bounds nor Set.
        DuplicateFilterAttribute: If an attribute is filtered twice.
    """
    attrs = _split(filter_attr, DATA_ELEMENT_DELIMITER)
    logics = _split(filter_logic, DATA_ELEMENT_DELIMITER)
    datasets = _split(filter_data, DATA_SET_DELIMITER)

    if not (len(attrs) == len(logics) == len(datasets)):
        raise FilterArityMismatch(
            f"FilterAttr has {len(attrs)} entries, FilterLogic {len(logics)} "
            f"and FilterData {len(datasets)}; they must be equal",
            context={"row": row_index},
        )

    bounds: Dict[str, List[float]] = {}
    sets: Dict[str, Set[str]] = {}

    for attr, logic, dataset in zip(attrs, logics, datasets):
        if attr in bounds or attr in sets:
            raise DuplicateFilterAttribute(
                f"Attribute '{attr}' is filtered more than once",
                context={"row": row_index},
            )

        elements = _split(dataset, DATA_ELEMENT_DELIMITER)
        if logic.lower() == BOUNDS_FILTER.lower():
            if len(elements) != 2:
                raise FilterArityMismatch(
                    f"Bounds filter on '{attr}' needs exactly 2 elements, "
                    f"got {len(elements)}",
                    context={"row": row_index, "data": dataset},
                )
            bounds[attr] = [
                _parse_number(element, f"FilterData[{attr}]", row_index)
                for element in elements
            ]
        elif logic == SET_FILTER:
            sets[attr] = set(elements)
        else:
            raise UnknownFilterLogic(
                f"Unknown filter logic {logic!r} for attribute '{attr}'; "
                f"expected '{BOUNDS_FILTER}' or '{SET_FILTER}'",
                context={"row": row_index},
            )

    return bounds, sets


def parse_constraint(
    column_names: Sequence[str],
    row_values: Sequence[str],
    row_index: int,
    columns: ConstraintColumns = DEFAULT_CONSTRAINT_COLUMNS,
) -> Constraint:
    """
    Parse one constraint row.

    Every required column is located by name before any value is read, so a
    missing heading is reported as such rather than as a bad value.

    Args:
        column_names: Header of the constraint sheet.
        row_values: Raw text values of the row, aligned with the header.
        row_index: Handle the optimizer uses to address this constraint.
        columns: Header names to look up.

    Returns:
        A fully populated Constraint with ``activity == 0.0``.

    Raises:
        ValueError: If ``row_values`` is not as wide as the header.
        ColumnNotFound: If a required column is missing.
        NumericFieldError, FilterArityMismatch, UnknownFilterLogic,
        DuplicateFilterAttribute: See parse_bound and parse_filters.
    """
    if len(row_values) != len(column_names):
        raise ValueError(
            f"Constraint row {row_index} has {len(row_values)} values but the "
            f"header has {len(column_names)} columns"
        )

    header = list(column_names)
    missing = [name for name in columns.required() if name not in header]
    if missing:
        raise ColumnNotFound(
            f"Constraint sheet is missing column(s): {', '.join(missing)}",
            context={"available": header},
        )

    def value(name: str) -> str:
        return row_values[header.index(name)]

    bounds, sets = parse_filters(
        value(columns.filter_attr),
        value(columns.filter_logic),
        value(columns.filter_data),
        row_index=row_index,
    )

    return Constraint(
        id=value(columns.id),
        description=value(columns.description),
        type=value(columns.type),
        level=value(columns.level),
        cal_attr=value(columns.cal_attr),
        cal_lb=parse_bound(value(columns.cal_lb), columns.cal_lb, row_index, lower=True),
        cal_ub=parse_bound(value(columns.cal_ub), columns.cal_ub, row_index, lower=False),
        filter_bounds=bounds,
        filter_sets=sets,
        row_index=row_index,
    )


def parse_constraint_table(
    table: ContentTable,
    columns: ConstraintColumns = DEFAULT_CONSTRAINT_COLUMNS,
) -> List[Constraint]:
    """
    Parse every loaded row of a constraint sheet.

    Rows whose IsLoaded value is not (case-insensitively) "true" are skipped.
    Loaded constraints are numbered densely from 0 in sheet order; that
    number is the row index the optimizer uses.

    Raises:
        ColumnNotFound: If the sheet has no IsLoaded column, or lacks any
            column parse_constraint requires.
    """
    if table.is_empty():
        return []

    loaded_index = table.column_index(columns.is_loaded)
    constraints: List[Constraint] = []
    skipped = 0
    for row in table.rows:
        if row[loaded_index].strip().lower() != "true":
            skipped += 1
            continue
        constraints.append(
            parse_constraint(table.column_names, row, len(constraints), columns)
        )

    logger.debug(
        f"Parsed {len(constraints)} constraint(s), skipped {skipped} not loaded"
    )
    return constraints


def _format_number(value: float) -> str:
    # repr() round-trips exactly through float()
    return repr(float(value))


def encode_filters(
    bounds: Mapping[str, Sequence[float]],
    sets: Mapping[str, Set[str]],
) -> Tuple[str, str, str]:
    """
    Render filter mappings as (FilterAttr, FilterLogic, FilterData) text.

    Parsing the result with parse_filters returns mappings equal to the
    input. Set elements are written in sorted order.

    Raises:
        ValueError: If an attribute appears in both mappings, a bounds entry
            is not a pair, or a name/element is empty or contains a
            delimiter.
    """
    overlap = set(bounds) & set(sets)
    if overlap:
        raise ValueError(
            f"Attribute(s) {sorted(overlap)} cannot be both bounds- and set-filtered"
        )

    def check_token(token: str, what: str) -> None:
        if token == "":
            raise ValueError(f"Empty {what} cannot be encoded")
        if DATA_ELEMENT_DELIMITER in token or DATA_SET_DELIMITER in token:
            raise ValueError(f"{what.capitalize()} {token!r} contains a delimiter")

    attrs: List[str] = []
    logics: List[str] = []
    datasets: List[str] = []

    for attr, pair in bounds.items():
        check_token(attr, "attribute name")
        if len(pair) != 2:
            raise ValueError(f"Bounds for '{attr}' must be a [lower, upper] pair")
        attrs.append(attr)
        logics.append(BOUNDS_FILTER)
        datasets.append(DATA_ELEMENT_DELIMITER.join(_format_number(v) for v in pair))

    for attr, values in sets.items():
        check_token(attr, "attribute name")
        if not values:
            raise ValueError(f"Set filter for '{attr}' is empty")
        for element in values:
            check_token(element, "set element")
        attrs.append(attr)
        logics.append(SET_FILTER)
        datasets.append(DATA_ELEMENT_DELIMITER.join(sorted(values)))

    return (
        DATA_ELEMENT_DELIMITER.join(attrs),
        DATA_ELEMENT_DELIMITER.join(logics),
        DATA_SET_DELIMITER.join(datasets),
    )
