"""
Decoding of the optimizer's raw result into an immutable outcome.

The status codes below are defined by the external optimizer and must stay
bit-exact:

    2   OPTIMAL      proven optimal solution found
    4   UNFINISHED   stopped before proving optimality (time/node limit);
                     the incumbent may still be usable
    6   INFEASIBLE   no feasible solution under the current constraints
    8   UNBOUNDED    objective unbounded (a modeling defect)
    10  OTHER        any other solver condition

An unrecognised code is an error, never OTHER.
"""

import enum
import numbers
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Tuple

from shadowtest.core.assembly.errors import (
    InconsistentSolverOutput,
    InfeasibleTestConfigError,
    UnknownSolverStatus,
)


class SolverStatus(enum.IntEnum):
    """Closed set of optimizer status codes."""

    OPTIMAL = 2
    UNFINISHED = 4
    INFEASIBLE = 6
    UNBOUNDED = 8
    OTHER = 10

    @property
    def has_solution(self) -> bool:
        """True when the outcome carries a usable selection."""
        return self in (SolverStatus.OPTIMAL, SolverStatus.UNFINISHED)


def decode_status(code: int) -> SolverStatus:
    """
    Map a raw status code to a SolverStatus.

    Raises:
        UnknownSolverStatus: For any value outside {2, 4, 6, 8, 10},
            including booleans and non-integers.
    """
    if isinstance(code, bool) or not isinstance(code, numbers.Integral):
        raise UnknownSolverStatus(f"Solver status code {code!r} is not an integer")

    match int(code):
        case 2:
            return SolverStatus.OPTIMAL
        case 4:
            return SolverStatus.UNFINISHED
        case 6:
            return SolverStatus.INFEASIBLE
        case 8:
            return SolverStatus.UNBOUNDED
        case 10:
            return SolverStatus.OTHER
        case _:
            raise UnknownSolverStatus(f"Solver status code {code} doesn't exist")


@dataclass(frozen=True)
class SolverOutcome:
    """Result of one shadow-test solve.

    ``selected_item_ids[i]`` and ``selected_item_rows[i]`` describe the same
    item; the passage pair is aligned the same way. ``passage_order`` is None
    when the optimizer did not report a passage sequence.
    ``constraint_activities`` maps a constraint row index to how binding that
    constraint was; it is empty when the optimizer reported none.
    """

    selected_item_ids: Tuple[str, ...] = ()
    selected_item_rows: Tuple[int, ...] = ()
    selected_passage_ids: Tuple[str, ...] = ()
    selected_passage_rows: Tuple[int, ...] = ()
    passage_order: Optional[Tuple[int, ...]] = None
    objective: float = 0.0
    status: SolverStatus = SolverStatus.OTHER
    constraint_activities: Dict[int, float] = field(default_factory=dict)

    def check_feasible(self) -> "SolverOutcome":
        """
        Return self, or raise if the optimizer proved infeasibility.

        Raises:
            InfeasibleTestConfigError: If ``status`` is INFEASIBLE.
        """
        if self.status is SolverStatus.INFEASIBLE:
            raise InfeasibleTestConfigError(
                "Shadow test is infeasible under the current constraints",
                context={"objective": self.objective},
            )
        return self


class SolverOutcomeBuilder:
    """Single-use accumulator for a SolverOutcome.

    Each setter replaces its field and returns the builder. Status defaults
    to OTHER only when set_status is never called.
    """

    def __init__(self) -> None:
        self._selected_item_ids: Tuple[str, ...] = ()
        self._selected_item_rows: Tuple[int, ...] = ()
        self._selected_passage_ids: Tuple[str, ...] = ()
        self._selected_passage_rows: Tuple[int, ...] = ()
        self._passage_order: Optional[Tuple[int, ...]] = None
        self._objective = 0.0
        self._status: Optional[SolverStatus] = None
        self._constraint_activities: Dict[int, float] = {}

    def set_selected_item_ids(self, ids: Sequence[str]) -> "SolverOutcomeBuilder":
        self._selected_item_ids = tuple(ids)
        return self

    def set_selected_item_rows(self, rows: Sequence[int]) -> "SolverOutcomeBuilder":
        self._selected_item_rows = tuple(int(r) for r in rows)
        return self

    def set_selected_passage_ids(self, ids: Sequence[str]) -> "SolverOutcomeBuilder":
        self._selected_passage_ids = tuple(ids)
        return self

    def set_selected_passage_rows(
        self, rows: Sequence[int]
    ) -> "SolverOutcomeBuilder":
        self._selected_passage_rows = tuple(int(r) for r in rows)
        return self

    def set_passage_order(self, rows: Sequence[int]) -> "SolverOutcomeBuilder":
        self._passage_order = tuple(int(r) for r in rows)
        return self

    def set_objective(self, objective: float) -> "SolverOutcomeBuilder":
        self._objective = float(objective)
        return self

    def set_status(self, code: int) -> "SolverOutcomeBuilder":
        """Decode and store a raw status code (UnknownSolverStatus if invalid)."""
        self._status = decode_status(code)
        return self

    def set_constraint_activities(
        self, activities: Mapping[int, float]
    ) -> "SolverOutcomeBuilder":
        self._constraint_activities = {
            int(row): float(value) for row, value in activities.items()
        }
        return self

    def finalize(self) -> SolverOutcome:
        """
        Freeze the accumulated fields into a SolverOutcome.

        Raises:
            InconsistentSolverOutput: If an identifier sequence and its row
                sequence differ in length.
        """
        if len(self._selected_item_ids) != len(self._selected_item_rows):
            raise InconsistentSolverOutput(
                f"{len(self._selected_item_ids)} selected item id(s) but "
                f"{len(self._selected_item_rows)} row index(es)"
            )
        if len(self._selected_passage_ids) != len(self._selected_passage_rows):
            raise InconsistentSolverOutput(
                f"{len(self._selected_passage_ids)} selected passage id(s) but "
                f"{len(self._selected_passage_rows)} row index(es)"
            )

        return SolverOutcome(
            selected_item_ids=self._selected_item_ids,
            selected_item_rows=self._selected_item_rows,
            selected_passage_ids=self._selected_passage_ids,
            selected_passage_rows=self._selected_passage_rows,
            passage_order=self._passage_order,
            objective=self._objective,
            status=self._status if self._status is not None else SolverStatus.OTHER,
            constraint_activities=dict(self._constraint_activities),
        )
