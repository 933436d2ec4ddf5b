"""
Per-step real-time state sent to the optimizer.

Snapshots are rebuilt for every adaptive step from the current exposure
control and administration state (computed elsewhere) and consumed once by
the solve call. They are plain value objects: equality is structural.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class ItemSnapshot:
    """Real-time state of one item at the current step."""

    id: str
    row_index: int
    information: float  # Item information at the current ability estimate
    eligible: bool  # Soft eligibility; the optimizer may relax it
    eligible_hard: bool  # Never relaxed, even when the model is infeasible
    administered: bool  # Already given in a prior step
    selected: bool  # Chosen in the previous shadow test


@dataclass(frozen=True)
class PassageSnapshot:
    """Real-time state of one passage at the current step."""

    id: str
    row_index: int
    eligible: bool


def make_item_snapshot(
    id: str,
    row_index: int,
    information: float,
    eligible: bool,
    eligible_hard: bool,
    administered: bool,
    selected: bool,
) -> ItemSnapshot:
    return ItemSnapshot(
        id=id,
        row_index=row_index,
        information=information,
        eligible=eligible,
        eligible_hard=eligible_hard,
        administered=administered,
        selected=selected,
    )


def make_passage_snapshot(id: str, row_index: int, eligible: bool) -> PassageSnapshot:
    return PassageSnapshot(id=id, row_index=row_index, eligible=eligible)


@dataclass(frozen=True)
class StepSnapshots:
    """All snapshots for one adaptive step, in pool row order."""

    step_index: int
    items: Tuple[ItemSnapshot, ...]
    passages: Tuple[PassageSnapshot, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "passages", tuple(self.passages))
