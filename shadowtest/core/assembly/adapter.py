"""
Translation between domain objects and solver wire payloads.

Domain objects (ItemPool, StepSnapshots, SolverOutcome) never cross the
optimizer boundary directly. This module flattens them into the versioned
pydantic payloads of shadowtest.schemas.solver_payload and decodes the
optimizer's answer back through SolverOutcomeBuilder.
"""

import logging
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Sequence

import numpy as np

from shadowtest.core.assembly.assembly_config import TestAssemblyConfiguration
from shadowtest.core.assembly.constraints import Constraint
from shadowtest.core.assembly.errors import (
    InconsistentSolverOutput,
    UnsupportedPayloadVersion,
)
from shadowtest.core.assembly.pool import ItemPool
from shadowtest.core.assembly.snapshots import StepSnapshots
from shadowtest.core.assembly.solver_output import SolverOutcome, SolverOutcomeBuilder
from shadowtest.core.config import settings
from shadowtest.schemas.solver_payload import (
    SOLVER_PAYLOAD_VERSION,
    ConstraintRecord,
    ItemRecord,
    ModelParametersPayload,
    PassageRecord,
    SolverRequestPayload,
    SolverResultPayload,
)

if TYPE_CHECKING:
    from shadowtest.core.assembly.solver import SolverConfig

logger = logging.getLogger(__name__)

# Derived categorical attribute the optimizer uses to tell discrete items
# from passage-based ones
IS_DISCRETE_ATTRIBUTE = "IsDiscreteItem"


def _check_snapshots(pool: ItemPool, snapshots: StepSnapshots) -> None:
    if len(snapshots.items) != len(pool.items):
        raise ValueError(
            f"Step {snapshots.step_index} has {len(snapshots.items)} item "
            f"snapshot(s) for a pool of {len(pool.items)} items"
        )
    if len(snapshots.passages) != len(pool.passages):
        raise ValueError(
            f"Step {snapshots.step_index} has {len(snapshots.passages)} passage "
            f"snapshot(s) for a pool of {len(pool.passages)} passages"
        )
    for item, snapshot in zip(pool.items, snapshots.items):
        if snapshot.id != item.id:
            raise ValueError(
                f"Item snapshot '{snapshot.id}' is out of order; expected "
                f"'{item.id}' at row {item.row_index}"
            )
    for passage, snapshot in zip(pool.passages, snapshots.passages):
        if snapshot.id != passage.id:
            raise ValueError(
                f"Passage snapshot '{snapshot.id}' is out of order; expected "
                f"'{passage.id}' at row {passage.row_index}"
            )


def _constraint_record(constraint: Constraint) -> ConstraintRecord:
    return ConstraintRecord(
        row_index=constraint.row_index,
        id=constraint.id,
        type=constraint.type,
        level=constraint.level,
        cal_attr=constraint.cal_attr,
        cal_lb=constraint.cal_lb,
        cal_ub=constraint.cal_ub,
        filter_bounds={k: list(v) for k, v in constraint.filter_bounds.items()},
        filter_sets={k: sorted(v) for k, v in constraint.filter_sets.items()},
    )


def encode_solver_request(
    pool: ItemPool,
    configuration: TestAssemblyConfiguration,
    snapshots: StepSnapshots,
    solver_config: "SolverConfig",
) -> SolverRequestPayload:
    """
    Build the request payload for one shadow-test solve.

    Args:
        pool: Items, passages and constraints of the test design.
        configuration: The design's validated configuration.
        snapshots: Real-time state for this step, in pool row order.
        solver_config: Tolerances and limits for the optimizer.

    Returns:
        A SolverRequestPayload at the current schema version.

    Raises:
        ValueError: If the snapshots do not line up with the pool.
    """
    _check_snapshots(pool, snapshots)

    parameters = ModelParametersPayload(
        test_config_id=configuration.test_config_id,
        test_length=configuration.test_length,
        num_passage_lb=configuration.num_passage_lb,
        num_passage_ub=configuration.num_passage_ub,
        num_item_per_passage_lb=configuration.num_item_per_passage_lb,
        num_item_per_passage_ub=configuration.num_item_per_passage_ub,
        length_priority=configuration.length_priority,
        eligibility_priority=configuration.eligibility_priority,
        enable_enemy_item_constraint=configuration.enable_enemy_item_constraint,
        tuning=solver_config.to_payload(),
    )

    numeric = pool.numeric_attribute_matrix()
    items = []
    for item, snapshot, values in zip(pool.items, snapshots.items, numeric):
        categorical = dict(zip(item.categorical_names, item.categorical_values))
        categorical[IS_DISCRETE_ATTRIBUTE] = "true" if item.is_discrete else "false"
        items.append(
            ItemRecord(
                row_index=item.row_index,
                id=item.id,
                information=snapshot.information,
                eligible=snapshot.eligible,
                eligible_hard=snapshot.eligible_hard,
                administered=snapshot.administered,
                selected=snapshot.selected,
                passage_row_index=item.passage_row_index,
                numeric_attributes=dict(zip(item.numeric_names, values.tolist())),
                categorical_attributes=categorical,
            )
        )

    passages = [
        PassageRecord(
            row_index=passage.row_index,
            id=passage.id,
            eligible=snapshot.eligible,
            numeric_attributes=dict(zip(passage.numeric_names, passage.numeric_values)),
            categorical_attributes=dict(
                zip(passage.categorical_names, passage.categorical_values)
            ),
        )
        for passage, snapshot in zip(pool.passages, snapshots.passages)
    ]

    logger.debug(
        f"Encoding step {snapshots.step_index}: {len(items)} items, "
        f"{len(passages)} passages, {len(pool.constraints)} constraints"
    )
    return SolverRequestPayload(
        step_index=snapshots.step_index,
        parameters=parameters,
        items=items,
        passages=passages,
        constraints=[_constraint_record(c) for c in pool.constraints],
        enemy_items=[list(rows) for rows in pool.enemy_rows],
    )


def decode_solver_result(payload: SolverResultPayload) -> SolverOutcome:
    """
    Turn an optimizer result into a validated SolverOutcome.

    Raises:
        UnsupportedPayloadVersion: If the payload's schema version is unknown.
        UnknownSolverStatus: If the status code is outside the fixed table.
        InconsistentSolverOutput: If ids and rows are not index-aligned.
    """
    if payload.schema_version != SOLVER_PAYLOAD_VERSION:
        raise UnsupportedPayloadVersion(
            f"Solver result schema version {payload.schema_version} is not "
            f"supported (expected {SOLVER_PAYLOAD_VERSION})"
        )

    builder = (
        SolverOutcomeBuilder()
        .set_selected_item_ids(payload.selected_item_ids)
        .set_selected_item_rows(payload.selected_item_rows)
        .set_selected_passage_ids(payload.selected_passage_ids)
        .set_selected_passage_rows(payload.selected_passage_rows)
        .set_objective(payload.objective)
        .set_status(payload.status_code)
    )
    if payload.passage_order is not None:
        builder.set_passage_order(payload.passage_order)
    if payload.constraint_activities is not None:
        builder.set_constraint_activities(payload.constraint_activities)
    return builder.finalize()


def apply_constraint_activities(
    constraints: Sequence[Constraint], activities: Mapping[int, float]
) -> None:
    """
    Write solver-reported activities onto constraints by row index.

    Constraints the optimizer did not report keep their previous activity.

    Raises:
        InconsistentSolverOutput: If an activity names an unknown row index.
    """
    by_row = {constraint.row_index: constraint for constraint in constraints}
    unknown = sorted(row for row in activities if row not in by_row)
    if unknown:
        raise InconsistentSolverOutput(
            f"Activities reported for unknown constraint row(s) {unknown}"
        )
    for row, value in activities.items():
        by_row[row].activity = float(value)


def _selected_rows(
    values: Sequence[float], expected: int, what: str, threshold: float
) -> np.ndarray:
    array = np.asarray(values, dtype=float)
    if array.shape != (expected,):
        raise ValueError(
            f"Expected {expected} {what} decision value(s), got shape {array.shape}"
        )
    return np.flatnonzero(array >= threshold)


def selections_from_solution_vectors(
    pool: ItemPool,
    x_values: Sequence[float],
    z_values: Optional[Sequence[float]] = None,
    threshold: Optional[float] = None,
) -> SolverOutcomeBuilder:
    """
    Read selections out of raw MIP decision-variable values.

    ``x_values`` holds one value per item and ``z_values`` one per passage.
    A value at or above ``threshold`` counts as selected; the default
    threshold comes from settings.SOLUTION_SELECTION_THRESHOLD so that
    values such as 0.9999 from an integer-tolerant solve still count.

    Returns:
        A builder with the item and passage selections filled in; the caller
        adds objective and status before finalize().

    Raises:
        ValueError: If a vector does not have one entry per pool member.
    """
    if threshold is None:
        threshold = settings.SOLUTION_SELECTION_THRESHOLD

    item_rows = _selected_rows(x_values, len(pool.items), "item", threshold)
    builder = (
        SolverOutcomeBuilder()
        .set_selected_item_rows(item_rows.tolist())
        .set_selected_item_ids([pool.items[row].id for row in item_rows])
    )

    if z_values is not None:
        passage_rows = _selected_rows(
            z_values, len(pool.passages), "passage", threshold
        )
        builder.set_selected_passage_rows(passage_rows.tolist())
        builder.set_selected_passage_ids(
            [pool.passages[row].id for row in passage_rows]
        )
    return builder


def _check_selection_against(
    kind: str, members: Sequence, ids: Sequence[str], rows: Sequence[int]
) -> None:
    for position, (member_id, row) in enumerate(zip(ids, rows)):
        if not 0 <= row < len(members):
            raise InconsistentSolverOutput(
                f"Selected {kind} row {row} is outside a pool of "
                f"{len(members)} {kind}(s)",
                context={"position": position, "row": row, "id": member_id},
            )
        if members[row].id != member_id:
            raise InconsistentSolverOutput(
                f"Selected {kind} '{member_id}' does not match pool row {row} "
                f"('{members[row].id}')",
                context={"position": position, "row": row, "id": member_id},
            )


def check_outcome_against_pool(pool: ItemPool, outcome: SolverOutcome) -> None:
    """
    Verify that an outcome's selections name real members of ``pool``.

    Every selected row must lie inside the pool and carry the id reported
    next to it. Passage order rows and constraint activity rows must also
    refer to existing passages and constraints.

    Raises:
        InconsistentSolverOutput: On the first selection that does not match.
    """
    _check_selection_against(
        "item", pool.items, outcome.selected_item_ids, outcome.selected_item_rows
    )
    _check_selection_against(
        "passage",
        pool.passages,
        outcome.selected_passage_ids,
        outcome.selected_passage_rows,
    )
    if outcome.passage_order is not None:
        outside = [r for r in outcome.passage_order if not 0 <= r < len(pool.passages)]
        if outside:
            raise InconsistentSolverOutput(
                f"Passage order names row(s) {outside} outside a pool of "
                f"{len(pool.passages)} passage(s)"
            )
    known = {constraint.row_index for constraint in pool.constraints}
    unknown = sorted(row for row in outcome.constraint_activities if row not in known)
    if unknown:
        raise InconsistentSolverOutput(
            f"Activities reported for unknown constraint row(s) {unknown}"
        )


def group_selected_items_by_passage(
    pool: ItemPool, outcome: SolverOutcome
) -> Dict[str, List[str]]:
    """
    Map each selected passage id to its selected item ids.

    Passages follow the outcome's selection order and items keep the order
    in which they were selected. Discrete items are not included.

    Raises:
        InconsistentSolverOutput: If the outcome does not match ``pool``.
    """
    check_outcome_against_pool(pool, outcome)
    grouped: Dict[str, List[str]] = {pid: [] for pid in outcome.selected_passage_ids}
    passage_ids_by_row = dict(
        zip(outcome.selected_passage_rows, outcome.selected_passage_ids)
    )
    for row in outcome.selected_item_rows:
        passage_id = passage_ids_by_row.get(pool.items[row].passage_row_index)
        if passage_id is not None:
            grouped[passage_id].append(pool.items[row].id)
    return grouped
