"""
Shadow-test solve step.

The optimizer itself is external. Callers inject any object that satisfies
ShadowTestSolver; run_shadow_test_step encodes the step, calls it once,
and decodes the answer. Nothing here retries: an UNFINISHED or INFEASIBLE
status is reported back, and retry policy belongs to the driver.

Concurrency:
    One solver instance normally lives for the whole process and is shared
    by every examinee simulation. This module does not lock around
    ``solve``. If the solver is not reentrant, callers running several
    simulations concurrently must serialize their calls, for example by
    wrapping the instance in a class that holds a ``threading.Lock`` around
    ``solve``.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable

from shadowtest.core.assembly.adapter import (
    check_outcome_against_pool,
    decode_solver_result,
    encode_solver_request,
)
from shadowtest.core.assembly.assembly_config import TestAssemblyConfiguration
from shadowtest.core.assembly.pool import ItemPool
from shadowtest.core.assembly.snapshots import StepSnapshots
from shadowtest.core.assembly.solver_output import SolverOutcome, SolverStatus
from shadowtest.core.config import settings
from shadowtest.schemas.solver_payload import (
    SolverRequestPayload,
    SolverResultPayload,
    SolverTuningPayload,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class ShadowTestSolver(Protocol):
    """Anything that can solve one shadow-test MIP."""

    def solve(self, request: SolverRequestPayload) -> SolverResultPayload:
        ...


@dataclass(frozen=True)
class SolverConfig:
    """Optimizer tolerances and limits, defaulting to the process settings."""

    abs_gap: float = field(default_factory=lambda: settings.SOLVER_ABS_GAP)
    rel_gap: float = field(default_factory=lambda: settings.SOLVER_REL_GAP)
    int_tol: float = field(default_factory=lambda: settings.SOLVER_INT_TOL)
    max_time_seconds: float = field(
        default_factory=lambda: settings.SOLVER_MAX_TIME_SECONDS
    )
    save_input: bool = field(default_factory=lambda: settings.SOLVER_SAVE_INPUT)

    def to_payload(self) -> SolverTuningPayload:
        return SolverTuningPayload(
            abs_gap=self.abs_gap,
            rel_gap=self.rel_gap,
            int_tol=self.int_tol,
            max_time_seconds=self.max_time_seconds,
            save_input=self.save_input,
        )


def run_shadow_test_step(
    solver: ShadowTestSolver,
    pool: ItemPool,
    configuration: TestAssemblyConfiguration,
    snapshots: StepSnapshots,
    solver_config: Optional[SolverConfig] = None,
) -> SolverOutcome:
    """
    Assemble one shadow test.

    Args:
        solver: The injected optimizer.
        pool: Items, passages and constraints of the test design.
        configuration: The design's validated configuration.
        snapshots: Real-time item and passage state for this step.
        solver_config: Tolerances and limits; settings defaults when omitted.

    Returns:
        The decoded outcome, checked against ``pool``. Constraint activities
        reported by the solver travel on the outcome; ``pool`` is not
        modified. Use ItemPool.copy_constraints and apply_constraint_activities
        to record them per examinee.

    Raises:
        ValueError: If the snapshots do not line up with the pool.
        UnsupportedPayloadVersion, UnknownSolverStatus,
        InconsistentSolverOutput: If the solver's result breaks the contract.
    """
    solver_config = solver_config or SolverConfig()
    request = encode_solver_request(pool, configuration, snapshots, solver_config)

    start = time.perf_counter()
    result = solver.solve(request)
    duration_ms = (time.perf_counter() - start) * 1000

    outcome = decode_solver_result(result)
    check_outcome_against_pool(pool, outcome)

    log_extra = {
        "step_index": snapshots.step_index,
        "solver_status": outcome.status.name,
        "objective": outcome.objective,
        "duration_ms": round(duration_ms, 2),
    }
    if outcome.status is SolverStatus.OPTIMAL:
        logger.info(
            f"Step {snapshots.step_index}: selected "
            f"{len(outcome.selected_item_ids)} item(s), "
            f"objective={outcome.objective:.4f} in {duration_ms:.1f}ms",
            extra=log_extra,
        )
    else:
        logger.warning(
            f"Step {snapshots.step_index}: solver finished with status "
            f"{outcome.status.name} after {duration_ms:.1f}ms",
            extra=log_extra,
        )

    if result.timing is not None:
        logger.debug(
            f"Step {snapshots.step_index} solver timing: "
            f"build={result.timing.build_seconds:.3f}s, "
            f"solve={result.timing.solve_seconds:.3f}s, "
            f"other={result.timing.other_seconds:.3f}s"
        )
    return outcome
