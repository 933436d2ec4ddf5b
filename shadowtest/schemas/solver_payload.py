"""
Pydantic schemas for the optimizer boundary.

The request carries everything the optimizer needs for one adaptive step;
the result carries what it chose. Both are versioned so that a solver
process built against a different layout is rejected instead of
misread.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

SOLVER_PAYLOAD_VERSION = 1


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class SolverTuningPayload(_Payload):
    """MIP tolerances and limits passed through to the optimizer."""

    abs_gap: float = Field(..., ge=0.0, description="Absolute MIP gap")
    rel_gap: float = Field(..., ge=0.0, description="Relative MIP gap")
    int_tol: float = Field(..., ge=0.0, description="Integer feasibility tolerance")
    max_time_seconds: float = Field(
        ..., ge=0.0, description="Time limit per solve (0 = no limit)"
    )
    save_input: bool = Field(
        False, description="Ask the optimizer to persist the model it built"
    )


class ModelParametersPayload(_Payload):
    """Test-design parameters that shape the shadow-test model."""

    test_config_id: Optional[str] = None
    test_length: int = Field(..., gt=0)
    num_passage_lb: int = Field(..., ge=0)
    num_passage_ub: int = Field(..., ge=0)
    num_item_per_passage_lb: int = Field(..., ge=0)
    num_item_per_passage_ub: int = Field(..., ge=0)
    length_priority: int = Field(..., ge=0)
    eligibility_priority: int = Field(..., ge=0)
    enable_enemy_item_constraint: bool
    tuning: SolverTuningPayload


class ItemRecord(_Payload):
    """One item with its real-time state for the current step."""

    row_index: int = Field(..., ge=0)
    id: str
    information: float
    eligible: bool
    eligible_hard: bool
    administered: bool
    selected: bool
    passage_row_index: int = Field(..., ge=-1, description="-1 for discrete items")
    numeric_attributes: Dict[str, float] = Field(default_factory=dict)
    categorical_attributes: Dict[str, str] = Field(default_factory=dict)


class PassageRecord(_Payload):
    """One passage with its eligibility for the current step."""

    row_index: int = Field(..., ge=0)
    id: str
    eligible: bool
    numeric_attributes: Dict[str, float] = Field(default_factory=dict)
    categorical_attributes: Dict[str, str] = Field(default_factory=dict)


class ConstraintRecord(_Payload):
    """One loaded constraint, addressed by its dense row index."""

    row_index: int = Field(..., ge=0)
    id: str
    type: str
    level: str
    cal_attr: str
    cal_lb: float
    cal_ub: float
    filter_bounds: Dict[str, List[float]] = Field(default_factory=dict)
    filter_sets: Dict[str, List[str]] = Field(default_factory=dict)


class SolverRequestPayload(_Payload):
    """Input of one shadow-test solve."""

    schema_version: int = SOLVER_PAYLOAD_VERSION
    step_index: int = Field(..., ge=0)
    parameters: ModelParametersPayload
    items: List[ItemRecord]
    passages: List[PassageRecord] = Field(default_factory=list)
    constraints: List[ConstraintRecord] = Field(default_factory=list)
    # enemy_items[i] lists the rows of the items that item i precludes
    enemy_items: List[List[int]] = Field(default_factory=list)


class SolverTimingPayload(_Payload):
    """Wall-clock split reported by the optimizer, in seconds."""

    build_seconds: float = Field(0.0, ge=0.0)
    solve_seconds: float = Field(0.0, ge=0.0)
    other_seconds: float = Field(0.0, ge=0.0)


class SolverResultPayload(_Payload):
    """Output of one shadow-test solve, exactly as the optimizer reports it."""

    schema_version: int = SOLVER_PAYLOAD_VERSION
    selected_item_ids: List[str] = Field(default_factory=list)
    selected_item_rows: List[int] = Field(default_factory=list)
    selected_passage_ids: List[str] = Field(default_factory=list)
    selected_passage_rows: List[int] = Field(default_factory=list)
    passage_order: Optional[List[int]] = None
    objective: float = 0.0
    # Raw code; decoded (and validated) by the adapter
    status_code: int
    constraint_activities: Optional[Dict[int, float]] = None
    timing: Optional[SolverTimingPayload] = None
