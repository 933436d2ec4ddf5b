"""
Pydantic schemas for the optimizer boundary.
"""
from .solver_payload import (
    SOLVER_PAYLOAD_VERSION,
    ConstraintRecord,
    ItemRecord,
    ModelParametersPayload,
    PassageRecord,
    SolverRequestPayload,
    SolverResultPayload,
    SolverTimingPayload,
    SolverTuningPayload,
)

__all__ = [
    "SOLVER_PAYLOAD_VERSION",
    "SolverRequestPayload",
    "SolverResultPayload",
    "ModelParametersPayload",
    "SolverTuningPayload",
    "SolverTimingPayload",
    "ItemRecord",
    "PassageRecord",
    "ConstraintRecord",
]
