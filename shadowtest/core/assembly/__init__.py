"""
Shadow-test assembly for computerized adaptive testing.

This module loads a test design (item pool, passages, constraint sheet),
validates its configuration, and runs one shadow-test solve per adaptive
step through an injected optimizer.
"""

from .adapter import (
    apply_constraint_activities,
    check_outcome_against_pool,
    decode_solver_result,
    encode_solver_request,
    group_selected_items_by_passage,
    selections_from_solution_vectors,
)
from .assembly_config import (
    AssemblyOptions,
    TestAssemblyConfiguration,
    build_test_assembly_configuration,
    load_assembly_options,
)
from .constraints import (
    BIG_NUMBER,
    DEFAULT_CONSTRAINT_COLUMNS,
    Constraint,
    ConstraintColumns,
    encode_filters,
    parse_constraint,
    parse_constraint_table,
    parse_filters,
)
from .content_table import ContentTable
from .entities import Item, ItemColumn, Passage, TabularEntity, parse_entity
from .errors import (
    AssemblyError,
    ColumnNotFound,
    DuplicateFilterAttribute,
    FilterArityMismatch,
    InconsistentSolverOutput,
    InfeasibleTestConfigError,
    InvalidConfiguration,
    NumericFieldError,
    UnknownFilterLogic,
    UnknownSolverStatus,
    UnsupportedPayloadVersion,
)
from .pool import ItemPool, load_item_pool
from .snapshots import (
    ItemSnapshot,
    PassageSnapshot,
    StepSnapshots,
    make_item_snapshot,
    make_passage_snapshot,
)
from .solver import ShadowTestSolver, SolverConfig, run_shadow_test_step
from .solver_output import (
    SolverOutcome,
    SolverOutcomeBuilder,
    SolverStatus,
    decode_status,
)

__all__ = [
    "ContentTable",
    "TabularEntity",
    "Item",
    "Passage",
    "ItemColumn",
    "parse_entity",
    "Constraint",
    "ConstraintColumns",
    "DEFAULT_CONSTRAINT_COLUMNS",
    "BIG_NUMBER",
    "parse_filters",
    "parse_constraint",
    "parse_constraint_table",
    "encode_filters",
    "ItemSnapshot",
    "PassageSnapshot",
    "StepSnapshots",
    "make_item_snapshot",
    "make_passage_snapshot",
    "SolverStatus",
    "SolverOutcome",
    "SolverOutcomeBuilder",
    "decode_status",
    "AssemblyOptions",
    "TestAssemblyConfiguration",
    "build_test_assembly_configuration",
    "load_assembly_options",
    "ItemPool",
    "load_item_pool",
    "encode_solver_request",
    "decode_solver_result",
    "apply_constraint_activities",
    "check_outcome_against_pool",
    "selections_from_solution_vectors",
    "group_selected_items_by_passage",
    "ShadowTestSolver",
    "SolverConfig",
    "run_shadow_test_step",
    "AssemblyError",
    "ColumnNotFound",
    "NumericFieldError",
    "FilterArityMismatch",
    "UnknownFilterLogic",
    "DuplicateFilterAttribute",
    "UnknownSolverStatus",
    "InvalidConfiguration",
    "InconsistentSolverOutput",
    "UnsupportedPayloadVersion",
    "InfeasibleTestConfigError",
]
