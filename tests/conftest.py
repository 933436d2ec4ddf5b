"""
Pytest configuration and shared fixtures for testing.

The fixtures describe one small test design:

- four items, three linked to passages P1/P2 and one discrete (I3)
- two passages
- a constraint sheet with three loaded rows and one row switched off
"""
from typing import List, Optional

import pytest

from shadowtest.core.assembly.assembly_config import (
    AssemblyOptions,
    TestAssemblyConfiguration,
    build_test_assembly_configuration,
)
from shadowtest.core.assembly.content_table import ContentTable
from shadowtest.core.assembly.pool import ItemPool, load_item_pool
from shadowtest.core.assembly.snapshots import StepSnapshots
from shadowtest.schemas.solver_payload import (
    SolverRequestPayload,
    SolverResultPayload,
)

ITEM_HEADER = (
    "Item ID",
    "Passage ID",
    "A-Param",
    "B-Param",
    "Content",
    "Format",
    "Precludes",
)
ITEM_MASK = (False, False, True, True, True, False, False)
ITEM_ROWS = [
    ("I1", "P1", "1.0", "-0.5", "1", "MC", "I3"),
    ("I2", "P1", "1.2", "0.0", "2", "TF", "None"),
    ("I3", "", "0.8", "0.5", "3", "MC", "I1|X9"),
    ("I4", "P2", "1.1", "1.0", "4", "MC", "none"),
]

PASSAGE_HEADER = ("Passage ID", "Topic", "WordCount")
PASSAGE_MASK = (False, False, True)
PASSAGE_ROWS = [
    ("P1", "Science", "250"),
    ("P2", "History", "300"),
]

CONSTRAINT_HEADER = (
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
    "IsLoaded",
)
CONSTRAINT_ROWS = [
    ("C1", "Test length", "Number", "Item", "Items", "4", "4", "", "", "", "TRUE"),
    (
        "C2",
        "Content coverage",
        "Sum",
        "Item",
        "Content",
        "Null",
        "10",
        "Content|Format",
        "Bounds|Set",
        "0|10#MC|TF",
        "true",
    ),
    ("C3", "Retired", "Number", "Item", "Items", "1", "Null", "", "", "", "FALSE"),
    (
        "C4",
        "Passage topics",
        "Number",
        "Passage",
        "Passages",
        "1",
        "2",
        "Topic",
        "Set",
        "Science|History",
        " True ",
    ),
]


class ScriptedSolver:
    """Fake optimizer that replays canned results and records each request."""

    def __init__(self, results: List[SolverResultPayload]):
        self.results = list(results)
        self.requests: List[SolverRequestPayload] = []

    def solve(self, request: SolverRequestPayload) -> SolverResultPayload:
        self.requests.append(request)
        return self.results.pop(0)


@pytest.fixture
def item_table() -> ContentTable:
    return ContentTable.from_rows(ITEM_HEADER, ITEM_ROWS)


@pytest.fixture
def passage_table() -> ContentTable:
    return ContentTable.from_rows(PASSAGE_HEADER, PASSAGE_ROWS)


@pytest.fixture
def constraint_table() -> ContentTable:
    return ContentTable.from_rows(CONSTRAINT_HEADER, CONSTRAINT_ROWS)


@pytest.fixture
def configuration(
    item_table: ContentTable,
    passage_table: ContentTable,
    constraint_table: ContentTable,
) -> TestAssemblyConfiguration:
    """Full configuration: items, passages and constraints."""
    options = AssemblyOptions(
        test_config_id="design-1",
        num_passage_lb=1,
        num_passage_ub=2,
        num_item_per_passage_lb=1,
        num_item_per_passage_ub=2,
        passage_numeric_columns=PASSAGE_MASK,
        passage_table=passage_table,
        constraint_table=constraint_table,
    )
    return build_test_assembly_configuration(4, ITEM_MASK, item_table, options)


@pytest.fixture
def pool(configuration: TestAssemblyConfiguration) -> ItemPool:
    return load_item_pool(configuration)


@pytest.fixture
def step_snapshots(pool: ItemPool) -> StepSnapshots:
    return StepSnapshots(
        step_index=0,
        items=pool.initial_item_snapshots(),
        passages=pool.initial_passage_snapshots(),
    )


@pytest.fixture
def make_result():
    """Factory for result payloads with sensible defaults."""

    def _make(status_code: int = 2, objective: float = 3.5, **overrides):
        data = {
            "selected_item_ids": ["I1", "I3"],
            "selected_item_rows": [0, 2],
            "selected_passage_ids": ["P1"],
            "selected_passage_rows": [0],
            "objective": objective,
            "status_code": status_code,
        }
        data.update(overrides)
        return SolverResultPayload(**data)

    return _make


@pytest.fixture
def scripted_solver_factory():
    def _factory(results: Optional[List[SolverResultPayload]] = None) -> ScriptedSolver:
        return ScriptedSolver(results or [])

    return _factory
