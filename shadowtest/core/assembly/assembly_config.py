"""
Test assembly configuration.

A configuration fixes everything about a test design that stays constant
across examinees: the item pool and its column semantics, the optional
passage pool and constraint sheet, length and passage-grouping bounds, and
the penalty weights the optimizer applies when a soft constraint has to be
relaxed.

Required fields are positional arguments of build_test_assembly_configuration;
optional fields travel in an AssemblyOptions record. All validation happens
once, when the configuration is built.

Usage:
    options = AssemblyOptions(num_passage_lb=2, num_passage_ub=4,
                              passage_table=passages,
                              passage_numeric_columns=(False, True))
    config = build_test_assembly_configuration(20, item_mask, items, options)

    # Staged form
    config = (
        TestAssemblyConfiguration.Builder(20, item_mask, items)
        .length_priority(50)
        .finalize()
    )
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shadowtest.core.assembly.content_table import ContentTable
from shadowtest.core.assembly.errors import InvalidConfiguration

logger = logging.getLogger(__name__)

# Options that only make sense with a passage table. Setting any of them
# explicitly without one is a configuration error.
PASSAGE_OPTION_FIELDS = frozenset(
    {
        "num_passage_lb",
        "num_passage_ub",
        "num_item_per_passage_lb",
        "num_item_per_passage_ub",
        "passage_id_column_index_in_item_pool",
        "passage_id_column_index_in_passage_pool",
        "passage_numeric_columns",
    }
)


class AssemblyOptions(BaseModel):
    """Optional test assembly parameters with their defaults."""

    model_config = ConfigDict(
        frozen=True, extra="forbid", arbitrary_types_allowed=True
    )

    test_config_id: Optional[str] = None
    num_passage_lb: int = Field(default=0, ge=0)
    num_passage_ub: int = Field(default=100, ge=0)
    num_item_per_passage_lb: int = Field(default=0, ge=0)
    num_item_per_passage_ub: int = Field(default=100, ge=0)
    item_id_column_index: int = Field(default=0, ge=0)
    passage_id_column_index_in_item_pool: int = Field(default=1, ge=0)
    passage_id_column_index_in_passage_pool: int = Field(default=0, ge=0)
    passage_numeric_columns: Optional[Tuple[bool, ...]] = None
    passage_table: ContentTable = Field(default_factory=ContentTable.empty)
    constraint_table: ContentTable = Field(default_factory=ContentTable.empty)
    # Penalty weights used when the optimizer relaxes a soft constraint
    length_priority: int = Field(default=10, ge=0)
    eligibility_priority: int = Field(default=0, ge=0)
    enable_enemy_item_constraint: bool = True


@dataclass(frozen=True)
class TestAssemblyConfiguration:
    """Validated, immutable configuration of one test design."""

    __test__ = False  # keep pytest from collecting this class

    test_length: int
    item_numeric_columns: Tuple[bool, ...]
    item_pool_table: ContentTable
    test_config_id: Optional[str] = None
    num_passage_lb: int = 0
    num_passage_ub: int = 100
    num_item_per_passage_lb: int = 0
    num_item_per_passage_ub: int = 100
    item_id_column_index: int = 0
    passage_id_column_index_in_item_pool: int = 1
    passage_id_column_index_in_passage_pool: int = 0
    passage_numeric_columns: Optional[Tuple[bool, ...]] = None
    passage_table: ContentTable = field(default_factory=ContentTable.empty)
    constraint_table: ContentTable = field(default_factory=ContentTable.empty)
    length_priority: int = 10
    eligibility_priority: int = 0
    enable_enemy_item_constraint: bool = True

    @property
    def has_passages(self) -> bool:
        return _is_supplied(self.passage_table)

    @property
    def has_constraints(self) -> bool:
        return _is_supplied(self.constraint_table)

    class Builder:
        """Staged construction: required fields now, overrides until finalize()."""

        def __init__(
            self,
            test_length: int,
            item_numeric_columns: Sequence[bool],
            item_pool_table: ContentTable,
        ) -> None:
            self._test_length = test_length
            self._item_numeric_columns = item_numeric_columns
            self._item_pool_table = item_pool_table
            self._overrides: Dict[str, Any] = {}

        def _set(self, name: str, value: Any) -> "TestAssemblyConfiguration.Builder":
            self._overrides[name] = value
            return self

        def test_config_id(self, value: str) -> "TestAssemblyConfiguration.Builder":
            return self._set("test_config_id", value)

        def num_passage_lb(self, value: int) -> "TestAssemblyConfiguration.Builder":
            return self._set("num_passage_lb", value)

        def num_passage_ub(self, value: int) -> "TestAssemblyConfiguration.Builder":
            return self._set("num_passage_ub", value)

        def num_item_per_passage_lb(
            self, value: int
        ) -> "TestAssemblyConfiguration.Builder":
            return self._set("num_item_per_passage_lb", value)

        def num_item_per_passage_ub(
            self, value: int
        ) -> "TestAssemblyConfiguration.Builder":
            return self._set("num_item_per_passage_ub", value)

        def item_id_column_index(self, value: int) -> "TestAssemblyConfiguration.Builder":
            return self._set("item_id_column_index", value)

        def passage_id_column_index_in_item_pool(
            self, value: int
        ) -> "TestAssemblyConfiguration.Builder":
            return self._set("passage_id_column_index_in_item_pool", value)

        def passage_id_column_index_in_passage_pool(
            self, value: int
        ) -> "TestAssemblyConfiguration.Builder":
            return self._set("passage_id_column_index_in_passage_pool", value)

        def passage_numeric_columns(
            self, value: Sequence[bool]
        ) -> "TestAssemblyConfiguration.Builder":
            return self._set("passage_numeric_columns", tuple(value))

        def passage_table(self, value: ContentTable) -> "TestAssemblyConfiguration.Builder":
            return self._set("passage_table", value)

        def constraint_table(
            self, value: ContentTable
        ) -> "TestAssemblyConfiguration.Builder":
            return self._set("constraint_table", value)

        def length_priority(self, value: int) -> "TestAssemblyConfiguration.Builder":
            return self._set("length_priority", value)

        def eligibility_priority(self, value: int) -> "TestAssemblyConfiguration.Builder":
            return self._set("eligibility_priority", value)

        def enable_enemy_item_constraint(
            self, value: bool
        ) -> "TestAssemblyConfiguration.Builder":
            return self._set("enable_enemy_item_constraint", value)

        def finalize(self) -> "TestAssemblyConfiguration":
            """Validate and build (InvalidConfiguration on failure)."""
            return build_test_assembly_configuration(
                self._test_length,
                self._item_numeric_columns,
                self._item_pool_table,
                _options_from_mapping(self._overrides),
            )


def _is_supplied(table: ContentTable) -> bool:
    # A header-only table counts as supplied; a table with no columns does not
    return table.column_count > 0


def _options_from_mapping(data: Dict[str, Any]) -> AssemblyOptions:
    try:
        return AssemblyOptions(**data)
    except ValidationError as e:
        raise InvalidConfiguration(
            "Invalid assembly options", original_error=e
        ) from e


def _check_index(
    errors: List[str], name: str, index: int, table: ContentTable, table_name: str
) -> None:
    if not (0 <= index < table.column_count):
        errors.append(
            f"{name}={index} is outside the {table_name} columns "
            f"(0..{table.column_count - 1})"
        )


def _check_mask(
    errors: List[str], name: str, mask: Sequence[bool], table: ContentTable
) -> None:
    if len(mask) != table.column_count:
        errors.append(
            f"{name} has {len(mask)} entries but the table has "
            f"{table.column_count} columns"
        )


def _check_bounds(errors: List[str], name: str, lower: int, upper: int) -> None:
    if lower > upper:
        errors.append(f"{name} lower bound {lower} exceeds upper bound {upper}")


def build_test_assembly_configuration(
    test_length: int,
    item_numeric_columns: Sequence[bool],
    item_pool_table: ContentTable,
    options: Optional[AssemblyOptions] = None,
) -> TestAssemblyConfiguration:
    """
    Validate inputs and build a TestAssemblyConfiguration.

    Args:
        test_length: Number of items in the test. Must be positive.
        item_numeric_columns: Column-type mask of the item pool (True =
            numeric), one entry per item pool column.
        item_pool_table: Item pool content table.
        options: Optional parameters; defaults apply when omitted.

    Returns:
        An immutable configuration.

    Raises:
        InvalidConfiguration: With every problem found, one per line.
    """
    options = options or AssemblyOptions()
    errors: List[str] = []

    if isinstance(test_length, bool) or not isinstance(test_length, int):
        errors.append(f"test_length must be an integer, got {test_length!r}")
    elif test_length <= 0:
        errors.append(f"test_length must be positive, got {test_length}")

    _check_mask(errors, "item_numeric_columns", item_numeric_columns, item_pool_table)
    _check_index(
        errors, "item_id_column_index", options.item_id_column_index,
        item_pool_table, "item pool",
    )

    _check_bounds(errors, "Passage count", options.num_passage_lb, options.num_passage_ub)
    _check_bounds(
        errors,
        "Items per passage",
        options.num_item_per_passage_lb,
        options.num_item_per_passage_ub,
    )

    if _is_supplied(options.passage_table):
        if options.passage_numeric_columns is None:
            errors.append("passage_numeric_columns is required with a passage table")
        else:
            _check_mask(
                errors, "passage_numeric_columns",
                options.passage_numeric_columns, options.passage_table,
            )
        _check_index(
            errors, "passage_id_column_index_in_passage_pool",
            options.passage_id_column_index_in_passage_pool,
            options.passage_table, "passage pool",
        )
        _check_index(
            errors, "passage_id_column_index_in_item_pool",
            options.passage_id_column_index_in_item_pool,
            item_pool_table, "item pool",
        )
    else:
        stray = sorted(PASSAGE_OPTION_FIELDS & options.model_fields_set)
        if stray:
            errors.append(
                f"Passage option(s) {', '.join(stray)} set without a passage table"
            )

    if errors:
        raise InvalidConfiguration(
            "Test assembly configuration validation failed:\n"
            + "\n".join(f"  - {error}" for error in errors)
        )

    config = TestAssemblyConfiguration(
        test_length=test_length,
        item_numeric_columns=tuple(bool(flag) for flag in item_numeric_columns),
        item_pool_table=item_pool_table,
        test_config_id=options.test_config_id,
        num_passage_lb=options.num_passage_lb,
        num_passage_ub=options.num_passage_ub,
        num_item_per_passage_lb=options.num_item_per_passage_lb,
        num_item_per_passage_ub=options.num_item_per_passage_ub,
        item_id_column_index=options.item_id_column_index,
        passage_id_column_index_in_item_pool=options.passage_id_column_index_in_item_pool,
        passage_id_column_index_in_passage_pool=(
            options.passage_id_column_index_in_passage_pool
        ),
        passage_numeric_columns=options.passage_numeric_columns,
        passage_table=options.passage_table,
        constraint_table=options.constraint_table,
        length_priority=options.length_priority,
        eligibility_priority=options.eligibility_priority,
        enable_enemy_item_constraint=options.enable_enemy_item_constraint,
    )
    logger.debug(
        f"Built test assembly configuration {config.test_config_id!r}: "
        f"length={config.test_length}, items={item_pool_table.row_count}, "
        f"passages={config.passage_table.row_count}, "
        f"constraint rows={config.constraint_table.row_count}"
    )
    return config


def load_assembly_options(path: Union[str, Path]) -> AssemblyOptions:
    """
    Load scalar assembly options from a YAML file.

    Only plain values belong in the file (bounds, column positions,
    priorities, the enemy-item toggle, the passage mask); tables are passed
    in code.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidConfiguration: If the file is not valid YAML, is not a
            mapping, or fails option validation.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Assembly options file not found: {path}")

    logger.info(f"Loading assembly options from {path}")
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML assembly options: {e}")
        raise InvalidConfiguration(
            "Assembly options file is not valid YAML",
            original_error=e,
            context={"path": str(path)},
        ) from e

    if not isinstance(data, dict):
        raise InvalidConfiguration(
            "Assembly options file must contain a mapping",
            context={"path": str(path)},
        )
    return _options_from_mapping(data)
