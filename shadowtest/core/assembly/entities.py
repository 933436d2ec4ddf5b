"""
Tabular entities: items and passages parsed from one pool row.

A column-type mask, aligned positionally with the header, decides which
columns are numeric (parsed to float) and which are categorical (kept as
text). The relative order of columns is preserved inside each partition, so
``numeric_names[i]`` labels ``numeric_values[i]`` and likewise for the
categorical pair.
"""

import enum
from dataclasses import dataclass
from typing import Sequence, Tuple, Type, TypeVar

from shadowtest.core.assembly.errors import NumericFieldError

E = TypeVar("E", bound="TabularEntity")


class ItemColumn(str, enum.Enum):
    """Standard column names of the item pool table."""

    ITEM_ID = "Item ID"
    PASSAGE_ID = "Passage ID"
    A_PARAM = "A-Param"
    B_PARAM = "B-Param"
    C_PARAM = "C-Param"
    A_PARAM_SE = "A-Param-SE"
    B_PARAM_SE = "B-Param-SE"
    C_PARAM_SE = "C-Param-SE"
    D_CONSTANT = "D-Constant"
    # Optional: "|"-separated ids of enemy items, or "None"
    PRECLUDES = "Precludes"


@dataclass(frozen=True)
class TabularEntity:
    """One row of a content table split into numeric and categorical attributes."""

    id: str
    row_index: int
    numeric_names: Tuple[str, ...] = ()
    numeric_values: Tuple[float, ...] = ()
    categorical_names: Tuple[str, ...] = ()
    categorical_values: Tuple[str, ...] = ()

    def numeric_value(self, name: str) -> float:
        """Return a numeric attribute by column name (KeyError if absent)."""
        try:
            return self.numeric_values[self.numeric_names.index(name)]
        except ValueError:
            raise KeyError(name) from None

    def categorical_value(self, name: str) -> str:
        """Return a categorical attribute by column name (KeyError if absent)."""
        try:
            return self.categorical_values[self.categorical_names.index(name)]
        except ValueError:
            raise KeyError(name) from None


@dataclass(frozen=True)
class Item(TabularEntity):
    """An item in the pool.

    ``passage_row_index`` points into the passage pool; -1 marks a discrete
    (stand-alone) item.
    """

    passage_row_index: int = -1

    @property
    def is_discrete(self) -> bool:
        return self.passage_row_index < 0


@dataclass(frozen=True)
class Passage(TabularEntity):
    """A passage (stimulus) that groups items."""


def parse_entity(
    identifier: str,
    row_values: Sequence[str],
    column_names: Sequence[str],
    is_numeric_mask: Sequence[bool],
    row_index: int,
    entity_cls: Type[E] = TabularEntity,  # type: ignore[assignment]
) -> E:
    """
    Partition one table row into numeric and categorical attributes.

    Args:
        identifier: Entity identifier (usually taken from the id column).
        row_values: Raw text values of the row.
        column_names: Header of the table, aligned with ``row_values``.
        is_numeric_mask: True for columns to parse as floats.
        row_index: Position of the row in its source table.
        entity_cls: TabularEntity subclass to construct (Item, Passage).

    Returns:
        A new, immutable entity.

    Raises:
        ValueError: If the three sequences differ in length.
        NumericFieldError: If a numeric column holds malformed text.
    """
    if not (len(row_values) == len(column_names) == len(is_numeric_mask)):
        raise ValueError(
            f"Row {row_index}: row_values ({len(row_values)}), column_names "
            f"({len(column_names)}) and is_numeric_mask ({len(is_numeric_mask)}) "
            "must have equal length"
        )

    numeric_names = []
    numeric_values = []
    categorical_names = []
    categorical_values = []

    for name, value, is_numeric in zip(column_names, row_values, is_numeric_mask):
        if is_numeric:
            try:
                numeric_values.append(float(value))
            except (TypeError, ValueError) as e:
                raise NumericFieldError(
                    f"Column '{name}' holds non-numeric value {value!r}",
                    original_error=e,
                    context={"entity_id": identifier, "row": row_index},
                ) from e
            numeric_names.append(name)
        else:
            categorical_names.append(name)
            categorical_values.append(value)

    return entity_cls(
        id=identifier,
        row_index=row_index,
        numeric_names=tuple(numeric_names),
        numeric_values=tuple(numeric_values),
        categorical_names=tuple(categorical_names),
        categorical_values=tuple(categorical_values),
    )
