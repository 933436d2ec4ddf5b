"""
In-memory content tables for item pools, passage pools and constraint sheets.

A ContentTable is an immutable header plus rows of raw text values. Reading
the table from disk is the caller's job; this module only guarantees that
every row is as wide as the header and that name lookups fail loudly.
"""

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from shadowtest.core.assembly.errors import ColumnNotFound


@dataclass(frozen=True)
class ContentTable:
    """Row-oriented table of text values."""

    column_names: Tuple[str, ...] = ()
    rows: Tuple[Tuple[str, ...], ...] = ()

    def __post_init__(self) -> None:
        # Normalise list input so the table stays hashable and immutable
        object.__setattr__(self, "column_names", tuple(self.column_names))
        object.__setattr__(self, "rows", tuple(tuple(row) for row in self.rows))

        width = len(self.column_names)
        for index, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(
                    f"Row {index} has {len(row)} values but the header has "
                    f"{width} columns"
                )

    @classmethod
    def empty(cls) -> "ContentTable":
        """Return a table with no columns and no rows."""
        return cls()

    @classmethod
    def from_rows(
        cls, column_names: Sequence[str], rows: Iterable[Sequence[str]]
    ) -> "ContentTable":
        """Build a table from a header and an iterable of rows."""
        return cls(tuple(column_names), tuple(tuple(row) for row in rows))

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.column_names)

    def is_empty(self) -> bool:
        """True when the table has no rows."""
        return not self.rows

    def has_column(self, name: str) -> bool:
        return name in self.column_names

    def column_index(self, name: str) -> int:
        """
        Return the position of a column by name.

        Raises:
            ColumnNotFound: If the header does not contain ``name``.
        """
        try:
            return self.column_names.index(name)
        except ValueError:
            raise ColumnNotFound(
                f"Column '{name}' not found",
                context={"available": list(self.column_names)},
            ) from None

    def column_values(self, name: str) -> Tuple[str, ...]:
        """Return every value of the named column, in row order."""
        index = self.column_index(name)
        return tuple(row[index] for row in self.rows)

    def columns(self) -> List[Tuple[str, ...]]:
        """Column-oriented view of the table (the transpose of ``rows``)."""
        return [tuple(row[i] for row in self.rows) for i in range(self.column_count)]
