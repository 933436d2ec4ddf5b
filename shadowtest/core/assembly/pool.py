"""
Loading a test design's pools into typed entities.

Turns the tables of a TestAssemblyConfiguration into items, passages and
constraints once per test design, resolves each item's passage, and reads
enemy-item ("Precludes") lists. The resulting ItemPool is shared by every
adaptive step of every examinee and is never written to during a solve;
per-examinee constraint activities live on copies from copy_constraints().
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Tuple

import numpy as np

from shadowtest.core.assembly.assembly_config import TestAssemblyConfiguration
from shadowtest.core.assembly.constraints import Constraint, parse_constraint_table
from shadowtest.core.assembly.entities import Item, ItemColumn, Passage, parse_entity
from shadowtest.core.assembly.errors import InvalidConfiguration
from shadowtest.core.assembly.snapshots import (
    ItemSnapshot,
    PassageSnapshot,
    make_item_snapshot,
    make_passage_snapshot,
)

logger = logging.getLogger(__name__)

# "Precludes" value meaning the item has no enemies (case-insensitive)
NO_ENEMIES = "none"
ENEMY_DELIMITER = "|"


@dataclass(frozen=True)
class ItemPool:
    """Items, passages and loaded constraints of one test design."""

    items: Tuple[Item, ...]
    passages: Tuple[Passage, ...]
    constraints: Tuple[Constraint, ...]
    # enemy_rows[i] holds the row indices of the items that item i precludes
    enemy_rows: Tuple[Tuple[int, ...], ...]

    @property
    def item_ids(self) -> List[str]:
        return [item.id for item in self.items]

    @property
    def passage_ids(self) -> List[str]:
        return [passage.id for passage in self.passages]

    @property
    def item_passage_indices(self) -> List[int]:
        """Passage row index per item, -1 for discrete items."""
        return [item.passage_row_index for item in self.items]

    def numeric_attribute_matrix(self) -> np.ndarray:
        """
        Item numeric attributes as a float matrix.

        Returns:
            Array of shape ``(n_items, n_numeric_attributes)`` with columns in
            item pool order.
        """
        if not self.items:
            return np.zeros((0, 0), dtype=float)
        return np.array([item.numeric_values for item in self.items], dtype=float)

    def copy_constraints(self) -> List[Constraint]:
        """Fresh constraint copies for recording one examinee's activities."""
        return [replace(constraint) for constraint in self.constraints]

    def initial_item_snapshots(self) -> List[ItemSnapshot]:
        """Step-0 state: no information yet, all eligible, nothing given."""
        return [
            make_item_snapshot(
                item.id,
                item.row_index,
                information=0.0,
                eligible=True,
                eligible_hard=True,
                administered=False,
                selected=False,
            )
            for item in self.items
        ]

    def initial_passage_snapshots(self) -> List[PassageSnapshot]:
        return [
            make_passage_snapshot(passage.id, passage.row_index, eligible=True)
            for passage in self.passages
        ]


def _load_passages(config: TestAssemblyConfiguration) -> List[Passage]:
    if not config.has_passages:
        return []

    table = config.passage_table
    id_index = config.passage_id_column_index_in_passage_pool

    passages: List[Passage] = []
    seen: Dict[str, int] = {}
    for row_index, row in enumerate(table.rows):
        passage_id = row[id_index]
        if passage_id in seen:
            raise InvalidConfiguration(
                f"Duplicate passage id '{passage_id}' in passage pool",
                context={"first_row": seen[passage_id], "row": row_index},
            )
        seen[passage_id] = row_index
        passages.append(
            parse_entity(
                passage_id,
                row,
                table.column_names,
                config.passage_numeric_columns or (),
                row_index,
                entity_cls=Passage,
            )
        )
    return passages


def _load_items(
    config: TestAssemblyConfiguration, passage_rows: Dict[str, int]
) -> List[Item]:
    table = config.item_pool_table
    id_index = config.item_id_column_index
    passage_index = config.passage_id_column_index_in_item_pool

    items: List[Item] = []
    seen: Dict[str, int] = {}
    for row_index, row in enumerate(table.rows):
        item_id = row[id_index]
        if item_id in seen:
            raise InvalidConfiguration(
                f"Duplicate item id '{item_id}' in item pool",
                context={"first_row": seen[item_id], "row": row_index},
            )
        seen[item_id] = row_index

        item = parse_entity(
            item_id,
            row,
            table.column_names,
            config.item_numeric_columns,
            row_index,
            entity_cls=Item,
        )
        if passage_rows:
            item = replace(
                item, passage_row_index=passage_rows.get(row[passage_index], -1)
            )
        items.append(item)
    return items


def _load_enemy_rows(items: List[Item]) -> List[Tuple[int, ...]]:
    """Resolve each item's Precludes list to row indices within the pool."""
    if not items or ItemColumn.PRECLUDES.value not in items[0].categorical_names:
        return [() for _ in items]

    row_by_id = {item.id: item.row_index for item in items}
    enemy_rows: List[Tuple[int, ...]] = []
    dropped = 0
    for item in items:
        text = item.categorical_value(ItemColumn.PRECLUDES.value).strip()
        if not text or text.lower() == NO_ENEMIES:
            enemy_rows.append(())
            continue
        rows = []
        for enemy_id in text.split(ENEMY_DELIMITER):
            enemy_id = enemy_id.strip()
            if enemy_id in row_by_id:
                rows.append(row_by_id[enemy_id])
            else:
                dropped += 1
        enemy_rows.append(tuple(rows))

    if dropped:
        logger.info(f"Ignored {dropped} Precludes reference(s) to items outside the pool")
    return enemy_rows


def load_item_pool(config: TestAssemblyConfiguration) -> ItemPool:
    """
    Build the ItemPool for a configuration.

    Passages load first so that items can be linked to them by passage id.
    An item whose passage id is empty or not in the passage pool is discrete.

    Raises:
        InvalidConfiguration: If two items or two passages share an identifier.
        NumericFieldError: If a numeric pool cell is malformed.
        ColumnNotFound: If the constraint sheet lacks a required column.
        FilterArityMismatch, UnknownFilterLogic, DuplicateFilterAttribute:
            If a loaded constraint row is malformed.
    """
    passages = _load_passages(config)
    passage_rows = {passage.id: passage.row_index for passage in passages}
    items = _load_items(config, passage_rows)
    constraints = (
        parse_constraint_table(config.constraint_table)
        if config.has_constraints
        else []
    )
    enemy_rows = _load_enemy_rows(items)

    discrete = sum(1 for item in items if item.is_discrete)
    logger.info(
        f"Loaded item pool: {len(items)} items ({discrete} discrete), "
        f"{len(passages)} passages, {len(constraints)} constraints"
    )
    return ItemPool(
        items=tuple(items),
        passages=tuple(passages),
        constraints=tuple(constraints),
        enemy_rows=tuple(enemy_rows),
    )
