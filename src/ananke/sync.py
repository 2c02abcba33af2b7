"""Add-only merge of named items between two installations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from ananke.core.exceptions import InputValidationError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

ItemT = TypeVar("ItemT")


@dataclass(frozen=True, slots=True)
class SyncResult:
    added: int
    skipped: int


@dataclass(frozen=True)
class SyncPlan(Generic[ItemT]):
    to_add: list[ItemT] = field(default_factory=list)
    skipped: list[ItemT] = field(default_factory=list)

    @property
    def result(self) -> SyncResult:
        return SyncResult(added=len(self.to_add), skipped=len(self.skipped))


def ensure_distinct(source_id: str, target_id: str) -> None:
    if source_id == target_id:
        raise InputValidationError("Source and target must be different")


def plan_sync(
    source_items: Iterable[ItemT],
    existing_ids: Iterable[str],
    *,
    key: Callable[[ItemT], str],
) -> SyncPlan[ItemT]:
    """Split source items into those missing from the target and those already there.

    Items already present are never overwritten or merged.
    """
    existing = set(existing_ids)
    to_add: list[ItemT] = []
    skipped: list[ItemT] = []
    for item in source_items:
        item_id = key(item)
        if item_id in existing:
            skipped.append(item)
            continue
        existing.add(item_id)
        to_add.append(item)
    return SyncPlan(to_add=to_add, skipped=skipped)
