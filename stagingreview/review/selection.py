"""Selection of record ids for bulk actions."""

from __future__ import annotations

from collections.abc import Iterable, Iterator


class SelectionModel:
    """Set of record ids chosen for a bulk action.

    Members must stay a subset of the displayed list; the controller calls
    ``prune`` after every refresh to drop ids that left the queue.
    """

    def __init__(self) -> None:
        self._ids: set[int] = set()

    def toggle(self, record_id: int) -> bool:
        """Add the id if absent, remove it if present. Returns new membership."""
        if record_id in self._ids:
            self._ids.remove(record_id)
            return False
        self._ids.add(record_id)
        return True

    def select_all(self, record_ids: Iterable[int]) -> None:
        self._ids = set(record_ids)

    def clear(self) -> None:
        self._ids.clear()

    def prune(self, valid_ids: Iterable[int]) -> set[int]:
        """Drop members not in ``valid_ids``; returns the removed ids."""
        valid = set(valid_ids)
        stale = self._ids - valid
        self._ids &= valid
        return stale

    def is_all_selected(self, displayed_ids: Iterable[int]) -> bool:
        displayed = set(displayed_ids)
        return bool(displayed) and displayed <= self._ids

    def is_partially_selected(self, displayed_ids: Iterable[int]) -> bool:
        """Some but not all displayed ids are selected (indeterminate checkbox)."""
        displayed = set(displayed_ids)
        chosen = self._ids & displayed
        return bool(chosen) and chosen != displayed

    @property
    def ids(self) -> frozenset[int]:
        return frozenset(self._ids)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[int]:
        # Sorted so bulk requests are stable
        return iter(sorted(self._ids))
