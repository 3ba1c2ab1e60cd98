"""Multi-item selection over the canonically sorted listing."""
from __future__ import annotations

from typing import FrozenSet, List, Optional, Sequence


class SelectionModel:
    """Selected names plus the anchor used for range gestures.

    The model only knows names in listing order; callers hand it the sorted
    listing with `set_listing` after every refresh, which prunes stale names.
    """

    def __init__(self) -> None:
        self._order: List[str] = []
        self._index: dict[str, int] = {}
        self._selected: set[str] = set()
        self._anchor: Optional[str] = None

    @property
    def selected(self) -> FrozenSet[str]:
        return frozenset(self._selected)

    @property
    def anchor(self) -> Optional[str]:
        return self._anchor

    def __contains__(self, name: object) -> bool:
        return name in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    def ordered(self) -> List[str]:
        """Selected names in listing order."""
        return [name for name in self._order if name in self._selected]

    def _require(self, name: str) -> None:
        if name not in self._index:
            raise ValueError(f"'{name}' is not in the current listing")

    def set_listing(self, names: Sequence[str]) -> None:
        self._order = list(names)
        self._index = {name: idx for idx, name in enumerate(self._order)}
        self._selected &= set(self._index)
        if self._anchor is not None and self._anchor not in self._index:
            self._anchor = None

    def click(self, name: str) -> None:
        self._require(name)
        self._selected = {name}
        self._anchor = name

    def toggle(self, name: str) -> None:
        self._require(name)
        if name in self._selected:
            self._selected.discard(name)
            return
        self._selected.add(name)
        self._anchor = name

    def range_select(self, name: str) -> None:
        self._require(name)
        if self._anchor is None:
            self.click(name)
            return
        start = self._index[self._anchor]
        end = self._index[name]
        low, high = min(start, end), max(start, end)
        self._selected.update(self._order[low:high + 1])

    def select_all(self) -> None:
        self._selected = set(self._order)

    def clear(self) -> None:
        self._selected = set()
        self._anchor = None
