"""Binary heap that tracks the slot of every queued item."""

from __future__ import annotations

from typing import Callable, Dict, List


class IndexedPriorityQueue:
    """
    Min-heap of integer handles ordered by an external key.

    The key is looked up through a callable on every comparison, so callers
    may lower an item's key in place and then call reposition() to restore
    the heap order. A side map from handle to heap slot is kept current on
    every swap. Equal keys are ordered by the handle itself.
    """

    def __init__(self, key: Callable[[int], float]) -> None:
        self._key = key
        self._heap: List[int] = []
        self._positions: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def __contains__(self, item: int) -> bool:
        return item in self._positions

    def push(self, item: int) -> None:
        if item in self._positions:
            raise ValueError(f"Item {item} is already queued")
        self._heap.append(item)
        self._positions[item] = len(self._heap) - 1
        self._sift_up(len(self._heap) - 1)

    def pop(self) -> int:
        heap = self._heap
        top = heap[0]
        last = heap.pop()
        del self._positions[top]
        if heap:
            heap[0] = last
            self._positions[last] = 0
            self._sift_down(0)
        return top

    def reposition(self, item: int) -> None:
        """Restore heap order after the key of a queued item has changed."""
        slot = self._positions[item]
        slot = self._sift_up(slot)
        self._sift_down(slot)

    def _higher(self, lhs: int, rhs: int) -> bool:
        lhs_key, rhs_key = self._key(lhs), self._key(rhs)
        if lhs_key != rhs_key:
            return lhs_key < rhs_key
        return lhs < rhs

    def _swap(self, i: int, j: int) -> None:
        heap = self._heap
        heap[i], heap[j] = heap[j], heap[i]
        self._positions[heap[i]] = i
        self._positions[heap[j]] = j

    def _sift_up(self, slot: int) -> int:
        while slot > 0:
            parent = (slot - 1) >> 1
            if not self._higher(self._heap[slot], self._heap[parent]):
                break
            self._swap(slot, parent)
            slot = parent
        return slot

    def _sift_down(self, slot: int) -> int:
        size = len(self._heap)
        while True:
            best = slot
            for child in (2 * slot + 1, 2 * slot + 2):
                if child < size and self._higher(self._heap[child], self._heap[best]):
                    best = child
            if best == slot:
                return slot
            self._swap(slot, best)
            slot = best
