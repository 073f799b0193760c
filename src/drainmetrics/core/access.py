"""Recency ordering of series for TTL eviction.

AccessOrder is a doubly linked list stored in parallel slot arrays, with a
free list for recycled slots and a dict from series id to slot. Touching a
series moves it to the most-recently-used end in O(1); the eviction sweep
walks from the least-recently-used end and stops at the first live record.

Not thread-safe: callers hold the registry lock.
"""

from collections.abc import Hashable, Iterator

_NIL = -1


class AccessOrder:
    """Series ids ordered by last access, most recent first."""

    def __init__(self) -> None:
        self._ids: list[Hashable | None] = []
        self._stamps: list[float] = []
        self._prev: list[int] = []
        self._next: list[int] = []
        self._free: list[int] = []
        self._slots: dict[Hashable, int] = {}
        self._head = _NIL  # most recently used
        self._tail = _NIL  # least recently used

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, series_id: object) -> bool:
        return series_id in self._slots

    def __iter__(self) -> Iterator[Hashable]:
        """Iterate ids from most to least recently used."""
        slot = self._head
        while slot != _NIL:
            yield self._ids[slot]
            slot = self._next[slot]

    def last_access(self, series_id: Hashable) -> float:
        return self._stamps[self._slots[series_id]]

    def touch(self, series_id: Hashable, now: float) -> bool:
        """Record an access, moving the id to the front.

        Returns:
            True if the id was not tracked before.
        """
        # @tra: Registry.AccessOrder.Touch
        slot = self._slots.get(series_id)
        if slot is None:
            slot = self._allocate(series_id, now)
            self._push_front(slot)
            return True

        self._stamps[slot] = now
        if slot != self._head:
            self._unlink(slot)
            self._push_front(slot)
        return False

    def remove(self, series_id: Hashable) -> bool:
        """Stop tracking an id. Returns False if it was not tracked."""
        # @tra: Registry.AccessOrder.Remove
        slot = self._slots.pop(series_id, None)
        if slot is None:
            return False
        self._unlink(slot)
        self._ids[slot] = None
        self._free.append(slot)
        return True

    def expired(self, now: float, ttl: float) -> Iterator[Hashable]:
        """Yield ids idle for longer than ttl, least recently used first.

        Relies on the list being sorted by access time: iteration stops at
        the first record that is still live. Removing the yielded id while
        iterating is allowed.
        """
        # @tra: Registry.AccessOrder.Expired
        slot = self._tail
        while slot != _NIL:
            if now - self._stamps[slot] <= ttl:
                return
            previous = self._prev[slot]
            yield self._ids[slot]
            slot = previous

    def _allocate(self, series_id: Hashable, now: float) -> int:
        if self._free:
            slot = self._free.pop()
            self._ids[slot] = series_id
            self._stamps[slot] = now
        else:
            slot = len(self._ids)
            self._ids.append(series_id)
            self._stamps.append(now)
            self._prev.append(_NIL)
            self._next.append(_NIL)
        self._slots[series_id] = slot
        return slot

    def _push_front(self, slot: int) -> None:
        self._prev[slot] = _NIL
        self._next[slot] = self._head
        if self._head != _NIL:
            self._prev[self._head] = slot
        self._head = slot
        if self._tail == _NIL:
            self._tail = slot

    def _unlink(self, slot: int) -> None:
        prev, nxt = self._prev[slot], self._next[slot]
        if prev != _NIL:
            self._next[prev] = nxt
        else:
            self._head = nxt
        if nxt != _NIL:
            self._prev[nxt] = prev
        else:
            self._tail = prev
        self._prev[slot] = self._next[slot] = _NIL
