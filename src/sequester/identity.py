"""Identity bookkeeping between wrappers and the values they stand for."""

import weakref

from sequester.objects import RealmObject


class IdentityMap:
    """Associate near-side values with the far-side values they represent.

    Wrapper entries live in slots owned by the two values themselves, keyed
    weakly by the map: the far value holds its wrapper and the wrapper holds
    its far value. The map keeps no strong reference to either side, so an
    entry is reclaimed only once both sides are unreachable. Pinned entries
    are retained for the lifetime of the map.
    """

    _entries: "weakref.WeakSet[RealmObject]"
    _pinned_near_by_far_id: dict[int, RealmObject]
    _pinned_far_by_near_id: dict[int, object]
    _pinned_pairs: list[tuple[RealmObject, object]]

    def __init__(self) -> None:
        """Initialize an empty map."""
        self._entries = weakref.WeakSet()
        self._pinned_near_by_far_id = {}
        self._pinned_far_by_near_id = {}
        self._pinned_pairs = []

    def get_near(self, far: object) -> RealmObject | None:
        """Return the registered near value for ``far``.

        :param far: Far-side value.
        :returns: Near value or ``None`` when unregistered.
        """
        pinned: RealmObject | None = self._pinned_near_by_far_id.get(id(far))
        if pinned is not None:
            return pinned
        if isinstance(far, RealmObject) is False:
            return None
        slots: "weakref.WeakKeyDictionary[object, RealmObject] | None" = far.identity_slots
        if slots is None:
            return None
        return slots.get(self)

    def get_far(self, near: object) -> tuple[bool, object]:
        """Return the far value registered for ``near``.

        :param near: Near-side value.
        :returns: Tuple of ``(found, far_value)``.
        """
        near_id: int = id(near)
        if near_id in self._pinned_far_by_near_id:
            return True, self._pinned_far_by_near_id[near_id]
        if isinstance(near, RealmObject) is False:
            return False, None
        slots: "weakref.WeakKeyDictionary[object, object] | None" = near.counterpart_slots
        if slots is None or self not in slots:
            return False, None
        return True, slots[self]

    def set_entries(self, near: RealmObject, far: RealmObject, lookup_key: RealmObject | None = None) -> None:
        """Register one wrapper.

        :param near: Wrapper.
        :param far: Value the wrapper forwards to.
        :param lookup_key: Far value that resolves to ``near``, defaults to ``far``.
            Differs from ``far`` when a distortion replaced the original value.
        """
        key: RealmObject = far if lookup_key is None else lookup_key
        if key.identity_slots is None:
            key.identity_slots = weakref.WeakKeyDictionary()
        if near.counterpart_slots is None:
            near.counterpart_slots = weakref.WeakKeyDictionary()
        key.identity_slots[self] = near
        near.counterpart_slots[self] = far
        self._entries.add(near)

    def pin(self, near: RealmObject, far: object) -> None:
        """Permanently bind ``near`` and ``far`` to each other.

        :param near: Near-side value.
        :param far: Far-side value.
        """
        if self._pinned_near_by_far_id.get(id(far)) is near:
            return
        self._pinned_pairs.append((near, far))
        self._pinned_near_by_far_id[id(far)] = near
        self._pinned_far_by_near_id[id(near)] = far

    def __len__(self) -> int:
        return len(self._entries) + len(self._pinned_pairs)
