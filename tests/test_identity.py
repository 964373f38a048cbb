"""Tests for the identity map."""

import gc
import weakref

from sequester import Realm
from sequester import RealmObject
from sequester.identity import IdentityMap


def test_wrapper_entries_resolve_both_ways() -> None:
    """Verify a registered pair resolves from either side."""
    realm: Realm = Realm("any")
    identity_map: IdentityMap = IdentityMap()
    near: RealmObject = realm.create_object()
    far: RealmObject = realm.create_object()

    identity_map.set_entries(near, far)
    assert identity_map.get_near(far) is near
    assert identity_map.get_far(near) == (True, far)
    assert identity_map.get_far(far) == (False, None)
    assert len(identity_map) == 1


def test_lookup_key_differs_from_forwarded_value() -> None:
    """Verify a wrapper can be found under a value other than the one it forwards to."""
    realm: Realm = Realm("any")
    identity_map: IdentityMap = IdentityMap()
    near: RealmObject = realm.create_object()
    original: RealmObject = realm.create_object()
    replacement: RealmObject = realm.create_object()

    identity_map.set_entries(near, replacement, original)
    assert identity_map.get_near(original) is near
    assert identity_map.get_near(replacement) is None
    assert identity_map.get_far(near) == (True, replacement)


def test_entry_lives_while_far_value_is_reachable() -> None:
    """Verify a wrapper stays registered after its last outside reference is dropped."""
    realm: Realm = Realm("any")
    identity_map: IdentityMap = IdentityMap()
    far: RealmObject = realm.create_object()
    identity_map.set_entries(realm.create_object(), far)

    gc.collect()
    near: RealmObject | None = identity_map.get_near(far)
    assert near is not None
    assert identity_map.get_far(near) == (True, far)
    assert len(identity_map) == 1


def test_entry_is_released_once_both_sides_are_unreachable() -> None:
    """Verify the map itself keeps neither side of an entry alive."""
    realm: Realm = Realm("any")
    identity_map: IdentityMap = IdentityMap()
    near: RealmObject = realm.create_object()
    far: RealmObject = realm.create_object()
    identity_map.set_entries(near, far)
    near_ref: weakref.ReferenceType = weakref.ref(near)
    far_ref: weakref.ReferenceType = weakref.ref(far)

    del near
    del far
    gc.collect()
    assert near_ref() is None
    assert far_ref() is None
    assert len(identity_map) == 0


def test_entries_of_separate_maps_do_not_collide() -> None:
    """Verify one value can carry independent entries for several maps."""
    realm: Realm = Realm("any")
    first_map: IdentityMap = IdentityMap()
    second_map: IdentityMap = IdentityMap()
    far: RealmObject = realm.create_object()
    first_near: RealmObject = realm.create_object()
    second_near: RealmObject = realm.create_object()

    first_map.set_entries(first_near, far)
    second_map.set_entries(second_near, far)
    assert first_map.get_near(far) is first_near
    assert second_map.get_near(far) is second_near
    assert first_map.get_far(second_near) == (False, None)


def test_pinned_pairs_are_retained_and_idempotent() -> None:
    """Verify pinned pairs survive without outside references and pin once."""
    realm: Realm = Realm("any")
    identity_map: IdentityMap = IdentityMap()
    far: RealmObject = realm.create_object()
    identity_map.pin(realm.create_object(), far)

    gc.collect()
    pinned: RealmObject | None = identity_map.get_near(far)
    assert pinned is not None
    identity_map.pin(pinned, far)
    assert len(identity_map) == 1
    assert identity_map.get_far(pinned) == (True, far)
    assert identity_map.get_near(None) is None
