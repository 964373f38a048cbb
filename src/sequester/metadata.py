"""Target metadata extraction, shadow construction and descriptor conversion."""

from typing import TYPE_CHECKING
from typing import Literal

from sequester.objects import ABSENT
from sequester.objects import Descriptor
from sequester.objects import PropertyKey
from sequester.objects import RealmObject
from sequester.objects import freeze
from sequester.objects import get_own_property_descriptors
from sequester.objects import is_frozen
from sequester.objects import is_sealed
from sequester.objects import seal
from sequester.proxy import is_array
from sequester.realm import Realm

if TYPE_CHECKING:
    from sequester.factory import ValueFactory

Lifecycle = Literal["extensible", "non-extensible", "sealed", "frozen"]


class TargetMeta:
    """Shape of a far value captured once when its wrapper is minted."""

    proto: RealmObject | None
    descriptors: dict[PropertyKey, Descriptor]
    lifecycle: Lifecycle
    broken: bool

    def __init__(
        self,
        proto: RealmObject | None,
        descriptors: dict[PropertyKey, Descriptor],
        lifecycle: Lifecycle,
        broken: bool = False,
    ) -> None:
        """Initialize metadata.

        :param proto: Far delegation parent.
        :param descriptors: Far own descriptors, still in far form.
        :param lifecycle: Captured lock state.
        :param broken: Whether introspection failed.
        """
        self.proto = proto
        self.descriptors = descriptors
        self.lifecycle = lifecycle
        self.broken = broken

    @classmethod
    def broken_target(cls) -> "TargetMeta":
        return cls(None, {}, "extensible", broken=True)


def _classify_lifecycle(target: RealmObject) -> Lifecycle:
    if is_frozen(target) is True:
        return "frozen"
    if is_sealed(target) is True:
        return "sealed"
    if target.is_extensible() is False:
        return "non-extensible"
    return "extensible"


def extract_target_meta(target: RealmObject) -> TargetMeta:
    """Capture parent, descriptors and lock state of ``target``.

    Any failure marks the metadata broken; a value that stops being reachable
    while it is inspected is caught by the final probe.

    :param target: Far value, already distortion-substituted.
    :returns: Captured metadata.
    """
    try:
        proto: RealmObject | None = target.get_prototype_of()
        descriptors: dict[PropertyKey, Descriptor] = get_own_property_descriptors(target)
        lifecycle: Lifecycle = _classify_lifecycle(target)
        is_array(target)
    except Exception:
        return TargetMeta.broken_target()
    return TargetMeta(proto, descriptors, lifecycle)


def _copy_display_name(source: RealmObject, shadow: RealmObject) -> None:
    """Copy the function display name, best effort.

    :param source: Far function.
    :param shadow: Near placeholder.
    """
    try:
        name_desc: Descriptor | None = source.get_own_property("name")
        if name_desc is None or name_desc.is_data() is False:
            return
        if isinstance(name_desc.value, str) is False:
            return
        shadow.define_own_property("name", name_desc)
    except Exception:
        # a far value that cannot report its name is already unusable
        return


def create_shadow_target(target: RealmObject, near_realm: Realm) -> RealmObject:
    """Build the empty near-side placeholder anchoring a wrapper's identity.

    :param target: Far value.
    :param near_realm: Realm the wrapper will live in.
    :returns: Placeholder object, callable iff ``target`` is.
    """
    if target.is_callable is False:
        return RealmObject(near_realm, near_realm.object_prototype)

    constructor: bool = False
    try:
        constructor = target.has_property("prototype")
    except Exception:
        constructor = False
    shadow: RealmObject = near_realm.create_placeholder_function(constructor)
    _copy_display_name(target, shadow)
    return shadow


def to_near_descriptor(factory: "ValueFactory", far_desc: Descriptor) -> Descriptor:
    """Convert the embedded values of a far descriptor to near form.

    :param factory: Factory of the near direction.
    :param far_desc: Descriptor observed on a far value.
    :returns: Descriptor safe to install on a near object.
    """
    near_desc: Descriptor = far_desc.copy()
    if near_desc.is_data() is True:
        if near_desc.value is not ABSENT:
            near_desc.value = factory.get_near_value(near_desc.value)
        return near_desc
    if isinstance(near_desc.getter, RealmObject) is True:
        near_desc.getter = factory.get_near_value(near_desc.getter)
    if isinstance(near_desc.setter, RealmObject) is True:
        near_desc.setter = factory.get_near_value(near_desc.setter)
    return near_desc


def to_far_descriptor(factory: "ValueFactory", near_desc: Descriptor) -> Descriptor:
    """Convert the embedded values of a near, possibly partial, descriptor to far form.

    :param factory: Factory of the near direction.
    :param near_desc: Descriptor supplied by near-side code.
    :returns: Descriptor safe to apply to a far value.
    """
    far_desc: Descriptor = near_desc.copy()
    if far_desc.value is not ABSENT:
        far_desc.value = factory.get_far_value(far_desc.value)
    if far_desc.getter is not ABSENT:
        far_desc.getter = factory.get_far_value(far_desc.getter)
    if far_desc.setter is not ABSENT:
        far_desc.setter = factory.get_far_value(far_desc.setter)
    return far_desc


def install_descriptor_into_shadow(shadow: RealmObject, key: PropertyKey, near_desc: Descriptor) -> None:
    """Install one descriptor without reshaping protected placeholder slots.

    A configurable slot is overwritten, a non-configurable writable slot only
    receives the value, a non-configurable read-only slot is left alone.

    :param shadow: Placeholder object.
    :param key: Attribute key.
    :param near_desc: Near descriptor.
    """
    existing: Descriptor | None = shadow.get_own_property(key)
    if existing is None or existing.configurable is True:
        shadow.define_own_property(key, near_desc)
        return
    if existing.is_data() is True and existing.writable is True:
        value: object = near_desc.value if near_desc.is_data() is True else None
        shadow.define_own_property(key, Descriptor(value=None if value is ABSENT else value))


def copy_descriptors_into_shadow(
    factory: "ValueFactory",
    shadow: RealmObject,
    far_descriptors: dict[PropertyKey, Descriptor],
) -> None:
    """Install a captured descriptor table on a placeholder.

    :param factory: Factory of the near direction.
    :param shadow: Placeholder object.
    :param far_descriptors: Captured far descriptors.
    """
    for key, far_desc in far_descriptors.items():
        near_desc: Descriptor = to_near_descriptor(factory, far_desc)
        install_descriptor_into_shadow(shadow, key, near_desc)


def copy_far_descriptor_into_shadow(
    factory: "ValueFactory",
    shadow: RealmObject,
    target: RealmObject,
    key: PropertyKey,
) -> None:
    """Mirror the current far descriptor for ``key`` onto the placeholder.

    A repeated copy is always compatible with the earlier one because the far
    value obeys the same attribute invariants.

    :param factory: Factory of the near direction.
    :param shadow: Placeholder object.
    :param target: Far value.
    :param key: Attribute key.
    """
    far_desc: Descriptor | None = target.get_own_property(key)
    if far_desc is None:
        return
    shadow.define_own_property(key, to_near_descriptor(factory, far_desc))


def lock_shadow_target(factory: "ValueFactory", shadow: RealmObject, target: RealmObject) -> None:
    """Freeze the placeholder's shape to match a far value that stopped extending.

    :param factory: Factory of the near direction.
    :param shadow: Placeholder object.
    :param target: Non-extensible far value.
    """
    for key in target.own_keys():
        copy_far_descriptor_into_shadow(factory, shadow, target, key)
    near_proto: object = factory.get_near_value(target.get_prototype_of())
    shadow.set_prototype_of(near_proto)
    shadow.prevent_extensions()


def apply_lifecycle(shadow: RealmObject, lifecycle: Lifecycle) -> None:
    """Apply a captured lock state to the placeholder.

    :param shadow: Placeholder object.
    :param lifecycle: Captured lock state.
    """
    if lifecycle == "frozen":
        freeze(shadow)
    elif lifecycle == "sealed":
        seal(shadow)
    elif lifecycle == "non-extensible":
        shadow.prevent_extensions()
