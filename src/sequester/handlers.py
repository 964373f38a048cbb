"""Wrapper handlers: the static snapshot strategy and the dynamic live strategy.

Both handlers implement the same capability set over a placeholder target.
Calls and constructs always reach the real far value through the error
boundary; the strategies only differ in how attribute-level operations are
answered.
"""

from typing import TYPE_CHECKING
from typing import Literal

from sequester.boundary import construct_across
from sequester.boundary import guard_far_operation
from sequester.boundary import invoke_across
from sequester.metadata import TargetMeta
from sequester.metadata import apply_lifecycle
from sequester.metadata import copy_descriptors_into_shadow
from sequester.metadata import copy_far_descriptor_into_shadow
from sequester.metadata import lock_shadow_target
from sequester.metadata import to_far_descriptor
from sequester.metadata import to_near_descriptor
from sequester.objects import Descriptor
from sequester.objects import PropertyKey
from sequester.objects import RealmObject
from sequester.objects import define_property_or_throw
from sequester.proxy import ProxyHandler

if TYPE_CHECKING:
    from sequester.factory import ValueFactory

HandlerKind = Literal["static", "dynamic"]


class _MembraneHandler(ProxyHandler):
    """Routing shared by both strategies for call and construct."""

    kind: HandlerKind
    _factory: "ValueFactory"
    _target: RealmObject

    def __init__(self, factory: "ValueFactory", target: RealmObject) -> None:
        """Bind the handler to its far value.

        :param factory: Factory of the near direction.
        :param target: Far value every call and construct is forwarded to.
        """
        self._factory = factory
        self._target = target

    @property
    def far_target(self) -> RealmObject:
        return self._target

    def apply(self, target: RealmObject, this_arg: object, args: list[object]) -> object:
        return invoke_across(self._factory, self._target, this_arg, args)

    def construct(self, target: RealmObject, args: list[object], new_target: object) -> object:
        return construct_across(self._factory, self._target, args, new_target)


class StaticHandler(_MembraneHandler):
    """Isolated view frozen at snapshot time.

    The first operation installs the captured parent, descriptors and lock
    state on the placeholder. From then on every attribute-level operation is
    answered by the placeholder alone; later far-side mutations are invisible
    and near-side writes never reach the far value.
    """

    kind: HandlerKind = "static"
    _meta: TargetMeta | None
    _initialized: bool

    def __init__(self, factory: "ValueFactory", target: RealmObject, meta: TargetMeta) -> None:
        """Initialize a static handler.

        :param factory: Factory of the near direction.
        :param target: Far value.
        :param meta: Metadata captured when the wrapper was minted.
        """
        super().__init__(factory, target)
        self._meta = meta
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _initialize(self, shadow: RealmObject) -> None:
        """Populate the placeholder from the snapshot, exactly once.

        The state flips before any work so that re-entrant operations
        triggered while converting the snapshot do not restart it.

        :param shadow: Placeholder object.
        """
        if self._initialized is True:
            return
        self._initialized = True
        meta: TargetMeta | None = self._meta
        self._meta = None
        if meta is None:
            return

        near_proto: object = self._factory.get_near_value(meta.proto)
        shadow.set_prototype_of(near_proto)
        copy_descriptors_into_shadow(self._factory, shadow, meta.descriptors)
        apply_lifecycle(shadow, meta.lifecycle)

    def get_prototype_of(self, target: RealmObject) -> RealmObject | None:
        self._initialize(target)
        return target.get_prototype_of()

    def set_prototype_of(self, target: RealmObject, proto: object) -> bool:
        self._initialize(target)
        return target.set_prototype_of(proto)

    def is_extensible(self, target: RealmObject) -> bool:
        self._initialize(target)
        return target.is_extensible()

    def prevent_extensions(self, target: RealmObject) -> bool:
        self._initialize(target)
        return target.prevent_extensions()

    def get_own_property(self, target: RealmObject, key: PropertyKey) -> Descriptor | None:
        self._initialize(target)
        return target.get_own_property(key)

    def define_own_property(self, target: RealmObject, key: PropertyKey, desc: Descriptor) -> bool:
        self._initialize(target)
        # throws instead of returning False for a locked slot
        define_property_or_throw(target, key, desc)
        return True

    def has(self, target: RealmObject, key: PropertyKey) -> bool:
        self._initialize(target)
        return target.has_property(key)

    def get(self, target: RealmObject, key: PropertyKey, receiver: object) -> object:
        self._initialize(target)
        return target.get(key, receiver)

    def set(self, target: RealmObject, key: PropertyKey, value: object, receiver: object) -> bool:
        self._initialize(target)
        return target.set(key, value, receiver)

    def delete(self, target: RealmObject, key: PropertyKey) -> bool:
        self._initialize(target)
        return target.delete(key)

    def own_keys(self, target: RealmObject) -> list[PropertyKey]:
        self._initialize(target)
        return target.own_keys()

    def apply(self, target: RealmObject, this_arg: object, args: list[object]) -> object:
        self._initialize(target)
        return super().apply(target, this_arg, args)

    def construct(self, target: RealmObject, args: list[object], new_target: object) -> object:
        self._initialize(target)
        return super().construct(target, args, new_target)


class DynamicHandler(_MembraneHandler):
    """Live two-way view over the far value.

    Nothing is cached. The placeholder only records what the invariants
    require: attributes observed as non-configurable and the lock-down of a
    far value that stopped extending.
    """

    kind: HandlerKind = "dynamic"

    def get_prototype_of(self, target: RealmObject) -> RealmObject | None:
        far_proto: object = guard_far_operation(self._factory, self._target.get_prototype_of)
        return self._factory.get_near_value(far_proto)  # type: ignore[return-value]

    def set_prototype_of(self, target: RealmObject, proto: object) -> bool:
        far_proto: object = self._factory.get_far_value(proto)
        return guard_far_operation(self._factory, lambda: self._target.set_prototype_of(far_proto))

    def _lock_down(self, shadow: RealmObject) -> None:
        guard_far_operation(self._factory, lambda: lock_shadow_target(self._factory, shadow, self._target))

    def is_extensible(self, target: RealmObject) -> bool:
        if target.is_extensible() is False:
            return False
        far_extensible: bool = guard_far_operation(self._factory, self._target.is_extensible)
        if far_extensible is False:
            self._lock_down(target)
            return False
        return True

    def prevent_extensions(self, target: RealmObject) -> bool:
        if target.is_extensible() is False:
            return True
        far_result: bool = guard_far_operation(self._factory, self._target.prevent_extensions)
        far_extensible: bool = guard_far_operation(self._factory, self._target.is_extensible)
        if far_extensible is False:
            self._lock_down(target)
        return far_result

    def get_own_property(self, target: RealmObject, key: PropertyKey) -> Descriptor | None:
        far_desc: Descriptor | None = guard_far_operation(
            self._factory,
            lambda: self._target.get_own_property(key),
        )
        if far_desc is None:
            return None
        if far_desc.configurable is False:
            guard_far_operation(
                self._factory,
                lambda: copy_far_descriptor_into_shadow(self._factory, target, self._target, key),
            )
        return to_near_descriptor(self._factory, far_desc)

    def define_own_property(self, target: RealmObject, key: PropertyKey, desc: Descriptor) -> bool:
        far_desc: Descriptor = to_far_descriptor(self._factory, desc)
        accepted: bool = guard_far_operation(
            self._factory,
            lambda: self._target.define_own_property(key, far_desc),
        )
        if accepted is True:
            far_current: Descriptor | None = guard_far_operation(
                self._factory,
                lambda: self._target.get_own_property(key),
            )
            if far_current is not None and far_current.configurable is False:
                guard_far_operation(
                    self._factory,
                    lambda: copy_far_descriptor_into_shadow(self._factory, target, self._target, key),
                )
        # reported as accepted even when the far value silently ignored it
        return True

    def has(self, target: RealmObject, key: PropertyKey) -> bool:
        return guard_far_operation(self._factory, lambda: self._target.has_property(key))

    def get(self, target: RealmObject, key: PropertyKey, receiver: object) -> object:
        far_receiver: object = self._factory.get_far_value(receiver)
        far_value: object = guard_far_operation(
            self._factory,
            lambda: self._target.get(key, far_receiver),
        )
        return self._factory.get_near_value(far_value)

    def set(self, target: RealmObject, key: PropertyKey, value: object, receiver: object) -> bool:
        far_value: object = self._factory.get_far_value(value)
        far_receiver: object = self._factory.get_far_value(receiver)
        return guard_far_operation(
            self._factory,
            lambda: self._target.set(key, far_value, far_receiver),
        )

    def delete(self, target: RealmObject, key: PropertyKey) -> bool:
        return guard_far_operation(self._factory, lambda: self._target.delete(key))

    def own_keys(self, target: RealmObject) -> list[PropertyKey]:
        return guard_far_operation(self._factory, self._target.own_keys)
