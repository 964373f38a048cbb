"""Membrane broker: shared per-sandbox conversion state."""

from sequester.factory import LIVE_VALUE_MARKER
from sequester.factory import ValueFactory
from sequester.hooks import MarshalHooks
from sequester.hooks import RealmMarshalHooks
from sequester.logging import get_logger
from sequester.metadata import to_near_descriptor
from sequester.objects import Descriptor
from sequester.objects import PropertyKey
from sequester.objects import RealmObject
from sequester.objects import Symbol
from sequester.objects import define_property_or_throw
from sequester.realm import Realm

_LOGGER = get_logger(__name__)


def _validate_realm_pair(host_realm: object, guest_realm: object) -> None:
    """Validate the realms handed to a broker.

    :param host_realm: Candidate host realm.
    :param guest_realm: Candidate guest realm.
    :raises TypeError: If either value is not a realm.
    :raises ValueError: If both sides are the same realm.
    """
    if isinstance(host_realm, Realm) is False or isinstance(guest_realm, Realm) is False:
        raise TypeError("host_realm and guest_realm must be Realm instances")
    if host_realm is guest_realm:
        raise ValueError("host_realm and guest_realm must be distinct realms")


def _validate_owned_object(value: object, realm: Realm, label: str) -> RealmObject:
    """Ensure ``value`` is an object owned by ``realm``.

    :param value: Candidate object.
    :param realm: Expected owner.
    :param label: Argument name for error messages.
    :returns: The validated object.
    :raises TypeError: If ``value`` is not an object of ``realm``.
    """
    if isinstance(value, RealmObject) is False:
        raise TypeError(f"{label} must be a realm object")
    if value.realm is not realm:
        raise TypeError(f"{label} must belong to realm {realm.name!r}")
    return value


class MembraneBroker:
    """Hold the identity maps and distortion table of one sandbox.

    The broker owns one factory per direction. Host values reach the guest
    through :meth:`to_guest_value`; guest values handed back as arguments,
    receivers or descriptor values go through :meth:`to_host_value`.
    """

    host_realm: Realm
    guest_realm: Realm
    _guest_factory: ValueFactory
    _host_factory: ValueFactory

    def __init__(
        self,
        host_realm: Realm,
        guest_realm: Realm,
        hooks: MarshalHooks | None = None,
        guest_hooks: MarshalHooks | None = None,
        distortions: dict[RealmObject, RealmObject] | None = None,
        live_marker: Symbol = LIVE_VALUE_MARKER,
    ) -> None:
        """Initialize a broker.

        :param host_realm: Trusted realm whose values are exposed.
        :param guest_realm: Sandboxed realm receiving wrappers.
        :param hooks: Host-supplied hooks for calling host values.
        :param guest_hooks: Hooks for calling guest values from the host.
        :param distortions: Optional ``host value -> replacement`` table.
        :param live_marker: Key selecting the dynamic handler.
        """
        _validate_realm_pair(host_realm, guest_realm)
        self.host_realm = host_realm
        self.guest_realm = guest_realm
        host_hooks: MarshalHooks = RealmMarshalHooks() if hooks is None else hooks
        reverse_hooks: MarshalHooks = RealmMarshalHooks() if guest_hooks is None else guest_hooks
        self._guest_factory = ValueFactory(guest_realm, host_realm, host_hooks, allow_static=True, live_marker=live_marker)
        self._host_factory = ValueFactory(host_realm, guest_realm, reverse_hooks, allow_static=False, live_marker=live_marker)
        self._guest_factory.bind_peer(self._host_factory)
        self._host_factory.bind_peer(self._guest_factory)
        if distortions is not None:
            for host_value, replacement in distortions.items():
                self.set_distortion(host_value, replacement)

    @property
    def guest_factory(self) -> ValueFactory:
        return self._guest_factory

    @property
    def host_factory(self) -> ValueFactory:
        return self._host_factory

    def to_guest_value(self, host_value: object) -> object:
        """Return the guest counterpart of a host value.

        :param host_value: Host value.
        :returns: Guest value, identity stable for objects.
        """
        return self._guest_factory.get_near_value(host_value)

    def to_host_value(self, guest_value: object) -> object:
        """Return the host counterpart of a guest value.

        :param guest_value: Guest value.
        :returns: Host value.
        """
        return self._host_factory.get_near_value(guest_value)

    def get_guest_ref(self, host_value: object) -> object:
        """Look up the registered guest counterpart of a host value without minting.

        :param host_value: Host value.
        :returns: Guest value or ``None``.
        """
        return self._guest_factory.get_near_ref(host_value)

    def set_distortion(self, host_value: RealmObject, replacement: RealmObject) -> None:
        """Expose ``replacement`` to the guest wherever ``host_value`` would appear.

        :param host_value: Host value to hide.
        :param replacement: Host value exposed instead.
        :raises TypeError: If either value is not a host-realm object.
        """
        _validate_owned_object(host_value, self.host_realm, "host_value")
        _validate_owned_object(replacement, self.host_realm, "replacement")
        self._guest_factory.set_distortion(host_value, replacement)

    def set_identity(self, guest_value: RealmObject, host_value: RealmObject) -> None:
        """Bind a pre-existing guest value as the permanent counterpart of a host singleton.

        :param guest_value: Guest value.
        :param host_value: Host value.
        :raises TypeError: If the values do not belong to their expected realms.
        """
        _validate_owned_object(guest_value, self.guest_realm, "guest_value")
        _validate_owned_object(host_value, self.host_realm, "host_value")
        self._guest_factory.identity_map.pin(guest_value, host_value)

    def remap(
        self,
        guest_target: RealmObject,
        host_target: RealmObject,
        attribute_table: dict[PropertyKey, Descriptor],
    ) -> None:
        """Install converted host attributes directly on an existing guest object.

        Identity is recorded first so that attributes referring back to
        ``host_target`` resolve to ``guest_target``.

        :param guest_target: Existing guest object receiving the attributes.
        :param host_target: Host object it stands for.
        :param attribute_table: Host descriptors keyed by attribute key.
        :raises RealmException: If a guest slot refuses an attribute.
        """
        self.set_identity(guest_target, host_target)
        for key, host_desc in attribute_table.items():
            guest_desc: Descriptor = to_near_descriptor(self._guest_factory, host_desc)
            define_property_or_throw(guest_target, key, guest_desc)
        _LOGGER.debug(
            "Remapped %d attributes onto guest object in realm %r",
            len(attribute_table),
            self.guest_realm.name,
        )
