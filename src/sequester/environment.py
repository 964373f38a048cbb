"""Virtual environment bootstrap: one guest realm wired to a host realm."""

from sequester.broker import MembraneBroker
from sequester.factory import LIVE_VALUE_MARKER
from sequester.hooks import MarshalHooks
from sequester.logging import get_logger
from sequester.objects import Descriptor
from sequester.objects import PropertyKey
from sequester.objects import RealmObject
from sequester.objects import Symbol
from sequester.objects import get_own_property_descriptors
from sequester.realm import Realm

_LOGGER = get_logger(__name__)
DEFAULT_GUEST_REALM_NAME: str = "guest"

Endowments = dict[PropertyKey, object] | RealmObject


def _endowment_descriptors(endowments: Endowments, host_realm: Realm) -> dict[PropertyKey, Descriptor]:
    """Turn endowments into a host descriptor table.

    A host object contributes its own descriptors verbatim; a mapping
    contributes writable, non-enumerable, configurable data attributes.

    :param endowments: Host object or mapping of host values.
    :param host_realm: Realm the endowments must belong to.
    :returns: Host descriptor table.
    :raises TypeError: If the endowments are neither a mapping nor a host object.
    """
    if isinstance(endowments, RealmObject) is True:
        if endowments.realm is not host_realm:
            raise TypeError("endowments object must belong to the host realm")
        return get_own_property_descriptors(endowments)
    if isinstance(endowments, dict) is False:
        raise TypeError("endowments must be a dict or a host realm object")

    table: dict[PropertyKey, Descriptor] = {}
    for key, value in endowments.items():
        if isinstance(key, (str, Symbol)) is False:
            raise TypeError("endowment keys must be strings or symbols")
        table[key] = Descriptor.data(value, enumerable=False)
    return table


class VirtualEnvironment:
    """Guest realm whose global namespace exposes selected host values.

    Construction binds every intrinsic the two realms share, so errors and
    built-in prototypes map onto the guest's own copies, then remaps the
    endowments onto the guest global object.
    """

    host_realm: Realm
    guest_realm: Realm
    broker: MembraneBroker

    def __init__(
        self,
        host_realm: Realm,
        endowments: Endowments | None = None,
        distortions: dict[RealmObject, RealmObject] | None = None,
        hooks: MarshalHooks | None = None,
        guest_realm: Realm | None = None,
        live_marker: Symbol = LIVE_VALUE_MARKER,
    ) -> None:
        """Initialize and bootstrap an environment.

        :param host_realm: Trusted realm.
        :param endowments: Host values to expose on the guest global object.
        :param distortions: Optional ``host value -> replacement`` table.
        :param hooks: Host-supplied marshaling hooks.
        :param guest_realm: Existing guest realm, created when omitted.
        :param live_marker: Key selecting the dynamic handler.
        """
        self.host_realm = host_realm
        self.guest_realm = Realm(DEFAULT_GUEST_REALM_NAME) if guest_realm is None else guest_realm
        self.broker = MembraneBroker(
            host_realm,
            self.guest_realm,
            hooks=hooks,
            distortions=distortions,
            live_marker=live_marker,
        )
        self._bind_intrinsics()
        if endowments is not None:
            self.remap_endowments(endowments)

    @property
    def global_object(self) -> RealmObject:
        return self.guest_realm.global_object

    def _bind_intrinsics(self) -> None:
        """Bind the global objects and every intrinsic present in both realms as unforgeable pairs."""
        guest_names: set[str] = set(self.guest_realm.intrinsic_names())
        bound: int = 0
        for name in self.host_realm.intrinsic_names():
            if name not in guest_names:
                continue
            self.broker.set_identity(self.guest_realm.intrinsic(name), self.host_realm.intrinsic(name))
            bound += 1
        self.broker.set_identity(self.guest_realm.global_object, self.host_realm.global_object)
        _LOGGER.debug("Bound %d shared intrinsics", bound)

    def remap_endowments(self, endowments: Endowments) -> None:
        """Expose endowments on the guest global object.

        :param endowments: Host object or mapping of host values.
        """
        table: dict[PropertyKey, Descriptor] = _endowment_descriptors(endowments, self.host_realm)
        self.broker.remap(self.guest_realm.global_object, self.host_realm.global_object, table)

    def to_guest_value(self, host_value: object) -> object:
        """Return the guest counterpart of a host value.

        :param host_value: Host value.
        :returns: Guest value.
        """
        return self.broker.to_guest_value(host_value)

    def to_host_value(self, guest_value: object) -> object:
        """Return the host counterpart of a guest value.

        :param guest_value: Guest value.
        :returns: Host value.
        """
        return self.broker.to_host_value(guest_value)

    def get_global(self, name: PropertyKey) -> object:
        """Read one binding from the guest global namespace.

        :param name: Binding name.
        :returns: Guest value.
        """
        return self.guest_realm.global_object.get(name)
