"""Value factory: converts far values into near values for one direction."""

import weakref

from sequester.errors import InternalRegistrationError
from sequester.errors import UnsupportedValueError
from sequester.handlers import DynamicHandler
from sequester.handlers import HandlerKind
from sequester.handlers import StaticHandler
from sequester.hooks import MarshalHooks
from sequester.identity import IdentityMap
from sequester.logging import get_logger
from sequester.metadata import TargetMeta
from sequester.metadata import create_shadow_target
from sequester.metadata import extract_target_meta
from sequester.objects import RealmObject
from sequester.objects import Symbol
from sequester.objects import is_primitive
from sequester.proxy import ProxyHandler
from sequester.proxy import RealmProxy
from sequester.proxy import create_revoked_proxy
from sequester.realm import Realm

_LOGGER = get_logger(__name__)
LIVE_VALUE_MARKER: Symbol = Symbol.for_key("@@lockerLiveValue")
INTERNAL_ERROR_MESSAGE: str = "Internal Error"


class ValueFactory:
    """Mint and look up near wrappers for far values.

    One factory exists per direction. The guest-facing factory wraps host
    values for the guest realm; its peer wraps guest values for the host
    realm, so that arguments flowing back across the boundary can be resolved
    to the values they stand for.
    """

    near_realm: Realm
    far_realm: Realm
    hooks: MarshalHooks
    identity_map: IdentityMap
    _peer: "ValueFactory | None"
    _allow_static: bool
    _live_marker: Symbol
    _distortions: "weakref.WeakKeyDictionary[RealmObject, RealmObject]"

    def __init__(
        self,
        near_realm: Realm,
        far_realm: Realm,
        hooks: MarshalHooks,
        allow_static: bool = True,
        live_marker: Symbol = LIVE_VALUE_MARKER,
    ) -> None:
        """Initialize a factory.

        :param near_realm: Realm receiving wrappers.
        :param far_realm: Realm whose values are wrapped.
        :param hooks: Hooks used to call and construct far values.
        :param allow_static: Whether unmarked far values get snapshot wrappers.
        :param live_marker: Key whose presence selects the dynamic handler.
        """
        self.near_realm = near_realm
        self.far_realm = far_realm
        self.hooks = hooks
        self.identity_map = IdentityMap()
        self._peer = None
        self._allow_static = allow_static
        self._live_marker = live_marker
        self._distortions = weakref.WeakKeyDictionary()

    def bind_peer(self, peer: "ValueFactory") -> None:
        """Attach the factory of the opposite direction.

        :param peer: Factory converting near values to far values.
        :raises ValueError: If the peer does not mirror this factory's realms.
        """
        if peer.near_realm is not self.far_realm or peer.far_realm is not self.near_realm:
            raise ValueError("peer factory must convert in the opposite direction")
        self._peer = peer

    def _require_peer(self) -> "ValueFactory":
        peer: ValueFactory | None = self._peer
        if peer is None:
            raise RuntimeError("value factory has no peer bound")
        return peer

    def set_distortion(self, far: RealmObject, replacement: RealmObject) -> None:
        """Substitute ``replacement`` whenever ``far`` is wrapped.

        :param far: Far value to hide.
        :param replacement: Far value exposed in its place.
        :raises TypeError: If either value is not a far-realm object.
        """
        if isinstance(far, RealmObject) is False or isinstance(replacement, RealmObject) is False:
            raise TypeError("distortion entries must map realm objects to realm objects")
        self._distortions[far] = replacement

    def get_near_value(self, far: object) -> object:
        """Return the near counterpart of ``far``, minting a wrapper if needed.

        :param far: Far value.
        :returns: Near value; identity stable for objects, fresh for sequences.
        :raises UnsupportedValueError: If ``far`` has no realm meaning.
        """
        if is_primitive(far) is True:
            return far
        if isinstance(far, list) is True:
            return [self.get_near_value(item) for item in far]
        if isinstance(far, tuple) is True:
            return tuple(self.get_near_value(item) for item in far)
        if isinstance(far, RealmObject) is False:
            raise UnsupportedValueError(f"Cannot expose value of type {type(far).__name__} across realms")

        existing: RealmObject | None = self.identity_map.get_near(far)
        if existing is not None:
            return existing
        found, original = self._require_peer().identity_map.get_far(far)
        if found is True:
            return original
        if far.realm is self.near_realm:
            return far
        return self._create_wrapper(far)

    def get_far_value(self, near: object) -> object:
        """Return the far counterpart of a near value.

        :param near: Near value.
        :returns: Far value.
        """
        return self._require_peer().get_near_value(near)

    def get_near_ref(self, far: object) -> object:
        """Look up an already known near counterpart without minting.

        :param far: Far value.
        :returns: Registered near value or ``None``.
        """
        existing: RealmObject | None = self.identity_map.get_near(far)
        if existing is not None:
            return existing
        if isinstance(far, RealmObject) is False:
            return None
        found, original = self._require_peer().identity_map.get_far(far)
        if found is True:
            return original
        return None

    def select_handler_kind(self, meta: TargetMeta) -> HandlerKind:
        """Choose the wrapper strategy for one far value.

        :param meta: Captured metadata.
        :returns: ``"dynamic"`` when live views are forced or the marker is present.
        """
        if self._allow_static is False:
            return "dynamic"
        if self._live_marker in meta.descriptors:
            return "dynamic"
        return "static"

    def _create_wrapper(self, far: RealmObject) -> RealmProxy:
        """Mint, register and return the wrapper for ``far``.

        :param far: Far value not yet known to the identity map.
        :returns: New wrapper.
        :raises InternalRegistrationError: If the identity map rejected the wrapper.
        """
        target: RealmObject = self._distortions.get(far, far)
        meta: TargetMeta = extract_target_meta(target)
        shadow: RealmObject = create_shadow_target(target, self.near_realm)

        wrapper: RealmProxy
        if meta.broken is True:
            _LOGGER.warning(
                "Revoking wrapper for a %s value that could not be introspected",
                self.far_realm.name,
            )
            wrapper = create_revoked_proxy(shadow)
        else:
            kind: HandlerKind = self.select_handler_kind(meta)
            handler: ProxyHandler
            if kind == "dynamic":
                handler = DynamicHandler(self, target)
            else:
                handler = StaticHandler(self, target, meta)
            wrapper = RealmProxy(shadow, handler)
            _LOGGER.debug(
                "Minted %s wrapper for %s value in realm %r",
                kind,
                self.far_realm.name,
                self.near_realm.name,
            )

        registered: bool = True
        try:
            lookup_key: RealmObject | None = far if target is not far else None
            self.identity_map.set_entries(wrapper, target, lookup_key)
        except Exception:
            registered = False
        if registered is False:
            wrapper.revoke()
            _LOGGER.warning("Failed to register a wrapper in realm %r", self.near_realm.name)
            raise InternalRegistrationError(self.near_realm.create_error("Error", INTERNAL_ERROR_MESSAGE))
        return wrapper
