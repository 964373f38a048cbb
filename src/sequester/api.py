"""User-facing API entrypoints for sequester."""

from sequester.builder import MembraneBroker
from sequester.builder import VirtualEnvironment
from sequester.environment import Endowments
from sequester.hooks import MarshalHooks
from sequester.objects import RealmObject
from sequester.realm import Realm


def _validate_distortions(distortions: object) -> dict[RealmObject, RealmObject] | None:
    """Validate a distortion table.

    :param distortions: Candidate table.
    :returns: The table, or ``None`` when omitted.
    :raises TypeError: If the table is not a dict of realm objects.
    """
    if distortions is None:
        return None
    if isinstance(distortions, dict) is False:
        raise TypeError("distortions must be a dict mapping realm objects to realm objects")
    for source, replacement in distortions.items():
        if isinstance(source, RealmObject) is False or isinstance(replacement, RealmObject) is False:
            raise TypeError("distortions must be a dict mapping realm objects to realm objects")
    return distortions


def create_virtual_environment(
    host_realm: Realm,
    endowments: Endowments | None = None,
    distortions: dict[RealmObject, RealmObject] | None = None,
    hooks: MarshalHooks | None = None,
    guest_realm: Realm | None = None,
) -> VirtualEnvironment:
    """Create a guest realm whose global namespace exposes host endowments.

    :param host_realm: Trusted realm.
    :param endowments: Host object or mapping of host values to expose.
    :param distortions: Optional ``host value -> replacement`` table.
    :param hooks: Host-supplied marshaling hooks.
    :param guest_realm: Existing guest realm, created when omitted.
    :returns: Bootstrapped environment.
    """
    return VirtualEnvironment(
        host_realm,
        endowments=endowments,
        distortions=_validate_distortions(distortions),
        hooks=hooks,
        guest_realm=guest_realm,
    )


def create_membrane(
    host_realm: Realm,
    guest_realm: Realm,
    distortions: dict[RealmObject, RealmObject] | None = None,
    hooks: MarshalHooks | None = None,
) -> MembraneBroker:
    """Create a bare broker between two realms without any bootstrap.

    :param host_realm: Trusted realm.
    :param guest_realm: Sandboxed realm.
    :param distortions: Optional ``host value -> replacement`` table.
    :param hooks: Host-supplied marshaling hooks.
    :returns: Broker exposing ``to_guest_value``.
    """
    return MembraneBroker(
        host_realm,
        guest_realm,
        hooks=hooks,
        distortions=_validate_distortions(distortions),
    )
