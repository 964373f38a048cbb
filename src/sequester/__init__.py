"""Public package API for sequester."""

from sequester.api import create_membrane
from sequester.api import create_virtual_environment
from sequester.broker import MembraneBroker
from sequester.environment import VirtualEnvironment
from sequester.errors import CrossingError
from sequester.errors import InternalRegistrationError
from sequester.errors import RealmException
from sequester.errors import RevokedProxyError
from sequester.errors import SequesterError
from sequester.errors import UnsupportedValueError
from sequester.factory import LIVE_VALUE_MARKER
from sequester.hooks import MarshalHooks
from sequester.hooks import RealmMarshalHooks
from sequester.objects import Descriptor
from sequester.objects import RealmFunction
from sequester.objects import RealmObject
from sequester.objects import Symbol
from sequester.proxy import ProxyHandler
from sequester.proxy import RealmProxy
from sequester.realm import Realm

__all__: list[str] = [
    "create_membrane",
    "create_virtual_environment",
    "CrossingError",
    "Descriptor",
    "InternalRegistrationError",
    "LIVE_VALUE_MARKER",
    "MarshalHooks",
    "MembraneBroker",
    "ProxyHandler",
    "Realm",
    "RealmException",
    "RealmFunction",
    "RealmMarshalHooks",
    "RealmObject",
    "RealmProxy",
    "RevokedProxyError",
    "SequesterError",
    "Symbol",
    "UnsupportedValueError",
    "VirtualEnvironment",
]
