"""Custom error types for sequester."""


class SequesterError(Exception):
    """Base class for all sequester errors."""


class RealmException(SequesterError):
    """Raised when a realm throws a value through its native mechanism."""

    value: object

    def __init__(self, value: object) -> None:
        """Initialize a realm throw.

        :param value: Realm value being thrown, usually an error object.
        """
        self.value = value
        super().__init__(_describe_thrown_value(value))


class CrossingError(RealmException):
    """Raised when a failure on the far side was normalized for the near side."""


class RevokedProxyError(RealmException):
    """Raised for any operation on a revoked wrapper."""


class InternalRegistrationError(RealmException):
    """Raised when a freshly minted wrapper could not be registered."""


class UnsupportedValueError(SequesterError):
    """Raised when a Python value with no realm meaning reaches the membrane."""


def _describe_thrown_value(value: object) -> str:
    """Build a short, side-effect free description of a thrown value.

    Only own data attributes are consulted so that describing an error never
    runs realm code.

    :param value: Thrown realm value.
    :returns: Human-readable description.
    """
    describe: object = getattr(value, "describe_error", None)
    if callable(describe) is True:
        try:
            description: object = describe()
        except Exception:
            return "<unprintable realm value>"
        if isinstance(description, str) is True:
            return description
    return repr(value)
