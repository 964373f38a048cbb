"""Error boundary for every call, construct and live read across the membrane.

A failure raised on the far side never reaches near-side code as-is. Only the
message survives; it is re-raised as a fresh near-realm error built from the
near counterpart of the far error's constructor, or as a plain near ``Error``
when no counterpart is registered. Far stacks, linked data and Python
exception chains stay behind.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING
from typing import NoReturn
from typing import TypeVar

from sequester.errors import CrossingError
from sequester.errors import RealmException
from sequester.logging import get_logger
from sequester.objects import RealmObject
from sequester.objects import is_primitive

if TYPE_CHECKING:
    from sequester.factory import ValueFactory

_LOGGER = get_logger(__name__)
_ResultT = TypeVar("_ResultT")


class _FarFailure:
    """Message and constructor salvaged from a far-side failure."""

    message: str
    constructor: object

    def __init__(self, message: str, constructor: object) -> None:
        self.message = message
        self.constructor = constructor


def _coerce_message(message: object) -> str:
    """Reduce a far message to a plain string.

    :param message: Value read from the far failure.
    :returns: The message text, or ``""`` when it is not a primitive.
    """
    if message is None:
        return ""
    if isinstance(message, str) is True:
        return message
    if is_primitive(message) is True:
        return str(message)
    return ""


def _is_near_failure(factory: "ValueFactory", exc: RealmException) -> bool:
    """Report whether ``exc`` already carries a near-realm value.

    :param factory: Factory of the near direction.
    :param exc: Realm throw.
    :returns: ``True`` when the thrown value belongs to the near realm.
    """
    thrown: object = exc.value
    if isinstance(thrown, RealmObject) is False:
        return False
    return thrown.realm is factory.near_realm


def _capture_failure(exc: Exception) -> _FarFailure:
    """Salvage the message and constructor of a far-side failure.

    Reading the far error can itself fail; the boundary then falls back to an
    empty message with no constructor.

    :param exc: Failure raised while running far-side code.
    :returns: Salvaged failure data.
    """
    if isinstance(exc, RealmException) is False:
        return _FarFailure(_coerce_message(str(exc)), type(exc))

    thrown: object = exc.value
    if isinstance(thrown, RealmObject) is False:
        return _FarFailure(_coerce_message(thrown), None)
    try:
        message: object = thrown.get("message")
        constructor: object = thrown.get("constructor")
    except Exception:
        return _FarFailure("", None)
    return _FarFailure(_coerce_message(message), constructor)


def _build_near_error(factory: "ValueFactory", failure: _FarFailure) -> RealmObject:
    """Create the near-realm error that replaces a far failure.

    :param factory: Factory of the near direction.
    :param failure: Salvaged failure data.
    :returns: Near-realm error object.
    """
    try:
        near_constructor: object = factory.get_near_ref(failure.constructor)
        if isinstance(near_constructor, RealmObject) is False:
            raise LookupError("no near counterpart for far error constructor")
        created: object = near_constructor.construct([failure.message], near_constructor)
        if isinstance(created, RealmObject) is False:
            raise TypeError("near error constructor returned a non-object")
        return created
    except Exception:
        return factory.near_realm.create_error("Error", failure.message)


def raise_near_error(factory: "ValueFactory", failure: _FarFailure) -> NoReturn:
    """Throw the near replacement of a far failure.

    :param factory: Factory of the near direction.
    :param failure: Salvaged failure data.
    :raises CrossingError: Always.
    """
    near_error: RealmObject = _build_near_error(factory, failure)
    _LOGGER.debug(
        "Normalized far failure from realm %r into realm %r",
        factory.far_realm.name,
        factory.near_realm.name,
    )
    raise CrossingError(near_error)


def guard_far_operation(factory: "ValueFactory", operation: Callable[[], _ResultT]) -> _ResultT:
    """Run far-side work and normalize any far failure it raises.

    Failures that already carry a near-realm value propagate unchanged.

    :param factory: Factory of the near direction.
    :param operation: Zero-argument callable doing the far-side work.
    :returns: Result of ``operation``.
    :raises CrossingError: If far-side work failed.
    """
    failure: _FarFailure | None = None
    try:
        return operation()
    except RealmException as exc:
        if _is_near_failure(factory, exc) is True:
            raise
        failure = _capture_failure(exc)
    except Exception as exc:
        failure = _capture_failure(exc)
    # raised outside the handler so the far exception is not chained as context
    raise_near_error(factory, failure)


def invoke_across(
    factory: "ValueFactory",
    far_function: RealmObject,
    near_this: object,
    near_args: list[object],
) -> object:
    """Call a far function on behalf of near-side code.

    :param factory: Factory of the near direction.
    :param far_function: Far callable.
    :param near_this: Near receiver.
    :param near_args: Near arguments.
    :returns: Near form of the far result.
    :raises CrossingError: If the far call failed.
    """

    def run() -> object:
        far_this: object = factory.get_far_value(near_this)
        far_args: list[object] = [factory.get_far_value(arg) for arg in near_args]
        return factory.hooks.invoke(far_function, far_this, far_args)

    far_result: object = guard_far_operation(factory, run)
    return factory.get_near_value(far_result)


def construct_across(
    factory: "ValueFactory",
    far_ctor: RealmObject,
    near_args: list[object],
    near_new_target: object,
) -> object:
    """Instantiate a far constructor on behalf of near-side code.

    :param factory: Factory of the near direction.
    :param far_ctor: Far constructor.
    :param near_args: Near arguments.
    :param near_new_target: Near constructor seeding the instance.
    :returns: Near form of the new instance.
    :raises CrossingError: If the far construction failed.
    """

    def run() -> object:
        far_new_target: object = factory.get_far_value(near_new_target)
        far_args: list[object] = [factory.get_far_value(arg) for arg in near_args]
        return factory.hooks.construct(far_ctor, far_args, far_new_target)

    far_result: object = guard_far_operation(factory, run)
    return factory.get_near_value(far_result)
