"""Marshaling hooks: the only sanctioned way to call across the boundary."""

from typing import Protocol

from sequester.objects import RealmObject


class MarshalHooks(Protocol):
    """Host-supplied call and construct entry points.

    Neither side calls a foreign function directly; the environment may refuse
    invocations that originate from a torn-down or unauthorized context.
    """

    def invoke(self, function: RealmObject, this_arg: object, args: list[object]) -> object:
        """Call ``function`` with ``this_arg`` and ``args``."""
        ...

    def construct(self, ctor: RealmObject, args: list[object], new_target: object) -> object:
        """Instantiate ``ctor`` with ``args`` and ``new_target``."""
        ...


class RealmMarshalHooks:
    """Default hooks that delegate to the realm object model."""

    def invoke(self, function: RealmObject, this_arg: object, args: list[object]) -> object:
        """Call one realm function.

        :param function: Callable realm object.
        :param this_arg: Receiver.
        :param args: Positional arguments.
        :returns: Call result.
        """
        return function.call(this_arg, args)

    def construct(self, ctor: RealmObject, args: list[object], new_target: object) -> object:
        """Instantiate one realm constructor.

        :param ctor: Constructor realm object.
        :param args: Positional arguments.
        :param new_target: Constructor whose ``prototype`` seeds the instance.
        :returns: New instance.
        """
        return ctor.construct(args, new_target)
