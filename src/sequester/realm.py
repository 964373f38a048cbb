"""Execution realms and their intrinsic objects."""

from typing import NoReturn

from sequester.errors import RealmException
from sequester.objects import ABSENT
from sequester.objects import Behavior
from sequester.objects import Descriptor
from sequester.objects import PropertyKey
from sequester.objects import RealmFunction
from sequester.objects import RealmObject

ERROR_KINDS: tuple[str, ...] = (
    "Error",
    "TypeError",
    "RangeError",
    "ReferenceError",
    "SyntaxError",
    "EvalError",
    "URIError",
)


def _noop_behavior(this_arg: object, args: list[object]) -> object:
    _ = this_arg
    _ = args
    return None


class Realm:
    """One execution context with its own intrinsics and global namespace."""

    name: str
    object_prototype: RealmObject
    function_prototype: RealmObject
    global_object: RealmObject
    _intrinsics: dict[str, RealmObject]

    def __init__(self, name: str) -> None:
        """Build a realm and all of its intrinsics.

        :param name: Realm label used in diagnostics and realm-local stacks.
        """
        self.name = name
        self._intrinsics = {}
        self.object_prototype = RealmObject(self, None)
        self.function_prototype = RealmObject(self, self.object_prototype)
        self._intrinsics["Object.prototype"] = self.object_prototype
        self._intrinsics["Function.prototype"] = self.function_prototype

        object_ctor: RealmFunction = self._create_constructor("Object", self._object_behavior, self.object_prototype)
        function_ctor: RealmFunction = self._create_constructor("Function", self._function_behavior, self.function_prototype)
        self._intrinsics["Object"] = object_ctor
        self._intrinsics["Function"] = function_ctor

        error_prototype: RealmObject | None = None
        for kind in ERROR_KINDS:
            parent: RealmObject = self.object_prototype if error_prototype is None else error_prototype
            prototype: RealmObject = RealmObject(self, parent)
            prototype.define_own_property("name", Descriptor.data(kind, enumerable=False))
            prototype.define_own_property("message", Descriptor.data("", enumerable=False))
            ctor: RealmFunction = self._create_constructor(kind, self._make_error_behavior(kind), prototype)
            self._intrinsics[kind] = ctor
            self._intrinsics[f"{kind}.prototype"] = prototype
            if error_prototype is None:
                error_prototype = prototype

        self.global_object = RealmObject(self, self.object_prototype)
        for intrinsic_name, intrinsic in self._intrinsics.items():
            if "." in intrinsic_name:
                continue
            self.global_object.define_own_property(intrinsic_name, Descriptor.data(intrinsic, enumerable=False))
        self.global_object.define_own_property("globalThis", Descriptor.data(self.global_object, enumerable=False))

    def _create_constructor(self, name: str, behavior: Behavior, prototype: RealmObject) -> RealmFunction:
        ctor: RealmFunction = RealmFunction(self, behavior, self.function_prototype, is_constructor=True)
        ctor.define_own_property("name", Descriptor.data(name, writable=False, enumerable=False))
        ctor.define_own_property("length", Descriptor.data(1, writable=False, enumerable=False))
        ctor.define_own_property(
            "prototype",
            Descriptor.data(prototype, writable=False, enumerable=False, configurable=False),
        )
        prototype.define_own_property("constructor", Descriptor.data(ctor, enumerable=False))
        return ctor

    def _object_behavior(self, this_arg: object, args: list[object]) -> object:
        if len(args) > 0 and isinstance(args[0], RealmObject) is True:
            return args[0]
        if isinstance(this_arg, RealmObject) is True:
            return this_arg
        return RealmObject(self, self.object_prototype)

    def _function_behavior(self, this_arg: object, args: list[object]) -> object:
        _ = this_arg
        _ = args
        self.throw_error("EvalError", "Code evaluation is not supported")

    def _make_error_behavior(self, kind: str) -> Behavior:
        """Build the behaviour of one error constructor.

        :param kind: Error family name.
        :returns: Behaviour that initializes ``message`` and a realm-local ``stack``.
        """

        def error_behavior(this_arg: object, args: list[object]) -> object:
            instance: object = this_arg
            if isinstance(instance, RealmObject) is False or instance is self.global_object:
                return self.intrinsic(kind).construct(args)
            message: object = args[0] if len(args) > 0 else None
            if message is not None:
                instance.define_own_property("message", Descriptor.data(str(message), enumerable=False))
            stack: str = f"{kind}: {'' if message is None else message}\n    at <{self.name}>"
            instance.define_own_property("stack", Descriptor.data(stack, enumerable=False))
            return None

        return error_behavior

    def intrinsic(self, name: str) -> RealmObject:
        """Return one intrinsic object by name.

        :param name: Name such as ``"RangeError"`` or ``"Object.prototype"``.
        :returns: The realm's own intrinsic.
        :raises KeyError: If the name is unknown.
        """
        return self._intrinsics[name]

    def intrinsic_names(self) -> list[str]:
        return list(self._intrinsics.keys())

    def create_object(
        self,
        attributes: dict[PropertyKey, object] | None = None,
        proto: object = ABSENT,
    ) -> RealmObject:
        """Create an ordinary object.

        :param attributes: Initial writable, enumerable, configurable data attributes.
        :param proto: Delegation parent, defaults to ``Object.prototype``.
        :returns: New object.
        """
        parent: object = self.object_prototype if proto is ABSENT else proto
        created: RealmObject = RealmObject(self, parent)  # type: ignore[arg-type]
        if attributes is not None:
            for key, value in attributes.items():
                created.define_own_property(key, Descriptor.data(value))
        return created

    def create_function(
        self,
        behavior: Behavior,
        name: str = "",
        length: int = 0,
        constructor: bool = False,
    ) -> RealmFunction:
        """Create a function object.

        :param behavior: Python callable receiving ``(this, args)``.
        :param name: Function display name.
        :param length: Declared argument count.
        :param constructor: Whether the function supports ``construct``.
        :returns: New function.
        """
        function: RealmFunction = RealmFunction(self, behavior, self.function_prototype, is_constructor=constructor)
        function.define_own_property("length", Descriptor.data(length, writable=False, enumerable=False))
        function.define_own_property("name", Descriptor.data(name, writable=False, enumerable=False))
        if constructor is True:
            prototype: RealmObject = RealmObject(self, self.object_prototype)
            prototype.define_own_property("constructor", Descriptor.data(function, enumerable=False))
            function.define_own_property(
                "prototype",
                Descriptor.data(prototype, writable=True, enumerable=False, configurable=False),
            )
        return function

    def create_placeholder_function(self, constructor: bool) -> RealmFunction:
        """Create an empty function that only anchors identity.

        :param constructor: Whether the placeholder carries a construct contract.
        :returns: New function with a no-op behaviour.
        """
        return self.create_function(_noop_behavior, constructor=constructor)

    def create_error(self, kind: str, message: object = None) -> RealmObject:
        """Create an error object of this realm.

        :param kind: Error family name, for example ``"TypeError"``.
        :param message: Error message.
        :returns: New error instance.
        """
        ctor: RealmObject = self._intrinsics.get(kind, self._intrinsics["Error"])
        args: list[object] = [] if message is None else [message]
        created: object = ctor.construct(args)
        if isinstance(created, RealmObject) is False:
            raise TypeError("error constructor did not return an object")
        return created

    def throw_error(self, kind: str, message: object = None) -> NoReturn:
        """Throw an error of this realm.

        :param kind: Error family name.
        :param message: Error message.
        :raises RealmException: Always.
        """
        raise RealmException(self.create_error(kind, message))

    def instance_of(self, value: object, ctor: RealmObject) -> bool:
        """Check whether ``ctor.prototype`` appears on ``value``'s delegation chain.

        :param value: Candidate instance.
        :param ctor: Constructor to test against.
        :returns: ``True`` when the constructor's prototype is an ancestor.
        """
        if isinstance(value, RealmObject) is False:
            return False
        if ctor.is_callable is False:
            self.throw_error("TypeError", "Right-hand side of instance_of is not callable")
        prototype: object = ctor.get("prototype")
        if isinstance(prototype, RealmObject) is False:
            self.throw_error("TypeError", "Function has non-object prototype in instance_of check")
        cursor: RealmObject | None = value.get_prototype_of()
        while cursor is not None:
            if cursor is prototype:
                return True
            cursor = cursor.get_prototype_of()
        return False

    def __repr__(self) -> str:
        return f"Realm({self.name!r})"
