"""Show how sequester exposes host values to a sandboxed guest realm."""

import argparse
import pathlib
import sys


def _ensure_src_path(src_path: str) -> None:
    """Ensure ``src`` is importable in the current interpreter.

    :param src_path: Absolute path to the repository ``src`` directory.
    """
    exists: bool = src_path in sys.path
    if exists is False:
        sys.path.insert(0, src_path)


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments.

    :returns: Parsed CLI arguments.
    """
    parser = argparse.ArgumentParser(
        description=(
            "Expose a host counter, a live settings object and a failing host "
            "function to a guest realm and print what the guest observes."
        )
    )
    parser.add_argument("--start", type=int, default=1, help="Initial host counter value.")
    parser.add_argument("--increments", type=int, default=3, help="Host-side increments after exposure.")
    return parser.parse_args()


def main() -> int:
    """Run the full demonstration.

    :returns: Process exit code where ``0`` indicates success.
    """
    args: argparse.Namespace = _parse_args()
    start: int = int(args.start)
    increments: int = int(args.increments)
    if increments < 0:
        print("increments must be >= 0")
        return 1

    repo_root: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
    _ensure_src_path(str(repo_root / "src"))

    from sequester import LIVE_VALUE_MARKER
    from sequester import CrossingError
    from sequester import Descriptor
    from sequester import Realm
    from sequester import RealmObject
    from sequester import create_virtual_environment

    host_realm: Realm = Realm("host")
    counter: RealmObject = host_realm.create_object({"value": start})

    def read_value(this_arg: object, args: list[object]) -> object:
        return this_arg.get("value")  # type: ignore[union-attr]

    def fail(this_arg: object, args: list[object]) -> object:
        host_realm.throw_error("RangeError", "host refused the request")

    counter.define_own_property("read", Descriptor.data(host_realm.create_function(read_value, name="read")))
    settings: RealmObject = host_realm.create_object({"mode": "initial"})
    settings.define_own_property(LIVE_VALUE_MARKER, Descriptor.data(True, enumerable=False))

    environment = create_virtual_environment(
        host_realm,
        endowments={
            "counter": counter,
            "settings": settings,
            "fail": host_realm.create_function(fail, name="fail"),
        },
    )
    guest_counter: RealmObject = environment.get_global("counter")
    guest_settings: RealmObject = environment.get_global("settings")
    guest_fail: RealmObject = environment.get_global("fail")

    for _ in range(increments):
        counter.set("value", counter.get("value") + 1)
    settings.set("mode", "updated")

    print("Static view")
    print(f"  snapshot value: {guest_counter.get('value')}")
    print(f"  live read():    {guest_counter.get('read').call(guest_counter, [])}")
    guest_counter.set("note", "guest only")
    print(f"  guest expando:  {guest_counter.get('note')!r}, on host: {counter.get('note')!r}")

    print("Live view")
    print(f"  settings.mode:  {guest_settings.get('mode')}")

    print("Error boundary")
    try:
        guest_fail.call(None, [])
    except CrossingError as exc:
        guest_error: object = exc.value
        guest_range_error: RealmObject = environment.guest_realm.intrinsic("RangeError")
        print(f"  message:        {guest_error.get('message')}")  # type: ignore[union-attr]
        print(f"  guest kind:     {environment.guest_realm.instance_of(guest_error, guest_range_error)}")
        print(f"  stack:          {guest_error.get('stack')!r}")  # type: ignore[union-attr]
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
