#!/usr/bin/env python3
"""glucose: install mixins onto classes."""

import argparse
import importlib
import logging
import sys

from glucose import chain, demos
from glucose.registry import Registry


def cmd_demo(args):
    registry = Registry(name=f"demo-{args.name}")
    if args.name == "egg":
        c, egg = demos.egg_demo(registry)
        print(f"egg {egg!r} (is c: {egg is c})")
    else:
        d_baz, c_baz = demos.chain_demo(registry)
        print(f"baz chain: {d_baz}")
        print(f"baz chain: {c_baz}")


def load_class(ref: str) -> type:
    """Import "package.module:Class" (Class may be dotted for nested classes)."""
    module_name, sep, qualname = ref.partition(":")
    if not sep or not qualname:
        raise ValueError(f"expected MODULE:CLASS, got {ref!r}")
    obj = importlib.import_module(module_name)
    for part in qualname.split("."):
        obj = getattr(obj, part)
    if not isinstance(obj, type):
        raise ValueError(f"{ref} is not a class")
    return obj


def cmd_chain(args):
    cls = load_class(args.cls)
    for k in chain.ancestor_chain(cls, args.name):
        print(f"{k.__module__}.{k.__qualname__}")


def main(argv=None):
    parser = argparse.ArgumentParser(prog="glucose", description="Install mixins onto classes")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command")

    # demo
    p = sub.add_parser("demo", help="Run one of the bundled demo scenarios")
    p.add_argument("name", choices=["egg", "chain"])
    p.set_defaults(func=cmd_demo)

    # chain
    p = sub.add_parser("chain", help="Show which classes implement NAME, most derived first")
    p.add_argument("cls", metavar="MODULE:CLASS")
    p.add_argument("name")
    p.set_defaults(func=cmd_chain)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if not args.command:
        parser.print_help()
        sys.exit(1)
    args.func(args)


if __name__ == "__main__":
    main()
