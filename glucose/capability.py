"""Capability descriptors and bundles.

A capability is one member a mixin adds to a class. It is either an
accessor (a computed property, getter and/or setter) or a method:

    accessor(get=lambda self: self)        # instance.egg
    method(lambda self: "baz")              # instance.baz()

A bundle is an immutable, ordered name -> descriptor mapping. Callers can
write bundles in the same shape as a JS property descriptor map:

    {"egg": {"get": lambda self: self}}

or as a plain class body (see CapabilityBundle.from_class):

    class Egg:
        @property
        def egg(self):
            return self

Everything is validated when the bundle is built, so a malformed mixin
fails at registration rather than at install time.
"""

from __future__ import annotations

import functools
import inspect
import types
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from glucose.errors import InvalidCapability

ACCESSOR = "accessor"
METHOD = "method"

_ACCESSOR_KEYS = {"get", "set"}
_METHOD_KEYS = {"value", "fn"}


@dataclass(frozen=True)
class CapabilityDescriptor:
    kind: str
    get: Callable[[Any], Any] | None = None
    set: Callable[[Any, Any], None] | None = None
    fn: Callable[..., Any] | None = None

    def __post_init__(self):
        if self.kind == ACCESSOR:
            if self.get is None and self.set is None:
                raise InvalidCapability("accessor needs a getter or a setter")
            if self.fn is not None:
                raise InvalidCapability("accessor cannot also carry a method")
            for part, f in (("getter", self.get), ("setter", self.set)):
                if f is not None and not callable(f):
                    raise InvalidCapability(f"accessor {part} is not callable: {f!r}")
        elif self.kind == METHOD:
            if not callable(self.fn):
                raise InvalidCapability(f"method is not callable: {self.fn!r}")
            if self.get is not None or self.set is not None:
                raise InvalidCapability("method cannot also carry a getter or setter")
        else:
            raise InvalidCapability(f"unknown capability kind: {self.kind!r}")


def accessor(get=None, set=None) -> CapabilityDescriptor:
    return CapabilityDescriptor(ACCESSOR, get=get, set=set)


def method(fn) -> CapabilityDescriptor:
    return CapabilityDescriptor(METHOD, fn=fn)


def as_descriptor(spec: Any) -> CapabilityDescriptor:
    """Normalize the shapes a caller may write into a CapabilityDescriptor.

    Accepts a descriptor, a {"get"/"set"} or {"value"/"fn"} mapping, a
    property, or a plain callable (a method).
    """
    if isinstance(spec, CapabilityDescriptor):
        return spec
    if isinstance(spec, property):
        return accessor(spec.fget, spec.fset)
    if isinstance(spec, (staticmethod, classmethod)):
        # These bind to the class, not to the receiving instance.
        raise InvalidCapability(f"{type(spec).__name__} is not an instance capability")
    if isinstance(spec, Mapping):
        keys = set(spec)
        unknown = keys - _ACCESSOR_KEYS - _METHOD_KEYS
        if unknown:
            raise InvalidCapability(f"unknown descriptor keys: {sorted(unknown)}")
        if keys & _ACCESSOR_KEYS and keys & _METHOD_KEYS:
            raise InvalidCapability("descriptor mixes get/set with value/fn")
        if keys & _METHOD_KEYS:
            if len(keys) > 1:
                raise InvalidCapability("give a method as either 'value' or 'fn', not both")
            return method(spec.get("value", spec.get("fn")))
        return accessor(spec.get("get"), spec.get("set"))
    if callable(spec):
        return method(spec)
    raise InvalidCapability(f"cannot make a capability from {spec!r}")


def rebind_class_cell(fn, owner: type | None):
    """Copy `fn` with its `__class__` cell pointing at `owner`.

    A function written in a class body (a mixin body, say) closes over
    that class for zero-argument super(). Once attached to `owner` it
    must close over `owner` instead. Functions without the cell are
    returned unchanged.
    """
    if owner is None or not inspect.isfunction(fn) or "__class__" not in fn.__code__.co_freevars:
        return fn
    closure = tuple(
        types.CellType(owner) if var == "__class__" else cell
        for var, cell in zip(fn.__code__.co_freevars, fn.__closure__)
    )
    rebound = types.FunctionType(fn.__code__, fn.__globals__, fn.__name__, fn.__defaults__, closure)
    rebound.__kwdefaults__ = fn.__kwdefaults__
    rebound.__qualname__ = f"{owner.__qualname__}.{fn.__name__}"
    rebound.__doc__ = fn.__doc__
    rebound.__dict__.update(fn.__dict__)
    return rebound


def to_attribute(descriptor: CapabilityDescriptor, owner: type | None = None) -> Any:
    """Build the class attribute that implements a descriptor on `owner`.

    Accessors become a fresh property (evaluated on every access). Methods
    are attached as functions so ordinary binding passes the instance;
    callables that do not bind on their own are wrapped. Functions using
    zero-argument super() are rebound to `owner`.
    """
    if descriptor.kind == ACCESSOR:
        return property(
            rebind_class_cell(descriptor.get, owner),
            rebind_class_cell(descriptor.set, owner),
        )
    fn = descriptor.fn
    if inspect.isfunction(fn):
        return rebind_class_cell(fn, owner)

    @functools.wraps(fn)
    def bound(self, *args, **kwargs):
        return fn(self, *args, **kwargs)

    return bound


class CapabilityBundle(Mapping):
    """Immutable, ordered name -> CapabilityDescriptor mapping."""

    __slots__ = ("_items",)

    def __init__(self, items: Mapping[str, CapabilityDescriptor] | None = None):
        checked = {}
        for name, d in (items or {}).items():
            if not isinstance(name, str) or not name.isidentifier():
                raise InvalidCapability(f"capability name must be an identifier: {name!r}")
            if not isinstance(d, CapabilityDescriptor):
                raise InvalidCapability(f"{name!r} is not a CapabilityDescriptor: {d!r}")
            checked[name] = d
        object.__setattr__(self, "_items", MappingProxyType(checked))

    @classmethod
    def of(cls, spec: Mapping[str, Any] | CapabilityBundle) -> CapabilityBundle:
        if isinstance(spec, CapabilityBundle):
            return spec
        if not isinstance(spec, Mapping):
            raise InvalidCapability(f"bundle must be a mapping, got {type(spec).__name__}")
        items = {}
        for name, value in spec.items():
            try:
                items[name] = as_descriptor(value)
            except InvalidCapability as e:
                raise InvalidCapability(f"capability {name!r}: {e}") from e
        return cls(items)

    @classmethod
    def from_class(cls, body: type) -> CapabilityBundle:
        """Collect a bundle from a class body, ignoring dunder names."""
        spec = {
            name: value
            for name, value in vars(body).items()
            if not (name.startswith("__") and name.endswith("__"))
        }
        return cls.of(spec)

    def __setattr__(self, name, value):
        raise AttributeError("CapabilityBundle is immutable")

    def __getitem__(self, name: str) -> CapabilityDescriptor:
        return self._items[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        parts = ", ".join(f"{n}={d.kind}" for n, d in self._items.items())
        return f"CapabilityBundle({parts})"
