"""Ancestor-call resolution across installed classes.

No dispatch table is kept. Python's own MRO lookup already gives the
behavior mixins need: `super().baz()` from D finds the nearest class
above D whose own __dict__ defines `baz`, skipping classes that declare
nothing. So for

    class A:    baz -> '"A"'
    class B(A): baz -> super().baz() + ' > "B"'
    class C(B): (no baz)
    class D(C): baz -> super().baz() + ' > "D"'

ancestor_chain(D, "baz") == [D, B, A] and D().baz() == '"A" > "B" > "D"'.

The only thing installation can break is that chain, by replacing or
wrapping an existing implementation. preserving_chain() guards the
installer against that.
"""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import contextmanager

from glucose.errors import AncestorChainChanged


def ancestor_chain(cls: type, name: str) -> list[type]:
    """Classes defining `name` in their own __dict__, most derived first."""
    return [k for k in cls.__mro__ if k is not object and name in vars(k)]


def resolve(cls: type, name: str) -> type | None:
    chain = ancestor_chain(cls, name)
    return chain[0] if chain else None


def own_collisions(cls: type, names: Iterable[str]) -> list[str]:
    own = vars(cls)
    return [n for n in names if n in own]


def shadowed_by(cls: type, names: Iterable[str]) -> dict[str, type]:
    """For names `cls` does not own, the nearest ancestor that defines them."""
    shadowed = {}
    for n in names:
        if n in vars(cls):
            continue
        owner = resolve(cls, n)
        if owner is not None:
            shadowed[n] = owner
    return shadowed


def _snapshot(cls: type, names: Iterable[str]) -> dict[str, list[tuple[type, object]]]:
    return {
        n: [(k, vars(k)[n]) for k in ancestor_chain(cls, n) if k is not cls]
        for n in names
    }


@contextmanager
def preserving_chain(cls: type, names: Iterable[str]):
    """Check that writing `names` onto `cls` leaves every ancestor untouched.

    The chain above `cls` must hold the same classes with the same
    attribute objects afterwards, so ancestor calls from `cls` (or its
    subclasses) still reach the unmodified implementations.
    """
    names = list(names)
    before = _snapshot(cls, names)
    yield
    after = _snapshot(cls, names)
    for n in names:
        if [(k, id(v)) for k, v in after[n]] != [(k, id(v)) for k, v in before[n]]:
            raise AncestorChainChanged(f"installing {n!r} on {cls.__qualname__} changed its ancestor chain")
