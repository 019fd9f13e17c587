"""The two Glucose demo scenarios.

egg_demo: a getter registered before its target class exists returns the
final instance.

chain_demo: an ancestor-call chain A -> B -> (C) -> D where C has no
override of its own. Every class is installed independently.
"""

from glucose.registry import Registry, point


def egg_demo(registry: Registry):
    """Return (c, c.egg) for an instance of C(B(A)) with B given `egg`."""
    # Registered before B is defined, so the target is named, not referenced.
    registry.mixin(point("egg_demo.<locals>.B"), {"egg": {"get": lambda self: self}})

    class A:
        def foo(self):
            return "foo"

    class B(A):
        def bar(self):
            return "bar"

    class C(B):
        def baz(self):
            return "baz"

    registry.install(A)
    registry.install(B)
    registry.install(C)

    c = C()
    return c, c.egg


def chain_demo(registry: Registry):
    """Return (D().baz(), C().baz())."""

    class A:
        def baz(self):
            return '"A"'

    class B(A):
        def baz(self):
            return f'{super().baz()} > "B"'

    class C(B):
        pass

    class D(C):
        def baz(self):
            return f'{super().baz()} > "D"'

    registry.install(A)
    registry.install(B)
    registry.install(C)
    registry.install(D)

    return D().baz(), C().baz()
