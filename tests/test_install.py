"""Tests for installing mixins onto class hierarchies."""

import pytest

from glucose.chain import ancestor_chain
from glucose.errors import AncestorChainChanged, CapabilityCollision
from glucose.install import InstallationRecord, install_class, merge_bundles
from glucose.capability import CapabilityBundle
from glucose.registry import Registry, point


def me(self):
    return self


def local_name(test, name):
    """Qualified name of class `name` defined inside test method `test`."""
    return f"{test.__qualname__}.<locals>.{name}"


@pytest.fixture
def registry():
    return Registry()


class TestInstall:
    def test_getter_returns_final_instance(self, registry):
        class X:
            pass

        registry.mixin(X, {"egg": {"get": me}})
        registry.install(X)
        x = X()
        assert x.egg is x

    def test_method_bound_to_instance(self, registry):
        class X:
            name = "x"

        registry.mixin(X, {"shout": lambda self, suffix="!": self.name.upper() + suffix})
        registry.install(X)
        assert X().shout() == "X!"
        assert X().shout("?") == "X?"

    def test_existing_instances_see_capability(self, registry):
        class X:
            pass

        x = X()
        registry.mixin(X, {"egg": {"get": me}})
        registry.install(X)
        assert x.egg is x

    def test_setter(self, registry):
        class X:
            pass

        def set_size(self, value):
            self._size = max(0, value)

        registry.mixin(X, {"size": {"get": lambda self: self._size, "set": set_size}})
        registry.install(X)
        x = X()
        x.size = -3
        assert x.size == 0

    def test_record(self, registry):
        class Base:
            def egg(self):
                return "base"

        class X(Base):
            pass

        registry.mixin(X, {"egg": {"get": me}})
        registry.mixin(X, {"spam": me})
        rec = registry.install(X)
        assert isinstance(rec, InstallationRecord)
        assert rec.target.endswith("X")
        assert rec.applied == ("egg", "spam")
        assert rec.shadowed == {"egg": Base}
        assert rec.bundles == 2

    def test_class_without_bundles_is_recorded(self, registry):
        class X:
            pass

        rec = registry.install(X)
        assert rec.applied == ()
        assert registry.is_installed(X)

    def test_not_a_class(self, registry):
        with pytest.raises(TypeError, match="expects a class"):
            registry.install(object())
        with pytest.raises(TypeError, match="expects a class"):
            install_class("X", [])

    def test_later_bundle_wins(self, registry):
        class X:
            pass

        registry.mixin(X, {"tag": lambda self: "first"})
        registry.mixin(X, {"tag": lambda self: "second"})
        registry.install(X)
        assert X().tag() == "second"

    def test_callable_object_receives_instance(self, registry):
        class Hook:
            def __call__(self, instance):
                return instance

        class X:
            pass

        registry.mixin(X, {"hook": Hook()})
        registry.install(X)
        x = X()
        assert x.hook() is x

    def test_record_shadowed_is_read_only(self, registry):
        class P:
            def baz(self):
                return "P"

        class Q(P):
            pass

        registry.mixin(Q, {"baz": me})
        rec = registry.install(Q)
        with pytest.raises(TypeError):
            rec.shadowed["baz"] = Q
        assert rec.shadowed == {"baz": P}
        with pytest.raises(TypeError):
            InstallationRecord(target="x").shadowed["y"] = P

    def test_failed_attach_rolls_back(self, registry):
        class Picky(type):
            def __setattr__(cls, name, value):
                if name == "bad":
                    raise RuntimeError("refused")
                super().__setattr__(name, value)

        class X(metaclass=Picky):
            pass

        registry.mixin(X, {"good": me, "bad": me})
        with pytest.raises(RuntimeError, match="refused"):
            registry.install(X)
        assert "good" not in vars(X)
        assert not registry.is_installed(X)

    def test_ancestor_replaced_during_attach_rolls_back(self, registry, monkeypatch):
        import sys

        import glucose.install  # noqa: F401  (package attr `install` shadows the submodule)

        install_module = sys.modules["glucose.install"]

        class P:
            def baz(self):
                return "P"

        class Q(P):
            pass

        def replacing(descriptor, owner):
            P.baz = lambda self: "replaced"
            return descriptor.fn

        monkeypatch.setattr(install_module, "to_attribute", replacing)
        registry.mixin(Q, {"baz": me})
        with pytest.raises(AncestorChainChanged, match="'baz' on"):
            registry.install(Q)
        assert "baz" not in vars(Q)
        assert not registry.is_installed(Q)


class TestIdempotence:
    def test_install_twice_same_members(self, registry):
        class X:
            pass

        registry.mixin(X, {"egg": {"get": me}})
        first = registry.install(X)
        members = dict(vars(X))
        second = registry.install(X)
        assert second is first
        assert dict(vars(X)) == members

    def test_install_hierarchy(self, registry):
        class A:
            pass

        class B(A):
            pass

        class C(B):
            pass

        registry.mixin(A, {"a": me})
        registry.mixin(B, {"b": me})
        rec = registry.install_hierarchy(C)
        assert rec is registry.record(C)
        assert all(registry.is_installed(k) for k in (A, B, C))
        c = C()
        assert c.a() is c
        assert c.b() is c

    def test_install_hierarchy_not_a_class(self, registry):
        with pytest.raises(TypeError):
            registry.install_hierarchy("C")


class TestRegistrationOrder:
    def test_before_class_definition(self, registry):
        registry.mixin(point(local_name(self.test_before_class_definition, "Late")), {"egg": {"get": me}})

        class Late:
            pass

        registry.install(Late)
        x = Late()
        assert x.egg is x

    def test_after_class_definition(self, registry):
        class Early:
            pass

        registry.mixin(Early, {"egg": {"get": me}})
        registry.install(Early)
        x = Early()
        assert x.egg is x


class TestCollision:
    def test_own_member_collision(self, registry):
        class X:
            def baz(self):
                return "original"

        original = vars(X)["baz"]
        registry.mixin(X, {"baz": lambda self: "mixin", "extra": me})
        with pytest.raises(CapabilityCollision, match="already declares 'baz'") as info:
            registry.install(X)
        assert info.value.cls is X
        assert info.value.names == ["baz"]
        assert vars(X)["baz"] is original
        assert X().baz() == "original"
        # Nothing was written, not even the non-colliding name.
        assert "extra" not in vars(X)
        assert not registry.is_installed(X)

    def test_inherited_name_is_not_a_collision(self, registry):
        class P:
            def baz(self):
                return "P"

        class Q(P):
            pass

        registry.mixin(Q, {"baz": lambda self: "Q"})
        rec = registry.install(Q)
        assert rec.shadowed == {"baz": P}
        assert Q().baz() == "Q"
        assert P().baz() == "P"


class TestIndependence:
    def test_subclass_install_leaves_ancestor_untouched(self, registry):
        class A:
            pass

        class B(A):
            pass

        registry.mixin(A, {"a_cap": {"get": me}})
        registry.mixin(B, {"b_cap": {"get": me}})
        registry.install(B)
        assert not registry.is_installed(A)
        assert not hasattr(A(), "a_cap")
        assert not hasattr(B(), "a_cap")
        b = B()
        assert b.b_cap is b

    def test_ancestor_capability_reaches_subclass(self, registry):
        class A:
            pass

        class B(A):
            pass

        class C(B):
            pass

        registry.mixin(B, {"egg": {"get": me}})
        for cls in (A, B, C):
            registry.install(cls)
        c = C()
        assert c.egg is c
        assert not hasattr(A(), "egg")


class TestSuperChain:
    def make_hierarchy(self):
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

        return A, B, C, D

    def test_chain_after_installing_all(self, registry):
        A, B, C, D = self.make_hierarchy()
        for cls in (A, B, C, D):
            registry.install(cls)
        assert D().baz() == '"A" > "B" > "D"'
        assert C().baz() == '"A" > "B"'

    @pytest.mark.parametrize("order", ["ABCD", "DCBA", "CADB", "D", "BD"])
    def test_chain_independent_of_install_order(self, registry, order):
        classes = dict(zip("ABCD", self.make_hierarchy()))
        for ch in order:
            registry.install(classes[ch])
        assert classes["D"]().baz() == '"A" > "B" > "D"'

    def test_installing_into_intermediate_class(self, registry):
        A, B, C, D = self.make_hierarchy()

        def c_baz(self):
            return f'{super(C, self).baz()} > "C"'

        registry.mixin(C, {"baz": c_baz, "egg": {"get": me}})
        for cls in (A, B, C, D):
            registry.install(cls)
        assert ancestor_chain(D, "baz") == [D, C, B, A]
        assert D().baz() == '"A" > "B" > "C" > "D"'
        d = D()
        assert d.egg is d

    def test_decorator_mixin_with_bare_super(self, registry):
        A, B, C, D = self.make_hierarchy()

        @registry.mixin(C)
        class CBaz:
            def baz(self, *, sep=" > "):
                return f'{super().baz()}{sep}"C"'

        for cls in (A, B, C, D):
            registry.install(cls)
        assert C().baz() == '"A" > "B" > "C"'
        assert C().baz(sep=" / ") == '"A" > "B" / "C"'
        assert D().baz() == '"A" > "B" > "C" > "D"'
        # The mixin body itself is left as written.
        assert CBaz.baz.__closure__[0].cell_contents is CBaz

    def test_bare_super_before_class_exists(self, registry):
        @registry.mixin(point(local_name(self.test_bare_super_before_class_exists, "Leaf")))
        class LeafBits:
            @property
            def label(self):
                return super().label + "+Leaf"

            def baz(self):
                return f"{super().baz()}+Leaf"

        class Root:
            @property
            def label(self):
                return "Root"

            def baz(self):
                return "Root"

        class Leaf(Root):
            pass

        registry.install(Root)
        registry.install(Leaf)
        leaf = Leaf()
        assert leaf.label == "Root+Leaf"
        assert leaf.baz() == "Root+Leaf"

    def test_capability_on_ancestor_visible_to_super(self, registry):
        class A:
            pass

        class B(A):
            def greet(self):
                return f"{super().greet()}+B"

        registry.mixin(A, {"greet": lambda self: "A"})
        registry.install(A)
        registry.install(B)
        assert B().greet() == "A+B"


def test_merge_bundles_later_wins():
    first = CapabilityBundle.of({"x": lambda self: 1, "y": lambda self: 2})
    second = CapabilityBundle.of({"x": lambda self: 3})
    merged = merge_bundles([first, second])
    assert list(merged) == ["x", "y"]
    assert merged["x"] is second["x"]
