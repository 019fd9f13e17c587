"""Errors raised while registering and installing capabilities.

Everything is raised at setup time, from the mixin() or install() call
that caused it. Nothing here is raised lazily on first attribute access.
"""


class GlucoseError(Exception):
    pass


class InvalidCapability(GlucoseError, TypeError):
    """A descriptor or bundle is malformed (no getter/setter/function, bad name)."""


class CapabilityCollision(GlucoseError):
    """Installing would overwrite a member the class declares itself."""

    def __init__(self, cls: type, names: list[str]):
        self.cls = cls
        self.names = list(names)
        joined = ", ".join(repr(n) for n in self.names)
        super().__init__(
            f"{cls.__qualname__} already declares {joined}; "
            f"refusing to replace its own member"
        )


class AncestorChainChanged(GlucoseError):
    """Attaching to a class replaced or removed an ancestor's implementation."""


class NotInstalled(GlucoseError, LookupError):
    """The registry holds no installation record for this class."""
