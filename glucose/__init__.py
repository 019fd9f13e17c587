"""glucose: declare mixins against classes, install them later.

    import glucose

    glucose.mixin(glucose.point("B"), {"egg": {"get": lambda self: self}})
    ...
    glucose.install(A)
    glucose.install(B)

`head` is the process-wide registry; `mixin` and `install` are its
bound methods. Build a separate Registry() for isolated use.
"""

from glucose.capability import CapabilityBundle, CapabilityDescriptor, accessor, method
from glucose.chain import ancestor_chain, resolve
from glucose.errors import (
    AncestorChainChanged,
    CapabilityCollision,
    GlucoseError,
    InvalidCapability,
    NotInstalled,
)
from glucose.install import InstallationRecord
from glucose.registry import ExtensionPoint, Registry, point

head = Registry()

mixin = head.mixin
install = head.install
install_hierarchy = head.install_hierarchy

__all__ = [
    "head", "mixin", "install", "install_hierarchy",
    "Registry", "ExtensionPoint", "point", "InstallationRecord",
    "CapabilityBundle", "CapabilityDescriptor", "accessor", "method",
    "ancestor_chain", "resolve",
    "GlucoseError", "InvalidCapability", "CapabilityCollision", "AncestorChainChanged",
    "NotInstalled",
]
