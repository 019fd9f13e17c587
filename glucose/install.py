"""Attach capability bundles onto a class.

install_class() writes each capability onto the class itself, so every
instance (existing or future) sees it as an ordinary member. It never
touches ancestors: installing C applies only the bundles registered for C.
B's bundles reach C's instances through normal inheritance once B itself
is installed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from glucose.capability import CapabilityBundle, CapabilityDescriptor, to_attribute
from glucose.chain import own_collisions, preserving_chain, shadowed_by
from glucose.errors import CapabilityCollision

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallationRecord:
    """What install() did to one class.

    `target` is the class's qualified name rather than the class, so a
    registry's records never keep a class alive.
    """

    target: str
    applied: tuple[str, ...] = ()
    shadowed: Mapping[str, type] = field(default_factory=lambda: MappingProxyType({}))
    bundles: int = 0


def qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def merge_bundles(bundles: Iterable[CapabilityBundle]) -> dict[str, CapabilityDescriptor]:
    """Merge bundles in registration order; a later bundle wins on a shared name."""
    merged: dict[str, CapabilityDescriptor] = {}
    for bundle in bundles:
        for name, descriptor in bundle.items():
            if name in merged:
                logger.debug("capability %r redefined by a later bundle", name)
            merged[name] = descriptor
    return merged


def install_class(cls: type, bundles: Iterable[CapabilityBundle]) -> InstallationRecord:
    """Write the merged bundles onto `cls` and describe what was done.

    Raises CapabilityCollision before writing anything if a capability
    name is already one of the class's own members. If attaching fails
    partway, the names already written are removed again.
    """
    if not isinstance(cls, type):
        raise TypeError(f"install() expects a class, got {cls!r}")
    bundles = list(bundles)
    merged = merge_bundles(bundles)

    collisions = own_collisions(cls, merged)
    if collisions:
        raise CapabilityCollision(cls, collisions)

    shadowed = shadowed_by(cls, merged)
    for name, owner in shadowed.items():
        logger.debug("%s.%s now hides %s.%s", cls.__qualname__, name, owner.__qualname__, name)

    written: list[str] = []
    try:
        with preserving_chain(cls, merged):
            for name, descriptor in merged.items():
                setattr(cls, name, to_attribute(descriptor, cls))
                written.append(name)
                logger.debug("attached %s %s.%s", descriptor.kind, cls.__qualname__, name)
    except BaseException:
        for name in reversed(written):
            delattr(cls, name)
        logger.debug("rolled back %s on %s", written, cls.__qualname__)
        raise

    return InstallationRecord(
        target=qualified_name(cls),
        applied=tuple(merged),
        shadowed=MappingProxyType(shadowed),
        bundles=len(bundles),
    )
