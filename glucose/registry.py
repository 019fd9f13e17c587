"""Registry of pending mixins and of installed classes.

Two-phase contract, as in the Glucose demos:

    head.mixin(point("B"), {"egg": {"get": lambda self: self}})   # declare

    class A: ...
    class B(A): ...
    class C(B): ...

    head.install(A)                                                # apply
    head.install(B)
    head.install(C)

    c = C()
    c.egg is c   # True

A target is either a class (held weakly) or an ExtensionPoint naming a
class that may not be defined yet. Each class must be installed on its
own; install() is idempotent and never reaches into ancestors.
"""

from __future__ import annotations

import itertools
import logging
import threading
import weakref
from dataclasses import dataclass
from typing import Any

from glucose.capability import CapabilityBundle
from glucose.errors import InvalidCapability, NotInstalled
from glucose.install import InstallationRecord, install_class, qualified_name

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_NAME = "head"


@dataclass(frozen=True)
class ExtensionPoint:
    """A class named by its `__qualname__` or `module.__qualname__`.

    A class defined inside a function is named with its `<locals>` path,
    e.g. `"make.<locals>.B"`. A bare `"B"` never reaches it.
    """

    name: str

    def matches(self, cls: type) -> bool:
        return self.name in (cls.__qualname__, qualified_name(cls))


def point(name: str) -> ExtensionPoint:
    return ExtensionPoint(name)


def _as_target(target: Any) -> type | ExtensionPoint:
    if isinstance(target, (type, ExtensionPoint)):
        return target
    if isinstance(target, str) and target:
        return ExtensionPoint(target)
    raise InvalidCapability(f"extension target must be a class or a name, got {target!r}")


def _describe(target: type | ExtensionPoint) -> str:
    if isinstance(target, ExtensionPoint):
        return f"point {target.name!r}"
    return target.__qualname__


class Registry:
    """Process-wide store of bundles and installation records.

    Writes (registration, record creation) happen under one re-entrant
    lock. reset() forgets all state but cannot undo attributes already
    written onto classes.
    """

    def __init__(self, name: str = DEFAULT_REGISTRY_NAME):
        self.name = name
        self._lock = threading.RLock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._seq = itertools.count()
            self._by_class: weakref.WeakKeyDictionary[type, list[tuple[int, CapabilityBundle]]] = (
                weakref.WeakKeyDictionary()
            )
            self._by_point: dict[str, list[tuple[int, CapabilityBundle]]] = {}
            self._records: weakref.WeakKeyDictionary[type, InstallationRecord] = (
                weakref.WeakKeyDictionary()
            )

    def __repr__(self) -> str:
        return f"Registry({self.name!r})"

    # --- Registration ---

    def mixin(self, target, bundle=None):
        """Register `bundle` against `target`.

        Called without a bundle, returns a class decorator that registers
        the decorated class body as the bundle:

            @head.mixin(B)
            class Egg:
                @property
                def egg(self):
                    return self
        """
        if bundle is None:
            def decorator(body: type) -> type:
                self.mixin(target, CapabilityBundle.from_class(body))
                return body
            return decorator

        target = _as_target(target)
        bundle = CapabilityBundle.of(bundle)
        with self._lock:
            entry = (next(self._seq), bundle)
            if isinstance(target, ExtensionPoint):
                self._by_point.setdefault(target.name, []).append(entry)
            else:
                self._by_class.setdefault(target, []).append(entry)
            late = [cls for cls in self._records.keys() if self._targets(target, cls)]
        logger.debug("registered %s for %s on %r", list(bundle), _describe(target), self)
        for cls in late:
            logger.warning(
                "%s is already installed; mixin %s registered for it will not be applied",
                cls.__qualname__, list(bundle),
            )

    @staticmethod
    def _targets(target: type | ExtensionPoint, cls: type) -> bool:
        if isinstance(target, ExtensionPoint):
            return target.matches(cls)
        return target is cls

    def lookup(self, target) -> tuple[CapabilityBundle, ...]:
        """Bundles registered for `target`, in registration order.

        For a class this includes bundles registered against any extension
        point naming it.
        """
        target = _as_target(target)
        with self._lock:
            if isinstance(target, ExtensionPoint):
                entries = list(self._by_point.get(target.name, ()))
            else:
                entries = list(self._by_class.get(target, ()))
                for name, point_entries in self._by_point.items():
                    if ExtensionPoint(name).matches(target):
                        entries.extend(point_entries)
        entries.sort(key=lambda e: e[0])
        return tuple(bundle for _, bundle in entries)

    # --- Installation ---

    def install(self, cls: type) -> InstallationRecord:
        """Apply the bundles registered for `cls` (not its ancestors) once."""
        if not isinstance(cls, type):
            raise TypeError(f"install() expects a class, got {cls!r}")
        with self._lock:
            record = self._records.get(cls)
            if record is not None:
                logger.debug("%s already installed", cls.__qualname__)
                return record
            record = install_class(cls, self.lookup(cls))
            self._records[cls] = record
        logger.info("installed %s (%d capabilities)", record.target, len(record.applied))
        return record

    def install_hierarchy(self, cls: type) -> InstallationRecord:
        """Install every class in `cls.__mro__`, root first."""
        if not isinstance(cls, type):
            raise TypeError(f"install_hierarchy() expects a class, got {cls!r}")
        for k in reversed(cls.__mro__):
            if k is not object:
                self.install(k)
        return self.record(cls)

    def is_installed(self, cls: type) -> bool:
        with self._lock:
            return cls in self._records

    def record(self, cls: type) -> InstallationRecord:
        with self._lock:
            try:
                return self._records[cls]
            except KeyError:
                raise NotInstalled(f"{cls.__qualname__} was never installed in {self!r}") from None

    def records(self) -> dict[type, InstallationRecord]:
        with self._lock:
            return dict(self._records.items())
