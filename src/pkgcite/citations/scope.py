"""The code-resolution scope: which archives imports can currently see.

Importing a plugin module needs its own archive, and usually the
archives of the packages it depends on, on the import path. The scope
owns that state explicitly instead of having scanner code poke at
``sys.path`` directly:

* ``add()`` appends archives to the path (re-adding is a no-op).
* ``remove()`` drops archives from the path and evicts every module
  imported from them, so the next package that ships a module with
  the same name gets a fresh import instead of a stale one.

The default instance works on ``sys.path``/``sys.modules``; tests pass
their own list and dict.
"""

from __future__ import annotations

import importlib
import logging
import os
import sys
from collections.abc import Iterable, MutableMapping
from pathlib import Path
from types import ModuleType

logger = logging.getLogger(__name__)


class ResolutionScope:
    """Tracks the archives added to an import path."""

    def __init__(
        self,
        path: list[str] | None = None,
        modules: MutableMapping[str, ModuleType] | None = None,
    ) -> None:
        self._path = sys.path if path is None else path
        self._modules = sys.modules if modules is None else modules
        self._owned: list[str] = []

    @property
    def entries(self) -> list[str]:
        """Archives this scope has added and not yet removed, in order."""
        return list(self._owned)

    def __contains__(self, artifact: object) -> bool:
        if not isinstance(artifact, (str, os.PathLike)):
            return False
        return os.fspath(artifact) in self._owned

    def add(self, artifacts: Iterable[Path | str]) -> None:
        """Make the archives resolvable."""
        for artifact in artifacts:
            entry = os.fspath(artifact)
            if entry not in self._path:
                self._path.append(entry)
            if entry not in self._owned:
                self._owned.append(entry)
                logger.debug("event=scope_add artifact=%s", entry)

    def remove(self, artifacts: Iterable[Path | str]) -> None:
        """Retire the archives and unload modules imported from them."""
        removed = False
        for artifact in artifacts:
            entry = os.fspath(artifact)
            while entry in self._path:
                self._path.remove(entry)
            if entry in self._owned:
                self._owned.remove(entry)
                removed = True
                evicted = self._evict_modules(entry)
                logger.debug(
                    "event=scope_remove artifact=%s evicted=%d",
                    entry,
                    evicted,
                )
            sys.path_importer_cache.pop(entry, None)
        if removed:
            importlib.invalidate_caches()

    def clear(self) -> None:
        """Retire every archive this scope still holds."""
        self.remove(list(self._owned))

    def _evict_modules(self, entry: str) -> int:
        prefix = entry + os.sep
        stale = [
            name
            for name, module in list(self._modules.items())
            if _origin_within(module, entry, prefix)
        ]
        for name in stale:
            del self._modules[name]
        return len(stale)


def _origin_within(module: ModuleType, entry: str, prefix: str) -> bool:
    """True if the module was loaded from ``entry`` (an archive path)."""
    origins: list[str] = []
    file = getattr(module, "__file__", None)
    if isinstance(file, str):
        origins.append(file)
    # Namespace packages have no __file__, only __path__
    paths = getattr(module, "__path__", None)
    if paths is not None:
        origins.extend(p for p in paths if isinstance(p, str))
    # zipimport uses "/" inside the archive regardless of platform
    alt_prefix = entry + "/"
    return any(
        o == entry or o.startswith(prefix) or o.startswith(alt_prefix)
        for o in origins
    )
