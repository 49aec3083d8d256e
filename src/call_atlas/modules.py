"""Module classification: map a source name to a module path.

A module path is an ordered list of names, outermost first, e.g.
``["billing", "invoices"]``. An empty list means "unclassified".

Classifiers are plain objects with a ``classify(source_name)`` method so the
renderer and tracer never care where the answer comes from:

    ModuleStore               persisted JSON mapping edited through the API
    MappingClassifier         fixed in-memory mapping supplied by the caller
    SourceModulesClassifier   paths captured on Sources at trace time
    NamespaceClassifier       derived from the dotted source name (Tracer default)
    ChainedClassifier         first non-empty answer of several classifiers
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from .definition.models import Definition
from .exceptions import PersistenceError

logger = logging.getLogger(__name__)

ModulePath = list[str]

# Qualname segment marking names defined inside a function
LOCALS_SEGMENT = "<locals>"


@runtime_checkable
class ModuleClassifier(Protocol):
    """Anything that can place a source in a module hierarchy."""

    def classify(self, source_name: str) -> ModulePath: ...


def normalize_modules(modules: Iterable[str]) -> ModulePath:
    """Strip names and drop blank entries."""
    return [m.strip() for m in modules if m and m.strip()]


class MappingClassifier:
    """Classifier over an in-memory ``source_name -> modules`` mapping.

    For callers that know the layout up front, e.g.
    ``Tracer(module_classifier=MappingClassifier({"shop.Order": ["Sales"]}))``.
    """

    def __init__(self, mapping: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        self._mapping = {k: normalize_modules(v) for k, v in (mapping or {}).items()}

    def classify(self, source_name: str) -> ModulePath:
        return list(self._mapping.get(source_name, []))


class NamespaceClassifier:
    """Derive modules from the dotted source name.

    ``"shop.billing.Invoice"`` classifies as ``["shop", "billing"]``. With
    ``depth=1`` only ``["shop"]`` is kept. A class defined inside a function
    (``"shop.make.<locals>.Local"``) belongs to the namespace of that
    function's module. This is the Tracer's fallback when no classifier is
    given.
    """

    def __init__(self, depth: Optional[int] = None, separator: str = ".") -> None:
        if depth is not None and depth < 1:
            raise ValueError("depth must be at least 1")
        self.depth = depth
        self.separator = separator

    def classify(self, source_name: str) -> ModulePath:
        parts = source_name.split(self.separator)
        if LOCALS_SEGMENT in parts:
            parts = parts[: max(parts.index(LOCALS_SEGMENT) - 1, 0)]
        else:
            parts = parts[:-1]
        if self.depth is not None:
            parts = parts[: self.depth]
        return normalize_modules(parts)


class SourceModulesClassifier:
    """Read the module paths recorded on a Definition's Sources."""

    def __init__(self, definition: Definition) -> None:
        self._definition = definition

    def classify(self, source_name: str) -> ModulePath:
        source = self._definition.find_source(source_name)
        return list(source.modules) if source is not None else []


class ChainedClassifier:
    """Ask classifiers in priority order; the first non-empty path wins."""

    def __init__(self, *classifiers: ModuleClassifier) -> None:
        self.classifiers = classifiers

    def classify(self, source_name: str) -> ModulePath:
        for classifier in self.classifiers:
            modules = classifier.classify(source_name)
            if modules:
                return list(modules)
        return []


class ModuleStore:
    """Persisted ``source_name -> modules`` mapping.

    Backed by a JSON object on disk. Reads and writes are guarded by a lock
    because the HTTP handlers update it while other requests render.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()
        self._modules: dict[str, ModulePath] = self._load()

    def _load(self) -> dict[str, ModulePath]:
        if not self.path.exists() or self.path.stat().st_size == 0:
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(
                f"Cannot read module store: {self.path}",
                details={"path": str(self.path), "reason": str(e)},
            )
        if not isinstance(data, dict):
            raise PersistenceError(
                f"Cannot read module store: {self.path}",
                details={"path": str(self.path), "reason": "expected a JSON object"},
            )
        return {str(k): normalize_modules(v or []) for k, v in data.items()}

    def get(self, source_name: str) -> ModulePath:
        with self._lock:
            return list(self._modules.get(source_name, []))

    classify = get

    def set(self, source_name: str, modules: Iterable[str]) -> ModulePath:
        """Assign ``modules`` to ``source_name``; blank names are dropped."""
        cleaned = normalize_modules(modules)
        with self._lock:
            if cleaned:
                self._modules[source_name] = cleaned
            else:
                self._modules.pop(source_name, None)
        logger.debug("Classified %s as %s", source_name, cleaned)
        return cleaned

    def classified_source_names(self) -> list[str]:
        with self._lock:
            return sorted(self._modules)

    def to_dict(self) -> dict[str, ModulePath]:
        with self._lock:
            return {k: list(v) for k, v in sorted(self._modules.items())}

    def flush(self) -> None:
        """Write the mapping to disk.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(self.to_dict(), indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            raise PersistenceError(
                f"Cannot write module store: {self.path}",
                details={"path": str(self.path), "reason": str(e)},
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._modules)
