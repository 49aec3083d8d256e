"""Data model for traced call-dependency graphs.

A Definition is one traced run (or a merge of runs):

    Definition ─┬─ Source "pkg.A"  ─┬─ Dependency → "pkg.B" ── MethodId (call_c, instance, [paths])
                │                   └─ Dependency → "pkg.C" ── MethodId (build, class, [paths])
                └─ Source "pkg.B"

Every level is keyed: sources by name, dependencies by target name, method
ids by ``(name, context)``. Accessors such as :meth:`Definition.source`
auto-vivify missing children so the tracer can record edges without
existence checks.

``combine`` is a pure union at every level. It never mutates its inputs and
is commutative and associative under ``==``.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Iterator
from typing import Any, Optional

CLASS_CONTEXT = "class"
INSTANCE_CONTEXT = "instance"
CONTEXTS = (CLASS_CONTEXT, INSTANCE_CONTEXT)

COMBINED_ID_SEPARATOR = "+"


def _merge_modules(left: list[str], right: list[str]) -> list[str]:
    """Pick one module path for a merged source, independent of argument order."""
    if not left:
        return list(right)
    if not right:
        return list(left)
    return list(min(left, right))


class MethodId:
    """One distinct invoked method plus the call sites it was observed at."""

    def __init__(self, name: str, context: str, paths: Iterable[str] = ()) -> None:
        if context not in CONTEXTS:
            raise ValueError(f"context must be one of {CONTEXTS}, got {context!r}")
        self.name = name
        self.context = context
        # dict keys: insertion-ordered set
        self._paths: dict[str, None] = dict.fromkeys(paths)

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.context)

    @property
    def paths(self) -> list[str]:
        return list(self._paths)

    def add_path(self, path: str) -> None:
        self._paths.setdefault(path, None)

    def copy(self) -> MethodId:
        return MethodId(self.name, self.context, self._paths)

    def combine(self, *others: MethodId) -> MethodId:
        """Union the paths of method ids sharing this key."""
        combined = self.copy()
        for other in others:
            if other.key != self.key:
                raise ValueError(f"cannot combine method id {other.key} into {self.key}")
            for path in other.paths:
                combined.add_path(path)
        return combined

    def sort_key(self) -> tuple[str, str]:
        return (self.name, self.context)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "context": self.context, "paths": self.paths}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MethodId:
        return cls(
            name=data["name"],
            context=data.get("context", CLASS_CONTEXT),
            paths=data.get("paths") or [],
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MethodId):
            return NotImplemented
        return self.key == other.key and set(self._paths) == set(other._paths)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"MethodId(name={self.name!r}, context={self.context!r}, paths={self.paths!r})"


class Dependency:
    """A directed edge to ``source_name`` with the methods invoked across it."""

    def __init__(self, source_name: str, method_ids: Iterable[MethodId] = ()) -> None:
        self.source_name = source_name
        self._method_id_map: dict[tuple[str, str], MethodId] = {}
        for method_id in method_ids:
            self._absorb(method_id)

    @staticmethod
    def combine_all(*dependencies: Dependency) -> list[Dependency]:
        """Group dependencies by target name and merge each group.

        Returns one Dependency per distinct target, sorted by target name.
        """
        grouped: dict[str, Dependency] = {}
        for dependency in dependencies:
            if dependency.source_name in grouped:
                grouped[dependency.source_name] = grouped[dependency.source_name].combine(
                    dependency
                )
            else:
                grouped[dependency.source_name] = dependency.copy()
        return [grouped[name] for name in sorted(grouped)]

    def method_id(self, name: str, context: str) -> MethodId:
        key = (name, context)
        if key not in self._method_id_map:
            self._method_id_map[key] = MethodId(name, context)
        return self._method_id_map[key]

    def find_method_id(self, name: str, context: str) -> Optional[MethodId]:
        return self._method_id_map.get((name, context))

    @property
    def method_ids(self) -> list[MethodId]:
        return sorted(self._method_id_map.values(), key=MethodId.sort_key)

    def copy(self) -> Dependency:
        return Dependency(self.source_name, [m.copy() for m in self._method_id_map.values()])

    def combine(self, *others: Dependency) -> Dependency:
        combined = self.copy()
        for other in others:
            if other.source_name != self.source_name:
                raise ValueError(
                    f"cannot combine dependency on {other.source_name!r} "
                    f"into dependency on {self.source_name!r}"
                )
            for method_id in other._method_id_map.values():
                combined._absorb(method_id)
        return combined

    def _absorb(self, method_id: MethodId) -> None:
        existing = self._method_id_map.get(method_id.key)
        if existing is None:
            self._method_id_map[method_id.key] = method_id.copy()
        else:
            self._method_id_map[method_id.key] = existing.combine(method_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_name": self.source_name,
            "method_ids": [m.to_dict() for m in self.method_ids],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Dependency:
        return cls(
            source_name=data["source_name"],
            method_ids=[MethodId.from_dict(m) for m in data.get("method_ids") or []],
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dependency):
            return NotImplemented
        return (
            self.source_name == other.source_name
            and self._method_id_map == other._method_id_map
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Dependency(source_name={self.source_name!r}, method_ids={self.method_ids!r})"


class Source:
    """A traced code unit: a class or a module."""

    def __init__(
        self,
        source_name: str,
        dependencies: Iterable[Dependency] = (),
        modules: Optional[Iterable[str]] = None,
    ) -> None:
        self.source_name = source_name
        self.modules: list[str] = list(modules or [])
        self._dependency_map: dict[str, Dependency] = {}
        for dependency in dependencies:
            self._absorb(dependency)

    def dependency(self, source_name: str) -> Dependency:
        if source_name not in self._dependency_map:
            self._dependency_map[source_name] = Dependency(source_name)
        return self._dependency_map[source_name]

    def find_dependency(self, source_name: str) -> Optional[Dependency]:
        return self._dependency_map.get(source_name)

    @property
    def dependencies(self) -> list[Dependency]:
        return [self._dependency_map[name] for name in sorted(self._dependency_map)]

    def copy(self) -> Source:
        return Source(
            self.source_name,
            [d.copy() for d in self._dependency_map.values()],
            modules=self.modules,
        )

    def combine(self, *others: Source) -> Source:
        combined = self.copy()
        for other in others:
            if other.source_name != self.source_name:
                raise ValueError(
                    f"cannot combine source {other.source_name!r} into {self.source_name!r}"
                )
            combined.modules = _merge_modules(combined.modules, other.modules)
            for dependency in other._dependency_map.values():
                combined._absorb(dependency)
        return combined

    def _absorb(self, dependency: Dependency) -> None:
        existing = self._dependency_map.get(dependency.source_name)
        if existing is None:
            self._dependency_map[dependency.source_name] = dependency.copy()
        else:
            self._dependency_map[dependency.source_name] = existing.combine(dependency)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_name": self.source_name,
            "modules": list(self.modules),
            "dependencies": [d.to_dict() for d in self.dependencies],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Source:
        modules = data.get("modules") or []
        return cls(
            source_name=data["source_name"],
            dependencies=[Dependency.from_dict(d) for d in data.get("dependencies") or []],
            # older dumps stored [{"module_name": ...}, ...]
            modules=[m["module_name"] if isinstance(m, dict) else m for m in modules],
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Source):
            return NotImplemented
        return (
            self.source_name == other.source_name
            and self.modules == other.modules
            and self._dependency_map == other._dependency_map
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Source(source_name={self.source_name!r}, "
            f"dependencies={len(self._dependency_map)}, modules={self.modules!r})"
        )


class Definition:
    """A titled graph of Sources from one trace or a merge of traces."""

    def __init__(
        self,
        id: Optional[str] = None,
        title: str = "",
        definition_group: Optional[str] = None,
        sources: Iterable[Source] = (),
    ) -> None:
        self.id = id if id is not None else uuid.uuid4().hex
        self.title = title
        self.definition_group = definition_group
        self._source_map: dict[str, Source] = {}
        for source in sources:
            existing = self._source_map.get(source.source_name)
            self._source_map[source.source_name] = (
                existing.combine(source) if existing is not None else source
            )

    def source(self, source_name: str) -> Source:
        """Return the Source called ``source_name``, creating it if absent."""
        if source_name not in self._source_map:
            self._source_map[source_name] = Source(source_name)
        return self._source_map[source_name]

    def find_source(self, source_name: str) -> Optional[Source]:
        return self._source_map.get(source_name)

    @property
    def sources(self) -> list[Source]:
        return [self._source_map[name] for name in sorted(self._source_map)]

    @property
    def component_ids(self) -> list[str]:
        return self.id.split(COMBINED_ID_SEPARATOR)

    def combine(self, *others: Definition) -> Definition:
        """Return a new Definition holding the union of this and ``others``."""
        return combine_definitions(self, *others)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "definition_group": self.definition_group,
            "sources": [s.to_dict() for s in self.sources],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Definition:
        return cls(
            id=data.get("id") or None,
            title=data.get("title") or "",
            definition_group=data.get("definition_group"),
            sources=[Source.from_dict(s) for s in data.get("sources") or []],
        )

    def __contains__(self, source_name: object) -> bool:
        return source_name in self._source_map

    def __iter__(self) -> Iterator[Source]:
        return iter(self.sources)

    def __len__(self) -> int:
        return len(self._source_map)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Definition):
            return NotImplemented
        return self.id == other.id and self.sources == other.sources

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Definition(id={self.id!r}, title={self.title!r}, sources={len(self)})"


def combine_definitions(*definitions: Definition) -> Definition:
    """Union ``definitions`` into a new Definition.

    Sources sharing a name are merged recursively; the rest are copied. The
    result id is the sorted, de-duplicated set of component ids so that the
    outcome does not depend on grouping or order.
    """
    if not definitions:
        raise ValueError("combine_definitions() requires at least one definition")

    grouped: dict[str, Source] = {}
    for definition in definitions:
        for source in definition._source_map.values():
            if source.source_name in grouped:
                grouped[source.source_name] = grouped[source.source_name].combine(source)
            else:
                grouped[source.source_name] = source.copy()

    component_ids = sorted({cid for d in definitions for cid in d.component_ids})
    titles = list(dict.fromkeys(d.title for d in definitions if d.title))
    groups = {d.definition_group for d in definitions}

    return Definition(
        id=COMBINED_ID_SEPARATOR.join(component_ids),
        title=", ".join(titles),
        definition_group=groups.pop() if len(groups) == 1 else None,
        sources=grouped.values(),
    )
