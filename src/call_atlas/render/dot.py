"""Render a Definition as a Graphviz DOT document.

Sources with a module path are nested in one ``subgraph "cluster_..."``
block per path prefix, outermost first. Cluster blocks for a shared prefix
are repeated per source but keep one id, so Graphviz merges them.

Options:
    compound      edges between different module clusters are drawn once per
                  (from cluster, to cluster) pair with ltail/lhead; later
                  dependencies on the same pair only extend its metadata
    concentrate   passed through to Graphviz
    only_module   draw module clusters and the edges between them, no sources
                  (implies compound)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, Optional

from ..definition.models import Definition, Dependency, Source
from ..modules import ModuleClassifier, SourceModulesClassifier
from .metadata import MetadataStore

MODULE_DELIMITER = "::"

# Between modules is prominently distanced
MODULE_MINLEN = 3


def quote(value: str) -> str:
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_attributes(**attrs: Any) -> str:
    """``[a="1" b="2"]``, skipping None and empty values; "" when nothing is left."""
    parts = [f"{key}={quote(value)}" for key, value in attrs.items() if value not in (None, "")]
    if not parts:
        return ""
    return "[" + " ".join(parts) + "]"


def module_label(module_names: list[str]) -> Optional[str]:
    if not module_names:
        return None
    return "cluster_" + MODULE_DELIMITER.join(module_names)


def module_node_name(module_names: list[str]) -> str:
    return MODULE_DELIMITER.join(module_names)


class IndentedWriter:
    """Line buffer with an indentation level."""

    def __init__(self, indent: str = "  ") -> None:
        self.indent = indent
        self._level = 0
        self._lines: list[str] = []

    def puts(self, line: str) -> None:
        self._lines.append(f"{self.indent * self._level}{line}")

    @contextmanager
    def indented(self) -> Iterator[None]:
        self._level += 1
        try:
            yield
        finally:
            self._level -= 1

    def getvalue(self) -> str:
        return "\n".join(self._lines) + "\n"


class DefinitionToDot:
    """One rendering of ``definition``; DOT text and metadata are built once, lazily.

    Without a ``classifier`` the module paths recorded on the Sources are used.
    """

    def __init__(
        self,
        definition: Definition,
        classifier: Optional[ModuleClassifier] = None,
        compound: bool = False,
        concentrate: bool = False,
        only_module: bool = False,
    ) -> None:
        self.definition = definition
        self.classifier = (
            classifier if classifier is not None else SourceModulesClassifier(definition)
        )
        # Dependencies between modules are always compound in module-only mode
        self.compound = compound or only_module
        self.concentrate = concentrate
        self.only_module = only_module
        self._metadata_store = MetadataStore(self.classifier)
        self._compound_map: dict[tuple[str, str], str] = {}
        self._dot: Optional[str] = None

    def to_s(self) -> str:
        if self._dot is None:
            self._dot = self._render()
        return self._dot

    __str__ = to_s

    @property
    def metadata(self) -> list[dict[str, Any]]:
        self.to_s()
        return self._metadata_store.to_list()

    def _render(self) -> str:
        io = IndentedWriter()
        io.puts(f"strict digraph {quote(self.definition.title)} {{")
        with io.indented():
            if self.compound:
                io.puts("compound=true")
            if self.concentrate:
                io.puts("concentrate=true")

            if self.only_module:
                self._render_only_modules(io)
            else:
                for source in self.definition.sources:
                    self._insert_source(io, source)
        io.puts("}")
        return io.getvalue()

    def _insert_source(self, io: IndentedWriter, source: Source) -> None:
        source_modules = self.classifier.classify(source.source_name)

        def write_node() -> None:
            node_id = self._metadata_store.issue_source_id(source)
            io.puts(
                f"{quote(source.source_name)} "
                f"{build_attributes(label=source.source_name, id=node_id)}"
            )

        def write_node_in_cluster(prefix: list[str], innermost: bool) -> None:
            if innermost:
                write_node()

        if source_modules:
            self._insert_module_chain(io, source_modules, write_node_in_cluster)
        else:
            write_node()

        for dependency in source.dependencies:
            dependency_modules = self.classifier.classify(dependency.source_name)

            if (
                self.compound
                and source_modules
                and dependency_modules
                and source_modules != dependency_modules
            ):
                attributes = self._compound_edge_attributes(
                    source_modules, dependency_modules, dependency
                )
                if attributes is None:
                    continue
            else:
                attributes = {"id": self._metadata_store.issue_dependency_id(dependency)}

            io.puts(
                f"{quote(source.source_name)} -> {quote(dependency.source_name)} "
                f"{build_attributes(**attributes)}"
            )

    def _render_only_modules(self, io: IndentedWriter) -> None:
        dependency_map: dict[tuple[str, ...], dict[tuple[str, ...], list[Dependency]]] = {}

        for source in self.definition.sources:
            source_modules = tuple(self.classifier.classify(source.source_name))
            if not source_modules:
                continue

            for dependency in source.dependencies:
                dependency_modules = tuple(self.classifier.classify(dependency.source_name))
                if not dependency_modules:
                    continue
                dependency_map.setdefault(source_modules, {}).setdefault(
                    dependency_modules, []
                ).append(dependency)

        # Drop paths already implied by a longer one: [A], [A, B] -> [A, B]
        all_modules = list(
            dict.fromkeys(
                [*dependency_map, *(to for targets in dependency_map.values() for to in targets)]
            )
        )
        deepest = [
            modules
            for modules in all_modules
            if not any(
                len(other) > len(modules) and other[: len(modules)] == modules
                for other in all_modules
            )
        ]

        def write_module_node(prefix: list[str], innermost: bool) -> None:
            io.puts(
                f"{quote(module_node_name(prefix))} "
                f"{build_attributes(label=prefix[-1], id=self._metadata_store.issue_modules_id(prefix))}"
            )

        for modules in deepest:
            self._insert_module_chain(io, list(modules), write_module_node)

        for from_modules, targets in dependency_map.items():
            for to_modules, dependencies in targets.items():
                # Do not render self-dependency
                if from_modules == to_modules:
                    continue

                for dependency in Dependency.combine_all(*dependencies):
                    attributes = self._compound_edge_attributes(
                        list(from_modules), list(to_modules), dependency
                    )
                    if attributes is None:
                        continue
                    io.puts(
                        f"{quote(module_node_name(list(from_modules)))} -> "
                        f"{quote(module_node_name(list(to_modules)))} "
                        f"{build_attributes(**attributes)}"
                    )

    def _compound_edge_attributes(
        self, from_modules: list[str], to_modules: list[str], dependency: Dependency
    ) -> Optional[dict[str, Any]]:
        """Attributes for a new edge between two clusters, or None when one is already drawn."""
        ltail = module_label(from_modules)
        lhead = module_label(to_modules)
        key = (ltail, lhead)

        if key in self._compound_map:
            self._metadata_store.append_dependency(self._compound_map[key], dependency)
            return None

        compound_id = self._metadata_store.issue_dependency_id(dependency)
        self._compound_map[key] = compound_id
        return {"id": compound_id, "ltail": ltail, "lhead": lhead, "minlen": MODULE_MINLEN}

    def _insert_module_chain(
        self,
        io: IndentedWriter,
        module_names: list[str],
        on_level: Callable[[list[str], bool], Any],
    ) -> None:
        """Write nested cluster blocks for every prefix of ``module_names``.

        ``on_level(prefix, innermost)`` runs inside each block before the
        next level is opened.
        """

        def write_level(depth: int) -> None:
            prefix = module_names[: depth + 1]
            innermost = depth == len(module_names) - 1
            io.puts(f"subgraph {quote(module_label(prefix))} {{")
            with io.indented():
                io.puts(f"id={quote(self._metadata_store.issue_modules_id(prefix))}")
                io.puts(f"label={quote(prefix[-1])}")
                on_level(prefix, innermost)
                if not innermost:
                    write_level(depth + 1)
            io.puts("}")

        write_level(0)


def render_definition(
    definition: Definition,
    classifier: Optional[ModuleClassifier] = None,
    compound: bool = False,
    concentrate: bool = False,
    only_module: bool = False,
) -> tuple[str, list[dict[str, Any]]]:
    """Render ``definition`` and return ``(dot, metadata)``."""
    renderer = DefinitionToDot(
        definition,
        classifier,
        compound=compound,
        concentrate=concentrate,
        only_module=only_module,
    )
    return renderer.to_s(), renderer.metadata
