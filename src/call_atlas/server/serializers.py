"""Build the JSON payloads served by the HTTP API."""

from __future__ import annotations

import math
from typing import Any, Optional

from ..definition.models import Definition, Dependency
from ..definition.store import DefinitionStore
from ..modules import ChainedClassifier, ModuleClassifier, ModuleStore, SourceModulesClassifier
from ..render import render_definition
from ..render.metadata import modules_to_list


class AtlasSerializer:
    """Serializes store and module-store contents into API responses.

    Args:
        store: Registered definitions
        module_store: Persisted module classification
    """

    def __init__(self, store: DefinitionStore, module_store: ModuleStore) -> None:
        self.store = store
        self.module_store = module_store

    def classifier_for(self, definition: Definition) -> ModuleClassifier:
        """Persisted classification first, then paths recorded at trace time."""
        return ChainedClassifier(self.module_store, SourceModulesClassifier(definition))

    # ── Definitions ──────────────────────────────────────────────────────

    def serialize_definition_list(
        self,
        page: int = 1,
        per: int = 100,
        title: str = "",
        source: str = "",
        definition_group: str = "",
    ) -> dict[str, Any]:
        """Paginated listing; every filter is a substring match."""
        matches = []
        for bit_id, definition in self.store.items():
            if title and title not in definition.title:
                continue
            if source and not any(source in s.source_name for s in definition.sources):
                continue
            if definition_group and definition_group not in (definition.definition_group or ""):
                continue
            matches.append((bit_id, definition))

        per = max(per, 1)
        total_count = len(matches)
        total_pages = max(math.ceil(total_count / per), 1)
        page = min(max(page, 1), total_pages)
        window = matches[(page - 1) * per : page * per]

        return {
            "definitions": [self._definition_summary(b, d) for b, d in window],
            "pagination": {
                "current_page": page,
                "total_pages": total_pages,
                "total_count": total_count,
                "per": per,
            },
        }

    def _definition_summary(self, bit_id: int, definition: Definition) -> dict[str, Any]:
        classifier = self.classifier_for(definition)
        sources = definition.sources
        return {
            "id": bit_id,
            "title": definition.title,
            "definition_group": definition.definition_group,
            "sources_count": len(sources),
            "unclassified_sources_count": sum(
                1 for s in sources if not classifier.classify(s.source_name)
            ),
        }

    def serialize_combined_definition(
        self,
        bit_id: int,
        compound: bool = False,
        concentrate: bool = False,
        only_module: bool = False,
    ) -> dict[str, Any]:
        """Render the combination addressed by ``bit_id``.

        Raises:
            DefinitionNotFoundError: If ``bit_id`` addresses no registered definitions.
        """
        titles = [self.store.get(i).title for i in self.store.split_bit_id(bit_id)]
        definition = self.store.get(bit_id)
        classifier = self.classifier_for(definition)
        dot, metadata = render_definition(
            definition,
            classifier,
            compound=compound,
            concentrate=concentrate,
            only_module=only_module,
        )
        return {
            "bit_id": bit_id,
            "titles": titles,
            "dot": dot,
            "dot_metadata": metadata,
            "sources": [
                {
                    "source_name": s.source_name,
                    "modules": modules_to_list(classifier.classify(s.source_name)),
                }
                for s in definition.sources
            ],
        }

    # ── Sources ──────────────────────────────────────────────────────────

    def source_names(self) -> list[str]:
        names = {s.source_name for d in self.store.definitions() for s in d.sources}
        return sorted(names)

    def serialize_sources(self) -> dict[str, Any]:
        return {"sources": [{"source_name": name} for name in self.source_names()]}

    def serialize_source(self, source_name: str) -> Optional[dict[str, Any]]:
        """Where ``source_name`` appears and who calls it; None if it appears nowhere."""
        related = []
        reverse: list[Dependency] = []
        for bit_id, definition in self.store.items():
            if source_name in definition:
                related.append({"id": bit_id, "title": definition.title})
            for caller in definition.sources:
                dependency = caller.find_dependency(source_name)
                if dependency is not None:
                    reverse.append(Dependency(caller.source_name, dependency.method_ids))

        if not related:
            return None

        return {
            "source_name": source_name,
            "modules": modules_to_list(self.module_store.get(source_name)),
            "related_definitions": related,
            "reverse_dependencies": [d.to_dict() for d in Dependency.combine_all(*reverse)],
        }

    # ── Modules ──────────────────────────────────────────────────────────

    def serialize_modules(self) -> dict[str, Any]:
        paths: dict[tuple[str, ...], None] = {}
        for name in self.source_names():
            modules = self.module_store.get(name)
            if modules:
                paths[tuple(modules)] = None
        return {"modules": [modules_to_list(list(p)) for p in sorted(paths)]}

    def serialize_module(self, module_names: list[str]) -> Optional[dict[str, Any]]:
        """Sources filed under ``module_names`` (or a sub-module); None when empty."""
        depth = len(module_names)
        sources = [
            name
            for name in self.source_names()
            if self.module_store.get(name)[:depth] == module_names
        ]
        if not sources:
            return None

        wanted = set(sources)
        related = [
            {"id": bit_id, "title": definition.title}
            for bit_id, definition in self.store.items()
            if any(s.source_name in wanted for s in definition.sources)
        ]
        return {
            "modules": modules_to_list(module_names),
            "sources": [{"source_name": name} for name in sources],
            "related_definitions": related,
        }
