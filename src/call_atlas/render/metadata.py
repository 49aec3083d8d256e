"""Side table backing every id the DOT renderer issues.

A client that clicks an element of the rendered graph gets its ``id``
attribute; the matching record resolves it back to domain data without
re-parsing the DOT text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..definition.models import Dependency, Source
from ..exceptions import RenderError, UnknownMetadataTypeError
from ..modules import ModuleClassifier

SOURCE = "source"
DEPENDENCY = "dependency"
MODULE = "module"

ID_PREFIX = "graph_"


def modules_to_list(module_names: list[str]) -> list[dict[str, str]]:
    return [{"module_name": name} for name in module_names]


@dataclass
class Metadata:
    """One issued id and the object it stands for.

    ``data`` is a Source, a list of Dependencies, or a module path,
    depending on ``type``.
    """

    id: str
    type: str
    data: Any

    def to_dict(self, classifier: ModuleClassifier) -> dict[str, Any]:
        if self.type == SOURCE:
            return {
                "id": self.id,
                "type": SOURCE,
                "source_name": self.data.source_name,
                "modules": modules_to_list(classifier.classify(self.data.source_name)),
            }
        if self.type == DEPENDENCY:
            return {
                "id": self.id,
                "type": DEPENDENCY,
                "dependencies": [d.to_dict() for d in self.data],
            }
        if self.type == MODULE:
            return {
                "id": self.id,
                "type": MODULE,
                "modules": modules_to_list(self.data),
            }
        raise UnknownMetadataTypeError(self.type)


class MetadataStore:
    """Issues sequential ids (``graph_1``, ``graph_2``, ...) and keeps their records."""

    def __init__(self, classifier: ModuleClassifier, prefix: str = ID_PREFIX) -> None:
        self.classifier = classifier
        self.prefix = prefix
        self._records: dict[str, Metadata] = {}
        self._module_ids: dict[tuple[str, ...], str] = {}

    def issue_source_id(self, source: Source) -> str:
        return self._issue(SOURCE, source)

    def issue_dependency_id(self, dependency: Dependency) -> str:
        return self._issue(DEPENDENCY, [dependency.copy()])

    def issue_modules_id(self, module_names: list[str]) -> str:
        """Return the id of a module path, issuing it on first use."""
        key = tuple(module_names)
        if key not in self._module_ids:
            self._module_ids[key] = self._issue(MODULE, list(module_names))
        return self._module_ids[key]

    def append_dependency(self, id: str, dependency: Dependency) -> None:
        """Merge ``dependency`` into the dependency record behind ``id``."""
        record = self._records[id]
        if record.type != DEPENDENCY:
            raise RenderError(f"{id} is a {record.type} record, not a dependency")
        record.data = Dependency.combine_all(*record.data, dependency)

    def get(self, id: str) -> Metadata:
        return self._records[id]

    def to_list(self) -> list[dict[str, Any]]:
        return [record.to_dict(self.classifier) for record in self._records.values()]

    def _issue(self, type: str, data: Any) -> str:
        id = f"{self.prefix}{len(self._records) + 1}"
        self._records[id] = Metadata(id=id, type=type, data=data)
        return id

    def __len__(self) -> int:
        return len(self._records)
