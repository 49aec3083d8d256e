"""Graphviz rendering of Definitions with a metadata side table."""

from .dot import MODULE_MINLEN, DefinitionToDot, module_label, render_definition
from .metadata import DEPENDENCY, MODULE, SOURCE, Metadata, MetadataStore

__all__ = [
    "DEPENDENCY",
    "MODULE",
    "MODULE_MINLEN",
    "SOURCE",
    "DefinitionToDot",
    "Metadata",
    "MetadataStore",
    "module_label",
    "render_definition",
]
