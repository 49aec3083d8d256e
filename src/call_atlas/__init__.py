"""
Call Atlas - runtime call graphs of Python programs

Traces a function while it runs, records which source (module, class or
function) calls which method of which other source, and renders the result
as a Graphviz DOT document grouped by user-defined modules.
"""

__version__ = "0.1.0"

from .definition import Definition, DefinitionStore, Dependency, MethodId, Source
from .render import render_definition
from .trace import Tracer, trace

__all__ = [
    "trace",  # Main entry point
    "Tracer",
    "Definition",
    "DefinitionStore",
    "Dependency",
    "MethodId",
    "Source",
    "render_definition",
]
