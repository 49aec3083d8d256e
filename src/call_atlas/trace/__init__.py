"""Runtime instrumentation that turns one execution into a Definition."""

from .call_stack import CallStack, StackEntry
from .tracer import TraceSession, Tracer, owner_qualname, source_name_of, trace

__all__ = [
    "CallStack",
    "StackEntry",
    "TraceSession",
    "Tracer",
    "owner_qualname",
    "source_name_of",
    "trace",
]
