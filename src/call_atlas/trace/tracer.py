"""Runtime tracer: observe a bounded execution and emit a Definition.

The tracer installs a profile function (``sys.setprofile``) for the duration
of one callable. Every Python-level call resolves two code units:

    caller  the nearest recorded source on the session's CallStack
    callee  the unit defining the invoked function (class or module)

and, when both are recorded and differ, adds a Dependency caller -> callee
with a MethodId ``(function name, context)`` and the call-site path.

Usage:
    from call_atlas.trace import Tracer

    tracer = Tracer(module_set=[Order, Invoice], target_files=["/app/shop/orders.py"])
    definition = tracer.trace(run_checkout, title="checkout")
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable, Iterable
from types import CodeType, FrameType, ModuleType
from typing import Any, Optional, Union

from ..definition.models import CLASS_CONTEXT, INSTANCE_CONTEXT, Definition, Source
from ..exceptions import InvalidConfigError, InvalidPathError
from ..modules import LOCALS_SEGMENT, ModuleClassifier, NamespaceClassifier
from .call_stack import CallStack

logger = logging.getLogger(__name__)

ModuleSetEntry = Union[str, type, ModuleType]
ModuleFinder = Callable[[Source], Optional[Iterable[str]]]
PathFilter = Callable[[str], str]

# Code from these files is bookkeeping and never observed.
_OWN_FILES = frozenset(
    os.path.normpath(path)
    for path in (
        __file__,
        os.path.join(os.path.dirname(__file__), "call_stack.py"),
    )
)


def source_name_of(entry: ModuleSetEntry) -> str:
    """Normalize a module-set entry (name, class or module) to a source name."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, ModuleType):
        return entry.__name__
    if isinstance(entry, type):
        return f"{entry.__module__}.{entry.__qualname__}"
    raise InvalidConfigError("module_set", entry, "entries must be names, classes or modules")


def owner_qualname(qualname: str) -> str:
    """Qualified name of the class defining a function, or "" for module level.

    ``"Order.total"`` -> ``"Order"``; ``"Order.total.<locals>.helper"`` ->
    ``"Order"``; ``"build.<locals>.Local.run"`` -> ``"build.<locals>.Local"``;
    ``"main"`` -> ``""``.
    """
    # Drop the function itself, then every enclosing function scope
    parts = qualname.split(".")[:-1]
    while parts and parts[-1] == LOCALS_SEGMENT:
        del parts[-2:]
    return ".".join(parts)


class Tracer:
    """Configured tracer. One instance may run many traces, one at a time.

    Args:
        module_set: Sources to record. Empty or None records every unit.
        target_files: Absolute paths; when given, edges are only recorded for
            call sites in these files. An empty collection records no edges.
        filter_method_id_path: Rewrites each ``"<file>:<line>"`` call site.
        module_finder: Returns the module path for a Source, or None to fall
            back to ``module_classifier``.
        module_classifier: Default classification for traced sources;
            a NamespaceClassifier when not given.

    Raises:
        InvalidPathError: If a target file is not an absolute path.
    """

    def __init__(
        self,
        module_set: Optional[Iterable[ModuleSetEntry]] = None,
        target_files: Optional[Iterable[Union[str, os.PathLike]]] = None,
        filter_method_id_path: Optional[PathFilter] = None,
        module_finder: Optional[ModuleFinder] = None,
        module_classifier: Optional[ModuleClassifier] = None,
    ) -> None:
        self.module_set = frozenset(source_name_of(e) for e in (module_set or ()))

        if target_files is None:
            self.target_files: Optional[frozenset[str]] = None
        else:
            files = [os.fspath(f) for f in target_files]
            for path in files:
                if not os.path.isabs(path):
                    raise InvalidPathError(
                        path, "target_files must be absolute path", option="target_files"
                    )
            self.target_files = frozenset(os.path.normpath(f) for f in files)

        self.filter_method_id_path = filter_method_id_path
        self.module_finder = module_finder
        self.module_classifier = (
            module_classifier if module_classifier is not None else NamespaceClassifier()
        )
        self._source_names: dict[CodeType, tuple[str, str]] = {}

    def trace(
        self,
        body: Callable[[], Any],
        title: str = "",
        definition_group: Optional[str] = None,
    ) -> Definition:
        """Run ``body`` under the profile hook and return what it called.

        The hook is removed (and any previous one restored) however ``body``
        exits. If ``body`` raises, the partial Definition is dropped and the
        exception propagates.
        """
        definition = Definition(title=title, definition_group=definition_group)
        session = TraceSession(self, definition)

        logger.debug("Tracing %r (module_set=%d entries)", title, len(self.module_set))
        previous = sys.getprofile()
        sys.setprofile(session)
        try:
            body()
        finally:
            sys.setprofile(previous)
            session.close()

        self._assign_modules(definition)
        logger.debug(
            "Traced %r: %d sources, %d dependencies",
            title,
            len(definition),
            sum(len(s.dependencies) for s in definition.sources),
        )
        return definition

    def is_recorded(self, source_name: str) -> bool:
        return not self.module_set or source_name in self.module_set

    def is_target_file(self, filename: str) -> bool:
        if self.target_files is None:
            return True
        return os.path.normpath(filename) in self.target_files

    def format_path(self, filename: str, lineno: int) -> str:
        path = f"{filename}:{lineno}"
        if self.filter_method_id_path is not None:
            path = self.filter_method_id_path(path)
        return path

    def resolve(self, frame: FrameType) -> tuple[str, str]:
        """Return ``(source_name, owner_qualname)`` for the function running in ``frame``."""
        code = frame.f_code
        resolved = self._source_names.get(code)
        if resolved is None:
            module_name = frame.f_globals.get("__name__") or "__main__"
            owner = owner_qualname(code.co_qualname)
            source_name = f"{module_name}.{owner}" if owner else module_name
            resolved = (source_name, owner)
            self._source_names[code] = resolved
        return resolved

    @staticmethod
    def resolve_context(frame: FrameType, module_name: str, owner: str) -> str:
        """``"instance"`` when the first argument is an instance of the owner class."""
        code = frame.f_code
        if not owner or code.co_argcount == 0:
            return CLASS_CONTEXT
        receiver = frame.f_locals.get(code.co_varnames[0])
        if receiver is None or isinstance(receiver, type):
            return CLASS_CONTEXT
        for klass in type(receiver).__mro__:
            if klass.__qualname__ == owner and klass.__module__ == module_name:
                return INSTANCE_CONTEXT
        return CLASS_CONTEXT

    def _assign_modules(self, definition: Definition) -> None:
        for source in definition.sources:
            modules = None
            if self.module_finder is not None:
                modules = self.module_finder(source)
            if modules is None:
                modules = self.module_classifier.classify(source.source_name)
            source.modules = list(modules or [])


class TraceSession:
    """Profile function holding the state of one running trace."""

    def __init__(self, tracer: Tracer, definition: Definition) -> None:
        self.tracer = tracer
        self.definition = definition
        self.stack = CallStack()
        self._recording = False

    def __call__(self, frame: FrameType, event: str, arg: Any) -> None:
        if self._recording:
            return
        if event == "call":
            self._on_call(frame)
        elif event == "return":
            self.stack.pop(frame)

    def close(self) -> None:
        self.stack.clear()

    def _on_call(self, frame: FrameType) -> None:
        if os.path.normpath(frame.f_code.co_filename) in _OWN_FILES:
            return

        self._recording = True
        try:
            source_name, owner = self.tracer.resolve(frame)
            caller = self.stack.current_source

            if not self.tracer.is_recorded(source_name):
                self.stack.push(frame, caller)
                return

            self.stack.push(frame, source_name)
            self.definition.source(source_name)

            if caller is None or caller == source_name:
                return

            call_site = frame.f_back
            if call_site is None:
                return
            filename = call_site.f_code.co_filename
            if not self.tracer.is_target_file(filename):
                return

            module_name = source_name[: -len(owner) - 1] if owner else source_name
            context = self.tracer.resolve_context(frame, module_name, owner)
            method_id = (
                self.definition.source(caller)
                .dependency(source_name)
                .method_id(frame.f_code.co_name, context)
            )
            method_id.add_path(self.tracer.format_path(filename, call_site.f_lineno))
        finally:
            self._recording = False


def trace(
    body: Callable[[], Any],
    title: str = "",
    definition_group: Optional[str] = None,
    **tracer_options: Any,
) -> Definition:
    """Build a :class:`Tracer` from ``tracer_options`` and trace ``body`` once."""
    return Tracer(**tracer_options).trace(body, title=title, definition_group=definition_group)
