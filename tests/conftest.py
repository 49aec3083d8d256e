"""Shared test fixtures for call-atlas."""

import importlib.util
import sys
from pathlib import Path

import pytest

from call_atlas.definition import CLASS_CONTEXT, INSTANCE_CONTEXT, Definition

FIXTURES_DIR = Path(__file__).parent / "fixtures"

SHOP_MODULE = "atlas_shop"


@pytest.fixture(scope="session")
def shop():
    """The traced sample program, imported under a fixed module name."""
    path = FIXTURES_DIR / "shop.py"
    spec = importlib.util.spec_from_file_location(SHOP_MODULE, path)
    module = importlib.util.module_from_spec(spec)
    sys.modules[SHOP_MODULE] = module
    spec.loader.exec_module(module)
    yield module
    sys.modules.pop(SHOP_MODULE, None)


def make_definition(edges, title="", id=None, definition_group=None, modules=None):
    """Build a Definition from ``{caller: {callee: [method names]}}``.

    Method ids get instance context and one path ``"<caller>.py:1"``.
    """
    modules = modules or {}
    definition = Definition(id=id, title=title, definition_group=definition_group)
    for caller, targets in edges.items():
        source = definition.source(caller)
        source.modules = list(modules.get(caller, []))
        for callee, methods in targets.items():
            callee_source = definition.source(callee)
            callee_source.modules = list(modules.get(callee, []))
            for name in methods:
                source.dependency(callee).method_id(name, INSTANCE_CONTEXT).add_path(
                    f"{caller}.py:1"
                )
    return definition


@pytest.fixture
def simple_definition():
    """A -> B (call_b), A -> C (call_c), B -> C (call_c)."""
    return make_definition(
        {"A": {"B": ["call_b"], "C": ["call_c"]}, "B": {"C": ["call_c"]}},
        title="simple",
        id="simple",
    )


@pytest.fixture
def other_definition():
    """A -> B (other) plus an isolated D."""
    definition = Definition(id="other", title="other")
    definition.source("A").dependency("B").method_id("other", CLASS_CONTEXT).add_path("a.py:9")
    definition.source("D")
    return definition


@pytest.fixture
def build_definition():
    return make_definition
