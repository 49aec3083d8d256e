"""Tests for definition.models: MethodId, Dependency, Source, Definition."""

import pytest

from call_atlas.definition import (
    CLASS_CONTEXT,
    INSTANCE_CONTEXT,
    Definition,
    Dependency,
    MethodId,
    Source,
    combine_definitions,
)


class TestMethodId:
    def test_key_is_name_and_context(self):
        assert MethodId("save", INSTANCE_CONTEXT).key == ("save", "instance")

    def test_rejects_unknown_context(self):
        with pytest.raises(ValueError):
            MethodId("save", "module")

    def test_add_path_deduplicates(self):
        method_id = MethodId("save", CLASS_CONTEXT)
        method_id.add_path("a.py:1")
        method_id.add_path("a.py:1")
        method_id.add_path("a.py:2")
        assert method_id.paths == ["a.py:1", "a.py:2"]

    def test_path_order_does_not_affect_equality(self):
        assert MethodId("m", CLASS_CONTEXT, ["x:1", "y:2"]) == MethodId(
            "m", CLASS_CONTEXT, ["y:2", "x:1"]
        )

    def test_combine_unions_paths_without_mutating(self):
        left = MethodId("m", CLASS_CONTEXT, ["x:1"])
        right = MethodId("m", CLASS_CONTEXT, ["x:1", "y:2"])
        combined = left.combine(right)
        assert set(combined.paths) == {"x:1", "y:2"}
        assert left.paths == ["x:1"]

    def test_combine_different_keys_fails(self):
        with pytest.raises(ValueError):
            MethodId("m", CLASS_CONTEXT).combine(MethodId("m", INSTANCE_CONTEXT))

    def test_dict_round_trip(self):
        method_id = MethodId("m", INSTANCE_CONTEXT, ["x:1"])
        assert MethodId.from_dict(method_id.to_dict()) == method_id


class TestDependency:
    def test_method_id_auto_vivifies(self):
        dependency = Dependency("B")
        first = dependency.method_id("run", INSTANCE_CONTEXT)
        assert dependency.method_id("run", INSTANCE_CONTEXT) is first
        assert dependency.find_method_id("run", CLASS_CONTEXT) is None

    def test_same_name_different_context_are_distinct(self):
        dependency = Dependency("B")
        dependency.method_id("run", INSTANCE_CONTEXT)
        dependency.method_id("run", CLASS_CONTEXT)
        assert len(dependency.method_ids) == 2

    def test_method_ids_sorted_by_name_then_context(self):
        dependency = Dependency("B")
        dependency.method_id("zeta", CLASS_CONTEXT)
        dependency.method_id("alpha", INSTANCE_CONTEXT)
        dependency.method_id("alpha", CLASS_CONTEXT)
        assert [m.key for m in dependency.method_ids] == [
            ("alpha", "class"),
            ("alpha", "instance"),
            ("zeta", "class"),
        ]

    def test_combine_merges_method_ids(self):
        left = Dependency("B", [MethodId("a", CLASS_CONTEXT, ["p:1"])])
        right = Dependency(
            "B", [MethodId("a", CLASS_CONTEXT, ["p:2"]), MethodId("b", CLASS_CONTEXT)]
        )
        combined = left.combine(right)
        assert [m.name for m in combined.method_ids] == ["a", "b"]
        assert set(combined.find_method_id("a", CLASS_CONTEXT).paths) == {"p:1", "p:2"}
        assert len(left.method_ids) == 1

    def test_combine_different_targets_fails(self):
        with pytest.raises(ValueError):
            Dependency("B").combine(Dependency("C"))

    def test_combine_all_groups_by_target(self):
        merged = Dependency.combine_all(
            Dependency("C", [MethodId("x", CLASS_CONTEXT)]),
            Dependency("B", [MethodId("y", CLASS_CONTEXT)]),
            Dependency("C", [MethodId("z", CLASS_CONTEXT)]),
        )
        assert [d.source_name for d in merged] == ["B", "C"]
        assert [m.name for m in merged[1].method_ids] == ["x", "z"]

    def test_combine_all_of_nothing(self):
        assert Dependency.combine_all() == []


class TestSource:
    def test_dependency_auto_vivifies(self):
        source = Source("A")
        assert source.dependency("B") is source.dependency("B")
        assert source.find_dependency("C") is None

    def test_dependencies_sorted_by_target(self):
        source = Source("A")
        source.dependency("Zed")
        source.dependency("Bee")
        assert [d.source_name for d in source.dependencies] == ["Bee", "Zed"]

    def test_combine_modules_prefers_non_empty(self):
        left = Source("A")
        right = Source("A", modules=["Billing"])
        assert left.combine(right).modules == ["Billing"]
        assert right.combine(left).modules == ["Billing"]

    def test_combine_modules_is_order_independent(self):
        left = Source("A", modules=["Billing"])
        right = Source("A", modules=["Accounts"])
        assert left.combine(right).modules == right.combine(left).modules

    def test_combine_different_names_fails(self):
        with pytest.raises(ValueError):
            Source("A").combine(Source("B"))

    def test_from_dict_accepts_module_name_records(self):
        source = Source.from_dict(
            {"source_name": "A", "modules": [{"module_name": "X"}, {"module_name": "Y"}]}
        )
        assert source.modules == ["X", "Y"]


class TestDefinition:
    def test_id_is_generated(self):
        assert Definition().id != Definition().id

    def test_source_auto_vivifies(self):
        definition = Definition()
        assert definition.source("A") is definition.source("A")
        assert "A" in definition
        assert definition.find_source("B") is None

    def test_sources_sorted_by_name(self):
        definition = Definition()
        definition.source("b")
        definition.source("a")
        assert [s.source_name for s in definition] == ["a", "b"]
        assert len(definition) == 2

    def test_dict_round_trip(self, simple_definition):
        restored = Definition.from_dict(simple_definition.to_dict())
        assert restored == simple_definition
        assert restored.title == "simple"


class TestCombineDefinitions:
    def test_union_of_sources_and_edges(self, simple_definition, other_definition):
        combined = simple_definition.combine(other_definition)
        assert [s.source_name for s in combined] == ["A", "B", "C", "D"]
        a_to_b = combined.find_source("A").find_dependency("B")
        assert [m.name for m in a_to_b.method_ids] == ["call_b", "other"]

    def test_inputs_are_not_mutated(self, simple_definition, other_definition):
        before = simple_definition.to_dict()
        simple_definition.combine(other_definition)
        assert simple_definition.to_dict() == before
        assert "D" not in simple_definition

    def test_commutative(self, simple_definition, other_definition):
        assert simple_definition.combine(other_definition) == other_definition.combine(
            simple_definition
        )

    def test_associative(self, simple_definition, other_definition, build_definition):
        third = build_definition({"C": {"E": ["emit"]}}, id="third")
        grouped_left = simple_definition.combine(other_definition).combine(third)
        grouped_right = simple_definition.combine(other_definition.combine(third))
        assert grouped_left == grouped_right
        assert grouped_left.id == "other+simple+third"

    def test_combining_with_itself_is_identity(self, simple_definition):
        combined = simple_definition.combine(simple_definition)
        assert combined.sources == simple_definition.sources
        assert combined.id == simple_definition.id

    def test_titles_joined(self, simple_definition, other_definition):
        assert combine_definitions(simple_definition, other_definition).title == "simple, other"

    def test_group_kept_only_when_shared(self):
        same = combine_definitions(
            Definition(definition_group="api"), Definition(definition_group="api")
        )
        mixed = combine_definitions(
            Definition(definition_group="api"), Definition(definition_group="jobs")
        )
        assert same.definition_group == "api"
        assert mixed.definition_group is None

    def test_requires_at_least_one(self):
        with pytest.raises(ValueError):
            combine_definitions()
