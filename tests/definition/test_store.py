"""Tests for definition.store.DefinitionStore."""

import threading

import pytest

import call_atlas.definition.store as store_module
from call_atlas.definition import Definition, DefinitionStore
from call_atlas.exceptions import DefinitionNotFoundError, DuplicateDefinitionError


def _definitions(*titles, group=None):
    return [Definition(title=t, definition_group=group) for t in titles]


class TestRegistration:
    def test_ids_are_powers_of_two(self):
        store = DefinitionStore()
        assert store.set(*_definitions("a", "b", "c")) == [1, 2, 4]
        assert store.set(*_definitions("d")) == [8]
        assert len(store) == 4

    def test_get_single(self):
        store = DefinitionStore()
        first, second = _definitions("a", "b")
        store.set(first, second)
        assert store.get(1) is first
        assert store.get(2) is second

    def test_duplicate_object_rejected(self):
        store = DefinitionStore()
        (definition,) = _definitions("a")
        store.set(definition)
        with pytest.raises(DuplicateDefinitionError, match="Definition already set"):
            store.set(definition)

    def test_duplicate_within_one_call_registers_nothing(self):
        store = DefinitionStore()
        (definition,) = _definitions("a")
        with pytest.raises(DuplicateDefinitionError):
            store.set(definition, definition)
        assert store.is_empty()

    def test_equal_but_distinct_objects_are_accepted(self):
        store = DefinitionStore()
        assert store.set(Definition(id="x"), Definition(id="x")) == [1, 2]

    def test_get_id_reverse_lookup(self):
        store = DefinitionStore()
        first, second = _definitions("a", "b")
        store.set(first, second)
        assert store.get_id(second) == 2
        with pytest.raises(DefinitionNotFoundError):
            store.get_id(Definition())

    def test_get_id_across_many_registrations(self):
        store = DefinitionStore()
        definitions = _definitions(*(f"d{i}" for i in range(64)))
        for definition in definitions:
            store.set(definition)
        assert [store.get_id(d) for d in definitions] == [1 << i for i in range(64)]
        with pytest.raises(DuplicateDefinitionError):
            store.set(definitions[40])

    def test_cleared_definition_can_be_registered_again(self):
        store = DefinitionStore()
        (definition,) = _definitions("a")
        store.set(definition)
        store.clear()
        with pytest.raises(DefinitionNotFoundError):
            store.get_id(definition)
        assert store.set(definition) == [1]


class TestMaskLookup:
    def test_split_bit_id(self):
        store = DefinitionStore()
        store.set(*_definitions("a", "b", "c"))
        assert store.split_bit_id(5) == [1, 4]
        assert store.split_bit_id(7) == [1, 2, 4]

    @pytest.mark.parametrize("bit_id", [0, -1, 8, 9])
    def test_unregistered_masks_not_found(self, bit_id):
        store = DefinitionStore()
        store.set(*_definitions("a", "b", "c"))
        with pytest.raises(DefinitionNotFoundError):
            store.get(bit_id)

    def test_not_found_is_a_key_error(self):
        with pytest.raises(KeyError):
            DefinitionStore().get(1)

    def test_combined_mask(self, simple_definition, other_definition):
        store = DefinitionStore()
        store.set(simple_definition, other_definition)
        combined = store.get(3)
        assert combined == simple_definition.combine(other_definition)
        assert combined.title == "simple, other"

    def test_three_way_mask(self, simple_definition, other_definition, build_definition):
        third = build_definition({"C": {"E": ["emit"]}}, id="third")
        store = DefinitionStore()
        assert store.set(simple_definition, other_definition, third) == [1, 2, 4]
        assert store.get(7) == simple_definition.combine(other_definition.combine(third))
        assert store.get(5) == simple_definition.combine(third)

    def test_combined_result_is_memoized(self, simple_definition, other_definition):
        store = DefinitionStore()
        store.set(simple_definition, other_definition)
        assert store.get(3) is store.get(3)

    def test_combination_does_not_touch_members(self, simple_definition, other_definition):
        store = DefinitionStore()
        store.set(simple_definition, other_definition)
        store.get(3)
        assert "D" not in store.get(1)

    def test_concurrent_reads_agree(self, simple_definition, other_definition):
        store = DefinitionStore()
        store.set(simple_definition, other_definition)
        results = []

        def read():
            results.append(store.get(3))

        threads = [threading.Thread(target=read) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8
        assert all(r == results[0] for r in results)

    def test_clear_waits_for_mask_lookup(self, simple_definition, monkeypatch):
        store = DefinitionStore()
        store.set(simple_definition)
        split = store.split_bit_id
        clearing = []

        def split_then_clear(bit_id):
            bit_ids = split(bit_id)
            thread = threading.Thread(target=store.clear)
            thread.start()
            thread.join(timeout=0.2)
            clearing.append(thread)
            return bit_ids

        monkeypatch.setattr(store, "split_bit_id", split_then_clear)
        assert store.get(1) is simple_definition

        clearing[0].join()
        assert store.is_empty()
        monkeypatch.undo()
        with pytest.raises(DefinitionNotFoundError):
            store.get(1)

    def test_combination_computed_across_clear_is_not_cached(
        self, simple_definition, other_definition, monkeypatch
    ):
        store = DefinitionStore()
        store.set(simple_definition, other_definition)
        combine = store_module.combine_definitions

        def combine_then_clear(*definitions):
            store.clear()
            return combine(*definitions)

        monkeypatch.setattr(store_module, "combine_definitions", combine_then_clear)
        store.get(3)
        monkeypatch.undo()

        third, fourth = _definitions("c", "d")
        store.set(third, fourth)
        assert store.get(3).title == "c, d"


class TestGroups:
    def test_definition_groups_sorted_none_last(self):
        store = DefinitionStore()
        store.set(
            Definition(definition_group="jobs"),
            Definition(),
            Definition(definition_group="api"),
        )
        assert store.definition_groups() == ["api", "jobs", None]

    def test_filter_by_definition_group(self):
        store = DefinitionStore()
        api = _definitions("a", "b", group="api")
        store.set(*api, *_definitions("c"))
        assert store.filter_by_definition_group("api") == api
        assert [d.title for d in store.filter_by_definition_group(None)] == ["c"]


class TestHousekeeping:
    def test_contains_and_iteration(self):
        store = DefinitionStore()
        store.set(*_definitions("a", "b"))
        assert 2 in store
        assert 3 not in store
        assert [bit_id for bit_id, _ in store] == [1, 2]

    def test_clear_resets_ids(self):
        store = DefinitionStore()
        store.set(*_definitions("a", "b"))
        store.clear()
        assert store.is_empty()
        assert store.set(*_definitions("c")) == [1]
