"""DefinitionStore: bit-indexed registry of Definitions.

Every registered Definition gets the next power of two as its id (1, 2, 4,
8, ...). Any subset of stored Definitions is then addressed by one integer,
the OR of their ids, and the combined Definition for that mask is computed
once and memoized.

Usage:
    from call_atlas.definition.store import DefinitionStore

    store = DefinitionStore()
    first, second = store.set(trace_a, trace_b)   # [1, 2]
    merged = store.get(first | second)            # combine(trace_a, trace_b), cached

Thread-safety: the HTTP handlers read while the background loader writes.
Registration happens under a lock and publishes fully built Definitions.
Combined results are a pure function of the mask, so two threads missing
the cache at the same time compute equal values and the last write wins.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from typing import Optional

from ..exceptions import DefinitionNotFoundError, DuplicateDefinitionError
from .models import Definition, combine_definitions

logger = logging.getLogger(__name__)


class DefinitionStore:
    """Registry mapping power-of-two bit ids to Definitions."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._definitions: dict[int, Definition] = {}
        # id(definition) -> bit id; the definition is kept alive by _definitions
        self._bit_ids: dict[int, int] = {}
        self._combined_cache: dict[int, Definition] = {}
        self._generation = 0

    def set(self, *definitions: Definition) -> list[int]:
        """Register ``definitions`` in order and return their bit ids.

        Raises:
            DuplicateDefinitionError: If a definition object is already
                registered or is passed twice. Nothing is registered then.
        """
        with self._lock:
            seen: set[int] = set()
            for definition in definitions:
                registered_id = self._find_id(definition)
                if registered_id is not None or id(definition) in seen:
                    raise DuplicateDefinitionError(definition.title, registered_id)
                seen.add(id(definition))

            bit_ids = []
            for definition in definitions:
                bit_id = 1 << len(self._definitions)
                self._definitions[bit_id] = definition
                self._bit_ids[id(definition)] = bit_id
                bit_ids.append(bit_id)
                logger.debug("Registered definition %r as bit id %d", definition.title, bit_id)
            return bit_ids

    def get(self, bit_id: int) -> Definition:
        """Return the Definition for a single bit id or the combination for a mask.

        Raises:
            DefinitionNotFoundError: If ``bit_id`` is not positive or any of
                its bits is unregistered.
        """
        with self._lock:
            bit_ids = self.split_bit_id(bit_id)
            if len(bit_ids) == 1:
                return self._definitions[bit_ids[0]]
            cached = self._combined_cache.get(bit_id)
            if cached is not None:
                return cached
            definitions = [self._definitions[i] for i in bit_ids]
            generation = self._generation

        logger.debug("Combining %d definitions for mask %d", len(definitions), bit_id)
        combined = definitions[0]
        for definition in definitions[1:]:
            combined = combine_definitions(combined, definition)

        with self._lock:
            # A clear() while combining makes this result stale
            if generation == self._generation:
                self._combined_cache[bit_id] = combined
        return combined

    def split_bit_id(self, bit_id: int) -> list[int]:
        """Expand a mask into its registered single-bit ids, ascending.

        Raises:
            DefinitionNotFoundError: If the mask is not positive or names an
                unregistered bit.
        """
        if not isinstance(bit_id, int) or isinstance(bit_id, bool) or bit_id <= 0:
            raise DefinitionNotFoundError(bit_id, "bit id must be a positive integer")

        bit_ids = []
        remaining = bit_id
        with self._lock:
            while remaining:
                lowest = remaining & -remaining
                if lowest not in self._definitions:
                    raise DefinitionNotFoundError(bit_id, f"bit {lowest} is not registered")
                bit_ids.append(lowest)
                remaining ^= lowest
        return bit_ids

    def get_id(self, definition: Definition) -> int:
        """Reverse lookup by identity.

        Raises:
            DefinitionNotFoundError: If ``definition`` was never registered.
        """
        bit_id = self._find_id(definition)
        if bit_id is None:
            raise DefinitionNotFoundError(definition.title or definition.id)
        return bit_id

    def has_id(self, bit_id: int) -> bool:
        with self._lock:
            return bit_id in self._definitions

    def definition_groups(self) -> list[Optional[str]]:
        """Distinct definition groups, sorted, with ``None`` last."""
        with self._lock:
            groups = {d.definition_group for d in self._definitions.values()}
        named = sorted(g for g in groups if g is not None)
        return named + [None] if None in groups else named

    def filter_by_definition_group(self, definition_group: Optional[str]) -> list[Definition]:
        with self._lock:
            return [
                d for d in self._definitions.values() if d.definition_group == definition_group
            ]

    def items(self) -> list[tuple[int, Definition]]:
        """Snapshot of ``(bit_id, definition)`` pairs in registration order."""
        with self._lock:
            return list(self._definitions.items())

    def definitions(self) -> list[Definition]:
        with self._lock:
            return list(self._definitions.values())

    def clear(self) -> None:
        with self._lock:
            self._definitions.clear()
            self._bit_ids.clear()
            self._generation += 1
            self._combined_cache.clear()
        logger.debug("Cleared definition store")

    def is_empty(self) -> bool:
        return len(self) == 0

    def _find_id(self, definition: Definition) -> Optional[int]:
        with self._lock:
            return self._bit_ids.get(id(definition))

    def __contains__(self, bit_id: object) -> bool:
        return isinstance(bit_id, int) and self.has_id(bit_id)

    def __iter__(self) -> Iterator[tuple[int, Definition]]:
        return iter(self.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._definitions)
