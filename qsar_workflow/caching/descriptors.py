"""(descriptor definition, prepared structure) -> descriptor result memoizer."""

from __future__ import annotations

from collections.abc import Callable
import time

from ..chemistry.types import (
    ChemistryEngine,
    DescriptorDefinition,
    DescriptorResult,
    PreparedStructure,
)
from ..config import DESCRIPTOR_CACHE_DEFAULTS, CacheConfig
from .loading_cache import CacheStats, LoadingCache


class DescriptorKey:
    """Identity-compared pair of definition and structure.

    Equality is ``is`` on both members, not structural equality. This is only
    correct while ``StructureCache`` hands out one shared instance per distinct
    text; if that ever stops holding, compare structures by text instead.
    The key keeps both objects alive, so their ``id()`` cannot be recycled
    while the entry exists.
    """

    __slots__ = ("definition", "structure", "_hash")

    def __init__(
        self, definition: DescriptorDefinition, structure: PreparedStructure
    ) -> None:
        self.definition = definition
        self.structure = structure
        self._hash = hash((id(definition), id(structure)))

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DescriptorKey):
            return NotImplemented
        return self.definition is other.definition and self.structure is other.structure

    def __repr__(self) -> str:
        return f"DescriptorKey({self.definition.name!r}, {self.structure.text!r})"


class DescriptorCache:
    """Keyed per computation, not per output name.

    Sibling outputs of a multi-output descriptor therefore share one entry.
    """

    def __init__(
        self,
        engine: ChemistryEngine,
        config: CacheConfig = DESCRIPTOR_CACHE_DEFAULTS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._engine = engine
        self._cache: LoadingCache[DescriptorKey, DescriptorResult] = LoadingCache(
            self._compute,
            max_size=config.max_size,
            expire_after_write=config.expire_after_write_seconds,
            name="descriptor-cache",
            clock=clock,
        )

    def _compute(self, key: DescriptorKey) -> DescriptorResult:
        return self._engine.compute_descriptor(key.definition, key.structure)

    def get(
        self, definition: DescriptorDefinition, structure: PreparedStructure
    ) -> DescriptorResult:
        return self._cache.get(DescriptorKey(definition, structure))

    def __len__(self) -> int:
        return len(self._cache)

    def invalidate_all(self) -> None:
        self._cache.invalidate_all()

    def stats(self) -> CacheStats:
        return self._cache.stats()
