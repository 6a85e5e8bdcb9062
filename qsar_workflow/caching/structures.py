"""Raw SMILES text -> prepared structure memoizer."""

from __future__ import annotations

from collections.abc import Callable
import time

from ..chemistry.types import ChemistryEngine, PreparedStructure
from ..config import STRUCTURE_CACHE_DEFAULTS, CacheConfig
from .loading_cache import CacheStats, LoadingCache


class StructureCache:
    """Shares one ``PreparedStructure`` per distinct text while it is live.

    ``DescriptorCache`` keys on structure identity and relies on this: equal
    text must map to the same object for as long as the entry exists.
    """

    def __init__(
        self,
        engine: ChemistryEngine,
        config: CacheConfig = STRUCTURE_CACHE_DEFAULTS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: LoadingCache[str, PreparedStructure] = LoadingCache(
            engine.parse_structure,
            max_size=config.max_size,
            expire_after_write=config.expire_after_write_seconds,
            name="structure-cache",
            clock=clock,
        )

    def get(self, text: str) -> PreparedStructure:
        return self._cache.get(text)

    def __len__(self) -> int:
        return len(self._cache)

    def invalidate_all(self) -> None:
        self._cache.invalidate_all()

    def stats(self) -> CacheStats:
        return self._cache.stats()
