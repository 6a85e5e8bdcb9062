"""Two-tier memoization for structure preparation and descriptor values."""

from .descriptors import DescriptorCache, DescriptorKey
from .loading_cache import CacheStats, LoadingCache
from .structures import StructureCache

__all__ = [
    "CacheStats",
    "DescriptorCache",
    "DescriptorKey",
    "LoadingCache",
    "StructureCache",
]
