"""Chemistry engine binding (RDKit) and the value types it produces."""

from .catalog import build_rdkit_catalog, rdkit_definitions
from .engine import RDKitEngine, to_descriptor_result
from .types import (
    ChemistryEngine,
    DescriptorCatalog,
    DescriptorDefinition,
    DescriptorResult,
    PreparedStructure,
    ResultKind,
    canonical_id,
)

__all__ = [
    "ChemistryEngine",
    "DescriptorCatalog",
    "DescriptorDefinition",
    "DescriptorResult",
    "PreparedStructure",
    "RDKitEngine",
    "ResultKind",
    "build_rdkit_catalog",
    "canonical_id",
    "rdkit_definitions",
    "to_descriptor_result",
]
