"""RDKit-backed chemistry engine: structure preparation and descriptor calls."""

from __future__ import annotations

from typing import Any

import numpy as np
from rdkit import Chem

from ..config import ChemistryConfig
from ..errors import DescriptorComputationError, StructureError
from .types import (
    DescriptorCatalog,
    DescriptorDefinition,
    DescriptorResult,
    PreparedStructure,
    ResultKind,
)


def _is_integer(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _is_real(value: Any) -> bool:
    return isinstance(value, (float, np.floating))


def to_descriptor_result(value: Any) -> DescriptorResult:
    """Classify a raw RDKit return value into one of the four result kinds."""
    if isinstance(value, bool):
        return DescriptorResult(ResultKind.INTEGER, int(value))
    if _is_integer(value):
        return DescriptorResult(ResultKind.INTEGER, int(value))
    if _is_real(value):
        return DescriptorResult(ResultKind.REAL, float(value))

    # RDKit vectors come back as lists, tuples or boost-wrapped std::vector.
    if isinstance(value, (str, bytes)) or value is None:
        raise TypeError(f"Unsupported descriptor result type: {type(value).__name__}")
    try:
        items = list(value)
    except TypeError:
        raise TypeError(
            f"Unsupported descriptor result type: {type(value).__name__}"
        ) from None

    if not items:
        raise TypeError("Descriptor returned an empty vector")
    if all(_is_integer(v) for v in items):
        return DescriptorResult(ResultKind.INTEGER_VECTOR, tuple(int(v) for v in items))
    if all(_is_integer(v) or _is_real(v) for v in items):
        return DescriptorResult(ResultKind.REAL_VECTOR, tuple(float(v) for v in items))
    raise TypeError("Descriptor returned a vector with non-numeric elements")


class RDKitEngine:
    def __init__(
        self,
        catalog: DescriptorCatalog,
        config: ChemistryConfig | None = None,
    ) -> None:
        self.catalog = catalog
        self.config = config or ChemistryConfig()

    def parse_structure(self, text: str) -> PreparedStructure:
        """Parse SMILES into a sanitized, single-fragment molecule.

        Raises:
            StructureError: If the SMILES does not parse or describes more
                than one connected component.
        """
        mol = Chem.MolFromSmiles(text)
        if mol is None:
            raise StructureError(f"Cannot parse SMILES: {text}")
        if mol.GetNumAtoms() == 0:
            raise StructureError("Empty structure")

        if len(Chem.GetMolFrags(mol)) > 1:
            raise StructureError(f"The structure is not fully connected: {text}")

        if self.config.explicit_hydrogens:
            mol = Chem.AddHs(mol)

        return PreparedStructure(text=text, mol=mol)

    def compute_descriptor(
        self, definition: DescriptorDefinition, structure: PreparedStructure
    ) -> DescriptorResult:
        try:
            raw = definition.function(structure.mol)
            return to_descriptor_result(raw)
        except Exception as exc:
            raise DescriptorComputationError(
                f"{definition.name} failed on '{structure.text}': {exc!r}"
            ) from exc

    def list_descriptor_ids(self) -> list[str]:
        return self.catalog.ids
