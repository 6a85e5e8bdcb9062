"""RDKit descriptor catalog.

Every single-valued descriptor RDKit registers in ``Descriptors._descList``
becomes a one-output definition. A few RDKit calculators return a whole
vector per call; those are registered once with one output name per element
so that sibling outputs share a single computation:

- ``Crippen``    -> ``ALogP``, ``AMR``
- ``AUTOCORR2D`` -> ``AUTOCORR2D-1`` .. ``AUTOCORR2D-192``
- ``MQN``        -> ``MQN-1`` .. ``MQN-42``
"""

from __future__ import annotations

from collections.abc import Callable

from rdkit.Chem import Descriptors, rdMolDescriptors

from .types import DescriptorCatalog, DescriptorDefinition

_AUTOCORR2D_LENGTH = 192
_MQN_LENGTH = 42


def _numbered(prefix: str, count: int) -> tuple[str, ...]:
    return tuple(f"{prefix}-{i}" for i in range(1, count + 1))


# rdMolDescriptors is a compiled module; getattr keeps type checkers quiet.
_VECTOR_DESCRIPTORS: list[tuple[str, tuple[str, ...], Callable]] = [
    (
        "Crippen",
        ("ALogP", "AMR"),
        getattr(rdMolDescriptors, "CalcCrippenDescriptors"),
    ),
    (
        "AUTOCORR2D",
        _numbered("AUTOCORR2D", _AUTOCORR2D_LENGTH),
        getattr(rdMolDescriptors, "CalcAUTOCORR2D"),
    ),
    (
        "MQN",
        _numbered("MQN", _MQN_LENGTH),
        getattr(rdMolDescriptors, "MQNs_"),
    ),
]


def rdkit_definitions() -> list[DescriptorDefinition]:
    definitions = [
        DescriptorDefinition(name=name, output_names=(name,), function=fn)
        for name, fn in getattr(Descriptors, "_descList")
    ]
    definitions.extend(
        DescriptorDefinition(name=name, output_names=outputs, function=fn)
        for name, outputs, fn in _VECTOR_DESCRIPTORS
    )
    return definitions


def build_rdkit_catalog() -> DescriptorCatalog:
    """Build the process-wide catalog. Call once and inject the result."""
    return DescriptorCatalog.from_definitions(rdkit_definitions())
