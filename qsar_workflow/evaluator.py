"""Descriptor evaluation: descriptor id + raw SMILES -> one numeric value.

``DescriptorEvaluator`` is the only caller of the structure and descriptor
caches. ``DescriptorFunction`` wraps it as the two-argument callable a PMML
scoring runtime invokes for the ``Apply`` elements the enhancer writes.
"""

from __future__ import annotations

from collections.abc import Callable
import time
from typing import Any

from .caching import DescriptorCache, StructureCache
from .chemistry.types import (
    ChemistryEngine,
    DescriptorCatalog,
    DescriptorDefinition,
    DescriptorResult,
    ResultKind,
    canonical_id,
)
from .config import DESCRIPTOR_FUNCTION, WorkflowConfig
from .errors import (
    ComputationFailedError,
    DescriptorComputationError,
    FunctionArityError,
    InvalidStructureError,
    ResultMismatchError,
    StructureError,
    UnknownDescriptorError,
)
from .pmml.expressions import FunctionRegistry

Numeric = int | float


class DescriptorEvaluator:
    def __init__(
        self,
        engine: ChemistryEngine,
        catalog: DescriptorCatalog,
        config: WorkflowConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        config = config or WorkflowConfig()
        self.catalog = catalog
        self.structures = StructureCache(engine, config.structure_cache, clock=clock)
        self.descriptors = DescriptorCache(engine, config.descriptor_cache, clock=clock)

    @property
    def descriptor_ids(self) -> list[str]:
        return self.catalog.ids

    def descriptor(self, descriptor_id: str, structure: str = "") -> DescriptorDefinition:
        try:
            return self.catalog[descriptor_id]
        except KeyError:
            raise UnknownDescriptorError(
                f"No descriptor for \"{descriptor_id}\"",
                descriptor_id=descriptor_id,
                structure=structure,
            ) from None

    def evaluate(self, descriptor_id: str, structure: str) -> Numeric:
        """Compute one named descriptor output for a SMILES string.

        Raises:
            UnknownDescriptorError: ``descriptor_id`` is not in the catalog.
            InvalidStructureError: The SMILES does not parse or is disconnected.
            ComputationFailedError: The engine raised for this pair. Not cached,
                so calling again retries the computation.
            ResultMismatchError: The definition does not declare this id.
        """
        definition = self.descriptor(descriptor_id, structure)

        try:
            prepared = self.structures.get(structure)
        except StructureError as exc:
            raise InvalidStructureError(
                f"Invalid structure \"{structure}\": {exc}",
                descriptor_id=descriptor_id,
                structure=structure,
            ) from exc

        try:
            result = self.descriptors.get(definition, prepared)
        except DescriptorComputationError as exc:
            raise ComputationFailedError(
                f"Failed to calculate \"{descriptor_id}\" for \"{structure}\": {exc}",
                descriptor_id=descriptor_id,
                structure=structure,
            ) from exc

        return self._select(descriptor_id, structure, definition, result)

    def cache_stats(self) -> dict[str, dict[str, int]]:
        return {
            "structures": self.structures.stats().as_dict(),
            "descriptors": self.descriptors.stats().as_dict(),
        }

    def _select(
        self,
        descriptor_id: str,
        structure: str,
        definition: DescriptorDefinition,
        result: DescriptorResult,
    ) -> Numeric:
        for position, name in enumerate(definition.output_names):
            if canonical_id(name) != descriptor_id:
                continue

            if not result.kind.is_vector:
                return result.value  # type: ignore[return-value]

            values: tuple[Any, ...] = result.value  # type: ignore[assignment]
            if position >= len(values):
                break
            value = values[position]
            return int(value) if result.kind is ResultKind.INTEGER_VECTOR else float(value)

        raise ResultMismatchError(
            f"{definition.name} result does not contain \"{descriptor_id}\"",
            descriptor_id=descriptor_id,
            structure=structure,
        )


class DescriptorFunction:
    """Host-callable adapter: ``fn(descriptor_id, structure) -> number``."""

    arity = 2

    def __init__(self, evaluator: DescriptorEvaluator, name: str = DESCRIPTOR_FUNCTION) -> None:
        self.evaluator = evaluator
        self.name = name

    def __call__(self, *args: Any) -> Numeric:
        if len(args) != self.arity:
            raise FunctionArityError(
                f"{self.name} expects {self.arity} arguments, got {len(args)}"
            )
        descriptor_id, structure = (str(a) for a in args)
        return self.evaluator.evaluate(descriptor_id, structure)


def register_descriptor_function(
    registry: FunctionRegistry,
    evaluator: DescriptorEvaluator,
    name: str = DESCRIPTOR_FUNCTION,
) -> DescriptorFunction:
    function = DescriptorFunction(evaluator, name=name)
    registry.register(name, function)
    return function
