"""Value types exchanged between the chemistry engine, caches and evaluator.

``PreparedStructure`` and ``DescriptorDefinition`` compare by identity
(``eq=False``): the descriptor cache keys on object identity, and two
structures parsed separately from the same text are different objects.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
import logging
from types import MappingProxyType
from typing import Any, Protocol

logger = logging.getLogger(__name__)


def canonical_id(name: str) -> str:
    """Map an engine-native descriptor output name to its public id.

    ``AUTOCORR2D-7`` -> ``AUTOCORR2D.7``.
    """
    return name.replace("-", ".")


@dataclass(frozen=True, eq=False)
class PreparedStructure:
    """A parsed, sanitized molecule together with the text it came from."""

    text: str
    mol: Any

    def __repr__(self) -> str:
        return f"PreparedStructure({self.text!r})"


class ResultKind(str, Enum):
    INTEGER = "integer"
    REAL = "real"
    INTEGER_VECTOR = "integer_vector"
    REAL_VECTOR = "real_vector"

    @property
    def is_vector(self) -> bool:
        return self in (ResultKind.INTEGER_VECTOR, ResultKind.REAL_VECTOR)


@dataclass(frozen=True)
class DescriptorResult:
    """Outcome of one descriptor computation.

    Attributes:
        kind: Which of the four result shapes ``value`` has.
        value: A scalar for ``INTEGER``/``REAL``, a tuple for the vector kinds.
            A vector covers all outputs of a multi-output descriptor, in the
            order of ``DescriptorDefinition.output_names``.
    """

    kind: ResultKind
    value: int | float | tuple[int, ...] | tuple[float, ...]


@dataclass(frozen=True, eq=False)
class DescriptorDefinition:
    """One descriptor computation and the named outputs it produces."""

    name: str
    output_names: tuple[str, ...]
    function: Callable[[Any], Any]

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(canonical_id(n) for n in self.output_names)

    def __repr__(self) -> str:
        return f"DescriptorDefinition({self.name!r}, outputs={len(self.output_names)})"


class DescriptorCatalog(Mapping[str, DescriptorDefinition]):
    """Immutable id -> definition mapping, ordered by registration."""

    def __init__(self, mapping: Mapping[str, DescriptorDefinition]) -> None:
        self._mapping = MappingProxyType(dict(mapping))

    @classmethod
    def from_definitions(
        cls, definitions: Iterable[DescriptorDefinition]
    ) -> "DescriptorCatalog":
        mapping: dict[str, DescriptorDefinition] = {}
        for definition in definitions:
            for descriptor_id in definition.ids:
                if descriptor_id in mapping:
                    logger.warning(
                        "Duplicate descriptor id '%s' from %s; keeping %s",
                        descriptor_id,
                        definition.name,
                        mapping[descriptor_id].name,
                    )
                    continue
                mapping[descriptor_id] = definition
        return cls(mapping)

    def __getitem__(self, descriptor_id: str) -> DescriptorDefinition:
        return self._mapping[descriptor_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    @property
    def ids(self) -> list[str]:
        return list(self._mapping)

    @property
    def definitions(self) -> list[DescriptorDefinition]:
        seen: dict[int, DescriptorDefinition] = {}
        for definition in self._mapping.values():
            seen.setdefault(id(definition), definition)
        return list(seen.values())


class ChemistryEngine(Protocol):
    """What the caches and the evaluator need from a chemistry toolkit."""

    def parse_structure(self, text: str) -> PreparedStructure: ...

    def compute_descriptor(
        self, definition: DescriptorDefinition, structure: PreparedStructure
    ) -> DescriptorResult: ...

    def list_descriptor_ids(self) -> list[str]: ...
