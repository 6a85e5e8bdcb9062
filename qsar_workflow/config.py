"""TOML-backed configuration for caches, chemistry and the model enhancer.

Example ``qsar.toml``::

    [structure_cache]
    max_size = 100
    expire_after_write_seconds = 900

    [descriptor_cache]
    max_size = 10000
    expire_after_write_seconds = 60

    [chemistry]
    explicit_hydrogens = false

    [enhancer]
    structure_field = "SMILES"
    placement = "transformation_dictionary"
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Literal, Mapping
import tomllib

from .errors import ConfigError

Placement = Literal["transformation_dictionary", "local_transformations"]

PLACEMENTS: tuple[str, ...] = ("transformation_dictionary", "local_transformations")

DESCRIPTOR_FUNCTION = "qsar_workflow.DescriptorFunction"


def _check_keys(cls: type, raw: Mapping[str, Any], section: str) -> None:
    valid_keys = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - valid_keys)
    if unknown:
        raise ConfigError(f"Unknown [{section}] config keys: {', '.join(unknown)}")


@dataclass(frozen=True)
class CacheConfig:
    max_size: int
    expire_after_write_seconds: float

    def __post_init__(self) -> None:
        if self.max_size <= 0:
            raise ConfigError(f"max_size must be positive, got {self.max_size}")
        if self.expire_after_write_seconds <= 0:
            raise ConfigError(
                "expire_after_write_seconds must be positive, "
                f"got {self.expire_after_write_seconds}"
            )

    @classmethod
    def from_mapping(
        cls, raw: Mapping[str, Any], *, defaults: "CacheConfig", section: str
    ) -> "CacheConfig":
        _check_keys(cls, raw, section)
        return cls(
            max_size=int(raw.get("max_size", defaults.max_size)),
            expire_after_write_seconds=float(
                raw.get(
                    "expire_after_write_seconds", defaults.expire_after_write_seconds
                )
            ),
        )


# Prepared structures are costly to build, descriptor values are cheap to
# recompute relative to their staleness, and there are far more of them.
STRUCTURE_CACHE_DEFAULTS = CacheConfig(max_size=100, expire_after_write_seconds=15 * 60)
DESCRIPTOR_CACHE_DEFAULTS = CacheConfig(max_size=100 * 100, expire_after_write_seconds=60)


@dataclass(frozen=True)
class ChemistryConfig:
    explicit_hydrogens: bool = False

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ChemistryConfig":
        _check_keys(cls, raw, "chemistry")
        return cls(**dict(raw))


@dataclass(frozen=True)
class EnhancerConfig:
    """How the enhancer names and places the fields it introduces.

    Attributes:
        structure_field: Name of the new raw structure DataField.
        placement: Where the derived descriptor fields go. Either the
            document-scoped TransformationDictionary or the model-scoped
            LocalTransformations element.
        function_name: Function name written into each ``Apply`` element;
            must match the name the scoring runtime registers.
    """

    structure_field: str = "SMILES"
    placement: Placement = "transformation_dictionary"
    function_name: str = DESCRIPTOR_FUNCTION

    def __post_init__(self) -> None:
        if self.placement not in PLACEMENTS:
            raise ConfigError(
                f"placement must be one of {list(PLACEMENTS)}, got '{self.placement}'"
            )
        if not self.structure_field:
            raise ConfigError("structure_field must not be empty")
        if not self.function_name:
            raise ConfigError("function_name must not be empty")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "EnhancerConfig":
        _check_keys(cls, raw, "enhancer")
        return cls(**dict(raw))


@dataclass(frozen=True)
class WorkflowConfig:
    structure_cache: CacheConfig = STRUCTURE_CACHE_DEFAULTS
    descriptor_cache: CacheConfig = DESCRIPTOR_CACHE_DEFAULTS
    chemistry: ChemistryConfig = field(default_factory=ChemistryConfig)
    enhancer: EnhancerConfig = field(default_factory=EnhancerConfig)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "WorkflowConfig":
        _check_keys(cls, raw, "root")
        sections: dict[str, Any] = {}
        for name in ("structure_cache", "descriptor_cache", "chemistry", "enhancer"):
            section = raw.get(name, {})
            if not isinstance(section, dict):
                raise ConfigError(f"Expected [{name}] to be a TOML table")
            sections[name] = section

        return cls(
            structure_cache=CacheConfig.from_mapping(
                sections["structure_cache"],
                defaults=STRUCTURE_CACHE_DEFAULTS,
                section="structure_cache",
            ),
            descriptor_cache=CacheConfig.from_mapping(
                sections["descriptor_cache"],
                defaults=DESCRIPTOR_CACHE_DEFAULTS,
                section="descriptor_cache",
            ),
            chemistry=ChemistryConfig.from_mapping(sections["chemistry"]),
            enhancer=EnhancerConfig.from_mapping(sections["enhancer"]),
        )


def load_config(path: str | Path | None) -> WorkflowConfig:
    if path is None:
        return WorkflowConfig()

    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")
    with config_path.open("rb") as handle:
        try:
            data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in {config_path}: {exc}") from exc

    return WorkflowConfig.from_mapping(data)
