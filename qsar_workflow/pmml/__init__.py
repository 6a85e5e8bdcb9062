"""Minimal PMML document model on top of ``xml.etree.ElementTree``."""

from .document import MODEL_TAGS, PMMLDocument, UsageType, local_name, mining_usage
from .expressions import FunctionRegistry, compute_derived_fields, evaluate_expression
from .references import (
    collect_references,
    find_derived_field_cycle,
    prune_unreferenced_fields,
    reachable_fields,
)

__all__ = [
    "MODEL_TAGS",
    "FunctionRegistry",
    "PMMLDocument",
    "UsageType",
    "collect_references",
    "compute_derived_fields",
    "evaluate_expression",
    "find_derived_field_cycle",
    "local_name",
    "mining_usage",
    "prune_unreferenced_fields",
    "reachable_fields",
]
