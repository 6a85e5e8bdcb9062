"""Field reference analysis: reachability pruning and derived-field cycles."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from .document import PMMLDocument, local_name

logger = logging.getLogger(__name__)

# Attributes that name a field on any element (FieldRef, SimplePredicate,
# NormContinuous, Target, FieldColumnPair, TextIndex, Lag, ...).
REFERENCE_ATTRIBUTES: tuple[str, ...] = (
    "field",
    "fieldName",
    "textField",
    "groupField",
    "orderField",
    "targetField",
)

# Elements whose ``name`` attribute refers to a field rather than declaring one.
NAME_REFERENCE_TAGS: frozenset[str] = frozenset(
    {
        "MiningField",
        "NumericPredictor",
        "CategoricalPredictor",
        "Predictor",
    }
)


def collect_references(element: ET.Element) -> set[str]:
    """Names of every field referenced inside ``element`` (inclusive)."""
    names: set[str] = set()
    for node in element.iter():
        for attribute in REFERENCE_ATTRIBUTES:
            value = node.get(attribute)
            if value is not None:
                names.add(value)
        if local_name(node) in NAME_REFERENCE_TAGS:
            value = node.get("name")
            if value is not None:
                names.add(value)
    return names


def reachable_fields(document: PMMLDocument) -> set[str]:
    """Field names reachable from the models, outputs and mining schemas.

    Roots are all references made outside the DataDictionary and the
    TransformationDictionary. The closure then follows the expressions of
    dictionary-scoped derived fields.
    """
    data_dictionary = document.data_dictionary()
    transformation_dictionary = document.transformation_dictionary()

    pending: list[str] = []
    for child in document.root:
        if child is data_dictionary or child is transformation_dictionary:
            continue
        pending.extend(collect_references(child))

    dictionary_fields = {
        f.get("name", ""): f for f in document.dictionary_derived_fields()
    }

    reachable: set[str] = set()
    while pending:
        name = pending.pop()
        if name in reachable:
            continue
        reachable.add(name)
        derived_field = dictionary_fields.get(name)
        if derived_field is not None:
            pending.extend(collect_references(derived_field))
    return reachable


def prune_unreferenced_fields(document: PMMLDocument) -> list[str]:
    """Remove unreachable DataFields and dictionary DerivedFields in place.

    Running it again on its own output removes nothing. Returns the removed
    names in document order.
    """
    reachable = reachable_fields(document)
    removed: list[str] = []

    transformation_dictionary = document.transformation_dictionary()
    if transformation_dictionary is not None:
        for derived_field in document.dictionary_derived_fields():
            name = derived_field.get("name", "")
            if name not in reachable:
                transformation_dictionary.remove(derived_field)
                removed.append(name)

    for data_field in document.data_fields():
        name = data_field.get("name", "")
        if name not in reachable:
            document.remove_data_field(data_field)
            removed.append(name)

    if removed:
        logger.debug("Pruned unreferenced fields: %s", removed)
    return removed


def find_derived_field_cycle(document: PMMLDocument) -> list[str] | None:
    """Return one dependency cycle among derived fields, or None."""
    dependencies: dict[str, set[str]] = {}
    for derived_field in document.derived_fields():
        name = derived_field.get("name", "")
        dependencies.setdefault(name, set()).update(collect_references(derived_field))

    visiting: list[str] = []
    on_path: set[str] = set()
    done: set[str] = set()

    def visit(name: str) -> list[str] | None:
        if name in done:
            return None
        if name in on_path:
            return visiting[visiting.index(name):] + [name]
        visiting.append(name)
        on_path.add(name)
        for dependency in sorted(dependencies.get(name, ())):
            if dependency in dependencies:
                cycle = visit(dependency)
                if cycle is not None:
                    return cycle
        visiting.pop()
        on_path.discard(name)
        done.add(name)
        return None

    for name in dependencies:
        cycle = visit(name)
        if cycle is not None:
            return cycle
    return None
