"""Rewrite a PMML model so its active inputs are computed from a SMILES field.

Before::

    DataDictionary:   X1, X2, Y
    MiningSchema:     X1 (active), X2 (active), Y (predicted)

After::

    DataDictionary:            Y, SMILES
    TransformationDictionary:  X1 = descriptor("X1", SMILES)
                               X2 = descriptor("X2", SMILES)
    MiningSchema:              Y (predicted), SMILES (active)

Each active input keeps its name, so the model body is untouched; the
scoring runtime now computes it with the registered descriptor function
instead of reading it from the input record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import xml.etree.ElementTree as ET

from .config import EnhancerConfig
from .errors import UnsupportedDocumentError
from .pmml.document import PMMLDocument, UsageType, local_name, mining_usage
from .pmml.references import (
    collect_references,
    find_derived_field_cycle,
    prune_unreferenced_fields,
)

logger = logging.getLogger(__name__)

_UNSUPPORTED_USAGES = frozenset({UsageType.GROUP, UsageType.ORDER})


@dataclass
class EnhanceSummary:
    structure_field: str
    placement: str
    converted_fields: list[str] = field(default_factory=list)
    pruned_fields: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        return {
            "structure_field": self.structure_field,
            "placement": self.placement,
            "converted_fields": list(self.converted_fields),
            "pruned_fields": list(self.pruned_fields),
        }


class ModelEnhancer:
    def __init__(self, config: EnhancerConfig | None = None) -> None:
        self.config = config or EnhancerConfig()
        self.last_summary: EnhanceSummary | None = None

    def transform(self, document: PMMLDocument) -> PMMLDocument:
        """Return an enhanced copy of ``document``; the input is not modified.

        Raises:
            UnsupportedDocumentError: The document does not hold exactly one
                model, uses group/order mining fields, already declares the
                structure field, or would violate field consistency after
                the rewrite.
        """
        self._check_preconditions(document)

        result = document.copy()
        model = result.models()[0]
        structure_field = self.config.structure_field
        active_fields = active_field_names(result, model)
        placement = self._placement_for(result, active_fields)
        summary = EnhanceSummary(structure_field, placement)

        for data_field in result.data_fields():
            name = data_field.get("name", "")
            if name not in active_fields:
                continue
            result.remove_data_field(data_field)
            derived_field = result.make_derived_field(
                name,
                data_field.get("optype"),
                data_field.get("dataType"),
                self._descriptor_expression(result, name),
            )
            self._derived_field_container(result, model, placement).append(derived_field)
            summary.converted_fields.append(name)

        result.add_data_field(
            result.make_data_field(structure_field, "categorical", "string")
        )

        converted = set(summary.converted_fields)
        for mining_schema in result.mining_schemas():
            for mining_field in list(mining_schema):
                if local_name(mining_field) != "MiningField":
                    continue
                if mining_field.get("name") in converted:
                    mining_schema.remove(mining_field)
            mining_schema.append(result.make_mining_field(structure_field))

        summary.pruned_fields = prune_unreferenced_fields(result)

        self._check_postconditions(result)
        self.last_summary = summary
        logger.info(
            "Converted %d active field(s) to %s descriptors of '%s'; pruned %d",
            len(summary.converted_fields),
            placement,
            structure_field,
            len(summary.pruned_fields),
        )
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _descriptor_expression(self, document: PMMLDocument, name: str) -> ET.Element:
        return document.make_apply(
            self.config.function_name,
            document.make_constant(name),
            document.make_field_ref(self.config.structure_field),
        )

    def _placement_for(self, document: PMMLDocument, active_fields: list[str]) -> str:
        """Configured placement, unless document-scoped fields need the inputs.

        A TransformationDictionary DerivedField cannot see a model's
        LocalTransformations, so any dictionary reference to a converted input
        forces the descriptor fields into the TransformationDictionary.
        """
        if self.config.placement != "local_transformations":
            return self.config.placement

        converted = set(active_fields)
        for derived_field in document.dictionary_derived_fields():
            shared = sorted(collect_references(derived_field) & converted)
            if shared:
                logger.warning(
                    "DerivedField '%s' references %s at document scope; "
                    "placing descriptor fields in the TransformationDictionary",
                    derived_field.get("name", ""),
                    shared,
                )
                return "transformation_dictionary"
        return self.config.placement

    def _derived_field_container(
        self, document: PMMLDocument, model: ET.Element, placement: str
    ) -> ET.Element:
        if placement == "local_transformations":
            container = document.local_transformations(model, create=True)
        else:
            container = document.transformation_dictionary(create=True)
        assert container is not None
        return container

    def _check_preconditions(self, document: PMMLDocument) -> None:
        models = document.models()
        if len(models) != 1:
            raise UnsupportedDocumentError(
                f"Expected exactly one model, found {len(models)}"
            )

        structure_field = self.config.structure_field
        if structure_field in document.declared_names():
            raise UnsupportedDocumentError(
                f"Field '{structure_field}' is already declared"
            )

        # Raises on group/order usage before anything is copied or edited.
        active_field_names(document, models[0])

    def _check_postconditions(self, document: PMMLDocument) -> None:
        if len(document.models()) != 1:
            raise UnsupportedDocumentError("Enhanced document lost its single model")

        data_names = [f.get("name", "") for f in document.data_fields()]
        derived_names = [f.get("name", "") for f in document.derived_fields()]
        collisions = sorted(set(data_names) & set(derived_names))
        if collisions:
            raise UnsupportedDocumentError(
                f"Fields declared both as data and derived fields: {collisions}"
            )

        dictionary_scope = set(data_names) | {
            f.get("name", "") for f in document.dictionary_derived_fields()
        }
        for derived_field in document.dictionary_derived_fields():
            missing = sorted(collect_references(derived_field) - dictionary_scope)
            if missing:
                raise UnsupportedDocumentError(
                    f"DerivedField '{derived_field.get('name')}' references "
                    f"{missing}, which are not declared at document scope"
                )

        declared = set(data_names) | set(derived_names)
        top_level_schema = document.models()[0].find(document.tag("MiningSchema"))
        outputs_seen: set[str] = set()
        for element in document.root.iter():
            tag = local_name(element)
            if tag == "OutputField":
                outputs_seen.add(element.get("name", ""))
                continue
            if tag != "MiningSchema":
                continue
            # Chained segments read the OutputFields of earlier segments.
            visible = declared if element is top_level_schema else declared | outputs_seen
            for mining_field in element:
                if local_name(mining_field) != "MiningField":
                    continue
                name = mining_field.get("name", "")
                if name not in visible:
                    raise UnsupportedDocumentError(
                        f"Mining field '{name}' does not resolve to a declaration"
                    )

        cycle = find_derived_field_cycle(document)
        if cycle is not None:
            raise UnsupportedDocumentError(
                f"Cyclic derived field dependency: {' -> '.join(cycle)}"
            )


def active_field_names(document: PMMLDocument, model: ET.Element) -> list[str]:
    """Active mining fields of ``model``, in schema order.

    Raises:
        UnsupportedDocumentError: If any mining field has group or order usage.
    """
    result: list[str] = []
    for mining_field in document.mining_fields(model):
        usage = mining_usage(mining_field)
        name = mining_field.get("name", "")
        if usage in _UNSUPPORTED_USAGES:
            raise UnsupportedDocumentError(
                f"Mining field '{name}' has unsupported usage type '{usage}'"
            )
        if usage == UsageType.ACTIVE and name not in result:
            result.append(name)
    return result
