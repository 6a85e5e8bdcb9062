"""PMML documents as ``xml.etree.ElementTree`` trees.

Only the parts of PMML the enhancer edits get typed helpers: the data
dictionary, transformation dictionaries (document and model scope), mining
schemas, and the three expression nodes ``Constant``, ``FieldRef`` and
``Apply``. Everything else is carried through untouched.

The namespace of the input (PMML 3.x or 4.x, or none) is reused for every
element created, so edited documents validate against the schema they
came with.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import IO, Any
import xml.etree.ElementTree as ET

from ..errors import PMMLFormatError

MODEL_TAGS: frozenset[str] = frozenset(
    {
        "AnomalyDetectionModel",
        "AssociationModel",
        "BaselineModel",
        "BayesianNetworkModel",
        "ClusteringModel",
        "GaussianProcessModel",
        "GeneralRegressionModel",
        "MiningModel",
        "NaiveBayesModel",
        "NearestNeighborModel",
        "NeuralNetwork",
        "RegressionModel",
        "RuleSetModel",
        "Scorecard",
        "SequenceModel",
        "SupportVectorMachineModel",
        "TextModel",
        "TimeSeriesModel",
        "TreeModel",
    }
)


class UsageType:
    """``MiningField/@usageType`` values. An absent attribute means active."""

    ACTIVE = "active"
    PREDICTED = "predicted"
    TARGET = "target"
    SUPPLEMENTARY = "supplementary"
    GROUP = "group"
    ORDER = "order"
    FREQUENCY_WEIGHT = "frequencyWeight"
    ANALYSIS_WEIGHT = "analysisWeight"


# Elements that precede LocalTransformations inside a model element.
_LOCAL_TRANSFORMATIONS_PREDECESSORS = (
    "Extension",
    "MiningSchema",
    "Output",
    "ModelStats",
    "ModelExplanation",
    "Targets",
)


def local_name(element: ET.Element) -> str:
    tag = element.tag
    if isinstance(tag, str) and tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag if isinstance(tag, str) else ""


def _namespace_of(element: ET.Element) -> str:
    tag = element.tag
    if isinstance(tag, str) and tag.startswith("{"):
        return tag[1:].split("}", 1)[0]
    return ""


def mining_usage(mining_field: ET.Element) -> str:
    return mining_field.get("usageType", UsageType.ACTIVE)


class PMMLDocument:
    def __init__(self, root: ET.Element) -> None:
        if local_name(root) != "PMML":
            raise PMMLFormatError(
                f"Expected a <PMML> root element, found <{local_name(root)}>"
            )
        self.root = root
        self.namespace = _namespace_of(root)

    # ------------------------------------------------------------------
    # Parse / serialize
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, source: str | Path | IO[bytes]) -> "PMMLDocument":
        try:
            tree = ET.parse(source)
        except ET.ParseError as exc:
            raise PMMLFormatError(f"Cannot parse PMML: {exc}") from exc
        return cls(tree.getroot())

    @classmethod
    def from_string(cls, text: str | bytes) -> "PMMLDocument":
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise PMMLFormatError(f"Cannot parse PMML: {exc}") from exc
        return cls(root)

    def to_string(self) -> str:
        self._register_namespace()
        return ET.tostring(self.root, encoding="unicode")

    def write(self, target: str | Path | IO[bytes]) -> None:
        self._register_namespace()
        tree = ET.ElementTree(self.root)
        ET.indent(tree, space="  ")
        tree.write(target, encoding="UTF-8", xml_declaration=True)

    def _register_namespace(self) -> None:
        if self.namespace:
            ET.register_namespace("", self.namespace)

    def copy(self) -> "PMMLDocument":
        return PMMLDocument(copy.deepcopy(self.root))

    @property
    def version(self) -> str | None:
        return self.root.get("version")

    # ------------------------------------------------------------------
    # Element construction
    # ------------------------------------------------------------------

    def tag(self, name: str) -> str:
        return f"{{{self.namespace}}}{name}" if self.namespace else name

    def make_element(self, tag_name: str, /, **attrib: str | None) -> ET.Element:
        return ET.Element(self.tag(tag_name), {k: v for k, v in attrib.items() if v is not None})

    def make_constant(self, value: Any, data_type: str | None = None) -> ET.Element:
        element = self.make_element("Constant")
        if data_type is not None:
            element.set("dataType", data_type)
        element.text = str(value)
        return element

    def make_field_ref(self, name: str) -> ET.Element:
        return self.make_element("FieldRef", field=name)

    def make_apply(self, function: str, *arguments: ET.Element) -> ET.Element:
        element = self.make_element("Apply", function=function)
        element.extend(arguments)
        return element

    def make_data_field(self, name: str, optype: str, data_type: str) -> ET.Element:
        return self.make_element("DataField", name=name, optype=optype, dataType=data_type)

    def make_derived_field(
        self,
        name: str,
        optype: str | None,
        data_type: str | None,
        expression: ET.Element,
    ) -> ET.Element:
        element = self.make_element(
            "DerivedField", name=name, optype=optype, dataType=data_type
        )
        element.append(expression)
        return element

    def make_mining_field(self, name: str, usage: str | None = None) -> ET.Element:
        return self.make_element("MiningField", name=name, usageType=usage)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _child(self, parent: ET.Element, name: str) -> ET.Element | None:
        return parent.find(self.tag(name))

    def _children(self, parent: ET.Element, name: str) -> list[ET.Element]:
        return parent.findall(self.tag(name))

    def models(self) -> list[ET.Element]:
        """Top-level model elements (nested segment models are not counted)."""
        return [child for child in self.root if local_name(child) in MODEL_TAGS]

    def data_dictionary(self) -> ET.Element:
        data_dictionary = self._child(self.root, "DataDictionary")
        if data_dictionary is None:
            raise PMMLFormatError("PMML document has no DataDictionary")
        return data_dictionary

    def data_fields(self) -> list[ET.Element]:
        return self._children(self.data_dictionary(), "DataField")

    def transformation_dictionary(self, *, create: bool = False) -> ET.Element | None:
        element = self._child(self.root, "TransformationDictionary")
        if element is None and create:
            element = self.make_element("TransformationDictionary")
            position = list(self.root).index(self.data_dictionary()) + 1
            self.root.insert(position, element)
        return element

    def local_transformations(
        self, model: ET.Element, *, create: bool = False
    ) -> ET.Element | None:
        element = self._child(model, "LocalTransformations")
        if element is None and create:
            element = self.make_element("LocalTransformations")
            position = 0
            for index, child in enumerate(model):
                if local_name(child) in _LOCAL_TRANSFORMATIONS_PREDECESSORS:
                    position = index + 1
            model.insert(position, element)
        return element

    def dictionary_derived_fields(self) -> list[ET.Element]:
        transformation_dictionary = self.transformation_dictionary()
        if transformation_dictionary is None:
            return []
        return self._children(transformation_dictionary, "DerivedField")

    def derived_fields(self) -> list[ET.Element]:
        """Every DerivedField in the document, dictionary and model scoped."""
        return list(self.root.iter(self.tag("DerivedField")))

    def mining_schemas(self) -> list[ET.Element]:
        return list(self.root.iter(self.tag("MiningSchema")))

    def mining_fields(self, model: ET.Element) -> list[ET.Element]:
        mining_schema = self._child(model, "MiningSchema")
        if mining_schema is None:
            return []
        return self._children(mining_schema, "MiningField")

    def output_fields(self) -> list[ET.Element]:
        """Every OutputField in the document, including those of nested segments."""
        return list(self.root.iter(self.tag("OutputField")))

    def declared_names(self) -> set[str]:
        """Names of all DataFields, DerivedFields and OutputFields."""
        names = {f.get("name", "") for f in self.data_fields()}
        names.update(f.get("name", "") for f in self.derived_fields())
        names.update(f.get("name", "") for f in self.output_fields())
        return names

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_data_field(self, data_field: ET.Element) -> None:
        data_dictionary = self.data_dictionary()
        data_dictionary.append(data_field)
        self.sync_field_count()

    def remove_data_field(self, data_field: ET.Element) -> None:
        self.data_dictionary().remove(data_field)
        self.sync_field_count()

    def sync_field_count(self) -> None:
        data_dictionary = self.data_dictionary()
        if "numberOfFields" in data_dictionary.attrib:
            data_dictionary.set("numberOfFields", str(len(self.data_fields())))
