"""Tests for ModelEnhancer: active inputs -> SMILES-derived descriptor fields."""

import copy

import pytest

from qsar_workflow.chemistry import (
    DescriptorCatalog,
    DescriptorDefinition,
    DescriptorResult,
    ResultKind,
)
from qsar_workflow.config import DESCRIPTOR_FUNCTION, EnhancerConfig
from qsar_workflow.enhancer import ModelEnhancer, active_field_names
from qsar_workflow.errors import UnsupportedDocumentError
from qsar_workflow.evaluator import DescriptorEvaluator, register_descriptor_function
from qsar_workflow.pmml import (
    FunctionRegistry,
    PMMLDocument,
    collect_references,
    compute_derived_fields,
    local_name,
    mining_usage,
    prune_unreferenced_fields,
)

PMML_NS = "http://www.dmg.org/PMML-4_3"


def _names(elements) -> list[str]:
    return [e.get("name") for e in elements]


def _mining(document: PMMLDocument) -> list[tuple[str, str]]:
    model = document.models()[0]
    return [(f.get("name"), mining_usage(f)) for f in document.mining_fields(model)]


def _with_usage(document: PMMLDocument, name: str, usage: str) -> PMMLDocument:
    model = document.models()[0]
    for mining_field in document.mining_fields(model):
        if mining_field.get("name") == name:
            mining_field.set("usageType", usage)
    return document


# ------------------------------------------------------------------
# Happy path
# ------------------------------------------------------------------


def test_active_fields_become_descriptor_fields(regression_document) -> None:
    result = ModelEnhancer().transform(regression_document)

    assert _names(result.data_fields()) == ["Y", "SMILES"]
    assert result.data_dictionary().get("numberOfFields") == "2"

    derived = result.dictionary_derived_fields()
    assert _names(derived) == ["X1", "X2"]
    for derived_field in derived:
        assert derived_field.get("optype") == "continuous"
        assert derived_field.get("dataType") == "double"
        (apply,) = list(derived_field)
        assert local_name(apply) == "Apply"
        assert apply.get("function") == DESCRIPTOR_FUNCTION
        constant, field_ref = list(apply)
        assert local_name(constant) == "Constant"
        assert constant.text == derived_field.get("name")
        assert field_ref.get("field") == "SMILES"
        assert collect_references(derived_field) == {"SMILES"}

    assert _mining(result) == [("Y", "predicted"), ("SMILES", "active")]


def test_predicted_mining_field_is_untouched(regression_document) -> None:
    model = regression_document.models()[0]
    before = dict(regression_document.mining_fields(model)[2].attrib)

    result = ModelEnhancer().transform(regression_document)

    y_field = result.mining_fields(result.models()[0])[0]
    assert dict(y_field.attrib) == before


def test_input_document_is_not_modified(regression_document) -> None:
    before = regression_document.to_string()
    ModelEnhancer().transform(regression_document)
    assert regression_document.to_string() == before


def test_pruning_is_a_fixed_point_after_transform(regression_document) -> None:
    enhancer = ModelEnhancer()
    result = enhancer.transform(regression_document)

    assert enhancer.last_summary is not None
    assert enhancer.last_summary.converted_fields == ["X1", "X2"]
    assert enhancer.last_summary.pruned_fields == ["Unused"]
    assert prune_unreferenced_fields(result) == []


def test_every_mining_field_resolves_to_one_declaration(regression_document) -> None:
    result = ModelEnhancer().transform(regression_document)

    declarations = _names(result.data_fields()) + _names(result.derived_fields())
    for name, _ in _mining(result):
        assert declarations.count(name) == 1


def test_local_transformations_placement(regression_document) -> None:
    config = EnhancerConfig(placement="local_transformations", structure_field="Structure")
    result = ModelEnhancer(config).transform(regression_document)

    model = result.models()[0]
    local = result.local_transformations(model)
    assert local is not None
    assert _names(local) == ["X1", "X2"]
    assert result.transformation_dictionary() is None
    assert _names(result.data_fields()) == ["Y", "Structure"]
    assert ("Structure", "active") in _mining(result)


def test_enhanced_document_scores_descriptors(regression_document, fake_engine) -> None:
    catalog = DescriptorCatalog.from_definitions(
        [
            DescriptorDefinition(
                "Pair", ("X1", "X2"),
                lambda s: DescriptorResult(ResultKind.REAL_VECTOR, (0.25, 4.0)),
            ),
        ]
    )
    evaluator = DescriptorEvaluator(fake_engine, catalog)
    registry = FunctionRegistry()
    register_descriptor_function(registry, evaluator)

    result = ModelEnhancer().transform(regression_document)
    values = compute_derived_fields(result, {"SMILES": "CCO"}, registry)

    assert values == {"X1": 0.25, "X2": 4.0}
    assert fake_engine.compute_calls == [("Pair", "CCO")]


# ------------------------------------------------------------------
# Rejections
# ------------------------------------------------------------------


@pytest.mark.parametrize("usage", ["group", "order"])
def test_group_or_order_usage_is_rejected_without_modification(
    regression_document, usage: str
) -> None:
    document = _with_usage(regression_document, "X2", usage)
    before = document.to_string()

    with pytest.raises(UnsupportedDocumentError, match="unsupported usage type"):
        ModelEnhancer().transform(document)

    assert document.to_string() == before


def test_active_field_names_skips_non_active_roles(regression_document) -> None:
    document = _with_usage(regression_document, "X2", "supplementary")
    model = document.models()[0]
    assert active_field_names(document, model) == ["X1"]


def test_documents_without_exactly_one_model_are_rejected(regression_document) -> None:
    model = regression_document.models()[0]

    two_models = regression_document.copy()
    two_models.root.append(copy.deepcopy(two_models.models()[0]))
    with pytest.raises(UnsupportedDocumentError, match="exactly one model, found 2"):
        ModelEnhancer().transform(two_models)

    no_model = regression_document.copy()
    no_model.root.remove(no_model.models()[0])
    with pytest.raises(UnsupportedDocumentError, match="found 0"):
        ModelEnhancer().transform(no_model)

    assert regression_document.models() == [model]


def test_existing_structure_field_name_is_rejected(regression_document) -> None:
    with pytest.raises(UnsupportedDocumentError, match="already declared"):
        ModelEnhancer(EnhancerConfig(structure_field="Y")).transform(regression_document)


def test_dangling_mining_field_fails_postconditions(regression_document) -> None:
    (mining_schema,) = regression_document.mining_schemas()
    mining_schema.append(regression_document.make_mining_field("Ghost", "supplementary"))

    with pytest.raises(UnsupportedDocumentError, match="'Ghost' does not resolve"):
        ModelEnhancer().transform(regression_document)


CYCLIC_PMML = """<PMML version="4.3">
  <DataDictionary>
    <DataField name="x" optype="continuous" dataType="double"/>
    <DataField name="y" optype="continuous" dataType="double"/>
  </DataDictionary>
  <TransformationDictionary>
    <DerivedField name="d1" optype="continuous" dataType="double"><FieldRef field="d2"/></DerivedField>
    <DerivedField name="d2" optype="continuous" dataType="double"><FieldRef field="d1"/></DerivedField>
  </TransformationDictionary>
  <RegressionModel functionName="regression">
    <MiningSchema>
      <MiningField name="x"/>
      <MiningField name="y" usageType="predicted"/>
    </MiningSchema>
    <RegressionTable intercept="0">
      <NumericPredictor name="x" coefficient="1"/>
      <NumericPredictor name="d1" coefficient="1"/>
    </RegressionTable>
  </RegressionModel>
</PMML>
"""


def test_cyclic_derived_fields_are_rejected() -> None:
    document = PMMLDocument.from_string(CYCLIC_PMML)
    with pytest.raises(UnsupportedDocumentError, match="Cyclic derived field"):
        ModelEnhancer().transform(document)


def test_output_field_name_is_reserved(regression_document) -> None:
    with pytest.raises(UnsupportedDocumentError, match="'Predicted_Y' is already declared"):
        ModelEnhancer(EnhancerConfig(structure_field="Predicted_Y")).transform(
            regression_document
        )


def test_dictionary_reference_to_undeclared_field_fails_postconditions(
    regression_document,
) -> None:
    document = regression_document
    document.transformation_dictionary(create=True).append(
        document.make_derived_field(
            "Z", "continuous", "double", document.make_field_ref("Missing")
        )
    )
    model = document.models()[0]
    model.find(document.tag("RegressionTable")).append(
        document.make_element("NumericPredictor", name="Z", coefficient="1")
    )

    with pytest.raises(UnsupportedDocumentError, match=r"'Z' references \['Missing'\]"):
        ModelEnhancer().transform(document)


# ------------------------------------------------------------------
# Scoping
# ------------------------------------------------------------------


def _add_squared_x1(document: PMMLDocument) -> None:
    document.transformation_dictionary(create=True).append(
        document.make_derived_field(
            "X1sq",
            "continuous",
            "double",
            document.make_apply(
                "*", document.make_field_ref("X1"), document.make_field_ref("X1")
            ),
        )
    )
    model = document.models()[0]
    model.find(document.tag("RegressionTable")).append(
        document.make_element("NumericPredictor", name="X1sq", coefficient="0.1")
    )


def test_local_placement_falls_back_when_dictionary_uses_inputs(regression_document) -> None:
    _add_squared_x1(regression_document)
    enhancer = ModelEnhancer(EnhancerConfig(placement="local_transformations"))

    result = enhancer.transform(regression_document)

    assert enhancer.last_summary.placement == "transformation_dictionary"
    assert result.local_transformations(result.models()[0]) is None
    assert _names(result.dictionary_derived_fields()) == ["X1sq", "X1", "X2"]

    document_scope = set(_names(result.data_fields())) | set(
        _names(result.dictionary_derived_fields())
    )
    for derived_field in result.dictionary_derived_fields():
        assert collect_references(derived_field) <= document_scope


def test_fallback_placement_scores_squared_input(regression_document, fake_engine) -> None:
    _add_squared_x1(regression_document)
    catalog = DescriptorCatalog.from_definitions(
        [
            DescriptorDefinition(
                "Pair", ("X1", "X2"),
                lambda s: DescriptorResult(ResultKind.REAL_VECTOR, (3.0, 4.0)),
            ),
        ]
    )
    registry = FunctionRegistry()
    registry.register("*", lambda x, y: x * y)
    register_descriptor_function(registry, DescriptorEvaluator(fake_engine, catalog))

    enhancer = ModelEnhancer(EnhancerConfig(placement="local_transformations"))
    result = enhancer.transform(regression_document)
    values = compute_derived_fields(result, {"SMILES": "CCO"}, registry)

    assert values == {"X1sq": 9.0, "X1": 3.0, "X2": 4.0}


MODEL_CHAIN_PMML = f"""<PMML xmlns="{PMML_NS}" version="4.3">
  <DataDictionary>
    <DataField name="x" optype="continuous" dataType="double"/>
    <DataField name="y" optype="continuous" dataType="double"/>
  </DataDictionary>
  <MiningModel functionName="regression">
    <MiningSchema>
      <MiningField name="x"/>
      <MiningField name="y" usageType="target"/>
    </MiningSchema>
    <Segmentation multipleModelMethod="modelChain">
      <Segment id="1">
        <True/>
        <RegressionModel functionName="regression">
          <MiningSchema>
            <MiningField name="x"/>
          </MiningSchema>
          <Output>
            <OutputField name="first" feature="predictedValue"/>
          </Output>
          <RegressionTable intercept="0">
            <NumericPredictor name="x" coefficient="2"/>
          </RegressionTable>
        </RegressionModel>
      </Segment>
      <Segment id="2">
        <True/>
        <RegressionModel functionName="regression">
          <MiningSchema>
            <MiningField name="first"/>
            <MiningField name="y" usageType="target"/>
          </MiningSchema>
          <RegressionTable intercept="1">
            <NumericPredictor name="first" coefficient="0.5"/>
          </RegressionTable>
        </RegressionModel>
      </Segment>
    </Segmentation>
  </MiningModel>
</PMML>
"""


def test_model_chain_segments_may_read_earlier_outputs() -> None:
    document = PMMLDocument.from_string(MODEL_CHAIN_PMML)

    result = ModelEnhancer().transform(document)

    assert _names(result.data_fields()) == ["y", "SMILES"]
    assert _names(result.dictionary_derived_fields()) == ["x"]
    top, first, second = result.mining_schemas()
    assert _names(top) == ["y", "SMILES"]
    assert _names(first) == ["SMILES"]
    assert _names(second) == ["first", "y", "SMILES"]


def test_top_level_schema_cannot_read_segment_outputs() -> None:
    document = PMMLDocument.from_string(MODEL_CHAIN_PMML)
    (top, _, _) = document.mining_schemas()
    top.append(document.make_mining_field("first", "supplementary"))

    with pytest.raises(UnsupportedDocumentError, match="'first' does not resolve"):
        ModelEnhancer().transform(document)
