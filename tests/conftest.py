"""Shared fixtures: a counting fake chemistry engine and PMML documents."""

from collections.abc import Callable
import threading
from typing import Any

import pytest

from qsar_workflow.chemistry import (
    DescriptorCatalog,
    DescriptorDefinition,
    DescriptorResult,
    PreparedStructure,
    ResultKind,
)
from qsar_workflow.errors import DescriptorComputationError, StructureError
from qsar_workflow.pmml import PMMLDocument

PMML_NS = "http://www.dmg.org/PMML-4_3"


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeEngine:
    """Chemistry engine stand-in that records every call.

    Structures are "valid" unless their text starts with ``!`` or contains a
    ``.`` (disconnected). ``failures`` holds (definition name, text) pairs
    that raise on the next computation and are then removed, so a retry
    succeeds.
    """

    def __init__(self, catalog: DescriptorCatalog) -> None:
        self.catalog = catalog
        self.parse_calls: list[str] = []
        self.compute_calls: list[tuple[str, str]] = []
        self.failures: set[tuple[str, str]] = set()
        self.compute_gate: threading.Event | None = None
        self._lock = threading.Lock()

    def parse_structure(self, text: str) -> PreparedStructure:
        with self._lock:
            self.parse_calls.append(text)
        if text.startswith("!"):
            raise StructureError(f"Cannot parse SMILES: {text}")
        if "." in text:
            raise StructureError(f"The structure is not fully connected: {text}")
        return PreparedStructure(text=text, mol=object())

    def compute_descriptor(
        self, definition: DescriptorDefinition, structure: PreparedStructure
    ) -> DescriptorResult:
        with self._lock:
            self.compute_calls.append((definition.name, structure.text))
            failing = (definition.name, structure.text) in self.failures
            self.failures.discard((definition.name, structure.text))
        if self.compute_gate is not None:
            self.compute_gate.wait(timeout=5)
        if failing:
            raise DescriptorComputationError(f"{definition.name} valence exception")
        return definition.function(structure)

    def list_descriptor_ids(self) -> list[str]:
        return self.catalog.ids


def _constant(kind: ResultKind, value: Any) -> Callable[[Any], DescriptorResult]:
    return lambda structure: DescriptorResult(kind, value)


@pytest.fixture()
def fake_catalog() -> DescriptorCatalog:
    return DescriptorCatalog.from_definitions(
        [
            DescriptorDefinition(
                "nAtom", ("nAtom",), _constant(ResultKind.INTEGER, 5)
            ),
            DescriptorDefinition(
                "XLogP", ("XLogP",), _constant(ResultKind.REAL, 1.25)
            ),
            DescriptorDefinition(
                "ATSc", ("ATSc-1", "ATSc-2", "ATSc-3"),
                _constant(ResultKind.REAL_VECTOR, (0.5, 1.5, 2.5)),
            ),
            DescriptorDefinition(
                "BCUT", ("BCUT-w-1l", "BCUT-w-1h"),
                _constant(ResultKind.INTEGER_VECTOR, (3, 7)),
            ),
            DescriptorDefinition(
                "Short", ("Short-1", "Short-2"),
                _constant(ResultKind.REAL_VECTOR, (9.0,)),
            ),
        ]
    )


@pytest.fixture()
def fake_engine(fake_catalog: DescriptorCatalog) -> FakeEngine:
    return FakeEngine(fake_catalog)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


REGRESSION_PMML = f"""<?xml version="1.0" encoding="UTF-8"?>
<PMML xmlns="{PMML_NS}" version="4.3">
  <Header description="linear model"/>
  <DataDictionary numberOfFields="4">
    <DataField name="X1" optype="continuous" dataType="double"/>
    <DataField name="X2" optype="continuous" dataType="double"/>
    <DataField name="Unused" optype="continuous" dataType="double"/>
    <DataField name="Y" optype="continuous" dataType="double"/>
  </DataDictionary>
  <RegressionModel functionName="regression">
    <MiningSchema>
      <MiningField name="X1"/>
      <MiningField name="X2" usageType="active"/>
      <MiningField name="Y" usageType="predicted"/>
    </MiningSchema>
    <Output>
      <OutputField name="Predicted_Y" feature="predictedValue"/>
    </Output>
    <RegressionTable intercept="1.0">
      <NumericPredictor name="X1" coefficient="2.0"/>
      <NumericPredictor name="X2" coefficient="-0.5"/>
    </RegressionTable>
  </RegressionModel>
</PMML>
"""


@pytest.fixture()
def regression_document() -> PMMLDocument:
    return PMMLDocument.from_string(REGRESSION_PMML)
