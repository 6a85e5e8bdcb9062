"""Exception hierarchy shared by the chemistry, evaluation and PMML layers."""

from __future__ import annotations


class QSARError(Exception):
    """Base class for every error raised by qsar_workflow."""


# ---------------------------------------------------------------------------
# Chemistry engine
# ---------------------------------------------------------------------------


class StructureError(QSARError):
    """Raw structure text could not be turned into a prepared structure."""


class DescriptorComputationError(QSARError):
    """The chemistry engine failed while computing a descriptor."""


# ---------------------------------------------------------------------------
# Descriptor evaluation
# ---------------------------------------------------------------------------


class EvaluationError(QSARError):
    """A descriptor could not be evaluated for a structure.

    Carries the requested descriptor id and the raw structure text so callers
    can tell which cell of a batch failed.
    """

    def __init__(self, message: str, *, descriptor_id: str, structure: str) -> None:
        super().__init__(message)
        self.descriptor_id = descriptor_id
        self.structure = structure


class UnknownDescriptorError(EvaluationError):
    """The descriptor id is not part of the catalog."""


class InvalidStructureError(EvaluationError):
    """The structure failed to parse or failed a structural check."""


class ComputationFailedError(EvaluationError):
    """The engine raised while computing a valid structure. Retryable."""


class ResultMismatchError(EvaluationError):
    """The descriptor's declared outputs do not contain the requested id."""


class FunctionArityError(QSARError):
    """A host function was invoked with the wrong number of arguments."""


# ---------------------------------------------------------------------------
# Model documents
# ---------------------------------------------------------------------------


class PMMLFormatError(QSARError):
    """The input is not a readable PMML document."""


class ExpressionError(QSARError):
    """An expression cannot be evaluated (unknown function, missing field)."""


class UnsupportedDocumentError(QSARError):
    """The document cannot be enhanced (model count, field roles, names)."""


class ConfigError(ValueError):
    """Invalid configuration value or file."""
