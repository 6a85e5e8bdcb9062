"""Scoring-time evaluation of derived fields.

Covers the expression subset the enhancer emits (``Constant``, ``FieldRef``
and ``Apply`` of a registered function) so an enhanced document can be
exercised end to end without an external PMML runtime.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any
import xml.etree.ElementTree as ET

from ..errors import ExpressionError
from .document import PMMLDocument, local_name

_INTEGER_TYPES = frozenset({"integer"})
_REAL_TYPES = frozenset({"float", "double"})


class FunctionRegistry:
    """Named callables the ``Apply`` evaluator may invoke."""

    def __init__(self) -> None:
        self._functions: dict[str, Callable[..., Any]] = {}

    def register(self, name: str, function: Callable[..., Any]) -> None:
        if name in self._functions:
            raise ValueError(f"Function '{name}' is already registered")
        self._functions[name] = function

    def unregister(self, name: str) -> None:
        self._functions.pop(name, None)

    def get(self, name: str) -> Callable[..., Any]:
        try:
            return self._functions[name]
        except KeyError:
            raise ExpressionError(f"Function '{name}' is not registered") from None

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def names(self) -> list[str]:
        return sorted(self._functions)


def cast_value(value: Any, data_type: str | None) -> Any:
    if value is None or data_type is None:
        return value
    if data_type in _INTEGER_TYPES:
        return int(value)
    if data_type in _REAL_TYPES:
        return float(value)
    if data_type == "boolean":
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return bool(value)
    if data_type == "string":
        return str(value)
    return value


def evaluate_expression(
    expression: ET.Element,
    resolve: Callable[[str], Any],
    functions: FunctionRegistry,
) -> Any:
    tag = local_name(expression)

    if tag == "Constant":
        if expression.get("missing") == "true":
            return None
        return cast_value(expression.text or "", expression.get("dataType"))

    if tag == "FieldRef":
        value = resolve(expression.get("field", ""))
        if value is None:
            return expression.get("mapMissingTo")
        return value

    if tag == "Apply":
        arguments = [evaluate_expression(arg, resolve, functions) for arg in expression]
        if any(arg is None for arg in arguments):
            return expression.get("mapMissingTo")
        function = functions.get(expression.get("function", ""))
        return function(*arguments)

    raise ExpressionError(f"Unsupported expression element <{tag}>")


def _expression_of(derived_field: ET.Element) -> ET.Element:
    for child in derived_field:
        if local_name(child) not in ("Extension", "Value"):
            return child
    raise ExpressionError(f"DerivedField '{derived_field.get('name')}' has no expression")


def compute_derived_fields(
    document: PMMLDocument,
    arguments: Mapping[str, Any],
    functions: FunctionRegistry,
) -> dict[str, Any]:
    """Evaluate every derived field of ``document`` for one input record.

    ``arguments`` maps DataField names to raw values. Derived fields may refer
    to each other; each one is evaluated once.
    """
    definitions = {f.get("name", ""): f for f in document.derived_fields()}
    values: dict[str, Any] = {}
    in_progress: set[str] = set()

    def resolve(name: str) -> Any:
        if name in values:
            return values[name]
        if name in arguments:
            return arguments[name]
        derived_field = definitions.get(name)
        if derived_field is None:
            raise ExpressionError(f"Field '{name}' is not defined")
        if name in in_progress:
            raise ExpressionError(f"Field '{name}' depends on itself")

        in_progress.add(name)
        try:
            value = evaluate_expression(_expression_of(derived_field), resolve, functions)
        finally:
            in_progress.discard(name)
        values[name] = cast_value(value, derived_field.get("dataType"))
        return values[name]

    for name in definitions:
        resolve(name)
    return values
