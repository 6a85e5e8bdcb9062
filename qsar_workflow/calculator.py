"""Structure table -> descriptor table.

Reads a TSV whose first column holds SMILES and appends one column per
descriptor id. Descriptors that cannot be computed even for methane are left
out up front; every other failure is local to its cell and rendered as
``N/A`` so one bad structure or descriptor does not stop the batch.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any

import pandas as pd
from tqdm import tqdm

from .errors import ComputationFailedError, QSARError, ResultMismatchError
from .evaluator import DescriptorEvaluator

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"
PROBE_STRUCTURE = "C"


def select_descriptor_ids(
    evaluator: DescriptorEvaluator,
    probe: str = PROBE_STRUCTURE,
) -> list[str]:
    """Catalog ids whose computation succeeds on ``probe`` (methane)."""
    selected: list[str] = []
    for descriptor_id in evaluator.descriptor_ids:
        try:
            evaluator.evaluate(descriptor_id, probe)
        except (ComputationFailedError, ResultMismatchError) as exc:
            logger.warning(
                "Skipping descriptor \"%s\": %s", descriptor_id, exc.__cause__ or exc
            )
            continue
        selected.append(descriptor_id)
    return selected


def format_cell(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return NOT_AVAILABLE
    if isinstance(value, float) and not math.isfinite(value):
        return NOT_AVAILABLE
    return str(value)


def calculate_cell(evaluator: DescriptorEvaluator, descriptor_id: str, structure: str) -> str:
    try:
        value = evaluator.evaluate(descriptor_id, structure)
    except QSARError as exc:
        logger.debug("%s on '%s' -> %s: %s", descriptor_id, structure, NOT_AVAILABLE, exc)
        return NOT_AVAILABLE
    return format_cell(value)


def calculate_table(
    table: pd.DataFrame,
    evaluator: DescriptorEvaluator,
    *,
    descriptor_ids: list[str] | None = None,
    verbose: bool = False,
) -> pd.DataFrame:
    """Append descriptor columns computed from the first column of ``table``."""
    if table.shape[1] == 0:
        raise ValueError("Input table has no columns; expected a structure column first.")

    if descriptor_ids is None:
        descriptor_ids = select_descriptor_ids(evaluator)

    structure_col = table.columns[0]
    rows: list[list[str]] = []
    progress = tqdm(
        table[structure_col].tolist(),
        desc="Calculating structures",
        unit="structure",
        disable=not verbose,
    )
    for structure in progress:
        text = "" if structure is None else str(structure)
        rows.append([calculate_cell(evaluator, d, text) for d in descriptor_ids])

    descriptors = pd.DataFrame(rows, columns=descriptor_ids, index=table.index, dtype=object)
    passthrough = table.drop(columns=[c for c in descriptor_ids if c in table.columns])
    return pd.concat([passthrough, descriptors], axis=1)


def read_table(path: Path) -> pd.DataFrame:
    return pd.read_csv(path, sep="\t", dtype=str, keep_default_na=False)


def write_table(table: pd.DataFrame, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(path, sep="\t", index=False)


def calculate_file(
    input_path: Path,
    output_path: Path,
    evaluator: DescriptorEvaluator,
    *,
    verbose: bool = False,
) -> dict[str, Any]:
    table = read_table(input_path)
    descriptor_ids = select_descriptor_ids(evaluator)
    result = calculate_table(
        table, evaluator, descriptor_ids=descriptor_ids, verbose=verbose
    )
    write_table(result, output_path)

    descriptor_block = result[descriptor_ids]
    missing = int((descriptor_block == NOT_AVAILABLE).to_numpy().sum())
    return {
        "status": "ok",
        "input": str(input_path),
        "output": str(output_path),
        "rows": len(result),
        "descriptor_columns": len(descriptor_ids),
        "skipped_descriptors": len(evaluator.descriptor_ids) - len(descriptor_ids),
        "not_available_cells": missing,
        "cache": evaluator.cache_stats(),
    }
