"""CLI subcommand for the batch descriptor calculator: calculate."""

import argparse
import json
from pathlib import Path
from typing import Any

from .config import WorkflowConfig


def _json_print(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def register_commands(sub: argparse._SubParsersAction) -> None:
    """Register the calculate subcommand on an existing subparsers group."""
    calc_cmd = sub.add_parser(
        "calculate", help="Append descriptor columns to a TSV of SMILES structures"
    )
    calc_cmd.add_argument("--input", type=Path, required=True, help="Input TSV file")
    calc_cmd.add_argument("--output", type=Path, required=True, help="Output TSV file")
    calc_cmd.add_argument("--verbose", action="store_true")


def handle(args: argparse.Namespace, config: WorkflowConfig) -> int | None:
    """Handle the calculate subcommand. Returns exit code, or None if not ours."""
    if args.command != "calculate":
        return None

    from .calculator import calculate_file
    from .chemistry import RDKitEngine, build_rdkit_catalog
    from .evaluator import DescriptorEvaluator

    if not args.input.exists():
        raise FileNotFoundError(f"Input TSV not found: {args.input}")

    catalog = build_rdkit_catalog()
    engine = RDKitEngine(catalog, config.chemistry)
    evaluator = DescriptorEvaluator(engine, catalog, config)
    payload = calculate_file(args.input, args.output, evaluator, verbose=args.verbose)
    _json_print(payload)
    return 0
