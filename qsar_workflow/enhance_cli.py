"""CLI subcommand for the PMML model enhancer: enhance."""

import argparse
from dataclasses import replace
import json
import logging
from pathlib import Path
from typing import Any

from .config import PLACEMENTS, WorkflowConfig
from .errors import PMMLFormatError, UnsupportedDocumentError

logger = logging.getLogger(__name__)


def _json_print(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def register_commands(sub: argparse._SubParsersAction) -> None:
    """Register the enhance subcommand on an existing subparsers group."""
    enhance_cmd = sub.add_parser(
        "enhance",
        help="Rewrite a PMML model to compute its inputs from a SMILES field",
    )
    enhance_cmd.add_argument("--input", type=Path, required=True, help="Input PMML file")
    enhance_cmd.add_argument("--output", type=Path, required=True, help="Output PMML file")
    enhance_cmd.add_argument(
        "--structure-field",
        type=str,
        default=None,
        help="Name of the new raw structure field (default from config: SMILES)",
    )
    enhance_cmd.add_argument(
        "--placement",
        type=str,
        choices=list(PLACEMENTS),
        default=None,
        help="Where to declare the derived descriptor fields",
    )
    enhance_cmd.add_argument("--verbose", action="store_true")


def handle(args: argparse.Namespace, config: WorkflowConfig) -> int | None:
    """Handle the enhance subcommand. Returns exit code, or None if not ours."""
    if args.command != "enhance":
        return None

    from .enhancer import ModelEnhancer
    from .pmml import PMMLDocument

    enhancer_config = config.enhancer
    if args.structure_field is not None:
        enhancer_config = replace(enhancer_config, structure_field=args.structure_field)
    if args.placement is not None:
        enhancer_config = replace(enhancer_config, placement=args.placement)

    enhancer = ModelEnhancer(enhancer_config)
    try:
        document = PMMLDocument.parse(args.input)
        enhanced = enhancer.transform(document)
    except (PMMLFormatError, UnsupportedDocumentError) as exc:
        logger.error("Cannot enhance %s: %s", args.input, exc)
        return 1

    args.output.parent.mkdir(parents=True, exist_ok=True)
    enhanced.write(args.output)

    payload: dict[str, Any] = {
        "status": "ok",
        "input": str(args.input),
        "output": str(args.output),
    }
    if enhancer.last_summary is not None:
        payload.update(enhancer.last_summary.as_dict())
    _json_print(payload)
    return 0
