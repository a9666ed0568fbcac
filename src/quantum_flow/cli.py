"""
Command line interface for Quantum Flow.

    quantum-flow compress INPUT [-o OUTPUT.qf] [--preset NAME] [--config FILE]
    quantum-flow decompress INPUT.qf [-o OUTPUT]
    quantum-flow info INPUT.qf
    quantum-flow analyze INPUT
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .adapters.qf_file_adapter import QF_FILE_EXTENSION, QFFileAdapter
from .exceptions import QuantumFlowError
from .models.config import PRESETS
from .quantum_flow import QuantumFlow

logger = logging.getLogger(__name__)


def _load_engine_config(args: argparse.Namespace) -> Dict[str, Any]:
    config: Dict[str, Any] = {}
    if getattr(args, "config", None):
        config.update(json.loads(Path(args.config).read_text(encoding="utf-8")))
    if getattr(args, "preset", None):
        config["preset"] = args.preset
    return config


def _print_result(result: Dict[str, Any]) -> int:
    print(json.dumps(result, indent=2, default=str))
    return 0 if result.get("success") else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="quantum-flow",
                                     description="Quantum-inspired compression of arbitrary files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--overwrite", action="store_true", help="Replace existing output files")
    subparsers = parser.add_subparsers(dest="command", required=True)

    compress = subparsers.add_parser("compress", help=f"Compress a file into a {QF_FILE_EXTENSION} container")
    compress.add_argument("input", type=Path)
    compress.add_argument("-o", "--output", type=Path, default=None,
                          help=f"Output path (default: INPUT{QF_FILE_EXTENSION})")
    compress.add_argument("--preset", choices=sorted(PRESETS), default=None,
                          help="Start from a named configuration preset")
    compress.add_argument("--config", type=Path, default=None,
                          help="JSON file with QuantumConfig keys (applied after the preset)")

    decompress = subparsers.add_parser("decompress", help="Restore a file from a container")
    decompress.add_argument("input", type=Path)
    decompress.add_argument("-o", "--output", type=Path, default=None,
                            help="Output path (default: INPUT without the extension)")

    info = subparsers.add_parser("info", help="Show container metadata")
    info.add_argument("input", type=Path)

    analyze = subparsers.add_parser("analyze", help="Analyze a file and suggest a configuration")
    analyze.add_argument("input", type=Path)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    try:
        engine = QuantumFlow(_load_engine_config(args))
    except (OSError, ValueError, QuantumFlowError) as e:
        error_msg = f"Invalid configuration: {str(e)}"
        logger.error(error_msg)
        return _print_result({"success": False, "error": error_msg})

    adapter = QFFileAdapter(engine, {"overwrite": args.overwrite})
    if args.command == "compress":
        result = adapter.compress_file(args.input, args.output)
    elif args.command == "decompress":
        result = adapter.decompress_file(args.input, args.output)
    elif args.command == "info":
        result = adapter.inspect_file(args.input)
    else:
        result = adapter.analyze_file(args.input)
    return _print_result(result)


if __name__ == "__main__":
    sys.exit(main())
