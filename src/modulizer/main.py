"""
Command line entry point for converting HTML-import documents to ES modules.

Example:
    Convert an element and everything it imports:
    $ modulizer paper-button/paper-button.html --root components --out modules
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from modulizer.core import __version__
from modulizer.core.config import ConversionConfig, load_config
from modulizer.core.document_graph import DocumentAnalyzer, FileSystemLoader, LoaderError
from modulizer.core.orchestrator import ConversionOrchestrator
from modulizer.core.output_writer import ConflictStrategy, OutputWriter
from modulizer.utils.logger import VALID_LOG_LEVELS, setup_logger

APP_NAME = "modulizer"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Convert HTML-import documents using a global namespace into ES modules.",
    )
    parser.add_argument("entries", nargs="+", help="Entry document keys, relative to --root")
    parser.add_argument("--root", type=Path, default=Path("."), help="Directory documents are loaded from")
    parser.add_argument("--out", type=Path, required=True, help="Directory modules are written to")
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="KEY",
        help="Document key to leave out of the conversion (repeatable)",
    )
    parser.add_argument("--config", type=Path, help="JSON configuration file")
    parser.add_argument(
        "--skip-existing",
        action="store_true",
        help="Keep output files that already exist",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        type=str.upper,
        choices=sorted(VALID_LOG_LEVELS),
    )
    parser.add_argument("--log-file", type=Path, help="Also log to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Run a conversion from the command line.

    Returns:
        Exit code (0 for success, 1 if documents could not be loaded or
        written, 2 for configuration errors).
    """
    args = build_parser().parse_args(argv)
    logger = setup_logger(APP_NAME, level=args.log_level, log_file=args.log_file)
    logger.info(f"{APP_NAME} {__version__} starting")

    try:
        config = load_config(args.config) if args.config else ConversionConfig()
        config.excludes = list(config.excludes) + list(args.exclude)
        config.validate()
    except (OSError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    try:
        graph = DocumentAnalyzer(FileSystemLoader(args.root)).analyze(args.entries)
    except LoaderError as e:
        logger.error(e.message)
        return 1

    result = ConversionOrchestrator(graph, config).run()
    if not result.success:
        for error in result.errors:
            logger.error(error)
        return 1

    strategy = ConflictStrategy.SKIP if args.skip_existing else ConflictStrategy.OVERWRITE
    writer = OutputWriter(args.out, strategy)
    writes = writer.write_modules(result.output)
    logger.info(writer.get_summary_report(format="text"))

    if result.issues:
        logger.warning(f"Conversion finished with {len(result.issues)} issues")
    return 0 if all(write.success for write in writes) else 1


if __name__ == "__main__":
    sys.exit(main())
