# src/main.py — v1
"""CLI entry point — run, extract commands.

Usage:
    flowcapture run <subject> [--stream]
    flowcapture extract <file> [--stage NAME]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from flowcapture.config.settings import ConfigurationError, Settings, load_settings
from flowcapture.logging.logger import setup_logging
from flowcapture.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = load_settings()
    except (ConfigurationError, ValidationError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def cli() -> None:
    """Console-script wrapper."""
    sys.exit(main())


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="flowcapture",
        description=f"flowcapture v{__version__} — Staged browser capture pipeline",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- run ---
    p_run = subparsers.add_parser(
        "run", help="Run the capture flow for one subject",
    )
    p_run.add_argument("subject", help="Subject identifier to enter")
    p_run.add_argument(
        "--stream", action="store_true",
        help="Print each stage reference as it is captured",
    )
    p_run.set_defaults(func=_cmd_run)

    # --- extract ---
    p_extract = subparsers.add_parser(
        "extract", help="Extract fields from a saved snapshot",
    )
    p_extract.add_argument("file", type=Path, help="Path to saved HTML snapshot")
    p_extract.add_argument(
        "--stage", default=None,
        help="Stage the snapshot was captured at (adds its stage-specific fields)",
    )
    p_extract.set_defaults(func=_cmd_extract)

    return parser


async def _cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    """Execute one capture run and print the result."""
    from flowcapture.api.facade import create_service
    from flowcapture.api.models import StageReference

    subject = args.subject.strip()
    if not subject:
        logger.error("Subject identifier is empty")
        return 1

    def on_stage(reference: StageReference) -> None:
        print(f"stage {reference.name}: {reference.reference}", flush=True)

    service = create_service(settings)
    try:
        result = await service.start(subject, on_stage=on_stage if args.stream else None)
    finally:
        await service.close()

    print(result.model_dump_json(indent=2))
    return 0


async def _cmd_extract(args: argparse.Namespace, settings: Settings) -> int:
    """Print the ExtractedRecord of a saved snapshot."""
    from flowcapture.extraction.document_extractor import extract_file

    file_path: Path = args.file
    if not file_path.is_file():
        logger.error("File not found: %s", file_path)
        return 1

    record = extract_file(file_path, settings.extractor_config(), stage=args.stage)
    if record is None:
        logger.error("Could not parse %s", file_path)
        return 1

    print(record.model_dump_json(indent=2))
    return 0


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
