"""Command-line interface for the documentation checker."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from enum import IntEnum
from pathlib import Path
from typing import Optional

from scripts.doccheck.anchor_index import anchor_index_to_json, build_anchor_index
from scripts.doccheck.checker import format_text_report, run_check
from scripts.doccheck.config import (
    ConfigError,
    DocCheckConfig,
    DEFAULT_CONFIG_NAME,
    OUTPUT_FORMATS,
    load_config,
    validate_config,
)
from scripts.doccheck.scanner import scan_corpus
from scripts.doccheck.violations import BlockParseError, CorpusIOError, ViolationSink


class ExitCode(IntEnum):
    """Process exit codes."""

    SUCCESS = 0
    VIOLATIONS = 1
    ERROR = 2  # I/O, parse or configuration error


def _get_config(config_path: Optional[str], root: Path) -> DocCheckConfig:
    """Load config from path or use defaults.

    Search order:
    1. Explicit --config path
    2. .doccheck.yaml in the corpus root
    3. Built-in defaults
    """
    if config_path:
        if not Path(config_path).exists():
            raise ConfigError(
                "Config file not found",
                file=config_path,
                error_type="config_missing",
            )
        return load_config(config_path)

    return load_config(root / DEFAULT_CONFIG_NAME)


def _apply_overrides(config: DocCheckConfig, args: argparse.Namespace) -> DocCheckConfig:
    """Command-line flags win over file values."""
    if getattr(args, "strict", False):
        config.strict = True
    if getattr(args, "format", None):
        config.output_format = args.format
    if getattr(args, "jobs", None) is not None:
        config.jobs = args.jobs
    validate_config(config)
    return config


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _print_error(error: Exception) -> None:
    to_json = getattr(error, "to_json", None)
    if to_json is not None:
        print(json.dumps(to_json()), file=sys.stderr)
    else:
        print(f"Error: {error}", file=sys.stderr)


def cmd_check(args: argparse.Namespace) -> int:
    """Check anchors, references and configuration blocks."""
    root = Path(args.root)
    try:
        config = _apply_overrides(_get_config(args.config, root), args)
    except ConfigError as e:
        _print_error(e)
        return ExitCode.ERROR

    try:
        report = run_check(root, config)
    except (CorpusIOError, BlockParseError) as e:
        _print_error(e)
        return ExitCode.ERROR

    if config.output_format == "json":
        print(json.dumps(report.to_json(), indent=2))
    else:
        print(format_text_report(report))

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(report.to_json(), indent=2), encoding="utf-8")

    return ExitCode.SUCCESS if report.ok else ExitCode.VIOLATIONS


def cmd_anchors(args: argparse.Namespace) -> int:
    """Print the anchor index as JSON."""
    root = Path(args.root)
    try:
        config = _apply_overrides(_get_config(args.config, root), args)
    except ConfigError as e:
        _print_error(e)
        return ExitCode.ERROR

    try:
        documents = scan_corpus(root, config)
    except CorpusIOError as e:
        _print_error(e)
        return ExitCode.ERROR

    sink = ViolationSink()
    index = build_anchor_index(documents, sink)
    print(json.dumps({
        "root": str(root),
        "anchor_count": len(index),
        "duplicates": len(sink),
        "anchors": anchor_index_to_json(index),
    }, indent=2))

    return ExitCode.SUCCESS if len(sink) == 0 else ExitCode.VIOLATIONS


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("root", help="Corpus root directory")
    parser.add_argument(
        "--config",
        "-c",
        help=f"Path to config file (default: <root>/{DEFAULT_CONFIG_NAME})",
    )
    parser.add_argument(
        "--jobs",
        "-j",
        type=int,
        default=None,
        help="Documents scanned in parallel (default from config: 1)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log scan progress",
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="doccheck",
        description="Cross-reference and configuration-block consistency checks for reStructuredText docs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0  no violations
  1  violations found
  2  I/O, parse or configuration error

Examples:
  doccheck check docs/
  doccheck check docs/ --strict --format=json
  doccheck anchors docs/
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check",
        help="Check anchors, references and configuration blocks",
    )
    _add_common_args(check_parser)
    check_parser.add_argument(
        "--strict",
        action="store_true",
        help="Stop at the first violation",
    )
    check_parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default=None,
        help="Output format (default from config: text)",
    )
    check_parser.add_argument(
        "--output",
        "-o",
        default=None,
        help="Also write the JSON report to this file",
    )

    anchors_parser = subparsers.add_parser(
        "anchors",
        help="Print the anchor index as JSON",
    )
    _add_common_args(anchors_parser)

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    commands = {
        "check": cmd_check,
        "anchors": cmd_anchors,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
