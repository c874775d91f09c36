"""Run every consistency check over a corpus and build the report."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from scripts.doccheck.anchor_index import build_anchor_index
from scripts.doccheck.config import DocCheckConfig, get_default_config
from scripts.doccheck.consistency import check_all_groups
from scripts.doccheck.document import Document
from scripts.doccheck.resolver import resolve_all_references
from scripts.doccheck.scanner import scan_corpus
from scripts.doccheck.utils.rst_utils import find_section_for_line
from scripts.doccheck.violations import (
    BlockParseError,
    DocCheckError,
    StrictModeAbort,
    ViolationSink,
)

logger = logging.getLogger(__name__)


@dataclass
class CheckReport:
    """Outcome of one checker run."""

    root: str
    strict: bool
    encoding: str = "utf-8"
    document_count: int = 0
    anchor_count: int = 0
    reference_count: int = 0
    resolved_count: int = 0
    group_count: int = 0
    skipped_blocks: list[BlockParseError] = field(default_factory=list)
    violations: list[DocCheckError] = field(default_factory=list)
    aborted: bool = False  # strict mode stopped at the first violation

    @property
    def ok(self) -> bool:
        return not self.violations

    def counts_by_kind(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for violation in self.violations:
            counts[violation.kind] = counts.get(violation.kind, 0) + 1
        return counts

    def to_json(self) -> dict[str, Any]:
        return {
            "root": self.root,
            "strict": self.strict,
            "aborted": self.aborted,
            "summary": {
                "documents": self.document_count,
                "anchors": self.anchor_count,
                "references": self.reference_count,
                "resolved": self.resolved_count,
                "config_groups": self.group_count,
                "skipped_blocks": len(self.skipped_blocks),
                "violations": len(self.violations),
                "by_kind": self.counts_by_kind(),
            },
            "violations": [v.to_json() for v in self.violations],
            "skipped_blocks": [e.to_json() for e in self.skipped_blocks],
        }


def _collect_parse_failures(documents: list[Document], strict: bool) -> list[BlockParseError]:
    """Gather blocks that failed to parse.

    Raises:
        BlockParseError: The first failure, in strict mode
    """
    failures: list[BlockParseError] = []
    for doc in documents:
        for group in doc.groups:
            for block in group.blocks:
                if block.error is None:
                    continue
                if strict:
                    raise block.error
                logger.warning(f"Skipping {block.dialect} block: {block.error}")
                failures.append(block.error)
    return failures


def run_check(root: Path | str, config: DocCheckConfig | None = None) -> CheckReport:
    """Check a corpus for broken references and inconsistent config blocks.

    The anchor index is built only after every document has been scanned.
    In lenient mode all violations are collected; in strict mode the run
    stops at the first one and the report holds just that violation.

    Args:
        root: Corpus root directory
        config: Checker configuration (defaults if None)

    Returns:
        CheckReport with violations ordered by kind then location

    Raises:
        CorpusIOError: If a document cannot be read
        BlockParseError: If a snippet does not parse and the run is strict
    """
    root = Path(root)
    if config is None:
        config = get_default_config()

    documents = scan_corpus(root, config)

    report = CheckReport(
        root=str(root),
        strict=config.strict,
        encoding=config.encoding,
        document_count=len(documents),
        anchor_count=sum(len(d.anchors) for d in documents),
        reference_count=sum(len(d.references) for d in documents),
    )
    report.skipped_blocks = _collect_parse_failures(documents, config.strict)

    sink = ViolationSink(strict=config.strict)
    try:
        index = build_anchor_index(documents, sink)
        report.resolved_count = resolve_all_references(documents, index, sink)
        report.group_count = check_all_groups(documents, sink)
    except StrictModeAbort as abort:
        logger.info(f"Strict mode: stopping at first violation ({abort.violation.kind})")
        report.aborted = True

    report.violations = sink.ordered()
    logger.info(
        f"Checked {report.document_count} documents: {len(report.violations)} violations"
    )
    return report


def format_violation(
    violation: DocCheckError,
    root: Path | None = None,
    encoding: str = "utf-8",
) -> str:
    """Format one violation as ``KIND path:line: message [section]``."""
    location = ", ".join(violation.paths)
    if violation.line and len(violation.paths) == 1:
        location = f"{location}:{violation.line}"

    text = f"{violation.kind} {location}: {violation.message}"

    if root is not None and violation.line and len(violation.paths) == 1:
        section = find_section_for_line(
            str(root / violation.paths[0]), violation.line, encoding
        )
        if section:
            text += f" [in section '{section}']"
    return text


def format_text_report(report: CheckReport, with_sections: bool = True) -> str:
    """Render the report for terminal output."""
    root = Path(report.root) if with_sections else None
    lines = [format_violation(v, root, report.encoding) for v in report.violations]

    if lines:
        lines.append("")
    lines.append("=== Documentation Check Report ===")
    lines.append(f"Root: {report.root}")
    lines.append(f"Mode: {'strict' if report.strict else 'lenient'}")
    lines.append(f"Documents: {report.document_count}")
    lines.append(f"Anchors: {report.anchor_count}")
    lines.append(f"References: {report.reference_count} ({report.resolved_count} resolved)")
    lines.append(f"Config groups: {report.group_count}")
    if report.skipped_blocks:
        lines.append(f"Skipped blocks (unparseable): {len(report.skipped_blocks)}")
    lines.append(f"Violations: {len(report.violations)}")
    for kind, count in report.counts_by_kind().items():
        lines.append(f"  {kind}: {count}")
    if report.aborted:
        lines.append("Stopped at first violation (strict mode).")

    return "\n".join(lines)
