"""Scan a documentation corpus into parsed documents."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from scripts.doccheck.config import DocCheckConfig, get_default_config
from scripts.doccheck.document import Document
from scripts.doccheck.utils.rst_utils import parse_document
from scripts.doccheck.violations import CorpusIOError

logger = logging.getLogger(__name__)


def collect_document_paths(root: Path, config: DocCheckConfig) -> list[Path]:
    """List every document under the root, sorted by relative path.

    Raises:
        CorpusIOError: If the root is missing or not a directory
    """
    if not root.exists():
        raise CorpusIOError(f"corpus root not found: {root}", paths=[str(root)])
    if not root.is_dir():
        raise CorpusIOError(f"corpus root is not a directory: {root}", paths=[str(root)])

    extensions = {ext.lower() for ext in config.extensions}
    paths: list[Path] = []

    for candidate in root.rglob("*"):
        if candidate.suffix.lower() not in extensions:
            continue
        # Skip files in skip_dirs (path component matching, not substring)
        relative_parts = candidate.relative_to(root).parts
        if any(skip in relative_parts[:-1] for skip in config.skip_dirs):
            continue
        if candidate.is_file():
            paths.append(candidate)

    return sorted(paths, key=lambda p: p.relative_to(root).as_posix())


def scan_document(root: Path, file_path: Path, config: DocCheckConfig) -> Document:
    """Read and parse a single document.

    Raises:
        CorpusIOError: If the file cannot be read or decoded
    """
    rel_path = file_path.relative_to(root).as_posix()
    try:
        text = file_path.read_text(encoding=config.encoding)
    except UnicodeDecodeError as e:
        raise CorpusIOError(f"cannot decode document as {config.encoding}: {e}", paths=[rel_path])
    except OSError as e:
        raise CorpusIOError(f"cannot read document: {e}", paths=[rel_path])

    document = parse_document(rel_path, text, config)
    logger.debug(
        f"Scanned {rel_path}: {len(document.anchors)} anchors, "
        f"{len(document.references)} references, {len(document.groups)} config groups"
    )
    return document


def scan_corpus(root: Path | str, config: DocCheckConfig | None = None) -> list[Document]:
    """Scan every document of the corpus.

    Documents are independent, so with ``config.jobs > 1`` they are read and
    parsed in a thread pool. The result is sorted by path whatever the
    completion order.

    Args:
        root: Corpus root directory
        config: Checker configuration (defaults if None)

    Returns:
        Parsed documents sorted by path

    Raises:
        CorpusIOError: If any document cannot be read; the run must abort
    """
    root = Path(root)
    if config is None:
        config = get_default_config()

    paths = collect_document_paths(root, config)
    logger.info(f"Scanning {len(paths)} documents under {root}")

    if config.jobs > 1 and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=config.jobs) as pool:
            documents = list(pool.map(lambda p: scan_document(root, p, config), paths))
    else:
        documents = [scan_document(root, p, config) for p in paths]

    return sorted(documents, key=lambda d: d.path)
