"""Resolve cross-references against the anchor index."""

from __future__ import annotations

import posixpath
from typing import Iterable, Optional

from scripts.doccheck.anchor_index import AnchorIndex
from scripts.doccheck.document import AnchorLocation, Document, Reference
from scripts.doccheck.violations import UnresolvedReferenceError, ViolationSink


def resolve_reference(reference: Reference, index: AnchorIndex) -> AnchorLocation:
    """Look up an anchor reference.

    Raises:
        UnresolvedReferenceError: If no anchor has the cited label
    """
    location = index.get(reference.label)
    if location is None:
        raise UnresolvedReferenceError(reference.label, reference.path, reference.line)
    return location


def document_target(reference: Reference) -> str:
    """Compute the document name a ``:doc:`` reference points to.

    Absolute targets (``/reference/forms``) start at the corpus root,
    relative ones at the citing document's directory.
    """
    target = reference.label
    if target.startswith("/"):
        joined = target.lstrip("/")
    else:
        joined = posixpath.join(posixpath.dirname(reference.path), target)
    return posixpath.normpath(joined)


def resolve_doc_reference(reference: Reference, document_names: set[str]) -> str:
    """Look up a document reference.

    Raises:
        UnresolvedReferenceError: If no scanned document has the cited name
    """
    target = document_target(reference)
    if target not in document_names:
        raise UnresolvedReferenceError(reference.label, reference.path, reference.line, role="doc")
    return target


def resolve_all_references(
    documents: Iterable[Document],
    index: AnchorIndex,
    sink: Optional[ViolationSink] = None,
) -> int:
    """Resolve every reference of every document.

    Each lookup is independent, so the order references are checked in does
    not affect which ones fail.

    Args:
        documents: Scanned documents
        index: Anchor index
        sink: Violation sink (a lenient one is created if None)

    Returns:
        Number of references that resolved
    """
    if sink is None:
        sink = ViolationSink()

    documents = list(documents)
    document_names = {doc.name for doc in documents}
    resolved = 0

    for doc in documents:
        for reference in doc.references:
            try:
                if reference.role == "doc":
                    resolve_doc_reference(reference, document_names)
                else:
                    resolve_reference(reference, index)
            except UnresolvedReferenceError as e:
                sink.add(e)
            else:
                resolved += 1

    return resolved
