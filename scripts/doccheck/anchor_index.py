"""Build the index of anchor labels defined across the corpus."""

from __future__ import annotations

from itertools import groupby
from typing import Iterable, Optional

from scripts.doccheck.document import Anchor, AnchorLocation, Document
from scripts.doccheck.violations import DuplicateAnchorError, ViolationSink


AnchorIndex = dict[str, AnchorLocation]


def build_anchor_index(
    documents: Iterable[Document],
    sink: Optional[ViolationSink] = None,
) -> AnchorIndex:
    """Merge the anchors of every document into one label index.

    Definitions are sorted by (label, path, line) before duplicates are
    detected, so the outcome does not depend on the order documents were
    scanned in. Each duplicated label is reported once, citing every
    definition; the first definition in sorted order stays in the index.

    Args:
        documents: Scanned documents
        sink: Violation sink (a lenient one is created if None)

    Returns:
        Mapping of label to its location

    Raises:
        StrictModeAbort: On the first duplicate when the sink is strict
    """
    if sink is None:
        sink = ViolationSink()

    anchors: list[Anchor] = [a for doc in documents for a in doc.anchors]
    anchors.sort(key=lambda a: (a.label, a.path, a.line))

    index: AnchorIndex = {}
    for label, group in groupby(anchors, key=lambda a: a.label):
        definitions = list(group)
        first = definitions[0]
        index[label] = AnchorLocation(path=first.path, line=first.line)

        if len(definitions) > 1:
            sink.add(DuplicateAnchorError(
                label,
                [(a.path, a.line) for a in definitions],
            ))

    return index


def anchor_index_to_json(index: AnchorIndex) -> dict[str, dict]:
    """Serialize the anchor index, sorted by label."""
    return {
        label: {"path": location.path, "line": location.line}
        for label, location in sorted(index.items())
    }
