"""Check that configuration-block variants expose the same key set."""

from __future__ import annotations

from typing import Iterable, Optional

from scripts.doccheck.document import Block, ConfigBlockGroup, Document
from scripts.doccheck.violations import KeySetMismatchError, ViolationSink


def comparable_blocks(group: ConfigBlockGroup) -> list[Block]:
    """Blocks of the group whose keys could be extracted, in declaration order."""
    return [block for block in group.blocks if block.comparable]


def check_group(group: ConfigBlockGroup) -> None:
    """Check cross-dialect key parity for one group.

    Only key sets are compared; values legitimately differ between dialects.
    The first comparable block is canonical for reporting, so its extra keys
    come first in the reported difference.

    Raises:
        KeySetMismatchError: If the blocks' key sets differ
    """
    blocks = comparable_blocks(group)
    if len(blocks) < 2:
        return

    key_sets = [block.keys or frozenset() for block in blocks]
    union = frozenset().union(*key_sets)
    common = frozenset.intersection(*key_sets)
    if union == common:
        return

    canonical = key_sets[0]
    difference = sorted(canonical - common) + sorted((union - common) - canonical)

    missing: dict[str, list[str]] = {}
    for block, keys in zip(blocks, key_sets):
        lacking = sorted(union - keys)
        if lacking:
            name = block.dialect
            # Same dialect twice in one group: keep both entries apart
            if name in missing:
                name = f"{name}@{block.line}"
            missing[name] = lacking

    raise KeySetMismatchError(group.path, group.line, difference, missing)


def check_all_groups(
    documents: Iterable[Document],
    sink: Optional[ViolationSink] = None,
) -> int:
    """Check every configuration-block group of every document.

    Args:
        documents: Scanned documents
        sink: Violation sink (a lenient one is created if None)

    Returns:
        Number of groups checked
    """
    if sink is None:
        sink = ViolationSink()

    checked = 0
    for doc in documents:
        for group in doc.groups:
            try:
                check_group(group)
            except KeySetMismatchError as e:
                sink.add(e)
            checked += 1

    return checked
