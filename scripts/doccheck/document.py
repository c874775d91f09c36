"""Read-only records produced by scanning a documentation corpus."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from scripts.doccheck.violations import BlockParseError


@dataclass(frozen=True)
class Anchor:
    """A label defined at a position in a document."""

    label: str
    path: str
    line: int


@dataclass(frozen=True)
class AnchorLocation:
    """Where an anchor label points to."""

    path: str
    line: int


@dataclass(frozen=True)
class Reference:
    """A label cited from a document.

    ``role`` is ``"ref"`` for anchor references and ``"doc"`` for
    document references.
    """

    label: str
    path: str
    line: int
    role: str = "ref"


@dataclass(frozen=True)
class Block:
    """One dialect variant inside a configuration-block group."""

    dialect: str
    line: int
    content: str
    keys: Optional[frozenset[str]] = None  # None: dialect is not comparable
    error: Optional[BlockParseError] = None

    @property
    def comparable(self) -> bool:
        return self.keys is not None and self.error is None


@dataclass(frozen=True)
class ConfigBlockGroup:
    """Sibling blocks presented as equivalent alternatives."""

    path: str
    line: int
    blocks: tuple[Block, ...] = ()


@dataclass(frozen=True)
class Document:
    """A scanned document and everything found in it."""

    path: str
    anchors: tuple[Anchor, ...] = ()
    references: tuple[Reference, ...] = ()
    groups: tuple[ConfigBlockGroup, ...] = field(default_factory=tuple)

    @property
    def name(self) -> str:
        """Document identifier used by ``:doc:`` references (path without extension)."""
        stem, dot, ext = self.path.rpartition(".")
        if not dot or "/" in ext:
            return self.path
        return stem
