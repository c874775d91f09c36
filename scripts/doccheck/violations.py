"""Violation types and the strict/lenient collection policy.

Every finding the checker can report is a ``DocCheckError`` subclass. The
three violation kinds (duplicate anchor, unresolved reference, key-set
mismatch) are collected by a ``ViolationSink``; ``CorpusIOError`` and
``BlockParseError`` are raised directly and end the run.
"""

from __future__ import annotations

from typing import Any, Optional


class DocCheckError(Exception):
    """Base error for documentation consistency checks."""

    error_type = "doccheck_error"

    def __init__(
        self,
        message: str,
        paths: Optional[list[str]] = None,
        line: Optional[int] = None,
        label: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.paths = list(paths or [])
        self.line = line
        self.label = label

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def sort_key(self) -> tuple:
        first_path = self.paths[0] if self.paths else ""
        return (first_path, self.line or 0, self.label or "", self.message)

    def to_json(self) -> dict[str, Any]:
        """Serialize error to JSON format for machine parsing."""
        result: dict[str, Any] = {
            "kind": self.kind,
            "error": self.error_type,
            "message": self.message,
            "paths": self.paths,
        }
        if self.line:
            result["line"] = self.line
        if self.label:
            result["label"] = self.label
        return result

    def __str__(self) -> str:
        location = ", ".join(self.paths)
        if location and self.line:
            location = f"{location}:{self.line}"
        if location:
            return f"{location}: {self.message}"
        return self.message


class DuplicateAnchorError(DocCheckError):
    """Two or more definitions share one anchor label."""

    error_type = "duplicate_anchor"

    def __init__(self, label: str, locations: list[tuple[str, int]]):
        self.locations = list(locations)
        cited = ", ".join(f"{path}:{line}" for path, line in self.locations)
        paths = []
        for path, _ in self.locations:
            if path not in paths:
                paths.append(path)
        super().__init__(
            f"anchor '{label}' is defined {len(self.locations)} times ({cited})",
            paths=paths,
            line=self.locations[0][1] if self.locations else None,
            label=label,
        )

    def to_json(self) -> dict[str, Any]:
        result = super().to_json()
        result["locations"] = [{"path": p, "line": n} for p, n in self.locations]
        return result


class UnresolvedReferenceError(DocCheckError):
    """A reference cites a label with no matching anchor or document."""

    error_type = "unresolved_reference"

    def __init__(self, label: str, path: str, line: int, role: str = "ref"):
        self.role = role
        target = "document" if role == "doc" else "anchor"
        super().__init__(
            f":{role}: target '{label}' does not match any {target}",
            paths=[path],
            line=line,
            label=label,
        )

    def to_json(self) -> dict[str, Any]:
        result = super().to_json()
        result["role"] = self.role
        return result


class KeySetMismatchError(DocCheckError):
    """Sibling configuration blocks expose different key sets."""

    error_type = "key_set_mismatch"

    def __init__(
        self,
        path: str,
        line: int,
        difference: list[str],
        missing: dict[str, list[str]],
    ):
        # difference is ordered canonical-first; missing maps dialect -> keys it lacks
        self.difference = list(difference)
        self.missing = dict(missing)
        details = "; ".join(
            f"{dialect} lacks {', '.join(keys)}" for dialect, keys in self.missing.items() if keys
        )
        super().__init__(
            f"configuration-block variants disagree on keys {{{', '.join(self.difference)}}}"
            + (f" ({details})" if details else ""),
            paths=[path],
            line=line,
        )

    def to_json(self) -> dict[str, Any]:
        result = super().to_json()
        result["difference"] = self.difference
        result["missing"] = self.missing
        return result


class CorpusIOError(DocCheckError):
    """A document could not be read; the corpus cannot be trusted as complete."""

    error_type = "corpus_io"


class BlockParseError(DocCheckError):
    """A configuration snippet could not be parsed in its declared dialect."""

    error_type = "block_parse"

    def __init__(self, message: str, dialect: str, path: Optional[str] = None, line: Optional[int] = None):
        self.dialect = dialect
        super().__init__(message, paths=[path] if path else None, line=line)

    def located(self, path: str, line: int) -> "BlockParseError":
        """Return a copy of this error pinned to a document location."""
        return BlockParseError(self.message, self.dialect, path=path, line=line)


class StrictModeAbort(Exception):
    """Raised in strict mode when the first violation is recorded."""

    def __init__(self, violation: DocCheckError):
        super().__init__(str(violation))
        self.violation = violation


# Report ordering: one bucket per violation kind, in this order
KIND_ORDER = {
    "DuplicateAnchorError": 0,
    "UnresolvedReferenceError": 1,
    "KeySetMismatchError": 2,
}


def order_violations(violations: list[DocCheckError]) -> list[DocCheckError]:
    """Sort violations by kind, then by location, for stable reporting."""
    return sorted(violations, key=lambda v: (KIND_ORDER.get(v.kind, len(KIND_ORDER)), v.sort_key))


class ViolationSink:
    """Collects violations, or aborts on the first one in strict mode."""

    def __init__(self, strict: bool = False):
        self.strict = strict
        self.violations: list[DocCheckError] = []

    def add(self, violation: DocCheckError) -> None:
        self.violations.append(violation)
        if self.strict:
            raise StrictModeAbort(violation)

    def __len__(self) -> int:
        return len(self.violations)

    def ordered(self) -> list[DocCheckError]:
        return order_violations(self.violations)
