"""Doccheck utility modules."""

from scripts.doccheck.utils.dialects import (
    extract_keys,
    normalize_key,
)
from scripts.doccheck.utils.rst_utils import (
    extract_references,
    find_section_for_line,
    normalize_label,
    parse_document,
)

__all__ = [
    "extract_keys",
    "normalize_key",
    "extract_references",
    "find_section_for_line",
    "normalize_label",
    "parse_document",
]
