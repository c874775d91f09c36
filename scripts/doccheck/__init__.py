"""Doccheck - Documentation consistency checker.

This package provides tools for:
- Indexing the anchor labels defined across a reStructuredText corpus
- Resolving :ref: and :doc: cross-references against that index
- Checking that configuration-block variants (YAML, XML, PHP...) agree on keys

Usage:
    python -m scripts.doccheck check docs/              # Lenient: report everything
    python -m scripts.doccheck check docs/ --strict     # Stop at the first violation
    python -m scripts.doccheck check docs/ --format=json
    python -m scripts.doccheck anchors docs/            # Dump the anchor index
"""

__version__ = "1.0.0"
