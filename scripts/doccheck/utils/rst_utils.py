"""reStructuredText utilities for anchor, reference and config-block extraction."""

from __future__ import annotations

import re
import textwrap
from pathlib import Path

from scripts.doccheck.config import DocCheckConfig
from scripts.doccheck.document import Anchor, Block, ConfigBlockGroup, Document, Reference
from scripts.doccheck.utils.dialects import extract_keys
from scripts.doccheck.violations import BlockParseError


# Patterns for extraction
ANCHOR_PATTERN = re.compile(r"^\s*\.\.\s+_(`[^`]+`|[^:`][^:]*):\s*$")
ROLE_PATTERN = re.compile(r":(ref|doc):`([^`]+)`")
EXPLICIT_TITLE_PATTERN = re.compile(r"^(.*?)\s*<([^<>]+)>$", re.DOTALL)
CONFIG_BLOCK_PATTERN = re.compile(r"^(\s*)\.\.\s+configuration-block::\s*$")
CODE_BLOCK_PATTERN = re.compile(r"^(\s*)\.\.\s+(?:code-block|code|sourcecode)::\s*(\S*)\s*$")
DIRECTIVE_OPTION_PATTERN = re.compile(r"^\s*:[\w-]+:")
ADORNMENT_PATTERN = re.compile(r"^([=\-~^*+#`:'\"_.])\1+\s*$")
# Explicit markup matching no other construct is a comment
COMMENT_PATTERN = re.compile(r"^(\s*)\.\.(?:\s+(?![_\[|])(?![\w:+.-]+::)\S.*)?\s*$")


def normalize_label(label: str) -> str:
    """Normalize an anchor label the way Sphinx does (case and whitespace folded)."""
    label = label.strip()
    if label.startswith("`") and label.endswith("`"):
        label = label[1:-1]
    return " ".join(label.split()).lower()


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def _block_end(lines: list[str], start: int, indent: int, limit: int | None = None) -> int:
    """Index of the first line after ``start`` that is not indented deeper than ``indent``."""
    if limit is None:
        limit = len(lines)
    end = start + 1
    while end < limit:
        line = lines[end]
        if line.strip() and _indent(line) <= indent:
            break
        end += 1
    return end


def _is_literal_marker(line: str) -> bool:
    """True for lines whose indented body is a literal block."""
    if CODE_BLOCK_PATTERN.match(line):
        return True
    stripped = line.strip()
    if stripped.startswith(".. "):
        return False
    return stripped.endswith("::")


def extract_references(text: str, path: str, line_num: int) -> list[Reference]:
    """Extract ``:ref:`` and ``:doc:`` roles from a line or a whole paragraph.

    A role may wrap across lines; each reference gets the line it starts on,
    counted from ``line_num`` (the first line of ``text``).
    """
    refs: list[Reference] = []
    for match in ROLE_PATTERN.finditer(text):
        role, body = match.group(1), match.group(2).strip()
        explicit = EXPLICIT_TITLE_PATTERN.match(body)
        target = explicit.group(2) if explicit else body
        target = target.strip()
        if not target:
            continue
        if role == "ref":
            target = normalize_label(target)
        start = line_num + text.count("\n", 0, match.start())
        refs.append(Reference(label=target, path=path, line=start, role=role))
    return refs


def _parse_group(
    path: str,
    lines: list[str],
    start: int,
    end: int,
    config: DocCheckConfig,
) -> ConfigBlockGroup:
    """Parse the code-blocks nested under a configuration-block directive."""
    blocks: list[Block] = []
    index = start + 1

    while index < end:
        match = CODE_BLOCK_PATTERN.match(lines[index])
        if not match:
            index += 1
            continue

        block_indent = len(match.group(1))
        dialect = match.group(2).lower()
        block_end = _block_end(lines, index, block_indent, limit=end)

        body = lines[index + 1:block_end]
        # Directive options (":linenos:", ":emphasize-lines: 3") precede the content
        while body and DIRECTIVE_OPTION_PATTERN.match(body[0]):
            body = body[1:]
        content = textwrap.dedent("\n".join(body)).strip("\n")

        keys = None
        error = None
        try:
            keys = extract_keys(dialect, content, config)
        except BlockParseError as e:
            error = e.located(path, index + 1)

        blocks.append(Block(
            dialect=dialect,
            line=index + 1,
            content=content,
            keys=keys,
            error=error,
        ))
        index = block_end

    return ConfigBlockGroup(path=path, line=start + 1, blocks=tuple(blocks))


def parse_document(path: str, text: str, config: DocCheckConfig) -> Document:
    """Parse one document into its anchors, references and config-block groups.

    Args:
        path: Document identifier (path relative to the corpus root)
        text: Document contents
        config: Checker configuration

    Returns:
        Document with everything found, in line order
    """
    lines = text.splitlines()
    anchors: list[Anchor] = []
    references: list[Reference] = []
    groups: list[ConfigBlockGroup] = []

    # Roles can wrap, so references are matched per paragraph
    paragraph: list[str] = []
    paragraph_start = 0

    def flush() -> None:
        if paragraph:
            references.extend(extract_references("\n".join(paragraph), path, paragraph_start))
            paragraph.clear()

    index = 0
    while index < len(lines):
        line = lines[index]
        line_num = index + 1

        if not line.strip():
            flush()
            index += 1
            continue

        group_match = CONFIG_BLOCK_PATTERN.match(line)
        if group_match:
            flush()
            end = _block_end(lines, index, len(group_match.group(1)))
            groups.append(_parse_group(path, lines, index, end, config))
            index = end
            continue

        anchor_match = ANCHOR_PATTERN.match(line)
        if anchor_match:
            flush()
            label = normalize_label(anchor_match.group(1))
            # ".. __:" is an anonymous target, not a citable label
            if label and label != "_":
                anchors.append(Anchor(label=label, path=path, line=line_num))
            index += 1
            continue

        comment_match = COMMENT_PATTERN.match(line)
        if comment_match:
            flush()
            if line.strip() == ".." and (index + 1 == len(lines) or not lines[index + 1].strip()):
                # An empty comment followed by a blank line has no body
                index += 1
            else:
                index = _block_end(lines, index, len(comment_match.group(1)))
            continue

        if not paragraph:
            paragraph_start = line_num
        paragraph.append(line)

        if _is_literal_marker(line):
            flush()
            index = _block_end(lines, index, _indent(line))
            continue

        index += 1

    flush()

    return Document(
        path=path,
        anchors=tuple(anchors),
        references=tuple(references),
        groups=tuple(groups),
    )


def find_section_for_line(filepath: str, line: int, encoding: str = "utf-8") -> str | None:
    """Find the section title containing a line.

    Args:
        filepath: Path to the reStructuredText file
        line: Line number (1-based)
        encoding: Corpus encoding

    Returns:
        Section title text, or None
    """
    path = Path(filepath)
    if not path.exists():
        return None

    lines = path.read_text(encoding=encoding, errors="replace").splitlines()

    # Walk backwards looking for a title followed by its underline
    for i in range(min(line, len(lines)) - 1, 0, -1):
        underline = lines[i]
        title = lines[i - 1].strip()
        if not ADORNMENT_PATTERN.match(underline) or not title:
            continue
        if ADORNMENT_PATTERN.match(title):
            continue
        if len(underline.strip()) >= len(title):
            return title

    return None
