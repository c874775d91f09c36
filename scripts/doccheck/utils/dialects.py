"""Key extraction for configuration snippets in different dialects.

Every extractor turns a snippet into a set of dotted key paths such as
``framework.router.resource``. Values are never inspected: the same setting
is spelled differently in YAML, XML and PHP, only its position in the key
tree is comparable.
"""

from __future__ import annotations

import io
import json
import logging
import re
import xml.etree.ElementTree as ET
from typing import Any, Callable, Optional

import yaml

from scripts.doccheck.config import DocCheckConfig, KNOWN_DIALECTS
from scripts.doccheck.violations import BlockParseError

logger = logging.getLogger(__name__)


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def _flatten(value: Any, prefix: str, out: set[str], active: Optional[set[int]] = None) -> None:
    """Collect mapping keys recursively; sequences inherit their parent path.

    Raises:
        ValueError: If a container contains itself (recursive YAML alias)
    """
    if not isinstance(value, (dict, list)):
        return
    if active is None:
        active = set()
    if id(value) in active:
        raise ValueError(f"recursive alias at '{prefix}'")

    # Only ancestors count: an alias reused in two sibling places is fine
    active.add(id(value))
    if isinstance(value, dict):
        for key, child in value.items():
            path = _join(prefix, str(key))
            out.add(path)
            _flatten(child, path, out, active)
    else:
        for item in value:
            _flatten(item, prefix, out, active)
    active.discard(id(value))


# =============================================================================
# YAML / JSON
# =============================================================================


class _TolerantLoader(yaml.SafeLoader):
    """Safe loader that accepts application tags such as ``!php/const``."""


def _construct_tagged(loader: yaml.SafeLoader, tag_suffix: str, node: yaml.Node) -> Any:
    if isinstance(node, yaml.MappingNode):
        return loader.construct_mapping(node, deep=True)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_scalar(node)


_TolerantLoader.add_multi_constructor("!", _construct_tagged)


def yaml_keys(content: str) -> set[str]:
    try:
        data = yaml.load(content, Loader=_TolerantLoader)
    except yaml.YAMLError as e:
        raise BlockParseError(f"invalid YAML: {e}", "yaml")
    except TypeError as e:
        # unhashable complex keys
        raise BlockParseError(f"invalid YAML: {e}", "yaml")

    keys: set[str] = set()
    try:
        _flatten(data, "", keys)
    except ValueError as e:
        raise BlockParseError(f"invalid YAML: {e}", "yaml")
    return keys


def json_keys(content: str) -> set[str]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise BlockParseError(f"invalid JSON: {e}", "json")

    keys: set[str] = set()
    _flatten(data, "", keys)
    return keys


# =============================================================================
# XML
# =============================================================================

XML_DECLARATION = re.compile(r"<\?xml[^>]*\?>")
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"


def _parse_xml(content: str) -> tuple[ET.Element, dict[str, str]]:
    """Parse a snippet and return its root plus a namespace-uri -> prefix map."""
    # Doc snippets open with a "<!-- path -->" comment before the declaration
    text = XML_DECLARATION.sub("", content).strip()
    prefixes: dict[str, str] = {}
    root: Optional[ET.Element] = None

    try:
        for event, item in ET.iterparse(io.StringIO(text), events=("start-ns", "start")):
            if event == "start-ns":
                prefix, uri = item
                prefixes.setdefault(uri, prefix)
            elif root is None:
                root = item
    except ET.ParseError as e:
        raise BlockParseError(f"invalid XML: {e}", "xml")

    if root is None:
        raise BlockParseError("invalid XML: no root element", "xml")
    return root, prefixes


def _qualified_name(name: str, prefixes: dict[str, str]) -> str:
    """Turn ``{uri}local`` back into ``prefix:local``."""
    if name.startswith("{"):
        uri, _, local = name[1:].partition("}")
        prefix = prefixes.get(uri, "")
        return f"{prefix}:{local}" if prefix else local
    return name


def _namespace_extension(uri: str, namespace_extensions: dict[str, str]) -> str:
    """Extension name for a namespace URI (``.../dic/security`` -> ``security``)."""
    if uri in namespace_extensions:
        return namespace_extensions[uri]
    return uri.rstrip("/").rsplit("/", 1)[-1] or "config"


def _element_key(
    name: str,
    prefixes: dict[str, str],
    namespace_extensions: dict[str, str],
) -> str:
    """Key for an element or attribute; ``<prefix:config>`` is the extension itself."""
    qualified = _qualified_name(name, prefixes)
    prefix, colon, local = qualified.rpartition(":")
    if local != "config":
        return local
    if colon:
        return prefix
    if name.startswith("{"):
        # <config> in a default namespace, as in the security bundle snippets
        return _namespace_extension(name[1:].partition("}")[0], namespace_extensions)
    return local


def _collect_xml(
    element: ET.Element,
    prefix: str,
    prefixes: dict[str, str],
    namespace_extensions: dict[str, str],
    out: set[str],
) -> None:
    for attr in element.attrib:
        if attr.startswith(f"{{{XSI_NAMESPACE}}}"):
            continue
        out.add(_join(prefix, _element_key(attr, prefixes, namespace_extensions)))

    for child in element:
        if not isinstance(child.tag, str):
            continue
        path = _join(prefix, _element_key(child.tag, prefixes, namespace_extensions))
        out.add(path)
        _collect_xml(child, path, prefixes, namespace_extensions, out)


def xml_keys(
    content: str,
    wrapper_elements: list[str],
    namespace_extensions: Optional[dict[str, str]] = None,
) -> set[str]:
    if namespace_extensions is None:
        namespace_extensions = {}
    root, prefixes = _parse_xml(content)
    keys: set[str] = set()

    root_name = _qualified_name(root.tag, prefixes)
    if root_name in wrapper_elements or root_name.rpartition(":")[2] in wrapper_elements:
        # Wrapper attributes are schema plumbing, only children carry config
        for child in root:
            if not isinstance(child.tag, str):
                continue
            path = _element_key(child.tag, prefixes, namespace_extensions)
            keys.add(path)
            _collect_xml(child, path, prefixes, namespace_extensions, keys)
    else:
        path = _element_key(root.tag, prefixes, namespace_extensions)
        keys.add(path)
        _collect_xml(root, path, prefixes, namespace_extensions, keys)

    return keys


# =============================================================================
# PHP
# =============================================================================

PHP_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
PHP_LINE_COMMENT = re.compile(r"(?m)^\s*(?://|#).*$")
PHP_TRAILING_COMMENT = re.compile(r"(?m)(?<![:'\"\w])//[^'\"\n]*$")
PHP_TOKEN = re.compile(
    r"""
    (?P<str>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
    | (?P<ext>->\s*(?:extension|loadFromExtension)\s*\()
    | (?P<arrow>=>)
    | (?P<open>\[|\barray\s*\(|\()
    | (?P<close>[\])])
    | (?P<comma>,)
    """,
    re.VERBOSE,
)
PHP_BUILDER_PARAM = re.compile(r"\b([A-Z]\w*?)Config\s+\$(\w+)")
PHP_METHOD = re.compile(r"\s*->\s*(\w+)\s*\(")


def _strip_php_comments(content: str) -> str:
    content = PHP_BLOCK_COMMENT.sub("", content)
    content = PHP_LINE_COMMENT.sub("", content)
    return PHP_TRAILING_COMMENT.sub("", content)


def _snake_case(name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name).lower()


def _php_array_keys(content: str) -> set[str]:
    keys: set[str] = set()
    # Each frame: [path, pending extension name]
    stack: list[list[Any]] = [["", None]]
    last_string: Optional[str] = None
    pending_key: Optional[str] = None
    previous = ""

    for match in PHP_TOKEN.finditer(content):
        kind = match.lastgroup
        token = match.group()
        frame = stack[-1]

        if kind == "str":
            last_string = token[1:-1]
            if previous == "ext":
                frame[1] = last_string
                keys.add(_join(frame[0], last_string))
        elif kind == "arrow":
            if previous == "str" and last_string is not None:
                pending_key = _join(frame[0], last_string)
                keys.add(pending_key)
        elif kind == "ext":
            stack.append([frame[0], None])
            pending_key = None
        elif kind == "open":
            if pending_key is not None:
                path = pending_key
            elif frame[1] is not None:
                path = _join(frame[0], frame[1])
                frame[1] = None
            else:
                path = frame[0]
            stack.append([path, None])
            pending_key = None
        elif kind == "close":
            if len(stack) == 1:
                raise BlockParseError("invalid PHP: unbalanced closing bracket", "php")
            stack.pop()
            pending_key = None
        elif kind == "comma":
            pending_key = None

        previous = kind or ""

    if len(stack) != 1:
        raise BlockParseError("invalid PHP: unclosed bracket", "php")
    return keys


def _skip_call_arguments(content: str, start: int) -> int:
    """Return the index just past the parenthesis matching the one before ``start``."""
    depth = 1
    index = start
    quote = ""
    while index < len(content):
        char = content[index]
        if quote:
            if char == "\\":
                index += 1
            elif char == quote:
                quote = ""
        elif char in "'\"":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index + 1
        index += 1
    raise BlockParseError("invalid PHP: unclosed call", "php")


def _php_builder_keys(content: str, builders: dict[str, str]) -> set[str]:
    """Keys from config-builder chains such as ``$framework->router()->utf8(true)``."""
    keys: set[str] = set()
    for variable, root in builders.items():
        keys.add(root)
        for match in re.finditer(rf"\${variable}\b", content):
            path = root
            position = match.end()
            while True:
                method = PHP_METHOD.match(content, position)
                if not method:
                    break
                path = _join(path, _snake_case(method.group(1)))
                keys.add(path)
                position = _skip_call_arguments(content, method.end())
    return keys


def php_keys(content: str) -> set[str]:
    code = _strip_php_comments(content)
    builders = {
        variable: _snake_case(cls) for cls, variable in PHP_BUILDER_PARAM.findall(code)
    }
    if builders:
        return _php_builder_keys(code, builders)
    return _php_array_keys(code)


# =============================================================================
# INI / .env
# =============================================================================

INI_SECTION = re.compile(r"^\[([^\]]+)\]$")


def ini_keys(content: str) -> set[str]:
    keys: set[str] = set()
    section = ""
    for number, raw in enumerate(content.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith(("#", ";")):
            continue
        header = INI_SECTION.match(line)
        if header:
            section = header.group(1).strip()
            keys.add(section)
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        name, equals, _ = line.partition("=")
        if not equals or not name.strip():
            raise BlockParseError(f"invalid INI: line {number} is not 'key=value'", "ini")
        keys.add(_join(section, name.strip()))
    return keys


# =============================================================================
# DISPATCH
# =============================================================================


def normalize_key(key: str) -> str:
    """Fold spelling differences between dialects (``cache-dir`` vs ``cache_dir``)."""
    return key.lower().replace("-", "_")


def extract_keys(dialect: str, content: str, config: DocCheckConfig) -> Optional[frozenset[str]]:
    """Extract the key set of a snippet.

    Args:
        dialect: Code-block language tag (aliases are resolved)
        content: Snippet text, already dedented
        config: Checker configuration

    Returns:
        Frozen set of dotted key paths, or None when the dialect is not
        comparable (ignored or unknown)

    Raises:
        BlockParseError: If the snippet does not parse in its dialect
    """
    name = config.canonical_dialect(dialect)
    if name in config.ignored_dialects:
        return None
    if name not in KNOWN_DIALECTS:
        logger.debug(f"No key extractor for dialect '{dialect}', block ignored")
        return None

    extractors: dict[str, Callable[[str], set[str]]] = {
        "yaml": yaml_keys,
        "json": json_keys,
        "xml": lambda text: xml_keys(
            text, config.xml_wrapper_elements, config.xml_namespace_extensions
        ),
        "php": php_keys,
        "ini": ini_keys,
    }
    keys = extractors[name](content)

    if config.normalize_keys:
        keys = {normalize_key(k) for k in keys}
    return frozenset(keys)
