"""Configuration loading and validation for the documentation checker."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


class ConfigError(Exception):
    """Error in doccheck configuration."""

    def __init__(
        self,
        message: str,
        file: Optional[str] = None,
        line: Optional[int] = None,
        error_type: str = "config_invalid",
    ):
        super().__init__(message)
        self.message = message
        self.file = file
        self.line = line
        self.error_type = error_type

    def to_json(self) -> dict[str, Any]:
        """Serialize error to JSON format for machine parsing."""
        result: dict[str, Any] = {
            "error": self.error_type,
            "message": self.message,
        }
        if self.file:
            result["file"] = self.file
        if self.line:
            result["line"] = self.line
        return result

    def __str__(self) -> str:
        parts = [self.message]
        if self.file:
            parts.append(f"file: {self.file}")
        if self.line:
            parts.append(f"line: {self.line}")
        return " | ".join(parts)


# Looked up in the corpus root when no --config is given
DEFAULT_CONFIG_NAME = ".doccheck.yaml"

OUTPUT_FORMATS = ("text", "json")

# Dialects whose keys are extracted and compared
KNOWN_DIALECTS = ("yaml", "json", "xml", "php", "ini")


@dataclass
class DocCheckConfig:
    """Complete checker configuration."""

    version: str = "1.0"
    extensions: list[str] = field(default_factory=lambda: [".rst"])
    skip_dirs: list[str] = field(
        default_factory=lambda: ["__pycache__", ".git", "node_modules", ".venv", "_build"]
    )
    strict: bool = False
    output_format: str = "text"
    jobs: int = 1
    encoding: str = "utf-8"
    normalize_keys: bool = True
    ignored_dialects: list[str] = field(
        default_factory=lambda: [
            "php-annotations",
            "php-attributes",
            "php-standalone",
            "php-symfony",
            "twig",
            "html+twig",
            "html",
            "text",
            "terminal",
            "bash",
        ]
    )
    xml_wrapper_elements: list[str] = field(
        default_factory=lambda: ["container", "srv:container", "routes", "constraint-mapping"]
    )
    # Extension name for an unprefixed <config> in a default namespace whose URI
    # does not end in that name
    xml_namespace_extensions: dict[str, str] = field(
        default_factory=lambda: {"http://symfony.com/schema/dic/symfony": "framework"}
    )
    dialect_aliases: dict[str, str] = field(
        default_factory=lambda: {"yml": "yaml", "env": "ini"}
    )

    def canonical_dialect(self, dialect: str) -> str:
        """Map a code-block language tag to its canonical dialect name."""
        tag = dialect.strip().lower()
        return self.dialect_aliases.get(tag, tag)


def get_default_config() -> DocCheckConfig:
    """Return the default checker configuration."""
    return DocCheckConfig()


def _require_list(data: dict[str, Any], key: str, default: list[str], config_file: Optional[str]) -> list[str]:
    value = data.get(key, default)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(
            f"'{key}' must be a list of strings",
            file=config_file,
            error_type="config_invalid",
        )
    return value


def validate_config(config: DocCheckConfig, config_file: Optional[str] = None) -> None:
    """Validate configuration values.

    Raises:
        ConfigError: If configuration is invalid.
    """
    if config.output_format not in OUTPUT_FORMATS:
        raise ConfigError(
            f"Unknown output_format '{config.output_format}'. "
            f"Must be one of: {', '.join(OUTPUT_FORMATS)}",
            file=config_file,
            error_type="config_invalid",
        )

    if not isinstance(config.jobs, int) or isinstance(config.jobs, bool) or config.jobs < 1:
        raise ConfigError(
            f"'jobs' must be a positive integer, got {config.jobs!r}",
            file=config_file,
            error_type="config_invalid",
        )

    if not config.extensions:
        raise ConfigError(
            "'extensions' must name at least one document extension",
            file=config_file,
            error_type="config_invalid",
        )
    for ext in config.extensions:
        if not ext.startswith("."):
            raise ConfigError(
                f"Invalid extension '{ext}': must start with '.'",
                file=config_file,
                error_type="config_invalid",
            )

    for alias, target in config.dialect_aliases.items():
        if target not in KNOWN_DIALECTS:
            raise ConfigError(
                f"Dialect alias '{alias}' points to unknown dialect '{target}'",
                file=config_file,
                error_type="config_invalid",
            )

    try:
        "".encode(config.encoding)
    except LookupError:
        raise ConfigError(
            f"Unknown encoding '{config.encoding}'",
            file=config_file,
            error_type="config_invalid",
        )


def load_config(config_path: Path | str) -> DocCheckConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the .doccheck.yaml file.

    Returns:
        DocCheckConfig with loaded values merged with defaults.

    Raises:
        ConfigError: If the file exists but contains invalid configuration.
    """
    config_path = Path(config_path)
    config_file = str(config_path)

    defaults = get_default_config()

    if not config_path.exists():
        return defaults

    try:
        content = config_path.read_text(encoding="utf-8")
        if not content.strip():
            return defaults

        data = yaml.safe_load(content)
        if not data:
            return defaults
        if not isinstance(data, dict):
            raise ConfigError(
                "Top-level doccheck config must be a mapping",
                file=config_file,
                error_type="config_invalid",
            )

    except yaml.YAMLError as e:
        line = None
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            line = mark.line + 1
        raise ConfigError(
            f"Invalid YAML: {e}",
            file=config_file,
            line=line,
            error_type="config_invalid",
        )

    aliases = data.get("dialect_aliases", defaults.dialect_aliases)
    if not isinstance(aliases, dict):
        raise ConfigError(
            "'dialect_aliases' must be a mapping",
            file=config_file,
            error_type="config_invalid",
        )

    namespaces = data.get("xml_namespace_extensions", defaults.xml_namespace_extensions)
    if not isinstance(namespaces, dict):
        raise ConfigError(
            "'xml_namespace_extensions' must be a mapping",
            file=config_file,
            error_type="config_invalid",
        )

    config = DocCheckConfig(
        version=str(data.get("version", defaults.version)),
        extensions=_require_list(data, "extensions", defaults.extensions, config_file),
        skip_dirs=_require_list(data, "skip_dirs", defaults.skip_dirs, config_file),
        strict=bool(data.get("strict", defaults.strict)),
        output_format=data.get("output_format", defaults.output_format),
        jobs=data.get("jobs", defaults.jobs),
        encoding=data.get("encoding", defaults.encoding),
        normalize_keys=bool(data.get("normalize_keys", defaults.normalize_keys)),
        ignored_dialects=_require_list(data, "ignored_dialects", defaults.ignored_dialects, config_file),
        xml_wrapper_elements=_require_list(
            data, "xml_wrapper_elements", defaults.xml_wrapper_elements, config_file
        ),
        dialect_aliases={str(k).lower(): str(v).lower() for k, v in aliases.items()},
        xml_namespace_extensions={str(k): str(v) for k, v in namespaces.items()},
    )

    validate_config(config, config_file)

    return config
