"""Configuration data model for namespace-to-module conversion.

This module defines the ConversionConfig dataclass that describes the legacy
authoring convention being converted (which root objects act as namespaces,
which identifiers alias the global scope, how namespace objects are marked)
and how output modules are named. Configurations can be built in code or
loaded from JSON files.

Example:
    Loading a JSON configuration:

    >>> config = load_config(Path("modulizer.json"))
    >>> config.validate()

    Converting to dictionary for JSON serialization:

    >>> config_dict = config.to_dict()
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from modulizer.utils.logger import get_logger

logger = get_logger("modulizer.core.config")

# Current configuration schema version
CONFIG_VERSION = "1.0"

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


@dataclass
class ConversionConfig:
    """Conversion configuration.

    Attributes:
        version: Schema version (currently "1.0")
        namespaces: Root objects whose property assignments declare exports
        global_aliases: Identifiers that denote the global scope and are
            stripped from the front of member paths (``window.Polymer.x``)
        namespace_marker: JSDoc tag marking an object literal as a
            namespace whose properties are exported individually
        excludes: Document keys left out of the conversion entirely
        module_extension: Extension of generated module keys
        namespace_alias_prefix: Prefix for synthesized namespace import
            aliases (``import * as $dep``)
        strip_use_strict: Drop ``'use strict'`` directives, modules are
            always strict
    """

    version: str = CONFIG_VERSION
    namespaces: List[str] = field(default_factory=lambda: ["Polymer"])
    global_aliases: List[str] = field(default_factory=lambda: ["window"])
    namespace_marker: str = "@namespace"
    excludes: List[str] = field(default_factory=list)
    module_extension: str = ".js"
    namespace_alias_prefix: str = "$"
    strip_use_strict: bool = True

    def validate(self) -> None:
        """Validate the configuration.

        Raises:
            ValueError: If any validation check fails
        """
        if self.version != CONFIG_VERSION:
            raise ValueError(
                f"Invalid version: {self.version}. Expected '{CONFIG_VERSION}'"
            )

        if not self.namespaces:
            raise ValueError("At least one namespace root is required")

        for name in list(self.namespaces) + list(self.global_aliases):
            if not isinstance(name, str) or not IDENTIFIER_PATTERN.match(name):
                raise ValueError(f"Not a valid identifier: {name!r}")

        overlap = set(self.namespaces) & set(self.global_aliases)
        if overlap:
            raise ValueError(
                f"Names cannot be both namespace roots and global aliases: {sorted(overlap)}"
            )

        if not self.namespace_marker.startswith("@") or len(self.namespace_marker) < 2:
            raise ValueError(
                f"Option 'namespace_marker' must be a JSDoc tag such as '@namespace', "
                f"got {self.namespace_marker!r}"
            )

        if not self.module_extension.startswith("."):
            raise ValueError("Option 'module_extension' must start with '.'")

        if not isinstance(self.namespace_alias_prefix, str) or not IDENTIFIER_PATTERN.match(
            self.namespace_alias_prefix + "a"
        ):
            raise ValueError(
                "Option 'namespace_alias_prefix' must be a valid identifier prefix"
            )

        if not isinstance(self.strip_use_strict, bool):
            raise ValueError("Option 'strip_use_strict' must be a boolean")

        for key in self.excludes:
            if not isinstance(key, str) or not key.strip():
                raise ValueError(f"Invalid exclude entry: {key!r}")

        logger.debug("Configuration validated successfully")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for JSON serialization."""
        return {
            "version": self.version,
            "namespaces": list(self.namespaces),
            "global_aliases": list(self.global_aliases),
            "namespace_marker": self.namespace_marker,
            "excludes": list(self.excludes),
            "module_extension": self.module_extension,
            "namespace_alias_prefix": self.namespace_alias_prefix,
            "strip_use_strict": self.strip_use_strict,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ConversionConfig:
        """Create configuration from dictionary.

        Missing keys fall back to the defaults; unknown keys are rejected so
        a typo in a configuration file does not go unnoticed.

        Raises:
            ValueError: If the dictionary contains unknown keys
        """
        defaults = cls()
        unknown = set(data) - set(defaults.to_dict())
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

        config = cls(
            version=data.get("version", CONFIG_VERSION),
            namespaces=list(data.get("namespaces", defaults.namespaces)),
            global_aliases=list(data.get("global_aliases", defaults.global_aliases)),
            namespace_marker=data.get("namespace_marker", defaults.namespace_marker),
            excludes=list(data.get("excludes", [])),
            module_extension=data.get("module_extension", defaults.module_extension),
            namespace_alias_prefix=data.get(
                "namespace_alias_prefix", defaults.namespace_alias_prefix
            ),
            strip_use_strict=data.get("strip_use_strict", defaults.strip_use_strict),
        )
        logger.debug(f"Created configuration from dictionary ({len(data)} keys)")
        return config


def load_config(path: Path) -> ConversionConfig:
    """Load and validate a JSON configuration file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not valid JSON or fails validation
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in configuration file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a JSON object")

    config = ConversionConfig.from_dict(data)
    config.validate()
    logger.info(f"Loaded configuration from {path}")
    return config
