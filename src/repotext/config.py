"""
Configuration loading for repotext.

A run's configuration is the built-in defaults overlaid with an optional
JSON file (``--config`` or ``repo-to-text.json`` in the scan root).
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from .core import ConfigFileError, FileHandler

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "repo-to-text.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "include": ["**/*"],
    "exclude": [
        "node_modules/**",
        ".git/**",
        "package-lock.json",
        "yarn.lock",
        "pnpm-lock.yaml",
        "bun.lockb",
    ],
    "output": {"path": "repo-contents.txt"},
    "watch": {"debounceMs": 300},
    "tree": {"enabled": False},
}

_GROUPS = ("output", "watch", "tree")


@dataclass(frozen=True)
class ResolvedConfig:
    include_patterns: Tuple[str, ...]
    exclude_patterns: Tuple[str, ...]
    output_path: str
    debounce_ms: int
    tree_enabled: bool

    def with_excludes(self, *patterns: str) -> "ResolvedConfig":
        merged = list(self.exclude_patterns)
        for p in patterns:
            if p not in merged:
                merged.append(p)
        return replace(self, exclude_patterns=tuple(merged))


@dataclass(frozen=True)
class Options:
    """Per-invocation settings, mostly straight from the command line."""

    config: Optional[str] = None
    output: Optional[str] = None
    include_tree: bool = False
    strict_config: bool = False


def merge_config(user: Dict[str, Any]) -> Dict[str, Any]:
    """
    Overlay ``user`` on the defaults.

    ``include`` replaces, ``exclude`` is appended after the defaults, and
    the ``output``/``watch``/``tree`` groups merge key by key.
    """
    merged = copy.deepcopy(DEFAULT_CONFIG)
    if "include" in user:
        merged["include"] = list(user["include"])
    if "exclude" in user:
        merged["exclude"] = _union(merged["exclude"], user["exclude"])
    for group in _GROUPS:
        if group in user:
            merged[group].update(user[group])
    return merged


def _union(first: List[str], second: List[str]) -> List[str]:
    out: List[str] = []
    for item in [*first, *second]:
        if item not in out:
            out.append(item)
    return out


def _validate(data: Any, source: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ConfigFileError(f"{source}: top level must be a JSON object")
    for key in ("include", "exclude"):
        if key in data and not (
            isinstance(data[key], list) and all(isinstance(p, str) for p in data[key])
        ):
            raise ConfigFileError(f"{source}: '{key}' must be a list of strings")
    for group in _GROUPS:
        if group in data and not isinstance(data[group], dict):
            raise ConfigFileError(f"{source}: '{group}' must be an object")

    path = data.get("output", {}).get("path", "x")
    if not isinstance(path, str) or not path:
        raise ConfigFileError(f"{source}: 'output.path' must be a non-empty string")
    debounce = data.get("watch", {}).get("debounceMs", 1)
    if isinstance(debounce, bool) or not isinstance(debounce, int) or debounce <= 0:
        raise ConfigFileError(f"{source}: 'watch.debounceMs' must be a positive integer")
    if not isinstance(data.get("tree", {}).get("enabled", False), bool):
        raise ConfigFileError(f"{source}: 'tree.enabled' must be a boolean")
    return data


def _resolve(merged: Dict[str, Any]) -> ResolvedConfig:
    return ResolvedConfig(
        include_patterns=tuple(merged["include"]),
        exclude_patterns=tuple(merged["exclude"]),
        output_path=merged["output"]["path"],
        debounce_ms=merged["watch"]["debounceMs"],
        tree_enabled=merged["tree"]["enabled"],
    )


DEFAULTS = _resolve(DEFAULT_CONFIG)


class ConfigLoader:
    def __init__(self, file_handler: FileHandler) -> None:
        self.file_handler = file_handler

    def find_config(self, config_path: Optional[str] = None) -> Optional[str]:
        if config_path and self.file_handler.exists(config_path):
            return config_path
        if config_path:
            logger.warning("Config file %s not found, trying %s", config_path, DEFAULT_CONFIG_FILE)
        if self.file_handler.exists(DEFAULT_CONFIG_FILE):
            return DEFAULT_CONFIG_FILE
        return None

    def read_config(self, path: str) -> Dict[str, Any]:
        try:
            raw = self.file_handler.read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigFileError(f"Could not read config file '{path}': {e}") from e
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigFileError(f"Failed to load config file '{path}': {e}") from e
        return _validate(data, path)

    def load_config(self, config_path: Optional[str] = None, strict: bool = False) -> ResolvedConfig:
        """
        Resolve the configuration for one run.

        A broken config file falls back to the defaults with a warning,
        unless ``strict`` is set, in which case ``ConfigFileError`` escapes.
        """
        path = self.find_config(config_path)
        if path is None:
            return DEFAULTS
        try:
            user = self.read_config(path)
        except ConfigFileError as e:
            if strict:
                raise
            logger.warning("%s; using default configuration", e)
            return DEFAULTS
        logger.debug("Loaded config from %s", path)
        return _resolve(merge_config(user))
