"""
repotext - dump repository file contents into one annotated text file.

This package scans a directory tree, filters files through include/exclude
patterns and .gitignore rules, optionally renders a directory tree, and
writes every selected file's contents into a single artifact for use with
large language models. Watch mode keeps the artifact up to date.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Optional, Union

__version__ = "0.1.0"

from .config import DEFAULT_CONFIG, ConfigLoader, Options, ResolvedConfig
from .core import (
    ConfigFileError,
    ContentGenerator,
    FileHandler,
    InvalidRootError,
    OutputError,
    PathFilter,
    RepoTextError,
    RepositoryScanner,
    SelectorError,
    TreeGenerator,
    WatchError,
    create_filter,
    generate_tree,
)
from .dumper import TextDumper
from .selector import InteractiveSelector
from .watcher import ChangeEvent, Debouncer, Watcher, WatchdogEventSource

__all__ = [
    "DEFAULT_CONFIG",
    "ChangeEvent",
    "ConfigFileError",
    "ConfigLoader",
    "ContentGenerator",
    "Debouncer",
    "FileHandler",
    "InteractiveSelector",
    "InvalidRootError",
    "Options",
    "OutputError",
    "PathFilter",
    "RepoTextError",
    "RepositoryScanner",
    "ResolvedConfig",
    "SelectorError",
    "TextDumper",
    "TreeGenerator",
    "WatchError",
    "Watcher",
    "WatchdogEventSource",
    "create_filter",
    "create_instances",
    "generate_text_dump",
    "generate_tree",
    "watch_repository",
]


def create_instances(
    root: Union[str, Path] = ".",
    file_handler: Optional[FileHandler] = None,
    event_source_factory: Optional[Callable[..., WatchdogEventSource]] = None,
    clock: Optional[Callable[[], float]] = None,
) -> Dict[str, object]:
    """Wire every component for ``root``; pass fakes to replace the defaults."""
    file_handler = file_handler or FileHandler(root)
    config_loader = ConfigLoader(file_handler)
    repository_scanner = RepositoryScanner(file_handler)
    content_generator = ContentGenerator(file_handler)
    tree_generator = TreeGenerator()
    text_dumper = TextDumper(
        config_loader, repository_scanner, content_generator, file_handler, tree_generator
    )
    watcher_kwargs: Dict[str, object] = {}
    if event_source_factory is not None:
        watcher_kwargs["event_source_factory"] = event_source_factory
    if clock is not None:
        watcher_kwargs["clock"] = clock
    return {
        "file_handler": file_handler,
        "config_loader": config_loader,
        "repository_scanner": repository_scanner,
        "content_generator": content_generator,
        "tree_generator": tree_generator,
        "text_dumper": text_dumper,
        "watcher": Watcher(text_dumper, **watcher_kwargs),
        "selector": InteractiveSelector(text_dumper),
    }


def generate_text_dump(options: Options, root: Union[str, Path] = ".") -> str:
    return create_instances(root)["text_dumper"].generate_text_dump(options)


def watch_repository(options: Options, root: Union[str, Path] = ".") -> Watcher:
    """Block in watch mode; returns the stopped watcher once ``stop()`` is called."""
    watcher = create_instances(root)["watcher"]
    watcher.watch(options)
    return watcher
