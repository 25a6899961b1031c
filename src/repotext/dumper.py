"""
The aggregation pipeline: config -> candidates -> filter -> tree + content -> artifact.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional, Sequence

from .config import ConfigLoader, Options, ResolvedConfig
from .core import (
    GITIGNORE,
    ContentGenerator,
    FileHandler,
    RepositoryScanner,
    TreeGenerator,
    literal_pattern,
    normalize_path,
)

logger = logging.getLogger(__name__)


class TextDumper:
    def __init__(
        self,
        config_loader: ConfigLoader,
        repository_scanner: RepositoryScanner,
        content_generator: ContentGenerator,
        file_handler: FileHandler,
        tree_generator: TreeGenerator,
    ) -> None:
        self.config_loader = config_loader
        self.repository_scanner = repository_scanner
        self.content_generator = content_generator
        self.file_handler = file_handler
        self.tree_generator = tree_generator

    def load_config(self, options: Options) -> ResolvedConfig:
        return self.config_loader.load_config(options.config, strict=options.strict_config)

    def output_path(self, options: Options, config: ResolvedConfig) -> str:
        return options.output or config.output_path

    def relative_output(self, output_path: str) -> str:
        """The artifact's path relative to the scan root, POSIX style."""
        target = self.file_handler.resolve(output_path)
        return normalize_path(os.path.relpath(target, self.file_handler.root))

    def collect_files(
        self, config: ResolvedConfig, files: Optional[Sequence[str]] = None
    ) -> List[str]:
        """
        The sorted FilteredPathSet for ``config``.

        Explicit ``files`` are used as given; otherwise the include patterns
        are expanded. Either way every candidate is re-checked against the
        ``.gitignore`` plus exclude rules.
        """
        ignore = self.repository_scanner.create_ignore(GITIGNORE, config.exclude_patterns)
        if files is None:
            files = self.repository_scanner.get_files(
                config.include_patterns, config.exclude_patterns
            )
        return sorted(p for p in files if not ignore.is_excluded(p))

    def generate_text_dump(
        self,
        options: Options,
        files: Optional[Sequence[str]] = None,
        config: Optional[ResolvedConfig] = None,
    ) -> str:
        """
        Run the pipeline once and return the output path written.

        ``config`` skips loading when the caller has just resolved it.
        """
        if config is None:
            config = self.load_config(options)
        output_path = self.output_path(options, config)
        config = config.with_excludes(literal_pattern(self.relative_output(output_path)))

        filtered = self.collect_files(config, files)
        logger.debug("%d files selected", len(filtered))

        content = ""
        if options.include_tree or config.tree_enabled:
            content += self.tree_generator.generate_tree(filtered)
            content += "\n"
        content += self.content_generator.generate_content(filtered)

        self.file_handler.write_text(output_path, content)
        return output_path
