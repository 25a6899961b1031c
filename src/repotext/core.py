"""
Core logic for repotext package.

Filesystem access, ignore handling, file discovery, the directory-tree
renderer and the per-file content serializer live here. Everything works
on POSIX-style paths relative to a single scan root.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import posixpath
import stat
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import pathspec
from pathspec.patterns.gitwildmatch import GitWildMatchPattern, GitWildMatchPatternError

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


# Exceptions
class RepoTextError(Exception): ...
class InvalidRootError(RepoTextError): ...
class ConfigFileError(RepoTextError): ...
class OutputError(RepoTextError): ...
class WatchError(RepoTextError): ...
class SelectorError(RepoTextError): ...


RULE = "=" * 80
GITIGNORE = ".gitignore"

# Artifact writes go through a sibling temp file named "<output>.<random>.tmp"
TEMP_SUFFIX = ".tmp"


_GLOB_SPECIAL = "\\[]*?"


def literal_pattern(rel: str) -> str:
    """A gitignore pattern matching exactly ``rel`` under the root, nothing else."""
    escaped = "".join(f"\\{c}" if c in _GLOB_SPECIAL else c for c in rel)
    stripped = escaped.rstrip(" ")
    escaped = stripped + "\\ " * (len(escaped) - len(stripped))
    # The leading slash anchors the pattern and keeps "#" / "!" literal.
    return "/" + escaped


def artifact_patterns(output_rel: str) -> List[str]:
    """Patterns covering the artifact and its in-flight temp files."""
    literal = literal_pattern(output_rel)
    return [literal, f"{literal}.*{TEMP_SUFFIX}"]


# Filesystem access
class FileHandler:
    """Text I/O rooted at ``root``; relative paths resolve against it."""

    def __init__(self, root: PathLike = ".") -> None:
        self.root = Path(root)

    def resolve(self, path: PathLike) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.root / p

    def read_text(self, path: PathLike) -> str:
        # newline="" keeps CRLF and lone CR exactly as stored.
        with open(self.resolve(path), "r", encoding="utf-8", newline="") as fh:
            return fh.read()

    def write_text(self, path: PathLike, content: str) -> None:
        """Replace ``path`` with ``content``; readers never see a partial file."""
        target = self.resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                prefix=f"{target.name}.", suffix=TEMP_SUFFIX, dir=target.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as fh:
                    fh.write(content)
                os.chmod(tmp, 0o644)
                os.replace(tmp, target)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise OutputError(f"Could not write output file '{target}': {e}") from e

    def exists(self, path: PathLike) -> bool:
        return self.resolve(path).exists()

    def is_file(self, path: PathLike) -> bool:
        # Directories and special files are False; stat errors propagate.
        return stat.S_ISREG(os.stat(self.resolve(path)).st_mode)


# Ignore-pattern utilities
def compile_patterns(lines: Iterable[str]) -> List[GitWildMatchPattern]:
    """Compile gitignore lines, dropping any pattern pathspec rejects."""
    patterns: List[GitWildMatchPattern] = []
    for line in lines:
        line = line.rstrip("\r\n")
        try:
            patterns.append(GitWildMatchPattern(line))
        except (GitWildMatchPatternError, ValueError, TypeError) as e:
            logger.debug("Ignoring invalid pattern %r: %s", line, e)
    return patterns


def build_spec(lines: Iterable[str]) -> "pathspec.PathSpec":
    return pathspec.GitIgnoreSpec(compile_patterns(lines))


class PathFilter:
    """Gitignore-semantics exclusion test for relative paths."""

    def __init__(self, spec: "pathspec.PathSpec") -> None:
        self._spec = spec

    def is_excluded(self, path: str) -> bool:
        return self._spec.match_file(normalize_path(path))

    def filter(self, paths: Iterable[str]) -> List[str]:
        return [p for p in paths if not self.is_excluded(p)]


def create_filter(
    gitignore_source: Optional[str], extra_exclude_patterns: Sequence[str]
) -> PathFilter:
    """
    Combine ``.gitignore`` text with explicit excludes.

    Later patterns win, so an explicit ``!pattern`` can re-include what the
    ignore file excluded. Unparseable patterns never match.
    """
    lines: List[str] = []
    if gitignore_source:
        lines.extend(gitignore_source.splitlines())
    lines.extend(extra_exclude_patterns)
    return PathFilter(build_spec(lines))


def normalize_path(path: str) -> str:
    norm = posixpath.normpath(str(path).replace(os.sep, "/")).lstrip("/")
    return "" if norm == "." else norm


# Include-pattern matching
class GlobSpec:
    """
    Glob matching for include patterns.

    Each ``/``-separated segment is matched with ``fnmatch``, so ``*`` and
    ``?`` never cross a slash and ``*.md`` only matches at the root. A ``**``
    segment spans zero or more directories. Dotfiles are matched like any
    other name.
    """

    def __init__(self, patterns: Iterable[str]) -> None:
        self.patterns = [
            normalize_path(p).split("/") for p in patterns if normalize_path(p)
        ]

    def match_file(self, path: str) -> bool:
        parts = normalize_path(path).split("/")
        return any(_match_segments(segs, parts) for segs in self.patterns)


def _match_segments(segs: Sequence[str], parts: Sequence[str]) -> bool:
    if not segs:
        return not parts
    head, rest = segs[0], segs[1:]
    if head == "**":
        return any(_match_segments(rest, parts[i:]) for i in range(len(parts) + 1))
    return bool(parts) and fnmatch.fnmatchcase(parts[0], head) and _match_segments(rest, parts[1:])


# File-scanning helpers
class RepositoryScanner:
    def __init__(self, file_handler: FileHandler) -> None:
        self.file_handler = file_handler

    def get_files(self, include: Sequence[str], exclude: Sequence[str]) -> List[str]:
        """
        Expand the ``include`` globs under the root, honouring ``exclude``.

        Hidden files are eligible, directories are never returned, and the
        result is sorted. Excluded directories are not descended into.
        """
        root = self.file_handler.root
        if not root.exists():
            raise InvalidRootError(f"Root directory '{root}' does not exist")
        if not root.is_dir():
            raise InvalidRootError(f"Root path '{root}' is not a directory")

        include_spec = GlobSpec(include)
        exclude_spec = build_spec(exclude)

        def _raise(err: OSError) -> None:
            raise InvalidRootError(f"Could not scan directory '{err.filename}': {err}")

        found: List[str] = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
            rel_dir = normalize_path(os.path.relpath(dirpath, root))
            dirnames[:] = sorted(
                d for d in dirnames
                if not exclude_spec.match_file(_join(rel_dir, d) + "/")
            )
            for name in filenames:
                rel = _join(rel_dir, name)
                if not include_spec.match_file(rel) or exclude_spec.match_file(rel):
                    continue
                if not os.path.isfile(os.path.join(dirpath, name)):
                    continue
                found.append(rel)
        return sorted(found)

    def create_ignore(self, gitignore_path: str, exclude: Sequence[str]) -> PathFilter:
        source = None
        if self.file_handler.exists(gitignore_path):
            source = self.file_handler.read_text(gitignore_path)
        return create_filter(source, exclude)


def _join(rel_dir: str, name: str) -> str:
    return f"{rel_dir}/{name}" if rel_dir else name


# project-tree renderer
_BRANCH = "├── "
_LAST_BRANCH = "└── "
_VERTICAL = "│   "
_SPACE = "    "


def generate_tree(paths: Iterable[str]) -> str:
    """
    Return an ASCII tree (à la the Unix ``tree`` utility).

    • Paths are sorted by their full string first, so any permutation of
      the same set renders byte-identical output.
    • Each directory is printed once; files below it share its branch.
    • Siblings keep the order in which the sorted paths first reach them.
    """
    tree: Dict[str, dict] = {}
    for path in sorted({normalize_path(p) for p in paths} - {""}):
        node = tree
        for part in path.split("/"):
            node = node.setdefault(part, {})

    if not tree:
        return ""

    lines: List[str] = ["Directory Tree:", "."]

    def _walk(node: Dict[str, dict], prefix: str) -> None:
        names = list(node)
        for idx, name in enumerate(names):
            last = idx == len(names) - 1
            lines.append(f"{prefix}{_LAST_BRANCH if last else _BRANCH}{name}")
            _walk(node[name], prefix + (_SPACE if last else _VERTICAL))

    _walk(tree, "")
    return "\n".join(lines) + "\n"


class TreeGenerator:
    def generate_tree(self, paths: Iterable[str]) -> str:
        return generate_tree(paths)


# Content serializer
class ContentGenerator:
    def __init__(self, file_handler: FileHandler) -> None:
        self.file_handler = file_handler

    def generate_content(self, paths: Iterable[str]) -> str:
        """Concatenate one ``FILE:`` block per readable regular file, in order."""
        blocks: List[str] = []
        for path in paths:
            try:
                if not self.file_handler.is_file(path):
                    continue
                content = self.file_handler.read_text(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not read file %s: %s", path, e)
                continue
            blocks.append(f"\n{RULE}\nFILE: {path}\n{RULE}\n\n{content}\n")
        return "".join(blocks)
