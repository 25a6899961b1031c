"""
Gitignore-style exclusion filter.
"""
import pytest
from pathspec.patterns.gitwildmatch import GitWildMatchPattern, GitWildMatchPatternError

from repotext import core
from repotext.core import FileHandler, RepositoryScanner, create_filter
from conftest import write


def test_extra_patterns_match_at_any_depth():
    f = create_filter(None, ["*.log"])
    assert f.is_excluded("a.log")
    assert f.is_excluded("deep/dir/a.log")
    assert not f.is_excluded("a.txt")


def test_gitignore_and_extra_patterns_combine():
    f = create_filter("dist/\n# comment\n\n*.pyc\n", ["secret.env"])
    assert f.is_excluded("dist/bundle.js")
    assert f.is_excluded("pkg/mod.pyc")
    assert f.is_excluded("secret.env")
    assert not f.is_excluded("src/main.py")


def test_later_negation_reincludes():
    f = create_filter("*.log\n", ["!keep.log"])
    assert f.is_excluded("other.log")
    assert not f.is_excluded("keep.log")


def test_directory_pattern_is_recursive():
    f = create_filter(None, ["build/"])
    assert f.is_excluded("build/out/deep/file.o")
    assert not f.is_excluded("builder.py")


def test_double_star_crosses_segments():
    f = create_filter(None, ["docs/**/*.md"])
    assert f.is_excluded("docs/a/b/c.md")
    assert f.is_excluded("docs/readme.md")
    assert not f.is_excluded("src/readme.md")


def test_paths_are_normalized():
    f = create_filter(None, ["node_modules/**"])
    assert f.is_excluded("./node_modules/pkg/index.js")


def test_invalid_pattern_fails_open(monkeypatch):
    def picky(pattern):
        if pattern == "bad[":
            raise GitWildMatchPatternError("invalid")
        return GitWildMatchPattern(pattern)

    monkeypatch.setattr(core, "GitWildMatchPattern", picky)
    f = create_filter(None, ["bad[", "*.tmp"])
    assert f.is_excluded("x.tmp")
    assert not f.is_excluded("bad[")
    assert not f.is_excluded("x.txt")


def test_filter_keeps_order():
    f = create_filter(None, ["*.md"])
    assert f.filter(["z.py", "a.md", "b.py"]) == ["z.py", "b.py"]


def test_create_ignore_reads_gitignore(tmp_path):
    write(tmp_path, ".gitignore", "*.secret\n")
    scanner = RepositoryScanner(FileHandler(tmp_path))
    f = scanner.create_ignore(".gitignore", ["out.txt"])
    assert f.is_excluded("keys.secret")
    assert f.is_excluded("out.txt")


def test_create_ignore_without_gitignore(tmp_path):
    scanner = RepositoryScanner(FileHandler(tmp_path))
    f = scanner.create_ignore(".gitignore", [])
    assert not f.is_excluded("anything.txt")


def test_literal_pattern_escapes_glob_characters():
    assert core.literal_pattern("out[1].txt") == "/out\\[1\\].txt"
    assert core.literal_pattern("#dump.txt") == "/#dump.txt"


@pytest.mark.parametrize("name", ["out[1].txt", "a*b.txt", "q?.txt", "#dump.txt", "!dump.txt"])
def test_literal_pattern_matches_only_that_path(name):
    f = create_filter(None, [core.literal_pattern(name)])
    assert f.is_excluded(name)
    assert not f.is_excluded(f"sub/{name}")
    assert not f.is_excluded("other.txt")


def test_artifact_patterns_cover_temp_files():
    f = create_filter(None, core.artifact_patterns("out/dump.txt"))
    assert f.is_excluded("out/dump.txt")
    assert f.is_excluded("out/dump.txt.k3j9x.tmp")
    assert not f.is_excluded("dump.txt")
