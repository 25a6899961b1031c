"""
Interactive selection through fzf (subprocess is faked).
"""
import subprocess

import pytest

from repotext import selector as selector_mod
from repotext.config import Options
from repotext.core import SelectorError
from conftest import write


@pytest.fixture
def selector(tmp_path, instances, monkeypatch):
    write(tmp_path, "a.txt", "A")
    write(tmp_path, "b.txt", "B")
    monkeypatch.setattr(selector_mod.shutil, "which", lambda name: f"/usr/bin/{name}")
    return instances["selector"]


def fake_fzf(monkeypatch, returncode, output=""):
    seen = {}

    def run(cmd, **kwargs):
        seen["cmd"] = cmd
        seen["input"] = kwargs.get("input")
        return subprocess.CompletedProcess(cmd, returncode, stdout=output)

    monkeypatch.setattr(selector_mod.subprocess, "run", run)
    return seen


def test_selected_files_are_dumped(tmp_path, selector, monkeypatch):
    seen = fake_fzf(monkeypatch, 0, "b.txt\n")
    out = selector.select_files(Options())
    assert out == "repo-contents.txt"
    assert seen["cmd"][:2] == ["fzf", "--multi"]
    assert seen["input"] == "a.txt\nb.txt"
    artifact = (tmp_path / out).read_text(encoding="utf-8")
    assert "FILE: b.txt" in artifact
    assert "FILE: a.txt" not in artifact


def test_aborted_selection_writes_nothing(tmp_path, selector, monkeypatch):
    fake_fzf(monkeypatch, 130)
    assert selector.select_files(Options()) is None
    assert not (tmp_path / "repo-contents.txt").exists()


def test_fzf_failure(tmp_path, selector, monkeypatch):
    fake_fzf(monkeypatch, 2)
    with pytest.raises(SelectorError, match="exited with code 2"):
        selector.select_files(Options())


def test_missing_fzf(tmp_path, selector, monkeypatch):
    monkeypatch.setattr(selector_mod.shutil, "which", lambda name: None)
    with pytest.raises(SelectorError, match="not installed"):
        selector.select_files(Options())
