import logging
from pathlib import Path

import pytest

from repotext import create_instances


@pytest.fixture(autouse=True)
def _reset_repotext_logger():
    yield
    logger = logging.getLogger("repotext")
    logger.handlers[:] = []
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def write(root: Path, rel: str, content: str = "") -> Path:
    p = root / rel
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")
    return p


@pytest.fixture
def instances(tmp_path):
    return create_instances(tmp_path)
