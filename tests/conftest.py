"""Shared fixtures: a small task sandbox on disk."""

import os
import sys

import pytest
from pathlib import Path

from taskfiles import Files


@pytest.fixture
def sandbox(tmp_path) -> Path:
    """Create a sandbox directory.

    Structure:
        sandbox/
        ├── stdout          "hello world"
        ├── stderr          ""
        ├── notes.txt       "some notes"
        └── logs/
            └── run.log     "line 1\\nline 2\\n"
    """
    root = tmp_path / "sandbox"
    root.mkdir()
    (root / "stdout").write_text("hello world")
    (root / "stderr").write_text("")
    (root / "notes.txt").write_text("some notes")
    (root / "logs").mkdir()
    (root / "logs" / "run.log").write_text("line 1\nline 2\n")
    return root


@pytest.fixture
def outside(tmp_path) -> Path:
    """A directory next to the sandbox that must never be reachable."""
    secret = tmp_path / "secret"
    secret.mkdir()
    (secret / "passwd").write_text("root:x:0:0")
    return secret


@pytest.fixture
def files(sandbox) -> Files:
    """Files service with the sandbox attached as 'sandbox'."""
    service = Files()
    service.attach(str(sandbox), "sandbox")
    return service


@pytest.fixture
def undecodable(sandbox) -> str:
    """A sandbox file whose name is not valid UTF-8.

    Returns the name as ``os.listdir`` reports it (surrogate-escaped).
    """
    if sys.platform == "darwin":
        pytest.skip("filesystem only stores UTF-8 names")
    raw = b"bad\xffname"
    with open(os.path.join(os.fsencode(sandbox), raw), "w") as f:
        f.write("raw bytes")
    return os.fsdecode(raw)
