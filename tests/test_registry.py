"""
Tests for the attachment registry.

Tests cover:
- Attaching canonicalizes the host path
- Trailing separators are stripped from names
- Last writer wins on repeated names
- Detach is idempotent
- Failures for missing or unreadable paths
"""

import os

import pytest

from taskfiles.errors import FileAccessError
from taskfiles.registry import PathRegistry, clean_name


class TestAttach:
    """Test attaching host paths."""

    def test_attach_stores_canonical_path(self, sandbox, tmp_path):
        """Attaching through a symlink stores the real path."""
        link = tmp_path / "link"
        link.symlink_to(sandbox)

        registry = PathRegistry()
        attachment = registry.attach(str(link), "sandbox")

        assert attachment.name == "sandbox"
        assert attachment.real_path == str(sandbox.resolve())
        assert registry.get("sandbox") == str(sandbox.resolve())

    def test_attach_strips_trailing_separator(self, sandbox):
        registry = PathRegistry()
        registry.attach(str(sandbox), "sandbox/")

        assert "sandbox" in registry
        assert "sandbox/" not in registry

    def test_attach_relative_path(self, sandbox, monkeypatch):
        monkeypatch.chdir(sandbox.parent)
        registry = PathRegistry()
        registry.attach("sandbox", "box")

        assert registry.get("box") == str(sandbox.resolve())

    def test_attach_file(self, sandbox):
        registry = PathRegistry()
        registry.attach(str(sandbox / "stdout"), "out")

        assert registry.get("out") == str((sandbox / "stdout").resolve())

    def test_last_writer_wins(self, sandbox, outside):
        registry = PathRegistry()
        registry.attach(str(sandbox), "task")
        registry.attach(str(outside), "task")

        assert registry.get("task") == str(outside.resolve())
        assert len(registry) == 1

    def test_attach_missing_path_fails(self, tmp_path):
        registry = PathRegistry()

        with pytest.raises(FileAccessError, match="Failed to get realpath"):
            registry.attach(str(tmp_path / "missing"), "missing")

        assert "missing" not in registry

    def test_attach_path_with_nul_byte_fails(self, sandbox):
        registry = PathRegistry()

        with pytest.raises(FileAccessError, match="Failed to get realpath"):
            registry.attach(f"{sandbox}\x00", "sandbox")

        assert len(registry) == 0

    @pytest.mark.skipif(os.geteuid() == 0, reason="root can read anything")
    def test_attach_unreadable_path_fails(self, tmp_path):
        private = tmp_path / "private"
        private.mkdir()
        private.chmod(0o000)
        try:
            registry = PathRegistry()
            with pytest.raises(FileAccessError, match="Access denied"):
                registry.attach(str(private), "private")
        finally:
            private.chmod(0o755)

    def test_attach_empty_name_fails(self, sandbox):
        registry = PathRegistry()

        with pytest.raises(ValueError):
            registry.attach(str(sandbox), "/")


class TestDetach:
    """Test detaching names."""

    def test_detach_removes_mapping(self, sandbox):
        registry = PathRegistry()
        registry.attach(str(sandbox), "sandbox")
        registry.detach("sandbox")

        assert "sandbox" not in registry
        assert registry.get("sandbox") is None

    def test_detach_unknown_name_is_noop(self, sandbox):
        registry = PathRegistry()
        registry.attach(str(sandbox), "sandbox")

        registry.detach("nope")
        registry.detach("nope")

        assert registry.debug_snapshot() == {"sandbox": str(sandbox.resolve())}


class TestDebugSnapshot:
    """Test the diagnostic view."""

    def test_snapshot_is_a_copy(self, sandbox):
        registry = PathRegistry()
        registry.attach(str(sandbox), "sandbox")

        snapshot = registry.debug_snapshot()
        snapshot["other"] = "/tmp"

        assert "other" not in registry


def test_clean_name():
    assert clean_name("a/b/") == "a/b"
    assert clean_name("a/b") == "a/b"
    assert clean_name("a//") == "a/"
