"""
Tests for the HTTP API.

Tests cover:
- browse / read / download / debug endpoints
- Status codes for client errors, unknown paths and containment failures
- JSONP wrapping
"""

import json

import pytest
from fastapi.testclient import TestClient

from taskfiles import Files
from taskfiles.config import TaskFilesConfig
from taskfiles.server import app, init_files, set_files


# ============================================================================
# Test Fixtures
# ============================================================================

@pytest.fixture
def client(files):
    """Create test client serving the sandbox."""
    set_files(files)
    return TestClient(app)


# ============================================================================
# Browse
# ============================================================================

class TestBrowse:
    """Test /files/browse.json."""

    def test_browse(self, client):
        response = client.get("/files/browse.json", params={"path": "sandbox"})

        assert response.status_code == 200
        listing = response.json()
        assert [entry["path"] for entry in listing] == [
            "sandbox/logs",
            "sandbox/notes.txt",
            "sandbox/stderr",
            "sandbox/stdout",
        ]
        stdout = listing[3]
        assert stdout["name"] == "stdout"
        assert stdout["is_directory"] is False
        assert stdout["size"] == 11
        assert listing[0]["is_directory"] is True

    def test_missing_path(self, client):
        response = client.get("/files/browse.json")

        assert response.status_code == 400
        assert "path=value" in response.json()["detail"]

    def test_empty_path(self, client):
        assert client.get("/files/browse.json", params={"path": ""}).status_code == 400

    def test_unknown_path(self, client):
        response = client.get("/files/browse.json", params={"path": "other"})

        assert response.status_code == 404
        assert "sandbox" not in response.text

    def test_escape(self, client, sandbox, outside):
        (sandbox / "escape").symlink_to(outside)

        response = client.get("/files/browse.json", params={"path": "sandbox/escape"})

        assert response.status_code == 500
        assert "inaccessible" in response.json()["detail"]

    def test_nul_byte(self, client):
        response = client.get("/files/browse.json", params={"path": "sandbox/\x00"})

        assert response.status_code == 500
        assert "canonical path" in response.json()["detail"]

    def test_undecodable_name(self, client, undecodable):
        response = client.get("/files/browse.json", params={"path": "sandbox"})

        assert response.status_code == 200
        listing = response.json()
        assert len(listing) == 5
        assert listing[0]["name"] == "bad\ufffdname"
        assert listing[0]["path"] == "sandbox/bad\ufffdname"

    @pytest.mark.parametrize("callback", ["alert(1)//", "cb;x", "1cb", "a b"])
    def test_invalid_jsonp(self, client, callback):
        response = client.get("/files/browse.json", params={"path": "sandbox", "jsonp": callback})

        assert response.status_code == 400
        assert "jsonp" in response.json()["detail"]

    def test_jsonp(self, client):
        response = client.get("/files/browse.json", params={"path": "sandbox/logs", "jsonp": "cb"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/javascript")
        body = response.text
        assert body.startswith("cb(") and body.endswith(");")
        assert json.loads(body[3:-2])[0]["path"] == "sandbox/logs/run.log"


# ============================================================================
# Read
# ============================================================================

class TestRead:
    """Test /files/read.json."""

    def test_read(self, client):
        response = client.get("/files/read.json", params={"path": "sandbox/stdout", "offset": 0, "length": 5})

        assert response.status_code == 200
        assert response.json() == {"offset": 0, "data": "hello", "length": 5}

    def test_read_without_offset(self, client):
        response = client.get("/files/read.json", params={"path": "sandbox/stdout"})

        assert response.json() == {"offset": 11, "data": "", "length": 0}

    def test_read_past_end(self, client):
        response = client.get("/files/read.json", params={"path": "sandbox/stdout", "offset": 100})

        assert response.json() == {"offset": 11, "data": "", "length": 0}

    def test_missing_path(self, client):
        assert client.get("/files/read.json").status_code == 400

    def test_bad_offset(self, client):
        response = client.get("/files/read.json", params={"path": "sandbox/stdout", "offset": "abc"})

        assert response.status_code == 400
        assert "offset" in response.json()["detail"]

    def test_bad_length(self, client):
        response = client.get("/files/read.json", params={"path": "sandbox/stdout", "length": "1.5"})

        assert response.status_code == 400
        assert "length" in response.json()["detail"]

    def test_negative_offset(self, client):
        response = client.get("/files/read.json", params={"path": "sandbox/stdout", "offset": -1})

        assert response.status_code == 400

    @pytest.mark.parametrize("value", ["1_000", " 5 ", "+5", "\uff15", "0x10"])
    def test_offset_must_be_plain_digits(self, client, value):
        response = client.get("/files/read.json", params={"path": "sandbox/stdout", "offset": value})

        assert response.status_code == 400
        assert "not an integer" in response.json()["detail"]

    def test_nul_byte(self, client):
        response = client.get("/files/read.json", params={"path": "sandbox/std\x00out", "offset": 0})

        assert response.status_code == 500
        assert "canonical path" in response.json()["detail"]

    def test_directory(self, client):
        response = client.get("/files/read.json", params={"path": "sandbox/logs", "offset": 0})

        assert response.status_code == 400
        assert "directory" in response.json()["detail"]

    def test_unknown(self, client):
        assert client.get("/files/read.json", params={"path": "nope/stdout"}).status_code == 404

    def test_jsonp(self, client):
        response = client.get(
            "/files/read.json",
            params={"path": "sandbox/stdout", "offset": 6, "jsonp": "pager"},
        )

        assert response.text == 'pager({"offset": 6, "data": "world", "length": 5});'

    def test_dotted_jsonp(self, client):
        response = client.get(
            "/files/read.json",
            params={"path": "sandbox/stdout", "offset": 6, "jsonp": "jQuery.cb_1$"},
        )

        assert response.status_code == 200
        assert response.text.startswith("jQuery.cb_1$(")

    def test_invalid_jsonp(self, client):
        response = client.get(
            "/files/read.json",
            params={"path": "sandbox/stdout", "offset": 6, "jsonp": "alert(document.cookie)//"},
        )

        assert response.status_code == 400
        assert "world" not in response.text


# ============================================================================
# Download
# ============================================================================

class TestDownload:
    """Test /files/download.json."""

    def test_download(self, client):
        response = client.get("/files/download.json", params={"path": "sandbox/stdout"})

        assert response.status_code == 200
        assert response.content == b"hello world"
        assert response.headers["content-type"] == "application/octet-stream"
        assert response.headers["content-disposition"] == 'attachment; filename="stdout"'

    def test_download_with_extension(self, client):
        response = client.get("/files/download.json", params={"path": "sandbox/notes.txt"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")

    def test_missing_path(self, client):
        assert client.get("/files/download.json").status_code == 400

    def test_directory(self, client):
        response = client.get("/files/download.json", params={"path": "sandbox/logs"})

        assert response.status_code == 400

    def test_unknown(self, client):
        assert client.get("/files/download.json", params={"path": "x/stdout"}).status_code == 404


# ============================================================================
# Debug
# ============================================================================

class TestDebug:
    """Test /files/debug.json."""

    def test_debug(self, client, sandbox):
        response = client.get("/files/debug.json")

        assert response.status_code == 200
        assert response.json() == {"sandbox": str(sandbox.resolve())}

    def test_debug_jsonp(self, client):
        response = client.get("/files/debug.json", params={"jsonp": "cb"})

        assert response.text.startswith("cb({")

    def test_invalid_jsonp(self, client, sandbox):
        response = client.get("/files/debug.json", params={"jsonp": "<script>"})

        assert response.status_code == 400
        assert str(sandbox.resolve()) not in response.text


# ============================================================================
# Startup
# ============================================================================

class TestInitFiles:
    """Test attaching configured paths at startup."""

    def test_config_and_extra_attachments(self, sandbox):
        config = TaskFilesConfig(attachments={"sandbox": str(sandbox)})

        files = init_files(config, {"logs": str(sandbox / "logs")})

        assert set(files.debug()) == {"sandbox", "logs"}

    def test_failed_attachment_is_skipped(self, sandbox, tmp_path):
        config = TaskFilesConfig(attachments={
            "sandbox": str(sandbox),
            "missing": str(tmp_path / "missing"),
        })

        files = init_files(config)

        assert set(files.debug()) == {"sandbox"}

    def test_uses_read_cap(self):
        config = TaskFilesConfig()
        config.read.max_pages = 4

        files = init_files(config)

        assert isinstance(files, Files)
        assert files.reader.max_pages == 4


# ============================================================================
# Scenario
# ============================================================================

def test_sandbox_scenario(tmp_path):
    """Attach a task directory, browse it, page through stdout and download it."""
    task = tmp_path / "task" / "7"
    task.mkdir(parents=True)
    (task / "stdout").write_text("hello world")
    (task / "stderr").write_text("")

    files = Files()
    files.attach(str(task), "sandbox")
    set_files(files)
    client = TestClient(app)

    listing = client.get("/files/browse.json", params={"path": "sandbox"}).json()
    assert [entry["path"] for entry in listing] == ["sandbox/stderr", "sandbox/stdout"]

    read = client.get("/files/read.json", params={"path": "sandbox/stdout", "offset": 0, "length": 5}).json()
    assert read["offset"] == 0
    assert read["data"] == "hello"

    download = client.get("/files/download.json", params={"path": "sandbox/stdout"})
    assert download.headers["content-type"] == "application/octet-stream"
    assert "stdout" in download.headers["content-disposition"]
