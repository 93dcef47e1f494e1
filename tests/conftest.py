"""
Pytest configuration for git-inetd-bridge tests.

Puts the src directory on the Python path and provides a fake backend that
stands in for git-http-backend, so the pipeline can be tested without
starting processes.
"""
import io
import os
import sys
import stat
import textwrap
from pathlib import Path
from typing import Dict, Optional

import pytest

# Add src directory to Python path
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from git_inetd_bridge.core import Backend, BackendProcess, Config
from git_inetd_bridge.main import handle_connection


class FakeProcess(BackendProcess):
    """Backend process replaying canned output."""

    def __init__(self, output: bytes, status: int = 0):
        self.stdout = io.BufferedReader(io.BytesIO(output))
        self.status = status
        self.waited = False

    def wait(self) -> int:
        self.waited = True
        return self.status


class FakeBackend(Backend):
    """Records what it was invoked with and replays canned output."""

    def __init__(self, output: bytes = b"", status: int = 0):
        self.output = output
        self.status = status
        self.environ: Optional[Dict[str, str]] = None
        self.body: Optional[bytes] = None
        self.process: Optional[FakeProcess] = None

    def invoke(self, environ, stdin):
        self.environ = environ
        self.body = stdin.read()
        self.process = FakeProcess(self.output, self.status)
        return self.process


def write_script(path: Path, source: str) -> Path:
    """Write an executable Python script running under the current interpreter."""
    path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(source))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def split_response(raw: bytes):
    """Split a raw response into (status line, header lines, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.split(b"\r\n")
    return lines[0], lines[1:], body


@pytest.fixture
def project_root(tmp_path):
    root = tmp_path / "repos"
    root.mkdir()
    return root


@pytest.fixture
def backend_bin(tmp_path):
    return write_script(tmp_path / "backend", """
        import sys
        sys.stdout.write("Content-Type: text/plain\\r\\n\\r\\nok")
    """)


@pytest.fixture
def config(backend_bin, project_root):
    """Valid configuration with a small inherited environment."""
    return Config(
        backend_bin=str(backend_bin),
        project_root=str(project_root),
        environ={"PATH": os.environ.get("PATH", "/usr/bin:/bin")},
    )


@pytest.fixture
def serve(config):
    """Run one request through the pipeline; returns the raw response bytes."""
    def _serve(request: bytes, backend: Optional[Backend] = None, cfg: Optional[Config] = None) -> bytes:
        out = io.BytesIO()
        handle_connection(cfg or config, io.BytesIO(request), out, backend=backend)
        return out.getvalue()
    return _serve
