"""
Backend Invoker tests against small real executables.
"""
import io
import os

import pytest

from git_inetd_bridge.core import BackendUnavailableError, SubprocessBackend
from conftest import write_script

ECHO_BACKEND = """
    import os
    import sys
    body = sys.stdin.buffer.read()
    out = sys.stdout.buffer
    out.write(b"Content-Type: text/plain\\r\\n\\r\\n")
    out.write(os.environ["REQUEST_METHOD"].encode() + b" ")
    out.write(os.environ.get("HTTP_ACCEPT", "<unset>").encode() + b" ")
    out.write(body)
"""


@pytest.fixture
def echo_backend(tmp_path):
    return write_script(tmp_path / "echo-backend", ECHO_BACKEND)


def run(backend_path, stdin, environ=None):
    environ = dict(environ or {"REQUEST_METHOD": "POST"})
    environ.setdefault("PATH", os.environ.get("PATH", "/usr/bin:/bin"))
    process = SubprocessBackend(str(backend_path)).invoke(environ, stdin)
    output = process.stdout.read()
    return output, process.wait()


class TestSubprocessBackend:
    """Test launching the backend process"""

    def test_in_memory_body_fed_through_pipe(self, echo_backend):
        output, status = run(echo_backend, io.BytesIO(b"request body"))
        assert status == 0
        assert output == b"Content-Type: text/plain\r\n\r\nPOST <unset> request body"

    def test_descriptor_handed_to_child(self, echo_backend, tmp_path):
        """Bytes after the header block stay in the descriptor for the child"""
        inbound = tmp_path / "inbound"
        inbound.write_bytes(b"POST / HTTP/1.0\r\n\r\nfrom the socket")
        with open(inbound, "rb", buffering=0) as stdin:
            stdin.readline()
            stdin.readline()
            output, status = run(echo_backend, stdin)
        assert status == 0
        assert output.endswith(b"POST <unset> from the socket")

    def test_environment_applied(self, echo_backend):
        output, _ = run(echo_backend, io.BytesIO(b""), {"REQUEST_METHOD": "GET", "HTTP_ACCEPT": "*/*"})
        assert output.endswith(b"GET */* ")

    def test_exit_status_reported(self, tmp_path):
        backend = write_script(tmp_path / "failing", """
            import sys
            sys.exit(7)
        """)
        output, status = run(backend, io.BytesIO(b""))
        assert output == b""
        assert status == 7

    def test_backend_ignoring_body(self, tmp_path):
        backend = write_script(tmp_path / "ignores-body", """
            import sys
            sys.stdout.write("\\r\\nok")
        """)
        output, status = run(backend, io.BytesIO(b"x" * (1 << 20)))
        assert output == b"\r\nok"
        assert status == 0

    def test_stdin_pipe_closed_when_body_ignored(self, tmp_path):
        backend = write_script(tmp_path / "ignores-body", """
            import sys
            sys.stdout.write("\\r\\nok")
        """)
        process = SubprocessBackend(str(backend)).invoke(
            {"PATH": os.environ.get("PATH", "/usr/bin:/bin")}, io.BytesIO(b"x" * (1 << 20))
        )
        process.stdout.read()
        process.wait()
        assert process.popen.stdin.closed is True

    def test_missing_executable(self, tmp_path):
        with pytest.raises(BackendUnavailableError) as exc:
            SubprocessBackend(str(tmp_path / "nope")).invoke({}, io.BytesIO(b""))
        assert exc.value.code == 500
        assert "cannot start" in exc.value.detail
