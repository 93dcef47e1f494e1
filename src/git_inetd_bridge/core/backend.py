"""
Backend Invoker

Runs the CGI backend as a child process. The Backend interface is the seam
between the bridge and the external executable; tests substitute an in-memory
implementation.
"""
import io
import contextlib
import shutil
import logging
import threading
import subprocess
from abc import ABC, abstractmethod
from typing import BinaryIO, Dict, Optional

from .errors import BackendUnavailableError

logger = logging.getLogger(__name__)


class BackendProcess(ABC):
    """A running backend: its output stream and its exit status."""

    stdout: BinaryIO

    @abstractmethod
    def wait(self) -> int:
        """Wait for the backend to exit and return its exit status."""
        pass


class Backend(ABC):
    """Abstract external process collaborator."""

    @abstractmethod
    def invoke(self, environ: Dict[str, str], stdin: BinaryIO) -> BackendProcess:
        """
        Start the backend.

        Args:
            environ: Complete environment for the backend
            stdin: Inbound stream positioned at the request body

        Returns:
            BackendProcess whose stdout carries the CGI response

        Raises:
            BackendUnavailableError: If the backend cannot be started
        """
        pass


def _fileno(stream: BinaryIO) -> Optional[int]:
    """Return the stream's descriptor, or None for in-memory streams."""
    try:
        return stream.fileno()
    except (AttributeError, io.UnsupportedOperation):
        return None


def _feed(source: BinaryIO, sink: BinaryIO) -> None:
    """Copy the rest of the inbound stream into the backend's stdin."""
    try:
        shutil.copyfileobj(source, sink)
    except BrokenPipeError:
        logger.debug("Backend closed its input before reading the whole body")
    finally:
        # Flushing into a closed pipe fails again
        with contextlib.suppress(OSError):
            sink.close()


class SubprocessProcess(BackendProcess):
    def __init__(self, popen: subprocess.Popen, feeder: Optional[threading.Thread] = None):
        self.popen = popen
        self.stdout = popen.stdout
        self._feeder = feeder

    def wait(self) -> int:
        status = self.popen.wait()
        if self._feeder is not None:
            self._feeder.join()
        return status


class SubprocessBackend(Backend):
    """Runs an executable with subprocess.Popen."""

    def __init__(self, executable: str):
        self.executable = executable

    def invoke(self, environ: Dict[str, str], stdin: BinaryIO) -> SubprocessProcess:
        fd = _fileno(stdin)
        try:
            popen = subprocess.Popen(
                [self.executable],
                env=environ,
                stdin=fd if fd is not None else subprocess.PIPE,
                stdout=subprocess.PIPE,
            )
        except OSError as e:
            raise BackendUnavailableError(detail=f"cannot start {self.executable}: {e}")

        logger.debug(f"Started backend {self.executable} (pid {popen.pid})")

        feeder = None
        if fd is None:
            feeder = threading.Thread(target=_feed, args=(stdin, popen.stdin))
            feeder.daemon = True
            feeder.start()
        return SubprocessProcess(popen, feeder)
