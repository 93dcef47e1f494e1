"""
Request Reader

Consumes the request line and header block of one HTTP request from the
inbound stream and nothing more; whatever follows the blank line is the
request body and is left in the stream for the backend.
"""
import os
import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, Optional, Tuple

from .errors import ClientError, MethodNotAllowed

logger = logging.getLogger(__name__)

MAX_LINE = 65536

ALLOWED_METHODS = ("GET", "POST")

# Lower-cased header name -> CGI variable
RECOGNIZED_HEADERS = {
    "accept": "HTTP_ACCEPT",
    "accept-encoding": "HTTP_ACCEPT_ENCODING",
    "content-encoding": "HTTP_CONTENT_ENCODING",
    "content-length": "CONTENT_LENGTH",
    "content-type": "CONTENT_TYPE",
    "user-agent": "HTTP_USER_AGENT",
}


@dataclass
class InboundRequest:
    """Request line plus the recognized headers (lower-cased names)."""
    method: str
    target: str
    protocol: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return self.target.split("?", 1)[0]

    @property
    def query(self) -> str:
        _, _, query = self.target.partition("?")
        return query

    @property
    def accepts_gzip(self) -> bool:
        """True when Accept-Encoding mentions gzip (literal, case-sensitive)."""
        return "gzip" in self.headers.get("accept-encoding", "")


def read_line(stream: BinaryIO) -> Tuple[str, bool]:
    """
    Read one LF-terminated line.

    Returns:
        Tuple of (line without CRLF/LF, terminated). terminated is False when
        the stream ended before a newline.

    Raises:
        ClientError: If the line exceeds MAX_LINE bytes.
    """
    raw = stream.readline(MAX_LINE + 1)
    if len(raw) > MAX_LINE:
        raise ClientError(detail=f"line longer than {MAX_LINE} bytes")
    terminated = raw.endswith(b"\n")
    if terminated:
        raw = raw[:-1]
    if raw.endswith(b"\r"):
        raw = raw[:-1]
    return os.fsdecode(raw), terminated


def parse_request_line(line: str) -> Tuple[str, str, Optional[str]]:
    """Split a request line into method, target and protocol."""
    parts = line.split(None, 2)
    method = parts[0] if parts else ""
    target = parts[1] if len(parts) > 1 else ""
    protocol = parts[2].strip() if len(parts) > 2 else None
    return method, target, protocol or None


def parse_header_line(line: str) -> Optional[Tuple[str, str]]:
    """
    Match a header line against the recognized names.

    Returns:
        (lower-cased name, value) or None if the line is not a recognized
        header.
    """
    name, sep, value = line.partition(":")
    if not sep:
        return None
    name = name.lower()
    if name not in RECOGNIZED_HEADERS:
        return None
    if value.startswith(" "):
        value = value[1:]
    return name, value


def read_request(stream: BinaryIO) -> InboundRequest:
    """
    Read and validate the request line and header block.

    Args:
        stream: Inbound binary stream positioned at the request line

    Returns:
        InboundRequest

    Raises:
        MethodNotAllowed: Method other than GET or POST
        ClientError: Header block not terminated, or target not absolute
    """
    line, _ = read_line(stream)
    method, target, protocol = parse_request_line(line)
    logger.debug(f"Request line: method={method!r} target={target!r} protocol={protocol!r}")

    if method not in ALLOWED_METHODS:
        raise MethodNotAllowed(detail=f"method {method!r}")

    headers: Dict[str, str] = {}
    while True:
        line, terminated = read_line(stream)
        if not terminated:
            raise ClientError(detail="request headers not terminated by a blank line")
        if not line:
            break
        parsed = parse_header_line(line)
        if parsed:
            name, value = parsed
            headers[name] = value

    if not target.startswith("/"):
        raise ClientError(detail=f"target {target!r} is not an absolute path")

    return InboundRequest(method=method, target=target, protocol=protocol, headers=headers)
