"""
Response Rewriter

Turns the backend's CGI-style output (optional Status line, header lines,
blank line, body) into an HTTP/1.0 response. The head is parsed line by line
with ResponseHeadParser; the body is streamed through unchanged or gzip
compressed, never held in memory whole.

Status handling:
- no Status line: 200 OK
- 2xx: success, headers forwarded, body possibly compressed
- registered 4xx/5xx: forwarded with the backend's own body, or answered
  with the bridge's plain-text error response when the body is empty
- anything else: generic 500
"""
import re
import zlib
import logging
from enum import Enum
from http import HTTPStatus
from dataclasses import dataclass, field
from typing import BinaryIO, Iterable, List

from .backend import BackendProcess
from .errors import BackendProtocolError, ClientError, ServerError

logger = logging.getLogger(__name__)

MAX_LINE = 65536
CHUNK_SIZE = 65536

# Fastest level: keep the CPU cost on the server minimal
GZIP_LEVEL = 1

ERROR_HEADERS = (
    "Connection: close",
    "Expires: Fri, 01 Jan 1980 00:00:00 GMT",
    "Pragma: no-cache",
    "Cache-Control: no-cache, max-age=0, must-revalidate",
    "Content-Type: text/plain",
)

REGISTERED_STATUSES = frozenset(status.value for status in HTTPStatus)

_DIGITS = re.compile(rb"[0-9]*")
_STATUS_CODE = re.compile(r"[245][0-9][0-9]")


class ParserState(Enum):
    HEADERS = "headers"
    BODY = "body"


@dataclass
class ResponseHead:
    """Parsed head of a CGI response."""
    status_declared: bool = False
    code: str = ""
    reason: str = ""
    header_lines: List[bytes] = field(default_factory=list)
    has_encoding: bool = False


class ResponseHeadParser:
    """
    State machine over the lines of a CGI response head.

    feed() takes one raw line at a time; the blank line moves the parser from
    HEADERS to BODY. finish() returns the head or raises if the blank line was
    never seen.
    """

    def __init__(self):
        self.state = ParserState.HEADERS
        self.head = ResponseHead()

    def feed(self, line: bytes) -> ParserState:
        if self.state is not ParserState.HEADERS:
            raise BackendProtocolError(detail="header line after the end of the response head")

        if line.endswith(b"\n"):
            line = line[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]

        if not line.strip():
            self.state = ParserState.BODY
        elif line.startswith(b"Status:"):
            self._parse_status(line[len(b"Status:"):])
        else:
            if line.lower().startswith(b"content-encoding:"):
                self.head.has_encoding = True
            self.head.header_lines.append(line)
        return self.state

    def _parse_status(self, value: bytes) -> None:
        if value.startswith(b" "):
            value = value[1:]
        code = _DIGITS.match(value).group()
        value = value[len(code):]
        if value.startswith(b" "):
            value = value[1:]
        self.head.status_declared = True
        self.head.code = code.decode("ascii")
        self.head.reason = value.decode("latin-1")

    def finish(self) -> ResponseHead:
        if self.state is not ParserState.BODY:
            raise BackendProtocolError(detail="backend output ended before the blank line ending its headers")
        return self.head


def read_head(stream: BinaryIO) -> ResponseHead:
    """
    Read the response head from the backend's output.

    Raises:
        BackendProtocolError: Head not terminated by a blank line, or a line
            longer than MAX_LINE
    """
    parser = ResponseHeadParser()
    while parser.state is ParserState.HEADERS:
        line = stream.readline(MAX_LINE + 1)
        if len(line) > MAX_LINE:
            raise BackendProtocolError(detail=f"backend header line longer than {MAX_LINE} bytes")
        if not line.endswith(b"\n"):
            break
        parser.feed(line)
    return parser.finish()


def classify(head: ResponseHead) -> int:
    """
    Return the status code to send for a parsed head.

    Raises:
        BackendProtocolError: Status outside 2xx and registered 4xx/5xx,
            answered with a generic 500
    """
    if not head.status_declared:
        return 200
    if not _STATUS_CODE.fullmatch(head.code):
        raise BackendProtocolError(detail=f"unsupported backend status {head.code!r}")
    code = int(head.code)
    if code >= 400 and code not in REGISTERED_STATUSES:
        raise BackendProtocolError(detail=f"unsupported backend status {head.code!r}")
    return code


def _encode(text: str) -> bytes:
    return text.encode("latin-1")


def write_head(out: BinaryIO, code: int, reason: str, lines: Iterable[bytes]) -> None:
    out.write(_encode(f"HTTP/1.0 {code} {reason}\r\n"))
    for line in lines:
        out.write(line + b"\r\n")
    out.write(b"\r\n")


def write_error_response(out: BinaryIO, code: int, reason: str) -> None:
    """Write the bridge's own plain-text error response."""
    write_head(out, code, reason, (_encode(h) for h in ERROR_HEADERS))
    out.write(_encode(reason + "\n"))
    out.flush()


def _read_chunk(stream: BinaryIO) -> bytes:
    read1 = getattr(stream, "read1", None)
    if read1 is not None:
        return read1(CHUNK_SIZE)
    return stream.read(CHUNK_SIZE)


def copy_body(source: BinaryIO, out: BinaryIO, compress: bool = False, first: bytes = b"") -> None:
    """
    Stream the rest of source to out.

    Args:
        source: Backend output positioned at the body
        out: Outbound stream
        compress: Gzip the body at GZIP_LEVEL
        first: Body bytes already read from source
    """
    compressor = None
    if compress:
        # wbits 16+ produces a gzip container with no file name and mtime 0
        compressor = zlib.compressobj(GZIP_LEVEL, zlib.DEFLATED, 16 + zlib.MAX_WBITS)

    chunk = first or _read_chunk(source)
    while chunk:
        if compressor is not None:
            chunk = compressor.compress(chunk)
        if chunk:
            out.write(chunk)
            out.flush()
        chunk = _read_chunk(source)

    if compressor is not None:
        out.write(compressor.flush())
    out.flush()


def rewrite_response(process: BackendProcess, out: BinaryIO, accepts_gzip: bool = False) -> None:
    """
    Re-frame the backend's CGI response as HTTP/1.0 on out.

    Args:
        process: Running backend
        out: Outbound stream
        accepts_gzip: The request's Accept-Encoding negotiated gzip

    Raises:
        BackendProtocolError: Malformed head or unsupported status; nothing
            has been written to out
        ClientError: Backend declared a 4xx with an empty body
        ServerError: Backend declared a 5xx with an empty body
    """
    source = process.stdout
    try:
        head = read_head(source)
    except BackendProtocolError as e:
        e.detail = f"{e.detail}; backend exit status {process.wait()}"
        raise

    code = classify(head)
    if code >= 400:
        _forward_error(head, code, source, out)
    else:
        reason = head.reason or "OK"
        compress = accepts_gzip and not head.has_encoding
        lines = head.header_lines
        if compress:
            lines = [line for line in lines if not line.lower().startswith(b"content-length:")]
            lines.append(b"Content-Encoding: gzip")
        logger.debug(f"Backend responded {code} {reason} (gzip={compress})")
        write_head(out, code, reason, [b"Connection: close"] + lines)
        copy_body(source, out, compress=compress)

    status = process.wait()
    if status != 0:
        logger.warning(f"Backend exited with status {status} after its response was sent")


def _forward_error(head: ResponseHead, code: int, source: BinaryIO, out: BinaryIO) -> None:
    reason = head.reason or f"{code} error"
    first = _read_chunk(source)
    if not first:
        if code >= 500:
            raise ServerError(code, reason, detail="declared by backend")
        raise ClientError(code, reason, detail="declared by backend")

    write_head(out, code, reason, [b"Connection: close"] + head.header_lines)
    copy_body(source, out, first=first)
    if code >= 500:
        logger.error(f"{code} {reason}")
    else:
        logger.info(f"Backend declared {code} {reason}")
