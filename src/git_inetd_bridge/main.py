"""
One-shot request pipeline.

handle_connection() serves exactly one request: validate configuration, read
the request, build the backend environment, run the backend and re-frame its
response. Every path ends in exactly one HTTP response on the outbound
stream.
"""
import logging
from typing import BinaryIO, Optional

from .core import (
    Backend,
    ClientError,
    Config,
    ServerError,
    SubprocessBackend,
    build_environment,
    read_request,
    rewrite_response,
    write_error_response,
)

logger = logging.getLogger(__name__)


def handle_connection(
    config: Config,
    instream: BinaryIO,
    outstream: BinaryIO,
    backend: Optional[Backend] = None,
) -> None:
    """
    Serve one request from instream to outstream.

    Args:
        config: Bridge configuration (validated here, before reading)
        instream: Inbound connection; the request body stays in it for the backend
        outstream: Outbound connection
        backend: Backend to run; defaults to the configured executable
    """
    try:
        config.validate()
        request = read_request(instream)
        environ = build_environment(request, config)
        if backend is None:
            backend = SubprocessBackend(config.backend_bin)
        process = backend.invoke(environ, instream)
        rewrite_response(process, outstream, accepts_gzip=request.accepts_gzip)
    except ClientError as e:
        write_error_response(outstream, e.code, e.reason)
        logger.info(f"Client error: {e}")
    except ServerError as e:
        # stderr may be the client socket: the response goes out first
        write_error_response(outstream, e.code, e.reason)
        logger.error(f"{e.code} {e.reason}" + (f": {e.detail}" if e.detail else ""))
