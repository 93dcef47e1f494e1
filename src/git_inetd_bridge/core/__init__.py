# Core pipeline modules: request reader, environment builder, backend invoker, response rewriter
from .config import Config, setup_logging
from .errors import (
    BridgeError,
    ClientError,
    MethodNotAllowed,
    ServerError,
    ConfigurationError,
    BackendUnavailableError,
    BackendProtocolError,
)
from .request import InboundRequest, read_request
from .environment import build_environment
from .backend import Backend, BackendProcess, SubprocessBackend
from .response import ResponseHead, ResponseHeadParser, rewrite_response, write_error_response

__all__ = [
    # Config
    "Config",
    "setup_logging",
    # Errors
    "BridgeError",
    "ClientError",
    "MethodNotAllowed",
    "ServerError",
    "ConfigurationError",
    "BackendUnavailableError",
    "BackendProtocolError",
    # Request
    "InboundRequest",
    "read_request",
    # Environment
    "build_environment",
    # Backend
    "Backend",
    "BackendProcess",
    "SubprocessBackend",
    # Response
    "ResponseHead",
    "ResponseHeadParser",
    "rewrite_response",
    "write_error_response",
]
