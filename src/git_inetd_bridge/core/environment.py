"""
Environment Builder

Projects an InboundRequest and the configuration onto the CGI variables the
backend reads.
"""
import logging
from typing import Dict

from .config import Config
from .request import InboundRequest, RECOGNIZED_HEADERS

logger = logging.getLogger(__name__)

# Variables derived from the request. Inherited copies are removed so that an
# absent header really leaves the variable unset in the child.
REQUEST_VARIABLES = (
    "REQUEST_METHOD",
    "PATH_INFO",
    "QUERY_STRING",
    "SERVER_PROTOCOL",
) + tuple(RECOGNIZED_HEADERS.values())


def build_environment(request: InboundRequest, config: Config) -> Dict[str, str]:
    """
    Build the backend environment.

    Args:
        request: Parsed inbound request
        config: Validated configuration; its inherited environment is the base

    Returns:
        Dict of variable name to value for the child process
    """
    environ = {k: v for k, v in config.environ.items() if k not in REQUEST_VARIABLES}
    environ["GIT_PROJECT_ROOT"] = config.project_root
    environ["REQUEST_METHOD"] = request.method
    environ["PATH_INFO"] = request.path
    environ["QUERY_STRING"] = request.query
    if request.protocol:
        environ["SERVER_PROTOCOL"] = request.protocol

    for name, value in request.headers.items():
        environ[RECOGNIZED_HEADERS[name]] = value

    logger.debug(f"Backend environment: {request.method} {request.path} query={request.query!r}")
    return environ
