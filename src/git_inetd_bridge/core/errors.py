"""
Error taxonomy for the bridge.

Every failure ends the instance with exactly one HTTP response. The class of
the exception decides the framing: ClientError is a 4xx the caller caused,
ServerError is a 5xx caused by configuration or the backend and is also
written to the diagnostic log.
"""
from typing import Optional


class BridgeError(Exception):
    """Base class for errors that terminate the request with an HTTP response."""

    code = 500
    reason = "Internal Server Error"

    def __init__(self, code: Optional[int] = None, reason: Optional[str] = None, detail: Optional[str] = None):
        self.code = code if code is not None else type(self).code
        self.reason = reason if reason is not None else type(self).reason
        self.detail = detail
        super().__init__(f"{self.code} {self.reason}" + (f" ({detail})" if detail else ""))


class ClientError(BridgeError):
    """The inbound request was invalid."""

    code = 400
    reason = "Bad Request"


class MethodNotAllowed(ClientError):
    code = 405
    reason = "Method Not Allowed"


class ServerError(BridgeError):
    """A fault in the bridge, its configuration or the backend."""


class ConfigurationError(ServerError):
    """Required paths missing or invalid."""


class BackendUnavailableError(ServerError):
    """The backend could not be started."""


class BackendProtocolError(ServerError):
    """The backend output does not follow the CGI response convention."""
