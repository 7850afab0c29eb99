"""Exceptions raised by cannedhttp."""


class CannedHTTPError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(CannedHTTPError, ValueError):
    """Raised when a route table or server configuration is invalid."""


class BadRequest(CannedHTTPError, ValueError):
    """
    Raised by the wire parser for requests it refuses to serve.

    `status` is the HTTP status sent back before the connection is closed.
    """

    def __init__(self, message: str, *, status: int = 400):
        super().__init__(message)
        self.status = status
