"""
Custom exception classes.

Represent errors raised while translating a request into a CGI run and back.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("gateway.exceptions")


class CgiGatewayError(Exception):
    """Base exception class for the CGI pipeline."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Internal Server Error"


class MalformedRequestError(CgiGatewayError):
    """Raised when the request URI has no path-and-query form."""

    def __init__(self, detail: str = "Request URI has no path and query"):
        super().__init__(detail)


class SpawnError(CgiGatewayError):
    """Raised when the CGI executable cannot be launched."""

    def __init__(self, executable: str, cause: Exception):
        self.executable = executable
        self.cause = cause
        super().__init__(f"Failed to spawn {executable}: {cause}")


class IoError(CgiGatewayError):
    """Raised when writing the body or capturing the output fails."""

    def __init__(self, executable: str, cause: Exception):
        self.executable = executable
        self.cause = cause
        super().__init__(f"I/O with {executable} failed: {cause}")


class CgiResponseError(CgiGatewayError):
    """Raised when the CGI program emits a malformed response."""

    status_code = status.HTTP_502_BAD_GATEWAY
    public_message = "Bad Gateway"


class HeaderFormatError(CgiResponseError):
    """A CGI header line is missing its colon or holds illegal characters."""

    def __init__(self, line: str, reason: str = "malformed header line"):
        self.line = line
        super().__init__(f"{reason}: {line!r}")


class InvalidStatusError(CgiResponseError):
    """The Status header does not start with a three digit code."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Status returned by CGI program is invalid: {value!r}")


class CgiTimeoutError(CgiGatewayError):
    """Raised when the CGI process outlives the configured timeout."""

    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    public_message = "Gateway Timeout"

    def __init__(self, executable: str, timeout: float):
        self.executable = executable
        self.timeout = timeout
        super().__init__(f"{executable} did not finish within {timeout}s")


class ClientDisconnectedError(CgiGatewayError):
    """The client went away before the CGI program finished; the run was cancelled."""

    # nginx's "client closed request"; nobody is left to read it.
    status_code = 499
    public_message = "Client Closed Request"

    def __init__(self):
        super().__init__("Client disconnected before the CGI response was ready")


class LoginRequiredError(Exception):
    """Raised by the auth gate; always answered with a redirect, never an error body."""

    def __init__(self, location: str = "/login", reason: str = "denied"):
        self.location = location
        self.reason = reason
        super().__init__(reason)


# ===========================================
# Exception Handlers
# ===========================================


async def cgi_gateway_exception_handler(request: Request, exc: CgiGatewayError):
    """
    Handler for CGI pipeline failures. Details go to the log, not to the client.
    """
    logger.warning(
        f"CGI request failed: {exc}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "status": exc.status_code,
        },
    )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.public_message})


async def login_required_handler(request: Request, exc: LoginRequiredError):
    """
    Handler for auth gate denials.
    """
    logger.debug(
        "Access denied, redirecting to login",
        extra={"path": request.url.path, "reason": exc.reason},
    )
    return RedirectResponse(exc.location, status_code=status.HTTP_303_SEE_OTHER)


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unhandled exceptions.
    """
    logger.error(
        f"Global exception handler caught: {exc}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal Server Error"},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for HTTPException.
    """
    return JSONResponse(
        status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers
    )

