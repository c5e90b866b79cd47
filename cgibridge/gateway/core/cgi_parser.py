"""
CGI response parsing.

Splits the captured stdout of a CGI program into status, headers and body.
"""

import logging
import re

from cgibridge.gateway.core.exceptions import HeaderFormatError, InvalidStatusError
from cgibridge.gateway.models.result import CgiResponse

logger = logging.getLogger("gateway.cgi_parser")

# Diagnostic lines the CGI program echoes into its header block.
DEBUG_LINE_PREFIX = "getEnvs "
STATUS_HEADER = "Status"
DEFAULT_STATUS = 200

# RFC 7230 token / field-value (HTAB, SP, VCHAR, obs-text).
_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_FIELD_VALUE_RE = re.compile(r"^[\t\x20-\x7e\x80-\xff]*$")


def _parse_status(value: str) -> int:
    code = value[:3]
    if len(code) != 3 or not (code.isascii() and code.isdigit()):
        raise InvalidStatusError(value)
    status_code = int(code)
    if not 100 <= status_code <= 999:
        raise InvalidStatusError(value)
    return status_code


def parse_cgi_output(data: bytes) -> CgiResponse:
    """
    Parse CGI output into a CgiResponse.

    The header block ends at the first empty line; everything after it is the
    body, exposed as a view over `data` rather than a copy.

    Raises:
        HeaderFormatError: a header line has no colon, no value or illegal characters
        InvalidStatusError: the Status header does not start with a valid code
    """
    response = CgiResponse()
    view = memoryview(data)
    pos = 0
    end = len(data)

    while pos < end:
        newline = data.find(b"\n", pos)
        if newline == -1:
            raw_line, pos = data[pos:], end
        else:
            raw_line, pos = data[pos:newline], newline + 1

        line = raw_line.decode("latin-1")
        if line.endswith("\r"):
            line = line[:-1]
        if not line:
            response.body = view[pos:]
            break
        if line.startswith(DEBUG_LINE_PREFIX):
            continue

        name, sep, rest = line.partition(":")
        if not sep:
            raise HeaderFormatError(line, "header line has no colon")
        if not rest:
            raise HeaderFormatError(line, "header line has no value")
        # Exactly one separator character follows the colon.
        value = rest[1:]

        if name == STATUS_HEADER:
            response.status_code = _parse_status(value)
            continue

        if not _TOKEN_RE.match(name):
            raise HeaderFormatError(line, "invalid header name")
        if not _FIELD_VALUE_RE.match(value):
            raise HeaderFormatError(line, "invalid header value")
        response.headers.append((name, value))

    logger.debug(
        "Parsed CGI response",
        extra={
            "status": response.status_code,
            "header_count": len(response.headers),
            "body_bytes": len(response.body),
        },
    )
    return response
