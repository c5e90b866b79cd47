"""
CGI/1.1 environment mapping.

Turns an InputContext into the variables handed to the CGI program.
"""

import logging
import os
from typing import Dict

from cgibridge.gateway.config import GatewayConfig
from cgibridge.gateway.core.exceptions import MalformedRequestError
from cgibridge.gateway.models.context import InputContext

logger = logging.getLogger("gateway.env_mapper")

# Never forwarded as HTTP_PROXY (httpoxy).
RESERVED_HEADER = "proxy"
# Also exported under their unprefixed CGI names.
CANONICAL_HEADERS = {
    "content-type": "CONTENT_TYPE",
    "content-length": "CONTENT_LENGTH",
}


def _native(value: str) -> str:
    """Re-decode a latin-1 request string the way the child environment will encode it."""
    return os.fsdecode(value.encode("latin-1"))


def _header_variable(name: str, normalize: bool) -> str:
    if normalize:
        return "HTTP_" + name.upper().replace("-", "_")
    return f"HTTP_{name}"


def build_cgi_environment(context: InputContext, gateway_config: GatewayConfig) -> Dict[str, str]:
    """
    Build the CGI environment for one request.

    Args:
        context: the incoming request
        gateway_config: static server configuration

    Returns:
        Ordered variable mapping. Request derived variables always win over
        header derived ones that map to the same name.

    Raises:
        MalformedRequestError: the URI has no path-and-query form
    """
    if not context.path_and_query:
        raise MalformedRequestError(f"Request URI has no path and query: {context.path!r}")

    host = _native(context.header("host") or "")

    env: Dict[str, str] = dict(gateway_config.CGI_EXTRA_ENV)
    fixed = {
        "SERVER_SOFTWARE": gateway_config.SERVER_SOFTWARE,
        "SERVER_PROTOCOL": "HTTP/1.1",
        "HTTP_HOST": host,
        "GATEWAY_INTERFACE": "CGI/1.1",
        "REQUEST_METHOD": _native(context.method),
        "QUERY_STRING": _native(context.query_string or ""),
        "REQUEST_URI": _native(context.path_and_query),
        "PATH_INFO": _native(context.path),
        "SCRIPT_NAME": ".",
        "SCRIPT_FILENAME": _native(context.path),
        "SERVER_PORT": str(gateway_config.bind_port),
        # No separate client address is tracked; the Host header stands in.
        "REMOTE_ADDR": host,
        "SERVER_NAME": host,
    }
    env.update(fixed)

    # Repeated headers collapse into one variable, in arrival order.
    collected: Dict[str, list] = {}
    for name, value in context.headers:
        if name.lower() == RESERVED_HEADER or not value:
            continue
        key = _header_variable(_native(name), gateway_config.CGI_NORMALIZE_HEADER_NAMES)
        if key in fixed:
            continue
        collected.setdefault(key, []).append((name, _native(value)))

    for key, pairs in collected.items():
        separator = "; " if pairs[0][0].lower() == "cookie" else ", "
        env[key] = separator.join(value for _, value in pairs)

    for header_name, variable in CANONICAL_HEADERS.items():
        value = context.header(header_name)
        if value is not None:
            env[variable] = _native(value)

    logger.debug("Mapped CGI environment", extra={"variables": len(env)})
    return env
