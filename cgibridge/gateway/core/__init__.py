"""
Core logic package.

Provides the protocol translation (environment mapping, response parsing)
and the access control shared by the gateway routes.
"""

from .auth_gate import AuthGate, extract_access_token
from .cgi_parser import parse_cgi_output
from .env_mapper import build_cgi_environment
from .security import TokenError, TokenService

__all__ = [
    "AuthGate",
    "extract_access_token",
    "parse_cgi_output",
    "build_cgi_environment",
    "TokenError",
    "TokenService",
]
