"""
Cookie-token access control for the CGI routes.
"""

import hmac
import logging
from typing import Iterable, Optional

from cgibridge.gateway.core.security import TokenError, TokenService
from cgibridge.gateway.models.auth import AccessDecision

logger = logging.getLogger("gateway.auth")

ACCESS_COOKIE = "access_token"


def extract_access_token(cookie_headers: Iterable[str]) -> Optional[str]:
    """
    Find the access token in one or more Cookie header values.

    Segments are split on ';' and trimmed. Only a segment holding exactly one
    '=' and named exactly `access_token` counts; anything else is skipped.
    """
    for header in cookie_headers:
        for segment in header.split(";"):
            segment = segment.strip()
            if not segment or segment.count("=") != 1:
                continue
            name, _, value = segment.partition("=")
            if name == ACCESS_COOKIE:
                return value
    return None


class AuthGate:
    """
    Decides whether a request may reach the CGI program.

    Unconfigured (no password) allows everything. Configured requires a valid
    access token cookie. The state is fixed at construction.
    """

    def __init__(
        self,
        token_service: TokenService,
        password: Optional[str] = None,
        constant_time_compare: bool = False,
    ):
        self.token_service = token_service
        self._password = password or None
        self.constant_time_compare = constant_time_compare

    @property
    def configured(self) -> bool:
        return self._password is not None

    def decide(self, cookie_headers: Iterable[str]) -> AccessDecision:
        if not self.configured:
            return AccessDecision.allow()

        token = extract_access_token(cookie_headers)
        if token is None:
            return AccessDecision.deny("missing access token")

        try:
            self.token_service.verify_token(token)
        except TokenError as e:
            return AccessDecision.deny(str(e))
        return AccessDecision.allow()

    def _password_matches(self, password: str) -> bool:
        if self.constant_time_compare:
            return hmac.compare_digest(password.encode("utf-8"), self._password.encode("utf-8"))
        return password == self._password

    def authenticate(self, password: str) -> Optional[str]:
        """
        Check a login password and issue a token.

        Returns:
            A fresh token, or None when the password is wrong or no token
            could be issued. Callers cannot tell the two apart.
        """
        if self.configured and not self._password_matches(password):
            logger.warning("Login failed: password mismatch")
            return None

        try:
            return self.token_service.generate_token()
        except TokenError as e:
            logger.warning(f"Login failed: {e}")
            return None

    def session_cookie(self, token: str) -> str:
        """Set-Cookie value for a freshly issued token."""
        return (
            f"{ACCESS_COOKIE}={token}; Max-Age={self.token_service.expires_delta}; Path=/; HttpOnly"
        )
