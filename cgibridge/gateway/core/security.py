"""
Authentication and security module.

Generates and verifies the signed access tokens carried in the login cookie.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

# JWT algorithm.
ALGORITHM = "HS256"
TOKEN_SUBJECT = "cgibridge"


class TokenError(Exception):
    """Raised when a token cannot be issued or does not verify."""


class TokenService:
    """
    Stateless token issuer/verifier.

    The signing key is fixed at construction and only read afterwards, so one
    instance is shared by every request.
    """

    def __init__(self, secret_key: Optional[str] = None, expires_delta: int = 3600):
        """
        Args:
            secret_key: JWT signing secret key (random per process when omitted)
            expires_delta: token validity in seconds
        """
        self._secret_key = secret_key or secrets.token_urlsafe(32)
        self.expires_delta = expires_delta

    def generate_token(self) -> str:
        """
        Generate a JWT token.

        Returns:
            Encoded JWT token

        Raises:
            TokenError: encoding failed
        """
        now = datetime.now(timezone.utc)
        to_encode = {
            "sub": TOKEN_SUBJECT,
            "iat": now,
            "exp": now + timedelta(seconds=self.expires_delta),
        }
        try:
            return jwt.encode(to_encode, self._secret_key, algorithm=ALGORITHM)
        except (jwt.exceptions.PyJWTError, TypeError, ValueError) as e:
            raise TokenError(f"Failed to generate token: {e}") from e

    def verify_token(self, token: str) -> None:
        """
        Verify a JWT token.

        Raises:
            TokenError: the token is expired, tampered with or not a JWT
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError as e:
            raise TokenError("Token expired") from e
        except (jwt.exceptions.PyJWTError, ValueError) as e:
            raise TokenError(f"Invalid token: {e}") from e

        if payload.get("sub") != TOKEN_SUBJECT:
            raise TokenError("Unexpected token subject")
