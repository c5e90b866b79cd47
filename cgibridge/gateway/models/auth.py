"""
Authentication related model definitions.
"""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel


class LoginForm(BaseModel):
    """Form body of POST /login."""

    password: str = ""


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of the auth gate for one request."""

    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(allowed=False, reason=reason)
