"""
Data model definitions package.

Aggregates Pydantic models for use in other modules.
"""

from .auth import AccessDecision, LoginForm
from .context import InputContext
from .result import CgiResponse, ProcessOutcome

__all__ = [
    "AccessDecision",
    "LoginForm",
    "InputContext",
    "CgiResponse",
    "ProcessOutcome",
]
