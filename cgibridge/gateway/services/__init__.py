"""
Services package.

Provides the process lifecycle and the request orchestration built on it.
"""

from .process_invoker import ProcessInvoker
from .processor import CgiGatewayProcessor

__all__ = [
    "ProcessInvoker",
    "CgiGatewayProcessor",
]
