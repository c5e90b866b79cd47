"""
Dependency Injection for Gateway API.

Manage request handler dependencies using FastAPI Depends.
"""

from typing import Annotated

from fastapi import Depends, Request

from ..config import GatewayConfig
from ..core.auth_gate import AuthGate
from ..core.exceptions import LoginRequiredError
from ..services.processor import CgiGatewayProcessor


# ==========================================
# 1. Service Accessors
# ==========================================


def get_gateway_config(request: Request) -> GatewayConfig:
    return request.app.state.gateway_config


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


def get_processor(request: Request) -> CgiGatewayProcessor:
    return request.app.state.processor


# Service Dependency Type Aliases
GatewayConfigDep = Annotated[GatewayConfig, Depends(get_gateway_config)]
AuthGateDep = Annotated[AuthGate, Depends(get_auth_gate)]
ProcessorDep = Annotated[CgiGatewayProcessor, Depends(get_processor)]


# ==========================================
# 2. Logic Dependencies (Verification)
# ==========================================


async def require_access(
    request: Request, auth_gate: AuthGateDep, gateway_config: GatewayConfigDep
) -> None:
    """
    Let the request through the auth gate.

    Raises:
        LoginRequiredError: answered with a redirect to the login page
    """
    decision = auth_gate.decide(request.headers.getlist("cookie"))
    if not decision.allowed:
        raise LoginRequiredError(location=gateway_config.LOGIN_PATH, reason=decision.reason)
