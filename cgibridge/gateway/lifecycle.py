"""
Where: cgibridge/gateway/lifecycle.py
What: Gateway startup/shutdown orchestration for shared resources.
Why: Keep main.py focused on app assembly while preserving lifecycle behavior.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from .config import GatewayConfig
from .core.auth_gate import AuthGate
from .core.security import TokenService
from .services.process_invoker import ProcessInvoker
from .services.processor import CgiGatewayProcessor

logger = logging.getLogger("gateway.main")


@asynccontextmanager
async def manage_lifespan(app: FastAPI, gateway_config: GatewayConfig) -> AsyncIterator[None]:
    """Manage application lifecycle."""
    token_service = TokenService(
        secret_key=gateway_config.TOKEN_SECRET_KEY,
        expires_delta=gateway_config.TOKEN_EXPIRES_SECONDS,
    )
    if gateway_config.auth_enabled and not gateway_config.TOKEN_SECRET_KEY:
        logger.info("TOKEN_SECRET_KEY not set; access tokens will not survive a restart.")

    auth_gate = AuthGate(
        token_service,
        password=gateway_config.AUTH_PASSWORD,
        constant_time_compare=gateway_config.AUTH_CONSTANT_TIME_COMPARE,
    )
    invoker = ProcessInvoker.from_config(gateway_config)

    app.state.gateway_config = gateway_config
    app.state.auth_gate = auth_gate
    app.state.processor = CgiGatewayProcessor(invoker, gateway_config)

    logger.info(
        "Gateway initialized",
        extra={
            "executable": gateway_config.CGI_EXECUTABLE,
            "mount_prefix": gateway_config.MOUNT_PREFIX,
            "auth_enabled": auth_gate.configured,
        },
    )
    try:
        yield
    finally:
        logger.info("Gateway shutting down.")
