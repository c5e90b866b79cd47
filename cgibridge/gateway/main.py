"""
CGI Gateway - HTTP(S) front end for a legacy CGI program

Translates each request into one CGI/1.1 process run and the program's
output back into an HTTP response, behind an optional cookie-token login.
"""

from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI

from .api.routes import protected_router, public_router
from .config import GatewayConfig, config
from .core.logging_config import setup_logging
from .exceptions import register_exception_handlers
from .lifecycle import manage_lifespan
from .middleware import request_logging_middleware

logger = logging.getLogger("gateway.main")


def create_app(gateway_config: Optional[GatewayConfig] = None) -> FastAPI:
    """Assemble the gateway application for a configuration."""
    gateway_config = gateway_config or config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with manage_lifespan(app, gateway_config):
            yield

    app = FastAPI(
        title="CGI Gateway",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.middleware("http")(request_logging_middleware)
    register_exception_handlers(app)

    # Login routes first: the protected catch-all would swallow them otherwise.
    app.include_router(public_router)
    app.include_router(protected_router)
    return app


app = create_app()


def serve(gateway_config: Optional[GatewayConfig] = None) -> None:
    """Run the gateway under uvicorn, with TLS when a certificate and key are configured."""
    import uvicorn

    gateway_config = gateway_config or config
    setup_logging(gateway_config)

    ssl_options = {}
    if gateway_config.tls_enabled:
        ssl_options = {
            "ssl_certfile": gateway_config.TLS_CERT_PATH,
            "ssl_keyfile": gateway_config.TLS_KEY_PATH,
        }

    logger.info(f"Starting CGI gateway: {gateway_config.BIND_ADDR}")
    uvicorn.run(
        create_app(gateway_config),
        host=gateway_config.bind_host,
        port=gateway_config.bind_port,
        log_config=None,
        timeout_keep_alive=60,
        **ssl_options,
    )


if __name__ == "__main__":
    serve()
