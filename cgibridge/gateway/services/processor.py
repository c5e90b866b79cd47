"""
Gateway Request Processor - Service Layer

Standardizes the flow: InputContext -> CGI environment -> process run -> CgiResponse.
"""

import logging

from cgibridge.gateway.config import GatewayConfig
from cgibridge.gateway.core.cgi_parser import parse_cgi_output
from cgibridge.gateway.core.env_mapper import build_cgi_environment
from cgibridge.gateway.models.context import InputContext
from cgibridge.gateway.models.result import CgiResponse
from cgibridge.gateway.services.process_invoker import ProcessInvoker

logger = logging.getLogger("gateway.processor")


class CgiGatewayProcessor:
    """
    Orchestrates the request processing lifecycle.

    Each call runs its steps strictly in order and shares nothing with other
    in-flight calls besides the read-only configuration.
    """

    def __init__(self, invoker: ProcessInvoker, gateway_config: GatewayConfig):
        self.invoker = invoker
        self.config = gateway_config

    def in_scope(self, path: str) -> bool:
        """Whether a path belongs to the mounted CGI application."""
        return path.startswith(self.config.MOUNT_PREFIX)

    async def process(self, context: InputContext) -> CgiResponse:
        """
        Process a request from InputContext to CgiResponse.

        Errors propagate unchanged; no step is retried.
        """
        logger.info(f"Processing CGI request ({context.method} {context.path})")

        environment = build_cgi_environment(context, self.config)
        outcome = await self.invoker.invoke(environment, context.body)

        if outcome.returncode:
            logger.warning(
                f"CGI program exited with status {outcome.returncode}",
                extra={"returncode": outcome.returncode, "path": context.path},
            )
        else:
            logger.debug("CGI program finished", extra={"stdout_bytes": len(outcome.stdout)})

        return parse_cgi_output(outcome.stdout)
