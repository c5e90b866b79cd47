from typing import Optional

from cgibridge.common.core.logging_config import setup_logging as common_setup_logging
from cgibridge.gateway.config import GatewayConfig


def setup_logging(gateway_config: Optional[GatewayConfig] = None):
    """
    Load the YAML config and initialize logging.
    DEBUG forces the gateway loggers down to debug level.
    """
    if gateway_config is None:
        from cgibridge.gateway.config import config as gateway_config

    log_level = "DEBUG" if gateway_config.DEBUG else gateway_config.LOG_LEVEL
    common_setup_logging(gateway_config.LOG_CONFIG_PATH, log_level=log_level)
