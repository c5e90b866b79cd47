"""
Gateway configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults.
"""

import sys
from typing import Dict, Optional

from pydantic import Field, field_validator

from cgibridge.common.core.config import BaseAppConfig

# Application home of the legacy web UI; everything the CGI program serves lives below it.
DEFAULT_MOUNT_PREFIX = "/webman/3rdparty/pan-thunder-com/index.cgi/"


class GatewayConfig(BaseAppConfig):
    """
    Configuration management for the CGI gateway.
    """

    # Server settings
    BIND_ADDR: str = Field(default="0.0.0.0:5051", description="Listen address (host:port)")
    TLS_CERT_PATH: Optional[str] = Field(default=None, description="TLS certificate (PEM)")
    TLS_KEY_PATH: Optional[str] = Field(default=None, description="TLS private key (PEM)")
    DEBUG: bool = Field(default=False, description="Show CGI stderr and debug logs")

    # Authentication
    AUTH_PASSWORD: Optional[str] = Field(
        default=None, description="Login password; unset disables the auth gate"
    )
    AUTH_CONSTANT_TIME_COMPARE: bool = Field(
        default=False, description="Compare the login password in constant time"
    )
    TOKEN_SECRET_KEY: Optional[str] = Field(
        default=None, description="Token signing key; random per process when unset"
    )
    TOKEN_EXPIRES_SECONDS: int = Field(default=3600, gt=0, description="Token expiry (seconds)")

    # CGI program
    CGI_EXECUTABLE: str = Field(
        default="/var/packages/pan-xunlei-com/target/host/usr/bin/xunlei-pan-cli-web",
        description="CGI executable spawned per request",
    )
    CGI_WORKING_DIR: str = Field(
        default="/var/packages/pan-xunlei-com/target", description="Working directory"
    )
    RUN_AS_UID: Optional[int] = Field(default=None, description="User id for the CGI process")
    RUN_AS_GID: Optional[int] = Field(default=None, description="Group id for the CGI process")
    CGI_TIMEOUT_SECONDS: Optional[float] = Field(
        default=None, gt=0, description="Kill the CGI process after this many seconds"
    )
    CGI_INHERIT_ENV: bool = Field(
        default=True, description="Start the CGI environment from the gateway's own"
    )
    CGI_EXTRA_ENV: Dict[str, str] = Field(
        default_factory=dict, description="Additional variables passed to the CGI process"
    )
    CGI_NORMALIZE_HEADER_NAMES: bool = Field(
        default=False, description="Emit HTTP_* variables as HTTP_UPPER_SNAKE_CASE"
    )
    SERVER_SOFTWARE: str = Field(default="cgibridge", description="SERVER_SOFTWARE value")

    # Routing
    MOUNT_PREFIX: str = Field(
        default=DEFAULT_MOUNT_PREFIX, description="Path prefix served by the CGI program"
    )
    LOGIN_PATH: str = Field(default="/login", description="Login entry point")

    @field_validator("BIND_ADDR")
    @classmethod
    def _check_bind_addr(cls, value: str) -> str:
        host, sep, port = value.rpartition(":")
        if not sep or not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"BIND_ADDR must be host:port, got {value!r}")
        if host.startswith("[") != host.endswith("]"):
            raise ValueError(f"BIND_ADDR has an unbalanced IPv6 bracket: {value!r}")
        return value

    @property
    def bind_host(self) -> str:
        host, _, _ = self.BIND_ADDR.rpartition(":")
        return host.strip("[]") or "0.0.0.0"

    @property
    def bind_port(self) -> int:
        _, _, port = self.BIND_ADDR.rpartition(":")
        return int(port)

    @property
    def auth_enabled(self) -> bool:
        return bool(self.AUTH_PASSWORD)

    @property
    def tls_enabled(self) -> bool:
        return bool(self.TLS_CERT_PATH and self.TLS_KEY_PATH)

    # model_config is inherited


# Load config as a singleton.
# pydantic-settings reads environment variables during instantiation.
try:
    config = GatewayConfig()
except Exception as e:
    sys.stderr.write(f"Failed to load configuration: {e}\n")
    raise
