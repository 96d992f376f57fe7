# ============================================================================
# TASK SERVER CLIENT CONFIGURATION
# ============================================================================
# STATUS: Core - Configuration management
# PURPOSE: Environment-based configuration for the task server connection
# CREATED: 18 OCT 2026
# ============================================================================
"""
Client Configuration

Loads the task server connection settings from environment variables.
Authentication is handled outside this package; callers that need a
token pass it through extra_headers (CONDUCTOR_AUTH_HEADER).
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict

logger = logging.getLogger(__name__)


@dataclass
class ClientConfig:
    """Configuration for the task server HTTP client."""

    # Base URL including the API prefix, e.g. http://localhost:8080/api
    server_url: str = "http://localhost:8080/api"

    # Request timeouts (seconds)
    connect_timeout_seconds: float = 10.0
    request_timeout_seconds: float = 60.0

    # Sent with every request
    extra_headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Load configuration from environment variables."""
        headers: Dict[str, str] = {}
        auth_header = os.environ.get("CONDUCTOR_AUTH_HEADER")
        if auth_header:
            name, _, value = auth_header.partition(":")
            if value:
                headers[name.strip()] = value.strip()
            else:
                logger.warning("Ignoring CONDUCTOR_AUTH_HEADER: expected 'Name: value'")

        return cls(
            server_url=os.environ.get("CONDUCTOR_SERVER_URL", "http://localhost:8080/api").rstrip("/"),
            connect_timeout_seconds=float(os.environ.get("CONDUCTOR_CONNECT_TIMEOUT", "10")),
            request_timeout_seconds=float(os.environ.get("CONDUCTOR_REQUEST_TIMEOUT", "60")),
            extra_headers=headers,
        )


__all__ = ["ClientConfig"]
