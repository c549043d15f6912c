"""Logfire observability for the Book Catalog MCP Server."""

import logging

import logfire

from .config import ObservabilityConfig
from .decorators import trace_operation

logger = logging.getLogger(__name__)


def initialize_observability(config: ObservabilityConfig | None = None) -> None:
    """Configure Logfire from ``config`` (or the environment)."""
    config = config or ObservabilityConfig()

    if not config.enabled:
        logger.debug("Observability disabled via configuration")
        return

    logfire.configure(
        token=config.token or None,
        service_name=config.project_name,
        environment=config.environment,
        send_to_logfire=config.send_to_logfire,
        console=None if config.console_output else False,
    )


__all__ = [
    "ObservabilityConfig",
    "initialize_observability",
    "trace_operation",
]
