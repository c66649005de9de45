"""VitalFuse server entry point: ``python -m vitalfuse.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from vitalfuse.core.config.settings import get_settings
from vitalfuse.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the VitalFuse MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.vf_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger = logging.getLogger(__name__)
    if not settings.vf_allow_insecure_bind and not _is_loopback_host(settings.vf_host):
        raise RuntimeError(
            "Refusing to bind the VitalFuse server to a non-loopback host without an auth layer. "
            "Set VF_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info("Starting VitalFuse server on %s:%d", settings.vf_host, settings.vf_port)

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.vf_host,
        port=settings.vf_port,
    )


if __name__ == "__main__":
    run()
