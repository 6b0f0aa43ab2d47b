"""sysinfo-server - process entry point."""

import asyncio
import sys

from sysinfo_server.config import load_settings
from sysinfo_server.errors import BindError, ConfigError
from sysinfo_server.logs import get_logger, setup_logging
from sysinfo_server.monitor import SnapshotService
from sysinfo_server.orchestrator import run_mode

EXIT_OK = 0
EXIT_RUNTIME_ERROR = 1
EXIT_CONFIG_ERROR = 2


def main() -> int:
    """Entry point for the sysinfo-server console script."""
    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"sysinfo-server: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    setup_logging(settings)
    logger = get_logger("app")
    logger.info(
        "config_loaded",
        mode=settings.mode.value,
        host=settings.server_host,
        rest_port=settings.server_port,
        mcp_port=settings.mcp_port,
        rate_limit=settings.rate_limit,
        username=settings.auth_username,
    )

    try:
        asyncio.run(run_mode(settings, SnapshotService()))
    except BindError as exc:
        logger.error("bind_failed", error=str(exc))
        return EXIT_RUNTIME_ERROR
    except KeyboardInterrupt:
        logger.info("interrupted")
    except Exception:
        logger.exception("server_crashed")
        return EXIT_RUNTIME_ERROR
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
