"""Entry point for running the marketing MCP server.

Usage:
    python -m marketing_mcp

Environment Variables:
    NOTION_TOKEN: Notion integration token (unset: bundled fallback content)
    BRAND_PAGE_ID: Notion page holding the brand bible
    GLOSSARY_CONCEPTS_SOURCE_ID: Notion data source of system concepts
    GLOSSARY_COMPONENTS_SOURCE_ID: Notion data source of system components
    SODAX_API_URL: SODAX backend API (default: https://api.sodax.com/v1/be)
    MARKETING_TRANSPORT: "stdio" (default) or "http"
    MARKETING_HOST / MARKETING_PORT: HTTP bind address (default: 0.0.0.0:3000)
    MARKETING_LOG_FORMAT: Log format - "json" (default) or "text"
    MARKETING_LOG_FILE: Write to ~/.marketing-mcp/logs/ - "true" or "false" (default)

Feature Flags (FF_ prefix):
    FF_GRACEFUL_DEGRADATION: Serve the last snapshot when a refresh fails (default: true)
    FF_STATIC_FALLBACK: Serve bundled default content (default: true)
    FF_WARM_START: Load every domain at startup (default: false)

Token can also be provided via:
    ~/.config/marketing-mcp/notion_token (with 600 permissions)
    .env file (NOTION_TOKEN=...)
"""

from __future__ import annotations

import logging
import sys

import uvicorn

from .config import Config
from .errors import ConfigurationError
from .feature_flags import get_feature_flags
from .oplog import setup_logging
from .server import create_server


def main() -> None:
    """Main entry point."""
    setup_logging("marketing-mcp")
    logger = logging.getLogger("marketing_mcp")

    try:
        config = Config.load()
        logger.info(f"Starting marketing MCP server: {config}")
        logger.debug(f"Feature flags: {get_feature_flags().to_dict()}")

        server = create_server(config)

        if config.transport == "http":
            logger.info(
                "Serving streamable HTTP",
                extra={"host": config.host, "port": config.port},
            )
            uvicorn.run(
                server.streamable_http_app(),
                host=config.host,
                port=config.port,
                log_level="info",
            )
        else:
            server.run()

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    except KeyboardInterrupt:
        logger.info("Shutting down")

    except Exception:
        logger.exception("Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    main()
