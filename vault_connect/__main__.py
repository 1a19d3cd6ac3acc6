"""Run the browser extension connector: ``python -m vault_connect``."""
import os
import logging

from aiohttp import web

from .config import ConnectorConfig
from .connector import BrowserExtensionConnector

logger = logging.getLogger("vault_connect")


def main() -> None:
    logging.basicConfig(
        level=os.environ.get("VAULT_CONNECT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = ConnectorConfig.from_env()
    if not config.enabled:
        logger.info("Browser extension connector is disabled")
        return
    connector = BrowserExtensionConnector(config)
    web.run_app(
        connector.make_app(), host=config.host, port=config.port, print=None,
    )


if __name__ == "__main__":
    main()
