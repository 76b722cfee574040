"""Application entry point."""

import asyncio
import logging
import signal
import sys
from typing import Optional

from aiohttp import web

from paywall.config import get_config
from paywall.config.settings import AppConfig
from paywall.server import build_app

logger = logging.getLogger(__name__)


async def run_server(config: AppConfig, shutdown_event: Optional[asyncio.Event] = None) -> None:
    """Serve the application until the shutdown event is set.

    Args:
        config: Application configuration
        shutdown_event: Optional event to signal shutdown
    """
    app = await build_app(config)

    runner = web.AppRunner(app)
    await runner.setup()

    site = web.TCPSite(runner, config.server_host, config.server_port)
    await site.start()

    logger.info(f"Paywall listening on {config.server_host}:{config.server_port} (env={config.env})")

    try:
        if shutdown_event:
            await shutdown_event.wait()
        else:
            await asyncio.Event().wait()
    finally:
        logger.info("Shutting down server...")
        await runner.cleanup()


def main() -> None:
    """Run the server as a standalone process.

    Blocks until SIGTERM/SIGINT received.
    """
    config = get_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    shutdown_event = asyncio.Event()

    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}")
        loop.call_soon_threadsafe(shutdown_event.set)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    try:
        loop.run_until_complete(run_server(config, shutdown_event=shutdown_event))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Server failed: {e}")
        sys.exit(1)
    finally:
        loop.close()
        logger.info("Server stopped")


if __name__ == "__main__":
    main()
