"""
DNS Router Main Entry Point

This script provides the main entry point for running the DNS router.
"""

import argparse
import asyncio
import platform
import signal
import sys
from typing import Optional

from dns_router.config.loader import ConfigLoader
from dns_router.core import DNSRouter, DNSServer
from dns_router.dns_logging import get_logger, log_exception, setup_logging


def install_event_loop_policy() -> None:
    """Use uvloop on Unix systems when it is installed"""
    if platform.system() == "Windows":
        return
    try:
        import uvloop
    except ImportError:
        return
    asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())


class RouterApp:
    """DNS Router Application"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path
        self.config = None
        self.router = None
        self.server = None
        self.logger = None
        self._shutdown_event = asyncio.Event()

    def initialize(self) -> None:
        """Load configuration, set up logging and register the configured routes"""
        self.config = ConfigLoader(self.config_path).load_config()

        setup_logging(self.config.logging)
        self.logger = get_logger("dns_router_app")

        self.router = DNSRouter(self.config, logger=self.logger)
        self.router.configure_routes()
        self.server = DNSServer(self.router, self.config, logger=self.logger)

        self.logger.info(
            "DNS router initialized",
            upstream=str(self.config.topology),
            timeout_ms=self.config.timeout,
            aliases=len(self.config.aliases),
            proxy_routes=len(self.config.proxy),
            hooks=len(self.router.dispatcher),
        )

    async def start(self) -> None:
        """Start the router and serve until a shutdown signal arrives"""
        if not self.server:
            self.initialize()

        try:
            await self.server.start()

            loop = asyncio.get_running_loop()
            for sig in [signal.SIGTERM, signal.SIGINT]:
                loop.add_signal_handler(sig, self._signal_handler)

            await self._shutdown_event.wait()

        except Exception as e:
            log_exception(self.logger, "Error running DNS router", e)
            raise
        finally:
            await self.stop()

    async def stop(self) -> None:
        if self.server:
            await self.server.stop()
        self.logger.info("DNS router shutdown complete")

    def _signal_handler(self) -> None:
        """Handle shutdown signals"""
        self.logger.info("Received shutdown signal")
        self._shutdown_event.set()


def main(argv=None) -> int:
    """Main function"""
    parser = argparse.ArgumentParser(description="DNS Router")
    parser.add_argument("--config", "-c", default=None, help="Configuration file path")
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="Validate the configuration (upstreams and routes) and exit",
    )
    args = parser.parse_args(argv)

    if args.check_config:
        try:
            app = RouterApp(args.config)
            app.initialize()
        except Exception as e:
            print(f"Invalid configuration: {e}", file=sys.stderr)
            return 1
        print("Configuration OK")
        return 0

    install_event_loop_policy()

    async def run() -> None:
        await RouterApp(args.config).start()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        print("\nDNS router interrupted")
    except Exception as e:
        print(f"DNS router failed: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
