#!/usr/bin/env python3
"""
WAVES Network Monitor - Main Entry Point

Periodically scrapes nodes stats of a WAVES network, evaluates degradation
criteria and exposes debounced network health over HTTP.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / 'src'))

try:
    from netmon.core.stats_scraper import HTTPNodesStatsScraper
    from netmon.monitoring.network_monitor import MonitorRunner, NetworkMonitor
    from netmon.service.monitor_service import MonitorService
    from netmon.storage.models import MonitorState
    from netmon.utils.config import build_criteria, load_config, parse_bind_addr
    from netmon.utils.logger import setup_logging
except ImportError as e:
    print(f"Failed to import modules: {e}")
    print("Please ensure the project is properly set up and dependencies are installed.")
    print("Install dependencies with: pip install -e .")
    sys.exit(1)


class NetmonApp:
    """Main network monitoring application."""

    def __init__(self, config_path=None, log_level=None):
        self.config_path = config_path
        self.log_level = log_level
        self.config = None
        self.logger = None

        # Core components
        self.scraper = None
        self.monitor = None
        self.runner = None
        self.service = None

    def initialize(self):
        """Load configuration and build components."""
        try:
            self.config = load_config(self.config_path)
        except Exception as e:
            print(f"Failed to load configuration: {e}")
            sys.exit(1)

        setup_logging(self.config['logging'].get('config_path'),
                      level=self.log_level or self.config['logging']['level'])
        self.logger = logging.getLogger('netmon')

        try:
            monitor_config = self.config['monitor']
            http_config = self.config['http']

            self.scraper = HTTPNodesStatsScraper(
                monitor_config['stats_url'],
                max_response_size=monitor_config['max_response_size'],
                timeout=monitor_config['scrape_timeout']
            )
            self.monitor = NetworkMonitor(
                initial_state=MonitorState.from_string(monitor_config['initial_state']),
                network_scheme=monitor_config['network_scheme'],
                max_stats_history_len=monitor_config['stats_history_size'],
                scraper=self.scraper,
                alert_on_network_error_streak=monitor_config['network_errors_streak'],
                criteria=build_criteria(self.config)
            )
            self.runner = MonitorRunner(self.monitor, monitor_config['stats_poll_interval'])
            self.service = MonitorService(
                self.monitor,
                auth_header=http_config['auth_header'],
                auth_token=http_config['auth_token']
            )
            self.bind_host, self.bind_port = parse_bind_addr(http_config['bind_addr'])

        except ValueError as e:
            self.logger.error(f"Failed to initialize network monitor: {e}")
            sys.exit(1)

        self.logger.info(
            f"Network monitor initialized: network {str(self.monitor.network_scheme)!r}, "
            f"initial state {str(self.monitor.state())!r}"
        )

    async def start(self):
        """Start scraper, monitoring loop and HTTP server."""
        await self.scraper.start()
        self.runner.run_in_background()
        await self.service.start(self.bind_host, self.bind_port)
        self.logger.info("Server successfully started")

    async def shutdown(self):
        """Stop monitoring loop, then HTTP server and scraper."""
        self.logger.info("Shutting down network monitor...")

        self.runner.stop()
        await self.runner.wait_stopped()
        await self.service.stop()
        await self.scraper.stop()

        self.logger.info("Server has been stopped successfully")


async def main(args):
    """Main entry point."""
    app = NetmonApp(config_path=args.config, log_level=args.log_level)
    app.initialize()

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def signal_handler(sig):
        app.logger.info(f"Caught signal {sig.name}, stopping...")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler, sig)

    try:
        await app.start()
        await shutdown_event.wait()
    finally:
        await app.shutdown()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="WAVES network monitor")
    parser.add_argument('--config', default=None, help="Path to YAML config file.")
    parser.add_argument('--log-level', default=None,
                        help="Logging level: DEV, DEBUG, INFO, WARN, ERROR, FATAL. Overrides config and LOG_LEVEL.")
    return parser.parse_args(argv)


if __name__ == "__main__":
    try:
        asyncio.run(main(parse_args()))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
    except Exception as e:
        print(f"Application failed: {e}")
        sys.exit(1)
