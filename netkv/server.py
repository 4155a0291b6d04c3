#!/usr/bin/env python3
"""
NetKV Server Entry Point

This is the main entry point for starting the NetKV server.

Usage:
    python -m netkv.server                          # Default settings (0.0.0.0:7171)
    python -m netkv.server --port 8080              # Custom port
    python -m netkv.server --config netkv.properties
    python -m netkv.server --data-file /var/lib/netkv/netkv.aof
    python -m netkv.server --debug                  # Enable debug logging

Environment Variables:
    NETKV_HOST          - Server bind address
    NETKV_PORT          - Server port
    NETKV_DATA_FILE     - Journal location
    NETKV_SYNC_POLICY   - Journal sync policy (always/flush)
    NETKV_WORKERS       - Command worker pool size
    NETKV_LOG_FILE      - Diagnostic log file
    NETKV_DEBUG         - Enable debug mode (true/false)
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from dataclasses import replace
from typing import List, Optional

from .cache.store import KVStore
from .config.settings import ConfigError, Settings, load_properties, settings, validate
from .engine import CommandEngine
from .network.tcp_server import KVServer
from .persistence.journal import JournalError, open_journal


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="NetKV: In-Memory Key-Value Store Server",
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a .properties configuration file",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help=f"Host address to bind to (default: {settings.HOST})",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help=f"Port number to listen on (default: {settings.PORT})",
    )

    parser.add_argument(
        "--data-file",
        type=str,
        default=None,
        help=f"Journal file replayed on startup (default: {settings.DATA_FILE})",
    )

    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write diagnostic logs to this file",
    )

    parser.add_argument(
        "--sync-policy",
        choices=("always", "flush"),
        default=None,
        help=f"fsync every journal append, or only flush (default: {settings.SYNC_POLICY})",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help=f"Command worker pool size (default: {settings.WORKERS})",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    """
    Combine environment defaults, the optional config file and CLI flags.

    Raises:
        ConfigError: If the config file is unreadable or a value is invalid
    """
    config = load_properties(args.config) if args.config else settings

    overrides = {
        "HOST": args.host,
        "PORT": args.port,
        "DATA_FILE": args.data_file,
        "LOG_FILE": args.log_file,
        "SYNC_POLICY": args.sync_policy,
        "WORKERS": args.workers,
    }
    config = replace(config, **{k: v for k, v in overrides.items() if v is not None})
    if args.debug:
        config = replace(config, DEBUG=True)

    validate(config)
    return config


def setup_logging(debug: bool = False, log_file: Optional[str] = None) -> None:
    """Configure logging based on debug flag, optionally adding a log file."""
    level = logging.DEBUG if debug else logging.INFO

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the server."""
    args = parse_args(argv)

    try:
        config = build_settings(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    # Setup logging
    setup_logging(debug=config.DEBUG, log_file=config.LOG_FILE)
    logger = logging.getLogger(__name__)

    # Rebuild the store from the journal, then record new mutations to it
    store = KVStore()
    try:
        journal = open_journal(config.DATA_FILE, store, sync_policy=config.SYNC_POLICY)
    except JournalError as e:
        logger.error(f"Startup aborted: {e}")
        sys.exit(1)

    server = KVServer(
        host=config.HOST,
        port=config.PORT,
        engine=CommandEngine(store),
        workers=config.WORKERS,
    )

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    async def shutdown(sig: signal.Signals) -> None:
        """Handle shutdown signal."""
        logger.info(f"Received signal {sig.name}, initiating shutdown...")
        await server.stop()

    # Register signal handlers (Unix only)
    if sys.platform != 'win32':
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda s=sig: asyncio.create_task(shutdown(s))
            )

    # Log startup info
    logger.info("Starting NetKV server")
    logger.info(f"  Host: {config.HOST}")
    logger.info(f"  Port: {config.PORT}")
    logger.info(f"  Journal: {config.DATA_FILE} (sync={config.SYNC_POLICY})")
    logger.info(f"  Workers: {config.WORKERS}")
    logger.info(f"  Keys loaded: {store.get_stats()['total_keys']}")

    # Run the server
    try:
        loop.run_until_complete(server.start())
        loop.run_until_complete(server.stop())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        loop.run_until_complete(server.stop())
    except OSError as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)
    finally:
        journal.close()
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.close()
        logger.info("Server shutdown complete")


if __name__ == "__main__":
    main()
