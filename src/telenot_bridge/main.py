from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

import dotenv
import uvloop

from telenot_bridge.bridge import TelenotBridge
from telenot_bridge.catalog import load_catalog
from telenot_bridge.const import FOREIGN_LOG_FORMATTER, TELENOT_CONFIG_FILE_PATH, TELENOT_DEBUG, TELENOT_VERSION
from telenot_bridge.correlation import correlation_context, ensure_correlation_id
from telenot_bridge.logging_abstraction import DISCOVER, get_logger, set_level_all
from telenot_bridge.metrics import start_metrics_server
from telenot_bridge.protocol.exceptions import CatalogError
from telenot_bridge.structs import BridgeEnv
from telenot_bridge.utils import check_python_version

logger = get_logger(__name__)

# Configure third-party loggers to reduce noise
lib_handler = logging.StreamHandler(sys.stdout)
lib_handler.setFormatter(FOREIGN_LOG_FORMATTER)
for _name in ("aiomqtt", "mqtt"):
    _lib_logger = logging.getLogger(_name)
    _lib_logger.setLevel(logging.ERROR)
    _lib_logger.propagate = False
    _lib_logger.addHandler(lib_handler)


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Telenot alarm panel to MQTT bridge")
    _ = parser.add_argument(
        "--config",
        help="Path to the sensor catalog YAML file",
        default=None,
        type=Path,
    )
    _ = parser.add_argument("--env", help="Path to the environment file", default=None, type=Path)
    _ = parser.add_argument(
        "-D",
        "--debug",
        action="store_true",
        help="Enable debug mode",
    )
    _ = parser.add_argument(
        "--discover",
        action="store_true",
        help="Log unmapped sensor bits and unknown frames at DISCOVER level",
    )
    return parser.parse_args(argv)


def load_env_file(env_file: Path) -> bool:
    env_path = env_file.expanduser().resolve()
    if not env_path.exists():
        logger.error("Environment file not found", extra={"path": str(env_path)})
        return False
    if dotenv.load_dotenv(env_path, override=True):
        logger.info(" Environment variables loaded", extra={"source": str(env_path)})
        return True
    logger.warning("No environment variables loaded from file", extra={"path": str(env_path)})
    return False


def build_env(args: argparse.Namespace) -> BridgeEnv:
    if args.env:
        _ = load_env_file(args.env)
    env = BridgeEnv.from_environ()
    if args.discover:
        env = env.model_copy(update={"discover": True})

    if args.debug or TELENOT_DEBUG:
        set_level_all(logging.DEBUG)
        logger.info("Debug mode enabled")
    elif env.discover:
        set_level_all(DISCOVER)
        logger.info("Discover mode enabled")
    return env


async def run_bridge(bridge: TelenotBridge) -> None:
    _ = ensure_correlation_id()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: _on_signal(bridge, s))
    logger.debug("Signal handlers configured for SIGINT & SIGTERM")
    await bridge.run()


def _on_signal(bridge: TelenotBridge, signum: int) -> None:
    logger.info("Intercepted signal: %s (%s)", signal.Signals(signum).name, signum)
    _ = asyncio.get_running_loop().create_task(bridge.stop())


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the Telenot bridge."""
    with correlation_context():
        logger.info("Starting Telenot bridge", extra={"version": TELENOT_VERSION})
        check_python_version()
        args = parse_cli(argv)
        env = build_env(args)

        config_file = (args.config or Path(TELENOT_CONFIG_FILE_PATH)).expanduser().resolve()
        try:
            catalog = load_catalog(config_file)
        except CatalogError as e:
            logger.error(" Sensor catalog could not be loaded: %s", e, extra={"config_path": str(config_file)})
            return 1

        if env.metrics_port:
            try:
                start_metrics_server(env.metrics_port)
            except OSError as e:
                logger.error(" Metrics server could not be started: %s", e, extra={"port": env.metrics_port})
                return 1
            logger.info("Prometheus metrics exposed", extra={"port": env.metrics_port})

        bridge = TelenotBridge(catalog, env)
        try:
            uvloop.run(run_bridge(bridge))
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, shutting down...")
        except Exception as e:
            logger.exception(" Fatal error in main loop", extra={"error": str(e)})
            return 1
        logger.info("Telenot bridge shutdown complete")
        return 0


if __name__ == "__main__":
    sys.exit(main())
