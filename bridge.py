import argparse
import asyncio
import logging
import math
import os
import sys

from dotenv import load_dotenv

# Load configuration from single .env file
load_dotenv("enphase-battery-bridge.env")

from core.battery_platform import EnphaseBatteryPlatform
from core.poller import DEFAULT_INTERVALS
from sinks.console import ConsoleHost
from sources.base import Resource

logger = logging.getLogger(__name__)

INTERVAL_VARIABLES = {
    Resource.BATTERY: "ENPHASE_BATTERY_POLL_INTERVAL",
    Resource.GRID: "ENPHASE_GRID_POLL_INTERVAL",
    Resource.STORM: "ENPHASE_STORM_POLL_INTERVAL",
}


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )


def _interval_from_env(resource: Resource) -> float:
    variable = INTERVAL_VARIABLES[resource]
    default = DEFAULT_INTERVALS[resource]
    raw = os.getenv(variable)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        value = 0
    if not math.isfinite(value) or value <= 0:
        logger.warning(f"{variable}={raw!r} is not a positive, finite number of seconds, using {default}")
        return default
    return value


def load_config() -> dict:
    """Collect platform configuration from the environment (already populated from the .env file)"""
    return {
        "system_id": os.getenv("ENPHASE_SYSTEM_ID"),
        "api_key": os.getenv("ENPHASE_API_KEY"),
        "access_token": os.getenv("ENPHASE_ACCESS_TOKEN"),
        "name": os.getenv("ENPHASE_NAME"),
        "poll_intervals": {resource: _interval_from_env(resource) for resource in Resource},
    }


async def main(once: bool = False) -> int:
    host = ConsoleHost()
    platform = EnphaseBatteryPlatform(load_config(), host)
    if not platform.configured:
        return 1

    for accessory in host.restored:
        platform.configure_accessory(accessory)

    try:
        await host.launch()

        if once:
            # Shares the in-flight requests of the eager polls, so cached reads have data
            for resource in Resource:
                await platform.poller.tick(resource)
            for name, values in (await host.read_all()).items():
                for characteristic, value in values.items():
                    logger.info(f"{name}: {characteristic} = {value}")
            return 0

        # Poll tasks run until cancelled
        await platform.poller.wait()
        return 0
    finally:
        await platform.shutdown()


def cli():
    # Parse command line arguments
    parser = argparse.ArgumentParser(description="Enphase Battery Bridge")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Read every characteristic once and exit"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    args = parser.parse_args()
    setup_logging(args.log_level)

    try:
        sys.exit(asyncio.run(main(once=args.once)))
    except KeyboardInterrupt:
        logger.info("Script stopped by user.")


if __name__ == "__main__":
    cli()
