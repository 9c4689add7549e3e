#!/usr/bin/env python3
"""Entry point for the Drop coordinator service.

Loads configuration from the environment (and an optional .env file),
discovers the protocol contracts through the factory and runs the check
modules until interrupted.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys

from dotenv import load_dotenv


# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


# Get logger for this module
logger = logging.getLogger(__name__)

from drop_coordinator.coordinator import Coordinator
from drop_coordinator.exceptions import (
    ChainQueryError,
    FactoryDiscoveryError,
    ModuleConfigurationError,
)


async def main() -> None:
    """Main entry point for the Drop coordinator.

    Raises:
        SystemExit: On configuration or startup errors
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Drop Coordinator - periodic protocol checks and ICQ relaying",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  FACTORY_CONTRACT_ADDRESS          - Drop factory contract on the hub chain
  ICQ_RUN_COMMAND                   - ICQ relayer command (query ids are appended)
  COORDINATOR_CHECKS_PERIOD         - Seconds between check ticks
  COORDINATOR_MNEMONIC              - Coordinator account mnemonic (optional)
  RELAYER_NEUTRON_CHAIN_*           - Hub chain RPC/REST addresses and gas prices
  NEUTRON_GAS_ADJUSTMENT            - Gas adjustment for hub transactions
  RELAYER_TARGET_CHAIN_*            - Target chain endpoints, denom, prefixes
  CORE_CONTRACT_ADDRESS             - Core contract override (optional)
  VALIDATOR_STATS_CONTRACT_ADDRESS  - Validators stats contract override (optional)
  LOG_LEVEL                         - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        default=False,
        help="Run a single check tick and exit"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)
    logger.info("=== Drop Coordinator Starting ===")

    try:
        coordinator = Coordinator.from_env()
    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables (see --help)")
        sys.exit(1)

    try:
        await coordinator.init()
    except (ChainQueryError, FactoryDiscoveryError, ModuleConfigurationError) as e:
        logger.error(f"Startup Error: {e}")
        if coordinator.clients is not None:
            await coordinator.clients.close()
        sys.exit(1)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, coordinator.stop)
        except NotImplementedError:
            pass  # Windows event loops

    try:
        await coordinator.run(once=args.once)
    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    load_dotenv()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
        sys.exit(0)
