#!/usr/bin/env python3
"""Oracle Request Relay.

Listens for price requests emitted by the oracle contract, fetches the
latest price from Binance and writes it back on-chain. Requests that cannot
be answered after the configured number of attempts receive a zero price.

Configure with env vars or CLI flags. CLI flags take precedence.
"""

import argparse
import asyncio
import logging
import math
import os
import sys

from .src.PriceRelay import PriceRelay

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

DEFAULT_KEY_FILE = "./oracle/oracle_private_key"
DEFAULT_ARTIFACT = "./oracle/build/contracts/EthPriceOracle.json"


def env_number(name: str, default: float, cast: type = int) -> float:
    """Read a numeric env var.

    Unset, empty, zero, non-finite and non-numeric values fall back to ``default``.

    :param name: Environment variable name.
    :param default: Value used when the variable is not usable.
    :param cast: Numeric type to parse with.
    :returns: Parsed value or default.
    """
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    if not value or not math.isfinite(value):
        return default
    return value


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with env var defaults."""
    parser = argparse.ArgumentParser(
        description="Oracle Request Relay: answers on-chain price requests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Local development node with the default key file and artifact
  python -m relay.main

  # Larger batches, fewer retries
  python -m relay.main --chunk-size 10 --max-retries 3

Environment variables (CLI args take precedence):
  SLEEP_INTERVAL, CHUNK_SIZE, MAX_RETRIES, PRIVATE_KEY_FILE, NETWORK,
  RPC_URL, ORACLE_ARTIFACT, ORACLE_ADDRESS, EVENT_POLL_INTERVAL,
  FETCH_TIMEOUT, PRICE_SYMBOL
""",
    )

    parser.add_argument(
        "--sleep-interval",
        dest="sleep_interval",
        type=float,
        help="Milliseconds between queue processing ticks (default: 2000)",
        default=env_number("SLEEP_INTERVAL", 2000, float),
    )

    parser.add_argument(
        "--chunk-size",
        dest="chunk_size",
        type=int,
        help="Maximum requests processed per tick (default: 3)",
        default=env_number("CHUNK_SIZE", 3),
    )

    parser.add_argument(
        "--max-retries",
        dest="max_retries",
        type=int,
        help="Price fetch attempts before submitting a zero price (default: 5)",
        default=env_number("MAX_RETRIES", 5),
    )

    parser.add_argument(
        "--key-file",
        dest="key_file",
        type=str,
        help=f"Path to the relay's private key file (default: {DEFAULT_KEY_FILE})",
        default=os.environ.get("PRIVATE_KEY_FILE") or DEFAULT_KEY_FILE,
    )

    parser.add_argument(
        "--network",
        type=str,
        help="Network to connect to (localnet, sapphire, sapphire-testnet) or RPC URL",
        default=os.environ.get("NETWORK") or "localnet",
    )

    parser.add_argument(
        "--artifact",
        type=str,
        help=f"Oracle contract build artifact (default: {DEFAULT_ARTIFACT})",
        default=os.environ.get("ORACLE_ARTIFACT") or DEFAULT_ARTIFACT,
    )

    parser.add_argument(
        "--oracle-address",
        dest="oracle_address",
        type=str,
        help="Oracle contract address (optional, read from the artifact if not provided)",
        default=os.environ.get("ORACLE_ADDRESS"),
    )

    parser.add_argument(
        "--event-poll-interval",
        dest="event_poll_interval",
        type=float,
        help="Milliseconds between contract event polls (default: 1000)",
        default=env_number("EVENT_POLL_INTERVAL", 1000, float),
    )

    parser.add_argument(
        "--fetch-timeout",
        dest="fetch_timeout",
        type=float,
        help="Timeout for a single price fetch in seconds (default: 10.0)",
        default=env_number("FETCH_TIMEOUT", 10.0, float),
    )

    parser.add_argument(
        "--symbol",
        type=str,
        help="Binance symbol to quote (default: ETHUSDT)",
        default=os.environ.get("PRICE_SYMBOL") or "ETHUSDT",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse and validate CLI arguments.

    :param argv: Argument list (defaults to ``sys.argv[1:]``).
    :returns: Parsed arguments.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.sleep_interval < 1:
        parser.error("--sleep-interval must be at least 1 millisecond")

    if args.chunk_size < 1:
        parser.error("--chunk-size must be at least 1")

    if args.max_retries < 1:
        parser.error("--max-retries must be at least 1")

    if args.event_poll_interval < 1:
        parser.error("--event-poll-interval must be at least 1 millisecond")

    if args.fetch_timeout <= 0:
        parser.error("--fetch-timeout must be positive")

    return args


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the relay CLI."""
    args = parse_args(argv)

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Log configuration
    logger.info("=" * 60)
    logger.info("Oracle Request Relay")
    logger.info("=" * 60)
    logger.info(f"Network:           {args.network}")
    logger.info(f"Key File:          {args.key_file}")
    logger.info(f"Artifact:          {args.artifact}")
    logger.info(f"Oracle Address:    {args.oracle_address or 'from artifact'}")
    logger.info(f"Symbol:            {args.symbol}")
    logger.info(f"Sleep Interval:    {args.sleep_interval}ms")
    logger.info(f"Chunk Size:        {args.chunk_size}")
    logger.info(f"Max Retries:       {args.max_retries}")
    logger.info(f"Event Poll:        {args.event_poll_interval}ms")
    logger.info(f"Fetch Timeout:     {args.fetch_timeout}s")
    logger.info("=" * 60)

    try:
        price_relay = PriceRelay(
            network_name=args.network,
            key_file=args.key_file,
            artifact_path=args.artifact,
            oracle_address=args.oracle_address,
            sleep_interval=args.sleep_interval / 1000,
            chunk_size=args.chunk_size,
            max_retries=args.max_retries,
            fetch_timeout=args.fetch_timeout,
            event_poll_interval=args.event_poll_interval / 1000,
            symbol=args.symbol,
        )
        asyncio.run(price_relay.run())
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
