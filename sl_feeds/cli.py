"""
Command-line interface for sl-feeds.

Usage:
    sl-feeds -c feeds.toml               # Update every configured feed
    sl-feeds -c feeds.toml -d ~/feeds/   # Override the destination directory
    sl-feeds -c feeds.toml -q            # Only report failures
    sl-feeds --sample-config             # Print a sample config to stdout
"""

import argparse
import os
import sys

from .config import load_config, sample_config
from .errors import ConfigError
from .logging_config import create_execution_logger, setup_structured_logging
from .sync import sync_all


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sl-feeds",
        description="Transform slackware ChangeLog.txt into RSS feeds",
    )
    parser.add_argument(
        "-c", "--config", metavar="FILE", help="Load configuration from FILE"
    )
    parser.add_argument("-d", "--dest", metavar="DIR", help="Output RSS files to DIR")
    parser.add_argument("-q", "--quiet", action="store_true", help="Less output")
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="do not validate server certificate",
    )
    parser.add_argument("--ca", metavar="FILE", help="additional CA cert to use")
    parser.add_argument(
        "--sample-config",
        action="store_true",
        help="Output sample config file to stdout",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.sample_config:
        sys.stdout.write(sample_config())
        return 0

    setup_structured_logging(args.log_level)
    logger = create_execution_logger("cli")

    try:
        config = load_config(args.config)
        if args.dest:
            config.dest = args.dest
        if args.quiet:
            config.quiet = True
        if args.ca:
            if not os.path.isfile(args.ca):
                raise ConfigError(f"CA file not found: {args.ca}")
            config.verify = args.ca
        if args.insecure:
            config.verify = False

        if not config.quiet:
            logger.info(f"Writing to: {config.dest_dir}")
        sync_all(config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}", error=str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
