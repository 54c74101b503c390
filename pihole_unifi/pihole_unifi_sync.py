#!/usr/local/bin/python3
# Python script to copy Pi-hole custom DNS records into a UniFi controller
"""
Pi-hole to UniFi DNS Sync

This script copies the custom DNS "A" records defined on a Pi-hole into the
static DNS table of a UniFi network controller. Records the controller already
knows about, either as static entries or as device hostnames, are left alone,
so the sync can be re-run safely.

Configuration comes from command-line flags, environment variables (optionally
loaded from a .env file) and, when run from a terminal, interactive prompts for
anything still missing.

Exit status is 0 on completion and 1603 when the run is aborted.
"""

import argparse
import logging
import os
import sys

import structlog

from .config import load_app_config, load_env_file
from .exceptions import SyncError
from .sync_logic import sync_pihole_to_unifi

log = structlog.get_logger()

EXIT_OK = 0
EXIT_FATAL = 1603
EXIT_INTERRUPTED = 130


def configure_logging(log_level="INFO"):
    level = getattr(logging, str(log_level).upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )


def build_parser():
    parser = argparse.ArgumentParser(
        prog="pihole-unifi-sync",
        description="Sync Pi-hole custom DNS A records into UniFi static DNS.",
    )
    parser.add_argument("--pihole-url", help="Pi-hole base URL (env: PIHOLE_URL)")
    parser.add_argument("--pihole-token", dest="pihole_api_token", help="Pi-hole API token (env: PIHOLE_API_TOKEN)")
    parser.add_argument("--unifi-url", help="UniFi controller base URL (env: UNIFI_URL)")
    parser.add_argument("--unifi-username", help="UniFi username (env: UNIFI_USERNAME)")
    parser.add_argument("--unifi-site", help="UniFi site name (env: UNIFI_SITE, default: default)")
    parser.add_argument(
        "--evaluation-only",
        "-EvaluationOnly",
        action="store_true",
        default=None,
        help="Report what would be created without writing anything (env: EVALUATION_ONLY)",
    )
    parser.add_argument(
        "--test-record",
        "-TestRecord",
        action="store_true",
        default=None,
        help="Sync built-in test records instead of reading the Pi-hole (env: TEST_RECORD)",
    )
    parser.add_argument("--env-file", help="Load settings from this dotenv file (default: ./.env if present)")
    parser.add_argument("--log-level", help="Logging level (env: LOG_LEVEL, default: INFO)")
    parser.add_argument(
        "--no-pause",
        action="store_true",
        help="Exit straight away on a fatal error instead of waiting for Enter",
    )
    return parser


def _wait_for_acknowledgement(no_pause):
    if no_pause or not sys.stdin.isatty():
        return
    try:
        input("Press Enter to exit...")
    except EOFError:
        pass


def _abort(error, no_pause):
    log.critical("Sync aborted", error=str(error), error_type=type(error).__name__)
    _wait_for_acknowledgement(no_pause)
    return EXIT_FATAL


def main(argv=None):
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))

    try:
        load_env_file(args.env_file)
        if not args.log_level and os.getenv("LOG_LEVEL"):
            configure_logging(os.getenv("LOG_LEVEL"))

        config = load_app_config(
            {
                "pihole_url": args.pihole_url,
                "pihole_api_token": args.pihole_api_token,
                "unifi_url": args.unifi_url,
                "unifi_username": args.unifi_username,
                "unifi_site": args.unifi_site,
                "evaluation_only": args.evaluation_only,
                "test_record": args.test_record,
            }
        )
        sync_pihole_to_unifi(config)
    except SyncError as e:
        return _abort(e, args.no_pause)
    except KeyboardInterrupt:
        log.warning("Sync interrupted by user")
        return EXIT_INTERRUPTED
    except Exception:
        log.critical("An unhandled exception occurred in main", exc_info=True)
        _wait_for_acknowledgement(args.no_pause)
        return EXIT_FATAL

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
