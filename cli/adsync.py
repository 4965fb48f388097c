#!/usr/bin/env python3
"""Ad Sync CLI

Command-line tool for pulling ad metrics and accounts:
- Fetch normalized daily metrics for one ad account
- Discover ad accounts reachable with a token
- Check token and account health
- Import a YAML configuration into encrypted storage

Usage:
    adsync metrics <provider> --account ID [--days N]
    adsync accounts <provider> [--advertiser-id ID ...]
    adsync health <provider> [--account ID]
    adsync config import <file.yaml>
    adsync config show

The access token is read from --token or the ADSYNC_ACCESS_TOKEN
environment variable; the refresh token from --refresh-token or
ADSYNC_REFRESH_TOKEN.

Examples:
    adsync metrics google --account 444-555-6666 --days 30 > metrics.json
    adsync accounts tiktok --advertiser-id 7001234567890
    adsync health linkedin --account 508123456
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Optional

import httpx

from collectors.base import BaseAdPlatformClient
from collectors.errors import ClassifiedError
from collectors.oauth import OAuthRefreshError
from collectors.tiktok.client import TikTokAdsClient
from config import AppConfig, ConfigError, ConfigManager, configure_logging
from services.client_factory import PROVIDERS, create_client
from services.metrics_sync import InMemoryMetricsWriter, MetricsSyncService

logger = logging.getLogger(__name__)

ACCESS_TOKEN_ENV = "ADSYNC_ACCESS_TOKEN"
REFRESH_TOKEN_ENV = "ADSYNC_REFRESH_TOKEN"


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def _load_config(args) -> AppConfig:
    manager = ConfigManager()
    if args.config:
        return manager.load_yaml(args.config)
    return manager.get_config()


def _build_client(args, config: AppConfig) -> BaseAdPlatformClient:
    token = args.token or os.environ.get(ACCESS_TOKEN_ENV)
    if not token:
        raise ValueError(f"Access token required via --token or {ACCESS_TOKEN_ENV}")
    return create_client(
        args.provider,
        token,
        config,
        refresh_token=args.refresh_token or os.environ.get(REFRESH_TOKEN_ENV),
        login_customer_id=getattr(args, "login_customer_id", None),
    )


async def cmd_metrics(args, config: AppConfig) -> int:
    """Fetch metrics for one account and print them as JSON."""
    async with _build_client(args, config) as client:
        writer = InMemoryMetricsWriter()
        result = await MetricsSyncService().sync(client, args.account, args.days, writer)

    if not result.success:
        _print_json(
            {
                "success": False,
                "error": result.error,
                "error_category": result.error_category,
                "reconnect_required": result.reconnect_required,
                "request_id": result.request_id,
            }
        )
        return 1

    _print_json(
        {
            "success": True,
            "rows": result.rows_written,
            "pages": result.pages_written,
            "metrics": [m.to_dict(include_raw=args.raw) for m in writer.metrics],
        }
    )
    return 0


async def cmd_accounts(args, config: AppConfig) -> int:
    """Discover ad accounts and print them as JSON."""
    async with _build_client(args, config) as client:
        if isinstance(client, TikTokAdsClient):
            accounts = await client.fetch_ad_accounts(args.advertiser_id or None)
        else:
            accounts = await client.fetch_ad_accounts()

    _print_json([a.to_dict() for a in accounts])
    return 0


async def cmd_health(args, config: AppConfig) -> int:
    """Check token and account health."""
    async with _build_client(args, config) as client:
        status = await client.check_health(args.account)

    _print_json(status.to_dict())
    return 0 if status.healthy else 1


def cmd_config_import(args) -> int:
    """Validate a YAML file and store it encrypted."""
    manager = ConfigManager()
    manager.save(manager.load_yaml(args.file))
    print(f"Configuration imported into {manager.config_path}")
    return 0


def cmd_config_show(args) -> int:
    """Print the stored configuration with secrets masked."""
    _print_json(json.loads(ConfigManager().get_config().model_dump_json()))
    return 0


def _add_client_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("provider", choices=PROVIDERS, help="Ad platform")
    parser.add_argument("--token", help=f"Access token (default: ${ACCESS_TOKEN_ENV})")
    parser.add_argument(
        "--refresh-token", help=f"Refresh token (default: ${REFRESH_TOKEN_ENV})"
    )
    parser.add_argument("--config", help="YAML config file instead of stored configuration")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adsync",
        description="Ad Sync - advertising metrics from Google Ads, TikTok and LinkedIn",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s metrics google --account 4445556666 --days 30   Campaign metrics
  %(prog)s accounts google                                  Account discovery
  %(prog)s health tiktok --account 7001234567890            Token/account check
  %(prog)s config import adsync.yaml                        Store configuration
        """,
    )
    parser.add_argument("--log-level", help="Override the configured log level")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    metrics_parser = subparsers.add_parser("metrics", help="Fetch normalized daily metrics")
    _add_client_arguments(metrics_parser)
    metrics_parser.add_argument("--account", required=True, help="Ad account ID")
    metrics_parser.add_argument("--days", type=int, default=30, help="Days to fetch (default: 30)")
    metrics_parser.add_argument("--login-customer-id", help="Google Ads manager account ID")
    metrics_parser.add_argument("--raw", action="store_true", help="Include raw provider rows")
    metrics_parser.set_defaults(func=cmd_metrics)

    accounts_parser = subparsers.add_parser("accounts", help="Discover ad accounts")
    _add_client_arguments(accounts_parser)
    accounts_parser.add_argument(
        "--advertiser-id", action="append", help="TikTok advertiser ID (repeatable)"
    )
    accounts_parser.add_argument("--login-customer-id", help="Google Ads manager account ID")
    accounts_parser.set_defaults(func=cmd_accounts)

    health_parser = subparsers.add_parser("health", help="Check token and account health")
    _add_client_arguments(health_parser)
    health_parser.add_argument("--account", help="Ad account ID to check")
    health_parser.set_defaults(func=cmd_health)

    config_parser = subparsers.add_parser("config", help="Manage stored configuration")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Config action")

    import_parser = config_subparsers.add_parser("import", help="Import a YAML config file")
    import_parser.add_argument("file", help="Path to YAML file")
    import_parser.set_defaults(func=cmd_config_import, sync_command=True)

    show_parser = config_subparsers.add_parser("show", help="Show stored configuration")
    show_parser.set_defaults(func=cmd_config_show, sync_command=True)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        if getattr(args, "sync_command", False):
            configure_logging(args.log_level or "INFO")
            return args.func(args)

        config = _load_config(args)
        configure_logging(args.log_level or config.log_level)
        return asyncio.run(args.func(args, config))
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except (ClassifiedError, OAuthRefreshError, httpx.HTTPError) as e:
        _print_json({"success": False, "error": str(e) or type(e).__name__})
        return 1


if __name__ == "__main__":
    sys.exit(main())
