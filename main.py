from __future__ import annotations

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from router.base import Router
from router.credentials import (
    ChainCredentialProvider,
    EnvCredentialProvider,
    NetrcCredentialProvider,
)
from router.errors import RouterError
from router.models import DEFAULT_CLIENT_NAME
from router.unifi import UnifiDreamRouter
from whoshome.log_sanitizer import SensitiveDataFormatter
from whoshome.poller import PresenceWatcher
from whoshome.presence import find_client, who_is_home
from whoshome.runtime_config import load_runtime_config

logger = logging.getLogger(__name__)


def setup_logging(min_log_level=logging.INFO, logs_dir=None):
    """
    Sets up console logging and, when ``logs_dir`` is given, one file per log level.
    Only logs from the specified `min_log_level` and above are emitted.

    :param min_log_level: Minimum log level to log. Defaults to logging.INFO.
    :param logs_dir: Directory for debug.log, info.log, ... files. None disables file logging.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all log levels

    log_format = SensitiveDataFormatter("%(asctime)s - %(levelname)s - %(message)s")

    if logs_dir:
        os.makedirs(logs_dir, exist_ok=True)
        if not os.access(logs_dir, os.W_OK):
            raise PermissionError(f"Cannot write to log directory: {logs_dir}")

        log_levels = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        for level_name, level_value in log_levels.items():
            if level_value >= min_log_level:
                log_file = os.path.join(logs_dir, f"{level_name.lower()}.log")
                handler = logging.FileHandler(log_file)
                handler.setLevel(level_value)
                handler.setFormatter(log_format)
                # Only records of exactly this level go to this file
                handler.addFilter(lambda record, lv=level_value: record.levelno == lv)
                root_logger.addHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(min_log_level)
    console_handler.setFormatter(log_format)
    root_logger.addHandler(console_handler)

    # urllib3 logs full request lines at DEBUG
    logging.getLogger("urllib3").setLevel(max(min_log_level, logging.INFO))
    logger.debug(f"Logging is set up. Minimum log level: {logging.getLevelName(min_log_level)}")


def build_credential_provider(router_cfg):
    netrc_provider = NetrcCredentialProvider(router_cfg.get("NETRC_FILE"))
    source = router_cfg.get("CREDENTIALS", "auto")
    if source == "netrc":
        return netrc_provider
    if source == "env":
        return EnvCredentialProvider()
    return ChainCredentialProvider(EnvCredentialProvider(), netrc_provider)


def build_router(config) -> Router:
    router_cfg = config["ROUTER"]
    if not router_cfg.get("HOST"):
        raise ValueError("Router host is missing. Set ROUTER_HOST in .env or 'router' in the config file.")
    return UnifiDreamRouter(
        router_cfg["HOST"],
        credentials=build_credential_provider(router_cfg),
        site=router_cfg.get("SITE") or "default",
        verify_ssl=router_cfg.get("VERIFY_SSL", False),
        timeout=router_cfg.get("TIMEOUT", 15),
        unnamed_client=router_cfg.get("UNNAMED_CLIENT") or DEFAULT_CLIENT_NAME,
    )


def cmd_block(router, config, args):
    client = find_client(router, args.client_name)
    router.block(client)
    print(f"Blocked {client}")


def cmd_unblock(router, config, args):
    client = find_client(router, args.client_name)
    router.unblock(client)
    print(f"Unblocked {client}")


def cmd_clients(router, config, args):
    clients = router.list_online_clients() if args.online else router.list_known_clients()
    for client in clients:
        print(f"{client.name}\t{client.mac_address}")


def cmd_whos_home(router, config, args):
    online = router.list_online_clients()
    logger.debug(f"Online clients {online}")
    for person in who_is_home(config["PERSONS"], online):
        print(f"{person.name} is home")


def _print_changes(result):
    for person in result.arrived:
        print(f"{person.name} arrived")
    for person in result.left:
        print(f"{person.name} left")


def cmd_watch(router, config, args):
    interval = args.interval if args.interval is not None else config["POLL_INTERVAL"]
    watcher = PresenceWatcher(router, config["PERSONS"], on_change=_print_changes)
    watcher.run(interval, count=args.count)


def _positive_int(raw_value):
    try:
        value = int(raw_value)
    except ValueError as err:
        raise argparse.ArgumentTypeError(f"invalid integer value: '{raw_value}'") from err
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Block UniFi clients and see who is home")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose (debug) logging")
    parser.add_argument("--host", help="Router host (overrides ROUTER_HOST)")
    parser.add_argument("--config", help="YAML config file (overrides WHOSHOME_CONFIG)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    block = subparsers.add_parser("block", help="Block a client by name or MAC")
    block.add_argument("client_name")
    block.set_defaults(func=cmd_block)

    unblock = subparsers.add_parser("unblock", help="Unblock a client by name or MAC")
    unblock.add_argument("client_name")
    unblock.set_defaults(func=cmd_unblock)

    clients = subparsers.add_parser("clients", help="List known clients")
    clients.add_argument("--online", action="store_true", help="Only list connected clients")
    clients.set_defaults(func=cmd_clients)

    whos_home = subparsers.add_parser("whos-home", help="Show which configured persons are home")
    whos_home.set_defaults(func=cmd_whos_home)

    watch = subparsers.add_parser("watch", help="Poll the router and report arrivals and departures")
    watch.add_argument("--interval", type=_positive_int, help="Seconds between polls (overrides POLL_INTERVAL)")
    watch.add_argument("--count", type=_positive_int, help="Stop after this many polls")
    watch.set_defaults(func=cmd_watch)
    return parser


def main(argv=None, router: Router | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        config = load_runtime_config(config_path=args.config)
    except (ValueError, OSError) as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"Failed to load runtime configuration: {e}")
        raise SystemExit(1)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logging(log_level, logs_dir=config.get("LOG_DIR"))
    if args.verbose:
        logger.debug("Verbose logging enabled")
    if args.host:
        config["ROUTER"]["HOST"] = args.host

    try:
        router = router or build_router(config)
    except ValueError as e:
        logger.error(str(e))
        raise SystemExit(1)

    try:
        with router:
            args.func(router, config, args)
    except LookupError as e:
        logger.error(str(e))
        raise SystemExit(1)
    except RouterError as e:
        logger.error(f"Router request failed: {e}")
        raise SystemExit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    main()
