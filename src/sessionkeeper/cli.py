"""
sessionkeeper CLI.

Provides subcommands:
- sessionkeeper start: Bootstrap the session and run the connection client
- sessionkeeper pull: Download the session from the configured sources
- sessionkeeper push: Upload the local session to remote storage
- sessionkeeper version: Display version information
"""

import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger

from sessionkeeper.acquirer import SessionAcquirer
from sessionkeeper.bootstrap import BootstrapController
from sessionkeeper.client import load_client_factory
from sessionkeeper.config import SessionConfig, load_config
from sessionkeeper.errors import ConfigurationIncomplete, CriticalStartupFailure
from sessionkeeper.log import setup_logging
from sessionkeeper.publisher import SessionPublisher
from sessionkeeper.storage.local import CredentialStore


def get_version() -> str:
    try:
        from importlib.metadata import version

        return version("sessionkeeper")
    except Exception:
        return "0.1.0"


def _load_config(args) -> SessionConfig:
    try:
        config = load_config()
    except ConfigurationIncomplete as e:
        print(f"Error: {e}")
        sys.exit(1)

    if getattr(args, "session_dir", None):
        config.session_dir = Path(args.session_dir).expanduser()
    if getattr(args, "port", None):
        config.port = args.port
    if getattr(args, "client", None):
        config.client = args.client
    if getattr(args, "log_level", None):
        config.log_level = args.log_level.upper()

    setup_logging(config.log_level)
    return config


def build_controller(config: SessionConfig) -> BootstrapController:
    if not config.client:
        raise CriticalStartupFailure(
            "No connection client configured: pass --client or set SESSION_CLIENT"
        )

    try:
        factory = load_client_factory(config.client)
        client = factory(config)
    except Exception as e:
        raise CriticalStartupFailure(f"Could not create connection client: {e}") from e

    store = CredentialStore(config.session_dir)
    return BootstrapController(
        store,
        SessionAcquirer.from_config(config, store),
        SessionPublisher.from_config(config, store),
        client,
    )


def cmd_version(args):
    print(f"sessionkeeper version {get_version()}")
    print(f"Python {sys.version}")


def cmd_start(args):
    config = _load_config(args)

    try:
        controller = build_controller(config)
        from sessionkeeper.server import run_server

        run_server(controller, host=args.host, port=config.port)
    except CriticalStartupFailure as e:
        logger.critical(f"Critical error: {e}")
        sys.exit(1)


def cmd_pull(args):
    config = _load_config(args)
    store = CredentialStore(config.session_dir)

    if store.exists() and not args.force:
        logger.info(f"Session file already present at {store.creds_path}")
        return

    result = asyncio.run(SessionAcquirer.from_config(config, store).acquire())
    if not result.found:
        sys.exit(1)


def cmd_push(args):
    config = _load_config(args)
    store = CredentialStore(config.session_dir)

    if not asyncio.run(SessionPublisher.from_config(config, store).publish()):
        sys.exit(1)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--session-dir",
        type=str,
        default=None,
        help="Directory holding creds.json (default: SESSION_DIR or ./session)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (default: LOG_LEVEL or INFO)",
    )


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sessionkeeper",
        description="sessionkeeper - session bootstrap and backup for long-lived clients",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
        required=True,
    )

    start_parser = subparsers.add_parser(
        "start",
        help="Bootstrap the session and start the connection client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sessionkeeper start --client mybot.client:create_client
  sessionkeeper start --client mybot.client:create_client --port 8080
  SESSION_ID='Ethix-MD&abc123' sessionkeeper start --client mybot.client:create_client
        """,
    )
    _add_common_arguments(start_parser)
    start_parser.add_argument(
        "--client",
        type=str,
        default=None,
        help="Connection client factory as 'module:factory' (default: SESSION_CLIENT)",
    )
    start_parser.add_argument(
        "--port", type=int, default=None, help="Health endpoint port (default: PORT or 3000)"
    )
    start_parser.add_argument(
        "--host", type=str, default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)"
    )
    start_parser.set_defaults(func=cmd_start)

    pull_parser = subparsers.add_parser(
        "pull",
        help="Download the session from remote storage or the legacy paste",
    )
    _add_common_arguments(pull_parser)
    pull_parser.add_argument(
        "--force",
        action="store_true",
        help="Download even if a local session file exists",
    )
    pull_parser.set_defaults(func=cmd_pull)

    push_parser = subparsers.add_parser(
        "push",
        help="Upload the local session to remote storage",
    )
    _add_common_arguments(push_parser)
    push_parser.set_defaults(func=cmd_push)

    version_parser = subparsers.add_parser(
        "version",
        help="Display version information",
    )
    version_parser.set_defaults(func=cmd_version)

    return parser


def main(argv=None):
    parser = create_parser()
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
