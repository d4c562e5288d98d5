# src/app/cli.py

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from env.loader import load_environment
from .logging_config import configure_logging
from .runtime import serve


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minebuddy-relay",
        description="MineBuddy relay: HTTP + WebSocket control plane for a game bot.",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help=(
            "Directory holding server.yaml and bot.yaml (default: $MINEBUDDY_CONFIG_DIR, "
            "else config/ in the source checkout; set one of them for a wheel install)"
        ),
    )
    parser.add_argument("--host", default=None, help="Override server.host")
    parser.add_argument("--port", type=int, default=None, help="Override server.port")
    parser.add_argument("--log-level", default=None, help="Override logging.level")
    parser.add_argument(
        "--tui",
        action="store_true",
        help="Show the rich terminal dashboard (logs go to stderr)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    env = load_environment(args.config_dir)
    configure_logging(
        args.log_level or env.server.log_level,
        stream=sys.stderr if args.tui else sys.stdout,
    )

    try:
        asyncio.run(serve(env, host=args.host, port=args.port, tui=args.tui))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
