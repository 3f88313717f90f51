"""
Bot Configuration
Command-line flags, environment fallbacks and logging setup.
"""

import os
import sys
import logging
import argparse
from dataclasses import dataclass
from typing import FrozenSet, List, Mapping, Optional

from transmission_telegram.utils.auth import normalize_identity

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger("transmission_telegram")

DEFAULT_RPC_URL = "http://localhost:9091/transmission/rpc"

# Live updates: seconds between edits and how many edits happen
LIVE_INTERVAL = 5.0
LIVE_TICKS = 10

USAGE = (
    "transmission-telegram <-token=TOKEN> <-master=@tuser> [-master=@yuser2] "
    "[-url=http://] [-username=user] [-password=pass]"
)


@dataclass(frozen=True)
class Config:
    """Runtime settings, loaded once at startup."""
    token: str
    masters: FrozenSet[str]
    rpc_url: str = DEFAULT_RPC_URL
    username: Optional[str] = None
    password: Optional[str] = None
    logfile: Optional[str] = None
    transmission_logfile: Optional[str] = None
    no_live: bool = False
    live_interval: float = LIVE_INTERVAL
    live_ticks: int = LIVE_TICKS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="transmission-telegram", usage=USAGE)
    parser.add_argument(
        "-token", "--token", default="",
        help="Telegram bot token, can be passed via environment variable 'TT_BOTT'",
    )
    parser.add_argument(
        "-master", "--master", action="append", default=[],
        help="Your telegram handler, so the bot will only respond to you. Can specify more than one",
    )
    parser.add_argument("-url", "--url", default="", help="Transmission RPC URL")
    parser.add_argument("-username", "--username", default="", help="Transmission username")
    parser.add_argument("-password", "--password", default="", help="Transmission password")
    parser.add_argument("-logfile", "--logfile", default="", help="Send logs to a file")
    parser.add_argument(
        "-transmission-logfile", "--transmission-logfile", default="",
        help="Open transmission logfile to monitor torrents completion",
    )
    parser.add_argument(
        "-no-live", "--no-live", action="store_true",
        help="Don't edit and update info after sending",
    )
    parser.add_argument(
        "-interval", "--interval", type=float, default=LIVE_INTERVAL,
        help="Seconds between live updates",
    )
    parser.add_argument(
        "-duration", "--duration", type=int, default=LIVE_TICKS,
        help="How many live updates happen before a message is frozen",
    )
    return parser


def load_config(argv: Optional[List[str]] = None, environ: Optional[Mapping[str, str]] = None) -> Config:
    """Parse flags, fill the gaps from the environment, exit with usage if mandatory values are missing."""
    environ = os.environ if environ is None else environ
    parser = build_parser()
    args = parser.parse_args(argv)

    # If we don't have a token passed, check the environment variable "TT_BOTT"
    token = args.token or environ.get("TT_BOTT", "")

    masters = list(args.master)
    if not masters:
        masters = environ.get("TT_MASTERS", "").split(",")
    # Make sure that the handlers don't contain @
    masters = frozenset(filter(None, (normalize_identity(m) for m in masters)))

    if not token or not masters:
        print("Error: Mandatory argument missing! (-token or -master)\n", file=sys.stderr)
        parser.print_help(sys.stderr)
        sys.exit(1)

    username, password = args.username, args.password
    # If the username flag isn't set, look into the environment variable "TR_AUTH"
    if not username:
        values = environ.get("TR_AUTH", "").split(":", 1)
        if len(values) > 1:
            username, password = values[0], values[1]

    return Config(
        token=token,
        masters=masters,
        rpc_url=args.url or environ.get("TR_URL", DEFAULT_RPC_URL),
        username=username or None,
        password=password or None,
        logfile=args.logfile or None,
        transmission_logfile=args.transmission_logfile or None,
        no_live=args.no_live,
        live_interval=max(args.interval, 0.0),
        live_ticks=max(args.duration, 0),
    )


def setup_logging(logfile: Optional[str] = None) -> None:
    """Configure logging; append to a file when one is given."""
    logging.basicConfig(
        format=LOG_FORMAT, level=logging.INFO, filename=logfile, filemode="a"
    )
    # Reduce httpx logging verbosity (suppress polling requests)
    logging.getLogger("httpx").setLevel(logging.WARNING)
