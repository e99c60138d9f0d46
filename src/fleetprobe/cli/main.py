"""
Command-line interface for the fleetprobe agent.

Subcommands:
- ``agent``: run the probe / relay loop from a configuration file until
  SIGINT or SIGTERM
- ``ping``, ``tcp``, ``http``, ``command``: run a single probe once against
  an explicit target and print its samples as JSON lines
"""

import argparse
import json
import logging
import sys
import threading
import tomllib
from typing import List, Optional, Tuple

from .. import __version__
from ..config.validators import HTTP_METHODS
from ..models.host import Host
from ..orchestration import Orchestrator, SignalHandler
from ..probes import AbstractProbe, CommandProbe, HttpProbe, PingProbe, ProbeError, TcpProbe
from ..validation import (
    ValidationError,
    handle_cli_error,
    validate_enum_choice,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
)

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Host used by the one-shot probe subcommands.
ONE_SHOT_HOST = Host(id="", name="localhost")


def _parse_header(value: str) -> Tuple[str, str]:
    name, sep, header_value = value.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"header must look like 'Name: value', got {value!r}")
    return name.strip(), header_value.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fleetprobe",
        description="Probe a fleet of monitored hosts and relay the results to Mackerel.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help=f"Logging level, one of {', '.join(LOG_LEVELS)}. Defaults to INFO.",
    )
    subparsers = parser.add_subparsers(dest="command_name", required=True)

    agent = subparsers.add_parser("agent", help="Run the probing agent.")
    agent.add_argument(
        "-c", "--config", required=True, help="Path to the TOML configuration file."
    )

    ping = subparsers.add_parser("ping", help="Run a ping probe once.")
    ping.add_argument("address", help="Address to ping.")
    ping.add_argument("--count", default=3, help="Number of echo requests (default 3).")
    ping.add_argument("--timeout", default=1.0, help="Seconds to wait per reply (default 1).")
    ping.add_argument("--metric-key-prefix", default="ping")

    tcp = subparsers.add_parser("tcp", help="Run a TCP probe once.")
    tcp.add_argument("host", help="Host to connect to.")
    tcp.add_argument("port", help="Port to connect to.")
    tcp.add_argument("--timeout", default=5.0, help="Seconds for the whole check (default 5).")
    tcp.add_argument("--send", default="", help="String to send after connecting.")
    tcp.add_argument("--quit", default="", help="String to send before closing.")
    tcp.add_argument("--expect", default="", help="Regular expression the response must match.")
    tcp.add_argument("--tls", action="store_true", help="Connect over TLS.")
    tcp.add_argument("--no-check-certificate", action="store_true")
    tcp.add_argument("--metric-key-prefix", default="tcp")

    http = subparsers.add_parser("http", help="Run an HTTP probe once.")
    http.add_argument("url", help="URL to request.")
    http.add_argument("--method", default="GET", help="HTTP method (default GET).")
    http.add_argument(
        "-H", "--header", dest="headers", action="append", type=_parse_header, default=[],
        help="Request header 'Name: value'; may be repeated.",
    )
    http.add_argument("--body", default="", help="Request body.")
    http.add_argument("--expect", default="", help="Regular expression the body must match.")
    http.add_argument("--timeout", default=15.0, help="Request timeout in seconds (default 15).")
    http.add_argument("--no-check-certificate", action="store_true")
    http.add_argument("--metric-key-prefix", default="http")

    command = subparsers.add_parser("command", help="Run a command probe once.")
    command.add_argument("command", help="Shell command printing 'name\\tvalue\\tepoch' lines.")
    command.add_argument("--timeout", default=15.0, help="Seconds before the command is killed.")

    return parser


def create_one_shot_probe(args: argparse.Namespace) -> AbstractProbe:
    """
    Build the probe requested by a one-shot subcommand.

    Raises:
        ValidationError: If an argument is out of range.
    """
    if args.command_name == "ping":
        return PingProbe(
            ONE_SHOT_HOST,
            address=args.address,
            count=validate_positive_integer(
                int(args.count), min_value=1, max_value=100, field_name="--count"
            ),
            timeout=validate_positive_float(
                float(args.timeout), min_value=0.1, field_name="--timeout"
            ),
            metric_key_prefix=args.metric_key_prefix,
        )
    if args.command_name == "tcp":
        if args.expect:
            validate_regex_pattern(args.expect, field_name="--expect")
        return TcpProbe(
            ONE_SHOT_HOST,
            address=args.host,
            port=str(validate_positive_integer(
                int(args.port), min_value=1, max_value=65535, field_name="port"
            )),
            timeout=validate_positive_float(
                float(args.timeout), min_value=0.1, field_name="--timeout"
            ),
            send=args.send,
            quit=args.quit,
            expect_pattern=args.expect,
            tls=args.tls,
            no_check_certificate=args.no_check_certificate,
            metric_key_prefix=args.metric_key_prefix,
        )
    if args.command_name == "http":
        if args.expect:
            validate_regex_pattern(args.expect, field_name="--expect")
        return HttpProbe(
            ONE_SHOT_HOST,
            url=args.url,
            method=validate_enum_choice(
                args.method,
                choices=HTTP_METHODS,
                field_name="--method",
                case_sensitive=False,
            ),
            headers=args.headers,
            body=args.body,
            expect_pattern=args.expect,
            timeout=validate_positive_float(
                float(args.timeout), min_value=0.1, field_name="--timeout"
            ),
            no_check_certificate=args.no_check_certificate,
            metric_key_prefix=args.metric_key_prefix,
        )
    if args.command_name == "command":
        return CommandProbe(
            ONE_SHOT_HOST,
            command=args.command,
            timeout=validate_positive_float(
                float(args.timeout), min_value=0.1, field_name="--timeout"
            ),
        )
    raise ValueError(f"unknown probe subcommand {args.command_name!r}")


def run_agent(config_path: str) -> None:
    cancel_event = threading.Event()
    orchestrator = Orchestrator(config_path, cancel_event=cancel_event)
    with SignalHandler(cancel_event):
        try:
            orchestrator.run()
        except (FileNotFoundError, tomllib.TOMLDecodeError, ValidationError) as e:
            handle_cli_error(error=e, context="configuration loading", exit_code=1, logger=logger)


def run_one_shot(args: argparse.Namespace) -> None:
    try:
        probe = create_one_shot_probe(args)
    except (ValueError, ValidationError) as e:
        handle_cli_error(error=e, context="argument validation", exit_code=2, logger=logger)

    cancel_event = threading.Event()
    with SignalHandler(cancel_event):
        logger.debug(f"Running {probe.describe()}")
        try:
            samples = probe.run(cancel_event)
        except ProbeError as e:
            handle_cli_error(error=e, context=probe.describe(), exit_code=1, logger=logger)

    for sample in samples:
        print(json.dumps(sample.to_wire()), flush=True)


def main_cli(argv: Optional[List[str]] = None) -> None:
    """
    Main command-line interface for fleetprobe.

    Raises:
        SystemExit: On invalid arguments, configuration errors at startup, or
                    a one-shot probe that could not run.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        log_level = validate_enum_choice(
            args.log_level, choices=list(LOG_LEVELS), field_name="--log-level", case_sensitive=False
        )
    except ValidationError as e:
        handle_cli_error(error=e, context="log level validation", exit_code=2, logger=logger)
    logging.getLogger().setLevel(log_level)

    if args.command_name == "agent":
        run_agent(args.config)
    else:
        run_one_shot(args)


if __name__ == "__main__":
    main_cli()
