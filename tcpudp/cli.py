"""
Command line entry point

    tcpudp send --host 192.168.0.10 --port 7000 --terminator crlf "PWR%01"
    tcpudp serve --port 8000
"""
import argparse
import asyncio
import sys
from typing import Dict, List, Optional

import structlog
from pydantic import ValidationError

from tcpudp.config import settings
from tcpudp.engine.command_sender import CommandSender
from tcpudp.host import StandaloneHost
from tcpudp.logging import setup_logging
from tcpudp.models import ConnectionConfig, ConnectionState, Terminator, TransportProtocol

logger = structlog.get_logger()

POLL_INTERVAL_SEC = 0.05


def parse_variables(pairs: List[str]) -> Dict[str, str]:
    """Turn ``namespace:name=value`` arguments into a variable table."""
    variables = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or ":" not in name:
            raise argparse.ArgumentTypeError(f"Expected namespace:name=value, got {pair!r}")
        variables[name] = value
    return variables


async def wait_until_ready(sender: CommandSender, timeout_sec: float) -> bool:
    """Wait for the handle to leave the connecting state."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_sec
    while sender.state == ConnectionState.CONNECTING and loop.time() < deadline:
        await asyncio.sleep(POLL_INTERVAL_SEC)
    return sender.state == ConnectionState.CONNECTED


async def send_once(
    config: ConnectionConfig,
    command: str,
    terminator: Terminator,
    wait_sec: float,
    variables: Optional[Dict[str, str]] = None,
) -> bool:
    """Connect, send a single command and tear the transport down."""
    host = StandaloneHost(variables=variables)
    sender = CommandSender(host)
    sender.configure(config)
    try:
        if config.transport == TransportProtocol.TCP:
            await wait_until_ready(sender, wait_sec)
        else:
            # let the datagram endpoint attach
            await asyncio.sleep(0)
        sent = sender.send(command, terminator)
        # give the loop a turn to flush the write buffer
        await asyncio.sleep(0)
    finally:
        sender.teardown()

    logger.info(
        "send_finished",
        sent=sent,
        status=host.level.value,
        message=host.message,
    )
    return sent


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tcpudp",
        description="Send text/hex commands to a device over TCP or UDP",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Logging level (debug, info, warning, error)",
    )
    subparsers = parser.add_subparsers(dest="command_name", required=True)

    send = subparsers.add_parser("send", help="Send a single command")
    send.add_argument("--host", required=True, help="Target IP address")
    send.add_argument("--port", type=int, default=settings.target_port, help="Target port")
    send.add_argument(
        "--transport",
        choices=[TransportProtocol.TCP.value, TransportProtocol.UDP.value],
        default=TransportProtocol.TCP.value,
        help="Transport used to reach the target",
    )
    send.add_argument(
        "--terminator",
        choices=[member.name.lower() for member in Terminator],
        default=Terminator.LF.name.lower(),
        help="Bytes appended to the command",
    )
    send.add_argument(
        "--wait",
        type=float,
        default=settings.connect_timeout_sec,
        help="Seconds to wait for the TCP connection",
    )
    send.add_argument(
        "--var",
        action="append",
        default=[],
        metavar="NAMESPACE:NAME=VALUE",
        help="Variable available to $(namespace:name) references",
    )
    send.add_argument("command", help="Command text; %%hh inserts a hex byte")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.api_host, help="Bind address")
    serve.add_argument("--port", type=int, default=settings.api_port, help="Bind port")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command_name == "serve":
        import uvicorn

        setup_logging("api", args.log_level)
        uvicorn.run("tcpudp.api.server:app", host=args.host, port=args.port)
        return 0

    setup_logging("cli", args.log_level)
    try:
        config = ConnectionConfig(host=args.host, port=args.port, transport=args.transport)
        variables = parse_variables(args.var)
    except (ValidationError, argparse.ArgumentTypeError) as e:
        parser.error(str(e))

    sent = asyncio.run(send_once(
        config,
        args.command,
        Terminator.parse(args.terminator),
        args.wait,
        variables,
    ))
    return 0 if sent else 1


if __name__ == "__main__":
    sys.exit(main())
