"""
Tests for the command line entry point.
"""
import argparse
import socket

import pytest

from device_simulator import DeviceSimulator
from tcpudp import cli
from tcpudp.config import settings
from tcpudp.models import ConnectionConfig, Terminator


def test_parse_variables():
    assert cli.parse_variables(["custom:input=%02", "dev:name=a=b"]) == {
        "custom:input": "%02",
        "dev:name": "a=b",
    }


@pytest.mark.parametrize("pair", ["novalue", "nonamespace=1"])
def test_parse_variables_rejects_bad_pairs(pair):
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_variables([pair])


def test_send_arguments():
    args = cli.build_parser().parse_args(
        ["send", "--host", "10.0.0.5", "--transport", "udp", "--terminator", "crlf", "PING"]
    )

    assert args.command_name == "send"
    assert args.port == settings.target_port
    assert args.terminator == "crlf"
    assert args.command == "PING"


def test_invalid_host_exits(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "log_dir", tmp_path)

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["send", "--host", "not-an-ip", "PING"])

    assert exc_info.value.code == 2


@pytest.mark.asyncio
async def test_send_once_over_udp():
    device = await DeviceSimulator(reply=None).start()

    sent = await cli.send_once(
        ConnectionConfig(transport="udp", host="127.0.0.1", port=device.udp_port),
        "VOL $(mixer:level)%0D",
        Terminator.NONE,
        wait_sec=1.0,
        variables={"mixer:level": "42"},
    )

    assert sent is True
    assert await device.next_command() == ("udp", b"VOL 42\r")
    await device.stop()


@pytest.mark.asyncio
async def test_send_once_over_tcp():
    device = await DeviceSimulator().start()

    sent = await cli.send_once(
        ConnectionConfig(transport="tcp", host="127.0.0.1", port=device.tcp_port),
        "PING",
        Terminator.CRLF,
        wait_sec=2.0,
    )

    assert sent is True
    assert await device.next_command() == ("tcp", b"PING\r\n")
    await device.stop()


@pytest.mark.asyncio
async def test_send_once_refused_tcp():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]

    sent = await cli.send_once(
        ConnectionConfig(transport="tcp", host="127.0.0.1", port=port),
        "PING",
        Terminator.LF,
        wait_sec=1.0,
    )

    assert sent is False
