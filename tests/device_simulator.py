"""Loopback device that prints every command it receives over TCP and UDP."""
from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional, Tuple


COLORS = {
    "reset": "\033[0m",
    "blue": "\033[94m",
    "green": "\033[92m",
    "magenta": "\033[95m",
}


class _UDPListener(asyncio.DatagramProtocol):
    def __init__(self, device: "DeviceSimulator"):
        self.device = device
        self.transport: Optional[asyncio.DatagramTransport] = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = transport  # type: ignore

    def datagram_received(self, data: bytes, addr: tuple) -> None:
        self.device.record("udp", data, addr)
        if self.device.reply is not None:
            self.transport.sendto(self.device.reply, addr)


class DeviceSimulator:
    """
    Accepts commands on one TCP and one UDP port.

    Received payloads are kept in ``commands`` and queued so tests can
    await them. ``reply`` (if set) is sent back for every command.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 0, reply: Optional[bytes] = b"OK\r\n", verbose: bool = False):
        self.host = host
        self.port = port
        self.reply = reply
        self.verbose = verbose
        self.commands: List[Tuple[str, bytes]] = []
        self.queue: asyncio.Queue = asyncio.Queue()
        self.tcp_port: Optional[int] = None
        self.udp_port: Optional[int] = None
        self._server: Optional[asyncio.base_events.Server] = None
        self._udp: Optional[asyncio.DatagramTransport] = None
        self._color_enabled = sys.stdout.isatty()

    async def start(self) -> "DeviceSimulator":
        loop = asyncio.get_running_loop()
        self._server = await asyncio.start_server(self._handle_tcp, self.host, self.port)
        self.tcp_port = self._server.sockets[0].getsockname()[1]
        self._udp, _ = await loop.create_datagram_endpoint(
            lambda: _UDPListener(self),
            local_addr=(self.host, self.port or 0),
        )
        self.udp_port = self._udp.get_extra_info("sockname")[1]
        self._print(f"tcp {self.host}:{self.tcp_port}  udp {self.host}:{self.udp_port}", "magenta")
        return self

    async def stop(self) -> None:
        if self._udp is not None:
            self._udp.close()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()

    async def next_command(self, timeout: float = 2.0) -> Tuple[str, bytes]:
        return await asyncio.wait_for(self.queue.get(), timeout)

    def record(self, protocol: str, data: bytes, addr: tuple) -> None:
        self.commands.append((protocol, data))
        self.queue.put_nowait((protocol, data))
        self._print(f"{protocol} {addr[0]}:{addr[1]} ({len(data)} bytes): {data.hex(' ')}", "green")

    async def _handle_tcp(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        addr = writer.get_extra_info("peername")
        self._print(f"tcp client {addr[0]}:{addr[1]} connected", "blue")
        try:
            while True:
                data = await reader.read(4096)
                if not data:
                    break
                self.record("tcp", data, addr)
                if self.reply is not None:
                    writer.write(self.reply)
                    await writer.drain()
        except ConnectionError:
            pass
        finally:
            writer.close()

    def _print(self, message: str, color: str) -> None:
        if not self.verbose:
            return
        if self._color_enabled:
            message = f"{COLORS[color]}{message}{COLORS['reset']}"
        print(message)


async def _serve(host: str, port: int, reply: Optional[bytes]) -> None:
    device = await DeviceSimulator(host, port, reply=reply, verbose=True).start()
    try:
        await asyncio.Event().wait()
    finally:
        await device.stop()


def main() -> None:
    parser = argparse.ArgumentParser(description="Loopback command target")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=7000, help="Port for both TCP and UDP")
    parser.add_argument("--silent", action="store_true", help="Do not answer commands")
    args = parser.parse_args()
    try:
        asyncio.run(_serve(args.host, args.port, None if args.silent else b"OK\r\n"))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
