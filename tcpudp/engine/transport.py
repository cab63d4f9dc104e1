"""
Transport handles

Long-lived TCP and UDP objects that the command sender owns. Each handle
reports its lifecycle through events instead of return values:

- ``status_change(level, message)``: health changed
- ``connect()``: TCP connection established
- ``data(payload)``: bytes received from the target
- ``error(exc)``: socket failure, ``exc`` is a TransportError

Handles schedule their I/O on the running asyncio loop, so they must be
created from inside it. ``send`` never blocks: data goes straight into the
socket (or asyncio's write buffer) or the call raises TransportError.
"""
from __future__ import annotations

import asyncio
import ipaddress
import socket
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Callable, DefaultDict, List, Optional

import structlog

from tcpudp.config import settings
from tcpudp.exceptions import (
    TransportError,
    ConnectionRefusedError as SenderConnectionRefusedError,
    ConnectionTimeoutError,
    SendError,
)
from tcpudp.models import ConnectionConfig, StatusLevel, TransportProtocol

logger = structlog.get_logger()

EVENTS = ("status_change", "connect", "data", "error")


class TransportHandle(ABC):
    """
    Base class for TCP/UDP handles.

    Once destroyed a handle never calls a listener again, even if a
    socket callback was already queued on the loop.
    """

    protocol: TransportProtocol

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self._listeners: DefaultDict[str, List[Callable]] = defaultdict(list)
        self._destroyed = False
        self._task: Optional[asyncio.Task] = None

    def on(self, event: str, callback: Callable) -> "TransportHandle":
        if event not in EVENTS:
            raise ValueError(f"Unknown event: {event}")
        self._listeners[event].append(callback)
        return self

    def remove_all_listeners(self) -> None:
        self._listeners.clear()

    def _emit(self, event: str, *args) -> None:
        if self._destroyed:
            return
        for callback in list(self._listeners.get(event, ())):
            callback(*args)

    def _fail(self, error: TransportError) -> None:
        logger.debug(
            "transport_error",
            protocol=self.protocol.value,
            host=self.host,
            port=self.port,
            error=error.message,
        )
        self._emit("error", error)

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Whether a send would reach the socket."""

    @abstractmethod
    def send(self, data: bytes) -> None:
        """
        Hand data to the socket.

        Raises:
            TransportError: If the handle cannot send
        """

    @abstractmethod
    def _close(self) -> None:
        """Release the socket and background task."""

    def destroy(self) -> None:
        """Silence all listeners and release the socket. Idempotent."""
        if self._destroyed:
            return
        self._destroyed = True
        self.remove_all_listeners()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._close()
        logger.debug(
            "transport_destroyed",
            protocol=self.protocol.value,
            host=self.host,
            port=self.port,
        )


class TCPClient(TransportHandle):
    """
    Persistent TCP client.

    Connects once in the background; a dropped or refused connection is
    reported and left alone until the owner creates a new handle.
    """

    protocol = TransportProtocol.TCP

    def __init__(self, host: str, port: int, timeout_sec: Optional[float] = None):
        super().__init__(host, port)
        self.timeout_sec = timeout_sec if timeout_sec is not None else settings.connect_timeout_sec

        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._connected = False

        self._task = asyncio.get_running_loop().create_task(self._run())

    @property
    def connected(self) -> bool:
        return self._connected and self._writer is not None and not self._destroyed

    async def _run(self) -> None:
        self._emit("status_change", StatusLevel.WARNING, "Connecting")

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.timeout_sec,
            )
        except asyncio.TimeoutError:
            self._fail(ConnectionTimeoutError(
                f"Connection timeout to {self.host}:{self.port}",
                details={"timeout_sec": self.timeout_sec},
            ))
            return
        except ConnectionRefusedError as e:
            self._fail(SenderConnectionRefusedError(
                f"Connection refused by {self.host}:{self.port}",
                details={"error": str(e)},
            ))
            return
        except OSError as e:
            self._fail(TransportError(
                f"Failed to connect to {self.host}:{self.port}: {e}",
                details={"error": str(e)},
            ))
            return

        self._connected = True
        logger.debug("tcp_connected", host=self.host, port=self.port)
        self._emit("connect")
        self._emit("status_change", StatusLevel.OK, None)

        await self._read_loop()

    async def _read_loop(self) -> None:
        while True:
            try:
                data = await self._reader.read(settings.tcp_read_size)
            except OSError as e:
                self._connected = False
                self._fail(TransportError(
                    f"Connection to {self.host}:{self.port} lost: {e}",
                    details={"error": str(e)},
                ))
                return

            if not data:
                self._connected = False
                logger.debug("tcp_closed_by_peer", host=self.host, port=self.port)
                self._emit("status_change", StatusLevel.ERROR, "Connection closed by peer")
                return

            self._emit("data", data)

    def send(self, data: bytes) -> None:
        if not self.connected:
            raise TransportError("Not connected")

        try:
            self._writer.write(data)
        except (OSError, RuntimeError) as e:
            self._connected = False
            raise SendError(
                f"Failed to send data to {self.host}:{self.port}",
                details={"error": str(e), "data_size": len(data)},
            )

    def _close(self) -> None:
        if self._writer is not None:
            # close() flushes anything still buffered before the FIN
            self._writer.close()
        self._reader = None
        self._writer = None
        self._connected = False


class _UDPProtocol(asyncio.DatagramProtocol):
    def __init__(self, client: "UDPClient"):
        self.client = client

    def datagram_received(self, data: bytes, addr: tuple) -> None:
        self.client._emit("data", data)

    def error_received(self, exc: Exception) -> None:
        self.client._fail(TransportError(
            f"UDP error from {self.client.host}:{self.client.port}: {exc}",
            details={"error": str(exc)},
        ))


class UDPClient(TransportHandle):
    """
    UDP datagram sender.

    The socket is bound synchronously so sends work before the asyncio
    endpoint (which delivers replies and ICMP errors) is attached.
    """

    protocol = TransportProtocol.UDP

    def __init__(self, host: str, port: int, bind_host: Optional[str] = None):
        super().__init__(host, port)
        self.address = (host, port)

        if ipaddress.ip_address(host).version == 6:
            family, default_bind = socket.AF_INET6, "::"
        else:
            family, default_bind = socket.AF_INET, settings.udp_bind_host

        self._sock = self._bind(family, bind_host or default_bind)

        self._endpoint: Optional[asyncio.DatagramTransport] = None
        self._task = asyncio.get_running_loop().create_task(self._open())

    @property
    def connected(self) -> bool:
        return not self._destroyed

    def _bind(self, family: int, bind_host: str) -> socket.socket:
        try:
            sock = socket.socket(family, socket.SOCK_DGRAM)
        except OSError as e:
            raise TransportError(
                f"Failed to create UDP socket for {self.host}:{self.port}: {e}",
                details={"error": str(e)},
            )
        try:
            sock.setblocking(False)
            sock.bind((bind_host, 0))
        except OSError as e:
            sock.close()
            raise TransportError(
                f"Failed to bind UDP socket to {bind_host}: {e}",
                details={"error": str(e), "bind_host": bind_host},
            )
        return sock

    async def _open(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            self._endpoint, _ = await loop.create_datagram_endpoint(
                lambda: _UDPProtocol(self),
                sock=self._sock,
            )
        except OSError as e:
            self._fail(TransportError(
                f"Failed to open UDP socket for {self.host}:{self.port}: {e}",
                details={"error": str(e)},
            ))
            return

        logger.debug("udp_listening", host=self.host, port=self.port)
        self._emit("status_change", StatusLevel.OK, None)

    def send(self, data: bytes) -> None:
        if self._destroyed:
            raise TransportError("Handle destroyed")

        if self._endpoint is not None:
            self._endpoint.sendto(data, self.address)
            return

        try:
            self._sock.sendto(data, self.address)
        except OSError as e:
            raise SendError(
                f"Failed to send datagram to {self.host}:{self.port}",
                details={"error": str(e), "data_size": len(data)},
            )

    def _close(self) -> None:
        if self._endpoint is not None:
            self._endpoint.close()
            self._endpoint = None
        else:
            self._sock.close()


class TransportFactory:
    """Creates the handle matching a configuration."""

    @staticmethod
    def create(config: ConnectionConfig) -> TransportHandle:
        if config.host is None:
            raise TransportError("Cannot open a transport without a host")
        if config.transport == TransportProtocol.UDP:
            return UDPClient(config.host, config.port)
        return TCPClient(config.host, config.port)
