"""
Command Sender - sends user commands to a device over TCP or UDP.

Owns at most one transport handle at a time. Every (re)configuration
destroys the current handle before a new one is created, and the handle's
events are relayed to the host as status updates.
"""
from __future__ import annotations

from functools import partial
from typing import Callable, Optional, Union

import structlog

from tcpudp.engine.escapes import build_command
from tcpudp.engine.transport import TransportFactory, TransportHandle
from tcpudp.exceptions import TransportError
from tcpudp.host import Host
from tcpudp.models import (
    ConnectionConfig,
    ConnectionState,
    StatusLevel,
    Terminator,
    TransportProtocol,
)

logger = structlog.get_logger()

_STATE_BY_LEVEL = {
    StatusLevel.OK: ConnectionState.CONNECTED,
    StatusLevel.WARNING: ConnectionState.CONNECTING,
    StatusLevel.ERROR: ConnectionState.ERROR,
}


class CommandSender:
    """
    Sends commands plus a terminator to the configured target.

    Args:
        host: Collaborator used for status, logging and variables
        config: Initial configuration; nothing is opened until init()
            or configure() is called
        transport_factory: Builds a handle from a configuration
    """

    def __init__(
        self,
        host: Host,
        config: Optional[ConnectionConfig] = None,
        transport_factory: Callable[[ConnectionConfig], TransportHandle] = TransportFactory.create,
    ):
        self.host = host
        self._config = config or ConnectionConfig()
        self._transport_factory = transport_factory
        self._handle: Optional[TransportHandle] = None
        self._state = ConnectionState.IDLE

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def handle(self) -> Optional[TransportHandle]:
        return self._handle

    def init(self) -> None:
        """Open a handle for the current configuration."""
        self._open()

    def configure(self, config: ConnectionConfig) -> None:
        """Replace the configuration and reopen the transport."""
        self._release()
        self._config = config
        self._open()

    def teardown(self) -> None:
        """Destroy the active handle, if any. Idempotent."""
        self._release()
        self._state = ConnectionState.IDLE
        logger.debug("sender_teardown", host=self._config.host, port=self._config.port)

    def prepare(
        self,
        raw_command: Optional[str],
        terminator: Union[Terminator, str, None] = Terminator.LF,
    ) -> bytes:
        """Resolve variables and build the outbound buffer without sending it."""
        command = self.host.resolve_variables(raw_command or "")
        return build_command(command, terminator)

    def send(
        self,
        raw_command: Optional[str],
        terminator: Union[Terminator, str, None] = Terminator.LF,
    ) -> bool:
        """
        Resolve, decode and transmit one command.

        Returns:
            True if the buffer was handed to the transport, False if it was
            skipped (empty, TCP not connected, no handle, send failure)
        """
        return self.transmit(self.prepare(raw_command, terminator))

    def transmit(self, payload: bytes) -> bool:
        """
        Hand an already built buffer to the transport.

        Applies the same skip rules as send(); no variables are resolved.
        """
        if not payload:
            self.host.log("debug", "Empty command, nothing to send")
            return False

        config = self._config
        handle = self._handle

        if config.transport == TransportProtocol.TCP:
            self.host.log("debug", f"sending {payload!r} to {config.host}")
            if handle is None or not handle.connected:
                self.host.log("debug", "Socket not connected :(")
                return False
        elif handle is None:
            self.host.log("debug", "No UDP socket, command dropped")
            return False
        else:
            self.host.log("debug", f"sending {payload!r} to {config.host}")

        try:
            handle.send(payload)
        except TransportError as e:
            self._on_error(handle, e)
            return False

        logger.debug(
            "command_sent",
            protocol=config.transport.value,
            host=config.host,
            port=config.port,
            size=len(payload),
        )
        return True

    def _open(self) -> None:
        self._release()
        self.host.report_status(StatusLevel.WARNING, "Connecting")

        if not self._config.host:
            self._state = ConnectionState.IDLE
            logger.debug("sender_idle_no_host")
            return

        try:
            handle = self._transport_factory(self._config)
        except TransportError as e:
            self._state = ConnectionState.ERROR
            self.host.report_status(StatusLevel.ERROR, e.message)
            self.host.log("error", f"Network error: {e.message}")
            return

        handle.on("status_change", partial(self._on_status_change, handle))
        handle.on("error", partial(self._on_error, handle))
        handle.on("connect", partial(self._on_connect, handle))
        handle.on("data", partial(self._on_data, handle))

        self._handle = handle
        self._state = ConnectionState.CONNECTING
        logger.debug(
            "transport_created",
            protocol=self._config.transport.value,
            host=self._config.host,
            port=self._config.port,
        )

    def _release(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.destroy()

    def _is_current(self, handle: TransportHandle) -> bool:
        return handle is self._handle

    def _on_status_change(
        self,
        handle: TransportHandle,
        level: StatusLevel,
        message: Optional[str] = None,
    ) -> None:
        if not self._is_current(handle):
            return
        self._state = _STATE_BY_LEVEL.get(level, self._state)
        self.host.report_status(level, message)

    def _on_error(self, handle: TransportHandle, error: TransportError) -> None:
        if not self._is_current(handle):
            return
        self._state = ConnectionState.ERROR
        self.host.report_status(StatusLevel.ERROR, error.message)
        self.host.log("error", f"Network error: {error.message}")

    def _on_connect(self, handle: TransportHandle) -> None:
        if not self._is_current(handle):
            return
        self._state = ConnectionState.CONNECTED
        self.host.report_status(StatusLevel.OK)
        self.host.log("debug", "Connected")

    def _on_data(self, handle: TransportHandle, data: bytes) -> None:
        if not self._is_current(handle):
            return
        self._state = ConnectionState.CONNECTED
        self.host.report_status(StatusLevel.OK)
