"""
Core data models
"""
import ipaddress
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from tcpudp.exceptions import ConfigurationError


class TransportProtocol(str, Enum):
    """Transport used to reach the target device"""

    TCP = "tcp"
    UDP = "udp"


class StatusLevel(str, Enum):
    """Health levels reported to the host"""

    OK = "ok"
    WARNING = "warning"
    ERROR = "error"
    UNKNOWN = "unknown"


class ConnectionState(str, Enum):
    """Mirror of the active transport handle's lifecycle"""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


_TERMINATOR_LABELS = {
    "": "None",
    "\n": "LF - \\n (Common UNIX/Mac)",
    "\r\n": "CRLF - \\r\\n (Common Windows)",
    "\r": "CR - \\r (Old MacOS)",
    "\x00": "NULL - \\x00 (Can happen)",
    "\n\r": "LFCR - \\n\\r (Just stupid)",
}


class Terminator(str, Enum):
    """Byte sequence appended to every command"""

    NONE = ""
    LF = "\n"
    CRLF = "\r\n"
    CR = "\r"
    NUL = "\x00"
    LFCR = "\n\r"

    @property
    def label(self) -> str:
        return _TERMINATOR_LABELS[self.value]

    @property
    def literal(self) -> bytes:
        return self.value.encode("latin-1")

    @classmethod
    def parse(cls, value: Union["Terminator", str, None]) -> "Terminator":
        """
        Look up a terminator by literal id ("\\r\\n") or member name ("crlf").

        None maps to Terminator.NONE.
        """
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        for member in cls:
            if value == member.value:
                return member
        if not isinstance(value, str):
            raise ConfigurationError(
                f"Terminator must be a string, got {type(value).__name__}",
                details={"choices": [member.name.lower() for member in cls]},
            )
        try:
            return cls[value.upper()]
        except KeyError:
            raise ConfigurationError(
                f"Unknown terminator: {value!r}",
                details={"choices": [member.name.lower() for member in cls]},
            )

    @classmethod
    def choices(cls) -> List[Dict[str, str]]:
        return [{"id": member.value, "label": member.label} for member in cls]


class ConnectionConfig(BaseModel):
    """Target device configuration, replaced wholesale on every update"""

    transport: TransportProtocol = TransportProtocol.TCP
    host: Optional[str] = None
    port: int = Field(default=7000, ge=1, le=65535)

    @field_validator("host", mode="before")
    @classmethod
    def validate_host(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        if not value:
            return None
        try:
            ipaddress.ip_address(value)
        except ValueError:
            raise ValueError(f"host must be an IP address, got {value!r}")
        return value

    @field_validator("transport", mode="before")
    @classmethod
    def normalize_transport(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class CommandRequest(BaseModel):
    """A single send action invocation"""

    command: str = ""
    terminator: Terminator = Terminator.LF

    @field_validator("terminator", mode="before")
    @classmethod
    def parse_terminator(cls, value: Any) -> Terminator:
        try:
            return Terminator.parse(value)
        except ConfigurationError as e:
            raise ValueError(e.message)


class CommandResult(BaseModel):
    """Outcome of a send action"""

    sent: bool
    transport: TransportProtocol
    host: Optional[str] = None
    payload_hex: str
    size: int


class StatusReport(BaseModel):
    """Status as last reported to the host"""

    level: StatusLevel = StatusLevel.UNKNOWN
    message: Optional[str] = None
    state: ConnectionState = ConnectionState.IDLE


class FieldDefinition(BaseModel):
    """Host-facing description of a configuration or action option"""

    type: str
    id: str
    label: str
    width: Optional[int] = None
    default: Optional[Any] = None
    value: Optional[str] = None
    regex: Optional[str] = None
    tooltip: Optional[str] = None
    choices: Optional[List[Dict[str, str]]] = None


class ActionDefinition(BaseModel):
    """Host-facing description of an action"""

    id: str
    label: str
    options: List[FieldDefinition] = Field(default_factory=list)
