"""
Exception hierarchy for the command sender.

All custom exceptions inherit from SenderError so callers can catch
every sender failure with a single except clause.
"""
from typing import Optional


class SenderError(Exception):
    """
    Base exception for all sender-specific errors.
    """
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Configuration Errors

class ConfigurationError(SenderError):
    """
    Invalid configuration or command options.

    Raised for values that bypass the pydantic models, such as an
    unknown terminator id passed straight to Terminator.parse().
    """
    pass


# Network and Transport Errors

class TransportError(SenderError):
    """
    Network transport failures.

    Never raised out of CommandSender; handles report these through
    their "error" event and the sender turns them into a status.
    """
    pass


class ConnectionRefusedError(TransportError):
    """Target actively refused connection (ECONNREFUSED)."""
    pass


class ConnectionTimeoutError(TransportError):
    """Connection attempt timed out."""
    pass


class SendError(TransportError):
    """Failed to hand data to the socket."""
    pass
