"""Send user-defined text/hex commands to a device over TCP or UDP."""

__version__ = "1.0.0"
