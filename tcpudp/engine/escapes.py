"""
Command escape codec

Turns a user command string into the raw bytes put on the wire.

- ``%hh`` and ``%uhhhh`` percent escapes become the matching character
- ``\\n``, ``\\r``, ``\\t``, ``\\0``, ``\\\\`` and ``\\xhh`` backslash escapes
  become the matching character
- anything malformed is kept literally

The decoded string is encoded one byte per character (Latin-1). UTF-8 would
turn every value from 0x80 upwards into a multi-byte sequence and corrupt
binary payloads.
"""
import re
from typing import Union

from tcpudp.models import Terminator

_ESCAPE_RE = re.compile(
    r"%u(?P<wide>[0-9A-Fa-f]{4})"
    r"|%(?P<pct>[0-9A-Fa-f]{2})"
    r"|\\x(?P<hex>[0-9A-Fa-f]{2})"
    r"|\\(?P<char>[nrt0\\])"
)

_BACKSLASH_CHARS = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "0": "\x00",
    "\\": "\\",
}


def _replace(match: "re.Match[str]") -> str:
    for group in ("wide", "pct", "hex"):
        digits = match.group(group)
        if digits is not None:
            return chr(int(digits, 16))
    return _BACKSLASH_CHARS[match.group("char")]


def unescape(text: str) -> str:
    """Decode percent and backslash escapes in a single left-to-right pass."""
    return _ESCAPE_RE.sub(_replace, text)


def encode_latin1(text: str) -> bytes:
    """
    Encode one byte per character.

    Code points above 0xFF (only reachable through ``%uhhhh`` or pasted
    text) keep their low byte.
    """
    try:
        return text.encode("latin-1")
    except UnicodeEncodeError:
        return bytes(ord(char) & 0xFF for char in text)


def decode(text: str) -> bytes:
    """Decode escapes in ``text`` and return the raw bytes."""
    return encode_latin1(unescape(text))


def build_command(text: str, terminator: Union[Terminator, str, None] = Terminator.NONE) -> bytes:
    """
    Build the outbound buffer for a command.

    Args:
        text: Command with variables already resolved
        terminator: Terminator member, literal id or name

    Returns:
        Decoded command bytes followed by the terminator's literal bytes
    """
    return decode(text) + Terminator.parse(terminator).literal
