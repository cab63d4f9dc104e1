"""Shared FastAPI dependencies for API routers."""
from functools import lru_cache

from tcpudp.engine.command_sender import CommandSender
from tcpudp.host import StandaloneHost


@lru_cache(maxsize=1)
def get_host() -> StandaloneHost:
    return StandaloneHost()


@lru_cache(maxsize=1)
def get_sender() -> CommandSender:
    return CommandSender(get_host())
