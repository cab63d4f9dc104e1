"""
Host collaborator

The command sender never talks to the outside world directly. Everything
it needs from the automation host goes through the small Host protocol:
status reporting, logging and variable substitution.

StandaloneHost is the implementation used by the API server and the CLI.
"""
from __future__ import annotations

import re
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional, Protocol

import structlog

from tcpudp.config import settings
from tcpudp.models import StatusLevel

logger = structlog.get_logger()

# $(namespace:name)
VARIABLE_RE = re.compile(r"\$\(([^:$()\s]+):([^)$\s]+)\)")
MISSING_VARIABLE = "$NA"
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class Host(Protocol):
    def report_status(self, level: StatusLevel, message: Optional[str] = None) -> None:
        ...

    def log(self, level: str, message: str) -> None:
        ...

    def resolve_variables(self, text: str) -> str:
        ...


class StandaloneHost:
    """
    Minimal host that keeps status and variables in memory.

    Status changes are logged and kept in a bounded history so the API
    can show what happened to the connection.
    """

    def __init__(
        self,
        variables: Optional[Dict[str, str]] = None,
        max_history: Optional[int] = None,
    ):
        self.level: StatusLevel = StatusLevel.UNKNOWN
        self.message: Optional[str] = None
        self.variables: Dict[str, str] = dict(variables or {})
        self.history: Deque[Dict[str, Any]] = deque(
            maxlen=max_history or settings.max_status_history
        )

    def report_status(self, level: StatusLevel, message: Optional[str] = None) -> None:
        level = StatusLevel(level)
        if level == self.level and message == self.message:
            return
        self.level = level
        self.message = message
        self.history.append({
            "level": level.value,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
        logger.info("status_changed", level=level.value, message=message)

    def log(self, level: str, message: str) -> None:
        level = level.lower()
        if level not in LOG_LEVELS:
            level = "info"
        getattr(logger, level)("host_log", message=message)

    def set_variable(self, name: str, value: Any) -> None:
        """Set a variable; ``name`` is ``namespace:name``."""
        self.variables[name] = str(value)

    def set_variables(self, values: Dict[str, Any]) -> None:
        for name, value in values.items():
            self.set_variable(name, value)

    def resolve_variables(self, text: str) -> str:
        """Replace every ``$(namespace:name)`` with its value, or ``$NA``."""
        def _lookup(match: "re.Match[str]") -> str:
            key = f"{match.group(1)}:{match.group(2)}"
            return self.variables.get(key, MISSING_VARIABLE)

        return VARIABLE_RE.sub(_lookup, text)

    def status_history(self) -> List[Dict[str, Any]]:
        return list(self.history)
