"""System-level endpoints."""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from tcpudp import __version__
from tcpudp.api.deps import get_host, get_sender
from tcpudp.config import settings
from tcpudp.models import StatusReport

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/system/health")
async def system_health(sender=Depends(get_sender)):
    return {
        "status": "healthy",
        "version": __version__,
        "connection_state": sender.state.value,
        "transport": sender.config.transport.value,
    }


@router.get("/system/config")
async def get_system_config():
    return {
        "connect_timeout_sec": settings.connect_timeout_sec,
        "udp_bind_host": settings.udp_bind_host,
        "max_status_history": settings.max_status_history,
    }


@router.get("/status", response_model=StatusReport)
async def get_status(host=Depends(get_host), sender=Depends(get_sender)):
    return StatusReport(level=host.level, message=host.message, state=sender.state)


@router.get("/status/history")
async def get_status_history(host=Depends(get_host)):
    return {"history": host.status_history()}


@router.get("/variables")
async def get_variables(host=Depends(get_host)) -> Dict[str, str]:
    return dict(host.variables)


@router.put("/variables")
async def set_variables(values: Dict[str, Any], host=Depends(get_host)) -> Dict[str, str]:
    host.set_variables(values)
    return dict(host.variables)
