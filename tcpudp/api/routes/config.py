"""Target configuration endpoints."""
from typing import List

import structlog
from fastapi import APIRouter, Depends

from tcpudp.api.deps import get_host, get_sender
from tcpudp.fields import config_fields
from tcpudp.models import ConnectionConfig, FieldDefinition, StatusReport

router = APIRouter(prefix="/api/config", tags=["config"])
logger = structlog.get_logger()


@router.get("", response_model=ConnectionConfig)
async def get_config(sender=Depends(get_sender)):
    return sender.config


@router.put("", response_model=StatusReport)
async def update_config(
    config: ConnectionConfig,
    sender=Depends(get_sender),
    host=Depends(get_host),
):
    """Apply a new target; the previous transport is torn down first."""
    sender.configure(config)
    logger.info(
        "config_updated",
        transport=config.transport.value,
        host=config.host,
        port=config.port,
    )
    return StatusReport(level=host.level, message=host.message, state=sender.state)


@router.get("/fields", response_model=List[FieldDefinition])
async def get_config_fields():
    return config_fields()
