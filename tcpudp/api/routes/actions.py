"""Action endpoints."""
from typing import List

import structlog
from fastapi import APIRouter, Depends

from tcpudp.api.deps import get_sender
from tcpudp.fields import action_definitions
from tcpudp.models import ActionDefinition, CommandRequest, CommandResult

router = APIRouter(prefix="/api/actions", tags=["actions"])
logger = structlog.get_logger()


@router.get("", response_model=List[ActionDefinition])
async def list_actions():
    return action_definitions()


@router.post("/send", response_model=CommandResult)
async def send_command(request: CommandRequest, sender=Depends(get_sender)):
    """Run the send action; a skipped send is reported, not an error."""
    payload = sender.prepare(request.command, request.terminator)
    sent = sender.transmit(payload)
    if not sent:
        logger.debug("command_skipped", state=sender.state.value, size=len(payload))
    return CommandResult(
        sent=sent,
        transport=sender.config.transport,
        host=sender.config.host,
        payload_hex=payload.hex(),
        size=len(payload),
    )
