"""
Host-facing field definitions

Describe the configuration form and the send action so a host UI can
render them. Values here are defaults only; validation happens in the
pydantic models.
"""
from typing import List

from tcpudp.models import ActionDefinition, FieldDefinition, Terminator, TransportProtocol

REGEX_IP = (
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)
REGEX_PORT = (
    r"^([1-9]|[1-9][0-9]{1,3}|[1-5][0-9]{4}|6[0-4][0-9]{3}"
    r"|65[0-4][0-9]{2}|655[0-2][0-9]|6553[0-5])$"
)

SEND_ACTION_ID = "send"


def config_fields() -> List[FieldDefinition]:
    return [
        FieldDefinition(
            type="text",
            id="info",
            label="Information",
            width=12,
            value="Sends text or hex commands to a device over TCP or UDP.",
        ),
        FieldDefinition(
            type="textinput",
            id="host",
            label="Target IP",
            width=6,
            regex=REGEX_IP,
        ),
        FieldDefinition(
            type="textinput",
            id="port",
            label="Target Port",
            width=2,
            default=7000,
            regex=REGEX_PORT,
        ),
        FieldDefinition(
            type="dropdown",
            id="transport",
            label="Connect with TCP / UDP",
            default=TransportProtocol.TCP.value,
            choices=[
                {"id": TransportProtocol.TCP.value, "label": "TCP"},
                {"id": TransportProtocol.UDP.value, "label": "UDP"},
            ],
        ),
    ]


def action_definitions() -> List[ActionDefinition]:
    return [
        ActionDefinition(
            id=SEND_ACTION_ID,
            label="Send Command",
            options=[
                FieldDefinition(
                    type="textwithvariables",
                    id="command",
                    label="Command:",
                    tooltip="Use %hh to insert Hex codes",
                    default="",
                    width=6,
                ),
                FieldDefinition(
                    type="dropdown",
                    id="terminator",
                    label="Command End Character:",
                    default=Terminator.LF.value,
                    choices=Terminator.choices(),
                ),
            ],
        ),
    ]
