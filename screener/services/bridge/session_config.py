"""Session configuration for the upstream voice agent."""
from typing import Optional

from screener.core.config import Settings, settings as default_settings
from screener.services.agent.prompt import get_system_prompt
from screener.services.agent.tools import ToolName
from screener.services.bridge.messages import (
    SessionConfig,
    SessionUpdateMessage,
    ToolDeclaration,
    TurnDetection,
)

TOOL_DECLARATIONS = (
    ToolDeclaration(
        name=ToolName.TRANSFER_CALL.value,
        description="Transfers the ongoing call to the principal's phone.",
    ),
    ToolDeclaration(
        name=ToolName.SCHEDULE_CALL.value,
        description="Texts the caller a link to schedule a call with the principal.",
    ),
    ToolDeclaration(
        name=ToolName.HANG_UP.value,
        description="Ends the current call.",
    ),
)


def build_session_config(
    schedule_summary: str, settings: Optional[Settings] = None
) -> SessionConfig:
    """Build the session parameters, embedding today's schedule verbatim."""
    settings = settings or default_settings
    return SessionConfig(
        turn_detection=TurnDetection(type="server_vad"),
        input_audio_format="g711_ulaw",
        output_audio_format="g711_ulaw",
        voice=settings.agent_voice,
        instructions=get_system_prompt(schedule_summary, settings),
        temperature=settings.agent_temperature,
        tools=TOOL_DECLARATIONS,
        tool_choice="auto",
    )


def build_session_update(
    schedule_summary: str, settings: Optional[Settings] = None
) -> SessionUpdateMessage:
    """Wrap the session parameters in a ``session.update`` message."""
    return SessionUpdateMessage(session=build_session_config(schedule_summary, settings))
