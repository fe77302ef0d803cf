"""Tools the voice agent can invoke."""
from enum import Enum


class ToolName(str, Enum):
    """Names of the actions the agent may request."""

    TRANSFER_CALL = "transfer_call"
    SCHEDULE_CALL = "schedule_call"
    HANG_UP = "hang_up"

    def __str__(self) -> str:
        """Return the string value of the tool name."""
        return self.value
