"""Call phase enumeration."""
from enum import Enum


class CallPhase(str, Enum):
    """Lifecycle phases of a screened call."""

    IDLE = "idle"  # No call, or the call has been torn down
    IN_PROGRESS = "in_progress"  # Caller is talking to the agent
    TRANSFERRED = "transferred"  # Call handed to the principal
    SCHEDULED = "scheduled"  # Scheduling link texted to the caller

    def __str__(self) -> str:
        """Return the string value of the phase."""
        return self.value
