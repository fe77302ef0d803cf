"""Exception hierarchy for the call screener."""


class ScreenerError(Exception):
    """Base class for call screener errors."""


class ConfigurationError(ScreenerError):
    """A setting required by an operation is missing."""


class UpstreamConnectionError(ScreenerError):
    """The voice agent connection could not be established."""


class TelephonyError(ScreenerError):
    """A telephony provider operation failed."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


class MalformedFrameError(ScreenerError):
    """A message does not parse as any known frame."""
