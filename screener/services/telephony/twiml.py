"""TwiML documents used by the call screener."""
from twilio.twiml.voice_response import Connect, VoiceResponse


def media_stream_twiml(stream_url: str, pause_seconds: int = 0) -> str:
    """
    Generate TwiML that connects the call audio to a media stream.

    Args:
        stream_url: wss:// URL of the media stream endpoint
        pause_seconds: Optional pause appended after the stream

    Returns:
        TwiML XML string
    """
    response = VoiceResponse()
    connect = Connect()
    connect.stream(url=stream_url)
    response.append(connect)
    if pause_seconds:
        response.pause(length=pause_seconds)
    return str(response)


def dial_twiml(destination: str) -> str:
    """Generate TwiML that dials a new destination."""
    response = VoiceResponse()
    response.dial(destination)
    return str(response)
