"""Today's schedule from Google Calendar."""
import asyncio
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from screener.core.config import Settings, settings as default_settings
from screener.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
UNAVAILABLE_SUMMARY = "Unable to retrieve calendar events."
TIME_FORMAT = "%Y-%m-%d %H:%M"


def _event_time(value: Dict[str, Any], tz: ZoneInfo) -> datetime:
    """Convert a Google event start/end (timed or all-day) to local time."""
    if value.get("dateTime"):
        return datetime.fromisoformat(value["dateTime"]).astimezone(tz)
    return datetime.combine(date.fromisoformat(value["date"]), time.min, tzinfo=tz)


def format_schedule_summary(
    events: List[Dict[str, Any]], now: datetime, timezone_name: str
) -> str:
    """Render a list of Google Calendar events as the agent's schedule text."""
    tz = ZoneInfo(timezone_name)
    lines = [f"The current date and time is {now.astimezone(tz).strftime(TIME_FORMAT)} {timezone_name}"]

    if not events:
        lines.append("No events for today.")
    for event in events:
        start = _event_time(event.get("start", {}), tz)
        end = _event_time(event.get("end", {}), tz)
        summary = event.get("summary", "Busy")
        lines.append(
            f"{summary} from {start.strftime(TIME_FORMAT)} to {end.strftime(TIME_FORMAT)}"
        )

    return "\n".join(lines) + "\n"


class CalendarService:
    """Service for summarizing the principal's schedule."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        service_factory: Optional[Callable[[], Any]] = None,
    ):
        self.settings = settings or default_settings
        self._service_factory = service_factory or self._build_service

    def _credentials(self) -> Credentials:
        """Build OAuth credentials that refresh from the stored refresh token."""
        s = self.settings
        if not (s.google_client_id and s.google_client_secret and s.google_refresh_token):
            raise ConfigurationError("Google Calendar credentials are not configured")

        return Credentials(
            token=None,
            refresh_token=s.google_refresh_token,
            token_uri=GOOGLE_TOKEN_URI,
            client_id=s.google_client_id,
            client_secret=s.google_client_secret,
        )

    def _build_service(self):
        """Build the Calendar v3 API client."""
        credentials = self._credentials()
        credentials.refresh(Request())
        return build("calendar", "v3", credentials=credentials, cache_discovery=False)

    def _fetch_events(self, time_min: str, time_max: str) -> List[Dict[str, Any]]:
        service = self._service_factory()
        result = service.events().list(
            calendarId=self.settings.google_calendar_id,
            timeMin=time_min,
            timeMax=time_max,
            singleEvents=True,
            orderBy="startTime",
        ).execute()
        return result.get("items", [])

    async def list_today_events(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Fetch today's events, ordered by start time."""
        tz = ZoneInfo(self.settings.calendar_timezone)
        now = now or datetime.now(tz)
        day_start = datetime.combine(now.astimezone(tz).date(), time.min, tzinfo=tz)
        day_end = day_start + timedelta(days=1)

        # The Google client is blocking
        return await asyncio.to_thread(
            self._fetch_events, day_start.isoformat(), day_end.isoformat()
        )

    async def today_schedule_summary(self, now: Optional[datetime] = None) -> str:
        """
        Summarize today's schedule as text for the agent.

        Never raises; any failure yields a fixed fallback text.
        """
        try:
            tz = ZoneInfo(self.settings.calendar_timezone)
            now = now or datetime.now(tz)
            events = await self.list_today_events(now)
            summary = format_schedule_summary(events, now, self.settings.calendar_timezone)
        except Exception as e:
            logger.error(
                f"[CALENDAR] Error retrieving calendar events: {type(e).__name__}: {e}"
            )
            return UNAVAILABLE_SUMMARY

        logger.info(f"[CALENDAR] Retrieved {len(events)} calendar events")
        return summary
