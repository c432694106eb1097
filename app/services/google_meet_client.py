"""
Google Calendar client - creates calendar events with a Google Meet link.

Uses the caller's own OAuth access token (sent from the frontend), so no
service account is configured server-side.
"""

import uuid
from datetime import datetime, timedelta
from typing import List

import requests

from app.core.config import get_settings
from app.core.exceptions import IntegrationError
from app.core.logger import get_logger

settings = get_settings()
log = get_logger(__name__)

MEETING_LENGTH = timedelta(hours=1)


def create_meet_event(
    access_token: str,
    start: datetime,
    title: str,
    description: str = "Virtual property viewing session",
    attendees: List[str] = None,
) -> dict:
    """
    Create a one-hour calendar event with Meet conference data.

    Args:
        access_token: Google OAuth token with calendar.events scope
        start: local meeting start (interpreted in settings.meeting_timezone)
        title: event summary
        attendees: attendee emails

    Returns:
        {"eventId", "meetingLink", "meetingId", "eventLink"}

    Raises:
        IntegrationError: Google rejected the request or was unreachable
    """
    end = start + MEETING_LENGTH
    event = {
        "summary": title,
        "description": description,
        "start": {"dateTime": start.strftime("%Y-%m-%dT%H:%M:%S"), "timeZone": settings.meeting_timezone},
        "end": {"dateTime": end.strftime("%Y-%m-%dT%H:%M:%S"), "timeZone": settings.meeting_timezone},
        "attendees": [{"email": email} for email in (attendees or []) if email],
        "conferenceData": {
            "createRequest": {
                "requestId": f"meet-{uuid.uuid4().hex}",
                "conferenceSolutionKey": {"type": "hangoutsMeet"},
            }
        },
        "reminders": {
            "useDefault": False,
            "overrides": [
                {"method": "email", "minutes": 24 * 60},
                {"method": "popup", "minutes": 10},
            ],
        },
    }

    try:
        response = requests.post(
            f"{settings.google_calendar_api_url}/calendars/primary/events",
            params={"conferenceDataVersion": 1, "sendUpdates": "all"},
            headers={"Authorization": f"Bearer {access_token}"},
            json=event,
            timeout=settings.http_timeout,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        log.error("Google Meet creation failed: %s", e)
        raise IntegrationError(f"Failed to create Google Meet: {e}")

    data = response.json()
    conference = data.get("conferenceData", {})
    video = next(
        (ep for ep in conference.get("entryPoints", []) if ep.get("entryPointType") == "video"),
        {},
    )
    return {
        "eventId": data.get("id"),
        "meetingLink": video.get("uri") or data.get("hangoutLink"),
        "meetingId": conference.get("conferenceId"),
        "eventLink": data.get("htmlLink"),
    }
