"""
Google Calendar Backend

Implements CalendarBackend over the Google Calendar v3 REST API.
Access tokens are obtained from a long-lived OAuth refresh token.

Usage:
    from agendabot.calendar.google_calendar import GoogleCalendarBackend

    calendar = GoogleCalendarBackend()
    event_id = await calendar.schedule_event(appointment)
    events = await calendar.list_events(start, end, user_id="alice")

Dependencies:
    - aiohttp

Secrets (environment):
    - GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REFRESH_TOKEN
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any

import aiohttp

from agendabot.calendar.base import CalendarBackend
from agendabot.config_models import CalendarConfig
from agendabot.domain.appointment import (
    Appointment,
    AppointmentSource,
    DateTimeRange,
    ExternalRefs,
)
from agendabot.domain.errors import CalendarError

logger = logging.getLogger(__name__)


# Google API endpoints
CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

UNTITLED_EVENT = "Sem título"


class GoogleCalendarBackend(CalendarBackend):
    """Google Calendar provider authenticated with a refresh token."""

    def __init__(
        self,
        config: CalendarConfig | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        refresh_token: str | None = None,
    ):
        self.config = config or CalendarConfig()
        self.client_id = client_id or os.environ.get("GOOGLE_CLIENT_ID")
        self.client_secret = client_secret or os.environ.get("GOOGLE_CLIENT_SECRET")
        self.refresh_token = refresh_token or os.environ.get("GOOGLE_REFRESH_TOKEN")

        if not self.client_id or not self.client_secret:
            raise CalendarError("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are required")

        self.access_token: str | None = None
        self.token_expiry: datetime | None = None

        logger.info("GoogleCalendarBackend initialized")

    @property
    def provider_name(self) -> str:
        return "google"

    @property
    def _events_url(self) -> str:
        return f"{CALENDAR_API_BASE}/calendars/{self.config.calendar_id}/events"

    def _timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.config.request_timeout_seconds)

    # =========================================================================
    # Authentication
    # =========================================================================

    def is_token_expired(self) -> bool:
        """Check if access token has expired."""
        if not self.access_token or not self.token_expiry:
            return True
        return datetime.now(timezone.utc) >= self.token_expiry

    async def _refresh_access_token(self) -> None:
        if not self.refresh_token:
            raise CalendarError("GOOGLE_REFRESH_TOKEN is required")

        token_data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": self.refresh_token,
            "grant_type": "refresh_token",
        }

        async with aiohttp.ClientSession(timeout=self._timeout()) as session:
            async with session.post(GOOGLE_TOKEN_URL, data=token_data) as resp:
                if resp.status != 200:
                    error = await resp.text()
                    raise CalendarError(f"Token refresh failed: {error}")
                tokens = await resp.json()

        self.access_token = tokens.get("access_token")
        expires_in = tokens.get("expires_in", 3600)
        # Refresh a minute early
        self.token_expiry = datetime.now(timezone.utc) + timedelta(seconds=expires_in - 60)
        logger.debug("Google access token refreshed")

    async def _get_headers(self) -> dict[str, str]:
        """Get authorization headers for API requests."""
        if self.is_token_expired():
            await self._refresh_access_token()
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    # =========================================================================
    # HTTP plumbing
    # =========================================================================

    async def _make_request(
        self,
        method: str,
        url: str,
        data: dict | None = None,
        params: dict | None = None,
    ) -> dict[str, Any]:
        """
        Make an authenticated API request.

        Returns:
            dict with success flag and response data or error
        """
        headers = await self._get_headers()

        try:
            async with aiohttp.ClientSession(timeout=self._timeout()) as session:
                async with session.request(
                    method, url, headers=headers, json=data, params=params
                ) as resp:
                    return await self._handle_response(resp)
        except aiohttp.ClientError as e:
            return {"success": False, "error": f"Request failed: {e!s}"}

    async def _handle_response(self, resp) -> dict[str, Any]:
        """Handle API response."""
        if resp.status == 204:
            return {"success": True}

        try:
            data = await resp.json()
        except (aiohttp.ContentTypeError, ValueError):
            data = {}

        if resp.status == 200:
            return {"success": True, "data": data}
        elif resp.status == 401:
            return {"success": False, "error": "Authentication failed - token may be expired"}
        elif resp.status == 403:
            return {"success": False, "error": "Permission denied - insufficient scopes"}
        elif resp.status == 404:
            return {"success": False, "error": "Resource not found", "status": 404}
        elif resp.status == 410:
            return {"success": False, "error": "Resource already deleted", "status": 410}
        else:
            error_msg = data.get("error", {}).get("message", f"HTTP {resp.status}")
            return {"success": False, "error": error_msg}

    # =========================================================================
    # Event payloads
    # =========================================================================

    def _event_body(self, appointment: Appointment, with_reminders: bool = False) -> dict[str, Any]:
        date_time = appointment.date_time
        body: dict[str, Any] = {
            "summary": appointment.title,
            "start": {"dateTime": date_time.start.isoformat(), "timeZone": self.config.timezone},
            "end": {"dateTime": date_time.end.isoformat(), "timeZone": self.config.timezone},
        }
        if appointment.description:
            body["description"] = appointment.description
        if appointment.location:
            body["location"] = appointment.location
        if appointment.attendees:
            body["attendees"] = [{"email": a} for a in appointment.attendees]
        if with_reminders:
            body["reminders"] = {
                "useDefault": False,
                "overrides": [
                    {"method": r.method, "minutes": r.minutes} for r in self.config.reminders
                ],
            }
        return body

    def _parse_event(self, data: dict, user_id: str) -> Appointment | None:
        """Parse a Google Calendar event into an imported Appointment.

        All-day events (date instead of dateTime) are skipped.
        """
        start_str = data.get("start", {}).get("dateTime")
        end_str = data.get("end", {}).get("dateTime")
        if not start_str or not end_str:
            return None

        event_id = data.get("id") or "unknown"
        return Appointment(
            id=event_id,
            user_id=user_id,
            title=data.get("summary") or UNTITLED_EVENT,
            description=data.get("description") or None,
            date_time=DateTimeRange(
                start=datetime.fromisoformat(start_str.replace("Z", "+00:00")),
                end=datetime.fromisoformat(end_str.replace("Z", "+00:00")),
            ),
            location=data.get("location") or None,
            attendees=[a.get("email", "") for a in data.get("attendees", []) if a.get("email")],
            source=AppointmentSource.IMPORT,
            external_refs=ExternalRefs(google_calendar_event_id=data.get("id")),
        )

    # =========================================================================
    # CalendarBackend
    # =========================================================================

    async def schedule_event(self, appointment: Appointment) -> str:
        logger.debug(
            f"Creating Google Calendar event '{appointment.title}' "
            f"at {appointment.date_time.start.isoformat()}"
        )

        result = await self._make_request(
            "POST", self._events_url, data=self._event_body(appointment, with_reminders=True)
        )
        if not result.get("success"):
            logger.error(f"Failed to create event for appointment {appointment.id}: {result.get('error')}")
            raise CalendarError(f"Failed to schedule event: {result.get('error')}")

        event_id = result.get("data", {}).get("id")
        if not event_id:
            raise CalendarError("Failed to schedule event: Google Calendar did not return event ID")

        logger.info(f"Event {event_id} created on Google Calendar ({appointment.title})")
        return event_id

    async def check_availability(self, start: datetime, end: datetime, user_id: str) -> bool:
        logger.debug(f"Checking availability {start.isoformat()} - {end.isoformat()} for {user_id}")

        calendar_id = self.config.calendar_id
        result = await self._make_request(
            "POST",
            f"{CALENDAR_API_BASE}/freeBusy",
            data={
                "timeMin": start.isoformat(),
                "timeMax": end.isoformat(),
                "items": [{"id": calendar_id}],
            },
        )
        if not result.get("success"):
            logger.error(f"Failed to check availability: {result.get('error')}")
            raise CalendarError(f"Failed to check availability: {result.get('error')}")

        calendars = result.get("data", {}).get("calendars", {})
        busy = calendars.get(calendar_id, {}).get("busy", [])

        logger.debug(f"Availability check: {len(busy)} busy slot(s)")
        return len(busy) == 0

    async def update_event(self, appointment: Appointment) -> None:
        refs = appointment.external_refs
        event_id = refs.google_calendar_event_id if refs else None
        if not event_id:
            raise CalendarError("Failed to update event: event does not have Google Calendar ID")

        result = await self._make_request(
            "PATCH", f"{self._events_url}/{event_id}", data=self._event_body(appointment)
        )
        if not result.get("success"):
            logger.error(f"Failed to update event {event_id}: {result.get('error')}")
            raise CalendarError(f"Failed to update event: {result.get('error')}")

        logger.info(f"Event {event_id} updated on Google Calendar ({appointment.title})")

    async def cancel_event(self, external_id: str) -> None:
        result = await self._make_request("DELETE", f"{self._events_url}/{external_id}")
        if result.get("status") in (404, 410):
            logger.info(f"Event {external_id} already removed from Google Calendar")
            return
        if not result.get("success"):
            logger.error(f"Failed to cancel event {external_id}: {result.get('error')}")
            raise CalendarError(f"Failed to cancel event: {result.get('error')}")

        logger.info(f"Event {external_id} cancelled on Google Calendar")

    async def list_events(self, start: datetime, end: datetime, user_id: str) -> list[Appointment]:
        params = {
            "timeMin": start.isoformat(),
            "timeMax": end.isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
        }

        result = await self._make_request("GET", self._events_url, params=params)
        if not result.get("success"):
            logger.error(f"Failed to list events: {result.get('error')}")
            raise CalendarError(f"Failed to list events: {result.get('error')}")

        items = result.get("data", {}).get("items", [])
        appointments = [
            appt for appt in (self._parse_event(item, user_id) for item in items) if appt
        ]

        logger.info(f"Listed {len(appointments)} event(s) from Google Calendar")
        return appointments
