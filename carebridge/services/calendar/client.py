"""Google OAuth and Calendar API client."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Type
from urllib.parse import quote, urlencode

import httpx

from ...config import Settings
from ...errors import CalendarApiError, ReminderError, UpstreamAuthError
from ...logging_config import get_logger

logger = get_logger(__name__)

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/primary/events"
SCOPES = ["https://www.googleapis.com/auth/calendar"]

# Used when the token endpoint omits expires_in
DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)


@dataclass
class OAuthTokens:
    """Credentials returned by the token endpoint."""

    access_token: str
    refresh_token: Optional[str]
    expiry: datetime


class GoogleCalendarClient:
    """Thin async wrapper over the Google token and events endpoints."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.client_id = settings.google_client_id
        self.client_secret = settings.google_client_secret
        self.redirect_uri = settings.google_redirect_uri
        self.timeout = settings.http_timeout_seconds
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.redirect_uri)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def authorization_url(self, state: str) -> str:
        """Consent screen URL requesting offline access."""

        if not self.is_configured:
            raise UpstreamAuthError("Google OAuth credentials not configured")

        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> OAuthTokens:
        """Exchange an authorization code for tokens."""

        return await self._token_request({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        })

    async def refresh(self, refresh_token: str) -> OAuthTokens:
        """Obtain a new access token; keeps the old refresh token unless rotated."""

        tokens = await self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })
        if not tokens.refresh_token:
            tokens.refresh_token = refresh_token
        return tokens

    async def _token_request(self, data: Dict[str, Any]) -> OAuthTokens:
        if not self.is_configured:
            raise UpstreamAuthError("Google OAuth credentials not configured")

        form = {"client_id": self.client_id, "client_secret": self.client_secret, **data}
        try:
            async with self._client() as client:
                response = await client.post(TOKEN_URL, data=form)
        except httpx.HTTPError as e:
            logger.error(f"Google token request failed: {e!r}")
            raise UpstreamAuthError("Failed to reach Google OAuth", detail=str(e)) from e

        if response.status_code >= 400:
            detail = response.text
            logger.error(f"Google token request rejected ({data['grant_type']}): {response.status_code} {detail}")
            raise UpstreamAuthError("Google OAuth rejected the token request", detail=detail)

        body = _json_body(response, UpstreamAuthError, "Google OAuth returned an unreadable token response")
        access_token = body.get("access_token")
        if not access_token:
            raise UpstreamAuthError("Google OAuth response missing access_token", detail=str(body))

        expires_in = body.get("expires_in")
        try:
            lifetime = timedelta(seconds=int(expires_in)) if expires_in else DEFAULT_TOKEN_LIFETIME
        except (TypeError, ValueError) as e:
            raise UpstreamAuthError("Google OAuth returned an invalid expires_in", detail=repr(expires_in)) from e
        return OAuthTokens(
            access_token=access_token,
            refresh_token=body.get("refresh_token"),
            expiry=datetime.now(timezone.utc) + lifetime,
        )

    async def insert_event(self, access_token: str, event: Dict[str, Any]) -> str:
        """Create one event on the primary calendar and return its id."""

        try:
            async with self._client() as client:
                response = await client.post(
                    EVENTS_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                    json=event,
                )
        except httpx.HTTPError as e:
            raise CalendarApiError("Failed to reach Google Calendar", detail=str(e)) from e

        if response.status_code == 401:
            raise UpstreamAuthError("Google Calendar rejected the access token", detail=response.text)
        if response.status_code >= 400:
            raise CalendarApiError(f"Failed to create event: HTTP {response.status_code}", detail=response.text)

        event_id = _json_body(response, CalendarApiError, "Google Calendar returned an unreadable event").get("id")
        if not event_id:
            raise CalendarApiError("Google Calendar response missing event id")
        return str(event_id)

    async def delete_event(self, access_token: str, event_id: str) -> None:
        """Delete one event; an already-deleted event counts as success."""

        try:
            async with self._client() as client:
                response = await client.delete(
                    f"{EVENTS_URL}/{quote(event_id, safe='')}",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            raise CalendarApiError(f"Failed to reach Google Calendar deleting {event_id}", detail=str(e)) from e

        if response.status_code in (404, 410):
            logger.info(f"Calendar event {event_id} already gone")
            return
        if response.status_code == 401:
            raise UpstreamAuthError("Google Calendar rejected the access token", detail=response.text)
        if response.status_code >= 400:
            raise CalendarApiError(f"Failed to delete event {event_id}: HTTP {response.status_code}", detail=response.text)


def _json_body(response: httpx.Response, error: Type[ReminderError], message: str) -> Dict[str, Any]:
    """Decode a JSON object body or raise `error`."""
    try:
        body = response.json()
    except ValueError as e:
        logger.error(f"{message}: HTTP {response.status_code} {response.text[:200]!r}")
        raise error(message, detail=response.text[:500]) from e
    if not isinstance(body, dict):
        raise error(message, detail=str(body)[:500])
    return body
