"""
GOV.UK Notify REST client.

Requests are authenticated with a short-lived HS256 JWT signed with the
secret half of the API key. The signed token lives in a CachedToken value
owned by the client instance and is re-signed once it is near expiry.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Any

import httpx
import jwt

from ..core.config import Settings, get_settings

logger = logging.getLogger(__name__)

EMAIL_ENDPOINT = "/v2/notifications/email"

# Notify rejects tokens issued more than 30 seconds ago
TOKEN_LIFETIME = timedelta(seconds=25)


class NotifyClientError(Exception):
    """Raised when a request to Notify fails or is rejected."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class CachedToken:
    token: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class NotifyCredentials:
    service_id: str
    secret: str

    @classmethod
    def from_api_key(cls, api_key: str) -> "NotifyCredentials":
        """Split a ``{key_name}-{service_id}-{secret}`` API key."""
        if not api_key or len(api_key) < 74:
            raise NotifyClientError("Invalid GOV.UK Notify API key")
        return cls(service_id=api_key[-73:-37], secret=api_key[-36:])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    errors = body.get("errors") if isinstance(body, dict) else None
    if errors:
        return "; ".join(
            f"{e.get('error', 'Error')}: {e.get('message', '')}" for e in errors
        )
    return str(body)


class GovNotifyClient:
    """Sends templated emails through GOV.UK Notify."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.notifications.service.gov.uk",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
        clock=_utcnow,
    ):
        self.credentials = NotifyCredentials.from_api_key(api_key)
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)
        self._clock = clock
        self._token: CachedToken | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "GovNotifyClient":
        settings = settings or get_settings()
        return cls(
            api_key=settings.notify_api_key or "",
            base_url=settings.notify_base_url,
            timeout=settings.notify_timeout_seconds,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.http_client.aclose()

    def _auth_token(self) -> str:
        now = self._clock()
        if self._token and self._token.is_valid(now):
            return self._token.token

        token = jwt.encode(
            {"iss": self.credentials.service_id, "iat": int(now.timestamp())},
            self.credentials.secret,
            algorithm="HS256",
            headers={"typ": "JWT", "alg": "HS256"},
        )
        self._token = CachedToken(token=token, expires_at=now + TOKEN_LIFETIME)
        return token

    async def send_email(
        self,
        template_id: str,
        email_address: str,
        personalisation: dict[str, Any],
        reference: str | None = None,
    ) -> dict[str, Any]:
        """Send one email. Returns the decoded Notify response body."""
        payload: dict[str, Any] = {
            "template_id": template_id,
            "email_address": email_address,
            "personalisation": personalisation,
        }
        if reference:
            payload["reference"] = reference

        try:
            response = await self.http_client.post(
                f"{self.base_url}{EMAIL_ENDPOINT}",
                headers={"Authorization": f"Bearer {self._auth_token()}"},
                json=payload,
            )
        except httpx.HTTPError as e:
            raise NotifyClientError(f"Notify request failed: {e}") from e

        if response.status_code >= 400:
            raise NotifyClientError(
                f"Notify API error {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise NotifyClientError("Notify returned a non-JSON response") from e
