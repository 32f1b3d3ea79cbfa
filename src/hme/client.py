"""iCloud session client that validates and refreshes browser-exported cookies."""

import logging
from typing import Any

import httpx

from hme.cookies import SessionCredential
from hme.exceptions import AuthError, SessionInUseError
from hme.models import Service


SETUP_URL = "https://setup.icloud.com/setup/ws/1"
VALIDATE_URL = f"{SETUP_URL}/validate"
BASE_URL = "https://www.icloud.com"

HME_SERVICE = "premiummailsettings"

DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)

# 421 is what iCloud answers for a stale session
AUTH_REJECTED_STATUSES = (401, 403, 421)

logger = logging.getLogger(__name__)


class ICloudClient:
    """Owns one iCloud session and sends every authenticated request.

    Not safe for concurrent use: validate() rewrites the credential in place.
    """

    def __init__(
        self,
        credential: SessionCredential,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._credential = credential
        self._validated = False
        self._services: dict[str, Service] = {}
        self._owner: object | None = None
        self._owns_http_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._headers = self._build_headers(user_agent)

    async def __aenter__(self) -> "ICloudClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    @property
    def credential(self) -> SessionCredential:
        return self._credential

    @property
    def validated(self) -> bool:
        return self._validated

    @property
    def services(self) -> dict[str, Service]:
        return dict(self._services)

    def _build_headers(self, user_agent: str) -> dict[str, str]:
        return {
            "Origin": BASE_URL,
            "Referer": f"{BASE_URL}/",
            "Accept": "*/*",
            "User-Agent": user_agent,
        }

    def _request_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = dict(self._headers)
        headers["Cookie"] = self._credential.to_header()
        if extra:
            headers.update(extra)
        return headers

    def _absorb_cookies(self, response: httpx.Response) -> None:
        refreshed = dict(response.cookies.items())
        if refreshed:
            logger.debug("Refreshing session cookies: %s", ", ".join(sorted(refreshed)))
            self._credential = self._credential.replace(refreshed)

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send an authenticated request using the current cookies.

        Cookies set by the response replace the matching session entries.
        Transport errors propagate as httpx.HTTPError, and cookies that are
        not ASCII as UnicodeEncodeError.
        """
        headers = self._request_headers(kwargs.pop("headers", None))
        logger.debug("%s %s", method, url)
        response = await self._client.request(method, url, headers=headers, **kwargs)
        self._absorb_cookies(response)
        return response

    async def validate(self) -> None:
        """Confirm the session is live and Hide My Email is active.

        On any failure the session is left exactly as it was.
        """
        try:
            response = await self._client.post(VALIDATE_URL, headers=self._request_headers())
        except httpx.HTTPError as e:
            raise AuthError(f"Failed to reach iCloud: {e}") from e
        except UnicodeEncodeError as e:
            # httpx encodes header values as ASCII
            raise AuthError(f"Session cookie can't be sent: {e}") from e

        if response.status_code in AUTH_REJECTED_STATUSES:
            raise AuthError(status_code=response.status_code)
        if response.is_error:
            raise AuthError(
                f"Session validation failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AuthError("Session validation returned an invalid response") from e

        services = self._parse_services(data)
        hme = services.get(HME_SERVICE)
        if hme is None:
            raise AuthError("Hide My Email service is missing from this account")
        if hme.status is None:
            raise AuthError("Hide My Email service has no status")
        if hme.status != "active":
            raise AuthError(f"Hide My Email is inactive/disabled (status: {hme.status})")
        if not hme.url:
            raise AuthError("Hide My Email service has no URL")

        self._services = services
        self._absorb_cookies(response)
        self._validated = True
        logger.info("iCloud session validated")

    def _parse_services(self, data: Any) -> dict[str, Service]:
        webservices = data.get("webservices") if isinstance(data, dict) else None
        if not isinstance(webservices, dict):
            raise AuthError("Session is not authenticated")

        return {
            name: Service(url=entry.get("url"), status=entry.get("status"))
            for name, entry in webservices.items()
            if isinstance(entry, dict)
        }

    def bind_owner(self, owner: object) -> None:
        """Hand this session over to a single driver such as HideMyEmailManager."""
        if self._owner is not None and self._owner is not owner:
            raise SessionInUseError()
        self._owner = owner

    def service_url(self, name: str) -> str | None:
        """Return the base URL of a web service discovered during validation."""
        service = self._services.get(name)
        return service.url if service else None

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._client.aclose()
