"""Shared pytest fixtures for the hme test suite."""

from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest

from hme.client import ICloudClient
from hme.config import ConfigStore
from hme.cookies import SessionCredential, parse_cookie_string
from hme.manager import HideMyEmailManager
from hme.models import AliasRecord, Config


COOKIE_STRING = (
    'X-APPLE-WEBAUTH-USER="v=1:s=0:d=12345"; '
    'X-APPLE-WEBAUTH-TOKEN="v=2:t=original"; '
    "X-APPLE-DS-WEB-SESSION-TOKEN=abc123"
)

HME_BASE = "https://p68-maildomainws.icloud.com"
VALIDATE_PATH = "/setup/ws/1/validate"
GENERATE_PATH = "/v1/hme/generate"
RESERVE_PATH = "/v1/hme/reserve"
LIST_PATH = "/v2/hme/list"


class FakeICloud:
    """Scripted iCloud endpoints served through httpx.MockTransport.

    Each path holds a queue of canned replies; the last reply repeats once the
    queue is down to one entry. Every request is recorded.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[str, list[dict[str, Any]]] = {}

    def queue(
        self,
        path: str,
        status: int = 200,
        json: Any = None,
        headers: list[tuple[str, str]] | None = None,
        error: Exception | None = None,
        text: str | None = None,
    ) -> "FakeICloud":
        self._routes.setdefault(path, []).append(
            {"status": status, "json": json, "headers": headers or [], "error": error, "text": text}
        )
        return self

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self._routes.get(request.url.path)
        if not replies:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if reply["error"] is not None:
            raise reply["error"]
        if reply["text"] is not None:
            return httpx.Response(reply["status"], text=reply["text"], headers=reply["headers"])
        return httpx.Response(reply["status"], json=reply["json"], headers=reply["headers"])

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def validate_payload(status: str = "active", url: str | None = HME_BASE) -> dict:
    return {
        "dsInfo": {"dsid": "12345", "fullName": "Test User"},
        "webservices": {
            "premiummailsettings": {"url": url, "status": status},
            "mail": {"url": "https://p68-mailws.icloud.com", "status": "active"},
        },
    }


def generate_payload(address: str = "quiet.otter.0a@icloud.com") -> dict:
    return {"success": True, "timestamp": 1700000000, "result": {"hme": address}}


def reserve_payload(
    address: str = "quiet.otter.0a@icloud.com",
    label: str = "Newsletter",
    note: str = "",
    is_active: bool = True,
) -> dict:
    return {
        "success": True,
        "timestamp": 1700000001,
        "result": {
            "hme": {
                "origin": "ON_DEMAND",
                "anonymousId": "anon-123",
                "domain": "",
                "hme": address,
                "label": label,
                "note": note,
                "createTimestamp": 1700000001000,
                "isActive": is_active,
                "recipientMailId": "",
            }
        },
    }


def error_payload(code: str, message: str) -> dict:
    return {
        "success": False,
        "timestamp": 1700000002,
        "error": {"errorCode": code, "errorMessage": message},
    }


@pytest.fixture
def credential() -> SessionCredential:
    """Returns the parsed sample session credential."""
    return parse_cookie_string(COOKIE_STRING)


@pytest.fixture
def fake_icloud() -> FakeICloud:
    """Returns a FakeICloud that accepts the session by default."""
    return FakeICloud().queue(VALIDATE_PATH, json=validate_payload())


@pytest.fixture
def client(credential: SessionCredential, fake_icloud: FakeICloud) -> ICloudClient:
    """Returns an unvalidated ICloudClient wired to fake_icloud."""
    return ICloudClient(credential, http_client=fake_icloud.http_client())


@pytest.fixture
def make_manager(client: ICloudClient):
    """Returns a coroutine function that validates the client and wraps it in a manager."""

    async def factory() -> HideMyEmailManager:
        await client.validate()
        return HideMyEmailManager(client)

    return factory


@pytest.fixture
def sample_record() -> AliasRecord:
    """Returns a claimed AliasRecord for testing."""
    return AliasRecord(
        address="quiet.otter.0a@icloud.com",
        label="Newsletter",
        note="signup form",
        anonymous_id="anon-123",
        forward_to_email="me@example.com",
        create_timestamp=1700000001000,
        is_active=True,
    )


@pytest.fixture
def sample_config() -> Config:
    """Returns a default Config for testing."""
    return Config(
        cookie=None,
        timeout=30.0,
        user_agent="test-agent",
        default_note="",
    )


@pytest.fixture
def tmp_store(tmp_path) -> ConfigStore:
    """Returns a ConfigStore instance using a temporary directory."""
    return ConfigStore(base_path=tmp_path)


@pytest.fixture
def mock_manager() -> MagicMock:
    """Returns a MagicMock for HideMyEmailManager."""
    return MagicMock(spec=HideMyEmailManager)
