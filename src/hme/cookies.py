"""Parse iCloud session cookies exported from a logged-in browser."""

import logging
import os
from collections.abc import Iterator, Mapping
from pathlib import Path

from hme.exceptions import CredentialNotFoundError, ParseError
from hme.models import Config

logger = logging.getLogger(__name__)

# Environment variable and file holding the raw Cookie header
COOKIE_ENV_VAR = "HME_COOKIE"
COOKIE_FILE = Path.home() / ".hme" / "cookie.txt"


class SessionCredential(Mapping[str, str]):
    """Immutable cookie-name to cookie-value mapping for one iCloud session.

    Names whose value arrived double-quoted are remembered so the Cookie
    header can be rebuilt the way the browser sent it. Quoting does not take
    part in equality.
    """

    def __init__(self, cookies: Mapping[str, str], quoted: frozenset[str] = frozenset()) -> None:
        self._cookies = dict(cookies)
        self._quoted = frozenset(name for name in quoted if name in self._cookies)

    def __getitem__(self, name: str) -> str:
        return self._cookies[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._cookies)

    def __len__(self) -> int:
        return len(self._cookies)

    def __repr__(self) -> str:
        # Values are secrets
        return f"SessionCredential(names={sorted(self._cookies)!r})"

    def is_quoted(self, name: str) -> bool:
        return name in self._quoted

    def as_dict(self) -> dict[str, str]:
        return dict(self._cookies)

    def to_header(self) -> str:
        """Render the credential as a Cookie header value."""
        return serialize_credential(self)

    def replace(self, updates: Mapping[str, str]) -> "SessionCredential":
        """Return a new credential with each updated cookie overwriting the old one.

        A value starting with a double quote is taken as quoted, even when the
        closing quote is missing.
        """
        cookies = dict(self._cookies)
        quoted = set(self._quoted)
        for name, value in updates.items():
            if value.startswith('"'):
                value = value[1:-1] if len(value) >= 2 and value.endswith('"') else value[1:]
                quoted.add(name)
            else:
                quoted.discard(name)
            cookies[name] = value
        return SessionCredential(cookies, frozenset(quoted))


def parse_cookie_string(raw: str) -> SessionCredential:
    """Parse a `k1=v1; k2="v2"` cookie string into a SessionCredential.

    Whitespace around separators is ignored. Double quotes around a value are
    stripped, and a quoted value may contain `;`. Any malformed entry fails
    the whole parse.
    """
    if not raw or not raw.strip():
        raise ParseError("Cookie string is empty")

    cookies: dict[str, str] = {}
    quoted: set[str] = set()
    length = len(raw)
    pos = 0

    while pos < length:
        while pos < length and raw[pos].isspace():
            pos += 1
        if pos >= length:
            break

        name_end = pos
        while name_end < length and raw[name_end] not in "=;":
            name_end += 1
        if name_end >= length or raw[name_end] == ";":
            raise ParseError(f"Cookie entry has no '=': {raw[pos:name_end].strip()!r}")

        name = raw[pos:name_end].strip()
        pos = name_end + 1
        while pos < length and raw[pos] in " \t":
            pos += 1

        if pos < length and raw[pos] == '"':
            close = raw.find('"', pos + 1)
            if close == -1:
                raise ParseError(f"Unterminated quoted value for cookie {name!r}")
            value = raw[pos + 1:close]
            pos = close + 1
            while pos < length and raw[pos].isspace():
                pos += 1
            if pos < length and raw[pos] != ";":
                raise ParseError(f"Unexpected text after quoted value for cookie {name!r}")
            quoted.add(name)
        else:
            end = raw.find(";", pos)
            if end == -1:
                end = length
            value = raw[pos:end].strip()
            pos = end
            quoted.discard(name)

        cookies[name] = value
        pos += 1  # skip ';'

    if not cookies:
        raise ParseError("Cookie string contains no entries")

    return SessionCredential(cookies, frozenset(quoted))


def _needs_quotes(value: str) -> bool:
    return ";" in value or value != value.strip()


def serialize_credential(credential: Mapping[str, str]) -> str:
    """Render cookies as `name=value` pairs joined by `; `."""
    parts = []
    for name, value in credential.items():
        is_quoted = isinstance(credential, SessionCredential) and credential.is_quoted(name)
        if is_quoted or _needs_quotes(value):
            parts.append(f'{name}="{value}"')
        else:
            parts.append(f"{name}={value}")
    return "; ".join(parts)


def load_cookie_string(config: Config | None = None, cookie_file: Path | None = None) -> str:
    """Find the raw cookie string in the environment, config or cookie file."""
    cookie = os.environ.get(COOKIE_ENV_VAR)
    if cookie and cookie.strip():
        logger.debug("Using cookie string from %s", COOKIE_ENV_VAR)
        return cookie

    if config is not None and config.cookie and config.cookie.strip():
        logger.debug("Using cookie string from config")
        return config.cookie

    path = cookie_file or COOKIE_FILE
    if path.exists():
        try:
            cookie = path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise CredentialNotFoundError(f"Cannot read cookie file {path}: {e}") from e
        if cookie:
            logger.debug("Using cookie string from %s", path)
            return cookie

    raise CredentialNotFoundError()
