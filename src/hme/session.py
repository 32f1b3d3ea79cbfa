"""Session manager for coordinating iCloud authentication."""

import logging

from hme.client import ICloudClient
from hme.config import ConfigStore
from hme.cookies import load_cookie_string, parse_cookie_string
from hme.exceptions import HmeError
from hme.manager import HideMyEmailManager

logger = logging.getLogger(__name__)


class SessionManager:
    """Coordinates configuration and authentication and hands out alias managers."""

    def __init__(self, store: ConfigStore | None = None) -> None:
        self._store = store or ConfigStore()

    def get_client(self) -> ICloudClient:
        """Return an unvalidated client built from the configured cookie string."""
        config = self._store.get_config()
        raw = load_cookie_string(config, cookie_file=self._store.cookie_path)
        credential = parse_cookie_string(raw)
        logger.debug("Parsed %d session cookies", len(credential))
        return ICloudClient(credential, timeout=config.timeout, user_agent=config.user_agent)

    async def open_manager(self) -> HideMyEmailManager:
        """Validate the configured session and return a manager that owns it."""
        client = self.get_client()
        try:
            await client.validate()
            return HideMyEmailManager(client)
        except HmeError:
            await client.aclose()
            raise
