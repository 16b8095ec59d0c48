"""Remote credential resolution, persistence and connectivity probing."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

import httpx

from config import Settings, is_remote_configured, settings as default_settings
from services.local_storage import REMOTE_KEY_KEY, REMOTE_URL_KEY, LocalStorage
from services.remote import RemoteBackend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteCredentials:
    url: str
    key: str

    @property
    def is_valid(self) -> bool:
        return is_remote_configured(self.url, self.key)


async def resolve_credentials(
    local: LocalStorage,
    settings: Optional[Settings] = None,
) -> RemoteCredentials:
    """Locally saved values win, then environment, then the built-in default URL with no key."""
    settings = settings or default_settings
    stored_url = await local.get_item(REMOTE_URL_KEY)
    stored_key = await local.get_item(REMOTE_KEY_KEY)
    url = stored_url or settings.SUPABASE_URL or settings.DEFAULT_SUPABASE_URL
    key = stored_key or settings.SUPABASE_ANON_KEY or ""
    return RemoteCredentials(url=url.strip(), key=key.strip())


async def save_credentials(local: LocalStorage, url: str, key: str) -> RemoteCredentials:
    credentials = RemoteCredentials(url=(url or "").strip(), key=(key or "").strip())
    await local.set_item(REMOTE_URL_KEY, credentials.url)
    await local.set_item(REMOTE_KEY_KEY, credentials.key)
    logger.info("remote_credentials_saved url=%s valid=%s", credentials.url, credentials.is_valid)
    return credentials


def build_remote_backend(
    credentials: RemoteCredentials,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[RemoteBackend]:
    """Return a backend for usable credentials, or None so callers run local-only."""
    if not credentials.is_valid:
        return None
    try:
        return RemoteBackend(credentials.url, credentials.key, transport=transport)
    except (httpx.InvalidURL, ValueError) as exc:
        logger.error("remote_backend_init_failed url=%s error=%s", credentials.url, exc)
        return None


async def probe_connection(
    url: str,
    key: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """Probe a URL/key pair with a throwaway client; never touches shared state."""
    url = (url or "").strip()
    if not url:
        return False
    try:
        backend = RemoteBackend(url, (key or "").strip(), transport=transport)
    except (httpx.InvalidURL, ValueError) as exc:
        logger.info("remote_probe_invalid_url url=%s error=%s", url, exc)
        return False
    try:
        return await backend.ping()
    finally:
        await backend.aclose()
