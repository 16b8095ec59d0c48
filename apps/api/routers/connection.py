"""Remote backend connection settings router."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from routers.dependencies import get_store
from services.credentials import (
    build_remote_backend,
    probe_connection,
    resolve_credentials,
    save_credentials,
)
from services.store import ContentStore

router = APIRouter()
logger = logging.getLogger(__name__)


class ConnectionSettingsRequest(BaseModel):
    url: str = ""
    key: str = ""


def _mask_key(key: str) -> str:
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}...{key[-4:]}"


@router.get("/connection")
async def get_connection_settings(store: ContentStore = Depends(get_store)):
    credentials = await resolve_credentials(store.local)
    return {
        "url": credentials.url,
        "key": _mask_key(credentials.key),
        "credentials_valid": credentials.is_valid,
        "cloud_enabled": store.cloud_enabled,
    }


@router.put("/connection")
async def update_connection_settings(
    request: ConnectionSettingsRequest,
    http_request: Request,
    store: ContentStore = Depends(get_store),
):
    """Persist credentials and swap the shared remote handle to match them."""
    await save_credentials(store.local, request.url, request.key)
    credentials = await resolve_credentials(store.local)
    transport = getattr(http_request.app.state, "remote_transport", None)
    await store.remote.replace(build_remote_backend(credentials, transport=transport))
    logger.info("remote_reconfigured cloud_enabled=%s", store.cloud_enabled)
    return {
        "url": credentials.url,
        "credentials_valid": credentials.is_valid,
        "cloud_enabled": store.cloud_enabled,
    }


@router.post("/connection/test")
async def test_connection_settings(request: ConnectionSettingsRequest, http_request: Request):
    transport = getattr(http_request.app.state, "remote_transport", None)
    return {"reachable": await probe_connection(request.url, request.key, transport=transport)}
