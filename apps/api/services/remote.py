"""Remote row-store client speaking the Supabase/PostgREST REST dialect."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

TOPICS_TABLE = "topics"
REFERENCE_NOTES_TABLE = "reference_notes"


class RemoteBackendError(RuntimeError):
    """Raised for transport failures and non-2xx responses from the remote backend."""


class RemoteBackend:
    """Thin async client over ``{url}/rest/v1/<table>`` endpoints."""

    def __init__(
        self,
        url: str,
        key: str,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url.strip().rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=f"{self.url}/rest/v1",
            headers={
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> httpx.Response:
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = await self._client.request(method, f"/{table}", params=params, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise RemoteBackendError(f"{method} {table} failed: {exc}") from exc
        if response.status_code >= 400:
            raise RemoteBackendError(
                f"{method} {table} returned {response.status_code}: {response.text[:200]}"
            )
        return response

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        order: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params = {"select": columns}
        if order:
            params["order"] = f"{order}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = str(limit)
        response = await self._request("GET", table, params=params)
        try:
            rows = response.json()
        except ValueError as exc:
            raise RemoteBackendError(f"GET {table} returned invalid JSON") from exc
        if not isinstance(rows, list):
            raise RemoteBackendError(f"GET {table} returned {type(rows).__name__}, expected list")
        return rows

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> None:
        await self._request("POST", table, json=rows, prefer="return=minimal")

    async def update(self, table: str, row_id: str, values: Dict[str, Any]) -> None:
        await self._request("PATCH", table, params={"id": f"eq.{row_id}"}, json=values, prefer="return=minimal")

    async def delete(self, table: str, row_id: str) -> None:
        await self._request("DELETE", table, params={"id": f"eq.{row_id}"})

    async def delete_all(self, table: str) -> None:
        # PostgREST refuses unfiltered deletes.
        await self._request("DELETE", table, params={"id": "not.is.null"})

    async def ping(self) -> bool:
        """Issue one lightweight read against the topics table."""
        try:
            await self.select(TOPICS_TABLE, columns="id", limit=1)
        except RemoteBackendError as exc:
            logger.info("remote_ping_failed url=%s error=%s", self.url, exc)
            return False
        return True

    async def aclose(self) -> None:
        await self._client.aclose()


class RemoteHandle:
    """Shared, replaceable slot for the process-wide remote backend (may be empty)."""

    def __init__(self, backend: Optional[RemoteBackend] = None):
        self.backend = backend

    @property
    def enabled(self) -> bool:
        return self.backend is not None

    async def replace(self, backend: Optional[RemoteBackend]) -> None:
        previous, self.backend = self.backend, backend
        if previous is not None and previous is not backend:
            await previous.aclose()

    async def aclose(self) -> None:
        await self.replace(None)
