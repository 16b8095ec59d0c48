import json
from typing import Any, Dict, List

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database import Base
from services.local_storage import LocalStorage
from services.remote import RemoteBackend, RemoteHandle
from services.store import ContentStore


REMOTE_URL = "https://planner-test.supabase.co"
VALID_KEY = "eyJhbGciOiJIUzI1NiJ9.eyJyb2xlIjoiYW5vbiJ9.signature"


class FakeRowStore:
    """In-memory PostgREST stand-in served through httpx.MockTransport."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {"topics": [], "reference_notes": []}
        self.requests: List[httpx.Request] = []
        self.mode = "up"  # "up", "error" (HTTP 503) or "offline" (connection refused)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.mode == "offline":
            raise httpx.ConnectError("connection refused", request=request)
        if self.mode == "error":
            return httpx.Response(503, json={"message": "service unavailable"})

        table = request.url.path.rsplit("/", 1)[-1]
        rows = self.tables.setdefault(table, [])
        params = request.url.params

        if request.method == "GET":
            result = [dict(row) for row in rows]
            order = params.get("order")
            if order:
                column, direction = order.rsplit(".", 1)
                result.sort(key=lambda row: row.get(column), reverse=direction == "desc")
            columns = params.get("select", "*")
            if columns != "*":
                wanted = columns.split(",")
                result = [{key: row.get(key) for key in wanted} for row in result]
            if params.get("limit"):
                result = result[: int(params["limit"])]
            return httpx.Response(200, json=result)

        if request.method == "POST":
            rows.extend(json.loads(request.content))
            return httpx.Response(201)

        id_filter = params.get("id", "")
        if request.method == "PATCH":
            values = json.loads(request.content)
            target = id_filter.split("eq.", 1)[1]
            for row in rows:
                if row.get("id") == target:
                    row.update(values)
            return httpx.Response(204)

        if request.method == "DELETE":
            if id_filter == "not.is.null":
                rows.clear()
            else:
                target = id_filter.split("eq.", 1)[1]
                rows[:] = [row for row in rows if row.get("id") != target]
            return httpx.Response(204)

        return httpx.Response(405)


@pytest_asyncio.fixture
async def local_storage(tmp_path):
    db_path = tmp_path / "local_storage.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield LocalStorage(session_maker)
    await engine.dispose()


@pytest.fixture
def row_store():
    return FakeRowStore()


@pytest_asyncio.fixture
async def remote_store(local_storage, row_store):
    """Store wired to a configured remote backend."""
    backend = RemoteBackend(REMOTE_URL, VALID_KEY, transport=row_store.transport())
    store = ContentStore(local_storage, RemoteHandle(backend))
    yield store
    await store.aclose()


@pytest_asyncio.fixture
async def local_store(local_storage):
    """Store with no remote backend configured."""
    store = ContentStore(local_storage)
    yield store
    await store.aclose()
