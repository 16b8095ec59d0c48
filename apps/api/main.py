"""
MoneyMuse Content Planner - FastAPI Backend
Main application entry point with health check and API routing.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import Base, async_session_maker, engine
import models  # noqa: F401
from routers import connection, health, reference_notes, topics
from services.credentials import build_remote_backend, resolve_credentials
from services.local_storage import LocalStorage, LocalStorageError
from services.remote import RemoteHandle
from services.store import ContentStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting MoneyMuse Content Planner API...")
    if settings.AUTO_CREATE_DB_SCHEMA:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        print("🗄️ Local storage schema verified.")

    local = LocalStorage(async_session_maker)
    credentials = await resolve_credentials(local)
    remote = RemoteHandle(build_remote_backend(credentials))
    app.state.store = ContentStore(local, remote)
    if remote.enabled:
        print(f"☁️ Remote backend configured at {credentials.url}.")
    else:
        print("💾 No usable remote credentials; running on local storage only.")
    yield
    # Shutdown
    await app.state.store.aclose()
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="MoneyMuse Content Planner API",
    description="Plan content topics and benchmark imported reference notes",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LocalStorageError)
async def local_storage_error_handler(request: Request, exc: LocalStorageError):
    return JSONResponse(status_code=503, content={"detail": f"Local storage unavailable: {exc}"})


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(topics.router, prefix="/topics", tags=["Topics"])
app.include_router(reference_notes.router, prefix="/reference-notes", tags=["Reference Notes"])
app.include_router(connection.router, prefix="/settings", tags=["Settings"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "MoneyMuse Content Planner API",
        "version": "0.1.0",
        "status": "running"
    }
