"""Shared FastAPI dependencies and response helpers."""

from typing import Any, Dict

from fastapi import HTTPException, Request

from services.store import ContentStore, MutationResult

SYNC_WARNING = "Data sync anomaly, loaded local version."


def get_store(request: Request) -> ContentStore:
    """Return the process-wide store built during application startup."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Store is not initialized.")
    return store


def mutation_response(result: MutationResult) -> Dict[str, Any]:
    if not result.success:
        raise HTTPException(status_code=503, detail=result.to_dict())
    return result.to_dict()
