"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends

from routers.dependencies import get_store
from services.local_storage import LocalStorageError, TOPICS_KEY
from services.store import ContentStore

router = APIRouter()


@router.get("/health")
async def health_check(store: ContentStore = Depends(get_store)):
    """
    Health check endpoint.
    Reports local storage and remote backend reachability.
    """
    health_status = {
        "status": "healthy",
        "api": "up",
        "local_storage": "unknown",
        "remote": "not_configured",
    }

    try:
        await store.local.get_item(TOPICS_KEY)
        health_status["local_storage"] = "up"
    except LocalStorageError as e:
        health_status["local_storage"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    backend = store.remote.backend
    if backend is not None:
        if await backend.ping():
            health_status["remote"] = "up"
        else:
            # Local fallback keeps serving requests.
            health_status["remote"] = "down"
            health_status["status"] = "degraded"

    return health_status


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}
