"""Topic planning router."""

from __future__ import annotations

from datetime import date
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from models.topic import TopicChanges, TopicDraft, TopicStatusUpdate
from routers.dependencies import SYNC_WARNING, get_store, mutation_response
from services.planner import library_columns, prepare_topic, search_topics, weekly_plan
from services.store import ContentStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
async def list_topics(
    q: Optional[str] = Query(default=None),
    store: ContentStore = Depends(get_store),
):
    listing = await store.topics.list_with_source()
    return {
        "topics": search_topics(listing.items, q),
        "cloud_enabled": store.cloud_enabled,
        "warning": SYNC_WARNING if listing.degraded else None,
    }


@router.get("/library")
async def topic_library(
    q: Optional[str] = Query(default=None),
    store: ContentStore = Depends(get_store),
):
    topics = search_topics(await store.topics.list(), q)
    return library_columns(topics)


@router.get("/plan")
async def topic_plan(
    today: Optional[date] = Query(default=None),
    q: Optional[str] = Query(default=None),
    store: ContentStore = Depends(get_store),
):
    topics = search_topics(await store.topics.list(), q)
    return weekly_plan(topics, today=today)


@router.post("")
async def save_topic(
    draft: TopicDraft,
    store: ContentStore = Depends(get_store),
):
    """Update the topic when its id is already stored, otherwise create it."""
    existing = None
    if draft.id:
        existing = next((topic for topic in await store.topics.list() if topic.id == draft.id), None)
    topic = prepare_topic(draft, existing)

    if existing is not None:
        result = await store.topics.update_details(
            topic.id,
            topic.model_dump(include={"title", "note", "series", "status", "is_urgent", "target_date"}),
        )
    else:
        result = await store.topics.insert(topic)
    payload = mutation_response(result)
    payload["topic"] = topic
    return payload


@router.patch("/{topic_id}")
async def update_topic_details(
    topic_id: str,
    changes: TopicChanges,
    store: ContentStore = Depends(get_store),
):
    return mutation_response(
        await store.topics.update_details(topic_id, changes.to_patch())
    )


@router.patch("/{topic_id}/status")
async def update_topic_status(
    topic_id: str,
    request: TopicStatusUpdate,
    store: ContentStore = Depends(get_store),
):
    return mutation_response(await store.topics.update_status(topic_id, request.status))


@router.delete("/{topic_id}")
async def delete_topic(
    topic_id: str,
    store: ContentStore = Depends(get_store),
):
    logger.info("topic_delete id=%s", topic_id)
    return mutation_response(await store.topics.delete(topic_id))
