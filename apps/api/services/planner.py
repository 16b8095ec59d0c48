"""Topic planning views and reference library queries over stored collections."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Optional
import uuid

from models.reference_note import ReferenceNote
from models.topic import SERIES_LABELS, STATUS_LABELS, SeriesType, StatusType, Topic, TopicDraft
from services.store import utc_now_iso

ALLOWED_NOTE_SORT_FIELDS = ("likes", "favorites", "comments", "published_at")


def _normalize_text(value: Any) -> str:
    return str(value or "").strip()


def search_topics(topics: List[Topic], query: Optional[str]) -> List[Topic]:
    q = _normalize_text(query).lower()
    if not q:
        return list(topics)
    return [topic for topic in topics if q in topic.title.lower() or q in (topic.note or "").lower()]


def library_columns(topics: List[Topic]) -> Dict[str, Any]:
    """Unscheduled ideas per series; scheduled topics stay visible while still ideas."""
    columns = []
    for series in SeriesType:
        column_topics = [
            topic
            for topic in topics
            if topic.series == series and (topic.target_date is None or topic.status == StatusType.IDEA)
        ]
        columns.append(
            {
                "series": series.value,
                "label": SERIES_LABELS[series],
                "count": len(column_topics),
                "topics": column_topics,
            }
        )
    return {
        "columns": columns,
        "status_labels": {status.value: label for status, label in STATUS_LABELS.items()},
    }


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def _week(title: str, start: date, scheduled: List[Topic], today: date) -> Dict[str, Any]:
    days = []
    for offset in range(7):
        current = start + timedelta(days=offset)
        days.append(
            {
                "date": current.isoformat(),
                "is_today": current == today,
                "topics": [topic for topic in scheduled if topic.target_date == current],
            }
        )
    return {
        "title": title,
        "start": start.isoformat(),
        "end": (start + timedelta(days=6)).isoformat(),
        "days": days,
    }


def weekly_plan(topics: List[Topic], today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    scheduled = [topic for topic in topics if topic.target_date is not None]
    this_week = week_start(today)
    return {
        "this_week": _week("this_week", this_week, scheduled, today),
        "next_week": _week("next_week", this_week + timedelta(days=7), scheduled, today),
    }


def prepare_topic(draft: TopicDraft, existing: Optional[Topic] = None) -> Topic:
    """
    Build the topic to persist from an editor draft.

    A new idea that already has a target date starts in ``scripting``; an
    existing idea that gains a date is promoted the same way. Other statuses
    are kept as they are.
    """
    now = utc_now_iso()
    if existing is not None:
        status = draft.status or existing.status
        if status == StatusType.IDEA and draft.target_date:
            status = StatusType.SCRIPTING
        topic_id = existing.id
        created_at = existing.created_at
    else:
        status = draft.status or StatusType.IDEA
        if draft.target_date and status == StatusType.IDEA:
            status = StatusType.SCRIPTING
        topic_id = draft.id or str(uuid.uuid4())
        created_at = now

    return Topic(
        id=topic_id,
        title=draft.title,
        note=draft.note,
        series=draft.series,
        status=status,
        is_urgent=draft.is_urgent,
        target_date=draft.target_date,
        created_at=created_at,
        updated_at=now,
    )


def filter_reference_notes(
    notes: List[ReferenceNote],
    query: Optional[str] = None,
    sort_by: str = "likes",
    ascending: bool = False,
) -> List[ReferenceNote]:
    q = _normalize_text(query).lower()
    if q:
        notes = [
            note
            for note in notes
            if q in note.title.lower() or q in note.content.lower() or q in note.author_name.lower()
        ]
    resolved_sort = sort_by if sort_by in ALLOWED_NOTE_SORT_FIELDS else "likes"
    return sorted(notes, key=lambda note: getattr(note, resolved_sort), reverse=not ascending)


def reference_stats(notes: List[ReferenceNote]) -> Dict[str, int]:
    return {
        "note_count": len(notes),
        "total_likes": sum(note.likes for note in notes),
        "total_favorites": sum(note.favorites for note in notes),
        "author_count": len({note.author_id for note in notes if note.author_id}),
    }
