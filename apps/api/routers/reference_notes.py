"""Reference library router: spreadsheet import, listing and cleanup."""

from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from config import settings
from routers.dependencies import SYNC_WARNING, get_store, mutation_response
from services.planner import filter_reference_notes, reference_stats
from services.spreadsheet import INVALID_FILE_TYPE, is_valid_spreadsheet, parse_spreadsheet
from services.store import ContentStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
async def list_reference_notes(
    q: Optional[str] = Query(default=None),
    sort_by: Literal["likes", "favorites", "comments", "published_at"] = Query(default="likes"),
    ascending: bool = Query(default=False),
    store: ContentStore = Depends(get_store),
):
    listing = await store.reference_notes.list_with_source()
    notes = filter_reference_notes(listing.items, q, sort_by=sort_by, ascending=ascending)
    return {
        "notes": notes,
        "total_count": len(listing.items),
        "warning": SYNC_WARNING if listing.degraded else None,
    }


@router.get("/stats")
async def reference_note_stats(store: ContentStore = Depends(get_store)):
    return reference_stats(await store.reference_notes.list())


@router.post("/import")
async def import_reference_notes(
    file: UploadFile = File(...),
    store: ContentStore = Depends(get_store),
):
    """Parse an uploaded spreadsheet and add the accepted notes to the library."""
    if not is_valid_spreadsheet(file.filename, file.content_type):
        await file.close()
        raise HTTPException(status_code=415, detail={"success": False, "errors": [INVALID_FILE_TYPE]})
    try:
        content = await file.read()
    finally:
        await file.close()
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"Spreadsheet too large. Max {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB.",
        )

    parsed = parse_spreadsheet(content, file.filename, file.content_type)
    summary = {
        "success": parsed.success,
        "errors": parsed.errors,
        "total_rows": parsed.total_rows,
        "parsed_rows": parsed.parsed_rows,
    }
    if not parsed.success:
        raise HTTPException(status_code=422, detail=summary)

    payload = mutation_response(await store.reference_notes.bulk_insert(parsed.notes))
    logger.info(
        "reference_import file=%s rows=%s accepted=%s added=%s",
        file.filename,
        parsed.total_rows,
        parsed.parsed_rows,
        payload["added"],
    )
    payload["parse"] = summary
    return payload


@router.delete("/{reference_id}")
async def delete_reference_note(
    reference_id: str,
    store: ContentStore = Depends(get_store),
):
    return mutation_response(await store.reference_notes.delete(reference_id))


@router.delete("")
async def clear_reference_notes(store: ContentStore = Depends(get_store)):
    logger.info("reference_notes_clear_requested")
    return mutation_response(await store.reference_notes.clear_all())
