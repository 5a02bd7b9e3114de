from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from video_markup.deps import get_store
from video_markup.services.store import MarkupStore

router = APIRouter(prefix="/api", tags=["markers"])


class MarkerCreate(BaseModel):
    start_time: float
    end_time: float | None = None  # None -> point marker


class MarkerUpdate(BaseModel):
    start_time: float | None = None
    end_time: float | None = None


@router.post("/sessions/{session_id}/markers", status_code=201)
async def create_marker(
    session_id: str,
    body: MarkerCreate,
    token: str | None = Query(default=None),
    store: MarkupStore = Depends(get_store),
) -> dict:
    marker = await store.create_marker(
        session_id, token, body.start_time, body.end_time
    )
    return marker.to_dict()


@router.put("/markers/{marker_id}")
async def update_marker(
    marker_id: int,
    body: MarkerUpdate,
    token: str | None = Query(default=None),
    store: MarkupStore = Depends(get_store),
) -> dict:
    """Partial update; omitted times keep their current values."""
    marker = await store.update_marker(
        marker_id, token, body.start_time, body.end_time
    )
    return marker.to_dict()


@router.delete("/markers/{marker_id}")
async def delete_marker(
    marker_id: int,
    token: str | None = Query(default=None),
    store: MarkupStore = Depends(get_store),
) -> dict:
    """Delete a marker together with its posts and their audio."""
    await store.delete_marker(marker_id, token)
    return {"success": True}
