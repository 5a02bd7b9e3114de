from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from video_markup.config import Settings
from video_markup.deps import get_settings, get_store
from video_markup.errors import NotFoundError
from video_markup.services.store import MarkupStore

router = APIRouter(prefix="/api", tags=["sessions"])


# ------------------------------------------------------------------
# Request bodies
# ------------------------------------------------------------------


class SessionCreate(BaseModel):
    youtube_url: str | None = None
    session_name: str | None = None
    # Pre-computed slug (e.g. transliterated from a non-Latin name).
    slug: str | None = None


# ------------------------------------------------------------------
# Session endpoints
# ------------------------------------------------------------------


@router.post("/sessions", status_code=201)
async def create_session(
    body: SessionCreate, store: MarkupStore = Depends(get_store)
) -> dict:
    """Create a session. The returned tokens are not shown again."""
    return await store.create_session(
        body.youtube_url, session_name=body.session_name, slug=body.slug
    )


@router.get("/sessions")
async def list_sessions(
    store: MarkupStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> dict:
    if not settings.enable_session_listing:
        raise NotFoundError("Endpoint not found")
    return {"sessions": await store.list_sessions()}


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    token: str | None = Query(default=None),
    store: MarkupStore = Depends(get_store),
) -> dict:
    """Session with its markers (time-ordered) and their posts (chronological)."""
    return await store.get_session(session_id, token)


@router.delete("/sessions/{session_id}")
async def delete_session(
    session_id: str,
    token: str | None = Query(default=None),
    store: MarkupStore = Depends(get_store),
) -> dict:
    await store.delete_session(session_id, token)
    return {"success": True}
