from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel

from video_markup.config import Settings
from video_markup.deps import get_settings, get_store
from video_markup.services.store import MarkupStore

router = APIRouter(prefix="/api", tags=["posts"])

READ_CHUNK_BYTES = 64 * 1024


class PostUpdate(BaseModel):
    text_content: str | None = None


async def read_capped(upload: UploadFile, limit: int) -> bytes:
    """Read at most ``limit + 1`` bytes of *upload*.

    One byte past the cap is enough for the store to reject the upload, and
    the rest of an oversized body is never held in memory.
    """
    chunks: list[bytes] = []
    remaining = limit + 1
    while remaining > 0:
        chunk = await upload.read(min(READ_CHUNK_BYTES, remaining))
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


@router.post("/markers/{marker_id}/posts", status_code=201)
async def create_post(
    marker_id: int,
    token: str | None = Query(default=None),
    text_content: str | None = Form(default=None),
    audio: UploadFile | None = File(default=None),
    store: MarkupStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> dict:
    """Add a post (text and/or recorded audio) to a marker.

    Sent as ``multipart/form-data`` so the audio can ride along with the text.
    """
    data = await read_capped(audio, settings.max_audio_bytes) if audio is not None else None
    post = await store.create_post(marker_id, token, text_content, data)
    return post.to_dict()


@router.put("/posts/{post_id}")
async def update_post(
    post_id: int,
    body: PostUpdate,
    token: str | None = Query(default=None),
    store: MarkupStore = Depends(get_store),
) -> dict:
    post = await store.update_post(post_id, token, body.text_content)
    return post.to_dict()


@router.delete("/posts/{post_id}")
async def delete_post(
    post_id: int,
    token: str | None = Query(default=None),
    store: MarkupStore = Depends(get_store),
) -> dict:
    await store.delete_post(post_id, token)
    return {"success": True}
