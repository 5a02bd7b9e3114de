"""
FastAPI dependencies that hand each request its own store.
"""
from typing import AsyncIterator

from fastapi import Request

from video_markup.config import Settings
from video_markup.services.storage import AttachmentStorage
from video_markup.services.store import MarkupStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_attachments(request: Request) -> AttachmentStorage:
    return request.app.state.attachments


async def get_store(request: Request) -> AsyncIterator[MarkupStore]:
    """Open a connection for the request and wrap it in a :class:`MarkupStore`.

    Usage in endpoints::

        @router.get("/sessions/{session_id}")
        async def get_session(session_id: str, store: MarkupStore = Depends(get_store)):
            ...

    The connection is closed once the response has been produced.
    """
    state = request.app.state
    async with state.db.connection() as conn:
        yield MarkupStore(
            conn,
            state.attachments,
            metadata=state.metadata_client,
            max_audio_bytes=state.settings.max_audio_bytes,
        )
