from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from video_markup.deps import get_attachments
from video_markup.errors import NotFoundError
from video_markup.services.storage import AttachmentStorage

router = APIRouter(tags=["audio"])

# Attachment names are random and never rewritten, so clients may cache hard.
CACHE_CONTROL = "public, max-age=31536000"


def _serve(filename: str, attachments: AttachmentStorage) -> FileResponse:
    path = attachments.path_for(filename)
    if not attachments.exists(filename):
        raise NotFoundError("Audio file not found")
    return FileResponse(
        path,
        media_type="audio/mpeg",
        headers={"Cache-Control": CACHE_CONTROL},
    )


@router.get("/api/audio/{filename}")
async def get_audio(
    filename: str, attachments: AttachmentStorage = Depends(get_attachments)
) -> FileResponse:
    """Stream a stored attachment. No token: the random name is the capability."""
    return _serve(filename, attachments)


@router.get("/audio/{filename}", include_in_schema=False)
async def get_audio_legacy(
    filename: str, attachments: AttachmentStorage = Depends(get_attachments)
) -> FileResponse:
    return _serve(filename, attachments)
