import logging
import os
import uuid
from typing import Iterable

import aiofiles

from video_markup.errors import AttachmentError, ValidationError

logger = logging.getLogger(__name__)


class AttachmentStorage:
    """Audio attachments stored as flat files under one directory.

    Posts only ever reference a bare file name; :meth:`path_for` is the single
    place where a name becomes a filesystem path.
    """

    def __init__(self, audio_dir: str) -> None:
        self.audio_dir = audio_dir

    def ensure_dir(self) -> None:
        os.makedirs(self.audio_dir, exist_ok=True)

    @staticmethod
    def sanitize(name: str) -> str:
        """Reduce *name* to its base component, rejecting traversal attempts."""
        base = os.path.basename(name.replace("\\", "/"))
        if not base or base.startswith("."):
            raise ValidationError("Invalid attachment name")
        return base

    def path_for(self, name: str) -> str:
        return os.path.join(self.audio_dir, self.sanitize(name))

    def exists(self, name: str) -> bool:
        return os.path.isfile(self.path_for(name))

    async def save(self, data: bytes, suffix: str = ".mp3") -> str:
        """Write *data* under a fresh random name and return that name."""
        name = f"{uuid.uuid4().hex}{suffix}"
        path = self.path_for(name)
        try:
            self.ensure_dir()
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error("Failed to save attachment %s", path, exc_info=True)
            self.reap([name])
            raise AttachmentError("Failed to save audio file") from e
        logger.info("Saved attachment %s (%d bytes)", name, len(data))
        return name

    def delete(self, name: str) -> bool:
        """Remove one attachment. Returns False if it was already gone."""
        try:
            os.remove(self.path_for(name))
        except FileNotFoundError:
            return False
        return True

    def reap(self, names: Iterable[str | None]) -> int:
        """Delete every referenced attachment; tolerate missing files.

        Called after the owning rows are gone, so an unexpected failure on one
        file is logged and the rest are still attempted.
        """
        removed = 0
        for name in names:
            if not name:
                continue
            try:
                if self.delete(name):
                    removed += 1
            except (OSError, ValidationError):
                logger.exception("Could not remove attachment %s", name)
        if removed:
            logger.info("Reaped %d attachment(s)", removed)
        return removed
