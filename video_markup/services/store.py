import logging

import aiosqlite

from video_markup.clients.oembed_client import OEmbedClient
from video_markup.database import transaction
from video_markup.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from video_markup.logging_setup import log_context
from video_markup.models import CREATOR, HELPER, Marker, Post, Role, Session
from video_markup.services.assembler import assemble
from video_markup.services.ranges import check_overlap, validate_bounds
from video_markup.services.storage import AttachmentStorage
from video_markup.services.tokens import (
    authorize,
    derive_slug,
    issue_session_id,
    issue_token_pair,
)

logger = logging.getLogger(__name__)

# Same message for unknown tokens and wrong roles so neither can be probed.
DENIED = "Invalid or insufficient token for this operation"

ANY_ROLE: tuple[Role, ...] = (CREATOR, HELPER)
CREATOR_ONLY: tuple[Role, ...] = (CREATOR,)


class MarkupStore:
    """Role-gated operations on sessions, markers and posts.

    One instance wraps one open connection for the duration of a request.
    Every mutating operation follows the same order: authorize against the
    owning session, validate the input, then write.  Writes that must see a
    consistent view (overlap check + insert, cascade delete + attachment
    enumeration) run inside a single ``BEGIN IMMEDIATE`` transaction.

    Attachment files are only removed after the transaction that deleted
    their rows has committed; their names are collected inside it.
    """

    def __init__(
        self,
        conn: aiosqlite.Connection,
        attachments: AttachmentStorage,
        metadata: OEmbedClient | None = None,
        max_audio_bytes: int | None = None,
    ) -> None:
        self.conn = conn
        self.attachments = attachments
        self.metadata = metadata
        self.max_audio_bytes = max_audio_bytes

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _load_session(self, session_id: str) -> Session | None:
        row = await self.conn.execute(
            "SELECT * FROM sessions WHERE id = ?", (session_id,)
        )
        session = await row.fetchone()
        return Session.from_row(session) if session else None

    async def get_marker(self, marker_id: int) -> Marker:
        row = await self.conn.execute(
            "SELECT * FROM markers WHERE id = ?", (marker_id,)
        )
        marker = await row.fetchone()
        if not marker:
            raise NotFoundError("Marker not found")
        return Marker.from_row(marker)

    async def get_post(self, post_id: int) -> tuple[Post, str]:
        """Return the post and the id of the session that owns it."""
        row = await self.conn.execute(
            "SELECT p.*, m.session_id AS session_id "
            "FROM posts p JOIN markers m ON p.marker_id = m.id "
            "WHERE p.id = ?",
            (post_id,),
        )
        post = await row.fetchone()
        if not post:
            raise NotFoundError("Post not found")
        return Post.from_row(post), post["session_id"]

    async def _attachment_names(self, sql: str, params: tuple) -> list[str]:
        rows = await self.conn.execute(sql, params)
        return [row[0] for row in await rows.fetchall() if row[0]]

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    async def _require_role(
        self, session_id: str, token: str | None, allowed: tuple[Role, ...]
    ) -> Role:
        role = await authorize(self.conn, session_id, token)
        if role is None or role not in allowed:
            raise AuthorizationError(DENIED)
        return role

    async def _require_author(
        self, session_id: str, token: str | None, author_type: Role
    ) -> Role:
        return await self._require_role(session_id, token, (author_type,))

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(
        self,
        youtube_url: str | None,
        session_name: str | None = None,
        slug: str | None = None,
    ) -> dict:
        """Create a session and return its id and both tokens.

        This is the only time the tokens are handed out; they cannot be
        recovered through any other operation except the operator listing.
        """
        if not youtube_url or not youtube_url.strip():
            raise ValidationError("youtube_url is required")
        youtube_url = youtube_url.strip()

        requested = slug if slug and slug.strip() else session_name
        if requested and requested.strip():
            session_id = derive_slug(requested)
            if await self._load_session(session_id) is not None:
                raise ConflictError(
                    "A session with this name already exists. "
                    "Please choose a different name."
                )
        else:
            session_id = issue_session_id()

        if self.metadata is None:
            raise RuntimeError("MarkupStore needs a metadata client to create sessions")
        meta = await self.metadata.fetch(youtube_url)

        creator_token, helper_token = issue_token_pair()
        try:
            async with transaction(self.conn):
                await self.conn.execute(
                    "INSERT INTO sessions (id, youtube_url, youtube_title, "
                    "youtube_thumbnail, creator_token, helper_token) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        session_id,
                        youtube_url,
                        meta.title,
                        meta.thumbnail_url,
                        creator_token,
                        helper_token,
                    ),
                )
        except aiosqlite.IntegrityError as e:
            raise ConflictError(
                "A session with this name already exists. "
                "Please choose a different name."
            ) from e

        with log_context(session_id=session_id):
            logger.info("Created session for %s", youtube_url)
        return {
            "id": session_id,
            "creator_token": creator_token,
            "helper_token": helper_token,
            "youtube_title": meta.title,
            "youtube_thumbnail": meta.thumbnail_url,
        }

    async def list_sessions(self) -> list[dict]:
        """All sessions, newest first, with marker counts.

        Includes both tokens of every session; operator use only.
        """
        rows = await self.conn.execute(
            """
            SELECT
                s.id,
                s.youtube_url,
                s.youtube_title,
                s.youtube_thumbnail,
                s.creator_token,
                s.helper_token,
                s.created_at,
                COUNT(m.id) AS marker_count
            FROM sessions s
            LEFT JOIN markers m ON s.id = m.session_id
            GROUP BY s.id
            ORDER BY s.created_at DESC, s.rowid DESC
            """
        )
        return [dict(row) for row in await rows.fetchall()]

    async def get_session(self, session_id: str, token: str | None) -> dict:
        role = await self._require_role(session_id, token, ANY_ROLE)
        session = await self._load_session(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        return await assemble(self.conn, session, role)

    async def delete_session(self, session_id: str, token: str | None) -> None:
        with log_context(session_id=session_id):
            async with transaction(self.conn):
                await self._require_role(session_id, token, CREATOR_ONLY)
                names = await self._attachment_names(
                    "SELECT audio_filename FROM posts WHERE marker_id IN "
                    "(SELECT id FROM markers WHERE session_id = ?)",
                    (session_id,),
                )
                await self.conn.execute(
                    "DELETE FROM sessions WHERE id = ?", (session_id,)
                )
            logger.info("Deleted session (%d attachment(s) to reap)", len(names))
            self.attachments.reap(names)

    # ------------------------------------------------------------------
    # Markers
    # ------------------------------------------------------------------

    async def create_marker(
        self,
        session_id: str,
        token: str | None,
        start_time: float | None,
        end_time: float | None = None,
    ) -> Marker:
        with log_context(session_id=session_id):
            async with transaction(self.conn):
                await self._require_role(session_id, token, CREATOR_ONLY)
                if start_time is None:
                    raise ValidationError("start_time is required")
                start = float(start_time)
                end = float(end_time) if end_time is not None else None
                validate_bounds(start, end)
                await check_overlap(self.conn, session_id, start, end)
                cursor = await self.conn.execute(
                    "INSERT INTO markers (session_id, start_time, end_time) "
                    "VALUES (?, ?, ?)",
                    (session_id, start, end),
                )
                marker = await self.get_marker(cursor.lastrowid)
            logger.info(
                "Created %s marker %d at %s",
                "range" if marker.is_range else "point", marker.id, start,
            )
            return marker

    async def update_marker(
        self,
        marker_id: int,
        token: str | None,
        start_time: float | None = None,
        end_time: float | None = None,
    ) -> Marker:
        """Move a marker. Omitted times keep their stored values.

        A range marker cannot be turned back into a point marker here, since
        an omitted ``end_time`` means "unchanged".
        """
        async with transaction(self.conn):
            marker = await self.get_marker(marker_id)
            await self._require_role(marker.session_id, token, CREATOR_ONLY)
            start = marker.start_time if start_time is None else float(start_time)
            end = marker.end_time if end_time is None else float(end_time)
            validate_bounds(start, end)
            await check_overlap(
                self.conn, marker.session_id, start, end, exclude_marker_id=marker.id
            )
            await self.conn.execute(
                "UPDATE markers SET start_time = ?, end_time = ? WHERE id = ?",
                (start, end, marker_id),
            )
            return await self.get_marker(marker_id)

    async def delete_marker(self, marker_id: int, token: str | None) -> None:
        async with transaction(self.conn):
            marker = await self.get_marker(marker_id)
            await self._require_role(marker.session_id, token, CREATOR_ONLY)
            names = await self._attachment_names(
                "SELECT audio_filename FROM posts WHERE marker_id = ?",
                (marker_id,),
            )
            await self.conn.execute("DELETE FROM markers WHERE id = ?", (marker_id,))
        with log_context(session_id=marker.session_id):
            logger.info("Deleted marker %d", marker_id)
            self.attachments.reap(names)

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    async def create_post(
        self,
        marker_id: int,
        token: str | None,
        text_content: str | None = None,
        audio: bytes | None = None,
    ) -> Post:
        """Attach a text and/or audio post to a marker.

        ``author_type`` is whichever role *token* grants.  The audio file is
        written before the row; if the row cannot be inserted the file is
        removed again so no unreferenced attachment is left behind.
        """
        marker = await self.get_marker(marker_id)
        role = await self._require_role(marker.session_id, token, ANY_ROLE)

        text = text_content if text_content and text_content.strip() else None
        if not audio:
            audio = None
        if text is None and audio is None:
            raise ValidationError("Either text_content or audio is required")
        if audio is not None and self.max_audio_bytes and len(audio) > self.max_audio_bytes:
            raise ValidationError(
                f"Audio attachment exceeds {self.max_audio_bytes} bytes"
            )

        audio_name = await self.attachments.save(audio) if audio is not None else None
        try:
            async with transaction(self.conn):
                # The marker may have been deleted while the upload was written.
                await self.get_marker(marker_id)
                cursor = await self.conn.execute(
                    "INSERT INTO posts (marker_id, author_type, text_content, audio_filename) "
                    "VALUES (?, ?, ?, ?)",
                    (marker_id, role, text, audio_name),
                )
                post, _ = await self.get_post(cursor.lastrowid)
        except BaseException:
            if audio_name is not None:
                logger.warning("Post insert failed; removing attachment %s", audio_name)
                self.attachments.reap([audio_name])
            raise

        with log_context(session_id=marker.session_id):
            logger.info("Created %s post %d on marker %d", role, post.id, marker_id)
        return post

    async def update_post(
        self, post_id: int, token: str | None, text_content: str | None
    ) -> Post:
        async with transaction(self.conn):
            post, session_id = await self.get_post(post_id)
            await self._require_author(session_id, token, post.author_type)
            if text_content is None:
                raise ValidationError("text_content is required")
            text = text_content if text_content.strip() else None
            if text is None and post.audio_filename is None:
                raise ValidationError("A post without audio needs text_content")
            await self.conn.execute(
                "UPDATE posts SET text_content = ? WHERE id = ?", (text, post_id)
            )
            updated, _ = await self.get_post(post_id)
        return updated

    async def delete_post(self, post_id: int, token: str | None) -> None:
        async with transaction(self.conn):
            post, session_id = await self.get_post(post_id)
            await self._require_author(session_id, token, post.author_type)
            await self.conn.execute("DELETE FROM posts WHERE id = ?", (post_id,))
        with log_context(session_id=session_id):
            logger.info("Deleted %s post %d", post.author_type, post_id)
            self.attachments.reap([post.audio_filename])
