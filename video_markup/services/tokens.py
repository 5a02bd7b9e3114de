import hmac
import logging
import re
import secrets

import aiosqlite

from video_markup.errors import ValidationError
from video_markup.models import CREATOR, HELPER, Role

logger = logging.getLogger(__name__)

TOKEN_BYTES = 16  # 128-bit role tokens
SESSION_ID_BYTES = 8  # 64-bit random session ids

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def issue_token() -> str:
    """Return an unguessable hex token. Treat it as a capability secret."""
    return secrets.token_hex(TOKEN_BYTES)


def issue_token_pair() -> tuple[str, str]:
    """Return distinct ``(creator_token, helper_token)``."""
    creator = issue_token()
    helper = issue_token()
    while _same(creator, helper):
        helper = issue_token()
    return creator, helper


def _same(a: str, b: str) -> bool:
    # compare_digest rejects non-ASCII str, so compare the UTF-8 bytes.
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def issue_session_id() -> str:
    return secrets.token_hex(SESSION_ID_BYTES)


def derive_slug(name: str) -> str:
    """Convert a human-supplied session name into a URL-safe id.

    ``"Tashi's  Talk!!"`` becomes ``"tashis-talk"``.  Raises
    :class:`ValidationError` when nothing usable is left.
    """
    slug = name.strip().lower()
    slug = _DISALLOWED.sub("", slug)
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHENS.sub("-", slug)
    slug = slug.strip("-")
    if not slug:
        raise ValidationError(
            "Session name must contain at least one letter or digit"
        )
    return slug


def match_role(session_row, presented: str | None) -> Role | None:
    """Compare *presented* against the tokens stored on *session_row*."""
    if not presented or session_row is None:
        return None
    if _same(presented, session_row["creator_token"]):
        return CREATOR
    if _same(presented, session_row["helper_token"]):
        return HELPER
    return None


async def authorize(
    conn: aiosqlite.Connection, session_id: str, presented: str | None
) -> Role | None:
    """Return the role *presented* grants on *session_id*, or ``None``.

    A missing session and a wrong token are indistinguishable to the caller.
    """
    if not presented:
        return None
    row = await conn.execute(
        "SELECT creator_token, helper_token FROM sessions WHERE id = ?",
        (session_id,),
    )
    session = await row.fetchone()
    role = match_role(session, presented)
    if role is None:
        logger.warning("Rejected token for session %s", session_id)
    return role
