import aiosqlite

from video_markup.models import CREATOR, Marker, Post, Role, Session


async def fetch_markers(conn: aiosqlite.Connection, session_id: str) -> list[Marker]:
    rows = await conn.execute(
        "SELECT * FROM markers WHERE session_id = ? ORDER BY start_time ASC, id ASC",
        (session_id,),
    )
    return [Marker.from_row(row) for row in await rows.fetchall()]


async def fetch_posts(conn: aiosqlite.Connection, marker_id: int) -> list[Post]:
    rows = await conn.execute(
        "SELECT * FROM posts WHERE marker_id = ? ORDER BY created_at ASC, id ASC",
        (marker_id,),
    )
    return [Post.from_row(row) for row in await rows.fetchall()]


async def assemble(conn: aiosqlite.Connection, session: Session, role: Role) -> dict:
    """Build the full timeline view of *session* as seen by *role*.

    Markers come back in timeline order and each marker's posts in the order
    they were written; clients render the timeline straight from this.
    ``helper_token`` is only present for the creator, and ``creator_token``
    is never part of the view.
    """
    view: dict = {
        "id": session.id,
        "youtube_url": session.youtube_url,
        "youtube_title": session.youtube_title,
        "youtube_thumbnail": session.youtube_thumbnail,
        "created_at": session.created_at,
    }
    if role == CREATOR:
        view["helper_token"] = session.helper_token

    markers = []
    for marker in await fetch_markers(conn, session.id):
        entry = marker.to_dict()
        entry["posts"] = [p.to_dict() for p in await fetch_posts(conn, marker.id)]
        markers.append(entry)

    view["markers"] = markers
    view["role"] = role
    return view
