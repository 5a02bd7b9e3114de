import logging
import math

import aiosqlite

from video_markup.errors import ConflictError, ValidationError

logger = logging.getLogger(__name__)


def validate_bounds(start: float, end: float | None) -> None:
    """Reject negative starts and ranges that do not move forward in time."""
    if not math.isfinite(start):
        raise ValidationError("start_time must be a finite number")
    if start < 0:
        raise ValidationError("Start time cannot be negative")
    if end is None:
        return
    if not math.isfinite(end):
        raise ValidationError("end_time must be a finite number")
    if end <= start:
        raise ValidationError("End time must be after start time")


def ranges_overlap(s1: float, e1: float, s2: float, e2: float) -> bool:
    """Half-open ranges ``[s1, e1)`` and ``[s2, e2)`` share any instant."""
    return not (e1 <= s2 or s1 >= e2)


async def find_overlapping(
    conn: aiosqlite.Connection,
    session_id: str,
    start: float,
    end: float,
    exclude_marker_id: int | None = None,
) -> list[int]:
    """Ids of range markers in *session_id* overlapping ``[start, end)``.

    Point markers (``end_time IS NULL``) never participate.
    """
    sql = (
        "SELECT id FROM markers "
        "WHERE session_id = ? AND end_time IS NOT NULL "
        "AND NOT (end_time <= ? OR start_time >= ?)"
    )
    params: list = [session_id, start, end]
    if exclude_marker_id is not None:
        sql += " AND id != ?"
        params.append(exclude_marker_id)
    rows = await conn.execute(sql + " ORDER BY start_time", params)
    return [row["id"] for row in await rows.fetchall()]


async def check_overlap(
    conn: aiosqlite.Connection,
    session_id: str,
    start: float,
    end: float | None,
    exclude_marker_id: int | None = None,
) -> None:
    """Raise :class:`ConflictError` if the range collides with another one.

    Must run inside the same write transaction as the insert/update it
    guards, otherwise two writers can both pass the check.
    """
    if end is None:
        return
    clashes = await find_overlapping(conn, session_id, start, end, exclude_marker_id)
    if clashes:
        logger.warning(
            "Range %.3f-%.3f overlaps markers %s in session %s",
            start, end, clashes, session_id,
        )
        raise ConflictError("Marker range overlaps with existing range")
