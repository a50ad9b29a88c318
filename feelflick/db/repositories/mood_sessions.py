from __future__ import annotations

from datetime import datetime
from typing import Any

from feelflick.core.constants import TABLE_MOOD_SESSIONS
from feelflick.core.exceptions import DatastoreError
from feelflick.integrations.supabase import SupabaseClient


async def insert_mood_session(client: SupabaseClient, values: dict[str, Any]) -> int:
    rows = await client.rows(client.table(TABLE_MOOD_SESSIONS).insert(values), "mood_sessions insert")
    if not rows or rows[0].get("id") is None:
        raise DatastoreError("mood_sessions insert returned no row id")
    return int(rows[0]["id"])


async def close_mood_session(client: SupabaseClient, session_id: int, ended_at: datetime) -> bool:
    """Returns False when no session with that id exists."""
    query = (
        client.table(TABLE_MOOD_SESSIONS)
        .update({"session_ended_at": ended_at.isoformat()})
        .eq("id", session_id)
    )
    return bool(await client.rows(query, f"close mood session {session_id}"))
