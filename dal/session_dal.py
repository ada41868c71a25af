"""Async Data Access Layer for guide sessions and their interactions.

Provides SessionDAL with the three operations the guide service relies on:
upserting a session row, appending an interaction row, and reading a session
back together with its ordered interactions.
"""

from __future__ import annotations

import time
from typing import Optional, Sequence

from models.guide_models import ChatRole, CustomGuide, LabelResult, StoredSession, make_turn
from utils.database_init import AsyncDatabaseInitializer


class SessionDAL:
    """Data access layer for `sessions` and `interactions` rows.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def record_session(
        self,
        session_id: str,
        tone: str,
        result: LabelResult,
        image_url: Optional[str],
        custom_guide: Optional[CustomGuide],
    ) -> None:
        """Insert or replace the session row for `session_id`."""
        async with self._db.connection() as conn:
            await conn.execute(
                """
                INSERT INTO sessions (id, tone, image_url, label_text, explanation, custom_name, custom_description, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (id) DO UPDATE SET
                    tone = excluded.tone,
                    image_url = excluded.image_url,
                    label_text = excluded.label_text,
                    explanation = excluded.explanation,
                    custom_name = excluded.custom_name,
                    custom_description = excluded.custom_description,
                    created_at = excluded.created_at
                """,
                (
                    session_id,
                    tone,
                    image_url,
                    result.label_text,
                    result.explanation,
                    custom_guide.name if custom_guide else None,
                    custom_guide.description if custom_guide else None,
                    time.time(),
                ),
            )
            await conn.commit()

    async def record_interaction(
        self, session_id: str, role: ChatRole, content: str, created_at: Optional[float] = None
    ) -> int:
        """Append one interaction row and return its id."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "INSERT INTO interactions (session_id, role, content, created_at) VALUES (?, ?, ?, ?)",
                (session_id, role, content, created_at or time.time()),
            )
            await conn.commit()
            return cur.lastrowid

    async def fetch_session_with_history(self, session_id: str) -> Optional[StoredSession]:
        """Return the stored session and its interactions, or None if unknown."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT tone, image_url, label_text, explanation, custom_name, custom_description "
                "FROM sessions WHERE id = ? LIMIT 1",
                (session_id,),
            )
            row = await cur.fetchone()
            if row is None:
                return None

            cur = await conn.execute(
                "SELECT id, role, content, created_at FROM interactions "
                "WHERE session_id = ? ORDER BY created_at ASC, id ASC",
                (session_id,),
            )
            interactions = await cur.fetchall()

        return self._row_to_session(session_id, row, interactions)

    @staticmethod
    def _row_to_session(
        session_id: str, row: Sequence[object], interactions: Sequence[Sequence[object]]
    ) -> StoredSession:
        """Convert a session row and its interaction rows into a StoredSession."""
        tone, image_url, label_text, explanation, custom_name, custom_description = row
        history = [
            make_turn(
                session_id,
                "assistant" if role == "assistant" else "user",
                content,
                sequence,
                created_at=created_at,
            )
            for sequence, (_, role, content, created_at) in enumerate(interactions)
        ]
        custom_guide = (
            CustomGuide(name=custom_name, description=custom_description)
            if custom_name and custom_description
            else None
        )
        return StoredSession(
            tone=tone,
            label_result=LabelResult(label_text=label_text or "", explanation=explanation or ""),
            image_url=image_url,
            custom_guide=custom_guide,
            history=history,
        )
