"""Quick DB inspector for user documents.

Prints a points-ordered summary of users, their source counts and the
history keys they have stored.

Usage:
  uv run scripts/inspect_users.py
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Ensure project root is on sys.path so `app` package imports resolve
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy import func, select

from app.core.db.base import get_session
from app.core.db.schemas.user_data import HistoryEntry
from app.core.db_services import UserDataService
from app.modules.progress.service import build_leaderboard


async def main() -> int:
    async for session in get_session():  # get_session is an async generator
        users = await UserDataService(session).get_all_users()
        total_history = (
            await session.execute(select(func.count(HistoryEntry.id)))
        ).scalar() or 0

        print("User documents summary:")
        print(f"- Users: {len(users)}")
        print(f"- History entries: {total_history}")

        if not users:
            print("- No user documents found.")
            return 0

        by_id = {u.id: u for u in users}
        print("\nLeaderboard:")
        for entry in build_leaderboard(users):
            u = by_id[entry.user_id]
            print(
                f"  {entry.medal or entry.rank:>2} | {u.name!r} <{u.email}> | "
                f"points={entry.points} | quizzes={entry.quizzes_taken} | "
                f"pomodoros={u.progress.pomodoro_sessions} | sources={len(u.sources)}"
            )

        print("\nHistory keys per user:")
        rows = await session.execute(
            select(HistoryEntry.user_id, HistoryEntry.key, HistoryEntry.items).order_by(
                HistoryEntry.user_id, HistoryEntry.key
            )
        )
        for user_id, key, items in rows.all():
            print(f"  - user {user_id}: {key} ({len(items or [])} items)")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
