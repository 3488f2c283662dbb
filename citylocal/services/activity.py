"""
Activity log -- moderation and account events written to the activities table.

Recording is fire-and-forget: it uses its own session so a failed insert can
never roll back or fail the operation that triggered it.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from citylocal.models import Activity

logger = logging.getLogger(__name__)


class ActivityLog:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def record(
        self,
        event_type: str,
        description: str,
        actor_id: Optional[int] = None,
        metadata: Optional[dict] = None,
    ) -> None:
        try:
            async with self._session_factory() as session:
                session.add(
                    Activity(
                        type=event_type,
                        description=description,
                        user_id=actor_id,
                        details=metadata or {},
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning("Failed to record activity %s: %s", event_type, e)


_activity_log: Optional[ActivityLog] = None


def get_activity_log() -> ActivityLog:
    global _activity_log
    if _activity_log is None:
        from citylocal.database import async_session

        _activity_log = ActivityLog(async_session)
    return _activity_log
