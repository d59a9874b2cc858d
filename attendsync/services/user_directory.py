# attendsync/services/user_directory.py
from __future__ import annotations

from typing import Dict, Iterable, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attendsync.core.exceptions import PersistenceError
from attendsync.models.user import User


class UserDirectory(Protocol):
    async def get_discord_ids(self, user_ids: Iterable[str]) -> Dict[str, str]:
        ...


class SqlUserDirectory:
    """
    Maps application user ids to Discord ids using the `users` table.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_discord_ids(self, user_ids: Iterable[str]) -> Dict[str, str]:
        """
        Return `{user_id: discord_id}` for every known user in `user_ids`.

        Unknown ids are simply missing from the result.
        """
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        stmt = select(User.id, User.discord_id).where(User.id.in_(ids))
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return {row.id: row.discord_id for row in result.all()}
        except SQLAlchemyError as exc:
            raise PersistenceError(f"User lookup failed: {exc}") from exc

