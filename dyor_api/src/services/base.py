from __future__ import annotations

import logging
from typing import Any, Awaitable

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class BaseService:
    """
    Holds the request session shared by a service's repositories.

    A service commits the write it was asked for first. Follow-up work such as
    activity tracking goes through run_side_effect, so a failure there is
    logged and rolled back without failing the committed write.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def run_side_effect(self, action: Awaitable[Any], description: str) -> bool:
        """Await a post-commit step. Returns False if it failed and was rolled back."""
        try:
            await action
        except Exception:
            logger.exception("%s failed", description)
            await self.session.rollback()
            return False
        return True
