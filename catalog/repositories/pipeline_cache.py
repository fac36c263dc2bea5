"""Repository layer for cached pipeline results."""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.models.db import PipelineCacheModel


class PipelineCacheRepository:
    """Data access layer for the pipeline cache. Entries are insert-only."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, fingerprint: str) -> Optional[PipelineCacheModel]:
        result = await self.session.execute(
            select(PipelineCacheModel).where(PipelineCacheModel.fingerprint == fingerprint)
        )
        return result.scalar_one_or_none()

    async def insert_if_absent(
        self,
        fingerprint: str,
        component_id: str,
        content_hash: str,
        config_hash: str,
        result: Dict[str, Any],
    ) -> bool:
        """Store *result* unless the fingerprint is taken.

        Returns:
            True if a row was written, False if one already existed
        """
        if await self.get(fingerprint) is not None:
            return False
        self.session.add(PipelineCacheModel(
            fingerprint=fingerprint,
            component_id=component_id,
            content_hash=content_hash,
            config_hash=config_hash,
            result=result,
        ))
        await self.session.flush()
        return True

    async def count(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(PipelineCacheModel)
        )
        return result.scalar() or 0
