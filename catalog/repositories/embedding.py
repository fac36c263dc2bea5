"""Repository layer for embedding vectors.

Provides async access to EmbeddingModel rows, including the ordered scan
used by similarity search.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.models.db import EmbeddingModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EmbeddingRepository:
    """Data access layer for embeddings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, component_id: str, kind: str) -> Optional[EmbeddingModel]:
        result = await self.session.execute(
            select(EmbeddingModel).where(
                EmbeddingModel.component_id == component_id,
                EmbeddingModel.kind == kind,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_component(self, component_id: str) -> List[EmbeddingModel]:
        result = await self.session.execute(
            select(EmbeddingModel)
            .where(EmbeddingModel.component_id == component_id)
            .order_by(EmbeddingModel.seq.asc())
        )
        return list(result.scalars().all())

    async def upsert(
        self,
        component_id: str,
        kind: str,
        vector: List[float],
        model_name: str,
    ) -> EmbeddingModel:
        """Insert or overwrite the vector for (component_id, kind).

        An overwrite keeps the existing ``seq`` so insertion order is stable.
        """
        row = await self.get(component_id, kind)
        if row is None:
            row = EmbeddingModel(
                component_id=component_id,
                kind=kind,
                vector=list(vector),
                dimensions=len(vector),
                model_name=model_name,
            )
            self.session.add(row)
        else:
            row.vector = list(vector)
            row.dimensions = len(vector)
            row.model_name = model_name
            row.created_at = _utcnow()
        await self.session.flush()
        return row

    async def dimensions_for_kind(
        self, kind: str, exclude_component_id: Optional[str] = None,
    ) -> Optional[int]:
        """Dimensionality shared by stored embeddings of *kind*, if any."""
        query = select(EmbeddingModel.dimensions).where(EmbeddingModel.kind == kind)
        if exclude_component_id is not None:
            query = query.where(EmbeddingModel.component_id != exclude_component_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def count(self, kind: Optional[str] = None) -> int:
        query = select(func.count()).select_from(EmbeddingModel)
        if kind:
            query = query.where(EmbeddingModel.kind == kind)
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def stream_by_kind(self, kind: str) -> AsyncIterator[Tuple[str, List[float]]]:
        """Yield (component_id, vector) for *kind* in insertion order."""
        result = await self.session.stream(
            select(EmbeddingModel.component_id, EmbeddingModel.vector)
            .where(EmbeddingModel.kind == kind)
            .order_by(EmbeddingModel.seq.asc())
        )
        async for component_id, vector in result:
            yield component_id, list(vector)

    async def delete_for_component(self, component_id: str) -> int:
        result = await self.session.execute(
            delete(EmbeddingModel).where(EmbeddingModel.component_id == component_id)
        )
        return result.rowcount
