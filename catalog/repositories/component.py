"""Repository layer for component rows.

Provides async CRUD operations for ComponentModel.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.models.db import ComponentModel


class ComponentRepository:
    """Data access layer for components."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        component_id: str,
        name: str,
        component_type: str,
        source_path: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        base_id: Optional[str] = None,
        version: int = 1,
    ) -> ComponentModel:
        row = ComponentModel(
            id=component_id,
            name=name,
            component_type=component_type,
            source_path=source_path,
            component_metadata=metadata or {},
            base_id=base_id or component_id,
            version=version,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get(self, component_id: str) -> Optional[ComponentModel]:
        result = await self.session.execute(
            select(ComponentModel).where(ComponentModel.id == component_id)
        )
        return result.scalar_one_or_none()

    async def exists(self, component_id: str) -> bool:
        result = await self.session.execute(
            select(func.count()).select_from(ComponentModel).where(
                ComponentModel.id == component_id
            )
        )
        return (result.scalar() or 0) > 0

    async def list_components(self, component_type: Optional[str] = None) -> List[ComponentModel]:
        """List components, oldest first, optionally filtered by type."""
        query = select(ComponentModel)
        if component_type:
            query = query.where(ComponentModel.component_type == component_type)
        query = query.order_by(ComponentModel.created_at.asc(), ComponentModel.id.asc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def latest_version(self, base_id: str) -> int:
        """Highest version stored for *base_id*, 0 if none."""
        result = await self.session.execute(
            select(func.max(ComponentModel.version)).where(
                ComponentModel.base_id == base_id
            )
        )
        return result.scalar() or 0

    async def ids_for_base(self, base_id: str) -> List[str]:
        """Ids of every stored version of *base_id*, oldest first."""
        result = await self.session.execute(
            select(ComponentModel.id)
            .where(ComponentModel.base_id == base_id)
            .order_by(ComponentModel.version.asc())
        )
        return list(result.scalars().all())

    async def delete(self, component_id: str) -> bool:
        result = await self.session.execute(
            delete(ComponentModel).where(ComponentModel.id == component_id)
        )
        return result.rowcount > 0
