"""Embedding store: durable components and their vectors.

The store is an explicit handle owned by whoever builds a pipeline run.
All writes go through one ``asyncio.Lock`` (single writer) and each write
commits or rolls back as a unit.

Usage:
    store = await EmbeddingStore.open("./validation.db")
    await store.insert_component(Component(id="c1", name="PrimaryButton"))
    await store.attach_embedding("c1", EmbeddingKind.SEMANTIC, vector, "hash-v1")
    async for component_id, vector in store.all_embeddings(EmbeddingKind.SEMANTIC):
        ...
    await store.close()
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from catalog.database import create_engine, create_session_factory, init_db, session_scope
from catalog.errors import ComponentNotFoundError, DimensionMismatchError, DuplicateIdError
from catalog.repositories.component import ComponentRepository
from catalog.repositories.embedding import EmbeddingRepository
from catalog.schemas import Component, Embedding, EmbeddingKind

logger = logging.getLogger("catalog.store")

KindLike = Union[EmbeddingKind, str]


def _kind_value(kind: KindLike) -> str:
    return EmbeddingKind(kind).value


def versioned_id(base_id: str, version: int) -> str:
    """Id for the *version*-th row of *base_id* ("btn" → "btn@v2")."""
    return base_id if version <= 1 else f"{base_id}@v{version}"


class EmbeddingScan:
    """Restartable async iterable over (component_id, vector) pairs.

    Each ``async for`` opens a fresh session and re-reads the store, so a
    scan reflects every write committed before iteration starts.
    """

    def __init__(self, factory: async_sessionmaker[AsyncSession], kind: str):
        self._factory = factory
        self.kind = kind

    async def _iterate(self) -> AsyncIterator[Tuple[str, List[float]]]:
        async with self._factory() as session:
            repo = EmbeddingRepository(session)
            async for pair in repo.stream_by_kind(self.kind):
                yield pair

    def __aiter__(self) -> AsyncIterator[Tuple[str, List[float]]]:
        return self._iterate()


class EmbeddingStore:
    """Components and embeddings over an async SQLAlchemy engine.

    Args:
        engine: Engine to use. Use ``EmbeddingStore.open`` to build one from
            a path or URL.
        owns_engine: Dispose of the engine on ``close``.
    """

    def __init__(self, engine: AsyncEngine, owns_engine: bool = True):
        self.engine = engine
        self.session_factory = create_session_factory(engine)
        self.write_lock = asyncio.Lock()
        self._owns_engine = owns_engine
        self._initialized = False

    @classmethod
    async def open(cls, url: str, **engine_kwargs) -> "EmbeddingStore":
        store = cls(create_engine(url, **engine_kwargs))
        await store.initialize()
        return store

    async def initialize(self) -> None:
        if not self._initialized:
            await init_db(self.engine)
            self._initialized = True

    async def close(self) -> None:
        if self._owns_engine:
            await self.engine.dispose()

    async def __aenter__(self) -> "EmbeddingStore":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    async def insert_component(self, component: Component) -> str:
        """Store a new component.

        Raises:
            DuplicateIdError: If the id is already stored
        """
        async with self.write_lock:
            async with session_scope(self.session_factory) as session:
                repo = ComponentRepository(session)
                if await repo.exists(component.id):
                    raise DuplicateIdError(component.id)
                await repo.create(
                    component_id=component.id,
                    name=component.name,
                    component_type=component.component_type,
                    source_path=component.source_path,
                    metadata=component.metadata,
                    base_id=component.base_id,
                    version=component.version,
                )
        logger.debug("Inserted component %s (%s)", component.id, component.component_type)
        return component.id

    async def reindex_component(self, component: Component) -> str:
        """Store *component* as the next version of its id.

        The first insert keeps the plain id; later ones get "<id>@v<n>".
        """
        base_id = component.base_id or component.id
        async with self.write_lock:
            async with session_scope(self.session_factory) as session:
                repo = ComponentRepository(session)
                version = await repo.latest_version(base_id) + 1
                new_id = versioned_id(base_id, version)
                if await repo.exists(new_id):
                    raise DuplicateIdError(new_id)
                await repo.create(
                    component_id=new_id,
                    name=component.name,
                    component_type=component.component_type,
                    source_path=component.source_path,
                    metadata=component.metadata,
                    base_id=base_id,
                    version=version,
                )
        logger.info("Indexed component %s as version %d (%s)", base_id, version, new_id)
        return new_id

    async def get_component(self, component_id: str) -> Optional[Component]:
        async with self.session_factory() as session:
            row = await ComponentRepository(session).get(component_id)
            return Component.from_model(row) if row else None

    async def version_ids(self, component_id: str) -> List[str]:
        """Ids of every version sharing *component_id*'s base id.

        Works from any version's id; an unknown id is taken as a base id.
        """
        async with self.session_factory() as session:
            repo = ComponentRepository(session)
            row = await repo.get(component_id)
            return await repo.ids_for_base(row.base_id if row else component_id)

    async def list_components(self, component_type: Optional[str] = None) -> List[Component]:
        async with self.session_factory() as session:
            rows = await ComponentRepository(session).list_components(component_type)
            return [Component.from_model(r) for r in rows]

    async def delete_component(self, component_id: str) -> bool:
        """Delete a component together with all of its embeddings."""
        async with self.write_lock:
            async with session_scope(self.session_factory) as session:
                # Explicit so backends without FK enforcement stay consistent
                await EmbeddingRepository(session).delete_for_component(component_id)
                deleted = await ComponentRepository(session).delete(component_id)
        if deleted:
            logger.debug("Deleted component %s", component_id)
        return deleted

    # ------------------------------------------------------------------
    # Embeddings
    # ------------------------------------------------------------------

    async def attach_embedding(
        self,
        component_id: str,
        kind: KindLike,
        vector: Sequence[float],
        model_name: str,
    ) -> None:
        """Attach or overwrite the *kind* vector of a component.

        Raises:
            ValueError: If the vector is empty
            ComponentNotFoundError: If the component is not stored
            DimensionMismatchError: If other *kind* vectors in the store have a
                different dimensionality
        """
        kind_value = _kind_value(kind)
        values = [float(v) for v in vector]
        if not values:
            raise ValueError("embedding vector cannot be empty")

        async with self.write_lock:
            async with session_scope(self.session_factory) as session:
                if not await ComponentRepository(session).exists(component_id):
                    raise ComponentNotFoundError(component_id)
                repo = EmbeddingRepository(session)
                expected = await repo.dimensions_for_kind(
                    kind_value, exclude_component_id=component_id,
                )
                if expected is not None and expected != len(values):
                    raise DimensionMismatchError(expected, len(values), kind_value)
                await repo.upsert(component_id, kind_value, values, model_name)

    async def get_embeddings(self, component_id: str) -> Dict[EmbeddingKind, Embedding]:
        async with self.session_factory() as session:
            rows = await EmbeddingRepository(session).list_for_component(component_id)
            return {EmbeddingKind(r.kind): Embedding.from_model(r) for r in rows}

    async def get_embedding(self, component_id: str, kind: KindLike) -> Optional[Embedding]:
        async with self.session_factory() as session:
            row = await EmbeddingRepository(session).get(component_id, _kind_value(kind))
            return Embedding.from_model(row) if row else None

    async def embedding_dimensions(self, kind: KindLike) -> Optional[int]:
        async with self.session_factory() as session:
            return await EmbeddingRepository(session).dimensions_for_kind(_kind_value(kind))

    async def count_embeddings(self, kind: Optional[KindLike] = None) -> int:
        async with self.session_factory() as session:
            return await EmbeddingRepository(session).count(
                _kind_value(kind) if kind is not None else None
            )

    def all_embeddings(self, kind: KindLike) -> EmbeddingScan:
        """Lazy scan of every *kind* vector in insertion order."""
        return EmbeddingScan(self.session_factory, _kind_value(kind))
