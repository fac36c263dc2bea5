"""Tests for EmbeddingStore (catalog/store.py).

Covers component inserts, embedding attach/overwrite, dimension checks,
cascading deletes, re-indexing versions and the lazy scan.
Uses in-memory SQLite via conftest fixtures.
"""

from __future__ import annotations

import pytest

from catalog.errors import ComponentNotFoundError, DimensionMismatchError, DuplicateIdError
from catalog.repositories.component import ComponentRepository
from catalog.repositories.embedding import EmbeddingRepository
from catalog.schemas import Component, EmbeddingKind
from catalog.store import EmbeddingStore, versioned_id


async def _collect(scan):
    return [(component_id, vector) async for component_id, vector in scan]


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


class TestComponents:

    @pytest.mark.asyncio
    async def test_insert_and_get(self, store: EmbeddingStore):
        await store.insert_component(Component(
            id="btn", name="PrimaryButton", component_type="Button",
            metadata={"child_count": 1},
        ))
        component = await store.get_component("btn")
        assert component is not None
        assert component.name == "PrimaryButton"
        assert component.component_type == "Button"
        assert component.metadata == {"child_count": 1}
        assert component.version == 1
        assert component.base_id == "btn"
        assert component.created_at is not None

    @pytest.mark.asyncio
    async def test_default_type_is_unknown(self, store: EmbeddingStore):
        await store.insert_component(Component(id="x", name="Thing"))
        assert (await store.get_component("x")).component_type == "Unknown"

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, store: EmbeddingStore):
        await store.insert_component(Component(id="btn", name="A"))
        with pytest.raises(DuplicateIdError):
            await store.insert_component(Component(id="btn", name="B"))
        assert (await store.get_component("btn")).name == "A"

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store: EmbeddingStore):
        assert await store.get_component("nope") is None

    @pytest.mark.asyncio
    async def test_list_filters_by_type(self, store: EmbeddingStore):
        await store.insert_component(Component(id="a", name="A", component_type="Button"))
        await store.insert_component(Component(id="b", name="B", component_type="Card"))
        await store.insert_component(Component(id="c", name="C", component_type="Button"))
        buttons = await store.list_components("Button")
        assert [c.id for c in buttons] == ["a", "c"]
        assert len(await store.list_components()) == 3

    def test_empty_id_rejected(self):
        with pytest.raises(ValueError):
            Component(id="", name="A")


# ---------------------------------------------------------------------------
# Embeddings
# ---------------------------------------------------------------------------


class TestEmbeddings:

    @pytest.mark.asyncio
    async def test_attach_and_get(self, store: EmbeddingStore):
        await store.insert_component(Component(id="a", name="A"))
        await store.attach_embedding("a", EmbeddingKind.SEMANTIC, [0.1, 0.2, 0.3], "test-model")
        embedding = await store.get_embedding("a", "semantic")
        assert embedding.vector == [0.1, 0.2, 0.3]
        assert embedding.dimensions == 3
        assert embedding.model_name == "test-model"
        assert await store.embedding_dimensions(EmbeddingKind.SEMANTIC) == 3

    @pytest.mark.asyncio
    async def test_attach_to_missing_component(self, store: EmbeddingStore):
        with pytest.raises(ComponentNotFoundError):
            await store.attach_embedding("ghost", EmbeddingKind.SEMANTIC, [1.0], "m")

    @pytest.mark.asyncio
    async def test_empty_vector_rejected(self, store: EmbeddingStore):
        await store.insert_component(Component(id="a", name="A"))
        with pytest.raises(ValueError):
            await store.attach_embedding("a", EmbeddingKind.SEMANTIC, [], "m")

    @pytest.mark.asyncio
    async def test_dimension_mismatch_within_kind(self, store: EmbeddingStore):
        await store.insert_component(Component(id="a", name="A"))
        await store.insert_component(Component(id="b", name="B"))
        await store.attach_embedding("a", EmbeddingKind.SEMANTIC, [1.0, 0.0, 0.0], "m")
        with pytest.raises(DimensionMismatchError) as exc_info:
            await store.attach_embedding("b", EmbeddingKind.SEMANTIC, [1.0, 0.0], "m")
        assert exc_info.value.expected == 3
        assert exc_info.value.actual == 2

    @pytest.mark.asyncio
    async def test_kinds_have_independent_dimensions(self, store: EmbeddingStore):
        await store.insert_component(Component(id="a", name="A"))
        await store.attach_embedding("a", EmbeddingKind.SEMANTIC, [1.0, 0.0, 0.0], "m")
        await store.attach_embedding("a", EmbeddingKind.VISUAL, [1.0, 0.0], "m")
        embeddings = await store.get_embeddings("a")
        assert set(embeddings) == {EmbeddingKind.SEMANTIC, EmbeddingKind.VISUAL}

    @pytest.mark.asyncio
    async def test_overwrite_keeps_one_vector_per_kind(self, store: EmbeddingStore):
        await store.insert_component(Component(id="a", name="A"))
        await store.attach_embedding("a", EmbeddingKind.SEMANTIC, [1.0, 0.0], "m1")
        await store.attach_embedding("a", EmbeddingKind.SEMANTIC, [0.0, 1.0], "m2")
        assert await store.count_embeddings(EmbeddingKind.SEMANTIC) == 1
        embedding = await store.get_embedding("a", EmbeddingKind.SEMANTIC)
        assert embedding.vector == [0.0, 1.0]
        assert embedding.model_name == "m2"

    @pytest.mark.asyncio
    async def test_sole_vector_may_change_dimensions(self, store: EmbeddingStore):
        await store.insert_component(Component(id="a", name="A"))
        await store.attach_embedding("a", EmbeddingKind.SEMANTIC, [1.0, 0.0], "m")
        await store.attach_embedding("a", EmbeddingKind.SEMANTIC, [1.0, 0.0, 0.0], "m")
        assert await store.embedding_dimensions(EmbeddingKind.SEMANTIC) == 3


# ---------------------------------------------------------------------------
# Delete / re-index
# ---------------------------------------------------------------------------


class TestDeleteAndReindex:

    @pytest.mark.asyncio
    async def test_delete_removes_embeddings(self, store: EmbeddingStore):
        await store.insert_component(Component(id="a", name="A"))
        await store.attach_embedding("a", EmbeddingKind.SEMANTIC, [1.0, 0.0], "m")
        await store.attach_embedding("a", EmbeddingKind.VISUAL, [1.0], "m")
        assert await store.delete_component("a") is True
        assert await store.get_component("a") is None
        assert await store.count_embeddings() == 0

    @pytest.mark.asyncio
    async def test_delete_missing_returns_false(self, store: EmbeddingStore):
        assert await store.delete_component("ghost") is False

    @pytest.mark.asyncio
    async def test_reindex_creates_versions(self, store: EmbeddingStore):
        first = await store.reindex_component(Component(id="card", name="Card"))
        second = await store.reindex_component(Component(id="card", name="Card v2"))
        assert first == "card"
        assert second == versioned_id("card", 2) == "card@v2"
        stored = await store.get_component(second)
        assert stored.version == 2
        assert stored.base_id == "card"
        # Original is untouched
        assert (await store.get_component("card")).name == "Card"


# ---------------------------------------------------------------------------
# Scan
# ---------------------------------------------------------------------------


class TestScan:

    @pytest.mark.asyncio
    async def test_scan_in_insertion_order(self, store: EmbeddingStore):
        for cid in ("c", "a", "b"):
            await store.insert_component(Component(id=cid, name=cid.upper()))
            await store.attach_embedding(cid, EmbeddingKind.SEMANTIC, [1.0, 0.0], "m")
        rows = await _collect(store.all_embeddings(EmbeddingKind.SEMANTIC))
        assert [cid for cid, _ in rows] == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_scan_is_restartable(self, store: EmbeddingStore):
        await store.insert_component(Component(id="a", name="A"))
        await store.attach_embedding("a", EmbeddingKind.SEMANTIC, [1.0], "m")
        scan = store.all_embeddings(EmbeddingKind.SEMANTIC)
        assert await _collect(scan) == await _collect(scan)

    @pytest.mark.asyncio
    async def test_scan_only_returns_requested_kind(self, store: EmbeddingStore):
        await store.insert_component(Component(id="a", name="A"))
        await store.attach_embedding("a", EmbeddingKind.VISUAL, [1.0], "m")
        assert await _collect(store.all_embeddings(EmbeddingKind.SEMANTIC)) == []

    @pytest.mark.asyncio
    async def test_empty_store_scan(self, store: EmbeddingStore):
        assert await _collect(store.all_embeddings(EmbeddingKind.SEMANTIC)) == []
        assert await store.embedding_dimensions(EmbeddingKind.SEMANTIC) is None


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class _WriteFailed(Exception):
    pass


class TestTransactions:

    @pytest.mark.asyncio
    async def test_failed_attach_leaves_nothing(self, store: EmbeddingStore, monkeypatch):
        await store.insert_component(Component(id="a", name="A"))
        await store.attach_embedding("a", EmbeddingKind.SEMANTIC, [1.0, 0.0], "m")
        upsert = EmbeddingRepository.upsert

        async def flush_then_fail(self, *args, **kwargs):
            await upsert(self, *args, **kwargs)
            raise _WriteFailed()

        monkeypatch.setattr(EmbeddingRepository, "upsert", flush_then_fail)
        with pytest.raises(_WriteFailed):
            await store.attach_embedding("a", EmbeddingKind.SEMANTIC, [0.0, 1.0], "m2")
        with pytest.raises(_WriteFailed):
            await store.attach_embedding("a", EmbeddingKind.VISUAL, [1.0], "m2")

        embeddings = await store.get_embeddings("a")
        assert list(embeddings) == [EmbeddingKind.SEMANTIC]
        assert embeddings[EmbeddingKind.SEMANTIC].vector == [1.0, 0.0]
        assert embeddings[EmbeddingKind.SEMANTIC].model_name == "m"

    @pytest.mark.asyncio
    async def test_failed_insert_leaves_nothing(self, store: EmbeddingStore, monkeypatch):
        create = ComponentRepository.create

        async def flush_then_fail(self, *args, **kwargs):
            await create(self, *args, **kwargs)
            raise _WriteFailed()

        monkeypatch.setattr(ComponentRepository, "create", flush_then_fail)
        with pytest.raises(_WriteFailed):
            await store.insert_component(Component(id="a", name="A"))
        with pytest.raises(_WriteFailed):
            await store.reindex_component(Component(id="b", name="B"))

        monkeypatch.undo()
        assert await store.get_component("a") is None
        assert await store.list_components() == []
        # The lock was released, so later writes go through
        assert await store.insert_component(Component(id="a", name="A")) == "a"


class TestVersionIds:

    @pytest.mark.asyncio
    async def test_resolves_from_any_version(self, store: EmbeddingStore):
        for _ in range(3):
            await store.reindex_component(Component(id="card", name="Card"))
        await store.insert_component(Component(id="other", name="Other"))
        expected = ["card", "card@v2", "card@v3"]
        assert await store.version_ids("card") == expected
        assert await store.version_ids("card@v3") == expected
        assert await store.version_ids("ghost") == []
