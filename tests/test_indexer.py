"""Tests for LibraryIndexer (codegen/pipeline/indexer.py)."""

from __future__ import annotations

import pytest

from catalog.errors import DimensionMismatchError
from catalog.schemas import EmbeddingKind
from catalog.store import EmbeddingStore
from codegen.errors import ExternalServiceError
from codegen.integrations.embeddings import HashEmbeddingProvider
from codegen.matching import ComponentMatcher
from codegen.pipeline.indexer import LibraryIndexer
from tests.conftest import make_record


class TestIndexComponent:

    @pytest.mark.asyncio
    async def test_supplied_vectors(self, store: EmbeddingStore):
        indexer = LibraryIndexer(store)
        stored_id = await indexer.index_component(
            make_record("lib-1", semantic=[1.0, 0.0], visual=[0.0, 1.0]), source_path="lib.json",
        )
        assert stored_id == "lib-1"
        component = await store.get_component("lib-1")
        assert component.component_type == "Button"
        assert component.source_path == "lib.json"
        assert component.metadata["text_content"] == ["Submit"]
        embeddings = await store.get_embeddings("lib-1")
        assert embeddings[EmbeddingKind.SEMANTIC].model_name == "supplied"
        assert embeddings[EmbeddingKind.VISUAL].vector == [0.0, 1.0]

    @pytest.mark.asyncio
    async def test_provider_vectors(self, store: EmbeddingStore):
        indexer = LibraryIndexer(store, embedding_provider=HashEmbeddingProvider(dimensions=32))
        await indexer.index_component(make_record("lib-1"))
        embedding = await store.get_embedding("lib-1", EmbeddingKind.SEMANTIC)
        assert embedding.dimensions == 32
        assert embedding.model_name == "hash-bow-32"

    @pytest.mark.asyncio
    async def test_no_vector_source(self, store: EmbeddingStore):
        with pytest.raises(ExternalServiceError):
            await LibraryIndexer(store).index_component(make_record("lib-1"))
        assert await store.get_component("lib-1") is None

    @pytest.mark.asyncio
    async def test_mismatched_vector_leaves_nothing_behind(self, store: EmbeddingStore):
        indexer = LibraryIndexer(store)
        await indexer.index_component(make_record("a", semantic=[1.0, 0.0]))
        with pytest.raises(DimensionMismatchError):
            await indexer.index_component(make_record("b", semantic=[1.0, 0.0, 0.0]))
        assert await store.get_component("b") is None

    @pytest.mark.asyncio
    async def test_indexed_components_are_matchable(self, store: EmbeddingStore):
        provider = HashEmbeddingProvider()
        indexer = LibraryIndexer(store, embedding_provider=provider)
        await indexer.index_component(make_record("lib-btn", "PrimaryButton"))
        await indexer.index_component(make_record("lib-avatar", "UserAvatar", text="JD"))

        query = provider.embed_sync("PrimaryButton Button component Submit")
        report = await ComponentMatcher(store).find_matches(query)
        assert report.top.component_id == "lib-btn"


class TestIndexComponents:

    @pytest.mark.asyncio
    async def test_failures_collected(self, store: EmbeddingStore):
        records = [make_record("a", semantic=[1.0, 0.0]), {"id": "bad"}, make_record("c", semantic=[0.0, 1.0])]
        report = await LibraryIndexer(store).index_components(records)
        assert report.indexed == ["a", "c"]
        assert list(report.failed) == ["bad"]
        assert report.success is False
        assert report.to_dict()["failure_count"] == 1

    @pytest.mark.asyncio
    async def test_reindex_creates_version(self, store: EmbeddingStore):
        indexer = LibraryIndexer(store)
        await indexer.index_components([make_record("a", semantic=[1.0, 0.0])])
        report = await indexer.index_components([make_record("a", semantic=[0.0, 1.0])])
        assert report.indexed == ["a@v2"]
