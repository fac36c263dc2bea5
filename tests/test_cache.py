"""Tests for fingerprints and the pipeline result cache (codegen/pipeline/cache.py)."""

from __future__ import annotations

import pytest

from catalog.store import EmbeddingStore
from codegen.pipeline.cache import PipelineCache, canonical_json, content_hash, fingerprint
from codegen.pipeline.config import PipelineConfig
from codegen.pipeline.models import ComponentInput, PipelineResult
from tests.conftest import make_record


def _component(**kwargs) -> ComponentInput:
    return ComponentInput.model_validate(make_record(**kwargs))


class TestFingerprint:

    def test_key_order_does_not_matter(self):
        assert canonical_json({"b": 1, "a": [1, 2]}) == canonical_json({"a": [1, 2], "b": 1})

    def test_same_content_same_hash(self):
        assert content_hash(_component()) == content_hash(_component())

    def test_node_alias_irrelevant(self):
        record = make_record()
        alt = dict(record)
        alt["node"] = alt.pop("figmaNode")
        assert content_hash(ComponentInput.model_validate(record)) == content_hash(
            ComponentInput.model_validate(alt)
        )

    def test_content_change_changes_hash(self):
        assert content_hash(_component(text="Submit")) != content_hash(_component(text="Cancel"))

    def test_fingerprint_combines_both(self):
        content = content_hash(_component())
        config_a = PipelineConfig().config_hash()
        config_b = PipelineConfig(code_generation_model="x/y").config_hash()
        assert fingerprint(content, config_a) != fingerprint(content, config_b)
        assert len(fingerprint(content, config_a)) == 64


class TestPipelineCache:

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, store: EmbeddingStore):
        cache = PipelineCache(store)
        result = PipelineResult(component_id="btn-1", component_name="PrimaryButton", success=True,
                                warnings=["w1"])
        assert await cache.get("k1") is None

        assert await cache.put("k1", result, "content", "config") is True
        cached = await cache.get("k1")

        assert cached == result
        assert cache.hits == 1
        assert cache.misses == 1

    @pytest.mark.asyncio
    async def test_entries_never_replaced(self, store: EmbeddingStore):
        cache = PipelineCache(store)
        first = PipelineResult(component_id="a", component_name="First", success=True)
        second = PipelineResult(component_id="a", component_name="Second", success=True)
        assert await cache.put("k", first, "c", "cfg") is True
        assert await cache.put("k", second, "c", "cfg") is False
        assert (await cache.get("k")).component_name == "First"
        assert await cache.count() == 1
