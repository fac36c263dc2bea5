"""Fingerprint cache of completed pipeline results.

fingerprint = sha256(content_hash + ":" + config_hash)

Entries are written once and never replaced. Only successful results are
stored, so a failed run is always retried on the next invocation.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Optional

from catalog.database import session_scope
from catalog.repositories.pipeline_cache import PipelineCacheRepository
from catalog.store import EmbeddingStore
from codegen.pipeline.models import ComponentInput, PipelineResult

logger = logging.getLogger("codegen.pipeline.cache")


def canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def content_hash(component: ComponentInput) -> str:
    """Hash of the component input as submitted (key order does not matter)."""
    return sha256_hex(canonical_json(component.model_dump(mode="json", by_alias=True)))


def fingerprint(content: str, config: str) -> str:
    return sha256_hex(f"{content}:{config}")


class PipelineCache:
    """Pipeline results keyed by fingerprint, stored alongside the catalog.

    Writes share the store's write lock so the database keeps a single writer.
    """

    def __init__(self, store: EmbeddingStore):
        self.store = store
        self.hits = 0
        self.misses = 0

    async def get(self, key: str) -> Optional[PipelineResult]:
        async with self.store.session_factory() as session:
            row = await PipelineCacheRepository(session).get(key)
            payload = dict(row.result) if row else None
        if payload is None:
            self.misses += 1
            return None
        self.hits += 1
        logger.info("Cache hit %s (%s)", key[:12], payload.get("component_id"))
        return PipelineResult.model_validate(payload)

    async def put(
        self,
        key: str,
        result: PipelineResult,
        content: str,
        config: str,
    ) -> bool:
        """Store *result* under *key* unless an entry already exists."""
        payload = result.model_dump(mode="json")
        async with self.store.write_lock:
            async with session_scope(self.store.session_factory) as session:
                written = await PipelineCacheRepository(session).insert_if_absent(
                    fingerprint=key,
                    component_id=result.component_id,
                    content_hash=content,
                    config_hash=config,
                    result=payload,
                )
        if written:
            logger.debug("Cached result %s (%s)", key[:12], result.component_id)
        return written

    async def count(self) -> int:
        async with self.store.session_factory() as session:
            return await PipelineCacheRepository(session).count()
