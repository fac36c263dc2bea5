"""Populate the component library from design exports.

Each record is parsed and classified like a pipeline run, then stored with
a semantic embedding (supplied, or computed by the provider) and its
supplied visual embedding, if any. Ids already in the library are stored
as a new version.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from catalog.schemas import Component, EmbeddingKind
from catalog.store import EmbeddingStore
from codegen.errors import CatalogError, ExternalServiceError, ParseError
from codegen.integrations.component_classifier import ComponentClassifier
from codegen.integrations.embeddings import EmbeddingProvider, describe_component
from codegen.integrations.figma_parser import parse_component
from codegen.retry import RetryPolicy, call_with_retry
from codegen.stages.builtin import coerce_component

logger = logging.getLogger("codegen.pipeline.indexer")


@dataclass
class IndexReport:
    indexed: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "indexed": list(self.indexed),
            "failed": dict(self.failed),
            "indexed_count": len(self.indexed),
            "failure_count": len(self.failed),
        }


class LibraryIndexer:
    """Add components to the embedding store for later matching."""

    def __init__(
        self,
        store: EmbeddingStore,
        classifier: Optional[ComponentClassifier] = None,
        embedding_provider: Optional[EmbeddingProvider] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.store = store
        self.classifier = classifier or ComponentClassifier()
        self.embedding_provider = embedding_provider
        self.retry_policy = retry_policy or RetryPolicy()

    async def index_component(self, raw: Any, source_path: Optional[str] = None) -> str:
        """Store one record; returns the stored id.

        Raises:
            ParseError: If the record is malformed
            ExternalServiceError: If no semantic vector can be obtained
            DimensionMismatchError: If a vector does not fit the library
        """
        component = coerce_component(raw)
        parsed = parse_component(component)
        classification = self.classifier.classify_parsed(parsed)

        supplied = component.embeddings
        if supplied is not None and supplied.semantic:
            semantic, model_name = list(supplied.semantic), "supplied"
        elif self.embedding_provider is not None:
            provider = self.embedding_provider
            text = describe_component(parsed, classification.tag)
            semantic = await call_with_retry(
                lambda: provider.embed(text),
                self.retry_policy,
                label=f"embedding {component.id}",
            )
            model_name = provider.model_name
        else:
            raise ExternalServiceError(
                f"No semantic embedding for {component.id} and no embedding provider configured"
            )

        stored_id = await self.store.reindex_component(Component(
            id=component.id,
            name=component.name,
            component_type=classification.tag,
            source_path=source_path,
            metadata={
                "dimensions": parsed["dimensions"],
                "child_count": parsed["child_count"],
                "text_content": parsed["text_content"][:20],
            },
        ))
        try:
            await self.store.attach_embedding(stored_id, EmbeddingKind.SEMANTIC, semantic, model_name)
            if supplied is not None and supplied.visual:
                await self.store.attach_embedding(stored_id, EmbeddingKind.VISUAL, supplied.visual, "supplied")
        except CatalogError:
            # Do not leave a component behind that can never be matched
            await self.store.delete_component(stored_id)
            raise

        logger.info("Indexed %s as %s (%s)", component.name, stored_id, classification.tag)
        return stored_id

    async def index_components(
        self,
        records: Sequence[Any],
        source_path: Optional[str] = None,
    ) -> IndexReport:
        """Index every record; failures are collected, not raised."""
        report = IndexReport()
        for index, raw in enumerate(records):
            label = raw.get("id") if isinstance(raw, dict) and raw.get("id") else f"component-{index}"
            try:
                report.indexed.append(await self.index_component(raw, source_path))
            except (ParseError, ExternalServiceError, CatalogError, ValueError) as e:
                report.failed[str(label)] = f"{type(e).__name__}: {e}"
                logger.error("Could not index %s: %s", label, e)
        logger.info("Indexed %d/%d components", len(report.indexed), len(records))
        return report
