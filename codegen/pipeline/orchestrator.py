"""Pipeline orchestrator: runs components through the stage list.

Per component: stages run in STAGE_ORDER, each at most once, each timed.
A stage starts only when its dependencies completed; the first failure
stops the component's run and leaves later stages ``pending``. Batches
isolate failures per component and aggregate results in input order.

Usage:
    orchestrator = PipelineOrchestrator(config)
    await orchestrator.initialize()
    try:
        batch = await orchestrator.process_batch(records)
    finally:
        await orchestrator.cleanup()
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Sequence, Tuple

from catalog.schemas import Component, EmbeddingKind
from catalog.store import EmbeddingStore
from codegen.errors import CatalogError, ConfigurationError, OutputWriteError, ParseError
from codegen.integrations.code_generator import CodeGenerator, OpenRouterCodeGenerator
from codegen.integrations.component_classifier import ComponentClassifier
from codegen.integrations.embeddings import (
    EmbeddingProvider,
    HashEmbeddingProvider,
    OpenRouterEmbeddingProvider,
)
from codegen.integrations.openrouter_client import OpenRouterClient
from codegen.integrations.visual_validator import NullVisualValidator, VisualValidator
from codegen.matching.matcher import ComponentMatcher
from codegen.matching.scorer import MatchScorer
from codegen.pipeline.cache import PipelineCache, content_hash, fingerprint
from codegen.pipeline.config import PipelineConfig
from codegen.pipeline.models import (
    BatchPipelineResult,
    PipelineResult,
    PipelineStage,
    ProgressUpdate,
)
from codegen.pipeline.outputs import write_batch_summary
from codegen.retry import RetryPolicy
from codegen.stages import STAGE_ORDER, StageSkipped, create_stage
from codegen.stages.builtin import coerce_component
from codegen.stages.context import PipelineServices, StageContext

logger = logging.getLogger("codegen.pipeline")

ProgressCallback = Callable[[ProgressUpdate], Any]


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _record_identity(raw: Any, index: int) -> Tuple[str, str]:
    """Best-effort id/name for a record that may not validate."""
    if isinstance(raw, dict):
        component_id = raw.get("id") or f"component-{index}"
        return str(component_id), str(raw.get("name") or component_id)
    component_id = getattr(raw, "id", None) or f"component-{index}"
    return str(component_id), str(getattr(raw, "name", None) or component_id)


class PipelineOrchestrator:
    """Drives components through the registered stages.

    Args:
        config: Run configuration
        store: Embedding store to match against and cache into; opened from
            ``config.database_path`` by ``initialize`` when omitted
        code_generator: Generator to use; defaults to OpenRouter
        embedding_provider: Semantic embedding provider for components that
            arrive without vectors; defaults to OpenRouter when an API key
            is set, else the offline hash provider
        visual_validator: Defaults to NullVisualValidator
        classifier: Defaults to the rule table from config or the built-ins
    """

    def __init__(
        self,
        config: PipelineConfig,
        store: Optional[EmbeddingStore] = None,
        code_generator: Optional[CodeGenerator] = None,
        embedding_provider: Optional[EmbeddingProvider] = None,
        visual_validator: Optional[VisualValidator] = None,
        classifier: Optional[ComponentClassifier] = None,
    ):
        self.config = config
        self.store = store
        self._owns_store = store is None
        self._code_generator = code_generator
        self._embedding_provider = embedding_provider
        self._visual_validator = visual_validator
        self._classifier = classifier
        self._client: Optional[OpenRouterClient] = None
        self.services: Optional[PipelineServices] = None
        self.cache: Optional[PipelineCache] = None
        self.retry_policy = RetryPolicy(
            max_retries=config.max_retries,
            retry_delay=config.retry_delay_seconds,
            timeout=config.timeout_seconds,
        )
        self.stages = [create_stage(name) for name in STAGE_ORDER]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _openrouter(self) -> OpenRouterClient:
        if self._client is None:
            self._client = OpenRouterClient(
                api_key=self.config.open_router_api_key,
                timeout=self.config.timeout_seconds,
            )
        return self._client

    async def initialize(self) -> None:
        """Open the store and build collaborators.

        Raises:
            ConfigurationError: If a required collaborator cannot be built
        """
        if self.services is not None:
            return

        if self.store is None:
            self.store = await EmbeddingStore.open(self.config.database_path)
        else:
            await self.store.initialize()

        classifier = self._classifier
        if classifier is None:
            rules_path = self.config.classification_rules_path
            classifier = ComponentClassifier.from_file(rules_path) if rules_path else ComponentClassifier()

        generator = self._code_generator
        if generator is None:
            if not self.config.open_router_api_key:
                raise ConfigurationError(["OpenRouter API key is required for code generation"])
            generator = OpenRouterCodeGenerator(self._openrouter(), self.config.code_generation_model)

        provider = self._embedding_provider
        if provider is None and self.config.enable_semantic_matching:
            if self.config.open_router_api_key:
                provider = OpenRouterEmbeddingProvider(self._openrouter(), self.config.embedding_model)
            else:
                provider = HashEmbeddingProvider()
                logger.warning("No OpenRouter key; using offline %s embeddings", provider.model_name)

        matcher = None
        if self.config.enable_semantic_matching:
            matcher = ComponentMatcher(self.store, MatchScorer(self.config.match_scoring))

        self.services = PipelineServices(
            classifier=classifier,
            code_generator=generator,
            visual_validator=self._visual_validator or NullVisualValidator(),
            matcher=matcher,
            embedding_provider=provider,
        )
        if self.config.enable_caching:
            self.cache = PipelineCache(self.store)

        logger.info(
            "Pipeline initialized: model=%s, matching=%s, visual=%s, caching=%s",
            getattr(generator, "model_name", "?"),
            self.config.enable_semantic_matching,
            self.config.enable_visual_validation,
            self.config.enable_caching,
        )

    async def cleanup(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
        if self.store is not None and self._owns_store:
            await self.store.close()
        self.services = None

    async def __aenter__(self) -> "PipelineOrchestrator":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()

    # ------------------------------------------------------------------
    # Single component
    # ------------------------------------------------------------------

    async def _run_stage(self, stage, ctx: StageContext, progress_callback: Optional[ProgressCallback],
                         position: int) -> bool:
        """Run one stage and record its outcome. Returns False on failure."""
        definition = stage.definition
        record: PipelineStage = ctx.result.stages[definition.name]

        if not definition.is_enabled(self.config):
            record.skip("disabled by configuration")
            return True

        unmet = [
            dep for dep in definition.depends_on
            if ctx.result.stages[dep].status != "completed"
        ]
        if unmet:
            record.skip(f"dependencies not completed: {', '.join(unmet)}")
            return True

        record.start()
        logger.debug("%s: stage %s started", ctx.result.component_id, definition.name)
        try:
            value = await stage.run(ctx)
        except StageSkipped as e:
            record.skip(e.reason)
            logger.info("%s: stage %s skipped (%s)", ctx.result.component_id, definition.name, e.reason)
            return True
        except Exception as e:
            # Failure isolation: a stage error ends this component's run only
            message = f"{type(e).__name__}: {e}"
            record.fail(message)
            ctx.result.errors.append(f"{definition.name}: {message}")
            logger.error("%s: stage %s failed: %s", ctx.result.component_id, definition.name, message)
            return False

        record.complete(value)
        logger.debug(
            "%s: stage %s completed in %.1fms",
            ctx.result.component_id, definition.name, record.duration_ms or 0.0,
        )
        if progress_callback is not None:
            progress_callback(ProgressUpdate(
                stage=definition.name,
                progress=(position + 1) / len(self.stages) * 100,
                message=f"{ctx.result.component_name}: {definition.name} completed",
            ))
        return True

    async def _index_component(self, ctx: StageContext) -> None:
        """Add a successfully generated component to the library.

        Vectors that do not fit the library's dimensions keep the component
        out entirely; a component row is never left without its embeddings.
        """
        component = ctx.component
        parsed = ctx.stage_result("parse")
        component_type = ctx.stage_result("classify")["component_type"]

        vectors: List[Tuple[EmbeddingKind, List[float], str]] = []
        if ctx.semantic_vector is not None:
            model_name = (ctx.stage_result("match") or {}).get("embedding_source", "supplied")
            vectors.append((EmbeddingKind.SEMANTIC, list(ctx.semantic_vector), model_name))
        if component.embeddings is not None and component.embeddings.visual:
            vectors.append((EmbeddingKind.VISUAL, list(component.embeddings.visual), "supplied"))

        for kind, vector, _ in vectors:
            expected = await self.store.embedding_dimensions(kind)
            if expected is not None and expected != len(vector):
                ctx.warn(
                    f"Not added to the library: {kind.value} vector has {len(vector)} "
                    f"dimensions, library uses {expected}"
                )
                return

        new_id: Optional[str] = None
        try:
            new_id = await self.store.reindex_component(Component(
                id=component.id,
                name=component.name,
                component_type=component_type,
                source_path=ctx.result.outputs.component_path,
                metadata={
                    "dimensions": parsed["dimensions"],
                    "child_count": parsed["child_count"],
                    "text_content": parsed["text_content"][:20],
                },
            ))
            for kind, vector, model_name in vectors:
                await self.store.attach_embedding(new_id, kind, vector, model_name)
        except CatalogError as e:
            if new_id is not None:
                await self.store.delete_component(new_id)
            ctx.warn(f"Could not add component to the library: {e}")

    async def _run_component(
        self,
        raw: Any,
        index: int = 0,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Tuple[PipelineResult, bool]:
        """Returns (result, served_from_cache)."""
        if self.services is None:
            await self.initialize()

        component_id, component_name = _record_identity(raw, index)
        key = content = config = None
        if self.cache is not None:
            try:
                component = coerce_component(raw)
            except ParseError:
                component = None  # reported by the parse stage
            if component is not None:
                content = content_hash(component)
                config = self.config.config_hash()
                key = fingerprint(content, config)
                cached = await self.cache.get(key)
                if cached is not None:
                    return cached, True

        started = time.perf_counter()
        result = PipelineResult(
            component_id=component_id,
            component_name=component_name,
            stages={stage.name: PipelineStage(name=stage.name) for stage in self.stages},
            fingerprint=key,
        )
        ctx = StageContext(
            raw=raw,
            config=self.config,
            services=self.services,
            result=result,
            retry_policy=self.retry_policy,
        )

        logger.info("Processing %s (%s)", component_name, component_id)
        for position, stage in enumerate(self.stages):
            if not await self._run_stage(stage, ctx, progress_callback, position):
                break
        else:
            result.success = True
            persisted = result.stage_result("persist-output") or {}
            result.outputs = result.outputs.model_copy(update={
                "component_code": result.stage_result("generate")["code"],
                "component_path": persisted.get("component_path"),
                "metadata_path": persisted.get("metadata_path"),
                "validation_report_path": persisted.get("validation_report_path"),
            })

        result.total_duration_ms = (time.perf_counter() - started) * 1000.0

        if result.success:
            if self.config.index_processed_components:
                await self._index_component(ctx)
            if self.cache is not None and key is not None:
                await self.cache.put(key, result, content, config)

        logger.info(
            "Component %s: %s in %.0fms",
            result.component_id, "SUCCESS" if result.success else "FAILED", result.total_duration_ms,
        )
        return result, False

    async def process_component(
        self,
        raw: Any,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> PipelineResult:
        """Run one component record (dict or ComponentInput) through the pipeline."""
        result, _ = await self._run_component(raw, 0, progress_callback)
        return result

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def process_batch(
        self,
        inputs: Sequence[Any],
        progress_callback: Optional[ProgressCallback] = None,
        write_summary: bool = True,
    ) -> BatchPipelineResult:
        """Process every record; failures stay with their component.

        Up to ``config.batch_concurrency`` components run at once. Results are
        returned in input order.
        """
        if self.services is None:
            await self.initialize()

        started_at = _utcnow_iso()
        batch_start = time.perf_counter()
        total = len(inputs)
        semaphore = asyncio.Semaphore(self.config.batch_concurrency)
        completed = 0
        logger.info("Processing batch: %d components", total)

        async def run_one(index: int, raw: Any) -> Tuple[PipelineResult, bool, float]:
            nonlocal completed
            async with semaphore:
                t0 = time.perf_counter()
                result, hit = await self._run_component(raw, index)
                elapsed = (time.perf_counter() - t0) * 1000.0
            completed += 1
            if progress_callback is not None:
                progress_callback(ProgressUpdate(
                    stage="batch",
                    progress=completed / total * 100,
                    message=f"{result.component_name}: {'success' if result.success else 'failed'}",
                ))
            return result, hit, elapsed

        outcomes = await asyncio.gather(*(run_one(i, raw) for i, raw in enumerate(inputs)))

        results: List[PipelineResult] = [r for r, _, _ in outcomes]
        batch = BatchPipelineResult(
            total_components=total,
            success_count=sum(1 for r in results if r.success),
            failure_count=sum(1 for r in results if not r.success),
            cache_hits=sum(1 for _, hit, _ in outcomes if hit),
            cached_component_ids=[r.component_id for r, hit, _ in outcomes if hit],
            results=results,
            durations_ms=[elapsed for _, _, elapsed in outcomes],
            from_cache=[hit for _, hit, _ in outcomes],
            total_duration_ms=(time.perf_counter() - batch_start) * 1000.0,
            started_at=started_at,
            completed_at=_utcnow_iso(),
        )

        if write_summary:
            # A failed summary write leaves the component results intact
            try:
                batch.summary_path = write_batch_summary(self.config.output_dir, batch.summary())
                logger.info("Batch summary written to %s", batch.summary_path)
            except OutputWriteError as e:
                batch.summary_error = str(e)
                logger.error("Could not write batch summary: %s", e)

        logger.info(
            "Batch complete: %d/%d succeeded, %d failed, %d cached (%.0fms)",
            batch.success_count, total, batch.failure_count, batch.cache_hits, batch.total_duration_ms,
        )
        return batch
