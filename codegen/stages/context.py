"""Per-component state shared by the stages of one run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from codegen.integrations.code_generator import CodeGenerator
from codegen.integrations.component_classifier import ComponentClassifier
from codegen.integrations.embeddings import EmbeddingProvider
from codegen.integrations.visual_validator import VisualValidator
from codegen.matching.matcher import ComponentMatcher
from codegen.pipeline.config import PipelineConfig
from codegen.pipeline.models import ComponentInput, PipelineResult
from codegen.retry import RetryPolicy


@dataclass
class PipelineServices:
    """Collaborators the stages call. Built once per orchestrator."""

    classifier: ComponentClassifier
    code_generator: CodeGenerator
    visual_validator: VisualValidator
    matcher: Optional[ComponentMatcher] = None
    embedding_provider: Optional[EmbeddingProvider] = None


@dataclass
class StageContext:
    """Inputs and intermediate results for one component run.

    ``raw`` is the record as submitted; ``component`` is set by the parse
    stage once the record validates.
    """

    raw: Any
    config: PipelineConfig
    services: PipelineServices
    result: PipelineResult
    retry_policy: RetryPolicy
    component: Optional[ComponentInput] = None
    semantic_vector: Optional[List[float]] = None
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("codegen.pipeline"))

    def stage_result(self, name: str) -> Any:
        return self.result.stage_result(name)

    def warn(self, message: str) -> None:
        self.result.warnings.append(message)
        self.logger.warning("%s: %s", self.result.component_id, message)
