"""Pydantic models for pipeline inputs, stage tracking and results."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from codegen.config import PIPELINE_VERSION
from codegen.errors import StageTransitionError

StageStatus = Literal["pending", "running", "completed", "failed", "skipped"]

# Allowed status moves; terminal states have none
_TRANSITIONS: Dict[str, tuple] = {
    "pending": ("running", "skipped"),
    "running": ("completed", "failed", "skipped"),
    "completed": (),
    "failed": (),
    "skipped": (),
}


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _now_ms() -> float:
    return time.time() * 1000.0


# ─── Input ───────────────────────────────────────────────────────────


class ComponentEmbeddings(BaseModel):
    """Precomputed vectors supplied with a component."""
    semantic: Optional[List[float]] = None
    visual: Optional[List[float]] = None


class ComponentInput(BaseModel):
    """One design component to process (a Figma plugin export record)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    properties: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    node: Dict[str, Any] = Field(
        ...,
        validation_alias=AliasChoices("figmaNode", "node"),
        serialization_alias="figmaNode",
    )
    embeddings: Optional[ComponentEmbeddings] = None

    @field_validator("id", "name", "type")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


# ─── Stage tracking ──────────────────────────────────────────────────


class PipelineStage(BaseModel):
    """Status and timing of one stage in one component run."""

    name: str
    status: StageStatus = "pending"
    start_time: Optional[float] = None  # epoch ms
    end_time: Optional[float] = None
    error: Optional[str] = None
    result: Optional[Any] = None

    @property
    def duration_ms(self) -> Optional[float]:
        if self.start_time is None or self.end_time is None:
            return None
        return self.end_time - self.start_time

    def _move(self, status: str) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise StageTransitionError(
                f"Stage '{self.name}' cannot go from {self.status} to {status}"
            )
        self.status = status

    def start(self) -> None:
        self._move("running")
        self.start_time = _now_ms()

    def complete(self, result: Any = None) -> None:
        self._move("completed")
        self.end_time = _now_ms()
        self.result = result

    def fail(self, error: str) -> None:
        self._move("failed")
        self.end_time = _now_ms()
        self.error = error

    def skip(self, reason: Optional[str] = None) -> None:
        self._move("skipped")
        now = _now_ms()
        if self.start_time is None:
            self.start_time = now
        self.end_time = now
        if reason:
            self.result = {"reason": reason}


# ─── Results ─────────────────────────────────────────────────────────


class PipelineOutputs(BaseModel):
    component_code: Optional[str] = None
    component_path: Optional[str] = None
    metadata_path: Optional[str] = None
    validation_report_path: Optional[str] = None


class PipelineResult(BaseModel):
    """Outcome of running one component through the stage list."""

    success: bool = False
    component_id: str
    component_name: str
    stages: Dict[str, PipelineStage] = Field(default_factory=dict)
    outputs: PipelineOutputs = Field(default_factory=PipelineOutputs)
    total_duration_ms: float = 0.0
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    generated_at: str = Field(default_factory=_utcnow_iso)
    pipeline_version: str = PIPELINE_VERSION
    fingerprint: Optional[str] = None

    def stage_result(self, name: str) -> Any:
        stage = self.stages.get(name)
        return stage.result if stage else None


class BatchPipelineResult(BaseModel):
    total_components: int
    success_count: int
    failure_count: int
    cache_hits: int = 0
    cached_component_ids: List[str] = Field(default_factory=list)
    results: List[PipelineResult] = Field(default_factory=list)
    # Per result, in input order (component ids may repeat)
    durations_ms: List[float] = Field(default_factory=list)
    from_cache: List[bool] = Field(default_factory=list)
    total_duration_ms: float = 0.0
    started_at: str
    completed_at: str
    summary_path: Optional[str] = None
    summary_error: Optional[str] = None

    def summary(self) -> Dict[str, Any]:
        """Compact JSON-ready summary (no generated code)."""
        components = []
        for i, r in enumerate(self.results):
            duration = self.durations_ms[i] if i < len(self.durations_ms) else r.total_duration_ms
            cached = self.from_cache[i] if i < len(self.from_cache) else False
            components.append({
                "component_id": r.component_id,
                "component_name": r.component_name,
                "success": r.success,
                "from_cache": cached,
                "duration_ms": round(duration, 2),
                "component_path": r.outputs.component_path,
                "errors": r.errors,
                "warnings": r.warnings,
            })
        return {
            "total_components": self.total_components,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "cache_hits": self.cache_hits,
            "total_duration_ms": round(self.total_duration_ms, 2),
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "components": components,
        }


class ProgressUpdate(BaseModel):
    stage: str
    progress: float  # 0-100
    message: str
    timestamp: float = Field(default_factory=_now_ms)
