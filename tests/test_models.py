"""Tests for pipeline input and stage models (codegen/pipeline/models.py)."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from codegen.errors import StageTransitionError
from codegen.pipeline.models import BatchPipelineResult, ComponentInput, PipelineResult, PipelineStage
from tests.conftest import make_node


class TestComponentInput:

    def test_accepts_figma_node_or_node(self):
        a = ComponentInput.model_validate({"id": "a", "name": "A", "type": "FRAME", "figmaNode": make_node()})
        b = ComponentInput.model_validate({"id": "a", "name": "A", "type": "FRAME", "node": make_node()})
        assert a.node == b.node

    def test_serializes_as_figma_node(self):
        component = ComponentInput(id="a", name="A", type="FRAME", node={"type": "FRAME"})
        assert "figmaNode" in component.model_dump(by_alias=True)

    @pytest.mark.parametrize("missing", ["id", "name", "type", "figmaNode"])
    def test_required_fields(self, missing):
        data = {"id": "a", "name": "A", "type": "FRAME", "figmaNode": make_node()}
        del data[missing]
        with pytest.raises(ValidationError):
            ComponentInput.model_validate(data)

    def test_blank_id_rejected(self):
        with pytest.raises(ValidationError):
            ComponentInput(id="  ", name="A", type="FRAME", node={})


class TestPipelineStage:

    def test_happy_path(self):
        stage = PipelineStage(name="parse")
        stage.start()
        assert stage.status == "running"
        stage.complete({"ok": True})
        assert stage.status == "completed"
        assert stage.result == {"ok": True}
        assert stage.duration_ms >= 0

    def test_failure(self):
        stage = PipelineStage(name="generate")
        stage.start()
        stage.fail("boom")
        assert stage.status == "failed"
        assert stage.error == "boom"

    def test_skip_from_pending(self):
        stage = PipelineStage(name="visual-validate")
        stage.skip("disabled by configuration")
        assert stage.status == "skipped"
        assert stage.result == {"reason": "disabled by configuration"}
        assert stage.duration_ms == 0

    @pytest.mark.parametrize("moves", [
        ("complete",),
        ("fail",),
        ("start", "start"),
        ("start", "complete", "fail"),
        ("skip", "start"),
    ])
    def test_illegal_transitions(self, moves):
        stage = PipelineStage(name="x")
        *legal, illegal = moves
        for move in legal:
            getattr(stage, move)(*(["e"] if move == "fail" else []))
        with pytest.raises(StageTransitionError):
            getattr(stage, illegal)(*(["e"] if illegal == "fail" else []))

    def test_pending_has_no_duration(self):
        assert PipelineStage(name="x").duration_ms is None


class TestBatchSummary:

    def test_summary_marks_cached(self):
        results = [
            PipelineResult(component_id="a", component_name="A", success=True),
            PipelineResult(component_id="b", component_name="B", errors=["parse: bad"]),
        ]
        batch = BatchPipelineResult(
            total_components=2, success_count=1, failure_count=1, cache_hits=1,
            cached_component_ids=["a"], results=results, durations_ms=[1.234, 5.0],
            from_cache=[True, False],
            started_at="t0", completed_at="t1",
        )
        summary = batch.summary()
        assert [c["from_cache"] for c in summary["components"]] == [True, False]
        assert summary["components"][0]["duration_ms"] == 1.23
        assert summary["components"][1]["errors"] == ["parse: bad"]
        assert "component_code" not in str(summary)

    def test_repeated_ids_keep_their_own_entries(self):
        results = [
            PipelineResult(component_id="a", component_name="A", success=True),
            PipelineResult(component_id="a", component_name="A", success=True),
        ]
        batch = BatchPipelineResult(
            total_components=2, success_count=2, failure_count=0, cache_hits=1,
            cached_component_ids=["a"], results=results, durations_ms=[40.0, 2.0],
            from_cache=[False, True], started_at="t0", completed_at="t1",
        )
        components = batch.summary()["components"]
        assert [c["duration_ms"] for c in components] == [40.0, 2.0]
        assert [c["from_cache"] for c in components] == [False, True]
