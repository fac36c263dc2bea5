"""Write generated components, metadata and reports to the output directory."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from codegen import settings
from codegen.config import PIPELINE_VERSION
from codegen.errors import OutputWriteError
from codegen.pipeline.models import PipelineOutputs


def sanitize_filename(name: str) -> str:
    """Lowercase, dash-separated file stem ("Primary Button/Large" → "primary-button-large")."""
    stem = re.sub(r"[^a-zA-Z0-9\-_]", "-", name)
    stem = re.sub(r"-{2,}", "-", stem).strip("-").lower()
    return stem or "component"


def _write_text(path: Path, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise OutputWriteError(f"Failed to write {path}: {e}") from e


def _write_json(path: Path, data: Any) -> None:
    _write_text(path, json.dumps(data, indent=2, ensure_ascii=False, default=str) + "\n")


def component_dir(output_dir: str, component_name: str, create_subdirectories: bool) -> Path:
    base = Path(output_dir)
    return base / sanitize_filename(component_name) if create_subdirectories else base


def write_component_outputs(
    output_dir: str,
    create_subdirectories: bool,
    component_name: str,
    code: str,
    metadata: Dict[str, Any],
    report: Dict[str, Any],
) -> PipelineOutputs:
    """Write ``<stem>.tsx``, ``metadata.json`` and ``validation-report.json``.

    Raises:
        OutputWriteError: If the directory or any file cannot be written
    """
    target = component_dir(output_dir, component_name, create_subdirectories)
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputWriteError(f"Failed to create {target}: {e}") from e

    stem = sanitize_filename(component_name)
    if not create_subdirectories:
        # Flat layout: keep per-component sidecar files apart
        metadata_path = target / f"{stem}.metadata.json"
        report_path = target / f"{stem}.validation-report.json"
    else:
        metadata_path = target / "metadata.json"
        report_path = target / "validation-report.json"
    component_path = target / f"{stem}.tsx"

    _write_text(component_path, code if code.endswith("\n") else code + "\n")
    _write_json(metadata_path, metadata)
    _write_json(report_path, report)

    return PipelineOutputs(
        component_code=code,
        component_path=str(component_path),
        metadata_path=str(metadata_path),
        validation_report_path=str(report_path),
    )


def build_metadata(
    component_id: str,
    component_name: str,
    node_id: str,
    component_type: str,
    mapping: Dict[str, Any],
    match: Optional[Dict[str, Any]],
    model_name: str,
    quality_score: int,
    quality_status: str,
) -> Dict[str, Any]:
    schema = mapping.get("schema", {})
    return {
        "componentId": component_id,
        "componentName": component_name,
        "figmaNodeId": node_id,
        "generatedWith": {
            "model": model_name,
            "pipelineVersion": PIPELINE_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        "classification": {
            "componentType": component_type,
            "shadcnComponent": schema.get("shadcn_name"),
            "confidence": mapping.get("confidence"),
        },
        "match": {
            "componentId": match.get("component_id") if match else None,
            "componentName": match.get("component_name") if match else None,
            "confidence": match.get("final_score") if match else None,
            "tier": match.get("tier") if match else "none",
        },
        "codeInfo": {
            "language": "typescript",
            "framework": "react",
            "library": "shadcn",
            "dependencies": ["@/components/ui"],
        },
        "validation": {
            "status": quality_status,
            "score": quality_score,
            "issues": [],
        },
    }


def build_validation_report(
    component_id: str,
    component_name: str,
    checklist: Dict[str, bool],
    quality_score: int,
    component_type: str,
    mapping: Dict[str, Any],
    match_tier: str,
    visual: Optional[Dict[str, Any]],
    warnings: list,
) -> Dict[str, Any]:
    schema = mapping.get("schema", {})
    return {
        "componentId": component_id,
        "componentName": component_name,
        "codeQuality": dict(checklist),
        "qualityScore": quality_score,
        "matchTier": match_tier,
        "semanticMapping": {
            "componentType": component_type,
            "shadcnComponent": schema.get("shadcn_name"),
            "confidence": mapping.get("confidence"),
            "warnings": list(mapping.get("warnings", [])),
        },
        "visualValidation": visual,
        "warnings": list(warnings),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def write_batch_summary(output_dir: str, summary: Dict[str, Any]) -> str:
    target = Path(output_dir)
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputWriteError(f"Failed to create {target}: {e}") from e
    path = target / settings.BATCH_SUMMARY_FILENAME
    _write_json(path, summary)
    return str(path)
