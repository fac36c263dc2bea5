"""Built-in pipeline stages, registered in execution order."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import ValidationError

from codegen.errors import (
    DimensionMismatchError,
    ExternalServiceError,
    NoCandidateError,
    ParseError,
)
from codegen.integrations.code_generator import GenerationRequest
from codegen.integrations.embeddings import describe_component
from codegen.integrations.figma_parser import parse_component
from codegen.integrations.icon_mapper import dedupe_icons, extract_icons, generate_lucide_imports
from codegen.integrations.semantic_mapper import map_component_to_schema
from codegen.matching.matcher import MatchReport
from codegen.matching.scorer import MatchTier
from codegen.pipeline.models import ComponentInput
from codegen.pipeline.outputs import (
    build_metadata,
    build_validation_report,
    write_component_outputs,
)
from codegen.pipeline.quality import calculate_quality_score, quality_status, validate_code
from codegen.retry import call_with_retry
from codegen.stages.context import StageContext
from codegen.stages.registry import BaseStage, StageSkipped, register_stage

# Icons kept for the prompt after de-duplication
MAX_PROMPT_ICONS = 20


def coerce_component(raw: Any) -> ComponentInput:
    """Validate a submitted record.

    Raises:
        ParseError: If required fields are missing or mistyped
    """
    if isinstance(raw, ComponentInput):
        return raw
    if not isinstance(raw, dict):
        raise ParseError(f"Component record must be an object, got {type(raw).__name__}")
    try:
        return ComponentInput.model_validate(raw)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "record" for err in e.errors())
        raise ParseError(f"Malformed component record ({fields})") from e


@register_stage(
    name="parse",
    description="Validate the record and flatten its node tree",
)
class ParseStage(BaseStage):
    async def run(self, ctx: StageContext) -> Dict[str, Any]:
        ctx.component = coerce_component(ctx.raw)
        ctx.result.component_id = ctx.component.id
        ctx.result.component_name = ctx.component.name
        return parse_component(ctx.component)


@register_stage(
    name="classify",
    description="Assign a component type tag from the rule table",
    depends_on=("parse",),
)
class ClassifyStage(BaseStage):
    async def run(self, ctx: StageContext) -> Dict[str, Any]:
        classification = ctx.services.classifier.classify_parsed(ctx.stage_result("parse"))
        ctx.logger.info("%s: classified as %s", ctx.result.component_id, classification.tag)
        return classification.to_dict()


@register_stage(
    name="extract-icons",
    description="Detect icon nodes and map them to Lucide icons",
    depends_on=("parse",),
)
class ExtractIconsStage(BaseStage):
    async def run(self, ctx: StageContext) -> Dict[str, Any]:
        found = extract_icons(ctx.component.node)
        unique = dedupe_icons(found)
        if len(unique) > MAX_PROMPT_ICONS:
            ctx.warn(f"{len(unique)} distinct icons found; only the first {MAX_PROMPT_ICONS} are used")
            unique = unique[:MAX_PROMPT_ICONS]
        ctx.logger.info(
            "%s: found %d icon instances, %d unique",
            ctx.result.component_id, len(found), len(unique),
        )
        return {
            "total": len(found),
            "icons": unique,
            "lucide_import": generate_lucide_imports(unique),
        }


@register_stage(
    name="semantic-map",
    description="Choose the target ShadCN schema",
    depends_on=("parse", "classify"),
)
class SemanticMapStage(BaseStage):
    async def run(self, ctx: StageContext) -> Dict[str, Any]:
        component_type = ctx.stage_result("classify")["component_type"]
        mapping = map_component_to_schema(ctx.stage_result("parse"), component_type)
        for warning in mapping.warnings:
            ctx.warn(warning)
        return mapping.to_dict()


@register_stage(
    name="match",
    description="Find the closest library component",
    depends_on=("parse", "classify"),
    enabled_by="enable_semantic_matching",
    external=True,
)
class MatchStage(BaseStage):
    """Score the component against the library.

    An empty library or a below-threshold best match completes with tier
    "none". A vector whose dimensionality differs from the library's skips
    the stage. Anything else fails it.
    """

    async def _semantic_vector(self, ctx: StageContext, component_type: str):
        supplied = ctx.component.embeddings
        if supplied is not None and supplied.semantic:
            return list(supplied.semantic), "supplied"

        provider = ctx.services.embedding_provider
        if provider is None:
            raise StageSkipped("no semantic embedding supplied and no embedding provider configured")
        text = describe_component(ctx.stage_result("parse"), component_type)
        vector = await call_with_retry(
            lambda: provider.embed(text),
            ctx.retry_policy,
            label=f"embedding {ctx.result.component_id}",
        )
        return vector, provider.model_name

    async def run(self, ctx: StageContext) -> Dict[str, Any]:
        matcher = ctx.services.matcher
        if matcher is None:
            raise StageSkipped("no component library configured")

        component_type = ctx.stage_result("classify")["component_type"]
        semantic, source = await self._semantic_vector(ctx, component_type)
        ctx.semantic_vector = semantic
        supplied = ctx.component.embeddings
        visual = list(supplied.visual) if supplied is not None and supplied.visual else None

        try:
            report = await matcher.find_matches(semantic, visual, exclude_ids={ctx.component.id})
        except DimensionMismatchError as e:
            ctx.warn(f"Match skipped, generating unassisted: {e}")
            raise StageSkipped(str(e)) from e
        except NoCandidateError as e:
            ctx.warn(f"{e}; generating unassisted")
            report = MatchReport()

        if report.top is not None and report.tier == MatchTier.NONE:
            ctx.warn(
                f"No library match above threshold (best {report.top.final_score:.2f}); "
                "generating unassisted"
            )
        data = report.to_dict()
        data["embedding_source"] = source
        return data


def _match_hint(match_result: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not match_result or match_result.get("tier") == MatchTier.NONE.value:
        return None
    return match_result.get("top")


@register_stage(
    name="generate",
    description="Generate component code with the LLM",
    depends_on=("parse", "semantic-map", "extract-icons"),
    external=True,
)
class GenerateStage(BaseStage):
    async def run(self, ctx: StageContext) -> Dict[str, Any]:
        generator = ctx.services.code_generator
        request = GenerationRequest(
            parsed=ctx.stage_result("parse"),
            mapping=ctx.stage_result("semantic-map"),
            node=ctx.component.node,
            icons=ctx.stage_result("extract-icons")["icons"],
            match=_match_hint(ctx.stage_result("match")),
        )
        code = await call_with_retry(
            lambda: generator.generate(request),
            ctx.retry_policy,
            label=f"generate {ctx.result.component_id}",
        )
        if not code or not code.strip():
            raise ExternalServiceError("Code generator returned no code")
        ctx.logger.info("%s: generated %d characters of code", ctx.result.component_id, len(code))
        return {"code": code, "model": generator.model_name, "characters": len(code)}


@register_stage(
    name="validate",
    description="Score the generated code against the quality checklist",
    depends_on=("generate",),
)
class ValidateStage(BaseStage):
    async def run(self, ctx: StageContext) -> Dict[str, Any]:
        checklist = validate_code(ctx.stage_result("generate")["code"])
        score = calculate_quality_score(checklist)
        status = quality_status(score)
        if status != "pass":
            missing = ", ".join(k for k, ok in checklist.items() if not ok)
            ctx.warn(f"Code quality score {score} below pass mark (missing: {missing})")
        return {"checklist": checklist, "score": score, "status": status}


@register_stage(
    name="visual-validate",
    description="Compare the generated component with the design",
    depends_on=("generate",),
    enabled_by="enable_visual_validation",
    external=True,
)
class VisualValidateStage(BaseStage):
    async def run(self, ctx: StageContext) -> Dict[str, Any]:
        validator = ctx.services.visual_validator
        code = ctx.stage_result("generate")["code"]
        outcome = await call_with_retry(
            lambda: validator.validate(ctx.component.id, code, ctx.component.node),
            ctx.retry_policy,
            label=f"visual validation {ctx.result.component_id}",
        )
        if outcome.get("warning"):
            ctx.warn(outcome["warning"])
        return outcome


@register_stage(
    name="persist-output",
    description="Write the component, metadata and validation report",
    depends_on=("generate", "validate"),
)
class PersistOutputStage(BaseStage):
    async def run(self, ctx: StageContext) -> Dict[str, Any]:
        component = ctx.component
        parsed = ctx.stage_result("parse")
        component_type = ctx.stage_result("classify")["component_type"]
        mapping = ctx.stage_result("semantic-map")
        generated = ctx.stage_result("generate")
        quality = ctx.stage_result("validate")
        match_result = ctx.stage_result("match") or {}
        visual_stage = ctx.result.stages.get("visual-validate")
        visual = visual_stage.result if visual_stage and visual_stage.status == "completed" else None

        metadata = build_metadata(
            component_id=component.id,
            component_name=component.name,
            node_id=parsed["node_id"],
            component_type=component_type,
            mapping=mapping,
            match=match_result.get("top"),
            model_name=generated["model"],
            quality_score=quality["score"],
            quality_status=quality["status"],
        )
        report = build_validation_report(
            component_id=component.id,
            component_name=component.name,
            checklist=quality["checklist"],
            quality_score=quality["score"],
            component_type=component_type,
            mapping=mapping,
            match_tier=match_result.get("tier", MatchTier.NONE.value),
            visual=visual,
            warnings=ctx.result.warnings,
        )
        outputs = write_component_outputs(
            output_dir=ctx.config.output_dir,
            create_subdirectories=ctx.config.create_subdirectories,
            component_name=component.name,
            code=generated["code"],
            metadata=metadata,
            report=report,
        )
        ctx.logger.info("%s: wrote output files to %s", component.id, outputs.component_path)
        return outputs.model_dump(exclude={"component_code"})


# Fixed execution order
STAGE_ORDER = (
    "parse",
    "classify",
    "extract-icons",
    "semantic-map",
    "match",
    "generate",
    "validate",
    "visual-validate",
    "persist-output",
)
