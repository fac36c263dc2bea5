"""LLM code generation: prompt building and the OpenRouter-backed generator."""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from codegen import settings
from codegen.integrations.figma_summarizer import format_summary_for_prompt, summarize_figma_data
from codegen.integrations.icon_mapper import generate_lucide_imports
from codegen.integrations.openrouter_client import OpenRouterClient

logger = logging.getLogger("codegen.integrations.codegen")

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n(.*?)\n?```\s*$", re.DOTALL)


@dataclass
class GenerationRequest:
    """Everything a generator needs for one component."""

    parsed: Dict[str, Any]
    mapping: Dict[str, Any]
    node: Dict[str, Any]
    icons: List[Dict[str, Any]] = field(default_factory=list)
    match: Optional[Dict[str, Any]] = None  # top MatchResult dict, exact/similar only


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if the model added one."""
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    return match.group(1).strip() if match else stripped


def _icon_section(icons: List[Dict[str, Any]]) -> str:
    if not icons:
        return ""
    names = ", ".join(dict.fromkeys(i["lucide_icon"] for i in icons if i.get("lucide_icon")))
    return (
        "\n\n# Icons Detected (IMPORTANT!)\n"
        "This component contains icons. Use Lucide React icons:\n\n"
        f"{generate_lucide_imports(icons)}\n\n"
        f"Detected Icon Types: {names}\n\n"
        "- Import icons from 'lucide-react' (see above)\n"
        "- Replace empty placeholders or icon containers with the icon components\n"
        "- Size icons with className (w-4 h-4 for 16px, w-5 h-5 for 20px, w-6 h-6 for 24px)"
    )


def _match_section(match: Optional[Dict[str, Any]]) -> str:
    if not match:
        return ""
    return (
        "\n\n# Reference Component\n"
        f"A previously generated library component, \"{match['component_name']}\", "
        f"is a {match['tier']} match (score {match['final_score']:.2f}). "
        "Follow its conventions for props, variants and structure where they fit this design."
    )


def build_generation_prompt(request: GenerationRequest) -> str:
    parsed = request.parsed
    schema = request.mapping.get("schema", {})
    shadcn = schema.get("shadcn_name", "div")
    summary = summarize_figma_data(request.node, settings.SUMMARY_MAX_DEPTH)
    logger.debug(
        "Summarized %s: %d → %d chars (%.0f%% reduction)",
        parsed.get("name"), summary.original_size, summary.summarized_size, summary.reduction_pct,
    )

    icons_requirement = (
        f"Render all {len(request.icons)} icons using Lucide React components"
        if request.icons else "No icons detected"
    )

    return (
        "You are an expert React + TypeScript + Tailwind CSS developer. Generate a "
        "pixel-perfect React component using ShadCN UI components.\n\n"
        "Replicate the exact structure from the Figma data below. Do not invent content. "
        "Render every repeated instance shown by the instanceCount annotations.\n\n"
        "# Component Information\n"
        f"- Name: {parsed.get('name')}\n"
        f"- Component name: {parsed.get('component_name')}\n"
        f"- Type: {shadcn}\n"
        f"- Confidence: {request.mapping.get('confidence', 0) * 100:.1f}%\n"
        f"- Notes: {parsed.get('notes', '')}\n\n"
        "# Figma Data (Summarized with Instance Counts)\n"
        f"{format_summary_for_prompt(summary)}\n"
        "# Semantic Mapping\n"
        f"{json.dumps(request.mapping, indent=2, default=str)}"
        f"{_icon_section(request.icons)}"
        f"{_match_section(request.match)}\n\n"
        "# Requirements\n"
        "1. Structural accuracy: match the Figma hierarchy, all sections and all instances\n"
        f"2. Visual fidelity: use the ShadCN \"{shadcn}\" component as the base where appropriate; "
        "apply colors, spacing, typography, borders and shadows from the data\n"
        f"3. Icons: {icons_requirement}\n"
        "4. Code quality: TypeScript props interface, Tailwind CSS styling, ARIA attributes, "
        "production-ready formatting\n\n"
        "# Output Format\n"
        "Return ONLY the TypeScript/React component code. No explanations, no markdown code blocks.\n"
        "Start with imports (including Lucide icons if present), then the props interface, "
        "then the component."
    )


class CodeGenerator(ABC):
    """Produces component source code for a GenerationRequest."""

    model_name: str = "unknown"

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> str:
        ...


class OpenRouterCodeGenerator(CodeGenerator):
    """Chat-completion code generation through OpenRouter."""

    def __init__(
        self,
        client: OpenRouterClient,
        model_name: str,
        temperature: float = settings.CODEGEN_TEMPERATURE,
        max_tokens: int = settings.CODEGEN_MAX_TOKENS,
    ):
        self.client = client
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate(self, request: GenerationRequest) -> str:
        prompt = build_generation_prompt(request)
        text = await self.client.chat_completion(
            self.model_name,
            [{"role": "user", "content": prompt}],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return strip_code_fences(text)
