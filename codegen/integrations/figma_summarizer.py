"""Shrink a Figma node tree to what the code-generation prompt needs.

Keeps the color palette, typography styles, top-level layout and a
depth-limited structure in which identical siblings (same type and name)
collapse into one entry with an instance count.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

from codegen import settings
from codegen.integrations.figma_parser import extract_dimensions, rgba_to_hex

# Hard stop for style collection on pathological trees
_STYLE_DEPTH_LIMIT = 15


@dataclass
class FigmaSummary:
    name: str
    node_type: str
    dimensions: Dict[str, float]
    colors: List[str] = field(default_factory=list)
    typography: List[Dict[str, Any]] = field(default_factory=list)
    layout: Dict[str, Any] = field(default_factory=dict)
    structure: Dict[str, Any] = field(default_factory=dict)
    original_size: int = 0
    summarized_size: int = 0

    @property
    def reduction_pct(self) -> float:
        if not self.original_size:
            return 0.0
        return (1 - self.summarized_size / self.original_size) * 100


def _padding(node: Dict[str, Any]) -> Dict[str, float]:
    return {
        "top": node.get("paddingTop", 0) or 0,
        "right": node.get("paddingRight", 0) or 0,
        "bottom": node.get("paddingBottom", 0) or 0,
        "left": node.get("paddingLeft", 0) or 0,
    }


def _fill_label(fill: Dict[str, Any]) -> Any:
    color = fill.get("color")
    if isinstance(color, dict):
        return rgba_to_hex(color)
    return color or fill.get("type")


def _collect_styles(node: Dict[str, Any], colors: List[str], typography: List[Dict[str, Any]],
                    seen_type: set, depth: int = 0) -> None:
    if depth > _STYLE_DEPTH_LIMIT:
        return
    for fill in node.get("fills") or []:
        if isinstance(fill, dict) and fill.get("color") is not None:
            label = _fill_label(fill)
            if label not in colors:
                colors.append(label)

    font = node.get("fontName")
    if node.get("fontSize") and isinstance(font, dict):
        family = font.get("family") or "default"
        weight = node.get("fontWeight") or 400
        key = (family, node["fontSize"], weight)
        if key not in seen_type:
            seen_type.add(key)
            typography.append({"family": family, "size": node["fontSize"], "weight": weight})

    for child in node.get("children") or []:
        if isinstance(child, dict):
            _collect_styles(child, colors, typography, seen_type, depth + 1)


def _simplify(node: Dict[str, Any], max_depth: int, depth: int = 0) -> Dict[str, Any]:
    children = [c for c in node.get("children") or [] if isinstance(c, dict)]
    if depth >= max_depth:
        return {
            "type": node.get("type"),
            "name": node.get("name"),
            "childCount": len(children),
            "truncated": True,
        }

    simplified: Dict[str, Any] = {"type": node.get("type"), "name": node.get("name")}
    if node.get("size"):
        simplified["size"] = node["size"]
    if node.get("layoutMode"):
        simplified["layout"] = {
            "mode": node["layoutMode"],
            "gap": node.get("itemSpacing"),
            "padding": _padding(node),
        }
    fills = node.get("fills") or []
    if fills and isinstance(fills[0], dict):
        simplified["fill"] = _fill_label(fills[0])
    if node.get("characters"):
        simplified["text"] = node["characters"][:100]

    if children:
        groups: Dict[tuple, List[Dict[str, Any]]] = {}
        for child in children:
            groups.setdefault((child.get("type"), child.get("name")), []).append(child)
        simplified["children"] = []
        for instances in groups.values():
            entry = _simplify(instances[0], max_depth, depth + 1)
            if len(instances) > 1:
                entry["instanceCount"] = len(instances)
                entry["note"] = f"Repeated {len(instances)} times"
            simplified["children"].append(entry)

    return simplified


def summarize_figma_data(node: Dict[str, Any], max_depth: int = settings.SUMMARY_MAX_DEPTH) -> FigmaSummary:
    colors: List[str] = []
    typography: List[Dict[str, Any]] = []
    _collect_styles(node, colors, typography, set())

    summary = FigmaSummary(
        name=node.get("name", ""),
        node_type=node.get("type", ""),
        dimensions=extract_dimensions(node),
        colors=colors,
        typography=typography,
        layout={
            "mode": node.get("layoutMode"),
            "direction": node.get("primaryAxisSizingMode"),
            "gap": node.get("itemSpacing"),
            "padding": _padding(node),
        },
        structure=_simplify(node, max_depth),
    )
    summary.original_size = len(json.dumps(node, default=str))
    summary.summarized_size = len(json.dumps({
        "name": summary.name,
        "colors": summary.colors,
        "typography": summary.typography,
        "layout": summary.layout,
        "structure": summary.structure,
    }, default=str))
    return summary


def format_summary_for_prompt(summary: FigmaSummary) -> str:
    colors = ", ".join(str(c) for c in summary.colors[:20])
    if len(summary.colors) > 20:
        colors += f" ({len(summary.colors) - 20} more...)"
    typography = ", ".join(
        f"{t['family']} {t['size']}px weight {t['weight']}" for t in summary.typography[:10]
    )
    if len(summary.typography) > 10:
        typography += f" ({len(summary.typography) - 10} more...)"
    layout = summary.layout
    pad = layout.get("padding") or {}

    return (
        "\n## Component Overview\n"
        f"- Name: {summary.name}\n"
        f"- Type: {summary.node_type}\n"
        f"- Dimensions: {summary.dimensions.get('width', 0)}×{summary.dimensions.get('height', 0)}px\n"
        f"- Data reduction: {summary.reduction_pct:.0f}% smaller\n"
        "\n## Color Palette\n"
        f"{colors or 'none'}\n"
        "\n## Typography Styles\n"
        f"{typography or 'none'}\n"
        "\n## Layout\n"
        f"- Mode: {layout.get('mode') or 'none'}\n"
        f"- Direction: {layout.get('direction') or 'auto'}\n"
        f"- Gap: {layout.get('gap') or 0}px\n"
        f"- Padding: {pad.get('top', 0)}/{pad.get('right', 0)}/{pad.get('bottom', 0)}/{pad.get('left', 0)}\n"
        "\n## Simplified Structure\n"
        "```json\n"
        f"{json.dumps(summary.structure, indent=2, default=str)}\n"
        "```\n"
    )
