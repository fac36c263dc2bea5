"""Figma plugin export → normalized component records.

Two steps:
- load_component_inputs: unwrap any supported export layout into a list of
  raw component records (validated later, one by one, by the parse stage)
- parse_component: flatten a validated ComponentInput's node tree into the
  plain dict the downstream stages consume

Supported export layouts:
    {"node": {...}, "fileKey": ..., ...}   plugin wrapper
    {"id": ..., "name": ..., "type": ...}  single component
    [{...}, {...}]                         array of components
    {"components": [{...}, ...]}           nested list
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from codegen.errors import ParseError
from codegen.pipeline.models import ComponentInput

logger = logging.getLogger("codegen.integrations.figma_parser")

# Wrapper fields copied into metadata for the plugin layout
_WRAPPER_METADATA_KEYS = ("version", "exportDate", "fileKey", "fileName", "nodeId", "nodeName")


def _looks_like_component(item: Any) -> bool:
    return isinstance(item, dict) and all(item.get(k) for k in ("id", "name", "type"))


def _to_record(item: Any) -> Any:
    """Shape one array/list item as a ComponentInput-compatible dict.

    Non-dict items are passed through unchanged so the parse stage reports them.
    """
    if not isinstance(item, dict):
        return item
    record = {
        "id": item.get("id"),
        "name": item.get("name"),
        "type": item.get("type"),
        "properties": item.get("properties") or {},
        "metadata": item.get("metadata") or {},
        "figmaNode": item.get("figmaNode") or item.get("node") or item,
    }
    if item.get("embeddings") is not None:
        record["embeddings"] = item["embeddings"]
    return record


def load_component_inputs(data: Any) -> List[Any]:
    """Extract component records from a parsed export file.

    Records inside an array are all returned, including malformed ones, so
    a single bad entry fails on its own instead of sinking the batch.

    Raises:
        ParseError: If the layout is not recognized or holds no records
    """
    records: List[Any] = []

    if isinstance(data, dict) and _looks_like_component(data.get("node")):
        node = data["node"]
        metadata = dict(node.get("metadata") or {})
        for key in _WRAPPER_METADATA_KEYS:
            if data.get(key) is not None:
                metadata[key] = data[key]
        record = _to_record(node)
        record["metadata"] = metadata
        record["figmaNode"] = node
        if data.get("embeddings") is not None:
            record["embeddings"] = data["embeddings"]
        records.append(record)
    elif _looks_like_component(data):
        records.append(_to_record(data))
    elif isinstance(data, list):
        records.extend(_to_record(item) for item in data)
    elif isinstance(data, dict) and isinstance(data.get("components"), list):
        records.extend(_to_record(item) for item in data["components"])

    if not records:
        raise ParseError(
            "No valid components found in input JSON. "
            "Expected format: { id, name, type, ... }"
        )
    return records


# --- Node tree helpers ---


def get_node_id(node: Dict[str, Any]) -> Optional[str]:
    """Node id, falling back to the plugin's guid ("session:local")."""
    if node.get("id"):
        return str(node["id"])
    guid = node.get("guid")
    if isinstance(guid, dict) and "sessionID" in guid and "localID" in guid:
        return f"{guid['sessionID']}:{guid['localID']}"
    return None


def extract_dimensions(node: Dict[str, Any]) -> Dict[str, float]:
    """Width/height from plugin ``size`` or REST ``absoluteBoundingBox``."""
    size = node.get("size")
    if isinstance(size, dict):
        return {"width": size.get("x", 0) or 0, "height": size.get("y", 0) or 0}
    bbox = node.get("absoluteBoundingBox") or node.get("bounds") or {}
    return {"width": bbox.get("width", 0) or 0, "height": bbox.get("height", 0) or 0}


def extract_text_content(node: Dict[str, Any]) -> List[str]:
    """Recursively extract text content from a node tree."""
    texts = []
    if node.get("type") == "TEXT":
        chars = node.get("characters", "")
        if chars and chars.strip():
            texts.append(chars.strip())
    for child in node.get("children", []) or []:
        if isinstance(child, dict):
            texts.extend(extract_text_content(child))
    return texts


def rgba_to_hex(color: Dict[str, float]) -> str:
    """Convert Figma RGBA (0-1 range) to hex color string."""
    r = round(color.get("r", 0) * 255)
    g = round(color.get("g", 0) * 255)
    b = round(color.get("b", 0) * 255)
    return f"#{r:02X}{g:02X}{b:02X}"


def extract_colors(node: Dict[str, Any], limit: int = 8) -> List[str]:
    """Distinct visible solid fill colors, depth-first, up to *limit*."""
    colors: List[str] = []

    def walk(n: Dict[str, Any]) -> None:
        for fill in n.get("fills", []) or []:
            if len(colors) >= limit:
                return
            if fill.get("type") == "SOLID" and fill.get("visible", True):
                hex_color = rgba_to_hex(fill.get("color", {}))
                if hex_color not in colors:
                    colors.append(hex_color)
        for child in n.get("children", []) or []:
            if len(colors) >= limit:
                return
            if isinstance(child, dict):
                walk(child)

    walk(node)
    return colors


def sanitize_name(name: str) -> str:
    """Convert a Figma layer name to a valid component name.

    Examples:
        "Header Bar / Main" → "HeaderBarMain"
        "status-bar" → "StatusBar"
        "Button/Primary" → "ButtonPrimary"
    """
    cleaned = re.sub(r"[^\w\s\-/]", "", name)
    parts = re.split(r"[\s\-_/]+", cleaned)
    pascal = "".join(p[:1].upper() + p[1:] for p in parts if p)
    if not pascal:
        return "Component"
    if pascal[0].isdigit():
        pascal = f"Component{pascal}"
    return pascal


def _generate_notes(node: Dict[str, Any], text_content: List[str]) -> str:
    """Generate a descriptive note for a component."""
    parts = []
    name = node.get("name", "")
    children = [c for c in node.get("children", []) or [] if isinstance(c, dict)]

    if children:
        child_names = ", ".join(c.get("name", "?") for c in children[:5])
        if len(children) > 5:
            child_names += f" (+{len(children) - 5} more)"
        parts.append(f"{name} with {len(children)} children: {child_names}")
    else:
        parts.append(name)

    if text_content:
        visible_text = ", ".join(f"'{t}'" for t in text_content[:5])
        if len(text_content) > 5:
            visible_text += f" (+{len(text_content) - 5} more)"
        parts.append(f"Text: {visible_text}")

    radius = node.get("cornerRadius")
    if isinstance(radius, (int, float)) and radius > 0:
        parts.append(f"Radius: {radius}px")

    return ". ".join(parts)


def parse_component(component: ComponentInput) -> Dict[str, Any]:
    """Flatten a component's node tree into the record used by later stages.

    Raises:
        ParseError: If the node tree is empty or has no node type
    """
    node = component.node
    if not node:
        raise ParseError(f"Component {component.id} has an empty node tree")
    node_type = node.get("type") or component.type
    if not isinstance(node_type, str) or not node_type:
        raise ParseError(f"Component {component.id} node has no type")

    children = node.get("children") or []
    if not isinstance(children, list):
        raise ParseError(f"Component {component.id} node children must be a list")

    text_content = extract_text_content(node)
    padding = {
        "top": node.get("paddingTop", 0) or 0,
        "right": node.get("paddingRight", 0) or 0,
        "bottom": node.get("paddingBottom", 0) or 0,
        "left": node.get("paddingLeft", 0) or 0,
    }

    parsed = {
        "id": component.id,
        "node_id": get_node_id(node) or component.id,
        "name": component.name,
        "component_name": sanitize_name(component.name),
        "node_type": node_type,
        "dimensions": extract_dimensions(node),
        "child_count": len(children),
        "text_content": text_content,
        "colors": extract_colors(node),
        "corner_radius": node.get("cornerRadius"),
        "padding": padding,
        "gap": node.get("itemSpacing"),
        "layout_mode": node.get("layoutMode"),
        "properties": component.properties,
        "notes": _generate_notes(node, text_content),
    }
    logger.debug(
        "Parsed %s: type=%s children=%d texts=%d",
        component.id, node_type, parsed["child_count"], len(text_content),
    )
    return parsed
