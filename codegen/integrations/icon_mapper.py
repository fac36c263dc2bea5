"""Icon detection in Figma node trees and mapping to Lucide React icons."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from codegen import settings

# Figma name fragment → Lucide React icon. Order matters for substring lookup.
ICON_NAME_MAPPINGS: Dict[str, str] = {
    # Document/File
    "file": "File",
    "folder": "Folder",
    "folderopen": "FolderOpen",
    "document": "FileText",
    "doc": "FileText",
    "page": "FileText",
    # Navigation
    "arrow": "ArrowRight",
    "arrowleft": "ArrowLeft",
    "arrowright": "ArrowRight",
    "arrowup": "ArrowUp",
    "arrowdown": "ArrowDown",
    "chevron": "ChevronRight",
    "chevronleft": "ChevronLeft",
    "chevronright": "ChevronRight",
    "chevronup": "ChevronUp",
    "chevrondown": "ChevronDown",
    # Link/External
    "link": "Link",
    "external": "ExternalLink",
    "externallink": "ExternalLink",
    "docs": "FileText",
    "documentation": "FileText",
    # UI
    "close": "X",
    "x": "X",
    "check": "Check",
    "checkmark": "Check",
    "plus": "Plus",
    "minus": "Minus",
    "search": "Search",
    "filter": "Filter",
    "menu": "Menu",
    "hamburger": "Menu",
    "settings": "Settings",
    "gear": "Settings",
    "user": "User",
    "profile": "User",
    "home": "Home",
    "heart": "Heart",
    "star": "Star",
    "bell": "Bell",
    "notification": "Bell",
    # Media
    "play": "Play",
    "pause": "Pause",
    "stop": "Square",
    "image": "Image",
    "picture": "Image",
    "video": "Video",
    "camera": "Camera",
    # Actions
    "edit": "Edit",
    "pencil": "Pencil",
    "trash": "Trash",
    "delete": "Trash",
    "download": "Download",
    "upload": "Upload",
    "copy": "Copy",
    "share": "Share",
    # Status
    "info": "Info",
    "warning": "AlertTriangle",
    "alert": "AlertCircle",
    "error": "AlertCircle",
    "help": "HelpCircle",
    "question": "HelpCircle",
    # Developer
    "code": "Code",
    "terminal": "Terminal",
    "git": "GitBranch",
    "github": "Github",
    "developer": "Code",
    "design": "Figma",
    "designer": "Figma",
}

DEFAULT_LUCIDE_ICON = "FileText"

ICON_SIZE_MIN = 12
ICON_SIZE_MAX = 64


@dataclass
class IconMatch:
    is_icon: bool
    confidence: float
    lucide_icon: Optional[str] = None
    icon_name: Optional[str] = None
    reasons: List[str] = field(default_factory=list)


def map_to_lucide_icon(figma_name: str) -> Optional[Tuple[str, str]]:
    """Map a Figma layer name to (lucide_icon, matched_key).

    Lookup order: exact key, a key contained in the name, the name contained
    in a key. Returns None when nothing matches.
    """
    normalized = re.sub(r"[^a-z0-9]", "", figma_name.lower())
    if not normalized:
        return None

    if normalized in ICON_NAME_MAPPINGS:
        return ICON_NAME_MAPPINGS[normalized], normalized

    for key, lucide in ICON_NAME_MAPPINGS.items():
        if key in normalized:
            return lucide, key

    for key, lucide in ICON_NAME_MAPPINGS.items():
        if normalized in key:
            return lucide, key

    return None


def _node_size(node: Dict[str, Any]) -> Optional[Tuple[float, float]]:
    size = node.get("size")
    if isinstance(size, dict):
        return size.get("x", 0) or 0, size.get("y", 0) or 0
    bbox = node.get("absoluteBoundingBox")
    if isinstance(bbox, dict):
        return bbox.get("width", 0) or 0, bbox.get("height", 0) or 0
    return None


def detect_icon(node: Dict[str, Any]) -> IconMatch:
    """Score how likely *node* is an icon and map it to a Lucide icon."""
    reasons: List[str] = []
    confidence = 0.0
    name = (node.get("name") or "").lower()
    node_type = node.get("type")

    if "icon" in name:
        reasons.append('Name contains "icon"')
        confidence += 0.4
    if name.startswith("icon /") or name.startswith("icon/"):
        reasons.append('Name starts with "Icon /"')
        confidence += 0.3
    if "link" in name and ("docs" in name or "external" in name):
        reasons.append("Name suggests link/docs icon")
        confidence += 0.3

    if node_type in ("INSTANCE", "COMPONENT"):
        reasons.append("Is component instance")
        confidence += 0.2
    if node_type == "VECTOR":
        reasons.append("Is vector graphic")
        confidence += 0.15

    children = node.get("children") or []
    if any(isinstance(c, dict) and c.get("type") == "VECTOR" for c in children):
        reasons.append("Contains vector children")
        confidence += 0.15

    size = _node_size(node)
    if size:
        width, height = size
        in_range = ICON_SIZE_MIN <= width <= ICON_SIZE_MAX and ICON_SIZE_MIN <= height <= ICON_SIZE_MAX
        if width == height and in_range:
            reasons.append(f"Square icon size ({width}×{height}px)")
            confidence += 0.2
        elif in_range and abs(width - height) <= 4:
            reasons.append(f"Icon-sized ({width}×{height}px)")
            confidence += 0.15

    confidence = round(min(confidence, 1.0), 4)
    match = IconMatch(is_icon=confidence >= settings.ICON_CONFIDENCE_THRESHOLD, confidence=confidence)

    if match.is_icon:
        mapped = map_to_lucide_icon(name)
        if mapped:
            match.lucide_icon, match.icon_name = mapped
            reasons.append(f"Mapped to Lucide icon: {match.lucide_icon}")
        else:
            match.lucide_icon, match.icon_name = DEFAULT_LUCIDE_ICON, "unknown"
            reasons.append("No Lucide mapping found, using default")

    match.reasons = reasons
    return match


def extract_icons(node: Dict[str, Any]) -> List[Dict[str, Any]]:
    """All icon nodes in a tree, depth-first, as JSON-ready dicts."""
    icons: List[Dict[str, Any]] = []

    def traverse(n: Dict[str, Any], path: str) -> None:
        current = f"{path} > {n.get('name', '')}" if path else n.get("name", "")
        match = detect_icon(n)
        if match.is_icon:
            icons.append({
                "path": current,
                "node_id": n.get("id"),
                "lucide_icon": match.lucide_icon,
                "icon_name": match.icon_name,
                "confidence": match.confidence,
                "reasons": match.reasons,
            })
        for child in n.get("children") or []:
            if isinstance(child, dict):
                traverse(child, current)

    traverse(node, "")
    return icons


def dedupe_icons(icons: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Keep the first occurrence of each Lucide icon."""
    seen: Dict[str, Dict[str, Any]] = {}
    for icon in icons:
        lucide = icon.get("lucide_icon")
        if lucide and lucide not in seen:
            seen[lucide] = icon
    return list(seen.values())


def generate_lucide_imports(icons: Iterable[Dict[str, Any]]) -> str:
    """``import { A, B } from 'lucide-react';`` for the icons used, or ''."""
    names = sorted({i["lucide_icon"] for i in icons if i.get("lucide_icon")})
    if not names:
        return ""
    return f"import {{ {', '.join(names)} }} from 'lucide-react';"
