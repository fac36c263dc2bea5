"""Tests for icon detection and Lucide mapping (codegen/integrations/icon_mapper.py)."""

from __future__ import annotations

import pytest

from codegen.integrations.icon_mapper import (
    DEFAULT_LUCIDE_ICON,
    dedupe_icons,
    detect_icon,
    extract_icons,
    generate_lucide_imports,
    map_to_lucide_icon,
)


def _icon_node(name: str, node_type: str = "INSTANCE", size: int = 24, **extra):
    node = {"id": f"id-{name}", "name": name, "type": node_type, "size": {"x": size, "y": size}}
    node.update(extra)
    return node


class TestMapToLucide:

    @pytest.mark.parametrize("name,icon", [
        ("search", "Search"),
        ("Icon / Search", "Search"),
        ("chevron-down", "ChevronDown"),
        ("Trash Can", "Trash"),
        ("settings-gear", "Settings"),
    ])
    def test_mappings(self, name, icon):
        assert map_to_lucide_icon(name)[0] == icon

    def test_reverse_lookup(self):
        # "noti" is contained in the "notification" key
        assert map_to_lucide_icon("noti") == ("Bell", "notification")

    def test_empty_name(self):
        assert map_to_lucide_icon("") is None
        assert map_to_lucide_icon("---") is None

    def test_no_match(self):
        assert map_to_lucide_icon("zzzqqq") is None


class TestDetectIcon:

    def test_named_instance_is_icon(self):
        match = detect_icon(_icon_node("Icon / Search"))
        assert match.is_icon is True
        assert match.lucide_icon == "Search"
        assert match.confidence == 1.0

    def test_plain_frame_is_not_icon(self):
        match = detect_icon({"name": "Container", "type": "FRAME", "size": {"x": 300, "y": 200}})
        assert match.is_icon is False
        assert match.lucide_icon is None

    def test_threshold_boundary(self):
        # INSTANCE (0.2) + square size (0.2) + vector child (0.15) = 0.55
        node = _icon_node("shape", children=[{"type": "VECTOR", "name": "v"}])
        assert detect_icon(node).confidence == pytest.approx(0.55)
        assert detect_icon(node).is_icon is False

        # "icon" in the name pushes it over
        node = _icon_node("my icon")
        assert detect_icon(node).confidence == pytest.approx(0.8)
        assert detect_icon(node).is_icon is True

    def test_unmapped_icon_gets_default(self):
        match = detect_icon(_icon_node("icon zzzqqq"))
        assert match.is_icon is True
        assert match.lucide_icon == DEFAULT_LUCIDE_ICON
        assert match.icon_name == "unknown"

    def test_bbox_size_used(self):
        node = {"name": "icon", "type": "VECTOR", "absoluteBoundingBox": {"width": 16, "height": 16}}
        match = detect_icon(node)
        assert any("Square icon size" in r for r in match.reasons)


class TestExtractIcons:

    def test_depth_first_with_paths(self):
        tree = {
            "name": "Toolbar", "type": "FRAME", "size": {"x": 400, "y": 48},
            "children": [
                _icon_node("Icon / Search"),
                {"name": "Group", "type": "GROUP", "size": {"x": 100, "y": 48},
                 "children": [_icon_node("Icon / Close")]},
            ],
        }
        icons = extract_icons(tree)
        assert [i["lucide_icon"] for i in icons] == ["Search", "X"]
        assert icons[1]["path"] == "Toolbar > Group > Icon / Close"
        assert icons[0]["node_id"] == "id-Icon / Search"

    def test_dedupe_keeps_first(self):
        icons = [
            {"lucide_icon": "Search", "path": "a"},
            {"lucide_icon": "X", "path": "b"},
            {"lucide_icon": "Search", "path": "c"},
        ]
        assert [i["path"] for i in dedupe_icons(icons)] == ["a", "b"]

    def test_import_line(self):
        icons = [{"lucide_icon": "X"}, {"lucide_icon": "Search"}, {"lucide_icon": "X"}]
        assert generate_lucide_imports(icons) == "import { Search, X } from 'lucide-react';"
        assert generate_lucide_imports([]) == ""
