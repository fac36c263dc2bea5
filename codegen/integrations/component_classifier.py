"""Rule-based component type classification.

Rules are an ordered table: the first rule whose keywords appear in the
component name (case-insensitive) and whose node-type filter accepts the
node wins. Components no rule accepts get DEFAULT_TAG.

The table can be replaced from a JSON file:

    [
        {"tag": "Button", "keywords": ["button", "btn"]},
        {"tag": "Icon", "keywords": ["icon"], "node_types": ["VECTOR", "INSTANCE"]}
    ]
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from codegen.errors import ConfigurationError

logger = logging.getLogger("codegen.integrations.classifier")

DEFAULT_TAG = "Unknown"


@dataclass(frozen=True)
class ClassificationRule:
    """One entry of the classification table.

    Attributes:
        tag: Component type assigned on match (e.g. "Button")
        keywords: Name substrings, any of which triggers the rule
        node_types: Figma node types the rule applies to; empty means any
    """

    tag: str
    keywords: Tuple[str, ...]
    node_types: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.tag:
            raise ValueError("tag cannot be empty")
        if not self.keywords:
            raise ValueError(f"rule '{self.tag}' needs at least one keyword")

    def matches(self, name: str, node_type: Optional[str]) -> bool:
        if self.node_types and (node_type or "").upper() not in self.node_types:
            return False
        lower = name.lower()
        return any(keyword in lower for keyword in self.keywords)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClassificationRule":
        return cls(
            tag=data["tag"],
            keywords=tuple(k.lower() for k in data.get("keywords", [])),
            node_types=tuple(t.upper() for t in data.get("node_types", [])),
        )


DEFAULT_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule("Button", ("button", "btn")),
    ClassificationRule("Card", ("card",)),
    ClassificationRule("Input", ("input", "field", "textbox")),
    ClassificationRule("Dialog", ("dialog", "modal")),
    ClassificationRule("Alert", ("alert",)),
    ClassificationRule("Badge", ("badge",)),
    ClassificationRule("Checkbox", ("checkbox",)),
    ClassificationRule("RadioGroup", ("radio",)),
    ClassificationRule("Select", ("select", "dropdown")),
    ClassificationRule("Switch", ("switch", "toggle")),
    ClassificationRule("Slider", ("slider",)),
    ClassificationRule("Tabs", ("tabs",)),
    ClassificationRule("Avatar", ("avatar",)),
)


@dataclass
class Classification:
    tag: str
    matched_keyword: Optional[str] = None
    rule_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component_type": self.tag,
            "matched_keyword": self.matched_keyword,
            "rule_index": self.rule_index,
        }


class ComponentClassifier:
    """Applies an ordered rule table to parsed components."""

    def __init__(self, rules: Optional[Sequence[ClassificationRule]] = None):
        self.rules: List[ClassificationRule] = list(rules if rules is not None else DEFAULT_RULES)

    @classmethod
    def from_file(cls, path: str) -> "ComponentClassifier":
        """Load the rule table from a JSON list of rule objects.

        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
            rules = [ClassificationRule.from_dict(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise ConfigurationError([f"Invalid classification rules file {path}: {e}"]) from e
        logger.info("Loaded %d classification rules from %s", len(rules), path)
        return cls(rules)

    def classify(self, name: str, node_type: Optional[str] = None) -> Classification:
        for index, rule in enumerate(self.rules):
            if rule.matches(name, node_type):
                keyword = next(k for k in rule.keywords if k in name.lower())
                return Classification(rule.tag, keyword, index)
        return Classification(DEFAULT_TAG)

    def classify_parsed(self, parsed: Dict[str, Any]) -> Classification:
        return self.classify(parsed.get("name", ""), parsed.get("node_type"))
