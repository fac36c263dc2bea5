"""Static quality checklist for generated component code."""

from __future__ import annotations

from typing import Dict

from codegen import settings

QUALITY_WEIGHTS: Dict[str, int] = {
    "has_typescript": 25,
    "has_react": 25,
    "has_tailwind": 20,
    "has_props": 15,
    "has_accessibility": 10,
    "formatted": 5,
}


def validate_code(code: str) -> Dict[str, bool]:
    """Checklist of the conventions generated components are expected to follow."""
    return {
        "has_typescript": "interface " in code or "type " in code,
        "has_react": "import" in code and ("React" in code or 'from "react"' in code or "from 'react'" in code),
        "has_tailwind": "className=" in code,
        "has_props": "Props" in code,
        "has_accessibility": "aria-" in code or "role=" in code,
        "formatted": any(line.startswith("  ") for line in code.splitlines()),
    }


def calculate_quality_score(checklist: Dict[str, bool]) -> int:
    """Weighted checklist score, 0-100."""
    return sum(weight for key, weight in QUALITY_WEIGHTS.items() if checklist.get(key))


def quality_status(score: int) -> str:
    return "pass" if score >= settings.QUALITY_PASS_SCORE else "warning"
