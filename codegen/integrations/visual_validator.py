"""Visual validation hook.

Rendering and pixel comparison are out of scope; the pipeline calls a
VisualValidator so one can be plugged in. The default records that no
visual comparison took place.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict


class VisualValidator(ABC):
    @abstractmethod
    async def validate(self, component_id: str, code: str, node: Dict[str, Any]) -> Dict[str, Any]:
        """Compare generated *code* against the design *node*.

        Returns a JSON-ready dict; raise ExternalServiceError on service failures.
        """


class NullVisualValidator(VisualValidator):
    async def validate(self, component_id: str, code: str, node: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "performed": False,
            "recommendation": "NEEDS_REVIEW",
            "warning": "Visual validation is not available; no rendering backend configured",
        }
