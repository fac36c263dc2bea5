"""Plain domain records returned by the embedding store.

ORM rows never leave a session; callers receive these dataclasses instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class EmbeddingKind(str, Enum):
    SEMANTIC = "semantic"
    VISUAL = "visual"


@dataclass
class Component:
    """A processed design component.

    Attributes:
        id: Opaque unique identifier
        name: Display name, e.g. "PrimaryButton"
        component_type: Classification tag, e.g. "Button"
        source_path: Where the component came from (file or generated output)
        metadata: Free key/value data: dimensions, child count, text content
        version: 1 for the first insert, incremented by re-indexing
    """

    id: str
    name: str
    component_type: str = "Unknown"
    source_path: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    version: int = 1
    base_id: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("id cannot be empty")
        if not self.name:
            raise ValueError("name cannot be empty")
        if self.base_id is None:
            self.base_id = self.id

    @classmethod
    def from_model(cls, model) -> "Component":
        return cls(
            id=model.id,
            name=model.name,
            component_type=model.component_type,
            source_path=model.source_path,
            metadata=dict(model.component_metadata or {}),
            version=model.version,
            base_id=model.base_id,
            created_at=model.created_at,
        )


@dataclass
class Embedding:
    component_id: str
    kind: EmbeddingKind
    vector: List[float]
    model_name: str
    created_at: Optional[datetime] = None

    @property
    def dimensions(self) -> int:
        return len(self.vector)

    @classmethod
    def from_model(cls, model) -> "Embedding":
        return cls(
            component_id=model.component_id,
            kind=EmbeddingKind(model.kind),
            vector=list(model.vector),
            model_name=model.model_name,
            created_at=model.created_at,
        )
