"""Root conftest for store, matching and pipeline tests.

Provides:
- In-memory SQLite embedding store (fresh per test)
- Fake code generator / embedding provider standing in for OpenRouter
- Component record builders
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.pool import StaticPool

from catalog.database import create_engine
from catalog.store import EmbeddingStore
from codegen.errors import ExternalServiceError
from codegen.integrations.code_generator import CodeGenerator, GenerationRequest
from codegen.integrations.embeddings import EmbeddingProvider
from codegen.pipeline.config import PipelineConfig


# ---------------------------------------------------------------------------
# In-memory async SQLite store (StaticPool shares one connection)
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def store() -> AsyncGenerator[EmbeddingStore, None]:
    """Empty embedding store backed by an in-memory database."""
    engine = create_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    store = EmbeddingStore(engine)
    await store.initialize()
    yield store
    await store.close()


# ---------------------------------------------------------------------------
# External service fakes
# ---------------------------------------------------------------------------

GOOD_CODE = """import React from "react";
import { Button } from "@/components/ui/button";

interface PrimaryButtonProps {
  label?: string;
}

export function PrimaryButton({ label = "Submit" }: PrimaryButtonProps) {
  return (
    <Button className="px-4 py-2" aria-label={label}>
      {label}
    </Button>
  );
}
"""


class FakeCodeGenerator(CodeGenerator):
    """Returns fixed code; records every request it receives."""

    model_name = "fake/codegen"

    def __init__(self, code: str = GOOD_CODE, delay: float = 0.0):
        self.code = code
        self.delay = delay
        self.requests: List[GenerationRequest] = []

    async def generate(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.code


class FailingEmbeddingProvider(EmbeddingProvider):
    """Every call fails with a non-transient service error."""

    model_name = "fake/failing"

    def __init__(self):
        self.calls = 0

    @property
    def dimensions(self) -> Optional[int]:
        return None

    async def embed(self, text: str) -> List[float]:
        self.calls += 1
        raise ExternalServiceError("embedding service rejected the request", status_code=400)


@pytest.fixture
def code_generator() -> FakeCodeGenerator:
    return FakeCodeGenerator()


# ---------------------------------------------------------------------------
# Records and config
# ---------------------------------------------------------------------------

def make_node(name: str = "PrimaryButton", node_type: str = "COMPONENT", text: str = "Submit") -> Dict[str, Any]:
    return {
        "id": "1:2",
        "name": name,
        "type": node_type,
        "size": {"x": 120, "y": 40},
        "cornerRadius": 8,
        "fills": [{"type": "SOLID", "color": {"r": 0.2, "g": 0.4, "b": 1.0}}],
        "children": [
            {"id": "1:3", "name": "Label", "type": "TEXT", "characters": text},
        ],
    }


def make_record(
    component_id: str = "btn-1",
    name: str = "PrimaryButton",
    semantic: Optional[List[float]] = None,
    visual: Optional[List[float]] = None,
    **node_kwargs,
) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "id": component_id,
        "name": name,
        "type": "COMPONENT",
        "figmaNode": make_node(name, **node_kwargs),
    }
    if semantic is not None or visual is not None:
        record["embeddings"] = {"semantic": semantic, "visual": visual}
    return record


@pytest.fixture
def pipeline_config(tmp_path) -> PipelineConfig:
    """Fast-failing config writing into a temp directory."""
    return PipelineConfig(
        output_dir=str(tmp_path / "output"),
        database_path=":memory:",
        max_retries=1,
        retry_delay=0,
        timeout=5000,
    )
