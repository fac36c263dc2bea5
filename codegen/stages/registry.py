"""Stage Registry for the component pipeline

Stages register themselves with a decorator that records their metadata
(dependencies, config flag, whether they call external services) next to
the implementing class. The orchestrator instantiates them by name in
STAGE_ORDER.

Key Components:
- StageDefinition: Metadata for a stage
- BaseStage: Abstract base class for stage implementations
- register_stage: Decorator for registering stages
- create_stage: Factory function for stage instantiation
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

if TYPE_CHECKING:
    from codegen.stages.context import StageContext

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="BaseStage")


class StageSkipped(Exception):
    """Raised by a running stage to end as ``skipped`` instead of ``completed``."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass
class StageDefinition:
    """Metadata definition for a pipeline stage.

    Attributes:
        name: Unique stage name (e.g., "semantic-map")
        description: Brief description of what the stage produces
        depends_on: Stages that must be ``completed`` before this one starts
        enabled_by: PipelineConfig attribute that can switch the stage off
        external: True if the stage calls a volatile external service
    """

    name: str
    description: str
    depends_on: Tuple[str, ...] = field(default_factory=tuple)
    enabled_by: Optional[str] = None
    external: bool = False

    def __post_init__(self):
        """Validate stage definition after initialization."""
        if not self.name:
            raise ValueError("name cannot be empty")
        if self.name in self.depends_on:
            raise ValueError(f"stage '{self.name}' cannot depend on itself")

    def is_enabled(self, config: Any) -> bool:
        if self.enabled_by is None:
            return True
        return bool(getattr(config, self.enabled_by))


class BaseStage(ABC):
    """Abstract base class for pipeline stages.

    ``run`` receives the component's StageContext and returns the stage
    result. Results must be JSON-plain (dicts, lists, str, numbers, bool,
    None) because they are cached and written to reports.
    """

    def __init__(self, definition: StageDefinition):
        self.definition = definition

    @property
    def name(self) -> str:
        return self.definition.name

    @abstractmethod
    async def run(self, ctx: "StageContext") -> Any:
        """Execute the stage. Must be implemented by subclasses."""
        pass


# Global registry for stages
STAGE_REGISTRY: Dict[str, StageDefinition] = {}
STAGE_CLASSES: Dict[str, Type[BaseStage]] = {}


def register_stage(
    name: str,
    description: str,
    depends_on: Tuple[str, ...] = (),
    enabled_by: Optional[str] = None,
    external: bool = False,
) -> Callable[[Type[T]], Type[T]]:
    """Decorator to register a stage.

    Example:
        @register_stage(
            name="classify",
            description="Assign a component type tag",
            depends_on=("parse",),
        )
        class ClassifyStage(BaseStage):
            async def run(self, ctx):
                return {"component_type": "Button"}
    """

    def decorator(cls: Type[T]) -> Type[T]:
        for dependency in depends_on:
            if dependency not in STAGE_REGISTRY:
                raise ValueError(
                    f"Stage '{name}' depends on unregistered stage '{dependency}'"
                )

        STAGE_REGISTRY[name] = StageDefinition(
            name=name,
            description=description,
            depends_on=tuple(depends_on),
            enabled_by=enabled_by,
            external=external,
        )
        STAGE_CLASSES[name] = cls

        logger.debug("Registered stage: %s", name)
        return cls

    return decorator


def create_stage(name: str) -> BaseStage:
    """Factory function to create a stage instance.

    Raises:
        ValueError: If the stage is not registered
    """
    if name not in STAGE_CLASSES:
        raise ValueError(
            f"Unknown stage: {name}. Available stages: {list(STAGE_CLASSES.keys())}"
        )
    return STAGE_CLASSES[name](STAGE_REGISTRY[name])


def get_stage_definition(name: str) -> Optional[StageDefinition]:
    return STAGE_REGISTRY.get(name)


def list_stages() -> List[StageDefinition]:
    """All registered stages in registration order."""
    return list(STAGE_REGISTRY.values())
