"""Pipeline stage registry and built-in stage implementations.

Importing this package registers the built-in stages.
"""

from codegen.stages.registry import (
    STAGE_CLASSES,
    STAGE_REGISTRY,
    BaseStage,
    StageDefinition,
    StageSkipped,
    create_stage,
    get_stage_definition,
    list_stages,
    register_stage,
)
from codegen.stages.builtin import STAGE_ORDER  # noqa: E402  (registers stages)

__all__ = [
    "STAGE_CLASSES",
    "STAGE_ORDER",
    "STAGE_REGISTRY",
    "BaseStage",
    "StageDefinition",
    "StageSkipped",
    "create_stage",
    "get_stage_definition",
    "list_stages",
    "register_stage",
]
