"""Weighted match scoring and confidence tiers.

final_score = semantic_weight * semantic_score + visual_weight * visual_score

Tiers:
- exact: final >= exact_threshold
- similar: similar_threshold <= final < exact_threshold
- none: final < similar_threshold
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from codegen import settings


class MatchTier(str, Enum):
    EXACT = "exact"
    SIMILAR = "similar"
    NONE = "none"


class MatchScoringConfig(BaseModel):
    """Weights, thresholds and result count for match scoring."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    semantic_weight: float = Field(
        default=settings.MATCH_SEMANTIC_WEIGHT, ge=0.0, le=1.0, alias="semanticWeight",
    )
    visual_weight: float = Field(
        default=settings.MATCH_VISUAL_WEIGHT, ge=0.0, le=1.0, alias="visualWeight",
    )
    exact_threshold: float = Field(
        default=settings.MATCH_EXACT_THRESHOLD, ge=0.0, le=1.0, alias="exactThreshold",
    )
    similar_threshold: float = Field(
        default=settings.MATCH_SIMILAR_THRESHOLD, ge=0.0, le=1.0, alias="similarThreshold",
    )
    top_k: int = Field(default=settings.MATCH_TOP_K, ge=1, alias="topK")
    precision: int = Field(default=settings.SCORE_PRECISION, ge=0, le=12)

    @model_validator(mode="after")
    def _check_ordering(self) -> "MatchScoringConfig":
        if self.similar_threshold > self.exact_threshold:
            raise ValueError("similarThreshold must not exceed exactThreshold")
        return self


@dataclass
class MatchResult:
    component_id: str
    component_name: str
    semantic_score: float
    visual_score: float
    final_score: float
    tier: MatchTier

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["tier"] = self.tier.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchResult":
        return cls(
            component_id=data["component_id"],
            component_name=data["component_name"],
            semantic_score=float(data["semantic_score"]),
            visual_score=float(data["visual_score"]),
            final_score=float(data["final_score"]),
            tier=MatchTier(data["tier"]),
        )


def _unit(value: float) -> float:
    """Clamp to [0, 1]; negative cosines count as no similarity."""
    return max(0.0, min(1.0, value))


class MatchScorer:
    """Combine semantic and visual similarities into a tiered MatchResult."""

    def __init__(self, config: Optional[MatchScoringConfig] = None):
        self.config = config or MatchScoringConfig()

    def combine(self, semantic_score: float, visual_score: Optional[float]) -> float:
        """Weighted final score in [0, 1], rounded to ``config.precision`` places.

        A missing visual score (either side lacks a visual embedding) counts as 0.
        """
        cfg = self.config
        semantic = _unit(semantic_score)
        visual = _unit(visual_score) if visual_score is not None else 0.0
        final = cfg.semantic_weight * semantic + cfg.visual_weight * visual
        return round(_unit(final), cfg.precision)

    def classify(self, final_score: float) -> MatchTier:
        cfg = self.config
        if final_score >= cfg.exact_threshold:
            return MatchTier.EXACT
        if final_score >= cfg.similar_threshold:
            return MatchTier.SIMILAR
        return MatchTier.NONE

    def score(
        self,
        component_id: str,
        component_name: str,
        semantic_score: float,
        visual_score: Optional[float] = None,
    ) -> MatchResult:
        precision = self.config.precision
        final = self.combine(semantic_score, visual_score)
        return MatchResult(
            component_id=component_id,
            component_name=component_name,
            semantic_score=round(_unit(semantic_score), precision),
            visual_score=round(_unit(visual_score), precision) if visual_score is not None else 0.0,
            final_score=final,
            tier=self.classify(final),
        )
