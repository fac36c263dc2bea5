"""Find the closest library components for a query component."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, List, Optional, Sequence

from catalog.schemas import EmbeddingKind
from catalog.store import EmbeddingStore
from codegen.errors import NoCandidateError
from codegen.matching.scorer import MatchResult, MatchScorer, MatchTier
from codegen.matching.similarity import rank_candidates

logger = logging.getLogger("codegen.matching")


@dataclass
class MatchReport:
    """Ranked matches for one query. ``top`` is None only when ``matches`` is empty."""

    matches: List[MatchResult] = field(default_factory=list)
    library_size: int = 0

    @property
    def top(self) -> Optional[MatchResult]:
        return self.matches[0] if self.matches else None

    @property
    def tier(self) -> MatchTier:
        return self.top.tier if self.top else MatchTier.NONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier.value,
            "top": self.top.to_dict() if self.top else None,
            "matches": [m.to_dict() for m in self.matches],
            "library_size": self.library_size,
        }


class ComponentMatcher:
    """Score a query against every stored component.

    Components are ranked on the weighted final score. Only components with
    a semantic embedding are candidates; the visual score is 0 whenever the
    query or the candidate has no visual embedding.
    """

    def __init__(self, store: EmbeddingStore, scorer: Optional[MatchScorer] = None):
        self.store = store
        self.scorer = scorer or MatchScorer()

    async def find_matches(
        self,
        semantic_vector: Sequence[float],
        visual_vector: Optional[Sequence[float]] = None,
        exclude_ids: Collection[str] = (),
        top_k: Optional[int] = None,
    ) -> MatchReport:
        """Rank library components against the query vectors.

        Every stored version of an id in *exclude_ids* is excluded too, so a
        re-indexed component never matches its own earlier copies.

        Raises:
            NoCandidateError: If the library holds no semantic embeddings
            DimensionMismatchError: If a query vector's length differs from
                the stored vectors of the same kind
        """
        excluded = set(exclude_ids)
        for component_id in exclude_ids:
            excluded.update(await self.store.version_ids(component_id))

        semantic = await rank_candidates(
            semantic_vector,
            self.store.all_embeddings(EmbeddingKind.SEMANTIC),
            excluded,
        )
        if not semantic:
            raise NoCandidateError("Component library is empty; nothing to match against")

        visual_scores: Dict[str, float] = {}
        if visual_vector is not None:
            for candidate in await rank_candidates(
                visual_vector,
                self.store.all_embeddings(EmbeddingKind.VISUAL),
                excluded,
            ):
                visual_scores[candidate.component_id] = candidate.score

        scored = [
            (
                candidate,
                self.scorer.combine(candidate.score, visual_scores.get(candidate.component_id)),
            )
            for candidate in semantic
        ]
        # Stable: ties keep semantic ranking, then insertion order
        scored.sort(key=lambda pair: pair[1], reverse=True)

        limit = top_k or self.scorer.config.top_k
        results: List[MatchResult] = []
        for candidate, _ in scored[:limit]:
            component = await self.store.get_component(candidate.component_id)
            name = component.name if component else candidate.component_id
            results.append(self.scorer.score(
                candidate.component_id,
                name,
                candidate.score,
                visual_scores.get(candidate.component_id),
            ))

        report = MatchReport(matches=results, library_size=len(semantic))
        top = report.top
        logger.info(
            "Match: best=%s final=%.3f tier=%s (library=%d)",
            top.component_name, top.final_score, top.tier.value, report.library_size,
        )
        return report
