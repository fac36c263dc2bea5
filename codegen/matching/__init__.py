"""Similarity search and match scoring against the component library."""

from codegen.matching.matcher import ComponentMatcher, MatchReport
from codegen.matching.scorer import MatchResult, MatchScorer, MatchScoringConfig, MatchTier
from codegen.matching.similarity import SimilarityCandidate, cosine_similarity, rank_candidates

__all__ = [
    "ComponentMatcher",
    "MatchReport",
    "MatchResult",
    "MatchScorer",
    "MatchScoringConfig",
    "MatchTier",
    "SimilarityCandidate",
    "cosine_similarity",
    "rank_candidates",
]
