"""Codegen runtime settings: tunable parameters for pipeline execution.

All values read from environment variables with sensible defaults. Import
from here instead of hardcoding. Per-run options (models, paths, feature
flags, retries) live in PipelineConfig; these are process-wide defaults.
"""

from __future__ import annotations

import os


def _int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _str(key: str, default: str) -> str:
    return os.getenv(key, default)


# =====================================================================
# Match scoring
# =====================================================================

# final = semantic_weight * semantic + visual_weight * visual
MATCH_SEMANTIC_WEIGHT = _float("MATCH_SEMANTIC_WEIGHT", 0.70)
MATCH_VISUAL_WEIGHT = _float("MATCH_VISUAL_WEIGHT", 0.30)

# Tier boundaries: final >= exact → exact; similar <= final < exact → similar
MATCH_EXACT_THRESHOLD = _float("MATCH_EXACT_THRESHOLD", 0.85)
MATCH_SIMILAR_THRESHOLD = _float("MATCH_SIMILAR_THRESHOLD", 0.75)

# Ranked matches kept per query
MATCH_TOP_K = _int("MATCH_TOP_K", 5)

# Decimal places kept on scores (absorbs float noise on identical vectors)
SCORE_PRECISION = _int("SCORE_PRECISION", 6)

# Full-scan similarity is designed for libraries up to this size
SIMILARITY_SCALE_LIMIT = _int("SIMILARITY_SCALE_LIMIT", 10000)


# =====================================================================
# Code generation (LLM)
# =====================================================================

CODEGEN_TEMPERATURE = _float("CODEGEN_TEMPERATURE", 0.2)
CODEGEN_MAX_TOKENS = _int("CODEGEN_MAX_TOKENS", 4000)

# Depth of the node-tree summary embedded in the prompt
SUMMARY_MAX_DEPTH = _int("SUMMARY_MAX_DEPTH", 6)

# Offline semantic embedding size (hash provider)
HASH_EMBEDDING_DIMENSIONS = _int("HASH_EMBEDDING_DIMENSIONS", 384)


# =====================================================================
# Quality gate
# =====================================================================

# Minimum weighted checklist score for a "pass"
QUALITY_PASS_SCORE = _int("QUALITY_PASS_SCORE", 80)

# Minimum icon-detection confidence
ICON_CONFIDENCE_THRESHOLD = _float("ICON_CONFIDENCE_THRESHOLD", 0.6)


# =====================================================================
# HTTP Clients (OpenRouter)
# =====================================================================

OPENROUTER_HTTP_MAX_CONNECTIONS = _int("OPENROUTER_HTTP_MAX_CONNECTIONS", 5)
OPENROUTER_HTTP_MAX_KEEPALIVE = _int("OPENROUTER_HTTP_MAX_KEEPALIVE", 3)


# =====================================================================
# Output
# =====================================================================

BATCH_SUMMARY_FILENAME = _str("BATCH_SUMMARY_FILENAME", "batch-summary.json")
