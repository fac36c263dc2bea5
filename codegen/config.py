"""Codegen configuration constants: single source of truth for env var names and endpoints."""

import os

# OpenRouter: chat completions and embeddings
OPENROUTER_API_BASE = os.getenv("OPENROUTER_API_BASE", "https://openrouter.ai/api/v1")
OPENROUTER_API_KEY_ENV = "OPENROUTER"
OPENROUTER_APP_TITLE = os.getenv("OPENROUTER_APP_TITLE", "figma-codegen")

# Environment variables that override file configuration
ENV_OVERRIDES = {
    "OPENROUTER": "openRouterApiKey",
    "FIGMA_TOKEN": "figmaToken",
    "CODE_GENERATION_MODEL": "codeGenerationModel",
    "EMBEDDING_MODEL": "embeddingModel",
    "DATABASE_PATH": "databasePath",
    "OUTPUT_DIR": "outputDir",
    "LOG_LEVEL": "logLevel",
    "LOG_FILE": "logFile",
    "ENABLE_VISUAL_VALIDATION": "enableVisualValidation",
    "ENABLE_SEMANTIC_MATCHING": "enableSemanticMatching",
    "ENABLE_CACHING": "enableCaching",
}

# Pipeline version recorded in metadata and cache fingerprints
PIPELINE_VERSION = "1.0.0"
