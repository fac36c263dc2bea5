"""Per-run pipeline configuration.

Precedence (lowest → highest): defaults, JSON config file, environment
(process env over a .env file), explicit overrides.
"""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from codegen.config import ENV_OVERRIDES, PIPELINE_VERSION
from codegen.errors import ConfigurationError
from codegen.matching.scorer import MatchScoringConfig

LogLevel = Literal["debug", "info", "warn", "error"]

_BOOL_FIELDS = {
    "enableVisualValidation",
    "enableSemanticMatching",
    "enableCaching",
}

# Fields that never influence generated output
_NON_OUTPUT_FIELDS = {
    "open_router_api_key",
    "figma_token",
    "database_path",
    "enable_caching",
    "max_retries",
    "retry_delay",
    "timeout",
    "log_level",
    "log_file",
    "batch_concurrency",
    "index_processed_components",
}


class PipelineConfig(BaseModel):
    """Options for one pipeline run. JSON files use the camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    # API
    open_router_api_key: str = Field(default="", alias="openRouterApiKey")
    figma_token: Optional[str] = Field(default=None, alias="figmaToken")

    # Models
    code_generation_model: str = Field(
        default="anthropic/claude-sonnet-4.5", alias="codeGenerationModel",
    )
    embedding_model: str = Field(default="openai/text-embedding-3-small", alias="embeddingModel")
    vision_model: str = Field(default="openai/gpt-4o", alias="visionModel")

    # Storage / output
    database_path: str = Field(default="./validation.db", alias="databasePath")
    output_dir: str = Field(default="./output", alias="outputDir")
    create_subdirectories: bool = Field(default=True, alias="createSubdirectories")

    # Features
    enable_caching: bool = Field(default=True, alias="enableCaching")
    enable_visual_validation: bool = Field(default=False, alias="enableVisualValidation")
    enable_semantic_matching: bool = Field(default=True, alias="enableSemanticMatching")
    index_processed_components: bool = Field(default=False, alias="indexProcessedComponents")
    classification_rules_path: Optional[str] = Field(default=None, alias="classificationRulesPath")
    match_scoring: MatchScoringConfig = Field(default_factory=MatchScoringConfig, alias="matchScoring")

    # Performance
    max_retries: int = Field(default=3, ge=0, alias="maxRetries")
    retry_delay: int = Field(default=1000, ge=0, alias="retryDelay", description="milliseconds")
    timeout: int = Field(default=60000, gt=0, alias="timeout", description="milliseconds")
    batch_concurrency: int = Field(default=1, ge=1, alias="batchConcurrency")

    # Logging
    log_level: LogLevel = Field(default="info", alias="logLevel")
    log_file: Optional[str] = Field(default=None, alias="logFile")

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay / 1000.0

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000.0

    def output_affecting(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json", exclude=_NON_OUTPUT_FIELDS)
        data["pipeline_version"] = PIPELINE_VERSION
        return data

    def config_hash(self) -> str:
        """sha256 of the options that change generated output (no secrets, no logging)."""
        canonical = json.dumps(self.output_affecting(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def validate_config(config: PipelineConfig, require_api_key: bool = True) -> List[str]:
    """Cross-field checks pydantic's field constraints don't cover.

    Returns:
        List of problems; empty if the config is usable
    """
    problems: List[str] = []
    if require_api_key and not config.open_router_api_key:
        problems.append("OpenRouter API key is required (set OPENROUTER env variable)")
    if not config.code_generation_model:
        problems.append("Code generation model is required")
    if config.enable_semantic_matching and not config.embedding_model:
        problems.append("Embedding model is required when semantic matching is enabled")
    if not config.output_dir:
        problems.append("Output directory is required")
    if not config.database_path:
        problems.append("Database path is required")
    if config.classification_rules_path and not Path(config.classification_rules_path).is_file():
        problems.append(f"Classification rules file not found: {config.classification_rules_path}")
    return problems


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def _env_layer(env: Mapping[str, Optional[str]]) -> Dict[str, Any]:
    layer: Dict[str, Any] = {}
    for env_name, key in ENV_OVERRIDES.items():
        value = env.get(env_name)
        if value is None or value == "":
            continue
        layer[key] = _parse_bool(value) if key in _BOOL_FIELDS else value
    return layer


def _format_validation_error(error: ValidationError) -> List[str]:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        problems.append(f"{location}: {item.get('msg')}" if location else item.get("msg", ""))
    return problems


def load_config(
    config_file: Optional[str] = None,
    env_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    require_api_key: bool = True,
) -> PipelineConfig:
    """Build and validate a PipelineConfig.

    Args:
        config_file: JSON file with camelCase keys
        env_file: .env file; defaults to ./.env when present
        overrides: camelCase keys applied last (CLI flags)
        environ: Process environment, defaults to os.environ
        require_api_key: Fail when no OpenRouter key is configured

    Raises:
        ConfigurationError: Listing every problem found
    """
    data: Dict[str, Any] = {}

    if config_file:
        try:
            file_data = json.loads(Path(config_file).read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigurationError([f"Cannot read config file {config_file}: {e}"]) from e
        except json.JSONDecodeError as e:
            raise ConfigurationError([f"Config file {config_file} is not valid JSON: {e}"]) from e
        if not isinstance(file_data, dict):
            raise ConfigurationError([f"Config file {config_file} must contain a JSON object"])
        data.update(file_data)

    env: Dict[str, Optional[str]] = {}
    dotenv_path = env_file or (".env" if Path(".env").is_file() else None)
    if dotenv_path:
        if env_file and not Path(env_file).is_file():
            raise ConfigurationError([f"Env file not found: {env_file}"])
        env.update(dotenv_values(dotenv_path))
    env.update(environ if environ is not None else os.environ)
    data.update(_env_layer(env))

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        config = PipelineConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e)) from e

    problems = validate_config(config, require_api_key=require_api_key)
    if problems:
        raise ConfigurationError(problems)
    return config


def generate_example_config() -> Dict[str, Any]:
    """Example JSON config with every option at its default (key left blank)."""
    example = PipelineConfig().model_dump(mode="json", by_alias=True)
    example["openRouterApiKey"] = ""
    return example


ENV_TEMPLATE = """\
# OpenRouter API key (required)
OPENROUTER=

# Figma personal access token (optional)
FIGMA_TOKEN=

# Optional overrides
# CODE_GENERATION_MODEL=anthropic/claude-sonnet-4.5
# EMBEDDING_MODEL=openai/text-embedding-3-small
# DATABASE_PATH=./validation.db
# OUTPUT_DIR=./output
# LOG_LEVEL=info
# ENABLE_VISUAL_VALIDATION=false
# ENABLE_SEMANTIC_MATCHING=true
"""
