#!/usr/bin/env python3
"""figma-codegen: generate React components from Figma exports.

Usage:
    # Write an example config and .env template
    figma-codegen init

    # Check a config before a run
    figma-codegen validate-config -c pipeline.config.json

    # Add existing components to the matching library
    figma-codegen index -i library_export.json

    # Generate code for every component in an export
    figma-codegen generate -i design_export.json -o ./output

Requires:
    - OPENROUTER env var (or openRouterApiKey in the config) for `generate`
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from catalog.store import EmbeddingStore
from codegen.errors import ConfigurationError, ParseError
from codegen.integrations.component_classifier import ComponentClassifier
from codegen.integrations.embeddings import HashEmbeddingProvider, OpenRouterEmbeddingProvider
from codegen.integrations.figma_parser import load_component_inputs
from codegen.integrations.openrouter_client import OpenRouterClient
from codegen.logging_config import configure_logging
from codegen.pipeline.config import (
    ENV_TEMPLATE,
    PipelineConfig,
    generate_example_config,
    load_config,
    validate_config,
)
from codegen.pipeline.indexer import LibraryIndexer
from codegen.pipeline.models import ProgressUpdate
from codegen.pipeline.orchestrator import PipelineOrchestrator
from codegen.retry import RetryPolicy

DEFAULT_CONFIG_FILE = "pipeline.config.json"
DEFAULT_ENV_FILE = ".env.example"


def step(msg: str) -> None:
    """Print a step header."""
    print(f"\n{'='*60}")
    print(f"  {msg}")
    print(f"{'='*60}")


def read_input(path: str) -> List[Any]:
    """Load component records from a JSON export file.

    Raises:
        ParseError: If the file is unreadable, not JSON, or holds no records
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ParseError(f"Cannot read input file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ParseError(f"Input file {path} is not valid JSON: {e}") from e
    return load_component_inputs(data)


def _print_problems(error: ConfigurationError) -> None:
    print("  Configuration errors:", file=sys.stderr)
    for problem in error.problems:
        print(f"    - {problem}", file=sys.stderr)


def _print_progress(update: ProgressUpdate) -> None:
    print(f"  [{update.progress:5.1f}%] {update.message}")


# --- Commands ---


async def _generate(config: PipelineConfig, records: List[Any]) -> int:
    orchestrator = PipelineOrchestrator(config)
    try:
        await orchestrator.initialize()
        batch = await orchestrator.process_batch(records, progress_callback=_print_progress)
    finally:
        await orchestrator.cleanup()

    step("RESULTS")
    print(f"  Total:     {batch.total_components}")
    print(f"  Succeeded: {batch.success_count}")
    print(f"  Failed:    {batch.failure_count}")
    print(f"  Cached:    {batch.cache_hits}")
    print(f"  Duration:  {batch.total_duration_ms / 1000:.1f}s")
    if batch.summary_error:
        print(f"  Summary:   not written ({batch.summary_error})", file=sys.stderr)
    for result in batch.results:
        mark = "OK  " if result.success else "FAIL"
        print(f"  {mark} {result.component_name} ({result.component_id})")
        for error in result.errors:
            print(f"         error: {error}")
    return 0 if batch.failure_count == 0 else 1


def cmd_generate(args: argparse.Namespace) -> int:
    overrides: Dict[str, Any] = {
        "outputDir": args.output,
        "databasePath": args.database,
        "logLevel": args.log_level,
        "logFile": args.log_file,
        "batchConcurrency": args.concurrency,
    }
    if args.no_cache:
        overrides["enableCaching"] = False
    if args.no_subdirs:
        overrides["createSubdirectories"] = False
    if args.enable_visual:
        overrides["enableVisualValidation"] = True
    if args.no_matching:
        overrides["enableSemanticMatching"] = False

    config = load_config(args.config, args.env, overrides)
    configure_logging(config.log_level, config.log_file)

    step(f"Loading components from {args.input}")
    records = read_input(args.input)
    print(f"  Found {len(records)} component(s)")

    step("Running pipeline")
    return asyncio.run(_generate(config, records))


def cmd_init(args: argparse.Namespace) -> int:
    target = Path(args.dir)
    config_path = target / DEFAULT_CONFIG_FILE
    env_path = target / DEFAULT_ENV_FILE
    existing = [p for p in (config_path, env_path) if p.exists()]
    if existing and not args.force:
        for path in existing:
            print(f"  ERROR: {path} already exists (use --force to overwrite)", file=sys.stderr)
        return 1

    target.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(generate_example_config(), indent=2) + "\n", encoding="utf-8")
    env_path.write_text(ENV_TEMPLATE, encoding="utf-8")
    print(f"  Wrote {config_path}")
    print(f"  Wrote {env_path}")
    print("  Next: copy .env.example to .env and set OPENROUTER")
    return 0


def cmd_validate_config(args: argparse.Namespace) -> int:
    config = load_config(args.config, args.env, require_api_key=False)
    problems = validate_config(config, require_api_key=not args.no_api_key)
    if problems:
        _print_problems(ConfigurationError(problems))
        return 1
    print("  Configuration is valid")
    print(f"  Model:     {config.code_generation_model}")
    print(f"  Output:    {config.output_dir}")
    print(f"  Database:  {config.database_path}")
    print(f"  Matching:  {'on' if config.enable_semantic_matching else 'off'}")
    print(f"  Visual:    {'on' if config.enable_visual_validation else 'off'}")
    print(f"  Caching:   {'on' if config.enable_caching else 'off'}")
    return 0


async def _index(config: PipelineConfig, records: List[Any], source_path: str) -> int:
    client: Optional[OpenRouterClient] = None
    if config.open_router_api_key:
        client = OpenRouterClient(api_key=config.open_router_api_key, timeout=config.timeout_seconds)
        provider = OpenRouterEmbeddingProvider(client, config.embedding_model)
    else:
        provider = HashEmbeddingProvider()

    classifier = (
        ComponentClassifier.from_file(config.classification_rules_path)
        if config.classification_rules_path else ComponentClassifier()
    )
    store = await EmbeddingStore.open(config.database_path)
    try:
        indexer = LibraryIndexer(
            store,
            classifier=classifier,
            embedding_provider=provider,
            retry_policy=RetryPolicy(
                max_retries=config.max_retries,
                retry_delay=config.retry_delay_seconds,
                timeout=config.timeout_seconds,
            ),
        )
        report = await indexer.index_components(records, source_path=source_path)
    finally:
        await store.close()
        if client is not None:
            await client.close()

    step("RESULTS")
    print(f"  Indexed: {len(report.indexed)}")
    print(f"  Failed:  {len(report.failed)}")
    for component_id, error in report.failed.items():
        print(f"  FAIL {component_id}: {error}")
    return 0 if report.success else 1


def cmd_index(args: argparse.Namespace) -> int:
    overrides = {"databasePath": args.database, "logLevel": args.log_level}
    config = load_config(args.config, args.env, overrides, require_api_key=False)
    configure_logging(config.log_level, config.log_file)

    step(f"Indexing components from {args.input}")
    records = read_input(args.input)
    print(f"  Found {len(records)} component(s)")
    return asyncio.run(_index(config, records, args.input))


# --- Argument parsing ---


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="figma-codegen",
        description="Generate React/ShadCN components from Figma component exports",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def add_config_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("-c", "--config", help="JSON config file (camelCase keys)")
        p.add_argument("--env", help="Env file to load (default: ./.env when present)")

    gen = sub.add_parser("generate", help="Generate code for every component in an export")
    gen.add_argument("-i", "--input", required=True, help="Figma export JSON file")
    gen.add_argument("-o", "--output", help="Output directory (overrides config)")
    add_config_args(gen)
    gen.add_argument("--database", help="Library/cache database path (overrides config)")
    gen.add_argument("--log-level", choices=["debug", "info", "warn", "error"], help="Log level")
    gen.add_argument("--log-file", help="Also write logs to this file")
    gen.add_argument("--no-cache", action="store_true", help="Disable the result cache")
    gen.add_argument("--no-subdirs", action="store_true", help="Write all files into the output directory")
    gen.add_argument("--enable-visual", action="store_true", help="Run visual validation")
    gen.add_argument("--no-matching", action="store_true", help="Skip library matching")
    gen.add_argument("--concurrency", type=int, help="Components processed at once")
    gen.set_defaults(func=cmd_generate)

    init = sub.add_parser("init", help="Write an example config and .env template")
    init.add_argument("-d", "--dir", default=".", help="Target directory (default: .)")
    init.add_argument("--force", action="store_true", help="Overwrite existing files")
    init.set_defaults(func=cmd_init)

    val = sub.add_parser("validate-config", help="Check a configuration without running")
    add_config_args(val)
    val.add_argument("--no-api-key", action="store_true", help="Do not require an OpenRouter key")
    val.set_defaults(func=cmd_validate_config)

    idx = sub.add_parser("index", help="Add components to the matching library")
    idx.add_argument("-i", "--input", required=True, help="Figma export JSON file")
    add_config_args(idx)
    idx.add_argument("--database", help="Library database path (overrides config)")
    idx.add_argument("--log-level", choices=["debug", "info", "warn", "error"], help="Log level")
    idx.set_defaults(func=cmd_index)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ConfigurationError as e:
        _print_problems(e)
        return 1
    except ParseError as e:
        print(f"  ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
