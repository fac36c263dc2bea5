"""Component pipeline: configuration, run models, caching, orchestration."""
