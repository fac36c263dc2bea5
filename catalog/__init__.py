"""Component catalog: durable components, embeddings and cached results.

Modules:
- database: engine/session factories (async SQLAlchemy)
- models: ORM tables
- repositories: per-table data access
- store: EmbeddingStore handle used by the pipeline
"""
