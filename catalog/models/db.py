"""SQLAlchemy ORM models for the component catalog.

Tables:
- components: Processed design components (immutable, versioned)
- embeddings: One vector per (component, kind)
- pipeline_cache: Completed pipeline results keyed by fingerprint
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─── Component ───────────────────────────────────────────────────────


class ComponentModel(Base):
    """A processed design component.

    Rows are never updated in place. Re-indexing an id writes a new row
    whose id carries a version suffix.
    """

    __tablename__ = "components"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    component_type: Mapped[str] = mapped_column(
        String(64), nullable=False, default="Unknown",
        comment="Classification tag, e.g. Button | Card | Input",
    )
    source_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    component_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata", JSON, nullable=True,
        comment="dimensions, child count, text content",
    )
    base_id: Mapped[str] = mapped_column(
        String(255), nullable=False,
        comment="Id the first version was inserted under",
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    embeddings: Mapped[List["EmbeddingModel"]] = relationship(
        back_populates="component",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_components_type", "component_type"),
        Index("ix_components_base_id", "base_id"),
    )


# ─── Embedding ───────────────────────────────────────────────────────


class EmbeddingModel(Base):
    """A vector attached to a component.

    ``seq`` is the insertion order used to break similarity ties; an
    overwrite keeps the original ``seq``.
    """

    __tablename__ = "embeddings"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    component_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("components.id", ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(
        String(16), nullable=False, comment="semantic | visual",
    )
    vector: Mapped[List[float]] = mapped_column(JSON, nullable=False)
    dimensions: Mapped[int] = mapped_column(Integer, nullable=False)
    model_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    component: Mapped["ComponentModel"] = relationship(back_populates="embeddings")

    __table_args__ = (
        UniqueConstraint("component_id", "kind", name="uq_embeddings_component_kind"),
        Index("ix_embeddings_kind_seq", "kind", "seq"),
    )


# ─── Pipeline Cache ──────────────────────────────────────────────────


class PipelineCacheModel(Base):
    """Completed pipeline result, written once per fingerprint."""

    __tablename__ = "pipeline_cache"

    fingerprint: Mapped[str] = mapped_column(String(64), primary_key=True)
    component_id: Mapped[str] = mapped_column(String(255), nullable=False)
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    config_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    result: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    __table_args__ = (
        Index("ix_pipeline_cache_component", "component_id"),
    )
