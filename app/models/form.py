"""
Formloop — Form and Completion models.

``completions.form_id`` deliberately carries no foreign key: deleting a form
keeps the completion history of the users who filled it in, and activity
feeds render those entries with a placeholder title.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

TagList = JSON().with_variant(JSONB(), "postgresql")


class Form(Base):
    __tablename__ = "forms"
    __table_args__ = (
        Index("ix_forms_created_by", "created_by"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(String, nullable=False)
    tags: Mapped[list] = mapped_column(
        TagList, nullable=False, default=list, comment="Array of tag strings"
    )
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    estimated_time: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Minutes"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # ── Relationships ──────────────────────────────────────────────
    owner: Mapped["User"] = relationship("User", back_populates="forms")

    def __repr__(self) -> str:
        return f"<Form {self.title!r} id={self.id}>"


class Completion(Base):
    __tablename__ = "completions"
    __table_args__ = (
        UniqueConstraint("form_id", "user_id", name="uq_completion_form_user"),
        Index("ix_completions_user_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    form_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    rating: Mapped[int | None] = mapped_column(
        Integer, nullable=True, comment="1-5"
    )
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # ── Relationships ──────────────────────────────────────────────
    user: Mapped["User"] = relationship("User", back_populates="completions")

    def __repr__(self) -> str:
        return (
            f"<Completion form={self.form_id} user={self.user_id} "
            f"rating={self.rating}>"
        )
