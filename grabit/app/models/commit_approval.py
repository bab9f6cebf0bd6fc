"""
models/commit_approval.py — Commit submissions and their per-member approval entries.

No business logic. No imports from services or routes.

Key design points:
  - A CommitApproval is one member's self-reported completion for a target date.
    It is immutable after creation; it can only be deleted (by its author).
  - Each CommitApproval owns one CommitApprovalEntry per member who belonged to
    the challenge at submission time. Later roster changes never add or remove
    entries.
  - An entry moves pending → approved | rejected exactly once.
  - ApprovalStatus is a Python enum so services and schemas share the values
    without repeating string literals.
"""

from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grabit.app.extensions import db


class ApprovalStatus(str, enum.Enum):
    PENDING  = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g., 'pending'), not names ('PENDING')."""
    return [member.value for member in enum_cls]


class CommitApproval(db.Model):
    __tablename__ = "commit_approvals"

    id: Mapped[int] = mapped_column(primary_key=True)

    challenge_id: Mapped[int] = mapped_column(
        ForeignKey("challenges.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    author_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    target_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    author: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[author_user_id],
    )

    challenge: Mapped["Challenge"] = relationship(  # noqa: F821
        "Challenge",
        back_populates="commit_approvals",
    )

    entries: Mapped[list["CommitApprovalEntry"]] = relationship(
        "CommitApprovalEntry",
        back_populates="commit_approval",
        order_by="CommitApprovalEntry.id",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<CommitApproval id={self.id} "
            f"challenge_id={self.challenge_id} "
            f"target_date={self.target_date}>"
        )


class CommitApprovalEntry(db.Model):
    __tablename__ = "commit_approval_entries"

    __table_args__ = (
        UniqueConstraint(
            "commit_approval_id",
            "user_id",
            name="uq_commit_approval_entries_approval_user",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    commit_approval_id: Mapped[int] = mapped_column(
        ForeignKey("commit_approvals.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Denormalised so a challenge deletion can clear entries in one statement.
    challenge_id: Mapped[int] = mapped_column(
        ForeignKey("challenges.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # The member whose decision this entry records.
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    status: Mapped[ApprovalStatus] = mapped_column(
        Enum(
            ApprovalStatus,
            name="approval_status_enum",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=ApprovalStatus.PENDING,
    )

    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    commit_approval: Mapped["CommitApproval"] = relationship(
        "CommitApproval",
        back_populates="entries",
    )

    user: Mapped["User"] = relationship("User")  # noqa: F821

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<CommitApprovalEntry id={self.id} "
            f"commit_approval_id={self.commit_approval_id} "
            f"user_id={self.user_id} status={self.status.value}>"
        )
