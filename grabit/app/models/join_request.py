"""
models/join_request.py — Pending request to join a private challenge.

A row exists only while the request is pending: approving turns it into a
Membership, rejecting discards it. Both delete the row.

UNIQUE(user_id, challenge_id) — at most one outstanding request per pair.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grabit.app.extensions import db


class JoinRequest(db.Model):
    __tablename__ = "join_requests"

    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", name="uq_join_requests_user_challenge"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    challenge_id: Mapped[int] = mapped_column(
        ForeignKey("challenges.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    user: Mapped["User"] = relationship("User")  # noqa: F821

    challenge: Mapped["Challenge"] = relationship(  # noqa: F821
        "Challenge",
        back_populates="join_requests",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<JoinRequest id={self.id} "
            f"user_id={self.user_id} "
            f"challenge_id={self.challenge_id}>"
        )
