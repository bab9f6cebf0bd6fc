"""
models/membership.py — Membership junction table (user ↔ challenge).

No business logic. No imports from services or routes.

UNIQUE(user_id, challenge_id) is the store-level guarantee that two
concurrent joins for the same pair cannot both succeed.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grabit.app.extensions import db


class Membership(db.Model):
    __tablename__ = "memberships"

    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", name="uq_memberships_user_challenge"),
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

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    # Joined so a roster renders usernames without one query per member.
    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="memberships",
        lazy="joined",
    )

    challenge: Mapped["Challenge"] = relationship(  # noqa: F821
        "Challenge",
        back_populates="memberships",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Membership id={self.id} "
            f"user_id={self.user_id} "
            f"challenge_id={self.challenge_id}>"
        )
