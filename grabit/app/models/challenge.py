"""
models/challenge.py — Challenge table definition.

No business logic. No imports from services or routes.

FK policy: leader_user_id ON DELETE RESTRICT — a user who leads a challenge
cannot be deleted until leadership is transferred or the challenge removed.
Children (memberships, join requests, commit approvals) are also RESTRICT;
challenge_service.delete_challenge() removes them explicitly, children first.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grabit.app.extensions import db


class Challenge(db.Model):
    __tablename__ = "challenges"

    __table_args__ = (
        # Also enforced by the marshmallow schema; the schema is the primary gate.
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_challenges_name_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    leader_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    is_private: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    leader: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[leader_user_id],
    )

    # The roster, in join order.
    memberships: Mapped[list["Membership"]] = relationship(  # noqa: F821
        "Membership",
        back_populates="challenge",
        order_by="Membership.id",
    )

    join_requests: Mapped[list["JoinRequest"]] = relationship(  # noqa: F821
        "JoinRequest",
        back_populates="challenge",
        order_by="JoinRequest.id",
    )

    commit_approvals: Mapped[list["CommitApproval"]] = relationship(  # noqa: F821
        "CommitApproval",
        back_populates="challenge",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Challenge id={self.id} name={self.name!r} private={self.is_private}>"
