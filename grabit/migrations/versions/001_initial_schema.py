"""Initial schema — users, challenges, memberships, join requests, commit approvals.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order:
  1. PostgreSQL enum type for approval entry status
  2. Tables in FK dependency order (users → challenges → memberships,
     join_requests → commit_approvals → commit_approval_entries)
  3. Indexes

ON DELETE policy: every FK is RESTRICT. Challenge and commit-approval
deletion remove children explicitly in the service layer.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration — no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


_approval_status = postgresql.ENUM(
    "pending", "approved", "rejected",
    name="approval_status_enum",
    create_type=False,
)


def upgrade() -> None:

    # ── Step 1: enum type ─────────────────────────────────────────────────
    op.execute("""
        CREATE TYPE approval_status_enum AS ENUM ('pending', 'approved', 'rejected')
    """)

    # ── Step 2: users ──────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.CheckConstraint(
            "LENGTH(TRIM(username)) > 0",
            name="ck_users_username_nonempty",
        ),
    )

    # ── Step 3: challenges ─────────────────────────────────────────────────
    op.create_table(
        "challenges",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "leader_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_challenges_leader"),
            nullable=False,
        ),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_challenges"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_challenges_name_nonempty",
        ),
    )

    # ── Step 4: memberships ────────────────────────────────────────────────
    # UNIQUE(user_id, challenge_id) — duplicate joins fail at the store.
    op.create_table(
        "memberships",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_memberships_user"),
            nullable=False,
        ),
        sa.Column(
            "challenge_id",
            sa.Integer(),
            sa.ForeignKey("challenges.id", ondelete="RESTRICT", name="fk_memberships_challenge"),
            nullable=False,
        ),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_memberships"),
        sa.UniqueConstraint("user_id", "challenge_id", name="uq_memberships_user_challenge"),
    )

    # ── Step 5: join_requests ──────────────────────────────────────────────
    op.create_table(
        "join_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_join_requests_user"),
            nullable=False,
        ),
        sa.Column(
            "challenge_id",
            sa.Integer(),
            sa.ForeignKey("challenges.id", ondelete="RESTRICT", name="fk_join_requests_challenge"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_join_requests"),
        sa.UniqueConstraint("user_id", "challenge_id", name="uq_join_requests_user_challenge"),
    )

    # ── Step 6: commit_approvals ───────────────────────────────────────────
    op.create_table(
        "commit_approvals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "challenge_id",
            sa.Integer(),
            sa.ForeignKey("challenges.id", ondelete="RESTRICT", name="fk_commit_approvals_challenge"),
            nullable=False,
        ),
        sa.Column(
            "author_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_commit_approvals_author"),
            nullable=False,
        ),
        sa.Column("target_date", sa.Date(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commit_approvals"),
    )

    # ── Step 7: commit_approval_entries ────────────────────────────────────
    op.create_table(
        "commit_approval_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "commit_approval_id",
            sa.Integer(),
            sa.ForeignKey(
                "commit_approvals.id",
                ondelete="RESTRICT",
                name="fk_commit_approval_entries_commit_approval",
            ),
            nullable=False,
        ),
        sa.Column(
            "challenge_id",
            sa.Integer(),
            sa.ForeignKey(
                "challenges.id",
                ondelete="RESTRICT",
                name="fk_commit_approval_entries_challenge",
            ),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_commit_approval_entries_user"),
            nullable=False,
        ),
        sa.Column(
            "status",
            _approval_status,
            nullable=False,
            server_default="pending",
        ),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_commit_approval_entries"),
        sa.UniqueConstraint(
            "commit_approval_id",
            "user_id",
            name="uq_commit_approval_entries_approval_user",
        ),
    )

    # ── Step 8: indexes (names match the models' index=True defaults) ──────
    op.create_index("ix_challenges_leader_user_id", "challenges", ["leader_user_id"])
    op.create_index("ix_memberships_user_id", "memberships", ["user_id"])
    op.create_index("ix_memberships_challenge_id", "memberships", ["challenge_id"])
    op.create_index("ix_join_requests_user_id", "join_requests", ["user_id"])
    op.create_index("ix_join_requests_challenge_id", "join_requests", ["challenge_id"])
    op.create_index("ix_commit_approvals_challenge_id", "commit_approvals", ["challenge_id"])
    op.create_index("ix_commit_approvals_author_user_id", "commit_approvals", ["author_user_id"])
    op.create_index(
        "ix_commit_approval_entries_commit_approval_id",
        "commit_approval_entries",
        ["commit_approval_id"],
    )
    op.create_index(
        "ix_commit_approval_entries_challenge_id",
        "commit_approval_entries",
        ["challenge_id"],
    )
    op.create_index(
        "ix_commit_approval_entries_user_id",
        "commit_approval_entries",
        ["user_id"],
    )


def downgrade() -> None:
    """Reverse of upgrade(), children first."""
    op.drop_index("ix_commit_approval_entries_user_id", table_name="commit_approval_entries")
    op.drop_index("ix_commit_approval_entries_challenge_id", table_name="commit_approval_entries")
    op.drop_index(
        "ix_commit_approval_entries_commit_approval_id",
        table_name="commit_approval_entries",
    )
    op.drop_index("ix_commit_approvals_author_user_id", table_name="commit_approvals")
    op.drop_index("ix_commit_approvals_challenge_id", table_name="commit_approvals")
    op.drop_index("ix_join_requests_challenge_id", table_name="join_requests")
    op.drop_index("ix_join_requests_user_id", table_name="join_requests")
    op.drop_index("ix_memberships_challenge_id", table_name="memberships")
    op.drop_index("ix_memberships_user_id", table_name="memberships")
    op.drop_index("ix_challenges_leader_user_id", table_name="challenges")

    op.drop_table("commit_approval_entries")
    op.drop_table("commit_approvals")
    op.drop_table("join_requests")
    op.drop_table("memberships")
    op.drop_table("challenges")
    op.drop_table("users")

    op.execute("DROP TYPE approval_status_enum")
