"""
services/commit_approval_service.py — Commit submissions and their approval fan-out.

A commit is one member's self-reported completion for a target date. On
submission it fans out into one `pending` CommitApprovalEntry per member of
the challenge at that moment (the author included). The roster is read
through challenge_service; this module does not own membership.

The author's own entry is never resolved: the author may not approve or
reject their own commit, so that entry stays `pending` for good. Anything
that aggregates a commit's approval state counts the other members'
entries and ignores the author's.

Authorization rules:
  - Create: any caller (membership of the author is not re-verified)
  - List:   caller must be a member of the challenge → FORBIDDEN (403)
  - Delete: original author only → FORBIDDEN (403)
  - Resolve an entry: only the member the entry belongs to, while still a
    member, and never the commit's author → FORBIDDEN (403).
    An entry resolves once; a second attempt is APPROVAL_ALREADY_RESOLVED (409).

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from grabit.app.errors import (
    BadRequestError,
    ConflictError,
    ErrorCode,
    ForbiddenError,
    NotFoundError,
)
from grabit.app.models.commit_approval import (
    ApprovalStatus,
    CommitApproval,
    CommitApprovalEntry,
)
from grabit.app.services import challenge_service
from grabit.app.services.pagination import Page, paginate

logger = logging.getLogger(__name__)

_RESOLVED_STATUSES = (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_commit_approval_or_404(commit_approval_id: int, session: Session) -> CommitApproval:
    """Returns the CommitApproval or raises COMMIT_APPROVAL_NOT_FOUND (404)."""
    commit_approval = session.get(CommitApproval, commit_approval_id)
    if commit_approval is None:
        raise NotFoundError(
            ErrorCode.COMMIT_APPROVAL_NOT_FOUND,
            f"Commit approval {commit_approval_id} does not exist.",
        )
    return commit_approval


def _get_entry_or_404(entry_id: int, session: Session) -> CommitApprovalEntry:
    """Returns the entry, row-locked, or raises APPROVAL_ENTRY_NOT_FOUND (404)."""
    entry = session.execute(
        select(CommitApprovalEntry)
        .where(CommitApprovalEntry.id == entry_id)
        .with_for_update()
    ).scalar_one_or_none()

    if entry is None:
        raise NotFoundError(
            ErrorCode.APPROVAL_ENTRY_NOT_FOUND,
            f"Approval entry {entry_id} does not exist.",
        )
    return entry


def _parse_resolution(status: str) -> ApprovalStatus:
    try:
        parsed = ApprovalStatus(status)
    except ValueError:
        parsed = None

    if parsed not in _RESOLVED_STATUSES:
        raise BadRequestError(
            ErrorCode.INVALID_APPROVAL_STATUS,
            "status must be 'approved' or 'rejected'.",
            field="status",
        )
    return parsed


# ── Public service functions ───────────────────────────────────────────────

def create_commit_approval(
        challenge_id: int,
        target_date: date,
        content: str,
        author_id: int,
        session: Session,
) -> CommitApproval:
    """
    Records a commit and one pending entry per current member.

    The approval and all of its entries are flushed together, so they land
    in the same transaction.

    Raises NotFoundError(CHALLENGE_NOT_FOUND) if the challenge does not exist.
    """
    challenge = challenge_service.get_challenge(challenge_id, session)

    commit_approval = CommitApproval(
        challenge_id=challenge.id,
        author_user_id=author_id,
        target_date=target_date,
        content=content,
    )
    session.add(commit_approval)

    member_ids = challenge_service.list_member_ids(challenge.id, session)
    for member_id in member_ids:
        session.add(CommitApprovalEntry(
            commit_approval=commit_approval,
            challenge_id=challenge.id,
            user_id=member_id,
            status=ApprovalStatus.PENDING,
        ))

    session.flush()

    logger.info(
        "Commit approval %s for %s created by user %s with %d entries",
        commit_approval.id, target_date.isoformat(), author_id, len(member_ids),
    )
    return commit_approval


def get_commit_approval(commit_approval_id: int, session: Session) -> CommitApproval:
    return _get_commit_approval_or_404(commit_approval_id, session)


def list_commit_approvals(
        challenge_id: int,
        caller_id: int,
        page: int,
        size: int,
        session: Session,
) -> Page:
    """Commit approvals of a challenge, newest target date first. Members only."""
    challenge = challenge_service.get_challenge(challenge_id, session)
    challenge_service.require_member(challenge.id, caller_id, session)

    stmt = (
        select(CommitApproval)
        .where(CommitApproval.challenge_id == challenge.id)
        .order_by(CommitApproval.target_date.desc(), CommitApproval.id.desc())
    )
    return paginate(stmt, page, size, session)


def delete_commit_approval(commit_approval_id: int, caller_id: int, session: Session) -> None:
    """
    Deletes a commit approval and all of its entries. Author only.

    Raises:
      NotFoundError(COMMIT_APPROVAL_NOT_FOUND)
      ForbiddenError(FORBIDDEN) — caller is not the author
    """
    commit_approval = _get_commit_approval_or_404(commit_approval_id, session)

    if commit_approval.author_user_id != caller_id:
        raise ForbiddenError(
            ErrorCode.FORBIDDEN,
            "Only the author may delete a commit approval.",
        )

    session.execute(
        delete(CommitApprovalEntry)
        .where(CommitApprovalEntry.commit_approval_id == commit_approval.id)
    )
    session.execute(
        delete(CommitApproval).where(CommitApproval.id == commit_approval.id)
    )
    session.flush()

    logger.info(
        "Commit approval %s deleted by user %s", commit_approval_id, caller_id,
    )


def resolve_entry(
        entry_id: int,
        caller_id: int,
        status: str,
        session: Session,
) -> CommitApprovalEntry:
    """
    Moves an entry from pending to approved or rejected.

    Raises:
      BadRequestError(INVALID_APPROVAL_STATUS)     — status is not approved/rejected
      NotFoundError(APPROVAL_ENTRY_NOT_FOUND)
      ForbiddenError(FORBIDDEN)                    — not the entry's member, the
                                                     commit's author, or no longer
                                                     a member of the challenge
      ConflictError(APPROVAL_ALREADY_RESOLVED)     — entry is no longer pending
    """
    new_status = _parse_resolution(status)
    entry = _get_entry_or_404(entry_id, session)

    if entry.user_id != caller_id:
        raise ForbiddenError(
            ErrorCode.FORBIDDEN,
            "You may only resolve your own approval entry.",
        )

    if entry.commit_approval.author_user_id == caller_id:
        raise ForbiddenError(
            ErrorCode.FORBIDDEN,
            "The author of a commit cannot approve or reject it.",
        )

    challenge_service.require_member(entry.challenge_id, caller_id, session)

    if entry.status != ApprovalStatus.PENDING:
        raise ConflictError(
            ErrorCode.APPROVAL_ALREADY_RESOLVED,
            f"Approval entry {entry_id} is already {entry.status.value}.",
        )

    entry.status = new_status
    entry.resolved_at = datetime.now(timezone.utc)
    session.flush()

    logger.info(
        "Approval entry %s %s by user %s", entry_id, new_status.value, caller_id,
    )
    return entry
