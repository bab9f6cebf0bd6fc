"""
services/challenge_service.py — Challenge lifecycle and the join state machine.

Per (user, challenge) pair:

    NoRelation ──join (public)──────────────────────────▶ Member
    NoRelation ──request (private)──▶ Requested ──approve──▶ Member
                                      Requested ──reject───▶ NoRelation
    Member ─────leave (non-leader)──▶ NoRelation

Authorization rules:
  - Update / delete a challenge:          leader only → NOT_CHALLENGE_LEADER (401)
  - List / approve / reject join requests: leader only → FORBIDDEN (403)
  - Leave:                                 any member except the leader
                                           → LEADER_CANNOT_LEAVE (403)

Invariants enforced here:
  - The leader is always a member: the creator's membership is written in the
    same transaction as the challenge, a new leader must already be a member,
    and the leader cannot leave. Update and leave both lock the challenge
    row, so a concurrent leave cannot remove an incoming leader.
  - One membership and at most one pending join request per (user, challenge).
    Both have UNIQUE constraints in the DB; inserts run in a SAVEPOINT so a
    lost race surfaces as ALREADY_MEMBER / JOIN_REQUEST_PENDING (409).

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from grabit.app.errors import (
    BadRequestError,
    ConflictError,
    ErrorCode,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)
from grabit.app.models.challenge import Challenge
from grabit.app.models.commit_approval import CommitApproval, CommitApprovalEntry
from grabit.app.models.join_request import JoinRequest
from grabit.app.models.membership import Membership
from grabit.app.services import user_service
from grabit.app.services.pagination import Page, paginate

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_challenge_or_404(challenge_id: int, session: Session) -> Challenge:
    """Returns the Challenge or raises CHALLENGE_NOT_FOUND (404)."""
    challenge = session.get(Challenge, challenge_id)
    if challenge is None:
        raise NotFoundError(
            ErrorCode.CHALLENGE_NOT_FOUND,
            f"Challenge {challenge_id} does not exist.",
        )
    return challenge


def _get_challenge_for_update(challenge_id: int, session: Session) -> Challenge:
    """
    Returns the Challenge, row-locked for the rest of the transaction, or
    raises CHALLENGE_NOT_FOUND (404).

    Leadership changes and leaves both take this lock, so a leave waits for
    a pending leadership change and then sees the new leader_user_id.
    """
    challenge = session.execute(
        select(Challenge)
        .where(Challenge.id == challenge_id)
        .with_for_update()
    ).scalar_one_or_none()

    if challenge is None:
        raise NotFoundError(
            ErrorCode.CHALLENGE_NOT_FOUND,
            f"Challenge {challenge_id} does not exist.",
        )
    return challenge


def _get_join_request_or_404(join_request_id: int, session: Session) -> JoinRequest:
    """
    Returns the JoinRequest, row-locked for the rest of the transaction,
    or raises JOIN_REQUEST_NOT_FOUND (404).

    A second approve/reject racing on the same id blocks on the lock and
    then finds the row gone.
    """
    join_request = session.execute(
        select(JoinRequest)
        .where(JoinRequest.id == join_request_id)
        .with_for_update()
    ).scalar_one_or_none()

    if join_request is None:
        raise NotFoundError(
            ErrorCode.JOIN_REQUEST_NOT_FOUND,
            f"Join request {join_request_id} does not exist.",
        )
    return join_request


def _require_leader(challenge: Challenge, user_id: int) -> None:
    """Leader-only challenge mutation. Raises NOT_CHALLENGE_LEADER (401)."""
    if challenge.leader_user_id != user_id:
        raise UnauthorizedError(
            ErrorCode.NOT_CHALLENGE_LEADER,
            f"Only the leader of challenge {challenge.id} may change or delete it.",
        )


def _check_is_leader(challenge: Challenge, user_id: int) -> None:
    """Leader-only join-request handling. Raises FORBIDDEN (403)."""
    if challenge.leader_user_id != user_id:
        raise ForbiddenError(
            ErrorCode.FORBIDDEN,
            f"Only the leader of challenge {challenge.id} may manage join requests.",
        )


def _find_membership(challenge_id: int, user_id: int, session: Session) -> Membership | None:
    return session.execute(
        select(Membership).where(
            Membership.challenge_id == challenge_id,
            Membership.user_id == user_id,
        )
    ).scalar_one_or_none()


def _find_join_request(challenge_id: int, user_id: int, session: Session) -> JoinRequest | None:
    return session.execute(
        select(JoinRequest).where(
            JoinRequest.challenge_id == challenge_id,
            JoinRequest.user_id == user_id,
        )
    ).scalar_one_or_none()


def _join(challenge: Challenge, user_id: int, session: Session) -> Membership:
    """
    Creates the Membership and appends it to the challenge roster.

    Raises ALREADY_MEMBER (409) when the unique constraint rejects the insert
    because a concurrent join for the same pair committed first. Any other
    integrity failure propagates unchanged.
    """
    try:
        with session.begin_nested():
            membership = Membership(user_id=user_id, challenge=challenge)
            session.add(membership)
    except IntegrityError:
        if _find_membership(challenge.id, user_id, session) is None:
            raise
        raise ConflictError(
            ErrorCode.ALREADY_MEMBER,
            f"User {user_id} is already a member of challenge {challenge.id}.",
        ) from None

    logger.info("User %s joined challenge %s", user_id, challenge.id)
    return membership


def _create_join_request(challenge: Challenge, user_id: int, session: Session) -> JoinRequest:
    """
    Records a pending request to join a private challenge.

    Raises JOIN_REQUEST_PENDING (409) if the user already has one, whether
    found up front or reported by the unique constraint.
    """
    conflict = ConflictError(
        ErrorCode.JOIN_REQUEST_PENDING,
        f"User {user_id} already has a pending request for challenge {challenge.id}.",
    )

    if _find_join_request(challenge.id, user_id, session) is not None:
        raise conflict

    try:
        with session.begin_nested():
            join_request = JoinRequest(user_id=user_id, challenge=challenge)
            session.add(join_request)
    except IntegrityError:
        if _find_join_request(challenge.id, user_id, session) is None:
            raise
        raise conflict from None

    logger.info("User %s requested to join challenge %s", user_id, challenge.id)
    return join_request


def _like_pattern(value: str) -> str:
    """Substring pattern with LIKE wildcards in `value` escaped."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )
    return f"%{escaped}%"


# ── Membership queries used by other workflows ─────────────────────────────

def is_member(challenge_id: int, user_id: int, session: Session) -> bool:
    return _find_membership(challenge_id, user_id, session) is not None


def require_member(challenge_id: int, user_id: int, session: Session) -> None:
    """Raises FORBIDDEN (403) if user_id is not a member of challenge_id."""
    if not is_member(challenge_id, user_id, session):
        raise ForbiddenError(
            ErrorCode.FORBIDDEN,
            f"You are not a member of challenge {challenge_id}.",
        )


def list_member_ids(challenge_id: int, session: Session) -> list[int]:
    """Current roster as user ids, in join order."""
    stmt = (
        select(Membership.user_id)
        .where(Membership.challenge_id == challenge_id)
        .order_by(Membership.id.asc())
    )
    return list(session.execute(stmt).scalars().all())


# ── Public service functions ───────────────────────────────────────────────

def create_challenge(
        name: str,
        description: str,
        is_private: bool,
        creator_id: int,
        session: Session,
) -> Challenge:
    """
    Creates a challenge. The creator becomes its leader and first member
    in the same transaction.
    """
    challenge = Challenge(
        name=name,
        description=description,
        is_private=is_private,
        leader_user_id=creator_id,
    )
    session.add(challenge)
    session.flush()  # populate challenge.id before creating membership

    membership = Membership(user_id=creator_id, challenge=challenge)
    session.add(membership)
    session.flush()

    logger.info(
        "Challenge %s created by user %s (private=%s)",
        challenge.id, creator_id, is_private,
    )
    return challenge


def get_challenge(challenge_id: int, session: Session) -> Challenge:
    """Returns the challenge with its roster, or raises CHALLENGE_NOT_FOUND (404)."""
    return _get_challenge_or_404(challenge_id, session)


def list_my_challenges(user_id: int, session: Session) -> list[Challenge]:
    """Returns every challenge the user belongs to, in the order they joined."""
    stmt = (
        select(Challenge)
        .join(Membership, Challenge.id == Membership.challenge_id)
        .where(Membership.user_id == user_id)
        .order_by(Membership.id.asc())
    )
    return list(session.execute(stmt).scalars().all())


def update_challenge(
        challenge_id: int,
        caller_id: int,
        data: dict,
        session: Session,
) -> Challenge:
    """
    Replaces the mutable fields and the leader of a challenge.

    `data` keys: name (optional), description (optional),
    leader_user_id (required).

    Raises:
      NotFoundError(CHALLENGE_NOT_FOUND)        — challenge does not exist
      UnauthorizedError(NOT_CHALLENGE_LEADER)   — caller is not the leader
      NotFoundError(USER_NOT_FOUND)             — new leader does not exist
      BadRequestError(LEADER_NOT_MEMBER)        — new leader is not a member
    """
    challenge = _get_challenge_for_update(challenge_id, session)
    _require_leader(challenge, caller_id)

    new_leader = user_service.get_user_or_404(data["leader_user_id"], session)
    if not is_member(challenge.id, new_leader.id, session):
        raise BadRequestError(
            ErrorCode.LEADER_NOT_MEMBER,
            f"User {new_leader.id} must join challenge {challenge.id} "
            "before becoming its leader.",
            field="leader_user_id",
        )

    if "name" in data:
        challenge.name = data["name"]
    if "description" in data:
        challenge.description = data["description"]

    if challenge.leader_user_id != new_leader.id:
        logger.info(
            "Challenge %s leadership moved from user %s to user %s",
            challenge.id, challenge.leader_user_id, new_leader.id,
        )
    challenge.leader_user_id = new_leader.id

    session.flush()
    return challenge


def delete_challenge(challenge_id: int, caller_id: int, session: Session) -> None:
    """
    Deletes a challenge and everything it owns.

    Children go first because every FK is ON DELETE RESTRICT:
    approval entries → commit approvals → join requests → memberships → challenge.
    """
    challenge = _get_challenge_or_404(challenge_id, session)
    _require_leader(challenge, caller_id)

    session.execute(
        delete(CommitApprovalEntry).where(CommitApprovalEntry.challenge_id == challenge.id)
    )
    session.execute(
        delete(CommitApproval).where(CommitApproval.challenge_id == challenge.id)
    )
    session.execute(
        delete(JoinRequest).where(JoinRequest.challenge_id == challenge.id)
    )
    session.execute(
        delete(Membership).where(Membership.challenge_id == challenge.id)
    )
    session.execute(
        delete(Challenge).where(Challenge.id == challenge.id)
    )
    session.flush()

    logger.info("Challenge %s deleted by user %s", challenge_id, caller_id)


def search_challenges(
        title: str | None,
        description: str | None,
        leader_id: int | None,
        page: int,
        size: int,
        session: Session,
) -> Page:
    """
    Finds challenges by any combination of filters (AND-ed).

    title / description: case-insensitive substring match.
    leader_id:           exact match on the leader's user id.

    Raises BadRequestError(SEARCH_FILTER_REQUIRED) when no filter is given.
    """
    if title is None and description is None and leader_id is None:
        raise BadRequestError(
            ErrorCode.SEARCH_FILTER_REQUIRED,
            "Provide at least one of title, description or leader_id.",
        )

    stmt = select(Challenge)
    if title is not None:
        stmt = stmt.where(Challenge.name.ilike(_like_pattern(title), escape="\\"))
    if description is not None:
        stmt = stmt.where(
            Challenge.description.ilike(_like_pattern(description), escape="\\")
        )
    if leader_id is not None:
        stmt = stmt.where(Challenge.leader_user_id == leader_id)

    stmt = stmt.order_by(Challenge.created_at.desc(), Challenge.id.desc())
    return paginate(stmt, page, size, session)


def request_join(challenge_id: int, user_id: int, session: Session) -> Challenge:
    """
    Public challenge: the user becomes a member immediately.
    Private challenge: a pending JoinRequest is recorded; no membership yet.

    Raises:
      NotFoundError(CHALLENGE_NOT_FOUND)
      ConflictError(ALREADY_MEMBER)        — membership already exists
      ConflictError(JOIN_REQUEST_PENDING)  — private, request already pending
    """
    challenge = _get_challenge_or_404(challenge_id, session)

    if _find_membership(challenge.id, user_id, session) is not None:
        raise ConflictError(
            ErrorCode.ALREADY_MEMBER,
            f"User {user_id} is already a member of challenge {challenge.id}.",
        )

    if challenge.is_private:
        _create_join_request(challenge, user_id, session)
    else:
        _join(challenge, user_id, session)

    return challenge


def approve_join_request(join_request_id: int, caller_id: int, session: Session) -> Challenge:
    """
    Consumes a pending request and makes the requester a member. Leader only.

    Raises:
      NotFoundError(JOIN_REQUEST_NOT_FOUND) — also for an already-resolved id
      ForbiddenError(FORBIDDEN)             — caller is not the leader
    """
    join_request = _get_join_request_or_404(join_request_id, session)
    challenge = join_request.challenge
    _check_is_leader(challenge, caller_id)

    requester_id = join_request.user_id
    session.delete(join_request)
    session.flush()

    _join(challenge, requester_id, session)
    logger.info(
        "Join request %s approved by user %s", join_request_id, caller_id,
    )
    return challenge


def reject_join_request(join_request_id: int, caller_id: int, session: Session) -> None:
    """Discards a pending request without creating a membership. Leader only."""
    join_request = _get_join_request_or_404(join_request_id, session)
    _check_is_leader(join_request.challenge, caller_id)

    session.delete(join_request)
    session.flush()

    logger.info(
        "Join request %s rejected by user %s", join_request_id, caller_id,
    )


def leave_challenge(challenge_id: int, user_id: int, session: Session) -> None:
    """
    Removes the caller's membership. Idempotent for non-members.

    The leader cannot leave (LEADER_CANNOT_LEAVE, 403): leadership has to be
    handed to another member first, or the challenge deleted.
    """
    challenge = _get_challenge_for_update(challenge_id, session)

    if challenge.leader_user_id == user_id:
        raise ForbiddenError(
            ErrorCode.LEADER_CANNOT_LEAVE,
            f"The leader cannot leave challenge {challenge.id}. "
            "Transfer leadership or delete the challenge instead.",
        )

    membership = _find_membership(challenge.id, user_id, session)
    if membership is None:
        return

    session.delete(membership)
    session.flush()

    logger.info("User %s left challenge %s", user_id, challenge.id)


def list_join_requests(
        challenge_id: int,
        caller_id: int,
        page: int,
        size: int,
        session: Session,
) -> Page:
    """Pending join requests for a challenge, oldest first. Leader only."""
    challenge = _get_challenge_or_404(challenge_id, session)
    _check_is_leader(challenge, caller_id)

    stmt = (
        select(JoinRequest)
        .where(JoinRequest.challenge_id == challenge.id)
        .order_by(JoinRequest.id.asc())
    )
    return paginate(stmt, page, size, session)
