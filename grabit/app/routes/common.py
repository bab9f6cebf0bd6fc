"""
routes/common.py — Serialization and paging helpers shared by the blueprints.

Pure data-shaping — no DB writes, no business logic. ORM objects in,
plain dicts out. Dates and timestamps are ISO 8601 strings.
"""

from __future__ import annotations

from typing import Callable

from flask import current_app

from grabit.app.models.challenge import Challenge
from grabit.app.models.commit_approval import CommitApproval, CommitApprovalEntry
from grabit.app.models.join_request import JoinRequest
from grabit.app.models.user import User
from grabit.app.services.pagination import Page


def _iso(value) -> str | None:
    return value.isoformat() if value is not None else None


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
    }


def serialize_challenge(challenge: Challenge, include_members: bool = True) -> dict:
    """Challenge with its leader and, by default, the roster in join order."""
    result = {
        "id": challenge.id,
        "name": challenge.name,
        "description": challenge.description,
        "is_private": challenge.is_private,
        "leader": serialize_user(challenge.leader),
        "created_at": _iso(challenge.created_at),
    }
    if include_members:
        result["members"] = [
            {
                "id": m.user_id,
                "username": m.user.username,
                "joined_at": _iso(m.joined_at),
            }
            for m in challenge.memberships
        ]
    return result


def serialize_join_request(join_request: JoinRequest) -> dict:
    return {
        "id": join_request.id,
        "challenge_id": join_request.challenge_id,
        "user": serialize_user(join_request.user),
        "created_at": _iso(join_request.created_at),
    }


def serialize_entry(entry: CommitApprovalEntry) -> dict:
    return {
        "id": entry.id,
        "commit_approval_id": entry.commit_approval_id,
        "challenge_id": entry.challenge_id,
        "user_id": entry.user_id,
        "status": entry.status.value,
        "resolved_at": _iso(entry.resolved_at),
    }


def serialize_commit_approval(commit_approval: CommitApproval) -> dict:
    return {
        "id": commit_approval.id,
        "challenge_id": commit_approval.challenge_id,
        "author": serialize_user(commit_approval.author),
        "target_date": commit_approval.target_date.isoformat(),
        "content": commit_approval.content,
        "created_at": _iso(commit_approval.created_at),
        "entries": [serialize_entry(e) for e in commit_approval.entries],
    }


def serialize_page(page: Page, serialize_item: Callable) -> dict:
    return {
        "items": [serialize_item(item) for item in page.items],
        "page": page.page,
        "size": page.size,
        "total": page.total,
        "total_pages": page.total_pages,
    }


def page_size(requested: int | None) -> int:
    """Applies the configured default and ceiling to a requested page size."""
    if requested is None:
        return current_app.config["DEFAULT_PAGE_SIZE"]
    return min(requested, current_app.config["MAX_PAGE_SIZE"])
