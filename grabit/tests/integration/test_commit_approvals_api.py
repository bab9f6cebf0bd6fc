"""
tests/integration/test_commit_approvals_api.py — Commit approvals and entries.

Endpoints covered:
  POST   /commit-approvals                 → 201  fan-out to current members
  GET    /commit-approvals/:id             → 200
  DELETE /commit-approvals/:id             → 200  author only
  POST   /commit-approval-entries/:id      → 200  resolve own entry
  GET    /challenges/:id/commit-approvals  → 200  members only

Error cases:
  COMMIT_APPROVAL_NOT_FOUND / APPROVAL_ENTRY_NOT_FOUND / CHALLENGE_NOT_FOUND  404
  FORBIDDEN                   403
  APPROVAL_ALREADY_RESOLVED   409
  INVALID_FIELD               400
"""

from __future__ import annotations

from sqlalchemy import func, select

from grabit.app.extensions import db
from grabit.app.models.challenge import Challenge
from grabit.app.models.commit_approval import CommitApproval, CommitApprovalEntry
from grabit.app.models.join_request import JoinRequest
from grabit.app.models.membership import Membership

from .conftest import auth_headers, join, make_actor, make_challenge, make_commit


def _count(app, model) -> int:
    with app.app_context():
        return db.session.execute(select(func.count()).select_from(model)).scalar_one()


def _setup_three_members(app, client):
    """Alice leads a public challenge that Bob and Carol have joined."""
    alice_id, alice = make_actor(app, "alice")
    bob_id, bob = make_actor(app, "bob")
    carol_id, carol = make_actor(app, "carol")
    challenge = make_challenge(client, alice)
    join(client, bob, challenge["id"])
    join(client, carol, challenge["id"])
    return challenge, {
        "alice": (alice_id, alice),
        "bob": (bob_id, bob),
        "carol": (carol_id, carol),
    }


def _entry_for(commit: dict, user_id: int) -> dict:
    return next(e for e in commit["entries"] if e["user_id"] == user_id)


def _resolve(client, token, entry_id, status):
    return client.post(
        f"/api/v1/commit-approval-entries/{entry_id}",
        json={"status": status},
        headers=auth_headers(token),
    )


# ═══════════════════════════════════════════════════════════════════════════
# POST /commit-approvals
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateCommitApproval:

    def test_fans_out_one_pending_entry_per_member(self, app, client):
        challenge, actors = _setup_three_members(app, client)
        _, alice = actors["alice"]

        resp = make_commit(client, alice, challenge["id"], target_date="2024-01-01")

        assert resp.status_code == 201
        commit = resp.get_json()["data"]
        assert commit["target_date"] == "2024-01-01"
        assert commit["author"]["username"] == "alice"
        assert len(commit["entries"]) == 3
        assert {e["user_id"] for e in commit["entries"]} == {
            user_id for user_id, _ in actors.values()
        }
        assert all(e["status"] == "pending" for e in commit["entries"])
        assert all(e["resolved_at"] is None for e in commit["entries"])

    def test_roster_is_snapshotted_at_creation(self, app, client):
        challenge, actors = _setup_three_members(app, client)
        _, alice = actors["alice"]
        _, dave = make_actor(app, "dave")

        commit = make_commit(client, alice, challenge["id"]).get_json()["data"]
        join(client, dave, challenge["id"])

        resp = client.get(
            f"/api/v1/commit-approvals/{commit['id']}", headers=auth_headers(alice),
        )
        assert len(resp.get_json()["data"]["entries"]) == 3

    def test_unknown_challenge_returns_404(self, app, client):
        _, alice = make_actor(app, "alice")

        resp = make_commit(client, alice, 999999)

        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "CHALLENGE_NOT_FOUND"
        assert _count(app, CommitApproval) == 0

    def test_bad_date_returns_400(self, app, client):
        _, alice = make_actor(app, "alice")
        challenge = make_challenge(client, alice)

        resp = make_commit(client, alice, challenge["id"], target_date="yesterday")

        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "target_date"

    def test_requires_token(self, client):
        resp = client.post("/api/v1/commit-approvals", json={})
        assert resp.status_code == 401


# ═══════════════════════════════════════════════════════════════════════════
# GET /commit-approvals/:id, GET /challenges/:id/commit-approvals
# ═══════════════════════════════════════════════════════════════════════════

class TestReadCommitApprovals:

    def test_get_unknown_returns_404(self, app, client):
        _, alice = make_actor(app, "alice")
        resp = client.get("/api/v1/commit-approvals/999999", headers=auth_headers(alice))
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "COMMIT_APPROVAL_NOT_FOUND"

    def test_members_list_newest_target_date_first(self, app, client):
        challenge, actors = _setup_three_members(app, client)
        _, alice = actors["alice"]
        _, bob = actors["bob"]
        make_commit(client, alice, challenge["id"], target_date="2024-01-01")
        make_commit(client, bob, challenge["id"], target_date="2024-01-03")
        make_commit(client, alice, challenge["id"], target_date="2024-01-02")

        resp = client.get(
            f"/api/v1/challenges/{challenge['id']}/commit-approvals",
            headers=auth_headers(bob),
        )

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["total"] == 3
        assert [c["target_date"] for c in data["items"]] == [
            "2024-01-03", "2024-01-02", "2024-01-01",
        ]

    def test_non_member_cannot_list(self, app, client):
        challenge, _ = _setup_three_members(app, client)
        _, eve = make_actor(app, "eve")

        resp = client.get(
            f"/api/v1/challenges/{challenge['id']}/commit-approvals",
            headers=auth_headers(eve),
        )

        assert resp.status_code == 403


# ═══════════════════════════════════════════════════════════════════════════
# DELETE /commit-approvals/:id
# ═══════════════════════════════════════════════════════════════════════════

class TestDeleteCommitApproval:

    def test_author_deletes_commit_and_entries(self, app, client):
        challenge, actors = _setup_three_members(app, client)
        _, alice = actors["alice"]
        commit = make_commit(client, alice, challenge["id"]).get_json()["data"]

        resp = client.delete(
            f"/api/v1/commit-approvals/{commit['id']}", headers=auth_headers(alice),
        )

        assert resp.status_code == 200
        assert resp.get_json()["data"] == {"deleted": True, "commit_approval_id": commit["id"]}
        assert _count(app, CommitApproval) == 0
        assert _count(app, CommitApprovalEntry) == 0

    def test_non_author_returns_403(self, app, client):
        challenge, actors = _setup_three_members(app, client)
        _, alice = actors["alice"]
        _, bob = actors["bob"]
        commit = make_commit(client, alice, challenge["id"]).get_json()["data"]

        resp = client.delete(
            f"/api/v1/commit-approvals/{commit['id']}", headers=auth_headers(bob),
        )

        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"
        assert _count(app, CommitApprovalEntry) == 3

    def test_unknown_returns_404(self, app, client):
        _, alice = make_actor(app, "alice")
        resp = client.delete("/api/v1/commit-approvals/999999", headers=auth_headers(alice))
        assert resp.status_code == 404


# ═══════════════════════════════════════════════════════════════════════════
# POST /commit-approval-entries/:id
# ═══════════════════════════════════════════════════════════════════════════

class TestResolveEntry:

    def test_member_approves_own_entry(self, app, client):
        challenge, actors = _setup_three_members(app, client)
        _, alice = actors["alice"]
        bob_id, bob = actors["bob"]
        commit = make_commit(client, alice, challenge["id"]).get_json()["data"]
        entry = _entry_for(commit, bob_id)

        resp = _resolve(client, bob, entry["id"], "approved")

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["status"] == "approved"
        assert data["resolved_at"] is not None

        refreshed = client.get(
            f"/api/v1/commit-approvals/{commit['id']}", headers=auth_headers(alice),
        ).get_json()["data"]
        statuses = {e["user_id"]: e["status"] for e in refreshed["entries"]}
        assert statuses[bob_id] == "approved"
        assert sorted(statuses.values()) == ["approved", "pending", "pending"]

    def test_member_rejects_own_entry(self, app, client):
        challenge, actors = _setup_three_members(app, client)
        _, alice = actors["alice"]
        carol_id, carol = actors["carol"]
        commit = make_commit(client, alice, challenge["id"]).get_json()["data"]

        resp = _resolve(client, carol, _entry_for(commit, carol_id)["id"], "rejected")

        assert resp.status_code == 200
        assert resp.get_json()["data"]["status"] == "rejected"

    def test_cannot_resolve_twice(self, app, client):
        challenge, actors = _setup_three_members(app, client)
        _, alice = actors["alice"]
        bob_id, bob = actors["bob"]
        commit = make_commit(client, alice, challenge["id"]).get_json()["data"]
        entry_id = _entry_for(commit, bob_id)["id"]
        _resolve(client, bob, entry_id, "approved")

        resp = _resolve(client, bob, entry_id, "rejected")

        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "APPROVAL_ALREADY_RESOLVED"

    def test_cannot_resolve_someone_elses_entry(self, app, client):
        challenge, actors = _setup_three_members(app, client)
        _, alice = actors["alice"]
        bob_id, _ = actors["bob"]
        _, carol = actors["carol"]
        commit = make_commit(client, alice, challenge["id"]).get_json()["data"]

        resp = _resolve(client, carol, _entry_for(commit, bob_id)["id"], "approved")

        assert resp.status_code == 403

    def test_author_cannot_resolve_own_commit(self, app, client):
        challenge, actors = _setup_three_members(app, client)
        alice_id, alice = actors["alice"]
        commit = make_commit(client, alice, challenge["id"]).get_json()["data"]

        resp = _resolve(client, alice, _entry_for(commit, alice_id)["id"], "approved")

        assert resp.status_code == 403

    def test_author_entry_stays_pending_after_others_resolve(self, app, client):
        challenge, actors = _setup_three_members(app, client)
        alice_id, alice = actors["alice"]
        bob_id, bob = actors["bob"]
        carol_id, carol = actors["carol"]
        commit = make_commit(client, alice, challenge["id"]).get_json()["data"]
        _resolve(client, bob, _entry_for(commit, bob_id)["id"], "approved")
        _resolve(client, carol, _entry_for(commit, carol_id)["id"], "approved")

        refreshed = client.get(
            f"/api/v1/commit-approvals/{commit['id']}", headers=auth_headers(alice),
        ).get_json()["data"]
        statuses = {e["user_id"]: e["status"] for e in refreshed["entries"]}
        assert statuses == {alice_id: "pending", bob_id: "approved", carol_id: "approved"}
        assert _resolve(client, alice, _entry_for(commit, alice_id)["id"], "rejected").status_code == 403

    def test_former_member_cannot_resolve(self, app, client):
        challenge, actors = _setup_three_members(app, client)
        _, alice = actors["alice"]
        bob_id, bob = actors["bob"]
        commit = make_commit(client, alice, challenge["id"]).get_json()["data"]
        client.post(f"/api/v1/challenges/{challenge['id']}/leave", headers=auth_headers(bob))

        resp = _resolve(client, bob, _entry_for(commit, bob_id)["id"], "approved")

        assert resp.status_code == 403

    def test_pending_is_not_a_resolution(self, app, client):
        challenge, actors = _setup_three_members(app, client)
        _, alice = actors["alice"]
        bob_id, bob = actors["bob"]
        commit = make_commit(client, alice, challenge["id"]).get_json()["data"]

        resp = _resolve(client, bob, _entry_for(commit, bob_id)["id"], "pending")

        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "status"

    def test_unknown_entry_returns_404(self, app, client):
        _, alice = make_actor(app, "alice")
        resp = _resolve(client, alice, 999999, "approved")
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "APPROVAL_ENTRY_NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════════════
# Cascade on challenge deletion
# ═══════════════════════════════════════════════════════════════════════════

class TestChallengeDeletionCascade:

    def test_deleting_challenge_leaves_no_orphans(self, app, client):
        challenge, actors = _setup_three_members(app, client)
        _, alice = actors["alice"]
        _, bob = actors["bob"]
        make_commit(client, alice, challenge["id"], target_date="2024-01-01")
        make_commit(client, bob, challenge["id"], target_date="2024-01-02")
        private = make_challenge(client, alice, name="Secret", is_private=True)
        join(client, bob, private["id"])

        for challenge_id in (challenge["id"], private["id"]):
            resp = client.delete(
                f"/api/v1/challenges/{challenge_id}", headers=auth_headers(alice),
            )
            assert resp.status_code == 200

        assert _count(app, CommitApproval) == 0
        assert _count(app, CommitApprovalEntry) == 0
        assert _count(app, JoinRequest) == 0
        assert _count(app, Membership) == 0
        assert _count(app, Challenge) == 0
