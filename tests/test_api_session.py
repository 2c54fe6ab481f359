"""
Endpoint tests for the onboarding session.

    POST  /api/v1/session   create / resume / restart
    PUT   /api/v1/session   bind question, complete
    PATCH /api/v1/session   submit and complete

Time travel is done by rewinding ``start_time`` on the stored row.
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from onboarding.models import db
from onboarding.models.onboarding_session import OnboardingSession
from onboarding.models.submission import Submission
from onboarding.models.team import TeamCode
from onboarding.services import session_service
from onboarding.utils.helpers import utcnow

BASE = "/api/v1/session"
BUDGET_MS = 12 * 60 * 60 * 1000


# ═════════════════════════════════════════════════════════════════════════════
# ORM Helper Factories
# ═════════════════════════════════════════════════════════════════════════════


def _team_code(code="abc123xyz") -> TeamCode:
    tc = TeamCode(code=code, is_registered=True)
    db.session.add(tc)
    db.session.commit()
    return tc


def _stored_session(code="abc123xyz") -> OnboardingSession:
    return db.session.execute(
        select(OnboardingSession).where(OnboardingSession.team_code == code)
    ).scalar_one()


def _rewind(code="abc123xyz", hours=13):
    """Move the session clock back as if ``hours`` had passed."""
    s = _stored_session(code)
    s.start_time = utcnow() - timedelta(hours=hours)
    db.session.commit()


def _count(model) -> int:
    return db.session.execute(select(func.count()).select_from(model)).scalar()


@pytest.fixture()
def code():
    return _team_code().code


# ═════════════════════════════════════════════════════════════════════════════
# POST /session
# ═════════════════════════════════════════════════════════════════════════════


class TestStartSession:
    def test_create_without_question_type(self, client, code):
        res = client.post(BASE, json={"teamCode": code})
        assert res.status_code == 200
        session = res.get_json()["session"]
        assert session["startTime"] is None
        assert session["questionType"] is None
        assert session["status"] == "pending_question"
        assert session["remainingTimeMs"] == BUDGET_MS

    def test_create_with_question_type_starts_clock(self, client, code):
        session = client.post(BASE, json={"teamCode": code, "questionType": 2}).get_json()["session"]
        assert session["questionType"] == 2
        assert session["startTime"] is not None
        assert session["status"] == "active"
        assert 0 < session["remainingTimeMs"] <= BUDGET_MS

    def test_resume_returns_same_row(self, client, code):
        first = client.post(BASE, json={"teamCode": code, "questionType": 1}).get_json()["session"]
        second = client.post(BASE, json={"teamCode": code}).get_json()["session"]
        assert second["id"] == first["id"]
        assert second["startTime"] == first["startTime"]
        assert second["remainingTimeMs"] <= first["remainingTimeMs"]
        assert _count(OnboardingSession) == 1

    def test_resume_ignores_question_type(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 1})
        session = client.post(BASE, json={"teamCode": code, "questionType": 2}).get_json()["session"]
        assert session["questionType"] == 1

    def test_code_is_normalised(self, client, code):
        res = client.post(BASE, json={"teamCode": "  ABC123XYZ  "})
        assert res.status_code == 200
        assert res.get_json()["session"]["teamCode"] == "abc123xyz"

    def test_unknown_code(self, client):
        res = client.post(BASE, json={"teamCode": "nosuchone"})
        assert res.status_code == 404
        data = res.get_json()
        assert data["code"] == "ERR_NOT_FOUND"
        assert data["error"] == "Invalid or unregistered team code"

    def test_missing_team_code(self, client):
        res = client.post(BASE, json={"questionType": 1})
        assert res.status_code == 400
        assert "teamCode" in res.get_json()["details"]

    @pytest.mark.parametrize("question_type", [3, -1, "two", True])
    def test_invalid_question_type(self, client, code, question_type):
        res = client.post(BASE, json={"teamCode": code, "questionType": question_type})
        assert res.status_code == 400
        assert "questionType" in res.get_json()["details"]

    def test_completed_session_conflicts(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 0})
        client.put(BASE, json={"teamCode": code, "isCompleted": True})
        res = client.post(BASE, json={"teamCode": code})
        assert res.status_code == 409
        data = res.get_json()
        assert data["code"] == "ERR_CONFLICT_STATE"
        assert data["error"] == "Your team has already completed the onboarding"

    def test_force_restart(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 1})
        session = client.post(BASE, json={"teamCode": code, "forceRestart": True}).get_json()["session"]
        assert session["startTime"] is None
        assert session["status"] == "pending_question"
        assert _count(OnboardingSession) == 1

    def test_force_restart_replaces_completed(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 1})
        client.put(BASE, json={"teamCode": code, "isCompleted": True})
        res = client.post(BASE, json={"teamCode": code, "forceRestart": True})
        assert res.status_code == 200
        session = res.get_json()["session"]
        assert session["status"] == "pending_question"
        assert session["isCompleted"] is False
        assert session["startTime"] is None
        assert _count(OnboardingSession) == 1

    def test_stale_completed_session_is_replaced(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 1})
        client.put(BASE, json={"teamCode": code, "isCompleted": True})
        _rewind(hours=13)
        res = client.post(BASE, json={"teamCode": code})
        assert res.status_code == 200
        session = res.get_json()["session"]
        assert session["status"] == "pending_question"
        assert session["isCompleted"] is False
        assert session["endTime"] is None
        assert _count(OnboardingSession) == 1

    def test_restart_keeps_stored_submission(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 1})
        client.patch(BASE, json={"teamCode": code, "submission": {"explanation": "first", "files": []}})
        assert client.post(BASE, json={"teamCode": code, "forceRestart": True}).status_code == 200
        res = client.post("/api/v1/submission", json={"teamCode": code, "questionType": 1})
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"
        assert _count(Submission) == 1


class TestSessionCreateRace:
    """The unique team_code key decides a concurrent create; the loser re-reads the winner."""

    @pytest.fixture()
    def lose_lookup(self, monkeypatch):
        real = session_service._find_session
        calls = []

        def first_miss(team_code):
            calls.append(team_code)
            return None if len(calls) == 1 else real(team_code)

        monkeypatch.setattr(session_service, "_find_session", first_miss)
        return calls

    def test_loser_returns_winner_row(self, client, code, lose_lookup):
        winner = OnboardingSession(team_code=code, is_completed=False)
        db.session.add(winner)
        db.session.commit()
        winner_id = winner.id

        res = client.post(BASE, json={"teamCode": code, "questionType": 2})
        assert res.status_code == 200
        session = res.get_json()["session"]
        assert session["id"] == winner_id
        assert session["status"] == "pending_question"
        assert len(lose_lookup) == 2
        assert _count(OnboardingSession) == 1

    def test_loser_sees_completed_winner(self, client, code, lose_lookup):
        db.session.add(OnboardingSession(team_code=code, is_completed=True, end_time=utcnow()))
        db.session.commit()

        res = client.post(BASE, json={"teamCode": code})
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"
        assert _count(OnboardingSession) == 1


class TestAbc123xyzScenario:
    """Start, bind a question, let 13h pass, start again."""

    def test_stale_session_is_replaced(self, client, code):
        res = client.post(BASE, json={"teamCode": "abc123xyz"})
        session = res.get_json()["session"]
        assert session["remainingTimeMs"] == 43_200_000
        assert session["startTime"] is None

        res = client.put(BASE, json={"teamCode": "abc123xyz", "questionType": 1})
        assert res.status_code == 200
        bound = res.get_json()["session"]
        assert bound["startTime"] is not None
        assert bound["questionType"] == 1
        assert BUDGET_MS - 60_000 < bound["remainingTimeMs"] <= BUDGET_MS

        _rewind("abc123xyz", hours=13)
        check = client.get("/api/v1/submission/check", query_string={"teamCode": code}).get_json()
        assert check["status"] == "expired"
        assert check["remainingTimeMs"] == 0

        res = client.post(BASE, json={"teamCode": "abc123xyz"})
        assert res.status_code == 200
        fresh = res.get_json()["session"]
        assert fresh["status"] == "pending_question"
        assert fresh["startTime"] is None
        assert fresh["questionType"] is None
        assert fresh["remainingTimeMs"] == BUDGET_MS
        assert _count(OnboardingSession) == 1


# ═════════════════════════════════════════════════════════════════════════════
# PUT /session
# ═════════════════════════════════════════════════════════════════════════════


class TestUpdateSession:
    def test_requires_question_type_or_completion(self, client, code):
        client.post(BASE, json={"teamCode": code})
        res = client.put(BASE, json={"teamCode": code})
        assert res.status_code == 400
        assert "body" in res.get_json()["details"]

    def test_no_session(self, client, code):
        res = client.put(BASE, json={"teamCode": code, "questionType": 1})
        assert res.status_code == 404
        assert res.get_json()["error"] == "Session not found"

    def test_rebind_keeps_clock(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 0})
        started = _stored_session().start_time
        res = client.put(BASE, json={"teamCode": code, "questionType": 2})
        assert res.get_json()["session"]["questionType"] == 2
        assert _stored_session().start_time == started

    def test_complete(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 0})
        res = client.put(BASE, json={"teamCode": code, "isCompleted": True})
        assert res.status_code == 200
        data = res.get_json()
        assert data["message"] == "Session updated successfully"
        assert data["session"]["isCompleted"] is True
        assert data["session"]["endTime"] is not None
        assert data["session"]["status"] == "completed"

    def test_complete_twice_is_noop(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 0})
        first = client.put(BASE, json={"teamCode": code, "isCompleted": True}).get_json()["session"]
        second = client.put(BASE, json={"teamCode": code, "isCompleted": True})
        assert second.status_code == 200
        assert second.get_json()["session"]["endTime"] == first["endTime"]

    def test_uncomplete_is_ignored(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 0})
        client.put(BASE, json={"teamCode": code, "isCompleted": True})
        res = client.put(BASE, json={"teamCode": code, "isCompleted": False})
        assert res.status_code == 200
        assert res.get_json()["session"]["isCompleted"] is True

    def test_question_change_after_completion_conflicts(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 0})
        client.put(BASE, json={"teamCode": code, "isCompleted": True})
        assert client.put(BASE, json={"teamCode": code, "questionType": 0}).status_code == 200
        res = client.put(BASE, json={"teamCode": code, "questionType": 1})
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"

    def test_expired_session_can_still_complete(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 0})
        _rewind(hours=20)
        res = client.put(BASE, json={"teamCode": code, "isCompleted": True})
        assert res.status_code == 200
        assert res.get_json()["session"]["status"] == "completed"


# ═════════════════════════════════════════════════════════════════════════════
# PATCH /session
# ═════════════════════════════════════════════════════════════════════════════


class TestCompleteWithSubmission:
    def _patch(self, client, code, **submission):
        body = {"explanation": "Used a sliding window.", "files": []}
        body.update(submission)
        return client.patch(BASE, json={"teamCode": code, "submission": body})

    def test_submit_and_complete(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 1})
        res = self._patch(client, code)
        assert res.status_code == 200
        data = res.get_json()
        assert data["success"] is True
        assert data["message"] == "Submission saved successfully"
        assert data["session"]["isCompleted"] is True
        assert data["submission"]["questionType"] == 1
        assert _stored_session().is_completed is True
        assert _count(Submission) == 1

    def test_patch_on_completed_session_conflicts(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 1})
        assert self._patch(client, code).status_code == 200
        res = self._patch(client, code, explanation="second try")
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"
        assert _count(Submission) == 1

    def test_patch_after_put_completion_conflicts(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 1})
        client.put(BASE, json={"teamCode": code, "isCompleted": True})
        res = self._patch(client, code)
        assert res.status_code == 409
        assert _count(Submission) == 0

    def test_missing_submission(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 1})
        res = client.patch(BASE, json={"teamCode": code})
        assert res.status_code == 400
        assert "submission" in res.get_json()["details"]

    def test_no_session(self, client, code):
        res = self._patch(client, code)
        assert res.status_code == 404

    def test_question_type_from_payload(self, client, code):
        client.post(BASE, json={"teamCode": code})
        res = self._patch(client, code, questionType=2)
        assert res.status_code == 200
        assert res.get_json()["submission"]["questionType"] == 2

    def test_question_type_required_when_unbound(self, client, code):
        client.post(BASE, json={"teamCode": code})
        res = self._patch(client, code)
        assert res.status_code == 400
        assert "submission.questionType" in res.get_json()["details"]

    def test_expired_session_accepted_by_default(self, client, code):
        client.post(BASE, json={"teamCode": code, "questionType": 1})
        _rewind(hours=13)
        assert self._patch(client, code).status_code == 200

    def test_expired_session_rejected_when_enforced(self, app, client, code, monkeypatch):
        monkeypatch.setitem(app.config, "SESSION_DEADLINE_ENFORCED", True)
        client.post(BASE, json={"teamCode": code, "questionType": 1})
        _rewind(hours=13)
        res = self._patch(client, code)
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"
        assert _count(Submission) == 0
