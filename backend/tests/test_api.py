"""
API tests: routing, auth, error translation and the internal job endpoints.
"""
from datetime import datetime, timedelta
from unittest.mock import MagicMock, AsyncMock

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from saintrix.auth import SECRET_KEY, ALGORITHM, AUDIENCE
from saintrix.database import get_db
from saintrix.main import app
from saintrix.routers.letters import get_letter_generator
from saintrix.routers.scheduler import INTERNAL_API_KEY, get_mailer, get_session_factory


def make_token(user_id="admin-1", role="admin", email="ops@saintrix.com"):
    claims = {
        "sub": user_id,
        "email": email,
        "aud": AUDIENCE,
        "role": "authenticated",
        "app_metadata": {"role": role},
        "exp": datetime.utcnow() + timedelta(hours=1),
    }
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


ADMIN = {"Authorization": f"Bearer {make_token()}"}
CLIENT = {"Authorization": f"Bearer {make_token('client-1', 'client', 'jane@x.com')}"}
INTERNAL = {"X-Internal-Key": INTERNAL_API_KEY}


@pytest.fixture
def api(db, session_factory):
    def override_get_db():
        yield db

    mailer = MagicMock()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_mailer] = lambda: mailer
    client = TestClient(app)
    client.mailer = mailer
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def dispute(make_client, make_dispute):
    return make_dispute(make_client(email="client@x.com"))


class TestHealthAndAuth:

    def test_health(self, api):
        response = api.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_missing_token_rejected(self, api):
        assert api.get("/admin/flags").status_code in (401, 403)

    def test_bad_token_rejected(self, api):
        response = api.get("/admin/flags", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_client_cannot_use_admin_routes(self, api):
        assert api.get("/admin/flags", headers=CLIENT).status_code == 403


class TestSentimentRoutes:

    def test_triggers_flag_user(self, api, make_client):
        user = make_client()
        for trigger_type in ("inactivity", "support_contact"):
            response = api.post("/sentiment/triggers", json={"type": trigger_type, "user_id": user.id}, headers=ADMIN)
            assert response.status_code == 200
            assert response.json()["at_risk"] is False

        response = api.post("/sentiment/triggers", json={"type": "missing_docs", "user_id": user.id}, headers=ADMIN)

        assert response.json()["at_risk"] is True
        flags = api.get("/admin/flags", headers=ADMIN).json()
        assert [f["user"]["id"] for f in flags] == [user.id]

        risk = api.get(f"/sentiment/users/{user.id}/risk", headers=ADMIN).json()
        assert risk["score"] == 80
        assert len(risk["logs"]) == 3

    def test_unknown_trigger_ignored(self, api, make_client):
        user = make_client()
        response = api.post("/sentiment/triggers", json={"type": "late_payment", "user_id": user.id}, headers=ADMIN)

        assert response.status_code == 200
        assert response.json()["logged"] is False

    def test_unknown_field_rejected(self, api):
        response = api.post(
            "/sentiment/triggers", json={"type": "inactivity", "user_id": "u1", "extra": 1}, headers=ADMIN,
        )
        assert response.status_code == 422

    def test_resolve_flow(self, api, make_client):
        user = make_client()
        for trigger_type in ("inactivity", "support_contact", "missing_docs"):
            api.post("/sentiment/triggers", json={"type": trigger_type, "user_id": user.id}, headers=ADMIN)
        flag = api.get("/admin/flags", headers=ADMIN).json()[0]

        resolved = api.post(
            f"/admin/flags/{flag['id']}/resolve",
            json={"resolution": "resolved", "expected_version": flag["version"]},
            headers=ADMIN,
        )
        stale = api.post(
            f"/admin/flags/{flag['id']}/resolve",
            json={"resolution": "false_positive", "expected_version": flag["version"]},
            headers=ADMIN,
        )

        assert resolved.status_code == 200
        assert resolved.json()["status"] == "resolved"
        assert stale.status_code == 409
        assert api.get("/admin/flags", headers=ADMIN).json() == []

    def test_resolve_missing_flag(self, api):
        response = api.post("/admin/flags/missing/resolve", json={"resolution": "resolved"}, headers=ADMIN)
        assert response.status_code == 404


class TestFollowupRoutes:

    def test_schedule_list_and_reschedule(self, api, dispute):
        when = (datetime.utcnow() + timedelta(days=3)).replace(microsecond=0)
        created = api.post(
            f"/disputes/{dispute.id}/followups",
            json={"type": "email", "scheduled_date": when.isoformat(), "recipient": "client@x.com"},
            headers=ADMIN,
        )
        assert created.status_code == 201
        followup = created.json()
        assert followup["status"] == "pending"

        listed = api.get(f"/disputes/{dispute.id}/followups", headers=ADMIN).json()
        assert [f["id"] for f in listed] == [followup["id"]]

        cancelled = api.post(f"/followups/{followup['id']}/cancel", headers=ADMIN)
        assert cancelled.json()["status"] == "cancelled"

        rescheduled = api.post(
            f"/followups/{followup['id']}/reschedule",
            json={"scheduled_date": (when + timedelta(days=7)).isoformat()},
            headers=ADMIN,
        )
        assert rescheduled.status_code == 200
        assert rescheduled.json()["status"] == "pending"

        history = api.get(f"/disputes/{dispute.id}/followups/history", headers=ADMIN).json()
        assert len(history) == 1

    def test_blank_recipient_is_422(self, api, dispute):
        response = api.post(
            f"/disputes/{dispute.id}/followups",
            json={"type": "email", "scheduled_date": datetime.utcnow().isoformat(), "recipient": "   "},
            headers=ADMIN,
        )
        assert response.status_code == 422

    def test_status_update_and_pending_queue(self, api, dispute):
        past = (datetime.utcnow() - timedelta(hours=1)).isoformat()
        followup = api.post(
            f"/disputes/{dispute.id}/followups",
            json={"type": "phone", "scheduled_date": past, "recipient": "555-0100"},
            headers=ADMIN,
        ).json()

        pending = api.get("/followups/pending", headers=ADMIN).json()
        assert [p["id"] for p in pending] == [followup["id"]]
        assert pending[0]["dispute"]["client"]["email"] == "client@x.com"

        updated = api.patch(
            f"/followups/{followup['id']}/status",
            json={"status": "sent", "response_content": "Left voicemail"},
            headers=ADMIN,
        )
        assert updated.json()["status"] == "sent"
        assert updated.json()["response_received"] is True
        assert api.get("/followups/pending", headers=ADMIN).json() == []

    def test_schedule_for_missing_dispute_is_404(self, api):
        response = api.post(
            "/disputes/nope/followups",
            json={"type": "email", "scheduled_date": datetime.utcnow().isoformat(), "recipient": "client@x.com"},
            headers=ADMIN,
        )
        assert response.status_code == 404

    def test_missing_followup_is_404(self, api):
        response = api.patch("/followups/missing/status", json={"status": "sent"}, headers=ADMIN)
        assert response.status_code == 404


class TestMessageAndLetterRoutes:

    def test_client_sends_and_lists_own_messages(self, api, make_client, make_admin):
        jane = make_client(email="jane@x.com")
        admin = make_admin("ops@saintrix.com")
        headers = {"Authorization": f"Bearer {make_token(jane.id, 'client', 'jane@x.com')}"}

        sent = api.post(
            "/messages", json={"thread_id": "t1", "recipient_id": admin.id, "content": "Hello"}, headers=headers,
        )
        assert sent.status_code == 201
        assert sent.json()["sender_id"] == jane.id

        mine = api.get("/messages", headers=headers).json()
        assert [m["id"] for m in mine] == [sent.json()["id"]]
        assert mine[0]["recipient"]["role"] == "admin"

        thread = api.get("/messages/threads/t1", headers=headers)
        assert thread.status_code == 200
        assert api.get("/messages/threads/t1", headers=CLIENT).status_code == 404

    def test_admin_replies_to_client(self, api, make_client, make_admin):
        jane = make_client(email="jane@x.com")
        admin = make_admin("ops@saintrix.com")
        admin_headers = {"Authorization": f"Bearer {make_token(admin.id, 'admin', admin.email)}"}

        reply = api.post(
            "/messages", json={"thread_id": "t1", "recipient_id": jane.id, "content": "Letters sent"},
            headers=admin_headers,
        )

        assert reply.status_code == 201
        assert reply.json()["sender_id"] == admin.id

    def test_message_to_unknown_user_is_404(self, api, make_client):
        jane = make_client(email="jane@x.com")
        headers = {"Authorization": f"Bearer {make_token(jane.id, 'client', 'jane@x.com')}"}

        response = api.post(
            "/messages", json={"thread_id": "t1", "recipient_id": "nobody", "content": "Hello"}, headers=headers,
        )

        assert response.status_code == 404

    def test_only_recipient_or_admin_marks_read(self, api, make_client):
        alice, bob, carol = make_client(), make_client(), make_client()

        def headers_for(client):
            return {"Authorization": f"Bearer {make_token(client.id, 'client', client.email)}"}

        message = api.post(
            "/messages", json={"thread_id": "t1", "recipient_id": bob.id, "content": "Hi Bob"},
            headers=headers_for(alice),
        ).json()

        assert api.post(f"/messages/{message['id']}/read", headers=headers_for(carol)).status_code == 404
        assert api.post(f"/messages/{message['id']}/read", headers=headers_for(alice)).status_code == 404

        read = api.post(f"/messages/{message['id']}/read", headers=headers_for(bob))
        assert read.status_code == 200
        assert read.json()["read"] is True
        assert api.post(f"/messages/{message['id']}/read", headers=ADMIN).status_code == 200

    def test_generate_letter(self, api):
        generator = MagicMock()
        generator.generate_async = AsyncMock(return_value="Dear Equifax,")
        app.dependency_overrides[get_letter_generator] = lambda: generator

        response = api.post(
            "/letters/generate",
            json={"client_name": "Jane", "item_name": "Acct 1", "bureau": "Equifax", "violation_type": "Obsolete"},
            headers=CLIENT,
        )

        assert response.status_code == 200
        assert response.json() == {"letter": "Dear Equifax,"}

    def test_generate_letter_upstream_failure_is_502(self, api):
        from saintrix.services.exceptions import ExternalServiceError

        generator = MagicMock()
        generator.generate_async = AsyncMock(side_effect=ExternalServiceError("llm", "timeout"))
        app.dependency_overrides[get_letter_generator] = lambda: generator

        response = api.post(
            "/letters/generate",
            json={"client_name": "Jane", "item_name": "Acct 1", "bureau": "Equifax", "violation_type": "Obsolete"},
            headers=CLIENT,
        )

        assert response.status_code == 502


class TestInternalRoutes:

    def test_wrong_key_rejected(self, api):
        response = api.post("/internal/sentiment-check", headers={"X-Internal-Key": "nope"})
        assert response.status_code == 403

    def test_missing_key_rejected(self, api):
        assert api.post("/internal/sentiment-check").status_code == 422

    def test_sentiment_check(self, api, make_client):
        make_client(last_activity_at=datetime.utcnow() - timedelta(days=10))

        response = api.post("/internal/sentiment-check", headers=INTERNAL)

        assert response.status_code == 200
        assert response.json()["triggers_logged"]["inactivity"] == 1

    def test_followup_sweep(self, api, dispute):
        past = (datetime.utcnow() - timedelta(hours=1)).isoformat()
        api.post(
            f"/disputes/{dispute.id}/followups",
            json={"type": "email", "scheduled_date": past, "recipient": "client@x.com"},
            headers=ADMIN,
        )

        response = api.post("/internal/followup-sweep", headers=INTERNAL)

        assert response.status_code == 200
        assert len(response.json()["sent"]) == 1
        api.mailer.send.assert_called_once()
        api.mailer.close.assert_called_once()

    def test_daily_digest(self, api, make_admin):
        make_admin("ops@saintrix.com")

        response = api.post("/internal/daily-digest", headers=INTERNAL)

        assert response.status_code == 200
        assert response.json()["sent"] == ["ops@saintrix.com"]
