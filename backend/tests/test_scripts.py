"""
Tests for the operational scripts (job runner, admin seed).
"""
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest

from saintrix.models.db_models import AdminDB
from saintrix.services.exceptions import ExternalServiceError


class TestRunJob:

    def test_unknown_job(self):
        from scripts.run_job import run_job

        with pytest.raises(ValueError):
            run_job("defrag")

    def test_sentiment_check(self, session_factory, make_client):
        from scripts.run_job import run_job

        make_client(last_activity_at=datetime.utcnow() - timedelta(days=4))

        with patch("scripts.run_job.SessionLocal", session_factory):
            summary = run_job("sentiment-check")

        assert summary["triggers_logged"]["inactivity"] == 1

    def test_daily_digest_closes_mailer(self, session_factory, make_admin):
        from scripts.run_job import run_job

        make_admin("ops@saintrix.com")
        mailer = MagicMock()

        with patch("scripts.run_job.SessionLocal", session_factory), \
                patch("scripts.run_job.build_mailer", return_value=mailer):
            summary = run_job("daily-digest")

        assert summary["sent"] == ["ops@saintrix.com"]
        mailer.connect.assert_not_called()
        mailer.close.assert_called_once()

    def test_daily_digest_records_every_recipient_when_transport_is_down(self, session_factory, make_admin):
        from scripts.run_job import run_job

        make_admin("ops@saintrix.com")
        make_admin("owner@saintrix.com")
        mailer = MagicMock()
        mailer.send.side_effect = ExternalServiceError("smtp", "connect to mail:587 failed")

        with patch("scripts.run_job.SessionLocal", session_factory), \
                patch("scripts.run_job.build_mailer", return_value=mailer):
            summary = run_job("daily-digest")

        assert summary["sent"] == []
        assert sorted(f["recipient"] for f in summary["failed"]) == ["ops@saintrix.com", "owner@saintrix.com"]
        mailer.close.assert_called_once()

    def test_followup_sweep(self, session_factory):
        from scripts.run_job import run_job

        mailer = MagicMock()

        with patch("scripts.run_job.SessionLocal", session_factory), \
                patch("scripts.run_job.build_mailer", return_value=mailer):
            summary = run_job("followup-sweep")

        assert summary["due"] == 0
        mailer.close.assert_called_once()


class TestSeedAdmin:

    def test_creates_admin_once(self, db, session_factory):
        from scripts.seed_admin import create_admin

        with patch("scripts.seed_admin.SessionLocal", session_factory), \
                patch("scripts.seed_admin.init_db"):
            assert create_admin("ops@saintrix.com", "auth-user-1") is True
            assert create_admin("ops@saintrix.com") is True

        admins = db.query(AdminDB).all()
        assert [(a.id, a.email) for a in admins] == [("auth-user-1", "ops@saintrix.com")]
