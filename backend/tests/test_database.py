"""
Tests for engine setup: SQLite enforces the same foreign keys as Postgres.
"""
from datetime import datetime
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from saintrix.models.db_models import DisputeDB, MessageDB
from saintrix.routers.errors import to_http


class TestForeignKeys:

    def test_orphan_dispute_rejected(self, db):
        db.add(DisputeDB(id=str(uuid4()), client_id="no-such-client", bureau="Experian"))

        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_message_participants_are_not_tied_to_clients(self, db, make_admin):
        admin = make_admin("ops@saintrix.com")
        db.add(MessageDB(
            id=str(uuid4()), thread_id="t1", sender_id=admin.id, recipient_id=admin.id,
            content="note to self", read=False, sent_at=datetime.utcnow(),
        ))
        db.commit()

        assert db.query(MessageDB).count() == 1

    def test_integrity_error_maps_to_conflict(self):
        error = IntegrityError("INSERT INTO disputes ...", {}, Exception("FOREIGN KEY constraint failed"))
        assert to_http(error).status_code == 409
