"""
Shared fixtures: a throwaway SQLite file database per test and small row
factories for the tables the services read.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime
from uuid import uuid4

import pytest
from sqlalchemy.orm import sessionmaker

from saintrix.database import Base, build_engine
from saintrix.models import db_models  # noqa: F401
from saintrix.models.db_models import (
    ClientDB, AdminDB, DisputeDB, DocumentDB, SupportTicketDB, AdminLogDB,
    DisputeStatus,
)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'saintrix_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# ROW FACTORIES
# =============================================================================

@pytest.fixture
def make_client(db):
    def _make(email=None, full_name="Test Client", created_at=None, last_activity_at=None):
        client = ClientDB(
            id=str(uuid4()),
            email=email or f"{uuid4().hex[:8]}@example.com",
            full_name=full_name,
            created_at=created_at or datetime.utcnow(),
            last_activity_at=last_activity_at,
        )
        db.add(client)
        db.commit()
        return client
    return _make


@pytest.fixture
def make_dispute(db):
    def _make(client, bureau="Equifax", status=DisputeStatus.PENDING, letter_opened=False, created_at=None):
        dispute = DisputeDB(
            id=str(uuid4()),
            client_id=client.id,
            bureau=bureau,
            item_name="Capital One ****1234",
            violation_type="inaccurate_balance",
            status=status,
            letter_opened=letter_opened,
            created_at=created_at or datetime.utcnow(),
        )
        db.add(dispute)
        db.commit()
        return dispute
    return _make


@pytest.fixture
def make_document(db):
    def _make(client, status=None, created_at=None):
        doc = DocumentDB(
            id=str(uuid4()),
            client_id=client.id,
            document_type="id_proof",
            status=status,
            created_at=created_at or datetime.utcnow(),
        )
        db.add(doc)
        db.commit()
        return doc
    return _make


@pytest.fixture
def make_ticket(db):
    def _make(client, created_at=None):
        ticket = SupportTicketDB(
            id=str(uuid4()),
            client_id=client.id,
            subject="Where is my letter?",
            created_at=created_at or datetime.utcnow(),
        )
        db.add(ticket)
        db.commit()
        return ticket
    return _make


@pytest.fixture
def make_admin(db):
    def _make(email):
        admin = AdminDB(id=str(uuid4()), email=email)
        db.add(admin)
        db.commit()
        return admin
    return _make


@pytest.fixture
def make_admin_log(db):
    def _make(action, timestamp, message=None):
        log = AdminLogDB(
            id=str(uuid4()),
            action=action,
            details={"message": message} if message is not None else {},
            timestamp=timestamp,
        )
        db.add(log)
        db.commit()
        return log
    return _make
