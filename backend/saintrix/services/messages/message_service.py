"""
Message Service

Client <-> admin messaging: threads, read receipts, attachments and a live
feed of new messages.

Either side of a message may be a client or an admin. Participants are
resolved from both identity tables; a send naming an unknown user is
rejected before anything is written.

Every new message is published as an INSERT on the `messages` table after it
is committed. A service instance holds at most one live subscription;
subscribing again replaces the previous one.
"""
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional
from uuid import uuid4
import logging
import mimetypes

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models.db_models import MessageDB, ClientDB, AdminDB
from ...models.schemas import MessageCreate, Message, MessageWithParticipants, Participant
from ..exceptions import RecordNotFoundError
from ..storage.storage_adapter import StorageAdapter
from .realtime import RealtimeChannel, Subscription, get_channel

logger = logging.getLogger(__name__)

TABLE = "messages"
ATTACHMENT_PREFIX = "attachments"


class MessageService:
    """
    Usage:
        service = MessageService(db, storage)
        service.send_message(MessageCreate(...))
        service.subscribe_to_new_messages(print)
    """

    def __init__(self, db: Session, storage: Optional[StorageAdapter] = None, channel: Optional[RealtimeChannel] = None):
        self.db = db
        self.storage = storage
        self.channel = channel or get_channel()
        self._subscription: Optional[Subscription] = None

    # =========================================================================
    # PARTICIPANTS
    # =========================================================================

    def _participants(self, user_ids: Iterable[str]) -> Dict[str, Participant]:
        ids = set(user_ids)
        if not ids:
            return {}
        found = {}
        for admin in self.db.query(AdminDB).filter(AdminDB.id.in_(ids)):
            found[admin.id] = Participant(id=admin.id, email=admin.email, role="admin")
        for client in self.db.query(ClientDB).filter(ClientDB.id.in_(ids)):
            found[client.id] = Participant(
                id=client.id, email=client.email, full_name=client.full_name, role="client",
            )
        return found

    def _with_participants(self, rows: List[MessageDB]) -> List[MessageWithParticipants]:
        people = self._participants(
            [r.sender_id for r in rows] + [r.recipient_id for r in rows]
        )
        return [
            MessageWithParticipants(
                **Message.model_validate(r).model_dump(),
                sender=people.get(r.sender_id),
                recipient=people.get(r.recipient_id),
            )
            for r in rows
        ]

    # =========================================================================
    # WRITES
    # =========================================================================

    def send_message(self, payload: MessageCreate) -> Message:
        known = self._participants([payload.sender_id, payload.recipient_id])
        for user_id in (payload.sender_id, payload.recipient_id):
            if user_id not in known:
                raise RecordNotFoundError("users", user_id)

        row = MessageDB(
            id=str(uuid4()),
            thread_id=payload.thread_id,
            sender_id=payload.sender_id,
            recipient_id=payload.recipient_id,
            content=payload.content,
            attachment_url=payload.attachment_url,
            read=False,
            sent_at=datetime.utcnow(),
        )
        self.db.add(row)
        self.db.commit()

        message = Message.model_validate(row)
        logger.info(f"Message {message.id} sent in thread {message.thread_id}")
        self.channel.publish(TABLE, "INSERT", message.model_dump())
        return message

    def mark_as_read(self, message_id: str, reader_id: Optional[str] = None) -> Message:
        """
        Mark a message read. With a reader_id, only the recipient may do so;
        anyone else gets the same not-found as a missing message.
        """
        row = self.db.query(MessageDB).get(message_id)
        if row is None or (reader_id is not None and row.recipient_id != reader_id):
            raise RecordNotFoundError(TABLE, message_id)
        row.read = True
        self.db.commit()
        return Message.model_validate(row)

    def upload_attachment(self, filename: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store an attachment under a random name and return its public URL."""
        if self.storage is None:
            raise RuntimeError("MessageService has no storage adapter")
        ext = filename.rsplit(".", 1)[-1] if "." in filename else "bin"
        path = f"{ATTACHMENT_PREFIX}/{uuid4()}.{ext}"
        content_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        return self.storage.upload(path, data, content_type)

    # =========================================================================
    # READS
    # =========================================================================

    def get_thread_messages(self, thread_id: str) -> List[MessageWithParticipants]:
        """One thread, oldest first."""
        rows = (
            self.db.query(MessageDB)
            .filter(MessageDB.thread_id == thread_id)
            .order_by(MessageDB.sent_at.asc())
            .all()
        )
        return self._with_participants(rows)

    def get_client_threads(self, client_id: str) -> List[MessageWithParticipants]:
        """Messages a client sent or received, newest first."""
        rows = (
            self.db.query(MessageDB)
            .filter(or_(MessageDB.sender_id == client_id, MessageDB.recipient_id == client_id))
            .order_by(MessageDB.sent_at.desc())
            .all()
        )
        return self._with_participants(rows)

    def get_all_threads(self) -> List[MessageWithParticipants]:
        rows = self.db.query(MessageDB).order_by(MessageDB.sent_at.desc()).all()
        return self._with_participants(rows)

    # =========================================================================
    # LIVE FEED
    # =========================================================================

    def subscribe_to_new_messages(self, callback: Callable[[Message], None]) -> Subscription:
        self.unsubscribe()
        self._subscription = self.channel.subscribe(
            TABLE, "INSERT", lambda record: callback(Message.model_validate(record)),
        )
        return self._subscription

    def unsubscribe(self) -> None:
        if self._subscription is not None:
            self.channel.unsubscribe(self._subscription)
            self._subscription = None
