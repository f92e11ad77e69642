"""
Message API Routes

Client and admin messaging. Clients see only threads they take part in;
admins see everything.
"""
from typing import Optional, List
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user, CurrentUser
from ..models.schemas import MessageCreate, Message, MessageWithParticipants
from ..services.exceptions import ServiceError
from ..services.messages import MessageService
from ..services.storage import StorageAdapter, build_storage
from .errors import to_http


router = APIRouter(prefix="/messages", tags=["messages"])


def get_storage() -> StorageAdapter:
    return build_storage()


class SendMessageRequest(BaseModel):
    thread_id: str
    recipient_id: str
    content: str = Field(..., min_length=1)
    attachment_url: Optional[str] = None


class AttachmentResponse(BaseModel):
    url: str


@router.post("", response_model=Message, status_code=201)
async def send_message(
    request: SendMessageRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    payload = MessageCreate(sender_id=current_user.id, **request.model_dump())
    try:
        return MessageService(db).send_message(payload)
    except ServiceError as e:
        raise to_http(e)


@router.get("", response_model=List[MessageWithParticipants])
async def list_messages(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """All messages for admins, otherwise the caller's own, newest first."""
    service = MessageService(db)
    if current_user.is_admin:
        return service.get_all_threads()
    return service.get_client_threads(current_user.id)


@router.get("/threads/{thread_id}", response_model=List[MessageWithParticipants])
async def get_thread(
    thread_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    messages = MessageService(db).get_thread_messages(thread_id)
    if not current_user.is_admin and not any(
        current_user.id in (m.sender_id, m.recipient_id) for m in messages
    ):
        raise HTTPException(status_code=404, detail="Thread not found")
    return messages


@router.post("/{message_id}/read", response_model=Message)
async def mark_as_read(
    message_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Recipients mark their own messages; admins may mark any."""
    reader_id = None if current_user.is_admin else current_user.id
    try:
        return MessageService(db).mark_as_read(message_id, reader_id)
    except ServiceError as e:
        raise to_http(e)


@router.post("/attachments", response_model=AttachmentResponse, status_code=201)
async def upload_attachment(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: StorageAdapter = Depends(get_storage),
    _: CurrentUser = Depends(get_current_user),
):
    data = await file.read()
    try:
        url = MessageService(db, storage).upload_attachment(file.filename or "attachment", data, file.content_type)
    except ServiceError as e:
        raise to_http(e)
    return AttachmentResponse(url=url)
