"""Email API endpoints.

GET    /api/emails                list (optional ?folder=&processed=); kicks off a background fetch
GET    /api/emails/{id}           single email
POST   /api/emails                store an email (idempotent on messageId)
PATCH  /api/emails/{id}           update folder / processed / flags
DELETE /api/emails/{id}           permanent delete
POST   /api/emails/{id}/process   mark processed (and read on the server)
POST   /api/emails/{id}/archive   move to the archive
POST   /api/emails/{id}/move      move to another folder
POST   /api/emails/{id}/reply     reply to the sender
POST   /api/emails/{id}/forward   forward to new recipients
POST   /api/emails/send           send a new message
POST   /api/emails/fetch          pull new mail from the server now

Store changes always stick. Server-side mailbox changes (mark read, move,
expunge) are attempted afterwards and only logged when they fail.
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import Field
from sqlmodel import Session, select

from gtd.api.events import change_hub
from gtd.api.schemas import EmailResponse
from gtd.config import is_email_configured, settings
from gtd.db.database import engine, get_session
from gtd.db.queries import detach_tasks
from gtd.email import gateway
from gtd.email.gateway import EmailGatewayError
from gtd.models.base import CamelModel
from gtd.models.email import Email, EmailFolder
from gtd.models.task import Task

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["emails"])


# === Request / Response Models ===


class CreateEmailRequest(CamelModel):
    message_id: str = Field(min_length=1)
    subject: str = "No Subject"
    sender: str = "Unknown Sender"
    recipients: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    content: str = ""
    html_content: str | None = None
    folder: EmailFolder = EmailFolder.INBOX
    processed: bool = False
    flags: list[str] = Field(default_factory=list)
    received_at: datetime | None = None
    attachments: list[dict] = Field(default_factory=list)


class UpdateEmailRequest(CamelModel):
    folder: EmailFolder | None = None
    processed: bool | None = None
    flags: list[str] | None = None


class MoveEmailRequest(CamelModel):
    folder: EmailFolder


class ReplyRequest(CamelModel):
    text: str = Field(min_length=1)
    html: str | None = None


class ForwardRequest(CamelModel):
    to: list[str] = Field(min_length=1)
    text: str | None = None


class SendEmailRequest(CamelModel):
    to: list[str] = Field(min_length=1)
    subject: str = Field(min_length=1)
    text: str
    html: str | None = None
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)


class FetchResponse(CamelModel):
    fetched: int
    emails: list[EmailResponse]


# === Helpers ===


def _to_response(email: Email) -> EmailResponse:
    return EmailResponse.model_validate(email)


def _get_or_404(session: Session, email_id: int) -> Email:
    email = session.get(Email, email_id)
    if email is None:
        raise HTTPException(status_code=404, detail=f"Email not found: {email_id}")
    return email


async def _mailbox_side_effect(operation, *args) -> None:
    """Mirror a store change on the mail server; failures are only logged."""
    if not is_email_configured():
        return
    try:
        await operation(*args)
    except EmailGatewayError as e:
        logger.warning("Mailbox update %s%s failed: %s", operation.__name__, args, e)


def _record_sent(session: Session, message_id: str, to: list[str], subject: str, text: str,
                 html: str | None = None, cc: list[str] | None = None,
                 bcc: list[str] | None = None) -> Email:
    sent = Email(
        message_id=message_id,
        subject=subject,
        sender=settings.email_address,
        recipients=to,
        cc=cc or [],
        bcc=bcc or [],
        content=text,
        html_content=html,
        folder=EmailFolder.SENT.value,
        processed=True,
    )
    session.add(sent)
    session.commit()
    session.refresh(sent)
    return sent


async def _background_fetch() -> None:
    """Runs after the list response has been sent."""
    try:
        with Session(engine) as session:
            stored = await gateway.fetch_new_emails(session)
    except EmailGatewayError as e:
        logger.error("Background email fetch failed: %s", e)
        return
    if stored:
        await change_hub.notify("email", "created", None, ["emails"])


# === Endpoints ===


@router.get("/emails", response_model=list[EmailResponse])
async def list_emails(
    background_tasks: BackgroundTasks,
    folder: EmailFolder | None = Query(default=None),
    processed: bool | None = Query(default=None),
    session: Session = Depends(get_session),
) -> list[EmailResponse]:
    """Return stored emails immediately; new mail arrives via a background fetch."""
    if is_email_configured():
        background_tasks.add_task(_background_fetch)

    stmt = select(Email)
    if folder is not None:
        stmt = stmt.where(Email.folder == folder.value)
    if processed is not None:
        stmt = stmt.where(Email.processed == processed)
    emails = session.exec(stmt.order_by(Email.received_at.desc())).all()
    return [_to_response(e) for e in emails]


@router.post("/emails/fetch", response_model=FetchResponse)
async def fetch_emails(session: Session = Depends(get_session)) -> FetchResponse:
    """Fetch unread mail from the server now."""
    try:
        stored = await gateway.fetch_new_emails(session)
    except EmailGatewayError as e:
        raise HTTPException(status_code=502, detail=str(e))
    if stored:
        await change_hub.notify("email", "created", None, ["emails"])
    return FetchResponse(fetched=len(stored), emails=[_to_response(e) for e in stored])


@router.post("/emails/send", response_model=EmailResponse, status_code=201)
async def send_email(request: SendEmailRequest, session: Session = Depends(get_session)) -> EmailResponse:
    try:
        message_id = await gateway.send_email(
            request.to, request.subject, request.text, request.html, request.cc, request.bcc,
        )
    except EmailGatewayError as e:
        raise HTTPException(status_code=502, detail=str(e))
    sent = _record_sent(
        session, message_id, request.to, request.subject, request.text,
        request.html, request.cc, request.bcc,
    )
    await change_hub.notify("email", "created", sent.id, ["emails"])
    return _to_response(sent)


@router.get("/emails/{email_id}", response_model=EmailResponse)
async def get_email(email_id: int, session: Session = Depends(get_session)) -> EmailResponse:
    return _to_response(_get_or_404(session, email_id))


@router.post("/emails", response_model=EmailResponse, status_code=201)
async def create_email(request: CreateEmailRequest, session: Session = Depends(get_session)) -> EmailResponse:
    """Store an email. A second call with the same messageId returns the stored row."""
    existing = session.exec(select(Email).where(Email.message_id == request.message_id)).first()
    if existing is not None:
        return _to_response(existing)

    data = request.model_dump(exclude_none=True)
    data["folder"] = request.folder.value
    email = Email(**data)
    session.add(email)
    session.commit()
    session.refresh(email)
    await change_hub.notify("email", "created", email.id, ["emails"])
    return _to_response(email)


@router.patch("/emails/{email_id}", response_model=EmailResponse)
async def update_email(
    email_id: int,
    request: UpdateEmailRequest,
    session: Session = Depends(get_session),
) -> EmailResponse:
    email = _get_or_404(session, email_id)
    update_data = request.model_dump(exclude_unset=True, exclude_none=True)
    if "folder" in update_data:
        update_data["folder"] = update_data["folder"].value
    for key, value in update_data.items():
        setattr(email, key, value)
    session.add(email)
    session.commit()
    session.refresh(email)

    if update_data.get("processed"):
        await _mailbox_side_effect(gateway.mark_as_read, email.message_id)
    await change_hub.notify("email", "updated", email.id, ["emails"])
    return _to_response(email)


@router.delete("/emails/{email_id}", status_code=204)
async def delete_email(email_id: int, session: Session = Depends(get_session)) -> None:
    """Delete permanently. Tasks created from the email keep existing without the link."""
    email = _get_or_404(session, email_id)
    message_id, folder = email.message_id, email.folder
    changed = detach_tasks(session, Task.email_id, email_id)
    session.delete(email)
    session.commit()

    if folder != EmailFolder.SENT.value:
        await _mailbox_side_effect(gateway.delete_message, message_id)
    await change_hub.notify("email", "deleted", email_id, changed | {"emails"})


@router.post("/emails/{email_id}/process", response_model=EmailResponse)
async def process_email(email_id: int, session: Session = Depends(get_session)) -> EmailResponse:
    email = _get_or_404(session, email_id)
    email.processed = True
    session.add(email)
    session.commit()
    session.refresh(email)

    await _mailbox_side_effect(gateway.mark_as_read, email.message_id)
    await change_hub.notify("email", "processed", email.id, ["emails"])
    return _to_response(email)


@router.post("/emails/{email_id}/archive", response_model=EmailResponse)
async def archive_email(email_id: int, session: Session = Depends(get_session)) -> EmailResponse:
    email = _get_or_404(session, email_id)
    email.folder = EmailFolder.ARCHIVED.value
    session.add(email)
    session.commit()
    session.refresh(email)

    await _mailbox_side_effect(gateway.archive, email.message_id)
    await change_hub.notify("email", "updated", email.id, ["emails"])
    return _to_response(email)


@router.post("/emails/{email_id}/move", response_model=EmailResponse)
async def move_email(
    email_id: int,
    request: MoveEmailRequest,
    session: Session = Depends(get_session),
) -> EmailResponse:
    email = _get_or_404(session, email_id)
    email.folder = request.folder.value
    session.add(email)
    session.commit()
    session.refresh(email)

    await _mailbox_side_effect(gateway.move_to_folder, email.message_id, request.folder.value)
    await change_hub.notify("email", "updated", email.id, ["emails"])
    return _to_response(email)


@router.post("/emails/{email_id}/reply", response_model=EmailResponse, status_code=201)
async def reply_to_email(
    email_id: int,
    request: ReplyRequest,
    session: Session = Depends(get_session),
) -> EmailResponse:
    """Reply to the original sender. Returns the stored copy of the reply."""
    original = _get_or_404(session, email_id)
    try:
        message_id = await gateway.reply_to(original, request.text, request.html)
    except EmailGatewayError as e:
        raise HTTPException(status_code=502, detail=str(e))
    sent = _record_sent(
        session, message_id, [original.sender], gateway.reply_subject(original.subject),
        request.text, request.html,
    )
    await change_hub.notify("email", "created", sent.id, ["emails"])
    return _to_response(sent)


@router.post("/emails/{email_id}/forward", response_model=EmailResponse, status_code=201)
async def forward_email(
    email_id: int,
    request: ForwardRequest,
    session: Session = Depends(get_session),
) -> EmailResponse:
    original = _get_or_404(session, email_id)
    try:
        message_id = await gateway.forward(original, request.to, request.text)
    except EmailGatewayError as e:
        raise HTTPException(status_code=502, detail=str(e))
    sent = _record_sent(
        session, message_id, request.to, gateway.forward_subject(original.subject),
        gateway.forward_body(original, request.text),
    )
    await change_hub.notify("email", "created", sent.id, ["emails"])
    return _to_response(sent)
