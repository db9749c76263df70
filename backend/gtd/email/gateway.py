"""Email gateway: IMAP for the inbox mirror, SMTP for outgoing mail.

Every mailbox operation opens its own IMAP-over-TLS connection and logs out
when done; nothing is kept between calls. imaplib is blocking, so the work
runs in the default thread executor.

Outgoing mail uses aiosmtplib with STARTTLS.
"""

from __future__ import annotations

import asyncio
import imaplib
import logging
from datetime import datetime, timezone
from email import message_from_bytes, policy
from email.message import EmailMessage
from email.utils import make_msgid, parsedate_to_datetime

import aiosmtplib
from sqlmodel import Session, select

from gtd.config import settings
from gtd.models.email import Email, EmailFolder

logger = logging.getLogger(__name__)

ARCHIVE_MAILBOX = "Archive"
FORWARD_SEPARATOR = "---------- Forwarded message ---------"


class EmailGatewayError(Exception):
    """The mail server refused or failed an operation."""


class EmailNotConfiguredError(EmailGatewayError):
    """Account settings needed for the operation are missing."""


def _require_imap() -> None:
    if not (settings.email_address and settings.email_password and settings.imap_host):
        raise EmailNotConfiguredError(
            "Email configuration missing: EMAIL_ADDRESS, EMAIL_PASSWORD and IMAP_HOST are required"
        )


def _require_smtp() -> None:
    if not (settings.email_address and settings.email_password and settings.smtp_host):
        raise EmailNotConfiguredError(
            "Email configuration missing: EMAIL_ADDRESS, EMAIL_PASSWORD and SMTP_HOST are required"
        )


def _open_inbox() -> imaplib.IMAP4_SSL:
    conn = imaplib.IMAP4_SSL(settings.imap_host, settings.imap_port)
    conn.login(settings.email_address, settings.email_password)
    conn.select("INBOX")
    return conn


async def _run_imap(operation, *args):
    """Run a blocking IMAP operation off the event loop, wrapping failures."""
    _require_imap()
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, operation, *args)
    except (imaplib.IMAP4.error, OSError) as e:
        raise EmailGatewayError(f"IMAP operation failed: {e}") from e


# === Parsing ===


def _addresses(value) -> list[str]:
    return [str(value)] if value else []


def parse_message(uid: str, raw: bytes, flags: list[str] | None = None) -> Email:
    """Turn a raw RFC 822 message into an unsaved Email row keyed by its IMAP uid."""
    msg = message_from_bytes(raw, policy=policy.default)

    text_part = msg.get_body(preferencelist=("plain",))
    html_part = msg.get_body(preferencelist=("html",))

    received_at = datetime.now(timezone.utc)
    if msg["Date"]:
        try:
            received_at = parsedate_to_datetime(str(msg["Date"]))
        except (TypeError, ValueError):
            logger.debug("Unparseable Date header on message %s", uid)

    attachments = []
    for part in msg.iter_attachments():
        payload = part.get_payload(decode=True) or b""
        attachments.append({
            "filename": part.get_filename(),
            "content_type": part.get_content_type(),
            "size": len(payload),
        })

    return Email(
        message_id=uid,
        subject=str(msg["Subject"] or "") or "No Subject",
        sender=str(msg["From"] or "") or "Unknown Sender",
        recipients=_addresses(msg["To"]),
        cc=_addresses(msg["Cc"]),
        bcc=_addresses(msg["Bcc"]),
        content=text_part.get_content() if text_part is not None else "",
        html_content=html_part.get_content() if html_part is not None else None,
        folder=EmailFolder.INBOX.value,
        processed=False,
        flags=flags or [],
        received_at=received_at,
        attachments=attachments,
    )


# === Fetch ===


def _fetch_unseen(limit: int) -> list[Email]:
    with _open_inbox() as conn:
        typ, data = conn.uid("SEARCH", None, "UNSEEN")
        if typ != "OK":
            raise EmailGatewayError(f"IMAP search failed: {typ}")
        uids = data[0].split() if data and data[0] else []
        logger.info("Found %d unread messages", len(uids))

        emails: list[Email] = []
        for uid in reversed(uids[-limit:]):
            uid_text = uid.decode()
            try:
                typ, msg_data = conn.uid("FETCH", uid_text, "(FLAGS BODY.PEEK[])")
                if typ != "OK" or not msg_data or not isinstance(msg_data[0], tuple):
                    logger.warning("No body returned for message %s", uid_text)
                    continue
                envelope, raw = msg_data[0]
                flags = [f.decode() for f in imaplib.ParseFlags(envelope)]
                emails.append(parse_message(uid_text, raw, flags))
            except (ValueError, LookupError, UnicodeError) as e:
                logger.error("Error parsing message %s: %s", uid_text, e)
        return emails


def store_new_emails(session: Session, emails: list[Email]) -> list[Email]:
    """Insert emails whose message_id is not stored yet. Returns the inserted rows."""
    if not emails:
        return []
    known = set(session.exec(
        select(Email.message_id).where(Email.message_id.in_([e.message_id for e in emails]))
    ).all())
    fresh = [e for e in emails if e.message_id not in known]
    for email in fresh:
        session.add(email)
    session.commit()
    for email in fresh:
        session.refresh(email)
    return fresh


async def fetch_new_emails(session: Session, limit: int | None = None) -> list[Email]:
    """Pull unread inbox messages and store the ones not seen before."""
    emails = await _run_imap(_fetch_unseen, limit or settings.email_fetch_limit)
    stored = store_new_emails(session, emails)
    logger.info("Fetched %d messages, %d new", len(emails), len(stored))
    return stored


# === Mailbox operations ===


def _store_flag(uid: str, flag: str, expunge: bool = False) -> None:
    with _open_inbox() as conn:
        typ, _ = conn.uid("STORE", uid, "+FLAGS", f"({flag})")
        if typ != "OK":
            raise EmailGatewayError(f"Could not set {flag} on message {uid}")
        if expunge:
            conn.expunge()


def _move(uid: str, folder: str) -> None:
    with _open_inbox() as conn:
        typ, _ = conn.uid("MOVE", uid, folder)
        if typ != "OK":
            raise EmailGatewayError(f"Could not move message {uid} to {folder}")


async def mark_as_read(message_id: str) -> None:
    await _run_imap(_store_flag, message_id, "\\Seen")


async def move_to_folder(message_id: str, folder: str) -> None:
    await _run_imap(_move, message_id, folder)


async def archive(message_id: str) -> None:
    await move_to_folder(message_id, ARCHIVE_MAILBOX)


async def delete_message(message_id: str) -> None:
    await _run_imap(_store_flag, message_id, "\\Deleted", True)


# === Sending ===


def _as_list(value: str | list[str] | None) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


async def send_email(
    to: str | list[str],
    subject: str,
    text: str,
    html: str | None = None,
    cc: str | list[str] | None = None,
    bcc: str | list[str] | None = None,
) -> str:
    """Send a message over SMTP. Returns the generated Message-ID."""
    _require_smtp()
    to_addrs, cc_addrs, bcc_addrs = _as_list(to), _as_list(cc), _as_list(bcc)
    if not to_addrs:
        raise ValueError("At least one recipient is required")

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.email_address
    msg["To"] = ", ".join(to_addrs)
    if cc_addrs:
        msg["Cc"] = ", ".join(cc_addrs)
    msg["Message-ID"] = make_msgid()
    msg.set_content(text)
    if html:
        msg.add_alternative(html, subtype="html")

    try:
        await aiosmtplib.send(
            msg,
            recipients=to_addrs + cc_addrs + bcc_addrs,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            start_tls=True,
            username=settings.email_address,
            password=settings.email_password,
        )
    except (aiosmtplib.SMTPException, OSError) as e:
        logger.warning("Failed to send email to %s: %s", ", ".join(to_addrs), e)
        raise EmailGatewayError(f"SMTP send failed: {e}") from e

    logger.info("Email sent to %s", ", ".join(to_addrs))
    return msg["Message-ID"]


def reply_subject(subject: str) -> str:
    return subject if subject.startswith("Re: ") else f"Re: {subject}"


def forward_subject(subject: str) -> str:
    return subject if subject.startswith("Fwd: ") else f"Fwd: {subject}"


def forward_body(original: Email, additional_text: str | None = None) -> str:
    return (
        f"{additional_text or ''}\n\n"
        f"{FORWARD_SEPARATOR}\n"
        f"From: {original.sender}\n"
        f"Subject: {original.subject}\n\n"
        f"{original.content}\n"
    )


async def reply_to(original: Email, text: str, html: str | None = None) -> str:
    """Reply to the sender, then mark the original read on the server."""
    message_id = await send_email(original.sender, reply_subject(original.subject), text, html)
    try:
        await mark_as_read(original.message_id)
    except EmailGatewayError as e:
        logger.warning("Reply sent but could not mark %s read: %s", original.message_id, e)
    return message_id


async def forward(original: Email, to: str | list[str], additional_text: str | None = None) -> str:
    return await send_email(to, forward_subject(original.subject), forward_body(original, additional_text))
