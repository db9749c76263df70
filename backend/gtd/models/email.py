"""Email models.

Email rows mirror messages fetched from the IMAP inbox (deduplicated on
``message_id``) and mail sent from the app.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from sqlmodel import JSON, Column, SQLModel
from sqlmodel import Field as SQLField


class EmailFolder(str, Enum):
    INBOX = "INBOX"
    SENT = "SENT"
    DRAFTS = "DRAFTS"
    ARCHIVED = "ARCHIVED"
    TRASH = "TRASH"


class Email(SQLModel, table=True):
    """A mail message. ``processed`` flips once it has been clarified."""

    id: int | None = SQLField(default=None, primary_key=True)
    message_id: str = SQLField(unique=True, index=True)
    subject: str = "No Subject"
    sender: str = "Unknown Sender"
    recipients: list[str] = SQLField(default_factory=list, sa_column=Column(JSON))
    cc: list[str] = SQLField(default_factory=list, sa_column=Column(JSON))
    bcc: list[str] = SQLField(default_factory=list, sa_column=Column(JSON))
    content: str = ""
    html_content: str | None = None
    folder: str = SQLField(default=EmailFolder.INBOX.value, index=True)  # EmailFolder
    processed: bool = SQLField(default=False, index=True)
    flags: list[str] = SQLField(default_factory=list, sa_column=Column(JSON))
    received_at: datetime = SQLField(default_factory=lambda: datetime.now(timezone.utc))
    # Metadata only: {"filename", "content_type", "size"}
    attachments: list[dict] = SQLField(default_factory=list, sa_column=Column(JSON))
