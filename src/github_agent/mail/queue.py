"""
Persistent outbound email queue.

Emails are stored in the email_queue table and sent in priority order by
process_queue(), which is run from the CLI. Failed sends are retried with
exponential backoff.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from github_agent.db.repositories import EmailQueueRepository, EmailTemplateRepository
from github_agent.exceptions import EmailDeliveryError
from github_agent.mail.renderer import render
from github_agent.mail.sender import EmailSender
from github_agent.models.db import EmailQueueEntry, EmailTemplate
from github_agent.single_user import get_single_user_id

logger = logging.getLogger(__name__)

BATCH_SIZE = 10
MAX_ATTEMPTS = 3


def _as_list(value: Optional[Iterable[str] | str]) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


class EmailQueue:
    """Queue operations over one database session."""

    def __init__(self, session: Session):
        self.session = session
        self.entries = EmailQueueRepository(session)
        self.templates = EmailTemplateRepository(session)

    def queue_email(
        self,
        to: Iterable[str] | str,
        subject: str,
        html: str,
        text: Optional[str] = None,
        cc: Optional[Iterable[str] | str] = None,
        bcc: Optional[Iterable[str] | str] = None,
        priority: int = 5,
        scheduled_for: Optional[datetime] = None,
        template_id=None,
        report_id=None,
    ) -> EmailQueueEntry:
        """
        Add an email to the queue.

        Args:
            priority: 1-10, higher is sent first
            scheduled_for: Earliest send time (default now)

        Returns:
            The queued entry
        """
        entry = self.entries.create(
            user_id=get_single_user_id(),
            template_id=template_id,
            report_id=report_id,
            to_emails=_as_list(to),
            cc_emails=_as_list(cc),
            bcc_emails=_as_list(bcc),
            subject=subject,
            html_content=html,
            text_content=text or "",
            priority=max(1, min(10, priority)),
            status="pending",
            scheduled_for=scheduled_for or datetime.now(timezone.utc),
        )
        logger.debug("Queued email %s (%s)", entry.id, subject)
        return entry

    def process_queue(self, sender: EmailSender) -> dict[str, int]:
        """
        Send due emails.

        Takes up to BATCH_SIZE pending or retry entries whose scheduled time
        has passed. A failed send is rescheduled 2**(attempts - 1) minutes
        later, one minute after the first failure and two after the second,
        until MAX_ATTEMPTS is reached; then it is marked failed.

        Returns:
            {"processed": sent count, "errors": failed count}
        """
        due = self.entries.due(limit=BATCH_SIZE)
        processed = errors = 0

        for entry in due:
            entry.status = "sending"
            entry.attempts += 1
            self.session.flush()

            try:
                sender.send(
                    to=entry.to_emails,
                    subject=entry.subject,
                    html=entry.html_content,
                    text=entry.text_content or None,
                    cc=entry.cc_emails,
                    bcc=entry.bcc_emails,
                )
            except EmailDeliveryError as e:
                errors += 1
                entry.error_message = str(e)
                if entry.attempts < MAX_ATTEMPTS:
                    entry.status = "retry"
                    entry.scheduled_for = datetime.now(timezone.utc) + timedelta(
                        minutes=2 ** (entry.attempts - 1)
                    )
                    logger.warning(
                        "Email %s failed (attempt %d), retrying: %s",
                        entry.id,
                        entry.attempts,
                        e,
                    )
                else:
                    entry.status = "failed"
                    logger.error("Email %s failed permanently: %s", entry.id, e)
            else:
                processed += 1
                entry.status = "sent"
                entry.sent_at = datetime.now(timezone.utc)
                entry.error_message = None
            self.session.flush()

        if due:
            logger.info("Processed email queue: %d sent, %d errors", processed, errors)
        return {"processed": processed, "errors": errors}

    def get_template(self, template_type: str) -> Optional[EmailTemplate]:
        return self.templates.get_active_by_type(template_type)

    def render_template(
        self, template: EmailTemplate, variables: dict[str, Any]
    ) -> dict[str, Optional[str]]:
        """Render a stored template's subject, HTML and text parts."""
        return {
            "subject": render(template.subject, variables),
            "html": render(template.html_content, variables, escape=True),
            "text": (
                render(template.text_content, variables) if template.text_content else None
            ),
        }
