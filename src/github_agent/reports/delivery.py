"""
Report email delivery.

Renders a generated report through the user's active report template
(or the built-in one) and sends it with the user's SMTP settings.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from github_agent.db.repositories import EmailSettingsRepository, ReportRepository
from github_agent.exceptions import EmailNotConfiguredError
from github_agent.mail.queue import EmailQueue
from github_agent.mail.renderer import render
from github_agent.mail.sender import EmailSender
from github_agent.mail.templates import REPORT_TEMPLATE_TYPE, REPOSITORY_REPORT_TEMPLATE
from github_agent.models.db import RepositoryReport
from github_agent.reports.generator import template_variables
from github_agent.single_user import get_single_user_id

logger = logging.getLogger(__name__)


def render_report_email(
    session: Session, report: RepositoryReport, custom_subject: Optional[str] = None
) -> dict[str, Optional[str]]:
    """
    Render subject, HTML and text for a report email.

    Returns:
        {"subject", "html", "text"}
    """
    email_settings = EmailSettingsRepository(session).get_for_user(get_single_user_id())
    variables = template_variables(report, report.repository, email_settings)

    queue = EmailQueue(session)
    template = queue.get_template(REPORT_TEMPLATE_TYPE)
    if template is not None:
        content = queue.render_template(template, variables)
    else:
        content = {
            "subject": render(REPOSITORY_REPORT_TEMPLATE["subject"], variables),
            "html": render(REPOSITORY_REPORT_TEMPLATE["html"], variables, escape=True),
            "text": render(REPOSITORY_REPORT_TEMPLATE["text"], variables),
        }
    if custom_subject:
        content["subject"] = custom_subject
    return content


def email_report(
    session: Session,
    report: RepositoryReport,
    recipients: list[str],
    custom_subject: Optional[str] = None,
    sender: Optional[EmailSender] = None,
) -> str:
    """
    Send a report and mark it as sent.

    Args:
        session: Database session
        report: Generated report
        recipients: Destination addresses
        custom_subject: Overrides the template subject
        sender: SMTP sender (default: built from the user's email settings)

    Returns:
        Message-ID of the sent email

    Raises:
        EmailNotConfiguredError: If no sender is given and no settings exist
        EmailDeliveryError: If sending fails
    """
    if sender is None:
        email_settings = EmailSettingsRepository(session).get_for_user(get_single_user_id())
        if email_settings is None:
            raise EmailNotConfiguredError(
                "Email settings not configured. Please configure SMTP settings first."
            )
        sender = EmailSender.from_settings(email_settings)

    content = render_report_email(session, report, custom_subject)
    message_id = sender.send(
        to=recipients,
        subject=content["subject"],
        html=content["html"],
        text=content["text"],
    )
    ReportRepository(session).mark_sent(report, recipients)
    logger.info("Emailed report %s to %d recipients", report.id, len(recipients))
    return message_id
