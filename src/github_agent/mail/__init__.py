"""Email templates, rendering, SMTP delivery and the outbound queue."""

from github_agent.mail.queue import EmailQueue
from github_agent.mail.renderer import render
from github_agent.mail.sender import EmailSender, SMTPConfig
from github_agent.mail.templates import REPOSITORY_REPORT_TEMPLATE, default_template_row

__all__ = [
    "EmailQueue",
    "EmailSender",
    "REPOSITORY_REPORT_TEMPLATE",
    "SMTPConfig",
    "default_template_row",
    "render",
]
