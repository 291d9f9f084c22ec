"""Repository reports."""

from github_agent.reports.delivery import email_report, render_report_email
from github_agent.reports.generator import ReportGenerator, template_variables

__all__ = ["ReportGenerator", "email_report", "render_report_email", "template_variables"]
