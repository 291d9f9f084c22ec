"""
Repository report API routes.

Reports are generated from live GitHub data for a period and can be
emailed with the user's SMTP settings.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from github_agent.api.dependencies import get_github_client
from github_agent.api.schemas import (
    ReportEmailRequest,
    ReportGenerateRequest,
    ReportResponse,
    dump,
)
from github_agent.db.connection import get_db
from github_agent.db.repositories import ReportRepository, coerce_uuid
from github_agent.exceptions import (
    CredentialEncryptionError,
    EmailDeliveryError,
    EmailNotConfiguredError,
)
from github_agent.integrations.github import GitHubClient
from github_agent.models.db import RepositoryReport
from github_agent.reports import ReportGenerator, email_report

router = APIRouter()
logger = logging.getLogger(__name__)

DEFAULT_PERIOD = timedelta(days=7)


def _period(
    start: Optional[datetime], end: Optional[datetime]
) -> tuple[datetime, datetime]:
    end = end or datetime.now(timezone.utc)
    start = start or end - DEFAULT_PERIOD
    return start, end


def _generate(
    session: Session,
    github: GitHubClient,
    request: ReportGenerateRequest,
) -> RepositoryReport:
    start, end = _period(request.period_start, request.period_end)
    try:
        return ReportGenerator(session, github=github).generate(
            request.repository_id, start, end
        )
    except LookupError as exc:
        raise HTTPException(status_code=404, detail="Repository not found") from exc
    except Exception as exc:
        logger.exception("Report generation failed for %s", request.repository_id)
        raise HTTPException(status_code=500, detail="Failed to generate report") from exc


@router.get("")
def list_reports(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    repository_id: Optional[str] = Query(default=None, alias="repositoryId"),
    session: Session = Depends(get_db),
) -> dict[str, Any]:
    reports, total = ReportRepository(session).paginate(
        page=page, limit=limit, repository_id=coerce_uuid(repository_id)
    )
    return {
        "success": True,
        "data": [dump(ReportResponse, r) for r in reports],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
    }


@router.delete("")
def delete_report(
    report_id: Optional[str] = Query(default=None, alias="id"),
    session: Session = Depends(get_db),
) -> dict[str, Any]:
    if not report_id:
        raise HTTPException(status_code=400, detail="Report ID is required")

    reports = ReportRepository(session)
    report = reports.get(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    reports.delete(report)
    return {"success": True, "message": "Report deleted successfully"}


@router.post("/generate")
def generate_report(
    request: ReportGenerateRequest,
    session: Session = Depends(get_db),
    github: GitHubClient = Depends(get_github_client),
) -> dict[str, Any]:
    """Generate a report; the period defaults to the last 7 days."""
    if not request.repository_id:
        raise HTTPException(status_code=400, detail="Repository ID is required")

    report = _generate(session, github, request)
    return {
        "success": True,
        "message": "Report generated successfully",
        "data": {"reportId": str(report.id), "report": dump(ReportResponse, report)},
    }


@router.post("/email")
def email_report_route(
    request: ReportEmailRequest,
    session: Session = Depends(get_db),
    github: GitHubClient = Depends(get_github_client),
) -> dict[str, Any]:
    """
    Email a report.

    A stored report is reused when reportId is given; otherwise a new one
    is generated for repositoryId and the requested period.
    """
    if not request.recipients:
        raise HTTPException(status_code=400, detail="Recipients array is required")

    report = ReportRepository(session).get(request.report_id) if request.report_id else None
    if report is None:
        if not request.repository_id:
            raise HTTPException(status_code=400, detail="repositoryId is required")
        report = _generate(session, github, request)

    try:
        message_id = email_report(
            session, report, request.recipients, request.custom_subject
        )
    except (EmailNotConfiguredError, CredentialEncryptionError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except EmailDeliveryError as exc:
        logger.exception("Report email failed for %s", report.id)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return {
        "success": True,
        "message": "Report emailed successfully",
        "data": {"messageId": message_id},
    }
