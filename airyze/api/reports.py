"""Community air-quality reports and their votes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from airyze.core.deps import require_user_id
from airyze.core.errors import ValidationError
from airyze.db.errors import db_errors
from airyze.db.session import get_db
from airyze.models.report import UserReport
from airyze.schemas.report import ReportCreate, ReportResponse, ReportVoteResponse
from airyze.services.vote_service import (
    DOWNVOTE,
    UPVOTE,
    ReportVoteOutcome,
    cast_report_vote,
    get_report_vote,
)

router = APIRouter(prefix="/api/user-reports", tags=["reports"])


def _vote_response(outcome: ReportVoteOutcome) -> dict:
    return {
        "success": True,
        "report": ReportResponse.model_validate(outcome.report).model_dump(mode="json"),
        "action": outcome.action,
    }


@router.get("")
def list_reports(search: str | None = Query(default=None), db: Session = Depends(get_db)):
    """All reports, newest first, optionally filtered by description text."""
    stmt = select(UserReport).order_by(UserReport.timestamp.desc(), UserReport.id.desc())
    if search and search.strip():
        stmt = stmt.where(UserReport.description.ilike(f"%{search.strip()}%"))
    reports = db.execute(stmt).scalars().all()
    return {
        "success": True,
        "reports": [ReportResponse.model_validate(r).model_dump(mode="json") for r in reports],
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_report(
    data: ReportCreate,
    user_id: int = Depends(require_user_id),
    db: Session = Depends(get_db),
):
    if data.lat is None or data.lon is None or data.description is None:
        raise ValidationError("user_id, lat, lon, and description are required")
    if not data.description.strip():
        raise ValidationError("Description cannot be empty")
    report = UserReport(
        user_id=user_id,
        lat=data.lat,
        lon=data.lon,
        description=data.description.strip(),
        photo_url=data.photo_url,
    )
    with db_errors(db):
        db.add(report)
        db.commit()
    db.refresh(report)
    return {"success": True, "report": ReportResponse.model_validate(report).model_dump(mode="json")}


@router.api_route("/{report_id}/upvote", methods=["PATCH", "POST"])
def upvote_report(
    report_id: int,
    user_id: int = Depends(require_user_id),
    db: Session = Depends(get_db),
):
    """Toggle the caller's upvote; an existing downvote is switched."""
    return _vote_response(cast_report_vote(db, report_id, user_id, UPVOTE))


@router.api_route("/{report_id}/downvote", methods=["PATCH", "POST"])
def downvote_report(
    report_id: int,
    user_id: int = Depends(require_user_id),
    db: Session = Depends(get_db),
):
    return _vote_response(cast_report_vote(db, report_id, user_id, DOWNVOTE))


@router.get("/{report_id}/user-vote")
def get_user_report_vote(
    report_id: int,
    user_id: int = Depends(require_user_id),
    db: Session = Depends(get_db),
):
    vote = get_report_vote(db, report_id, user_id)
    return {
        "success": True,
        "vote": ReportVoteResponse.model_validate(vote).model_dump(mode="json") if vote else None,
    }
