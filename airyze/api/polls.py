"""Community polls: one vote per user per poll."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from airyze.core.deps import require_user_id
from airyze.core.errors import ValidationError
from airyze.db.errors import db_errors
from airyze.db.session import get_db
from airyze.models.poll import Poll
from airyze.schemas.poll import PollCreate, PollResponse, PollVoteRequest, PollVoteResponse
from airyze.services.vote_service import cast_poll_vote, get_poll_vote

router = APIRouter(prefix="/api/polls", tags=["polls"])


def _poll(poll: Poll) -> dict:
    return PollResponse.model_validate(poll).model_dump(mode="json")


@router.get("")
def list_polls(db: Session = Depends(get_db)):
    polls = db.execute(select(Poll).order_by(Poll.created_at.desc(), Poll.id.desc())).scalars().all()
    return {"success": True, "polls": [_poll(p) for p in polls]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_poll(
    data: PollCreate,
    user_id: int = Depends(require_user_id),
    db: Session = Depends(get_db),
):
    if data.question is None or data.options is None:
        raise ValidationError("question and options are required")
    if len(data.options) < 2:
        raise ValidationError("options must be an array with at least 2 options")
    if not data.question.strip():
        raise ValidationError("question cannot be empty")
    poll = Poll(
        question=data.question.strip(),
        options=list(data.options),
        votes={option: 0 for option in data.options},
    )
    with db_errors(db):
        db.add(poll)
        db.commit()
    db.refresh(poll)
    return {"success": True, "poll": _poll(poll)}


@router.post("/{poll_id}/vote", status_code=status.HTTP_201_CREATED)
def vote_on_poll(
    poll_id: int,
    data: PollVoteRequest,
    user_id: int = Depends(require_user_id),
    db: Session = Depends(get_db),
):
    if not data.option:
        raise ValidationError("user_id and option are required")
    vote, poll = cast_poll_vote(db, poll_id, user_id, data.option)
    return {
        "success": True,
        "vote": PollVoteResponse.model_validate(vote).model_dump(mode="json"),
        "poll": _poll(poll),
    }


@router.get("/{poll_id}/user-vote")
def get_user_poll_vote(
    poll_id: int,
    user_id: int = Depends(require_user_id),
    db: Session = Depends(get_db),
):
    vote = get_poll_vote(db, poll_id, user_id)
    return {
        "success": True,
        "vote": PollVoteResponse.model_validate(vote).model_dump(mode="json") if vote else None,
    }
