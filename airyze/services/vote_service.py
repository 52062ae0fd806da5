"""Vote bookkeeping for community reports and polls.

Report votes toggle: repeating a vote removes it, voting the other way
switches it. Poll votes are final. Counter changes are issued as SQL
expressions in the same transaction as the vote row, so concurrent voters
never overwrite each other's increments; the unique (target, user)
constraint turns a racing duplicate insert into a conflict.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from airyze.core.errors import ConflictError, NotFoundError, ValidationError
from airyze.db.errors import db_errors
from airyze.models.poll import Poll, PollVote
from airyze.models.report import ReportVote, UserReport

logger = logging.getLogger(__name__)

UPVOTE = "upvote"
DOWNVOTE = "downvote"

ADDED = "added"
REMOVED = "removed"
SWITCHED = "switched"

REPORT_CONFLICT = "You've already voted on this report"
POLL_CONFLICT = "You can't add more than 1 vote in a poll"

_COUNTERS = {
    UPVOTE: UserReport.upvotes,
    DOWNVOTE: UserReport.downvotes,
}


def _increment(column):
    return column + 1


def _decrement(column):
    return case((column > 0, column - 1), else_=0)


@dataclass
class ReportVoteOutcome:
    action: str
    report: UserReport


def get_report_vote(db: Session, report_id: int, user_id: int) -> ReportVote | None:
    stmt = select(ReportVote).where(ReportVote.report_id == report_id, ReportVote.user_id == user_id)
    return db.execute(stmt).scalar_one_or_none()


def cast_report_vote(db: Session, report_id: int, user_id: int, vote_type: str) -> ReportVoteOutcome:
    """Apply an upvote/downvote action and return what happened to the caller's vote."""
    if vote_type not in _COUNTERS:
        raise ValidationError(f"Unknown vote type '{vote_type}'")

    report = db.get(UserReport, report_id)
    if report is None:
        raise NotFoundError("Report not found")

    existing = get_report_vote(db, report_id, user_id)

    with db_errors(db, conflict_message=REPORT_CONFLICT):
        if existing is None:
            db.add(ReportVote(report_id=report_id, user_id=user_id, vote_type=vote_type))
            db.flush()
            changes = {_COUNTERS[vote_type]: _increment(_COUNTERS[vote_type])}
            action = ADDED
        elif existing.vote_type == vote_type:
            db.delete(existing)
            db.flush()
            changes = {_COUNTERS[vote_type]: _decrement(_COUNTERS[vote_type])}
            action = REMOVED
        else:
            previous = existing.vote_type
            existing.vote_type = vote_type
            db.flush()
            changes = {
                _COUNTERS[previous]: _decrement(_COUNTERS[previous]),
                _COUNTERS[vote_type]: _increment(_COUNTERS[vote_type]),
            }
            action = SWITCHED

        db.execute(
            update(UserReport)
            .where(UserReport.id == report_id)
            .values(changes)
            .execution_options(synchronize_session=False)
        )
        db.commit()

    db.refresh(report)
    logger.info("Report %s vote by user %s: %s %s", report_id, user_id, vote_type, action)
    return ReportVoteOutcome(action=action, report=report)


def get_poll_vote(db: Session, poll_id: int, user_id: int) -> PollVote | None:
    stmt = select(PollVote).where(PollVote.poll_id == poll_id, PollVote.user_id == user_id)
    return db.execute(stmt).scalar_one_or_none()


def cast_poll_vote(db: Session, poll_id: int, user_id: int, option: str) -> tuple[PollVote, Poll]:
    """Record a user's single vote on a poll and refresh the poll's tallies."""
    if get_poll_vote(db, poll_id, user_id) is not None:
        raise ConflictError(POLL_CONFLICT)

    poll = db.execute(select(Poll).where(Poll.id == poll_id).with_for_update()).scalar_one_or_none()
    if poll is None:
        raise NotFoundError("Poll not found")
    if option not in poll.options:
        raise ValidationError(f"Invalid option. Must be one of: {', '.join(poll.options)}")

    with db_errors(db, conflict_message=POLL_CONFLICT):
        vote = PollVote(poll_id=poll_id, user_id=user_id, option=option)
        db.add(vote)
        db.flush()
        poll.votes = tally_poll_votes(db, poll)
        db.commit()

    db.refresh(vote)
    db.refresh(poll)
    logger.info("Poll %s vote by user %s: %s", poll_id, user_id, option)
    return vote, poll


def tally_poll_votes(db: Session, poll: Poll) -> dict[str, int]:
    """Option -> count derived from the stored vote rows."""
    stmt = (
        select(PollVote.option, func.count(PollVote.id))
        .where(PollVote.poll_id == poll.id)
        .group_by(PollVote.option)
    )
    counts = {option: 0 for option in poll.options}
    for option, count in db.execute(stmt):
        counts[option] = count
    return counts
