"""On-demand alert emails."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from airyze.core.context import AppContext, get_context
from airyze.db.session import get_db

router = APIRouter(prefix="/api/alerts", tags=["alerts"])


@router.post("/instant/{user_id}")
def send_instant_alert(user_id: int, db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    """Email the user a report for their city right now."""
    reading = ctx.dispatcher.send_instant(db, user_id)
    return {"success": True, "message": "Instant alert sent successfully", "aqi": reading.aqi}
