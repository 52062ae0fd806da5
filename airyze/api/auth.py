"""Account, health profile, alert preference and badge endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from airyze.core.config import settings
from airyze.core.errors import AuthError, NotFoundError, ValidationError
from airyze.core.security import hash_password, verify_password
from airyze.db.errors import db_errors
from airyze.db.session import get_db
from airyze.models.user import User
from airyze.schemas.user import (
    AlertPrefs,
    AlertPrefsUpdate,
    BadgesUpdate,
    HealthProfile,
    LoginRequest,
    SignupRequest,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _public(user: User) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json")


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(data: SignupRequest, db: Session = Depends(get_db)):
    """Register a new user. Email must be unique."""
    if not (data.name and data.email and data.password and data.city):
        raise ValidationError("All fields are required")
    user = User(
        name=data.name,
        email=data.email.lower(),
        password=hash_password(data.password),
        city=data.city,
        badges=[],
    )
    with db_errors(db):
        db.add(user)
        db.commit()
    db.refresh(user)
    logger.info("User %s signed up", user.id)
    return {"success": True, "user": _public(user)}


@router.post("/login")
def login(data: LoginRequest, db: Session = Depends(get_db)):
    if not (data.email and data.password):
        raise ValidationError("Email and password are required")
    user = db.execute(select(User).where(User.email == data.email.lower())).scalar_one_or_none()
    if user is None or not verify_password(data.password, user.password):
        raise AuthError("Invalid email or password")
    return {"success": True, "user": _public(user)}


@router.patch("/profile/{user_id}")
def update_health_profile(user_id: int, data: HealthProfile, db: Session = Depends(get_db)):
    user = _get_user(db, user_id)
    user.health_profile = data.model_dump()
    with db_errors(db):
        db.commit()
    return {"success": True, "health_profile": user.health_profile}


@router.get("/profile/{user_id}")
def get_health_profile(user_id: int, db: Session = Depends(get_db)):
    return {"success": True, "health_profile": _get_user(db, user_id).health_profile}


@router.patch("/alert-prefs/{user_id}")
def update_alert_prefs(user_id: int, data: AlertPrefsUpdate, db: Session = Depends(get_db)):
    """Replace alert preferences; omitted fields take their defaults."""
    user = _get_user(db, user_id)
    prefs = AlertPrefs(**data.model_dump(exclude_none=True))
    user.alert_prefs = prefs.model_dump()
    with db_errors(db):
        db.commit()
    return {"success": True, "alert_prefs": user.alert_prefs}


@router.get("/alert-prefs/{user_id}")
def get_alert_prefs(user_id: int, db: Session = Depends(get_db)):
    return {"success": True, "alert_prefs": _get_user(db, user_id).alert_prefs}


@router.patch("/badges/{user_id}")
def update_badges(user_id: int, data: BadgesUpdate, db: Session = Depends(get_db)):
    user = _get_user(db, user_id)
    user.badges = [badge.model_dump() for badge in data.badges]
    with db_errors(db):
        db.commit()
    return {"success": True, "badges": user.badges}


@router.get("/badges/{user_id}")
def get_badges(user_id: int, db: Session = Depends(get_db)):
    return {"success": True, "badges": _get_user(db, user_id).badges or []}


@router.get("/track-alert/{user_id}")
def track_alert_open(user_id: int):
    """Email link target: log the open and continue to the dashboard."""
    logger.info("Alert opened by user %s", user_id)
    return RedirectResponse(
        url=f"{settings.frontend_url}?alert_opened=true&user_id={user_id}",
        status_code=status.HTTP_302_FOUND,
    )
