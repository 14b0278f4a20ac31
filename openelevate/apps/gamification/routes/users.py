"""User badge routes"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from openelevate.core.data.database import get_db
from openelevate.core.data.models import UserBadge
from openelevate.core.data.repositories import UserBadgeRepository, UserRepository
from openelevate.gamification.errors import NotFoundError
from openelevate.gamification.processor import BadgeService, get_badge_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["users"])


class UserBadgeItem(BaseModel):
    """An awarded badge"""

    badge_id: str
    title: str
    description: str | None
    icon_url: str | None
    awarded_at: str | None
    points_awarded: int


class UserBadgesResponse(BaseModel):
    """A user's badges and point totals"""

    user_id: str
    points: int
    contribution_points: int
    badges: list[UserBadgeItem]


class AwardResponse(BaseModel):
    """Badges granted by a check"""

    user_id: str
    awarded: list[UserBadgeItem]
    points: int


class EventRequest(BaseModel):
    """A domain event reported for a user"""

    event_type: str = Field(min_length=1, max_length=64)
    event_data: dict[str, Any] | None = None


def _award_response(user_id: str, awarded: list[UserBadge], db: Session):
    user = UserRepository(db).find_by_id(user_id)
    return AwardResponse(
        user_id=user_id,
        awarded=[UserBadgeItem(**award.to_dict()) for award in awarded],
        points=user.points if user else 0,
    )


@router.get("/{user_id}/badges", response_model=UserBadgesResponse)
def get_user_badges(user_id: str, db: Session = Depends(get_db)):
    """List the badges a user has earned"""
    user = UserRepository(db).find_by_id(user_id)
    if not user:
        raise NotFoundError("User", user_id)

    earned = UserBadgeRepository(db).get_earned_badges(user_id)
    return UserBadgesResponse(
        user_id=user.id,
        points=user.points,
        contribution_points=user.contribution_points,
        badges=[UserBadgeItem(**user_badge.to_dict()) for user_badge in earned],
    )


@router.post("/{user_id}/badges/check", response_model=AwardResponse)
def check_badges(
    user_id: str,
    db: Session = Depends(get_db),
    badge_service: BadgeService = Depends(get_badge_service),
):
    """Award every badge the user now qualifies for"""
    awarded = badge_service.check_and_award(user_id, db)
    return _award_response(user_id, awarded, db)


@router.post("/{user_id}/events", response_model=AwardResponse)
def report_event(
    user_id: str,
    payload: EventRequest,
    db: Session = Depends(get_db),
    badge_service: BadgeService = Depends(get_badge_service),
):
    """Run the badge check for a domain event"""
    awarded = badge_service.process_event(
        user_id, payload.event_type, db, event_data=payload.event_data
    )
    return _award_response(user_id, awarded, db)
