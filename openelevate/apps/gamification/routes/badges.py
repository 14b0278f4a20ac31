"""Badge API Routes"""

import logging
import math

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from openelevate.core.data.database import get_db
from openelevate.core.data.models import Badge
from openelevate.core.data.repositories import BadgeRepository, UserBadgeRepository
from openelevate.gamification.errors import DuplicateBadgeError, NotFoundError
from openelevate.gamification.processor import BadgeService, get_badge_service
from openelevate.gamification.schemas import (
    BadgeSchema,
    BadgeUpdateSchema,
    Rarity,
    dump_condition,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["badges"])


class BadgeListItem(BaseModel):
    """Badge list item model"""

    id: str
    title: str
    description: str
    icon_url: str | None
    condition: dict
    rarity: str
    points_awarded: int
    is_active: bool
    order_index: int


class BadgeDetail(BadgeListItem):
    """Badge detail model"""

    earned: bool | None = None
    earned_at: str | None = None
    progress: dict | None = None


class BadgeHolder(BaseModel):
    """A user holding a badge"""

    user_id: str
    name: str
    role: str
    awarded_at: str | None


class Pagination(BaseModel):
    """Page position within a listing"""

    page: int
    limit: int
    total_pages: int


class BadgeHoldersResponse(BaseModel):
    """One page of a badge's holders"""

    badge_id: str
    count: int
    total: int
    pagination: Pagination
    data: list[BadgeHolder]


def _list_item(badge: Badge) -> BadgeListItem:
    return BadgeListItem(**badge.to_dict())


@router.get("/badges", response_model=list[BadgeListItem])
def list_badges(
    rarity: Rarity | None = Query(None),
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
):
    """List the badge catalog"""
    badges = BadgeRepository(db).list_badges(include_inactive=include_inactive)
    if rarity is not None:
        badges = [badge for badge in badges if badge.rarity == rarity]
    return [_list_item(badge) for badge in badges]


@router.get("/badges/{badge_id}", response_model=BadgeDetail)
def get_badge(
    badge_id: str,
    user_id: str | None = Query(None),
    db: Session = Depends(get_db),
    badge_service: BadgeService = Depends(get_badge_service),
):
    """Get badge details, with the user's status when user_id is given"""
    badge = BadgeRepository(db).get_badge(badge_id)
    if not badge:
        raise NotFoundError("Badge", badge_id)

    detail = BadgeDetail(**badge.to_dict())
    if user_id is None:
        return detail

    user_badge = UserBadgeRepository(db).get_user_badge(user_id, badge_id)
    detail.earned = user_badge is not None
    detail.earned_at = user_badge.to_dict()["awarded_at"] if user_badge else None
    # progress is computed on demand and only while unearned
    if not detail.earned:
        detail.progress = badge_service.get_badge_progress(user_id, badge_id, db)
    return detail


@router.get("/badges/{badge_id}/users", response_model=BadgeHoldersResponse)
def list_badge_holders(
    badge_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Users who earned a badge, paginated"""
    if not BadgeRepository(db).get_badge(badge_id):
        raise NotFoundError("Badge", badge_id)

    repo = UserBadgeRepository(db)
    total = repo.count_holders(badge_id)
    holders = [
        BadgeHolder(
            user_id=user.id,
            name=user.name,
            role=user.role,
            awarded_at=user_badge.to_dict()["awarded_at"],
        )
        for user, user_badge in repo.list_holders(badge_id, page, limit)
    ]
    return BadgeHoldersResponse(
        badge_id=badge_id,
        count=len(holders),
        total=total,
        pagination=Pagination(
            page=page, limit=limit, total_pages=math.ceil(total / limit)
        ),
        data=holders,
    )


@router.post("/badges", response_model=BadgeListItem, status_code=201)
def create_badge(payload: BadgeSchema, db: Session = Depends(get_db)):
    """Create a badge"""
    repo = BadgeRepository(db)
    if repo.get_badge(payload.id) is not None:
        raise DuplicateBadgeError(f"Badge with ID {payload.id} already exists")
    if repo.get_badge_by_title(payload.title) is not None:
        raise DuplicateBadgeError(f"Badge with title '{payload.title}' already exists")

    values = payload.model_dump(mode="json")
    values["condition"] = dump_condition(payload.condition)
    return _list_item(repo.create_badge(values))


@router.put("/badges/{badge_id}", response_model=BadgeListItem)
def update_badge(
    badge_id: str, payload: BadgeUpdateSchema, db: Session = Depends(get_db)
):
    """Update a badge; omitted fields are left unchanged"""
    repo = BadgeRepository(db)
    badge = repo.get_badge(badge_id)
    if not badge:
        raise NotFoundError("Badge", badge_id)

    updates = payload.model_dump(mode="json", exclude_unset=True)
    if payload.condition is not None:
        updates["condition"] = dump_condition(payload.condition)
    if "title" in updates:
        other = repo.get_badge_by_title(updates["title"])
        if other is not None and other.id != badge_id:
            raise DuplicateBadgeError(
                f"Badge with title '{updates['title']}' already exists"
            )
    return _list_item(repo.update_badge(badge, updates))
