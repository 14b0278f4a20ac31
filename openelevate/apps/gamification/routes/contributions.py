"""Contribution verification routes"""

import logging

import redis.asyncio as redis
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from openelevate.core.data.database import get_db
from openelevate.core.messaging.events import event_bus
from openelevate.gamification.processor import (
    BadgeService,
    ContributionService,
    get_badge_service,
)
from openelevate.gamification.schemas.events import GamificationEvent

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/contributions", tags=["contributions"])


class VerifyRequest(BaseModel):
    """Final status chosen by the reviewer"""

    status: str
    verifier_id: str | None = None


class VerifyResponse(BaseModel):
    """Updated contribution and badges it unlocked"""

    contribution: dict
    awarded: list[dict]


@router.post("/{contribution_id}/verify", response_model=VerifyResponse)
async def verify_contribution(
    contribution_id: int,
    payload: VerifyRequest,
    db: Session = Depends(get_db),
    badge_service: BadgeService = Depends(get_badge_service),
):
    """Close out a contribution and credit its points"""
    service = ContributionService(badge_service)
    contribution, awarded = service.verify_contribution(
        contribution_id, payload.status, db, verifier_id=payload.verifier_id
    )

    # the verification is committed; downstream consumers learn of it from the stream
    try:
        await event_bus.emit_domain_event(
            GamificationEvent.CONTRIBUTION_VERIFIED,
            contribution.user_id,
            {
                "contribution_id": contribution.id,
                "status": contribution.status,
                "points": contribution.points,
            },
        )
    except redis.RedisError as e:
        logger.error(
            "Could not publish verification of contribution %s: %s", contribution.id, e
        )

    return VerifyResponse(
        contribution=contribution.to_dict(),
        awarded=[award.to_dict() for award in awarded],
    )
