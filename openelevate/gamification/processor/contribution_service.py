"""Contribution verification

Moves a contribution to a terminal status, credits its points to the author's
contribution tally and then lets the badge engine react.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from openelevate.core.data.models import Contribution, UserBadge
from openelevate.core.data.repositories import ContributionRepository, UserRepository
from openelevate.gamification.errors import InvalidTransitionError, NotFoundError
from openelevate.gamification.processor.badge_service import (
    BadgeService,
    get_badge_service,
)
from openelevate.gamification.processor.points import calculate_contribution_points
from openelevate.gamification.schemas.events import GamificationEvent

logger = logging.getLogger(__name__)

OPEN_STATUSES = frozenset({"pending", "open"})
TERMINAL_STATUSES = frozenset({"verified", "approved", "merged", "rejected", "closed"})


class ContributionService:
    """Verification flow for contributions"""

    def __init__(self, badge_service: BadgeService | None = None):
        self.badge_service = badge_service or get_badge_service()

    def verify_contribution(
        self,
        contribution_id: int,
        status: str,
        db: Session,
        verifier_id: str | None = None,
    ) -> tuple[Contribution, list[UserBadge]]:
        """Set the final status of a contribution.

        Returns the updated contribution and any badges the author earned.

        Raises:
            NotFoundError: unknown contribution or author
            InvalidTransitionError: target status is not terminal, or the
                contribution was already closed out
        """
        if status not in TERMINAL_STATUSES:
            raise InvalidTransitionError(
                f"Cannot verify contribution with status '{status}'"
            )

        contribution = ContributionRepository(db).get_contribution(contribution_id)
        if contribution is None:
            raise NotFoundError("Contribution", contribution_id)
        if contribution.status not in OPEN_STATUSES:
            raise InvalidTransitionError(
                f"Contribution {contribution_id} is already {contribution.status}"
            )

        author = UserRepository(db).find_by_id(contribution.user_id)
        if author is None:
            raise NotFoundError("User", contribution.user_id)

        points = calculate_contribution_points(contribution.type, status)
        contribution.status = status
        contribution.points = points
        contribution.verified_by = verifier_id
        contribution.verified_at = datetime.now(UTC)
        author.contribution_points = (author.contribution_points or 0) + points
        db.commit()
        logger.info(
            "Contribution %s marked %s (%d points to user %s)",
            contribution_id,
            status,
            points,
            author.id,
        )

        awarded = self.badge_service.process_event(
            author.id,
            GamificationEvent.CONTRIBUTION_VERIFIED,
            db,
            event_data={"contribution_id": contribution_id, "status": status},
        )
        db.refresh(contribution)
        return contribution, awarded
