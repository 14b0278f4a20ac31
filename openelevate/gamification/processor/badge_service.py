"""Badge Awarding Service"""

import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from openelevate.config import settings
from openelevate.core.data.models import Badge, User, UserBadge
from openelevate.core.data.repositories import BadgeRepository, UserRepository
from openelevate.gamification.errors import (
    EvaluationError,
    NotFoundError,
    PersistenceError,
)
from openelevate.gamification.evaluators import BaseEvaluator, create_evaluator
from openelevate.gamification.schemas.conditions import parse_condition
from openelevate.gamification.schemas.events import GamificationEvent

logger = logging.getLogger(__name__)


class _AwardConflict(Exception):
    """A concurrent writer touched the same user while awarding"""


class BadgeService:
    """Handles badge evaluation and awarding"""

    def __init__(self):
        # keyed by (badge id, raw condition) so edited badges get a new evaluator
        self._evaluators_cache: dict[tuple[str, str], BaseEvaluator | None] = {}

    def get_evaluator_for_badge(self, badge: Badge) -> BaseEvaluator | None:
        """Get or create evaluator for a badge.

        Returns None when the stored condition does not parse; such badges
        are never awarded.
        """
        key = (badge.id, badge.condition or "")
        if key not in self._evaluators_cache:
            try:
                condition = parse_condition(badge.get_condition_data())
                evaluator = create_evaluator(badge.id, condition)
            except (ValidationError, ValueError) as e:
                logger.warning("Invalid condition on badge %s: %s", badge.id, e)
                evaluator = None
            self._evaluators_cache[key] = evaluator
        return self._evaluators_cache[key]

    def check_and_award(
        self, user_id: str, db: Session, now: datetime | None = None
    ) -> list[UserBadge]:
        """Award every active badge the user now qualifies for.

        Returns the newly created award records; an empty list when nothing
        new was earned.

        Raises:
            NotFoundError: the user does not exist
            PersistenceError: the award could not be stored
        """
        return self._check(user_id, db, now)

    def process_event(
        self,
        user_id: str,
        event_type: str,
        db: Session,
        event_data: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> list[UserBadge]:
        """Run the badge check for a domain event.

        A full rescan unless BADGE_EVENT_FILTERING is on and the event type
        is known, in which case only badges that declare the event relevant
        are evaluated.
        """
        logger.debug(
            "Processing %s for user %s (%s)", event_type, user_id, event_data or {}
        )
        if settings.BADGE_EVENT_FILTERING and GamificationEvent.is_known(event_type):
            return self._check(user_id, db, now, event_type=event_type)
        return self._check(user_id, db, now)

    def get_badge_progress(
        self, user_id: str, badge_id: str, db: Session, now: datetime | None = None
    ) -> dict[str, Any]:
        """Progress of a user toward one badge"""
        user = UserRepository(db).find_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        badge = BadgeRepository(db).get_badge(badge_id)
        if badge is None:
            raise NotFoundError("Badge", badge_id)

        evaluator = self.get_evaluator_for_badge(badge)
        if evaluator is None:
            return {"current": 0, "target": 1, "percentage": 0}
        return evaluator.get_progress(user, db, now or datetime.now(UTC))

    def _check(
        self,
        user_id: str,
        db: Session,
        now: datetime | None,
        event_type: str | None = None,
    ) -> list[UserBadge]:
        attempts = settings.BADGE_AWARD_MAX_RETRIES
        now = now or datetime.now(UTC)
        for attempt in range(1, attempts + 1):
            try:
                return self._check_once(user_id, db, now, event_type)
            except _AwardConflict as e:
                logger.warning(
                    "Award conflict for user %s (attempt %d/%d): %s",
                    user_id,
                    attempt,
                    attempts,
                    e,
                )
        logger.error(
            "Giving up awarding badges to user %s after %d attempts", user_id, attempts
        )
        raise PersistenceError(
            f"Could not award badges to user {user_id} after {attempts} attempts"
        )

    def _check_once(
        self, user_id: str, db: Session, now: datetime, event_type: str | None
    ) -> list[UserBadge]:
        user = UserRepository(db).find_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)

        held = user.held_badge_ids()
        candidates = [
            badge for badge in BadgeRepository(db).find_active() if badge.id not in held
        ]
        if not candidates:
            return []

        earned = []
        for badge in candidates:
            evaluator = self.get_evaluator_for_badge(badge)
            if evaluator is None:
                continue
            if event_type is not None and not evaluator.matches_event_type(event_type):
                continue
            try:
                if self._evaluate(evaluator, user, db, now):
                    earned.append(badge)
            except EvaluationError as e:
                logger.warning("%s", e)
                db.rollback()

        if not earned:
            return []
        return self._apply_awards(db, user, earned, now)

    def _evaluate(
        self, evaluator: BaseEvaluator, user: User, db: Session, now: datetime
    ) -> bool:
        try:
            result = evaluator.evaluate(user, db, now)
        except Exception as e:  # pylint: disable=broad-exception-caught
            raise EvaluationError(evaluator.badge_id, str(e)) from e
        logger.debug(
            "Badge %s for user %s: %s", evaluator.badge_id, user.id, result.message
        )
        return bool(result)

    def _apply_awards(
        self, db: Session, user: User, badges: list[Badge], now: datetime
    ) -> list[UserBadge]:
        """Record every earned badge and credit its points in one commit"""
        awards = [
            UserBadge(
                badge_id=badge.id,
                title=badge.title,
                description=badge.description,
                icon_url=badge.icon_url,
                points_awarded=badge.points_awarded or 0,
                awarded_at=now,
            )
            for badge in badges
        ]
        user.badges.extend(awards)
        user.points = (user.points or 0) + sum(a.points_awarded for a in awards)

        try:
            UserRepository(db).save(user)
        except (StaleDataError, IntegrityError) as e:
            db.rollback()
            raise _AwardConflict(str(e)) from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to award badges to user %s: %s", user.id, e)
            raise PersistenceError(f"Failed to award badges to user {user.id}") from e

        for award in awards:
            logger.info("Badge awarded: %s to user %s", award.badge_id, user.id)
        return awards

    def clear_cache(self):
        """Clear evaluator cache (for reloading definitions)"""
        self._evaluators_cache.clear()


# Singleton instance
_badge_service: BadgeService | None = None


def get_badge_service() -> BadgeService:
    """Get singleton badge service (shares the evaluator cache)"""
    global _badge_service  # pylint: disable=global-statement
    if _badge_service is None:
        _badge_service = BadgeService()
    return _badge_service
