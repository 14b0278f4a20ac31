"""Special Condition Evaluator

Named achievements that do not fit a simple threshold. Each tag maps to one
predicate in SPECIAL_PREDICATES; a tag without a predicate never awards.
"""

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from openelevate.core.data.models import User
from openelevate.core.data.repositories import (
    ContributionRepository,
    GithubAnalyticsRepository,
)
from openelevate.gamification.evaluators.base import BaseEvaluator
from openelevate.gamification.evaluators.registry import register_evaluator
from openelevate.gamification.evaluators.result import EvaluationResult
from openelevate.gamification.schemas.conditions import (
    ConditionKind,
    SpecialCondition,
    SpecialTag,
)
from openelevate.gamification.schemas.events import GamificationEvent

logger = logging.getLogger(__name__)

MENTOR_RATING_THRESHOLD = 4.5
GITHUB_STARS_THRESHOLD = 100
DIVERSE_LANGUAGE_COUNT = 3
STREAK_DAYS = 7
PERFECT_RATING = 5


def _is_mentor(user: User, db: Session) -> EvaluationResult:
    return EvaluationResult(
        satisfied=user.role == "mentor",
        evidence={"role": user.role},
    )


def _has_perfect_contribution(user: User, db: Session) -> EvaluationResult:
    perfect = ContributionRepository(db).count_perfect_by_user(user.id)
    return EvaluationResult(
        satisfied=perfect >= 1,
        evidence={"perfect_contributions": perfect, "rating": PERFECT_RATING},
    )


def _has_mentor_rating(user: User, db: Session) -> EvaluationResult:
    rating = user.mentor_rating or 0.0
    return EvaluationResult(
        satisfied=user.role == "mentor" and rating >= MENTOR_RATING_THRESHOLD,
        evidence={
            "role": user.role,
            "mentor_rating": rating,
            "required_rating": MENTOR_RATING_THRESHOLD,
        },
    )


def _has_starred_repository(user: User, db: Session) -> EvaluationResult:
    analytics = GithubAnalyticsRepository(db)
    return EvaluationResult(
        satisfied=analytics.has_repo_with_stars_at_least(
            user.id, GITHUB_STARS_THRESHOLD
        ),
        evidence={
            "max_stars": analytics.max_stars(user.id),
            "required_stars": GITHUB_STARS_THRESHOLD,
        },
    )


def _is_diverse_contributor(user: User, db: Session) -> EvaluationResult:
    verified = ContributionRepository(db).find_verified_by_user(user.id)
    languages = sorted({language for _, language in verified if language})
    return EvaluationResult(
        satisfied=len(languages) >= DIVERSE_LANGUAGE_COUNT,
        evidence={
            "languages": languages,
            "required_languages": DIVERSE_LANGUAGE_COUNT,
        },
    )


def _has_streak(user: User, db: Session) -> EvaluationResult:
    streak = user.activity_streak or 0
    return EvaluationResult(
        satisfied=streak >= STREAK_DAYS,
        evidence={"activity_streak": streak, "required_days": STREAK_DAYS},
    )


SPECIAL_PREDICATES: dict[SpecialTag, Callable[[User, Session], EvaluationResult]] = {
    SpecialTag.BECOME_MENTOR: _is_mentor,
    SpecialTag.PERFECT_CONTRIBUTION: _has_perfect_contribution,
    SpecialTag.MENTOR_RATING: _has_mentor_rating,
    SpecialTag.GITHUB_STARS: _has_starred_repository,
    SpecialTag.DIVERSE_CONTRIBUTOR: _is_diverse_contributor,
    SpecialTag.STREAK_ACHIEVEMENT: _has_streak,
}

SPECIAL_EVENTS: dict[SpecialTag, list[str]] = {
    SpecialTag.BECOME_MENTOR: [
        GamificationEvent.MENTORSHIP_ACCEPTED,
        GamificationEvent.PROFILE_UPDATED,
    ],
    SpecialTag.PERFECT_CONTRIBUTION: [GamificationEvent.CONTRIBUTION_VERIFIED],
    SpecialTag.MENTOR_RATING: [
        GamificationEvent.MENTORSHIP_ACCEPTED,
        GamificationEvent.PROFILE_UPDATED,
    ],
    SpecialTag.GITHUB_STARS: [GamificationEvent.GITHUB_SYNCED],
    SpecialTag.DIVERSE_CONTRIBUTOR: [GamificationEvent.CONTRIBUTION_VERIFIED],
    # activity streaks are bumped by any activity
    SpecialTag.STREAK_ACHIEVEMENT: ["*"],
}


@register_evaluator(ConditionKind.SPECIAL)
class SpecialConditionEvaluator(BaseEvaluator):
    """Awards badges for named special achievements
    Condition:
        condition: One of the SpecialTag values
    """

    condition: SpecialCondition

    def get_relevant_event_types(self) -> list[str]:
        return SPECIAL_EVENTS.get(self.condition.condition, ["*"])

    def evaluate(self, user: User, db: Session, now: datetime) -> EvaluationResult:
        tag = self.condition.condition
        predicate = SPECIAL_PREDICATES.get(tag)
        if predicate is None:
            logger.warning(
                "Unknown special condition on badge %s: %s", self.badge_id, tag
            )
            return EvaluationResult(
                satisfied=False, message=f"Unknown special condition: {tag}"
            )

        result = predicate(user, db)
        result.message = f"Special condition {tag} {'met' if result else 'not met'}"
        return result
