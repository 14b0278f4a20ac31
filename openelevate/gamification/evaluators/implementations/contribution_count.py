"""Contribution Count Evaluator"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from openelevate.core.data.models import User
from openelevate.core.data.repositories import ContributionRepository
from openelevate.gamification.evaluators.base import BaseEvaluator, count_progress
from openelevate.gamification.evaluators.registry import register_evaluator
from openelevate.gamification.evaluators.result import EvaluationResult
from openelevate.gamification.schemas.conditions import (
    ConditionKind,
    ContributionCountCondition,
)
from openelevate.gamification.schemas.events import GamificationEvent

logger = logging.getLogger(__name__)

COUNTED_STATUS = "verified"


@register_evaluator(ConditionKind.CONTRIBUTION_COUNT)
class ContributionCountEvaluator(BaseEvaluator):
    """Awards badges based on the number of verified contributions
    Condition:
        count: Minimum number of verified contributions
    """

    condition: ContributionCountCondition

    def get_relevant_event_types(self) -> list[str]:
        """Only a verification changes the verified count"""
        return [GamificationEvent.CONTRIBUTION_VERIFIED]

    def _count(self, user: User, db: Session) -> int:
        return ContributionRepository(db).count_by_user_and_status(
            user.id, COUNTED_STATUS
        )

    def evaluate(self, user: User, db: Session, now: datetime) -> EvaluationResult:
        """Check if user has enough verified contributions"""
        required = self.condition.count
        count = self._count(user, db)

        if count >= required:
            return EvaluationResult(
                satisfied=True,
                message=f"User has {count} verified contributions (need {required})",
                evidence={"contribution_count": count, "required_count": required},
            )

        return EvaluationResult(
            satisfied=False,
            message=f"User has {count}/{required} verified contributions",
            evidence={"contribution_count": count, "required_count": required},
        )

    def get_progress(self, user: User, db: Session, now: datetime) -> dict[str, Any]:
        """Get progress toward badge"""
        return count_progress(self._count(user, db), self.condition.count)
