"""Time Active Evaluator"""

from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from openelevate.core.data.models import User
from openelevate.gamification.evaluators.base import BaseEvaluator, count_progress
from openelevate.gamification.evaluators.registry import register_evaluator
from openelevate.gamification.evaluators.result import EvaluationResult
from openelevate.gamification.schemas.conditions import (
    ConditionKind,
    TimeActiveCondition,
)

ONE_DAY = timedelta(days=1)


def days_since(start: datetime, now: datetime) -> int:
    """Whole days elapsed, truncated toward the past.

    Naive timestamps are treated as UTC.
    """
    if start.tzinfo is None:
        start = start.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return (now - start) // ONE_DAY


@register_evaluator(ConditionKind.TIME_ACTIVE)
class TimeActiveEvaluator(BaseEvaluator):
    """Awards badges once the account is old enough
    Condition:
        days: Whole days since registration
    """

    condition: TimeActiveCondition

    def get_relevant_event_types(self) -> list[str]:
        """Account age grows on its own, so every event is relevant"""
        return ["*"]

    def evaluate(self, user: User, db: Session, now: datetime) -> EvaluationResult:
        if user.created_at is None:
            return EvaluationResult(
                satisfied=False, message="User has no registration date"
            )

        required = self.condition.days
        days_active = days_since(user.created_at, now)
        return EvaluationResult(
            satisfied=days_active >= required,
            message=f"User active for {days_active}/{required} days",
            evidence={"days_active": days_active, "required_days": required},
        )

    def get_progress(self, user: User, db: Session, now: datetime) -> dict[str, Any]:
        days_active = days_since(user.created_at, now) if user.created_at else 0
        return count_progress(max(days_active, 0), self.condition.days)
