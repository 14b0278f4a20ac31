"""Project Count Evaluator"""

from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from openelevate.core.data.models import User
from openelevate.core.data.repositories import ProjectRepository
from openelevate.gamification.evaluators.base import BaseEvaluator, count_progress
from openelevate.gamification.evaluators.registry import register_evaluator
from openelevate.gamification.evaluators.result import EvaluationResult
from openelevate.gamification.schemas.conditions import (
    ConditionKind,
    ProjectCountCondition,
)
from openelevate.gamification.schemas.events import GamificationEvent


@register_evaluator(ConditionKind.PROJECT_COUNT)
class ProjectCountEvaluator(BaseEvaluator):
    """Awards badges based on the number of projects a user created"""

    condition: ProjectCountCondition

    def get_relevant_event_types(self) -> list[str]:
        return [GamificationEvent.PROJECT_CREATED]

    def evaluate(self, user: User, db: Session, now: datetime) -> EvaluationResult:
        required = self.condition.count
        count = ProjectRepository(db).count_by_creator(user.id)
        return EvaluationResult(
            satisfied=count >= required,
            message=f"User created {count}/{required} projects",
            evidence={"project_count": count, "required_count": required},
        )

    def get_progress(self, user: User, db: Session, now: datetime) -> dict[str, Any]:
        count = ProjectRepository(db).count_by_creator(user.id)
        return count_progress(count, self.condition.count)
