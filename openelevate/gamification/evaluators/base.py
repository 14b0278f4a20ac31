"""Base Badge Evaluator"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from openelevate.core.data.models import User
from openelevate.gamification.evaluators.result import EvaluationResult
from openelevate.gamification.schemas.conditions import BadgeCondition

logger = logging.getLogger(__name__)


class BaseEvaluator(ABC):
    """
    Abstract base class for badge evaluators.

    An evaluator is bound to one badge and its typed condition and answers
    whether a user currently satisfies that condition. Evaluators only read
    state; awarding is the BadgeService's job.
    """

    def __init__(self, badge_id: str, condition: BadgeCondition):
        """Initialize the evaluator

        Args:
            badge_id: The ID of the badge this evaluator is associated with
            condition: The parsed badge condition
        """
        self.badge_id = badge_id
        self.condition = condition
        self._validate_condition()

    def _validate_condition(self) -> None:
        """Validate the condition - Expected to be overridden by subclasses"""

    @abstractmethod
    def get_relevant_event_types(self) -> list[str]:
        """Return list of event types that can change this evaluator's answer.
        Used to narrow the scan when event filtering is enabled.
        Examples: ["contribution_verified", "project_created"]
        Returns:
            List of event type strings (supports wildcards like "*")
        """

    @abstractmethod
    def evaluate(self, user: User, db: Session, now: datetime) -> EvaluationResult:
        """Check whether the user currently satisfies the condition.

        Args:
            user: The user being evaluated
            db: The database session to use
            now: Evaluation time (timezone aware)
        Returns:
            EvaluationResult, truthy when the condition holds
        """

    def get_progress(self, user: User, db: Session, now: datetime) -> dict[str, Any]:
        """Get the progress of the user for the badge.

        Binary conditions report 0 or 1 out of 1.
        """
        done = bool(self.evaluate(user, db, now))
        return {
            "current": 1 if done else 0,
            "target": 1,
            "percentage": 100 if done else 0,
        }

    def matches_event_type(self, event_type: str) -> bool:
        """Check if an event type matches this evaluator's relevant types"""
        relevant = self.get_relevant_event_types()

        for pattern in relevant:
            if pattern.endswith("*"):
                prefix = pattern[:-1]
                if event_type.startswith(prefix):
                    return True
            elif pattern == event_type:
                return True

        return False


def count_progress(current: int, target: int) -> dict[str, Any]:
    """Progress payload for threshold conditions"""
    return {
        "current": current,
        "target": target,
        "percentage": min(100, int((current / target) * 100)) if target > 0 else 100,
    }
