"""Skill Level Evaluator"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from openelevate.core.data.models import User
from openelevate.gamification.evaluators.base import BaseEvaluator
from openelevate.gamification.evaluators.registry import register_evaluator
from openelevate.gamification.evaluators.result import EvaluationResult
from openelevate.gamification.schemas.conditions import (
    ConditionKind,
    SkillLevelCondition,
)
from openelevate.gamification.schemas.events import GamificationEvent

logger = logging.getLogger(__name__)


def parse_skill_spec(spec: str) -> tuple[str, int] | None:
    """Split "<name>:<level>" on the first colon.

    Returns None when the name is empty or the level is not an integer.
    """
    name, _, level = spec.partition(":")
    name = name.strip()
    try:
        required_level = int(level.strip())
    except ValueError:
        return None
    if not name:
        return None
    return name, required_level


@register_evaluator(ConditionKind.SKILL_LEVEL)
class SkillLevelEvaluator(BaseEvaluator):
    """Awards badges for reaching a level in a named skill
    Condition:
        skill: "<name>:<level>", e.g. "javascript:3"
    """

    condition: SkillLevelCondition

    def get_relevant_event_types(self) -> list[str]:
        return [GamificationEvent.SKILL_UPDATED, GamificationEvent.PROFILE_UPDATED]

    def evaluate(self, user: User, db: Session, now: datetime) -> EvaluationResult:
        parsed = parse_skill_spec(self.condition.skill)
        if parsed is None:
            logger.warning(
                "Invalid skill format on badge %s: %s",
                self.badge_id,
                self.condition.skill,
            )
            return EvaluationResult(
                satisfied=False,
                message=f"Invalid skill format: {self.condition.skill}",
            )

        skill_name, required_level = parsed
        wanted = skill_name.lower()
        for skill in user.get_skills():
            name = str(skill.get("name", "")).lower()
            level = skill.get("level")
            # bool is an int subclass; true is not a level
            is_level = isinstance(level, int) and not isinstance(level, bool)
            if name == wanted and is_level and level >= required_level:
                return EvaluationResult(
                    satisfied=True,
                    message=f"User has {skill_name} at level {level}",
                    evidence={"skill": skill_name, "level": level},
                )

        return EvaluationResult(
            satisfied=False,
            message=f"User has not reached {skill_name} level {required_level}",
            evidence={"skill": skill_name, "required_level": required_level},
        )
