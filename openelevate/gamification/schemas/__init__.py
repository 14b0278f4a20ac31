"""Gamification Schemas"""

from openelevate.gamification.schemas.badge import (
    BadgeSchema,
    BadgeUpdateSchema,
    Rarity,
)
from openelevate.gamification.schemas.conditions import (
    BadgeCondition,
    ConditionKind,
    ContributionCountCondition,
    ProjectCountCondition,
    SkillLevelCondition,
    SpecialCondition,
    SpecialTag,
    TimeActiveCondition,
    dump_condition,
    parse_condition,
)
from openelevate.gamification.schemas.events import GamificationEvent

__all__ = [
    "BadgeSchema",
    "BadgeUpdateSchema",
    "Rarity",
    "BadgeCondition",
    "ConditionKind",
    "ContributionCountCondition",
    "ProjectCountCondition",
    "TimeActiveCondition",
    "SkillLevelCondition",
    "SpecialCondition",
    "SpecialTag",
    "parse_condition",
    "dump_condition",
    "GamificationEvent",
]
