"""Badge Condition Schemas

A badge condition is a closed tagged union over five kinds, discriminated by
the ``type`` field. Stored conditions are parsed with ``parse_condition``;
anything outside the union raises ``pydantic.ValidationError``.
"""

from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter


class ConditionKind(StrEnum):
    """Discriminator values for badge conditions"""

    CONTRIBUTION_COUNT = "contribution_count"
    PROJECT_COUNT = "project_count"
    TIME_ACTIVE = "time_active"
    SKILL_LEVEL = "skill_level"
    SPECIAL = "special"


class SpecialTag(StrEnum):
    """Named predicates for the special condition kind"""

    BECOME_MENTOR = "become_mentor"
    PERFECT_CONTRIBUTION = "perfect_contribution"
    MENTOR_RATING = "mentor_rating"
    GITHUB_STARS = "github_stars"
    DIVERSE_CONTRIBUTOR = "diverse_contributor"
    STREAK_ACHIEVEMENT = "streak_achievement"


class _Condition(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class ContributionCountCondition(_Condition):
    """Verified contributions >= count"""

    type: Literal["contribution_count"] = "contribution_count"
    count: int = Field(default=1, ge=0)


class ProjectCountCondition(_Condition):
    """Projects created >= count"""

    type: Literal["project_count"] = "project_count"
    count: int = Field(default=1, ge=0)


class TimeActiveCondition(_Condition):
    """Whole days since registration >= days"""

    type: Literal["time_active"] = "time_active"
    # older definitions stored the day count under "count"
    days: int = Field(default=1, ge=0, validation_alias=AliasChoices("days", "count"))


class SkillLevelCondition(_Condition):
    """Skill spec in "<name>:<level>" form, parsed at evaluation time"""

    type: Literal["skill_level"] = "skill_level"
    skill: str = Field(min_length=1)


class SpecialCondition(_Condition):
    """One of the fixed special predicates"""

    type: Literal["special"] = "special"
    condition: SpecialTag = Field(
        validation_alias=AliasChoices(
            "condition", "special_condition", "specialCondition"
        )
    )


BadgeCondition = Annotated[
    Union[
        ContributionCountCondition,
        ProjectCountCondition,
        TimeActiveCondition,
        SkillLevelCondition,
        SpecialCondition,
    ],
    Field(discriminator="type"),
]

_condition_adapter: TypeAdapter[BadgeCondition] = TypeAdapter(BadgeCondition)


def parse_condition(data: dict[str, Any] | BaseModel) -> BadgeCondition:
    """Parse raw condition data into its typed form.

    Raises:
        pydantic.ValidationError: unknown kind, unknown special tag or
            malformed parameters
    """
    if isinstance(data, BaseModel):
        data = data.model_dump()
    return _condition_adapter.validate_python(data)


def dump_condition(condition: BadgeCondition) -> dict[str, Any]:
    """Serialize a typed condition for storage"""
    return condition.model_dump(mode="json")
