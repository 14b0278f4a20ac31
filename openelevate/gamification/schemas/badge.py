"""Badge Definition Schema"""

from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from openelevate.gamification.schemas.conditions import BadgeCondition


class Rarity(StrEnum):
    """Informational ordinal classification, lowest first"""

    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"

    @property
    def rank(self) -> int:
        """Ordinal position: common=0 ... legendary=4"""
        return list(Rarity).index(self)


class BadgeSchema(BaseModel):
    """Validates badge YAML structure and admin payloads"""

    id: str = Field(
        pattern=r"^[a-z0-9][a-z0-9-]*[a-z0-9]$|^[a-z0-9]$",
        min_length=1,
        max_length=64,
        description="Unique badge identifier",
    )
    title: str = Field(min_length=2, max_length=50)
    description: str = Field(min_length=5, max_length=200)
    icon_url: str | None = Field(default=None, max_length=500)

    condition: BadgeCondition

    rarity: Rarity = Rarity.COMMON
    points_awarded: int = Field(ge=0, le=1000, default=10)

    is_active: bool = True
    order_index: int = Field(ge=0, default=0)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        """Titles are unique, so surrounding whitespace is not significant"""
        return v.strip()


class BadgeUpdateSchema(BaseModel):
    """Partial badge update - the id never changes"""

    title: str | None = Field(default=None, min_length=2, max_length=50)
    description: str | None = Field(default=None, min_length=5, max_length=200)
    icon_url: str | None = Field(default=None, max_length=500)
    condition: BadgeCondition | None = None
    rarity: Rarity | None = None
    points_awarded: int | None = Field(default=None, ge=0, le=1000)
    is_active: bool | None = None
    order_index: int | None = Field(default=None, ge=0)
