"""OpenElevate Data Models"""

import json
import uuid
from datetime import UTC, datetime
from typing import Any, Literal

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from openelevate.core.data.database import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


# General Models
class User(Base):
    """User Model
    - Owned by the profile subsystem; the gamification engine reads the
      profile fields and writes badges and points.
    """

    __tablename__ = "users"

    id = Column[str](String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    name = Column[str](String(100), nullable=False)
    email = Column[str](String(255), unique=True, nullable=True, index=True)

    role = Column[Literal["developer", "client", "mentor", "admin"]](
        String(20), default="developer", nullable=False
    )
    is_mentor = Column[bool](Boolean, default=False)
    mentor_rating = Column[float](Float, default=0.0)
    activity_streak = Column[int](Integer, default=0)
    skills = Column[str](Text, nullable=True)  # JSON: [{"name": "go", "level": 3}]

    # Badge points; contribution points are tallied separately
    points = Column[int](Integer, default=0, nullable=False)
    contribution_points = Column[int](Integer, default=0, nullable=False)

    version = Column[int](Integer, nullable=False, default=1)

    created_at = Column[datetime](DateTime, default=_utcnow, nullable=False)
    updated_at = Column[datetime](DateTime, default=_utcnow, onupdate=_utcnow)

    badges = relationship(
        "UserBadge",
        back_populates="user",
        order_by="UserBadge.awarded_at",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (Index("idx_users_role", "role"),)

    def __repr__(self) -> str:
        return f"<User(id='{self.id}', name='{self.name}', points={self.points})>"

    def get_skills(self) -> list[dict[str, Any]]:
        """Decode the skills JSON column"""
        return json.loads(self.skills) if self.skills else []

    def set_skills(self, skills: list[dict[str, Any]]) -> None:
        """Encode skills into the JSON column"""
        self.skills = json.dumps(skills)

    def held_badge_ids(self) -> set[str]:
        """Ids of every badge already awarded to this user"""
        return {user_badge.badge_id for user_badge in self.badges}

    def to_dict(self) -> dict:
        """Convert user to dictionary"""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "is_mentor": self.is_mentor,
            "mentor_rating": self.mentor_rating,
            "activity_streak": self.activity_streak,
            "skills": self.get_skills(),
            "points": self.points,
            "contribution_points": self.contribution_points,
            "created_at": _isoformat(self.created_at),
        }


class Project(Base):
    """Project Model - only the fields the badge engine reads"""

    __tablename__ = "projects"

    id = Column[int](Integer, primary_key=True, autoincrement=True)
    title = Column[str](String(100), nullable=False)
    created_by = Column[str](
        String(32), ForeignKey("users.id"), nullable=False, index=True
    )
    main_language = Column[str](String(50), nullable=True)
    created_at = Column[datetime](DateTime, default=_utcnow)

    contributions = relationship("Contribution", back_populates="project")

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, title='{self.title}')>"


class Contribution(Base):
    """Contribution Model"""

    __tablename__ = "contributions"

    id = Column[int](Integer, primary_key=True, autoincrement=True)
    user_id = Column[str](String(32), ForeignKey("users.id"), nullable=False)
    project_id = Column[int](Integer, ForeignKey("projects.id"), nullable=False)

    type = Column[Literal["PR", "issue", "review", "documentation", "other"]](
        String(20), nullable=False
    )
    title = Column[str](String(100), nullable=False)
    # status is one of: pending, open, verified, approved, merged, rejected, closed
    status = Column[str](String(20), default="pending", nullable=False)
    rating = Column[int](Integer, nullable=True)  # 1-5 reviewer score
    points = Column[int](Integer, default=0, nullable=False)

    verified_by = Column[str](String(32), nullable=True)
    verified_at = Column[datetime](DateTime, nullable=True)

    created_at = Column[datetime](DateTime, default=_utcnow)
    updated_at = Column[datetime](DateTime, default=_utcnow, onupdate=_utcnow)

    project = relationship("Project", back_populates="contributions")

    __table_args__ = (
        Index("idx_contributions_user_status", "user_id", "status"),
        Index("idx_contributions_project", "project_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Contribution(id={self.id}, type='{self.type}', status='{self.status}')>"
        )

    def to_dict(self) -> dict:
        """Convert contribution to dictionary"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "type": self.type,
            "title": self.title,
            "status": self.status,
            "rating": self.rating,
            "points": self.points,
            "verified_by": self.verified_by,
            "verified_at": _isoformat(self.verified_at),
        }


class GithubRepository(Base):
    """Repository snapshot kept by the GitHub analytics sync"""

    __tablename__ = "github_repositories"

    id = Column[int](Integer, primary_key=True, autoincrement=True)
    user_id = Column[str](String(32), ForeignKey("users.id"), nullable=False)
    full_name = Column[str](String(200), nullable=False)
    stargazers_count = Column[int](Integer, default=0, nullable=False)
    synced_at = Column[datetime](DateTime, default=_utcnow)

    __table_args__ = (
        Index("idx_github_repos_user_stars", "user_id", "stargazers_count"),
    )


# Gamification Models


class Badge(Base):
    """Badge Definition - loaded from YAML files or created by admins"""

    __tablename__ = "badges"

    id = Column[str](String(64), primary_key=True)  # e.g., "first-contribution"
    title = Column[str](String(50), unique=True, nullable=False)
    description = Column[str](String(200), nullable=False)
    icon_url = Column[str](String(500), nullable=True)

    # JSON: {"type": "contribution_count", "count": 1}
    condition = Column[str](Text, nullable=False)

    rarity = Column[str](
        String(20), default="common"
    )  # "common", "uncommon", "rare", "epic", "legendary"
    points_awarded = Column[int](Integer, default=10, nullable=False)

    is_active = Column[bool](Boolean, default=True)
    order_index = Column[int](Integer, default=0)
    created_at = Column[datetime](DateTime, default=_utcnow)
    updated_at = Column[datetime](DateTime, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_badges_active_order", "is_active", "order_index"),
        Index("idx_badges_rarity", "rarity"),
    )

    def __repr__(self) -> str:
        return f"<Badge(id='{self.id}', title='{self.title}', rarity='{self.rarity}')>"

    def get_condition_data(self) -> dict[str, Any]:
        """Decode the raw condition JSON"""
        return json.loads(self.condition) if self.condition else {}

    def to_dict(self) -> dict:
        """Convert badge to dictionary"""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "icon_url": self.icon_url,
            "condition": self.get_condition_data(),
            "rarity": self.rarity,
            "points_awarded": self.points_awarded,
            "is_active": self.is_active,
            "order_index": self.order_index,
        }


class UserBadge(Base):
    """Badges earned by users - append only"""

    __tablename__ = "user_badges"

    id = Column[int](Integer, primary_key=True, autoincrement=True)
    user_id = Column[str](String(32), ForeignKey("users.id"), nullable=False)
    badge_id = Column[str](String(64), ForeignKey("badges.id"), nullable=False)

    # Snapshot of the badge at award time
    title = Column[str](String(50), nullable=False)
    description = Column[str](String(200), nullable=True)
    icon_url = Column[str](String(500), nullable=True)
    points_awarded = Column[int](Integer, default=0, nullable=False)

    awarded_at = Column[datetime](DateTime, default=_utcnow, nullable=False)

    user = relationship("User", back_populates="badges")

    __table_args__ = (
        Index("idx_ub_user", "user_id"),
        Index("idx_ub_badge", "badge_id"),
        UniqueConstraint("user_id", "badge_id", name="uq_user_badge"),
    )

    def __repr__(self) -> str:
        return f"<UserBadge(user_id='{self.user_id}', badge_id='{self.badge_id}')>"

    def to_dict(self) -> dict:
        """Convert user badge to dictionary"""
        return {
            "badge_id": self.badge_id,
            "title": self.title,
            "description": self.description,
            "icon_url": self.icon_url,
            "awarded_at": _isoformat(self.awarded_at),
            "points_awarded": self.points_awarded,
        }
