"""Data Repositories for the OpenElevate gamification engine"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from openelevate.core.data.models import (
    Badge,
    Contribution,
    GithubRepository,
    Project,
    User,
    UserBadge,
)

logger = logging.getLogger(__name__)


class Repository:
    """Base Repository holding the active session"""

    def __init__(self, db: Session):
        self.db = db


class UserRepository(Repository):
    """Repository for User model"""

    def find_by_id(self, user_id: str) -> User | None:
        """Get user by id"""
        return self.db.query(User).filter(User.id == user_id).first()

    def save(self, user: User) -> User:
        """Persist the user and everything attached to it in one commit"""
        self.db.add(user)
        self.db.commit()
        return user

    def create_user(self, name: str, **fields: Any) -> User:
        """Create a new user"""
        skills = fields.pop("skills", None)
        user = User(name=name, **fields)
        if skills is not None:
            user.set_skills(skills)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user


class ContributionRepository(Repository):
    """Repository for Contribution model"""

    def get_contribution(self, contribution_id: int) -> Contribution | None:
        """Get contribution by id"""
        return (
            self.db.query(Contribution)
            .filter(Contribution.id == contribution_id)
            .first()
        )

    def count_by_user_and_status(self, user_id: str, status: str) -> int:
        """Count a user's contributions in the given status"""
        return (
            self.db.query(func.count(Contribution.id))
            .filter(Contribution.user_id == user_id, Contribution.status == status)
            .scalar()
            or 0
        )

    def count_perfect_by_user(self, user_id: str) -> int:
        """Count verified contributions rated 5"""
        return (
            self.db.query(func.count(Contribution.id))
            .filter(
                Contribution.user_id == user_id,
                Contribution.status == "verified",
                Contribution.rating == 5,
            )
            .scalar()
            or 0
        )

    def find_verified_by_user(self, user_id: str) -> list[tuple[int, str | None]]:
        """List (contribution id, project main language) for verified contributions"""
        rows = (
            self.db.query(Contribution.id, Project.main_language)
            .outerjoin(Project, Contribution.project_id == Project.id)
            .filter(Contribution.user_id == user_id, Contribution.status == "verified")
            .all()
        )
        return [(row[0], row[1]) for row in rows]

    def create_contribution(
        self,
        user_id: str,
        project_id: int,
        contribution_type: str,
        title: str,
        status: str = "pending",
        rating: int | None = None,
    ) -> Contribution:
        """Create a new contribution"""
        contribution = Contribution(
            user_id=user_id,
            project_id=project_id,
            type=contribution_type,
            title=title,
            status=status,
            rating=rating,
        )
        self.db.add(contribution)
        self.db.commit()
        self.db.refresh(contribution)
        return contribution


class ProjectRepository(Repository):
    """Repository for Project model"""

    def count_by_creator(self, user_id: str) -> int:
        """Count projects created by the user"""
        return (
            self.db.query(func.count(Project.id))
            .filter(Project.created_by == user_id)
            .scalar()
            or 0
        )

    def create_project(
        self, title: str, created_by: str, main_language: str | None = None
    ) -> Project:
        """Create a new project"""
        project = Project(
            title=title, created_by=created_by, main_language=main_language
        )
        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)
        return project


class GithubAnalyticsRepository(Repository):
    """Read side of the GitHub analytics sync"""

    def has_repo_with_stars_at_least(self, user_id: str, threshold: int) -> bool:
        """Whether any linked repository has at least `threshold` stars"""
        return (
            self.db.query(GithubRepository.id)
            .filter(
                GithubRepository.user_id == user_id,
                GithubRepository.stargazers_count >= threshold,
            )
            .first()
            is not None
        )

    def max_stars(self, user_id: str) -> int:
        """Highest star count across the user's repositories"""
        return (
            self.db.query(func.max(GithubRepository.stargazers_count))
            .filter(GithubRepository.user_id == user_id)
            .scalar()
            or 0
        )


class BadgeRepository(Repository):
    """Repository for the badge catalog"""

    def find_active(self) -> list[Badge]:
        """Active badges in catalog order"""
        return (
            self.db.query(Badge)
            .filter(Badge.is_active.is_(True))
            .order_by(Badge.order_index, Badge.id)
            .all()
        )

    def get_badge(self, badge_id: str) -> Badge | None:
        """Get badge by id"""
        return self.db.query(Badge).filter(Badge.id == badge_id).first()

    def get_badge_by_title(self, title: str) -> Badge | None:
        """Get badge by title - uniqueness checks only"""
        return self.db.query(Badge).filter(Badge.title == title).first()

    def list_badges(self, include_inactive: bool = False) -> list[Badge]:
        """List badges in catalog order"""
        query = self.db.query(Badge)
        if not include_inactive:
            query = query.filter(Badge.is_active.is_(True))
        return query.order_by(Badge.order_index, Badge.id).all()

    def create_badge(self, values: dict[str, Any]) -> Badge:
        """Create a badge from validated values"""
        badge = Badge(**self._encode(values))
        self.db.add(badge)
        self.db.commit()
        self.db.refresh(badge)
        logger.info("New badge created: %s", badge.id)
        return badge

    def update_badge(self, badge: Badge, updates: dict[str, Any]) -> Badge:
        """Update badge fields"""
        for key, value in self._encode(updates).items():
            if hasattr(badge, key):
                setattr(badge, key, value)
        badge.updated_at = datetime.now(UTC)
        self.db.commit()
        self.db.refresh(badge)
        logger.info("Badge updated: %s", badge.id)
        return badge

    @staticmethod
    def _encode(values: dict[str, Any]) -> dict[str, Any]:
        encoded = dict(values)
        if isinstance(encoded.get("condition"), dict):
            encoded["condition"] = json.dumps(encoded["condition"])
        return encoded


class UserBadgeRepository(Repository):
    """Read access to earned badges"""

    def get_earned_badges(self, user_id: str) -> list[UserBadge]:
        """Badges earned by the user, oldest first"""
        return (
            self.db.query(UserBadge)
            .filter(UserBadge.user_id == user_id)
            .order_by(UserBadge.awarded_at, UserBadge.id)
            .all()
        )

    def get_user_badge(self, user_id: str, badge_id: str) -> UserBadge | None:
        """Get a single earned badge"""
        return (
            self.db.query(UserBadge)
            .filter(UserBadge.user_id == user_id, UserBadge.badge_id == badge_id)
            .first()
        )

    def sum_points(self, user_id: str) -> int:
        """Sum of points recorded on the user's badges"""
        return (
            self.db.query(func.sum(UserBadge.points_awarded))
            .filter(UserBadge.user_id == user_id)
            .scalar()
            or 0
        )

    def list_holders(
        self, badge_id: str, page: int = 1, limit: int = 10
    ) -> list[tuple[User, UserBadge]]:
        """Users holding a badge with their award record, earliest first"""
        return (
            self.db.query(User, UserBadge)
            .join(UserBadge, UserBadge.user_id == User.id)
            .filter(UserBadge.badge_id == badge_id)
            .order_by(UserBadge.awarded_at, UserBadge.id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

    def count_holders(self, badge_id: str) -> int:
        """Number of users holding a badge"""
        return (
            self.db.query(func.count(UserBadge.id))
            .filter(UserBadge.badge_id == badge_id)
            .scalar()
            or 0
        )
