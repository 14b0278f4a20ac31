"""Test data helpers shared by the unit tests."""

from datetime import UTC, datetime

from openelevate.core.data.models import GithubRepository
from openelevate.core.data.repositories import (
    BadgeRepository,
    ContributionRepository,
    ProjectRepository,
    UserRepository,
)

FIXED_NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=UTC)


def create_user(db, name: str = "Ada", **fields):
    """Helper to create a user with standard test data."""
    fields.setdefault("email", f"{name.lower()}@example.com")
    return UserRepository(db).create_user(name, **fields)


def create_badge(
    db,
    badge_id: str,
    condition: dict,
    points_awarded: int = 10,
    order_index: int = 0,
    **fields,
):
    """Helper to create a badge straight in the catalog."""
    values = {
        "id": badge_id,
        "title": fields.pop("title", badge_id.replace("-", " ").title()),
        "description": fields.pop("description", f"Badge {badge_id}"),
        "icon_url": f"/badges/{badge_id}.svg",
        "condition": condition,
        "rarity": fields.pop("rarity", "common"),
        "points_awarded": points_awarded,
        "order_index": order_index,
        **fields,
    }
    return BadgeRepository(db).create_badge(values)


def create_project(db, owner, title: str = "Project", main_language: str | None = None):
    """Helper to create a project owned by a user."""
    return ProjectRepository(db).create_project(
        title=title, created_by=owner.id, main_language=main_language
    )


def create_contribution(
    db,
    user,
    project,
    status: str = "verified",
    contribution_type: str = "PR",
    rating: int | None = None,
):
    """Helper to create a contribution."""
    return ContributionRepository(db).create_contribution(
        user_id=user.id,
        project_id=project.id,
        contribution_type=contribution_type,
        title=f"{contribution_type} for {project.title}",
        status=status,
        rating=rating,
    )


def create_github_repo(db, user, stars: int, full_name: str = "ada/engine"):
    """Helper to record a synced GitHub repository."""
    repo = GithubRepository(user_id=user.id, full_name=full_name, stargazers_count=stars)
    db.add(repo)
    db.commit()
    return repo
