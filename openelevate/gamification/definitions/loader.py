"""YAML Definition Loader for Badges"""

import json
import logging
from pathlib import Path

import yaml
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from openelevate.core.data.database import get_db
from openelevate.core.data.models import Badge
from openelevate.core.data.repositories import BadgeRepository
from openelevate.gamification.errors import DuplicateBadgeError
from openelevate.gamification.schemas.badge import BadgeSchema
from openelevate.gamification.schemas.conditions import dump_condition

logger = logging.getLogger(__name__)


class DefinitionLoader:
    """Loads and syncs badge definitions from YAML to database"""

    def __init__(self, definitions_path: Path | None = None):
        self.definitions_path = definitions_path or Path(__file__).parent

    def load_badges(self, db: Session) -> list[str]:
        """Load all badge YAML files and upsert to database.

        Files that fail validation or fail to write are logged and skipped.
        """
        badges_dir = self.definitions_path / "badges"
        loaded = []

        if not badges_dir.exists():
            logger.warning("Badges directory not found: %s", badges_dir)
            return loaded

        for yaml_file in sorted(badges_dir.rglob("*.yaml")):
            try:
                badge = self._load_badge_yaml(yaml_file)
                # a failing file rolls back to here, earlier files are kept
                with db.begin_nested():
                    self._check_title_free(db, badge)
                    self._upsert_badge(db, badge)
                loaded.append(badge.id)
                logger.debug("Loaded badge: %s", badge.id)
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.error("Failed to load badge from %s: %s", yaml_file, e)

        db.commit()
        return loaded

    def _load_badge_yaml(self, path: Path) -> BadgeSchema:
        """Load and validate a badge YAML file"""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return BadgeSchema(**data)

    def _check_title_free(self, db: Session, badge: BadgeSchema):
        """Titles are unique across the catalog"""
        existing = BadgeRepository(db).get_badge_by_title(badge.title)
        if existing is not None and existing.id != badge.id:
            raise DuplicateBadgeError(
                f"Title '{badge.title}' already used by badge {existing.id}"
            )

    def _upsert_badge(self, db: Session, badge: BadgeSchema):
        """Insert or update badge in database (dialect-agnostic)"""
        values = {
            "id": badge.id,
            "title": badge.title,
            "description": badge.description,
            "icon_url": badge.icon_url,
            "condition": json.dumps(dump_condition(badge.condition)),
            "rarity": badge.rarity.value,
            "points_awarded": badge.points_awarded,
            "is_active": badge.is_active,
            "order_index": badge.order_index,
        }
        self._upsert(db, Badge, values, "id")

    def _upsert(self, db: Session, model, values: dict, conflict_column: str = "id"):
        """Dialect-agnostic upsert (INSERT ... ON CONFLICT UPDATE)"""
        dialect = db.bind.dialect.name if db.bind else "sqlite"

        if dialect == "sqlite":
            stmt = sqlite_insert(model).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[conflict_column],
                set_={k: v for k, v in values.items() if k != conflict_column},
            )
        elif dialect == "postgresql":
            stmt = pg_insert(model).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[conflict_column],
                set_={k: v for k, v in values.items() if k != conflict_column},
            )
        else:
            db.merge(model(**values))
            return

        db.execute(stmt)


# Singleton instance
_loader: DefinitionLoader | None = None


def get_loader() -> DefinitionLoader:
    """Get singleton loader instance"""
    global _loader  # pylint: disable=global-statement
    if _loader is None:
        _loader = DefinitionLoader()
    return _loader


def load_definitions_on_startup() -> list[str]:
    """Load badge definitions on app startup - call from main.py"""
    loader = get_loader()
    db = next(get_db())
    try:
        loaded = loader.load_badges(db)
        logger.info("Badge definitions loaded: %d badges", len(loaded))
        return loaded
    finally:
        db.close()
