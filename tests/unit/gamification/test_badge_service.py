# ==============================================================================
# Badge Eligibility Engine Test Suite
# ==============================================================================
# User Story: As a developer, I want badges granted automatically when I
#             qualify, exactly once, with my points matching what I earned
#
# Acceptance Criteria:
#   1. Newly satisfied badges are awarded in catalog order
#   2. A badge is never awarded twice
#   3. user.points always equals the sum of awarded badge points
#   4. A broken badge never blocks the others
#   5. Write failures grant nothing
# ==============================================================================

import logging
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from openelevate.config import settings
from openelevate.core.data.database import Base
from openelevate.core.data.models import UserBadge
from openelevate.core.data.repositories import (
    BadgeRepository,
    UserBadgeRepository,
    UserRepository,
)
from openelevate.gamification.errors import NotFoundError, PersistenceError
from openelevate.gamification.processor import BadgeService
from tests.unit.factories import (
    FIXED_NOW,
    create_badge,
    create_contribution,
    create_project,
    create_user,
)

FIRST = {"type": "contribution_count", "count": 1}
WARRIOR = {"type": "contribution_count", "count": 10}
STARTER = {"type": "project_count", "count": 1}


@pytest.fixture
def catalog(db):
    """A small catalog mirroring the default badges"""
    return [
        create_badge(db, "first-contribution", FIRST, points_awarded=10, order_index=10),
        create_badge(db, "code-warrior", WARRIOR, points_awarded=50, order_index=20),
        create_badge(db, "project-starter", STARTER, points_awarded=100, order_index=40),
    ]


def assert_points_consistent(db, user):
    db.refresh(user)
    assert user.points == UserBadgeRepository(db).sum_points(user.id)


class TestCheckAndAward:
    """Eligibility scan and award application"""

    def test_bse_awd_001_first_contribution(self, db, catalog, badge_service):
        user = create_user(db)
        project = create_project(db, create_user(db, "Owner"))
        create_contribution(db, user, project)

        awarded = badge_service.check_and_award(user.id, db, now=FIXED_NOW)

        assert [award.badge_id for award in awarded] == ["first-contribution"]
        record = awarded[0].to_dict()
        assert record["title"] == "First Contribution"
        assert record["points_awarded"] == 10
        assert record["icon_url"] == "/badges/first-contribution.svg"
        assert record["awarded_at"].startswith("2025-06-01T12:00:00")

        db.refresh(user)
        assert user.points == 10
        assert user.held_badge_ids() == {"first-contribution"}

    def test_bse_awd_002_second_call_awards_nothing(self, db, catalog, badge_service):
        user = create_user(db)
        create_project(db, user)

        first = badge_service.check_and_award(user.id, db)
        db.refresh(user)
        version_after_award = user.version

        second = badge_service.check_and_award(user.id, db)
        db.refresh(user)

        assert [award.badge_id for award in first] == ["project-starter"]
        assert second == []
        assert user.points == 100
        assert user.version == version_after_award
        assert db.query(UserBadge).count() == 1

    def test_bse_awd_003_awards_in_catalog_order(self, db, badge_service):
        create_badge(db, "b-late", STARTER, order_index=30)
        create_badge(db, "a-early", STARTER, order_index=5)
        create_badge(db, "c-middle", STARTER, order_index=10)
        user = create_user(db)
        create_project(db, user)

        awarded = badge_service.check_and_award(user.id, db)

        assert [award.badge_id for award in awarded] == ["a-early", "c-middle", "b-late"]

    def test_bse_awd_004_points_track_awards(self, db, catalog, badge_service):
        user = create_user(db)
        project = create_project(db, user)
        for _ in range(10):
            create_contribution(db, user, project)

        awarded = badge_service.check_and_award(user.id, db)

        assert {award.badge_id for award in awarded} == {
            "first-contribution",
            "code-warrior",
            "project-starter",
        }
        assert_points_consistent(db, user)
        assert user.points == 160

    def test_bse_awd_005_inactive_badges_skipped(self, db, badge_service):
        create_badge(db, "retired", STARTER, is_active=False)
        user = create_user(db)
        create_project(db, user)

        assert badge_service.check_and_award(user.id, db) == []

    def test_bse_awd_006_unknown_user(self, db, catalog, badge_service):
        with pytest.raises(NotFoundError) as exc_info:
            badge_service.check_and_award("missing", db)
        assert str(exc_info.value) == "User not found with ID: missing"

    def test_bse_awd_007_nothing_left_to_earn_skips_evaluation(
        self, db, badge_service, monkeypatch
    ):
        create_badge(db, "project-starter", STARTER)
        user = create_user(db)
        create_project(db, user)
        badge_service.check_and_award(user.id, db)

        evaluate = MagicMock()
        monkeypatch.setattr(badge_service, "_evaluate", evaluate)
        assert badge_service.check_and_award(user.id, db) == []
        evaluate.assert_not_called()

    def test_bse_awd_008_award_keeps_badge_snapshot(self, db, catalog, badge_service):
        user = create_user(db)
        create_project(db, user)
        badge_service.check_and_award(user.id, db)

        repo = BadgeRepository(db)
        repo.update_badge(
            repo.get_badge("project-starter"),
            {"title": "Founder", "points_awarded": 500},
        )

        record = UserBadgeRepository(db).get_user_badge(user.id, "project-starter")
        assert record.title == "Project Starter"
        assert record.points_awarded == 100
        assert_points_consistent(db, user)


class TestFailClosed:
    """Broken badges are skipped without blocking the rest"""

    def test_bse_fc_001_unparseable_condition(self, db, badge_service, caplog):
        create_badge(db, "mystery", {"type": "karma_points", "count": 1}, order_index=1)
        create_badge(
            db, "handshake", {"type": "special", "condition": "secret"}, order_index=2
        )
        create_badge(db, "project-starter", STARTER, order_index=3)
        user = create_user(db)
        create_project(db, user)

        with caplog.at_level(logging.WARNING):
            awarded = badge_service.check_and_award(user.id, db)

        assert [award.badge_id for award in awarded] == ["project-starter"]
        assert "Invalid condition on badge mystery" in caplog.text
        assert "Invalid condition on badge handshake" in caplog.text

    def test_bse_fc_002_evaluator_failure_isolated(self, db, badge_service, caplog):
        broken = create_badge(db, "broken", FIRST, order_index=1)
        create_badge(db, "project-starter", STARTER, order_index=2)
        user = create_user(db)
        create_project(db, user)

        evaluator = badge_service.get_evaluator_for_badge(broken)
        evaluator.evaluate = MagicMock(side_effect=RuntimeError("query timed out"))

        with caplog.at_level(logging.WARNING):
            awarded = badge_service.check_and_award(user.id, db)

        assert [award.badge_id for award in awarded] == ["project-starter"]
        assert "Badge broken could not be evaluated: query timed out" in caplog.text
        assert_points_consistent(db, user)

    def test_bse_fc_003_malformed_skill_never_awarded(self, db, badge_service):
        create_badge(db, "skilled", {"type": "skill_level", "skill": "javascript"})
        user = create_user(db, skills=[{"name": "javascript", "level": 10}])

        assert badge_service.check_and_award(user.id, db) == []


class TestPersistence:
    """Award writes are all-or-nothing"""

    def test_bse_per_001_write_failure_grants_nothing(self, db, catalog, badge_service, monkeypatch):
        user = create_user(db)
        create_project(db, user)
        project = create_project(db, user, "Second")
        create_contribution(db, user, project)

        def failing_save(self, user):
            raise OperationalError("UPDATE users", {}, Exception("disk I/O error"))

        monkeypatch.setattr(UserRepository, "save", failing_save)

        with pytest.raises(PersistenceError):
            badge_service.check_and_award(user.id, db)

        db.refresh(user)
        assert user.points == 0
        assert db.query(UserBadge).count() == 0

    def test_bse_per_002_conflict_is_retried(self, db, catalog, badge_service, monkeypatch):
        user = create_user(db)
        create_project(db, user)

        original_save = UserRepository.save
        calls = []

        def conflicting_once(self, user):
            calls.append(user.id)
            if len(calls) == 1:
                raise StaleDataError("users row changed underneath")
            return original_save(self, user)

        monkeypatch.setattr(UserRepository, "save", conflicting_once)

        awarded = badge_service.check_and_award(user.id, db)

        assert len(calls) == 2
        assert [award.badge_id for award in awarded] == ["project-starter"]
        assert db.query(UserBadge).count() == 1
        assert_points_consistent(db, user)

    def test_bse_per_003_retries_exhausted(self, db, catalog, badge_service, monkeypatch):
        user = create_user(db)
        create_project(db, user)
        monkeypatch.setattr(settings, "BADGE_AWARD_MAX_RETRIES", 2)

        calls = []

        def always_stale(self, user):
            calls.append(user.id)
            raise StaleDataError("users row changed underneath")

        monkeypatch.setattr(UserRepository, "save", always_stale)

        with pytest.raises(PersistenceError):
            badge_service.check_and_award(user.id, db)
        assert len(calls) == 2
        assert db.query(UserBadge).count() == 0

    def test_bse_per_004_duplicate_award_rejected_by_database(self, db, catalog):
        user = create_user(db)
        db.add(UserBadge(user_id=user.id, badge_id="project-starter", title="Project Starter"))
        db.commit()

        db.add(UserBadge(user_id=user.id, badge_id="project-starter", title="Project Starter"))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()


class TestConcurrentAwards:
    """Two sessions racing to award the same badges on a shared database"""

    @pytest.fixture
    def file_engine(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}")
        Base.metadata.create_all(bind=engine)
        yield engine
        engine.dispose()

    def test_bse_per_005_concurrent_award_recorded_once(self, file_engine, monkeypatch):
        Session = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
        with Session() as setup:
            create_badge(setup, "first-contribution", FIRST, points_awarded=10, order_index=10)
            create_badge(setup, "project-starter", STARTER, points_awarded=100, order_index=40)
            user = create_user(setup)
            project = create_project(setup, user)
            create_contribution(setup, user, project)
            user_id = user.id

        session_a, session_b = Session(), Session()
        service_a, service_b = BadgeService(), BadgeService()
        original_apply = service_a._apply_awards
        raced = []

        def award_elsewhere_first(db, user, badges, now):
            # B commits after A evaluated but before A writes
            if not raced:
                raced.append(service_b.check_and_award(user_id, session_b))
            return original_apply(db, user, badges, now)

        monkeypatch.setattr(service_a, "_apply_awards", award_elsewhere_first)

        try:
            awarded_a = service_a.check_and_award(user_id, session_a)
        finally:
            session_a.close()
            session_b.close()

        assert [award.badge_id for award in raced[0]] == [
            "first-contribution",
            "project-starter",
        ]
        assert awarded_a == []
        with Session() as check:
            rows = check.query(UserBadge).filter(UserBadge.user_id == user_id).all()
            assert sorted(row.badge_id for row in rows) == [
                "first-contribution",
                "project-starter",
            ]
            stored = UserRepository(check).find_by_id(user_id)
            assert stored.points == 110
            assert stored.points == UserBadgeRepository(check).sum_points(user_id)


class TestProcessEvent:
    """Domain event entry point"""

    @pytest.fixture
    def qualified_user(self, db, catalog):
        user = create_user(db)
        project = create_project(db, user)
        create_contribution(db, user, project)
        return user

    def test_bse_evt_001_full_rescan_by_default(self, db, badge_service, qualified_user):
        awarded = badge_service.process_event(qualified_user.id, "project_created", db)
        assert {award.badge_id for award in awarded} == {
            "first-contribution",
            "project-starter",
        }

    def test_bse_evt_002_filtering_limits_scan(
        self, db, badge_service, qualified_user, monkeypatch
    ):
        monkeypatch.setattr(settings, "BADGE_EVENT_FILTERING", True)

        by_project = badge_service.process_event(qualified_user.id, "project_created", db)
        assert [award.badge_id for award in by_project] == ["project-starter"]

        by_contribution = badge_service.process_event(
            qualified_user.id, "contribution_verified", db
        )
        assert [award.badge_id for award in by_contribution] == ["first-contribution"]
        assert_points_consistent(db, qualified_user)

    def test_bse_evt_003_unknown_event_falls_back_to_full_scan(
        self, db, badge_service, qualified_user, monkeypatch
    ):
        monkeypatch.setattr(settings, "BADGE_EVENT_FILTERING", True)
        awarded = badge_service.process_event(qualified_user.id, "repo_starred", db)
        assert len(awarded) == 2

    def test_bse_evt_004_time_badges_follow_any_event(self, db, badge_service, monkeypatch):
        monkeypatch.setattr(settings, "BADGE_EVENT_FILTERING", True)
        create_badge(db, "one-week", {"type": "time_active", "days": 7})
        user = create_user(db, created_at=FIXED_NOW - timedelta(days=7))

        awarded = badge_service.process_event(
            user.id, "skill_updated", db, event_data={"skill": "go"}, now=FIXED_NOW
        )
        assert [award.badge_id for award in awarded] == ["one-week"]


class TestBadgeProgress:
    """Progress toward a single badge"""

    def test_bse_prg_001_progress(self, db, catalog, badge_service):
        user = create_user(db)
        project = create_project(db, user)
        for _ in range(4):
            create_contribution(db, user, project)

        progress = badge_service.get_badge_progress(user.id, "code-warrior", db)
        assert progress == {"current": 4, "target": 10, "percentage": 40}

    def test_bse_prg_002_binary_progress(self, db, badge_service):
        create_badge(db, "mentor", {"type": "special", "condition": "become_mentor"})
        user = create_user(db, role="mentor")
        progress = badge_service.get_badge_progress(user.id, "mentor", db)
        assert progress == {"current": 1, "target": 1, "percentage": 100}

    def test_bse_prg_003_missing_badge(self, db, badge_service):
        user = create_user(db)
        with pytest.raises(NotFoundError):
            badge_service.get_badge_progress(user.id, "nope", db)


class TestEvaluatorCache:
    def test_bse_cch_001_edited_condition_gets_new_evaluator(self, db, badge_service):
        badge = create_badge(db, "starter", STARTER)
        first = badge_service.get_evaluator_for_badge(badge)
        assert badge_service.get_evaluator_for_badge(badge) is first

        BadgeRepository(db).update_badge(
            badge, {"condition": {"type": "project_count", "count": 3}}
        )
        second = badge_service.get_evaluator_for_badge(badge)
        assert second is not first
        assert second.condition.count == 3

        badge_service.clear_cache()
        assert badge_service.get_evaluator_for_badge(badge) is not second
