"""Gamification processing: badge engine, contribution verification, events"""

from openelevate.gamification.processor.badge_service import (
    BadgeService,
    get_badge_service,
)
from openelevate.gamification.processor.contribution_service import (
    ContributionService,
)
from openelevate.gamification.processor.event_processor import (
    GamificationEventProcessor,
    get_processor,
    start_processor_task,
)
from openelevate.gamification.processor.points import calculate_contribution_points

__all__ = [
    "BadgeService",
    "ContributionService",
    "GamificationEventProcessor",
    "calculate_contribution_points",
    "get_badge_service",
    "get_processor",
    "start_processor_task",
]
